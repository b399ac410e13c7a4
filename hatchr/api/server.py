"""API server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings
from hatchr.parsers.clients import Clients


async def run_api_server(clients: Clients | None = None) -> None:
    """Start uvicorn serving the FastAPI app.

    Runs as an asyncio task next to the scheduler and shares its clients.
    """
    from hatchr.api.app import create_app

    app = create_app(clients=clients)
    config = uvicorn.Config(
        app=app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"API starting on http://0.0.0.0:{settings.api_port}")
    await server.serve()
