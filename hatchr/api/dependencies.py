"""FastAPI dependency injection: clients, settings, DB session, cron auth."""

from __future__ import annotations

import hmac
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from hatchr.parsers.clients import Clients
from hatchr.parsers.exceptions import ConfigMissing


def get_clients(request: Request) -> Clients:
    return request.app.state.clients


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(clients: Clients = Depends(get_clients)) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session (auto-closes)."""
    async with clients.database.session_factory() as session:
        yield session


async def require_cron_token(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Bearer-token guard for scheduled endpoints."""
    if not settings.cron_token:
        raise ConfigMissing("cron_token")
    header = request.headers.get("Authorization", "")
    token = header.removeprefix("Bearer ").strip() if header.startswith("Bearer ") else ""
    if not token or not hmac.compare_digest(token, settings.cron_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
