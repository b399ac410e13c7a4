"""Health check, no auth required."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hatchr import __version__
from hatchr.api.dependencies import get_clients
from hatchr.parsers.clients import Clients

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    db_ok: bool
    redis_ok: bool | None


@router.get("/health", response_model=HealthResponse)
async def health_check(clients: Clients = Depends(get_clients)) -> HealthResponse:
    """Check DB and Redis connectivity. Redis is None when the cache is disabled."""
    db_ok = False
    try:
        async with clients.database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_ok = True
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"[HEALTH] database unreachable: {e}")

    redis_ok: bool | None = None
    if clients.redis is not None:
        try:
            redis_ok = bool(await clients.redis.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"[HEALTH] redis unreachable: {e}")
            redis_ok = False

    return HealthResponse(
        status="ok" if db_ok and redis_ok is not False else "degraded",
        version=__version__,
        db_ok=db_ok,
        redis_ok=redis_ok,
    )
