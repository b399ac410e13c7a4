"""FastAPI application factory for the Hatchr HTTP API."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config.settings import Settings
from config.settings import settings as default_settings
from hatchr.api.middleware import SecurityHeadersMiddleware
from hatchr.parsers.clients import Clients, build_clients
from hatchr.parsers.exceptions import ConfigMissing, IdentityUnresolved, SignatureInvalid

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)


async def _signature_invalid(request: Request, exc: SignatureInvalid) -> JSONResponse:
    logger.warning(f"[WEBHOOK] rejected {request.url.path}: {exc}")
    return JSONResponse({"ok": False, "error": "invalid_signature"}, status_code=401)


async def _config_missing(request: Request, exc: ConfigMissing) -> JSONResponse:
    logger.warning(f"[API] {request.url.path} unavailable: {exc.setting} not set")
    return JSONResponse({"ok": False, "error": f"{exc.setting}_missing"}, status_code=503)


async def _identity_unresolved(request: Request, exc: IdentityUnresolved) -> JSONResponse:
    return JSONResponse({"ok": False, "error": "user_not_found"}, status_code=404)


def create_app(clients: Clients | None = None, app_settings: Settings | None = None) -> FastAPI:
    """Build the app. Without ``clients`` they are built on startup and closed on shutdown."""
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "clients", None) is None:
            owned = build_clients(app_settings)
            app.state.clients = owned
        yield
        if owned is not None:
            await owned.close()

    app = FastAPI(
        title="Hatchr API",
        version="0.1.0",
        docs_url="/api/docs" if app_settings.api_debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if app_settings.api_debug else None,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.clients = clients

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(SignatureInvalid, _signature_invalid)
    app.add_exception_handler(ConfigMissing, _config_missing)
    app.add_exception_handler(IdentityUnresolved, _identity_unresolved)

    app.add_middleware(SecurityHeadersMiddleware)

    from hatchr.api.routers.cron import router as cron_router
    from hatchr.api.routers.health import router as health_router
    from hatchr.api.routers.markets import router as markets_router
    from hatchr.api.routers.social_signals import router as social_signals_router
    from hatchr.api.routers.token_score import router as token_score_router
    from hatchr.api.routers.tokens import router as tokens_router
    from hatchr.api.routers.webhooks import router as webhooks_router

    app.include_router(health_router)
    app.include_router(cron_router)
    app.include_router(markets_router)
    app.include_router(tokens_router)
    app.include_router(token_score_router)
    app.include_router(social_signals_router)
    app.include_router(webhooks_router)

    return app
