"""Neynar cast webhook intake."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from config.settings import Settings
from hatchr.api.dependencies import get_clients, get_settings
from hatchr.parsers.clients import Clients
from hatchr.parsers.social_signals import SignalIntake, verify_signature

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.get("/neynar")
async def neynar_webhook_ping() -> dict[str, Any]:
    return {"ok": True}


@router.post("/neynar", response_model=None)
async def neynar_webhook(
    request: Request,
    clients: Clients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
    signature: str | None = Header(None, alias="X-Neynar-Signature"),
) -> dict[str, Any] | JSONResponse:
    raw = await request.body()
    # raises SignatureInvalid / ConfigMissing, mapped to 401 / 503
    verify_signature(raw, signature, settings.neynar_webhook_secret)

    try:
        payload = json.loads(raw)
    except ValueError:
        return JSONResponse({"ok": False, "error": "invalid_json"}, status_code=400)
    if not isinstance(payload, dict):
        return JSONResponse({"ok": False, "error": "invalid_json"}, status_code=400)

    intake = SignalIntake(
        clients.signal_store,
        min_author_score=settings.webhook_min_author_score,
        max_tickers=settings.webhook_max_tickers,
        author_cooldown_sec=settings.webhook_author_cooldown_sec,
        ticker_cooldown_sec=settings.webhook_ticker_cooldown_sec,
    )
    decision = await intake.ingest(payload)
    return decision.to_dict()
