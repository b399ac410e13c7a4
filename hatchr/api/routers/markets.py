"""Market refresh for recently launched tokens (external cron)."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import APIRouter, Depends
from loguru import logger

from config.settings import Settings
from hatchr.api.dependencies import get_clients, get_settings, require_cron_token
from hatchr.parsers.clients import Clients
from hatchr.parsers.exceptions import HatchrError
from hatchr.parsers.persistence import SqlMarketSink
from hatchr.parsers.pipeline import collect_tokens

router = APIRouter(prefix="/api/v1/markets", tags=["markets"])


@router.post("/refresh", dependencies=[Depends(require_cron_token)])
async def refresh_markets(
    clients: Clients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Re-fetch market stats for tokens first seen within the refresh window."""
    tokens = await collect_tokens(clients.adapters, settings.adapter_timeout_sec)
    since = datetime.now(UTC) - timedelta(hours=settings.market_refresh_window_hours)
    recent = [t for t in tokens if t.first_seen_at and t.first_seen_at >= since]

    sink = SqlMarketSink(clients.database.session_factory)
    semaphore = asyncio.Semaphore(settings.enrichment_concurrency)

    async def _refresh(address: str) -> bool:
        async with semaphore:
            try:
                snapshot = await clients.dexscreener.get_market(address)
                if snapshot is None or not snapshot.has_any:
                    return False
                await sink(snapshot)
                return True
            except HatchrError as e:
                logger.debug(f"[MARKETS] refresh failed for {address}: {e}")
                return False

    results = await asyncio.gather(*(_refresh(t.token_address) for t in recent))
    updated = sum(results)
    logger.info(f"[MARKETS] refreshed {updated}/{len(recent)} recent tokens")
    return {"ok": True, "checked": len(recent), "updated": updated}
