"""Current candidate set: merged and enriched tokens from all sources."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from config.settings import Settings
from hatchr.api.dependencies import get_clients, get_settings
from hatchr.parsers.clients import Clients
from hatchr.parsers.pipeline import collect_enriched

router = APIRouter(prefix="/api/v1/tokens", tags=["tokens"])


@router.get("")
async def list_tokens(
    clients: Clients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
    source: str = Query("", max_length=20, pattern="^(|clanker|zora)$"),
) -> dict[str, Any]:
    enriched = await collect_enriched(clients, settings)
    items = [e.to_dict() for e in enriched]
    if source:
        items = [i for i in items if i["source"] == source]
    items.sort(key=lambda i: i["first_seen_at"] or "", reverse=True)
    return {"count": len(items), "items": items}
