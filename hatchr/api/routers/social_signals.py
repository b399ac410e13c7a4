"""Stored social signals, optionally ranked by importance."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hatchr.api.dependencies import get_session
from hatchr.models import SocialSignal
from hatchr.parsers.persistence import list_social_signals
from hatchr.parsers.social_signals import compute_importance

router = APIRouter(prefix="/api/v1/social-signals", tags=["social-signals"])

# more tickers than this in one cast is almost always spam
MAX_LISTED_TICKERS = 8


def _signal_to_dict(sig: SocialSignal) -> dict[str, Any]:
    return {
        "cast_hash": sig.cast_hash,
        "cast_timestamp": sig.cast_timestamp.isoformat() if sig.cast_timestamp else None,
        "warpcast_url": sig.warpcast_url,
        "text": sig.text,
        "author_fid": sig.author_fid,
        "author_username": sig.author_username,
        "author_display_name": sig.author_display_name,
        "author_pfp_url": sig.author_pfp_url,
        "author_score": sig.author_score,
        "tickers": list(sig.tickers or []),
        "contracts": list(sig.contracts or []),
        "created_at": sig.created_at.isoformat() if sig.created_at else None,
    }


@router.get("")
async def list_signals(
    session: AsyncSession = Depends(get_session),
    limit: int = Query(25, ge=1, le=100),
    mode: str = Query("all", pattern="^(all|important)$"),
    important_min: float = Query(3.0),
    min_score: float | None = Query(None, ge=0, le=1),
) -> dict[str, Any]:
    rows = await list_social_signals(session, limit=limit, min_score=min_score)

    items = []
    for row in rows:
        item = _signal_to_dict(row)
        if len(item["tickers"]) > MAX_LISTED_TICKERS:
            continue
        item["importance_score"], item["event_type"] = compute_importance(
            item["text"], item["tickers"], item["contracts"], item["author_score"]
        )
        items.append(item)

    if mode == "important":
        items = [i for i in items if i["importance_score"] >= important_min]
        items.sort(
            key=lambda i: (i["importance_score"], i["cast_timestamp"] or i["created_at"] or ""),
            reverse=True,
        )
    return {"items": items}
