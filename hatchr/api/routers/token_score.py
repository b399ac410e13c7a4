"""Score query for a creator, optionally in the context of one token."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from hatchr.api.app import limiter
from hatchr.api.dependencies import get_clients
from hatchr.parsers.clients import Clients
from hatchr.parsers.exceptions import ConfigMissing
from hatchr.parsers.token_types import is_hex_address, parse_timestamp

router = APIRouter(prefix="/api/v1", tags=["score"])


@router.get("/token-score")
@limiter.limit("30/minute")
async def token_score(
    request: Request,
    clients: Clients = Depends(get_clients),
    fid: int | None = Query(None, ge=1),
    username: str | None = Query(None, max_length=64),
    address: str | None = Query(None, max_length=42),
    token_created_at: str | None = Query(None, alias="tokenCreatedAt", max_length=64),
    token_name: str | None = Query(None, alias="tokenName", max_length=100),
    token_symbol: str | None = Query(None, alias="tokenSymbol", max_length=32),
) -> dict[str, Any]:
    if fid is None and not username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="fid or username is required",
        )
    if address and not is_hex_address(address.strip().lower()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="address must be a 0x-prefixed 40-hex string",
        )
    if not clients.neynar.enabled:
        raise ConfigMissing("neynar_api_key")

    report = await clients.reputation.score_report(
        fid=fid,
        username=username.lstrip("@") if username else None,
        address=address,
        token_created_at=parse_timestamp(token_created_at),
        token_name=token_name,
        token_symbol=token_symbol,
    )
    return report.to_dict()
