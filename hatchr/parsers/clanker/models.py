"""Pydantic models for the Clanker token list API."""

from typing import Any

from pydantic import BaseModel, Field


class ClankerUser(BaseModel):
    fname: str | None = None
    username: str | None = None
    handle: str | None = None
    name: str | None = None

    model_config = {"extra": "ignore"}

    @property
    def handle_name(self) -> str:
        raw = self.fname or self.username or self.handle or self.name or ""
        return raw.lstrip("@").strip()


class ClankerRelated(BaseModel):
    user: ClankerUser | None = None

    model_config = {"extra": "ignore"}


class ClankerToken(BaseModel):
    contract_address: str | None = None
    name: str | None = None
    symbol: str | None = None
    chain_id: int | None = None

    created_at: str | None = None
    deployed_at: str | None = None
    last_indexed: str | None = None

    img_url: str | None = None
    image_url: str | None = None
    metadata: dict[str, Any] | None = None
    related: ClankerRelated | None = None

    fids: list[int | str] = Field(default_factory=list)
    fid: int | str | None = None

    model_config = {"extra": "ignore"}

    @property
    def creator_fid(self) -> int | None:
        raw = self.fids[0] if self.fids else self.fid
        try:
            return int(raw) if raw is not None else None
        except (TypeError, ValueError):
            return None


class ClankerPage(BaseModel):
    data: list[ClankerToken] = Field(default_factory=list)
    cursor: str | None = None

    model_config = {"extra": "ignore"}
