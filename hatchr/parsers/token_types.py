"""Canonical pipeline records.

Adapters translate provider payloads into ``Token`` immediately, so nothing
downstream (merge, enrichment, scoring, alerts) sees a provider-specific shape.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from enum import Enum


class TokenSource(str, Enum):
    CLANKER = "clanker"
    ZORA = "zora"


# Fields filled progressively; once non-empty they never go back to empty.
OPTIONAL_FIELDS = (
    "website_url",
    "x_url",
    "farcaster_url",
    "telegram_url",
    "image_url",
    "creator_address",
    "creator_fid",
    "creator_username",
)


@dataclass(frozen=True)
class Token:
    token_address: str
    name: str = ""
    symbol: str = ""
    source: TokenSource | None = None
    source_url: str = ""
    first_seen_at: datetime | None = None

    website_url: str | None = None
    x_url: str | None = None
    farcaster_url: str | None = None
    telegram_url: str | None = None
    image_url: str | None = None

    creator_address: str | None = None
    creator_fid: int | None = None
    creator_username: str | None = None

    def fill_missing(self, **patch: object) -> Token:
        """Return a copy with only the empty fields taken from ``patch``."""
        updates = {
            key: value
            for key, value in patch.items()
            if not is_empty(value) and is_empty(getattr(self, key))
        }
        return replace(self, **updates) if updates else self

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["source"] = self.source.value if self.source else None
        data["first_seen_at"] = self.first_seen_at.isoformat() if self.first_seen_at else None
        return data


@dataclass(frozen=True)
class MarketSnapshot:
    token_address: str
    price_usd: float | None = None
    market_cap_usd: float | None = None
    liquidity_usd: float | None = None
    volume_24h_usd: float | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_any(self) -> bool:
        return any(
            v is not None
            for v in (self.price_usd, self.market_cap_usd, self.liquidity_usd, self.volume_24h_usd)
        )


@dataclass(frozen=True)
class CreatorIdentity:
    fid: int
    username: str | None = None
    method: str = "source"  # url_fid | url_username | address | source


@dataclass
class EnrichedToken:
    """Outcome of one enrichment pass over a token."""

    token: Token
    market: MarketSnapshot | None = None
    identity: CreatorIdentity | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def volume_24h_usd(self) -> float | None:
        return self.market.volume_24h_usd if self.market else None

    def to_dict(self) -> dict:
        data = self.token.to_dict()
        market = self.market
        data.update(
            price_usd=market.price_usd if market else None,
            market_cap_usd=market.market_cap_usd if market else None,
            liquidity_usd=market.liquidity_usd if market else None,
            volume_24h_usd=market.volume_24h_usd if market else None,
        )
        return data


# --- helpers shared by adapters ---

_HEX_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def is_empty(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def normalize_address(value: object) -> str:
    return str(value or "").strip().lower()


def is_hex_address(value: str) -> bool:
    return bool(_HEX_ADDRESS_RE.match(value))


def parse_timestamp(value: object) -> datetime | None:
    """Parse ISO-8601 strings or unix seconds/millis into tz-aware UTC.

    Naive values are read as UTC. Unparseable input returns None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, int | float):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def normalize_image_url(url: str | None) -> str | None:
    """Rewrite ipfs:// and gateway paths to a public IPFS gateway."""
    if not url:
        return None
    trimmed = url.strip()
    if not trimmed:
        return None
    if trimmed.startswith("ipfs://"):
        return f"https://ipfs.io/ipfs/{trimmed.removeprefix('ipfs://')}"
    match = re.search(r"ipfs/([^/?#]+)", trimmed)
    if match:
        return f"https://ipfs.io/ipfs/{match.group(1)}"
    return trimmed


def to_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number
