"""Farcaster cast intake from Neynar webhooks.

Signed casts from well-scored authors that mention a ticker or a contract
are stored as social signals. Everything else is accepted and dropped with a
skip reason so the webhook sender never retries it.
"""

import hashlib
import hmac
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from loguru import logger

from hatchr.parsers.exceptions import ConfigMissing, SignatureInvalid
from hatchr.parsers.token_types import parse_timestamp

TICKER_RE = re.compile(r"\$[A-Za-z0-9_]{2,12}\b")
CONTRACT_RE = re.compile(r"\b0x[a-fA-F0-9]{40}\b")
LINK_RE = re.compile(
    r"(https?://|warpcast\.com|zora\.co|basescan\.org|base\.org|github\.com|mirror\.xyz)", re.I
)
BANTER_RE = re.compile(r"\b(gm|gn|wen|lol|lmao|ape|pump|send|moon|wagmi|ngmi)\b", re.I)
_LETTER_RE = re.compile(r"[a-zA-Zа-яА-Я]")
_NUMERIC_NOISE_RE = re.compile(r"^[\d\s.,+xXkKmM%]+$")
_SYMBOL_NOISE_RE = re.compile(r"^[\d\s.,+xXkKmM%$€£#@!?:;'\"()\[\]{}<>/_\-*=&|~^`\W]*$")

EVENT_PATTERNS: tuple[tuple[str, re.Pattern, float], ...] = (
    ("listing", re.compile(r"\b(listing|listed|cex|binance|coinbase|bybit|okx|kraken)\b", re.I), 3),
    ("airdrop", re.compile(r"\b(airdrop|claim|snapshot|allowlist|whitelist)\b", re.I), 3),
    ("launch", re.compile(r"\b(launch|live|mainnet|testnet|mint|minting)\b", re.I), 2),
    ("partnership", re.compile(r"\b(partnership|partner|integration|integrated)\b", re.I), 2),
    ("security", re.compile(r"\b(exploit|hack|drained|vulnerability|incident|security)\b", re.I), 4),
    ("migration", re.compile(r"\b(migration|migrate|bridge|bridging)\b", re.I), 2),
    ("tokenomics", re.compile(r"\b(tokenomics|supply|emissions|vesting)\b", re.I), 2),
)

SKIP_NO_CAST_HASH = "no_cast_hash"
SKIP_LOW_SCORE = "low_score"
SKIP_NO_MENTIONS = "no_token_mentions"
SKIP_TOO_MANY_TICKERS = "too_many_tickers"
SKIP_BANTER = "banter"
SKIP_PURE_SHILL = "pure_shill"
SKIP_AUTHOR_COOLDOWN = "author_cooldown"
SKIP_TICKER_COOLDOWN = "ticker_cooldown"
SKIP_DUPLICATE = "duplicate"


def verify_signature(raw_body: bytes, signature: str | None, secret: str) -> None:
    """Raise SignatureInvalid unless ``signature`` is the HMAC-SHA512 hex of the body."""
    if not secret:
        raise ConfigMissing("neynar_webhook_secret")
    if not signature:
        raise SignatureInvalid("X-Neynar-Signature header missing")
    expected = hmac.new(secret.encode(), raw_body, hashlib.sha512).hexdigest()
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise SignatureInvalid("signature mismatch")


def extract_tickers(text: str) -> list[str]:
    return list(dict.fromkeys(m.upper() for m in TICKER_RE.findall(text or "")))


def extract_contracts(text: str) -> list[str]:
    return list(dict.fromkeys(m.lower() for m in CONTRACT_RE.findall(text or "")))


def is_banter(text: str) -> bool:
    t = (text or "").lower()
    return len(t) < 140 and BANTER_RE.search(t) is not None


def is_pure_shill(text: str, tickers: Sequence[str], contracts: Sequence[str]) -> bool:
    """A lone ticker padded with numbers, emoji or punctuation."""
    if contracts:
        return False
    t = (text or "").strip()
    if not t:
        return True
    if len(tickers) != 1:
        return False

    ticker = tickers[0]
    rest = re.sub(re.escape(ticker), "", t, flags=re.I).strip()
    if _LETTER_RE.search(rest):
        return False
    if len(t) <= 60:
        return True
    if _SYMBOL_NOISE_RE.match(rest) or _NUMERIC_NOISE_RE.match(rest):
        return True
    return len(t) <= len(ticker) + 6


def compute_importance(
    text: str | None,
    tickers: Sequence[str] | None,
    contracts: Sequence[str] | None,
    author_score: float | None,
) -> tuple[float, str | None]:
    """Heuristic importance in [-5, 10] and the first matched event type."""
    t = (text or "").strip()
    score = 0.0
    event_type = None

    if tickers and contracts:
        score += 2
    if LINK_RE.search(t):
        score += 2
    for name, pattern, boost in EVENT_PATTERNS:
        if pattern.search(t):
            score += boost
            event_type = event_type or name
    if len(t) < 160 and BANTER_RE.search(t):
        score -= 3
    if author_score is not None:
        if author_score >= 0.95:
            score += 1
        elif author_score >= 0.9:
            score += 0.5

    return max(-5.0, min(10.0, score)), event_type


@dataclass
class SocialSignalCandidate:
    cast_hash: str
    text: str
    cast_timestamp: datetime | None
    warpcast_url: str | None
    author_fid: int | None
    author_username: str | None
    author_display_name: str | None
    author_pfp_url: str | None
    author_score: float | None
    tickers: list[str] = field(default_factory=list)
    contracts: list[str] = field(default_factory=list)
    raw: dict | None = None


@dataclass
class CastDecision:
    candidate: SocialSignalCandidate | None = None
    skipped: str | None = None

    @property
    def accepted(self) -> bool:
        return self.candidate is not None and self.skipped is None

    def to_dict(self) -> dict:
        if self.skipped:
            return {"ok": True, "skipped": self.skipped}
        return {"ok": True, "cast_hash": self.candidate.cast_hash if self.candidate else None}


def _extract_cast(payload: dict[str, Any]) -> tuple[dict, dict]:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else None
    cast = payload.get("cast") or (data.get("cast") if data else None) or data or payload
    if not isinstance(cast, dict):
        cast = {}
    author = cast.get("author") or (data.get("author") if data else None) or {}
    return cast, author if isinstance(author, dict) else {}


def evaluate_cast(
    payload: dict[str, Any],
    *,
    min_author_score: float = 0.7,
    max_tickers: int = 5,
) -> CastDecision:
    """Content filters. Cooldowns need the store and are checked by the intake."""
    cast, author = _extract_cast(payload)
    text = cast.get("text") if isinstance(cast.get("text"), str) else ""
    cast_hash = cast.get("hash") or cast.get("cast_hash")
    if not cast_hash or not isinstance(cast_hash, str):
        return CastDecision(skipped=SKIP_NO_CAST_HASH)

    score = author.get("score")
    if isinstance(score, bool) or not isinstance(score, int | float) or score < min_author_score:
        return CastDecision(skipped=SKIP_LOW_SCORE)

    tickers = extract_tickers(text)
    contracts = extract_contracts(text)
    if not tickers and not contracts:
        return CastDecision(skipped=SKIP_NO_MENTIONS)
    if len(tickers) > max_tickers:
        return CastDecision(skipped=SKIP_TOO_MANY_TICKERS)
    if is_banter(text):
        return CastDecision(skipped=SKIP_BANTER)
    if is_pure_shill(text, tickers, contracts):
        return CastDecision(skipped=SKIP_PURE_SHILL)

    fid = author.get("fid")
    username = author.get("username") if isinstance(author.get("username"), str) else None
    return CastDecision(
        candidate=SocialSignalCandidate(
            cast_hash=cast_hash,
            text=text,
            cast_timestamp=parse_timestamp(cast.get("timestamp") or cast.get("created_at")),
            warpcast_url=f"https://warpcast.com/{username}/{cast_hash[:8]}" if username else None,
            author_fid=fid if isinstance(fid, int) and not isinstance(fid, bool) else None,
            author_username=username,
            author_display_name=author.get("display_name") if isinstance(author.get("display_name"), str) else None,
            author_pfp_url=author.get("pfp_url") if isinstance(author.get("pfp_url"), str) else None,
            author_score=float(score),
            tickers=tickers,
            contracts=contracts,
            raw=payload,
        )
    )


class SignalStore(Protocol):
    async def author_on_cooldown(self, author_fid: int, cooldown_sec: int) -> bool: ...

    async def tickers_on_cooldown(self, tickers: Sequence[str], cooldown_sec: int) -> bool: ...

    async def insert(self, candidate: SocialSignalCandidate) -> bool: ...


class SignalIntake:
    def __init__(
        self,
        store: SignalStore,
        *,
        min_author_score: float = 0.7,
        max_tickers: int = 5,
        author_cooldown_sec: int = 120,
        ticker_cooldown_sec: int = 600,
    ) -> None:
        self._store = store
        self._min_author_score = min_author_score
        self._max_tickers = max_tickers
        self._author_cooldown = author_cooldown_sec
        self._ticker_cooldown = ticker_cooldown_sec

    async def ingest(self, payload: dict[str, Any]) -> CastDecision:
        decision = evaluate_cast(
            payload, min_author_score=self._min_author_score, max_tickers=self._max_tickers
        )
        if not decision.accepted:
            logger.debug(f"[WEBHOOK] skipped: {decision.skipped}")
            return decision

        candidate = decision.candidate
        if candidate.author_fid is not None and await self._store.author_on_cooldown(
            candidate.author_fid, self._author_cooldown
        ):
            return CastDecision(skipped=SKIP_AUTHOR_COOLDOWN)
        if candidate.tickers and await self._store.tickers_on_cooldown(
            candidate.tickers, self._ticker_cooldown
        ):
            return CastDecision(skipped=SKIP_TICKER_COOLDOWN)

        if not await self._store.insert(candidate):
            return CastDecision(skipped=SKIP_DUPLICATE)
        logger.info(
            f"[WEBHOOK] stored cast {candidate.cast_hash} by @{candidate.author_username} "
            f"tickers={candidate.tickers} contracts={len(candidate.contracts)}"
        )
        return decision
