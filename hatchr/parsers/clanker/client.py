import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlparse

import httpx
from loguru import logger
from pydantic import ValidationError

from hatchr.parsers.clanker.models import ClankerPage, ClankerToken
from hatchr.parsers.exceptions import SourceUnavailable
from hatchr.parsers.http import ProviderApiError, request_json
from hatchr.parsers.rate_limiter import RateLimiter
from hatchr.parsers.token_types import (
    Token,
    TokenSource,
    normalize_address,
    normalize_image_url,
    parse_timestamp,
)

BASE_URL = "https://www.clanker.world"
BASE_CHAIN_ID = 8453
PAGE_LIMIT = 20
MAX_CONSECUTIVE_FAILS = 2
FAILED_PAGE_PAUSE = 0.3

_FARCASTER_HOSTS = ("warpcast.com", "farcaster.xyz")
_X_HOSTS = ("x.com", "twitter.com")
_TELEGRAM_HOSTS = ("t.me", "telegram.me", "telegram.org")
_OTHER_SOCIAL_HOSTS = ("instagram.com", "tiktok.com")


def collect_urls(obj: Any, depth: int = 0, acc: list[str] | None = None) -> list[str]:
    """Walk nested metadata and collect every http(s) string, depth-first."""
    if acc is None:
        acc = []
    if obj is None or depth > 6:
        return acc
    if isinstance(obj, str):
        s = obj.strip()
        if s.startswith(("http://", "https://")):
            acc.append(s)
    elif isinstance(obj, list):
        for item in obj:
            collect_urls(item, depth + 1, acc)
    elif isinstance(obj, dict):
        for value in obj.values():
            collect_urls(value, depth + 1, acc)
    return acc


def classify_links(urls: list[str]) -> dict[str, str]:
    """Pick the first X, Telegram and website link by host.

    Farcaster links in metadata belong to the creator, not the token, so they
    are skipped here.
    """
    found: dict[str, str] = {}
    for url in urls:
        host = (urlparse(url).hostname or "").lower().removeprefix("www.")
        if not host:
            continue
        if host in _FARCASTER_HOSTS or host.endswith(".farcaster.xyz"):
            continue
        if host in _X_HOSTS:
            found.setdefault("x_url", url)
        elif host in _TELEGRAM_HOSTS:
            found.setdefault("telegram_url", url)
        elif host in _OTHER_SOCIAL_HOSTS:
            continue
        else:
            found.setdefault("website_url", url)
    return found


class ClankerClient:
    """Source adapter for the Clanker token list (Base chain launches)."""

    source = TokenSource.CLANKER

    def __init__(
        self,
        *,
        window_hours: int = 12,
        max_pages: int = 15,
        blocked_users: list[str] | None = None,
        timeout: float = 8.0,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or RateLimiter(2.0)
        self._window = timedelta(hours=window_hours)
        self._max_pages = max_pages
        self._blocked = {u.lower() for u in (blocked_users or [])}

    async def fetch_raw(self, now: datetime | None = None) -> list[ClankerPage]:
        """Walk the cursor-paginated list back to the start of the window."""
        now = now or datetime.now(UTC)
        start = int((now - self._window).timestamp())
        pages: list[ClankerPage] = []
        cursor: str | None = None
        consecutive_fails = 0
        last_error: Exception | None = None

        for _ in range(self._max_pages):
            params = {
                "limit": str(PAGE_LIMIT),
                "sort": "desc",
                "startDate": str(start),
                "includeUser": "true",
            }
            if cursor:
                params["cursor"] = cursor
            try:
                data = await request_json(
                    self._client, self._rate_limiter, "GET", "/api/tokens",
                    provider="CLANKER", params=params,
                )
                page = ClankerPage.model_validate(data)
            except (ProviderApiError, ValidationError) as e:
                consecutive_fails += 1
                last_error = e
                logger.debug(f"[CLANKER] page failed ({consecutive_fails}): {e}")
                if consecutive_fails >= MAX_CONSECUTIVE_FAILS:
                    break
                await asyncio.sleep(FAILED_PAGE_PAUSE)
                continue

            consecutive_fails = 0
            if not page.data:
                break
            pages.append(page)
            cursor = page.cursor
            if not cursor:
                break

        if not pages and last_error is not None:
            raise SourceUnavailable(f"[CLANKER] no page fetched: {last_error}")
        return pages

    def normalize(self, pages: list[ClankerPage], now: datetime | None = None) -> list[Token]:
        now = now or datetime.now(UTC)
        tokens: list[Token] = []
        for page in pages:
            for raw in page.data:
                token = self._to_token(raw)
                if token is None:
                    continue
                if token.first_seen_at and now - token.first_seen_at > self._window:
                    continue
                tokens.append(token)
        return tokens

    async def fetch_tokens(self) -> list[Token]:
        try:
            pages = await self.fetch_raw()
        except SourceUnavailable as e:
            logger.warning(f"[CLANKER] source unavailable: {e}")
            return []
        tokens = self.normalize(pages)
        logger.info(f"[CLANKER] {len(tokens)} tokens from {len(pages)} pages")
        return tokens

    def _to_token(self, raw: ClankerToken) -> Token | None:
        if raw.chain_id and raw.chain_id != BASE_CHAIN_ID:
            return None
        address = normalize_address(raw.contract_address)
        if not address:
            return None

        username = raw.related.user.handle_name if raw.related and raw.related.user else ""
        if username.lower() in self._blocked:
            return None

        fid = raw.creator_fid
        if username:
            farcaster_url = f"https://warpcast.com/{username}"
        elif fid is not None:
            farcaster_url = f"https://farcaster.xyz/profiles/{fid}"
        else:
            farcaster_url = None

        meta = raw.metadata or {}
        image = raw.img_url or raw.image_url or meta.get("image") or meta.get("image_url")
        links = classify_links(collect_urls(meta))

        return Token(
            token_address=address,
            name=(raw.name or "").strip(),
            symbol=(raw.symbol or "").strip(),
            source=self.source,
            source_url=f"{BASE_URL}/clanker/{address}",
            first_seen_at=parse_timestamp(raw.created_at or raw.deployed_at or raw.last_indexed),
            website_url=links.get("website_url"),
            x_url=links.get("x_url"),
            farcaster_url=farcaster_url,
            telegram_url=links.get("telegram_url"),
            image_url=normalize_image_url(image if isinstance(image, str) else None),
            creator_fid=fid,
            creator_username=username or None,
        )

    async def close(self) -> None:
        await self._client.aclose()
