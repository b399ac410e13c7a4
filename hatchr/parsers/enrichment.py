"""Per-token enrichment: socials, market snapshot and creator identity.

Each step returns a value or None and records a short error string on the
result instead of raising. Tokens are enriched concurrently under a bounded
semaphore. Steps inside one token run in order because creator resolution
reads the Farcaster URL that scraping may have just filled in.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable

from loguru import logger

from hatchr.parsers.basescan.client import BasescanClient
from hatchr.parsers.dexscreener.client import DexScreenerClient
from hatchr.parsers.exceptions import HatchrError
from hatchr.parsers.neynar.client import NeynarClient
from hatchr.parsers.social_scrape import SocialScraper
from hatchr.parsers.token_types import CreatorIdentity, EnrichedToken, MarketSnapshot, Token

MarketSink = Callable[[MarketSnapshot], Awaitable[None]]

_FID_URL_RE = re.compile(r"(?:/~/profiles/|farcaster\.xyz/profiles/)(\d+)", re.I)
_USERNAME_URL_RE = re.compile(r"(?:warpcast\.com|farcaster\.xyz)/([A-Za-z0-9_.-]+)", re.I)
_RESERVED_PATHS = {"~", "profiles", "channel", "settings"}


def parse_farcaster_url(url: str | None) -> tuple[int | None, str | None]:
    """Return (fid, username) embedded in a Warpcast/Farcaster profile URL."""
    if not url:
        return None, None
    match = _FID_URL_RE.search(url)
    if match:
        return int(match.group(1)), None
    match = _USERNAME_URL_RE.search(url)
    if match and match.group(1).lower() not in _RESERVED_PATHS:
        return None, match.group(1).lower()
    return None, None


class Enricher:
    def __init__(
        self,
        *,
        scraper: SocialScraper | None = None,
        dexscreener: DexScreenerClient | None = None,
        basescan: BasescanClient | None = None,
        neynar: NeynarClient | None = None,
        market_sink: MarketSink | None = None,
        concurrency: int = 5,
    ) -> None:
        self._scraper = scraper
        self._dexscreener = dexscreener
        self._basescan = basescan
        self._neynar = neynar
        self._market_sink = market_sink
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def enrich_many(self, tokens: list[Token]) -> list[EnrichedToken]:
        """Enrich every token; output order matches input order."""

        async def _bounded(token: Token) -> EnrichedToken:
            async with self._semaphore:
                return await self.enrich(token)

        results = await asyncio.gather(*(_bounded(t) for t in tokens))
        failed = sum(1 for r in results if r.errors)
        logger.info(f"[ENRICH] {len(results)} tokens enriched ({failed} with partial errors)")
        return list(results)

    async def enrich(self, token: Token) -> EnrichedToken:
        result = EnrichedToken(token=token)

        patch = await self._scrape_socials(result)
        if patch:
            result.token = result.token.fill_missing(**patch)

        result.market = await self._fetch_market(result)

        identity = await self._resolve_creator(result)
        if identity is not None:
            result.identity = identity
            result.token = result.token.fill_missing(
                creator_fid=identity.fid, creator_username=identity.username
            )
        return result

    # --- steps ---

    async def _scrape_socials(self, result: EnrichedToken) -> dict[str, str] | None:
        if self._scraper is None or not result.token.source_url:
            return None
        try:
            return await self._scraper.scrape(result.token.source_url)
        except Exception as e:
            self._record(result, "social_scrape", e)
            return None

    async def _fetch_market(self, result: EnrichedToken) -> MarketSnapshot | None:
        if self._dexscreener is None:
            return None
        address = result.token.token_address
        try:
            snapshot = await self._dexscreener.get_market(address)
        except Exception as e:
            self._record(result, "market", e)
            return None
        if snapshot is None or not snapshot.has_any:
            return None

        if self._market_sink is not None:
            try:
                await self._market_sink(snapshot)
            except Exception as e:
                self._record(result, "market_persist", e)
        return snapshot

    async def _resolve_creator(self, result: EnrichedToken) -> CreatorIdentity | None:
        token = result.token
        if token.creator_fid is not None:
            return CreatorIdentity(fid=token.creator_fid, username=token.creator_username)

        if not token.creator_address and self._basescan is not None and self._basescan.enabled:
            try:
                creator = await self._basescan.get_contract_creator(token.token_address)
            except Exception as e:
                self._record(result, "contract_creator", e)
                creator = None
            if creator:
                result.token = token = token.fill_missing(creator_address=creator)

        fid, username = parse_farcaster_url(token.farcaster_url)
        if fid is not None:
            return CreatorIdentity(fid=fid, username=token.creator_username, method="url_fid")

        if self._neynar is None or not self._neynar.enabled:
            return None

        if username:
            try:
                user = await self._neynar.get_user_by_username(username)
            except Exception as e:
                self._record(result, "identity_username", e)
                user = None
            if user is not None:
                return CreatorIdentity(fid=user.fid, username=user.username, method="url_username")

        if token.creator_address:
            try:
                users = await self._neynar.get_users_by_address(token.creator_address)
            except Exception as e:
                self._record(result, "identity_address", e)
                users = []
            if users:
                return CreatorIdentity(fid=users[0].fid, username=users[0].username, method="address")

        return None

    @staticmethod
    def _record(result: EnrichedToken, step: str, error: Exception) -> None:
        result.errors.append(step)
        level = "debug" if isinstance(error, HatchrError) else "warning"
        logger.log(
            level.upper(),
            f"[ENRICH] {step} failed for {result.token.token_address}: "
            f"{type(error).__name__}: {error}",
        )
