from datetime import UTC, datetime, timedelta

import httpx
from loguru import logger
from pydantic import ValidationError

from hatchr.parsers.exceptions import ConfigMissing, SourceUnavailable
from hatchr.parsers.http import ProviderApiError, request_json
from hatchr.parsers.rate_limiter import RateLimiter
from hatchr.parsers.token_types import (
    Token,
    TokenSource,
    normalize_address,
    normalize_image_url,
    parse_timestamp,
)
from hatchr.parsers.zora.models import ZoraCoin, ZoraExplorePage

BASE_URL = "https://api-sdk.zora.engineering"
BASE_CHAIN_ID = 8453
PAGE_SIZE = 50


class ZoraClient:
    """Source adapter for Zora's NEW_CREATORS explore list. Requires an API key."""

    source = TokenSource.ZORA

    def __init__(
        self,
        api_key: str,
        *,
        window_hours: int = 12,
        max_pages: int = 20,
        timeout: float = 10.0,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json", "api-key": api_key},
        )
        self._rate_limiter = rate_limiter or RateLimiter(2.0)
        self._window = timedelta(hours=window_hours)
        self._max_pages = max_pages

    async def fetch_raw(self) -> list[ZoraExplorePage]:
        if not self._api_key:
            raise ConfigMissing("zora_api_key")

        pages: list[ZoraExplorePage] = []
        cursor: str | None = None
        for _ in range(self._max_pages):
            params = {"listType": "NEW_CREATORS", "count": str(PAGE_SIZE)}
            if cursor:
                params["after"] = cursor
            try:
                data = await request_json(
                    self._client, self._rate_limiter, "GET", "/explore",
                    provider="ZORA", params=params,
                )
                page = ZoraExplorePage.model_validate(data or {})
            except ValidationError as e:
                raise SourceUnavailable(f"[ZORA] unexpected payload: {e}") from e
            except ProviderApiError:
                if pages:
                    # keep what we have; later pages are older anyway
                    break
                raise

            if not page.exploreList.edges:
                break
            pages.append(page)
            info = page.exploreList.pageInfo
            cursor = info.endCursor
            if not info.hasNextPage or not cursor:
                break
        return pages

    def normalize(self, pages: list[ZoraExplorePage], now: datetime | None = None) -> list[Token]:
        now = now or datetime.now(UTC)
        tokens: list[Token] = []
        for page in pages:
            for edge in page.exploreList.edges:
                if edge.node is None:
                    continue
                token = self._to_token(edge.node)
                if token is None:
                    continue
                if token.first_seen_at and now - token.first_seen_at > self._window:
                    continue
                tokens.append(token)
        return tokens

    async def fetch_tokens(self) -> list[Token]:
        try:
            pages = await self.fetch_raw()
        except ConfigMissing as e:
            logger.info(f"[ZORA] disabled: {e.setting} not set")
            return []
        except SourceUnavailable as e:
            logger.warning(f"[ZORA] source unavailable: {e}")
            return []
        tokens = self.normalize(pages)
        logger.info(f"[ZORA] {len(tokens)} tokens from {len(pages)} pages")
        return tokens

    def _to_token(self, coin: ZoraCoin) -> Token | None:
        if coin.chainId and coin.chainId != BASE_CHAIN_ID:
            return None
        address = normalize_address(coin.address)
        if not address:
            return None

        farcaster_url = x_url = None
        username = None
        profile = coin.creatorProfile
        if profile and profile.socialAccounts:
            social = profile.socialAccounts
            if social.farcaster and social.farcaster.username:
                username = social.farcaster.username.lstrip("@")
                farcaster_url = f"https://warpcast.com/{username}"
            if social.twitter and social.twitter.username:
                x_url = f"https://x.com/{social.twitter.username.lstrip('@')}"

        image = coin.imageUrl or (coin.mediaContent.url if coin.mediaContent else None)
        if not image and profile and profile.avatar:
            avatar = profile.avatar
            image = (avatar.previewImage.url if avatar.previewImage else None) or avatar.url

        creator = normalize_address(coin.creatorAddress)

        return Token(
            token_address=address,
            name=(coin.name or "").strip(),
            symbol=(coin.symbol or "").strip(),
            source=self.source,
            source_url=f"https://zora.co/coin/base:{address}",
            # createdAt comes without a zone and is UTC
            first_seen_at=parse_timestamp(coin.createdAt),
            x_url=x_url,
            farcaster_url=farcaster_url,
            image_url=normalize_image_url(image),
            creator_address=creator or None,
            creator_username=username,
        )

    async def close(self) -> None:
        await self._client.aclose()
