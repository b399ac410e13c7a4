import httpx
from loguru import logger
from pydantic import ValidationError

from hatchr.parsers.dexscreener.models import DexScreenerPair, DexScreenerTokensResponse
from hatchr.parsers.http import ProviderApiError, request_json
from hatchr.parsers.rate_limiter import RateLimiter
from hatchr.parsers.token_types import MarketSnapshot, to_float

BASE_URL = "https://api.dexscreener.com"
CHAIN_ID = "base"


def pick_pair(pairs: list[DexScreenerPair]) -> DexScreenerPair | None:
    """First pair on Base, else the first pair of any chain."""
    for pair in pairs:
        if pair.chainId == CHAIN_ID:
            return pair
    return pairs[0] if pairs else None


def snapshot_from_pair(token_address: str, pair: DexScreenerPair) -> MarketSnapshot:
    market_cap = pair.marketCap if pair.marketCap is not None else pair.fdv
    return MarketSnapshot(
        token_address=token_address,
        price_usd=to_float(pair.priceUsd),
        market_cap_usd=to_float(market_cap),
        liquidity_usd=to_float(pair.liquidity.usd) if pair.liquidity else None,
        volume_24h_usd=to_float(pair.volume.h24) if pair.volume else None,
    )


class DexScreenerClient:
    """Async REST client for DexScreener public API (no auth required)."""

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 4.0,
        timeout: float = 8.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    async def get_token_pairs(self, token_address: str) -> list[DexScreenerPair]:
        data = await request_json(
            self._client, self._rate_limiter, "GET",
            f"/latest/dex/tokens/{token_address}",
            provider="DEXSCREENER", allow_404=True,
        )
        if not data:
            return []
        try:
            return DexScreenerTokensResponse.model_validate(data).pairs or []
        except ValidationError as e:
            raise ProviderApiError("DEXSCREENER", f"unexpected payload: {e}") from e

    async def get_market(self, token_address: str) -> MarketSnapshot | None:
        """Market snapshot for a token, or None when it has no trading pair."""
        pairs = await self.get_token_pairs(token_address)
        pair = pick_pair(pairs)
        if pair is None:
            logger.debug(f"[DEXSCREENER] no pair for {token_address}")
            return None
        return snapshot_from_pair(token_address, pair)

    async def close(self) -> None:
        await self._client.aclose()
