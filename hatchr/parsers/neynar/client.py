import httpx
from loguru import logger
from pydantic import ValidationError

from hatchr.parsers.exceptions import ConfigMissing
from hatchr.parsers.http import ProviderApiError, request_json
from hatchr.parsers.neynar.models import (
    NeynarCast,
    NeynarCastSearchResponse,
    NeynarFollowersResponse,
    NeynarUser,
    NeynarUserResponse,
    NeynarUsersResponse,
)
from hatchr.parsers.rate_limiter import RateLimiter

BASE_URL = "https://api.neynar.com"
FOLLOWERS_PAGE_MAX = 100


class NeynarClient:
    """Async client for Neynar's Farcaster API (header ``x-api-key``)."""

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 5.0,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={
                "Accept": "application/json",
                "x-api-key": api_key,
                "x-neynar-experimental": "true",
            },
        )
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def _get(self, path: str, params: dict, *, allow_404: bool = False):
        if not self._api_key:
            raise ConfigMissing("neynar_api_key")
        return await request_json(
            self._client, self._rate_limiter, "GET", path,
            provider="NEYNAR", params=params, allow_404=allow_404,
        )

    async def get_user_by_fid(self, fid: int) -> NeynarUser | None:
        data = await self._get("/v2/farcaster/user/bulk", {"fids": str(fid)})
        try:
            users = NeynarUsersResponse.model_validate(data or {}).users
        except ValidationError as e:
            raise ProviderApiError("NEYNAR", f"unexpected user payload: {e}") from e
        return users[0] if users else None

    async def get_user_by_username(self, username: str) -> NeynarUser | None:
        data = await self._get(
            "/v2/farcaster/user/by_username",
            {"username": username.lstrip("@")},
            allow_404=True,
        )
        if not data:
            return None
        try:
            return NeynarUserResponse.model_validate(data).user
        except ValidationError as e:
            raise ProviderApiError("NEYNAR", f"unexpected user payload: {e}") from e

    async def get_users_by_address(self, address: str) -> list[NeynarUser]:
        """Users with ``address`` as custody or verified address."""
        address = address.lower()
        data = await self._get(
            "/v2/farcaster/user/bulk-by-address",
            {"addresses": address},
            allow_404=True,
        )
        if not isinstance(data, dict):
            return []
        raw_users = next((v for k, v in data.items() if k.lower() == address), [])
        users: list[NeynarUser] = []
        for raw in raw_users or []:
            try:
                users.append(NeynarUser.model_validate(raw))
            except ValidationError:
                logger.debug(f"[NEYNAR] skipping malformed user for {address}")
        return users

    async def get_followers(self, fid: int, limit: int = 150) -> list[NeynarUser]:
        """Up to ``limit`` followers, newest first, paged 100 at a time."""
        out: list[NeynarUser] = []
        cursor: str | None = None
        while len(out) < limit:
            params = {"fid": str(fid), "limit": str(min(FOLLOWERS_PAGE_MAX, limit - len(out)))}
            if cursor:
                params["cursor"] = cursor
            data = await self._get("/v2/farcaster/followers", params)
            try:
                page = NeynarFollowersResponse.model_validate(data or {})
            except ValidationError as e:
                raise ProviderApiError("NEYNAR", f"unexpected followers payload: {e}") from e
            out.extend(f.user for f in page.users)
            cursor = page.next.cursor if page.next else None
            if not page.users or not cursor:
                break
        return out[:limit]

    async def search_casts(
        self, query: str, *, author_fid: int | None = None, limit: int = 25
    ) -> list[NeynarCast]:
        params = {"q": query, "limit": str(limit)}
        if author_fid is not None:
            params["author_fid"] = str(author_fid)
        data = await self._get("/v2/farcaster/cast/search", params)
        try:
            return NeynarCastSearchResponse.model_validate(data or {}).result.casts
        except ValidationError as e:
            raise ProviderApiError("NEYNAR", f"unexpected search payload: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
