import httpx
from pydantic import BaseModel, Field, ValidationError

from hatchr.parsers.exceptions import ConfigMissing
from hatchr.parsers.http import ProviderApiError, request_json
from hatchr.parsers.rate_limiter import RateLimiter
from hatchr.parsers.token_types import is_hex_address, normalize_address

BASE_URL = "https://api.basescan.org"


class ContractCreation(BaseModel):
    contractAddress: str = ""
    contractCreator: str = ""
    txHash: str | None = None

    model_config = {"extra": "ignore"}


class ContractCreationResponse(BaseModel):
    status: str = "0"
    message: str = ""
    result: list[ContractCreation] | str = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class BasescanClient:
    """Block explorer lookups on Base (Etherscan-compatible API)."""

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 4.0,
        timeout: float = 8.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(base_url=BASE_URL, timeout=timeout)
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def get_contract_creator(self, token_address: str) -> str | None:
        """Deployer address of a contract, lower-cased, or None if unknown."""
        if not self._api_key:
            raise ConfigMissing("basescan_api_key")
        data = await request_json(
            self._client, self._rate_limiter, "GET", "/api",
            provider="BASESCAN",
            params={
                "module": "contract",
                "action": "getcontractcreation",
                "contractaddresses": token_address,
                "apikey": self._api_key,
            },
        )
        try:
            parsed = ContractCreationResponse.model_validate(data or {})
        except ValidationError as e:
            raise ProviderApiError("BASESCAN", f"unexpected payload: {e}") from e
        # status "0" with a string result is how the API reports "not found"/errors
        if parsed.status != "1" or isinstance(parsed.result, str) or not parsed.result:
            return None
        creator = normalize_address(parsed.result[0].contractCreator)
        return creator if is_hex_address(creator) else None

    async def close(self) -> None:
        await self._client.aclose()
