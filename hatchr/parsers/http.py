"""Shared GET/POST-with-retry used by every provider client."""

import asyncio
from typing import Any

import httpx
from loguru import logger

from hatchr.parsers.exceptions import SourceUnavailable
from hatchr.parsers.rate_limiter import RateLimiter

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class ProviderApiError(SourceUnavailable):
    """Non-recoverable provider error (HTTP status, bad JSON, retries exhausted)."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.status_code = status_code


async def request_json(
    client: httpx.AsyncClient,
    rate_limiter: RateLimiter,
    method: str,
    url: str,
    *,
    provider: str,
    max_retries: int = MAX_RETRIES,
    retry_delays: list[float] = RETRY_DELAYS,
    allow_404: bool = False,
    **kwargs: Any,
) -> Any:
    """Rate-limited request returning decoded JSON.

    Retries on 429, 5xx, timeouts and connect errors. Returns None for 404
    when ``allow_404`` is set. Everything else raises ProviderApiError.
    """
    for attempt in range(max_retries + 1):
        delay = retry_delays[min(attempt, len(retry_delays) - 1)]
        await rate_limiter.acquire()
        try:
            response = await client.request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            if attempt < max_retries:
                logger.debug(f"[{provider}] {type(e).__name__}, retrying in {delay}s")
                await asyncio.sleep(delay)
                continue
            raise ProviderApiError(
                provider, f"request failed after {max_retries + 1} attempts: {type(e).__name__}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderApiError(provider, f"{type(e).__name__}: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            if attempt < max_retries:
                retry_after = response.headers.get("Retry-After")
                if retry_after and retry_after.isdigit():
                    delay = max(float(retry_after), delay)
                logger.debug(f"[{provider}] HTTP {response.status_code}, retrying in {delay}s")
                await asyncio.sleep(delay)
                continue
            raise ProviderApiError(
                provider, f"HTTP {response.status_code}", status_code=response.status_code
            )
        if response.status_code == 404 and allow_404:
            return None
        if response.status_code >= 400:
            raise ProviderApiError(
                provider,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderApiError(provider, "invalid JSON body") from e

    raise ProviderApiError(provider, "retries exhausted")
