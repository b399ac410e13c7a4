"""Tests for the shared retrying request helper."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from hatchr.parsers.http import ProviderApiError, request_json
from hatchr.parsers.rate_limiter import RateLimiter


def _http(*effects) -> MagicMock:
    http = MagicMock()
    http.request = AsyncMock(side_effect=list(effects))
    return http


@pytest.fixture
def no_sleep():
    with patch("hatchr.parsers.http.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.mark.asyncio
async def test_returns_json():
    http = _http(httpx.Response(200, json={"ok": 1}))
    assert await request_json(http, RateLimiter(0), "GET", "/x", provider="T") == {"ok": 1}


@pytest.mark.asyncio
async def test_retries_on_429_with_retry_after(no_sleep):
    http = _http(
        httpx.Response(429, headers={"Retry-After": "5"}),
        httpx.Response(200, json=[1]),
    )
    assert await request_json(http, RateLimiter(0), "GET", "/x", provider="T") == [1]
    no_sleep.assert_awaited_once_with(5.0)


@pytest.mark.asyncio
async def test_retries_on_timeout_then_gives_up(no_sleep):
    http = _http(*(httpx.ReadTimeout("slow") for _ in range(3)))
    with pytest.raises(ProviderApiError):
        await request_json(http, RateLimiter(0), "GET", "/x", provider="T")
    assert http.request.await_count == 3
    assert no_sleep.await_count == 2


@pytest.mark.asyncio
async def test_server_error_exhausts_retries(no_sleep):
    http = _http(*(httpx.Response(502) for _ in range(3)))
    with pytest.raises(ProviderApiError) as exc:
        await request_json(http, RateLimiter(0), "GET", "/x", provider="T")
    assert exc.value.status_code == 502


@pytest.mark.asyncio
async def test_404_allowed():
    http = _http(httpx.Response(404))
    assert await request_json(http, RateLimiter(0), "GET", "/x", provider="T", allow_404=True) is None


@pytest.mark.asyncio
async def test_client_error_not_retried():
    http = _http(httpx.Response(401, text="no key"))
    with pytest.raises(ProviderApiError) as exc:
        await request_json(http, RateLimiter(0), "GET", "/x", provider="T")
    assert exc.value.status_code == 401
    assert http.request.await_count == 1


@pytest.mark.asyncio
async def test_invalid_json():
    http = _http(httpx.Response(200, text="<html>"))
    with pytest.raises(ProviderApiError, match="invalid JSON"):
        await request_json(http, RateLimiter(0), "GET", "/x", provider="T")
