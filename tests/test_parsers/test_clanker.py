"""Tests for the Clanker source adapter."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from hatchr.parsers.clanker.client import ClankerClient, classify_links, collect_urls
from hatchr.parsers.clanker.models import ClankerPage
from hatchr.parsers.exceptions import SourceUnavailable
from hatchr.parsers.rate_limiter import RateLimiter
from hatchr.parsers.token_types import TokenSource

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
ADDR = "0x" + "AB" * 20


def _make_raw(**kwargs) -> dict:
    defaults = {
        "contract_address": ADDR,
        "name": " Cat Coin ",
        "symbol": "CAT",
        "chain_id": 8453,
        "created_at": "2024-06-01T10:00:00Z",
        "img_url": "ipfs://bafycat",
        "metadata": {
            "socialMediaUrls": [
                {"platform": "x", "url": "https://twitter.com/catcoin"},
                {"platform": "farcaster", "url": "https://warpcast.com/catdev"},
            ],
            "auditUrls": ["https://catcoin.xyz"],
        },
        "related": {"user": {"fname": "@catdev"}},
        "fids": [1234],
    }
    defaults.update(kwargs)
    return defaults


def _make_client(responses) -> tuple[ClankerClient, MagicMock]:
    http = MagicMock()
    http.request = AsyncMock(side_effect=responses)
    http.aclose = AsyncMock()
    client = ClankerClient(
        window_hours=12,
        blocked_users=["spammer"],
        rate_limiter=RateLimiter(0),
        client=http,
    )
    return client, http


def test_collect_urls_walks_nested_metadata():
    urls = collect_urls({"a": ["https://one.xyz", {"b": "https://two.xyz"}], "c": "not a url"})
    assert urls == ["https://one.xyz", "https://two.xyz"]


def test_classify_links_skips_farcaster():
    links = classify_links([
        "https://warpcast.com/dev",
        "https://x.com/cat",
        "https://t.me/catchat",
        "https://instagram.com/cat",
        "https://cat.xyz",
    ])
    assert links == {
        "x_url": "https://x.com/cat",
        "telegram_url": "https://t.me/catchat",
        "website_url": "https://cat.xyz",
    }


def test_normalize_maps_fields():
    client, _ = _make_client([])
    [token] = client.normalize([ClankerPage.model_validate({"data": [_make_raw()]})], now=NOW)

    assert token.token_address == ADDR.lower()
    assert token.name == "Cat Coin"
    assert token.source == TokenSource.CLANKER
    assert token.source_url == f"https://www.clanker.world/clanker/{ADDR.lower()}"
    assert token.first_seen_at == datetime(2024, 6, 1, 10, 0, tzinfo=UTC)
    assert token.x_url == "https://twitter.com/catcoin"
    assert token.website_url == "https://catcoin.xyz"
    assert token.farcaster_url == "https://warpcast.com/catdev"
    assert token.image_url == "https://ipfs.io/ipfs/bafycat"
    assert token.creator_fid == 1234
    assert token.creator_username == "catdev"


def test_normalize_fid_only_profile_url():
    client, _ = _make_client([])
    raw = _make_raw(related=None, fids=[], fid="99")
    [token] = client.normalize([ClankerPage.model_validate({"data": [raw]})], now=NOW)
    assert token.farcaster_url == "https://farcaster.xyz/profiles/99"
    assert token.creator_fid == 99


def test_normalize_filters_chain_blocked_and_old():
    client, _ = _make_client([])
    page = ClankerPage.model_validate({
        "data": [
            _make_raw(chain_id=1),
            _make_raw(related={"user": {"username": "Spammer"}}),
            _make_raw(created_at="2024-05-30T00:00:00Z"),
            _make_raw(contract_address=None),
        ]
    })
    assert client.normalize([page], now=NOW) == []


@pytest.mark.asyncio
async def test_fetch_raw_follows_cursor():
    client, http = _make_client([
        httpx.Response(200, json={"data": [_make_raw()], "cursor": "next"}),
        httpx.Response(200, json={"data": [_make_raw(contract_address="0x" + "cd" * 20)]}),
    ])
    pages = await client.fetch_raw(now=NOW)

    assert len(pages) == 2
    assert http.request.await_count == 2
    second_params = http.request.await_args_list[1].kwargs["params"]
    assert second_params["cursor"] == "next"
    assert second_params["includeUser"] == "true"


@pytest.mark.asyncio
async def test_fetch_raw_stops_on_empty_page():
    client, http = _make_client([
        httpx.Response(200, json={"data": [], "cursor": "more"}),
    ])
    assert await client.fetch_raw(now=NOW) == []
    assert http.request.await_count == 1


@pytest.mark.asyncio
async def test_fetch_raw_raises_when_nothing_fetched():
    client, _ = _make_client([
        httpx.Response(400, text="bad"),
        httpx.Response(400, text="bad"),
    ])
    with pytest.raises(SourceUnavailable):
        await client.fetch_raw(now=NOW)


@pytest.mark.asyncio
async def test_fetch_tokens_degrades_to_empty():
    client, _ = _make_client([
        httpx.Response(403, text="nope"),
        httpx.Response(403, text="nope"),
    ])
    assert await client.fetch_tokens() == []
