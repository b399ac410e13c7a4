"""Tests for per-token enrichment and creator identity resolution."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from hatchr.parsers.enrichment import Enricher, parse_farcaster_url
from hatchr.parsers.exceptions import ConfigMissing, PersistenceFailure
from hatchr.parsers.http import ProviderApiError
from hatchr.parsers.neynar.models import NeynarUser
from hatchr.parsers.token_types import MarketSnapshot, Token

ADDR = "0x" + "ab" * 20
CREATOR = "0x" + "cd" * 20


def _make_token(**kwargs) -> Token:
    defaults = {"token_address": ADDR, "name": "Cat", "symbol": "CAT", "source_url": "https://src/cat"}
    defaults.update(kwargs)
    return Token(**defaults)


def _neynar(**methods) -> MagicMock:
    neynar = MagicMock()
    neynar.enabled = True
    neynar.get_user_by_username = AsyncMock(return_value=None)
    neynar.get_users_by_address = AsyncMock(return_value=[])
    for name, mock in methods.items():
        setattr(neynar, name, mock)
    return neynar


class TestParseFarcasterUrl:
    def test_fid_profile(self):
        assert parse_farcaster_url("https://warpcast.com/~/profiles/1234") == (1234, None)
        assert parse_farcaster_url("https://farcaster.xyz/profiles/55") == (55, None)

    def test_username(self):
        assert parse_farcaster_url("https://warpcast.com/CatDev") == (None, "catdev")

    def test_reserved_path(self):
        assert parse_farcaster_url("https://warpcast.com/~/channel/base") == (None, None)

    def test_empty(self):
        assert parse_farcaster_url(None) == (None, None)


@pytest.mark.asyncio
async def test_source_fid_short_circuits():
    neynar = _neynar()
    enricher = Enricher(neynar=neynar)
    result = await enricher.enrich(_make_token(creator_fid=9, creator_username="dev"))
    assert result.identity.fid == 9
    assert result.identity.method == "source"
    neynar.get_user_by_username.assert_not_awaited()


@pytest.mark.asyncio
async def test_scraped_fid_url_resolves_without_neynar():
    scraper = MagicMock()
    scraper.scrape = AsyncMock(return_value={
        "farcaster_url": "https://warpcast.com/~/profiles/321",
        "x_url": "https://x.com/scraped",
    })
    result = await Enricher(scraper=scraper).enrich(_make_token(x_url="https://x.com/orig"))
    assert result.identity.fid == 321
    assert result.identity.method == "url_fid"
    assert result.token.creator_fid == 321
    # adapter value is kept, scraper only fills gaps
    assert result.token.x_url == "https://x.com/orig"
    assert result.token.farcaster_url == "https://warpcast.com/~/profiles/321"


@pytest.mark.asyncio
async def test_username_lookup_before_address():
    neynar = _neynar(
        get_user_by_username=AsyncMock(return_value=NeynarUser(fid=77, username="catdev")),
    )
    token = _make_token(farcaster_url="https://warpcast.com/catdev", creator_address=CREATOR)
    result = await Enricher(neynar=neynar).enrich(token)
    assert result.identity.fid == 77
    assert result.identity.method == "url_username"
    neynar.get_users_by_address.assert_not_awaited()


@pytest.mark.asyncio
async def test_address_lookup_uses_basescan_creator():
    basescan = MagicMock()
    basescan.enabled = True
    basescan.get_contract_creator = AsyncMock(return_value=CREATOR)
    neynar = _neynar(
        get_users_by_address=AsyncMock(return_value=[NeynarUser(fid=5, username="deployer")]),
    )
    result = await Enricher(basescan=basescan, neynar=neynar).enrich(_make_token())
    assert result.token.creator_address == CREATOR
    assert result.identity.fid == 5
    assert result.identity.method == "address"
    neynar.get_users_by_address.assert_awaited_once_with(CREATOR)


@pytest.mark.asyncio
async def test_no_identity_when_nothing_matches():
    neynar = _neynar()
    result = await Enricher(neynar=neynar).enrich(_make_token(creator_address=CREATOR))
    assert result.identity is None
    assert result.errors == []


@pytest.mark.asyncio
async def test_step_errors_recorded_not_raised():
    scraper = MagicMock()
    scraper.scrape = AsyncMock(side_effect=RuntimeError("boom"))
    dex = MagicMock()
    dex.get_market = AsyncMock(side_effect=ProviderApiError("DEXSCREENER", "HTTP 500", 500))
    neynar = _neynar(get_users_by_address=AsyncMock(side_effect=ConfigMissing("neynar_api_key")))
    enricher = Enricher(scraper=scraper, dexscreener=dex, neynar=neynar)

    result = await enricher.enrich(_make_token(creator_address=CREATOR))
    assert result.errors == ["social_scrape", "market", "identity_address"]
    assert result.market is None
    assert result.identity is None


@pytest.mark.asyncio
async def test_market_snapshot_persisted_via_sink():
    snap = MarketSnapshot(token_address=ADDR, volume_24h_usd=2500.0)
    dex = MagicMock()
    dex.get_market = AsyncMock(return_value=snap)
    sink = AsyncMock()
    result = await Enricher(dexscreener=dex, market_sink=sink).enrich(_make_token())
    assert result.volume_24h_usd == 2500.0
    sink.assert_awaited_once_with(snap)


@pytest.mark.asyncio
async def test_sink_failure_keeps_snapshot():
    snap = MarketSnapshot(token_address=ADDR, price_usd=0.1)
    dex = MagicMock()
    dex.get_market = AsyncMock(return_value=snap)
    sink = AsyncMock(side_effect=PersistenceFailure("db"))
    result = await Enricher(dexscreener=dex, market_sink=sink).enrich(_make_token())
    assert result.market == snap
    assert result.errors == ["market_persist"]


@pytest.mark.asyncio
async def test_empty_snapshot_dropped():
    dex = MagicMock()
    dex.get_market = AsyncMock(return_value=MarketSnapshot(token_address=ADDR))
    sink = AsyncMock()
    result = await Enricher(dexscreener=dex, market_sink=sink).enrich(_make_token())
    assert result.market is None
    sink.assert_not_awaited()


@pytest.mark.asyncio
async def test_enrich_many_keeps_order():
    tokens = [_make_token(token_address=f"0x{i:040x}") for i in range(6)]
    results = await Enricher(concurrency=2).enrich_many(tokens)
    assert [r.token.token_address for r in results] == [t.token_address for t in tokens]
