"""Tests for Farcaster cast intake filters and signature checks."""

import hashlib
import hmac

import pytest

from hatchr.parsers.exceptions import ConfigMissing, SignatureInvalid
from hatchr.parsers.social_signals import (
    SKIP_AUTHOR_COOLDOWN,
    SKIP_BANTER,
    SKIP_DUPLICATE,
    SKIP_LOW_SCORE,
    SKIP_NO_CAST_HASH,
    SKIP_NO_MENTIONS,
    SKIP_PURE_SHILL,
    SKIP_TICKER_COOLDOWN,
    SKIP_TOO_MANY_TICKERS,
    SignalIntake,
    compute_importance,
    evaluate_cast,
    extract_contracts,
    extract_tickers,
    is_banter,
    verify_signature,
)

CONTRACT = "0x" + "Ab" * 20
SECRET = "whsec"


def _make_payload(text: str = "", **author) -> dict:
    author_defaults = {"fid": 42, "username": "alice", "display_name": "Alice", "score": 0.92}
    author_defaults.update(author)
    return {
        "type": "cast.created",
        "data": {
            "hash": "0xcasthash1234",
            "text": text or "Launching $CAT on mainnet today, details https://catcoin.xyz",
            "timestamp": "2024-06-01T10:00:00Z",
            "author": author_defaults,
        },
    }


class FakeSignalStore:
    def __init__(self, author_busy=False, tickers_busy=False, duplicate=False):
        self.author_busy = author_busy
        self.tickers_busy = tickers_busy
        self.duplicate = duplicate
        self.inserted = []

    async def author_on_cooldown(self, author_fid, cooldown_sec):
        return self.author_busy

    async def tickers_on_cooldown(self, tickers, cooldown_sec):
        return self.tickers_busy

    async def insert(self, candidate):
        if self.duplicate:
            return False
        self.inserted.append(candidate)
        return True


class TestSignature:
    def test_valid(self):
        body = b'{"a":1}'
        sig = hmac.new(SECRET.encode(), body, hashlib.sha512).hexdigest()
        verify_signature(body, sig, SECRET)

    def test_mismatch(self):
        with pytest.raises(SignatureInvalid):
            verify_signature(b'{"a":1}', "00" * 64, SECRET)

    def test_missing_header(self):
        with pytest.raises(SignatureInvalid):
            verify_signature(b"{}", None, SECRET)

    def test_missing_secret(self):
        with pytest.raises(ConfigMissing):
            verify_signature(b"{}", "abc", "")


def test_extractors_dedupe_and_normalize():
    text = f"$cat and $CAT again, ca {CONTRACT} {CONTRACT.lower()}"
    assert extract_tickers(text) == ["$CAT"]
    assert extract_contracts(text) == [CONTRACT.lower()]


def test_banter_uses_word_boundaries():
    assert is_banter("gm $CAT")
    assert not is_banter("the sender of $CAT announced a listing")


class TestEvaluateCast:
    def test_accepts_quality_cast(self):
        decision = evaluate_cast(_make_payload())
        assert decision.accepted
        candidate = decision.candidate
        assert candidate.cast_hash == "0xcasthash1234"
        assert candidate.tickers == ["$CAT"]
        assert candidate.author_fid == 42
        assert candidate.author_score == pytest.approx(0.92)
        assert candidate.warpcast_url == "https://warpcast.com/alice/0xcastha"

    def test_no_hash(self):
        payload = _make_payload()
        del payload["data"]["hash"]
        assert evaluate_cast(payload).skipped == SKIP_NO_CAST_HASH

    def test_low_or_missing_score(self):
        assert evaluate_cast(_make_payload(score=0.5)).skipped == SKIP_LOW_SCORE
        assert evaluate_cast(_make_payload(score=None)).skipped == SKIP_LOW_SCORE

    def test_no_mentions(self):
        decision = evaluate_cast(_make_payload("Shipping a new feature for our protocol today"))
        assert decision.skipped == SKIP_NO_MENTIONS

    def test_too_many_tickers(self):
        text = "Watching $AAA $BBB $CCC $DDD $EEE $FFF this week for the launch"
        assert evaluate_cast(_make_payload(text)).skipped == SKIP_TOO_MANY_TICKERS

    def test_banter(self):
        assert evaluate_cast(_make_payload("gm $CAT frens")).skipped == SKIP_BANTER

    def test_pure_shill(self):
        assert evaluate_cast(_make_payload("$CAT 🚀🚀🚀 100")).skipped == SKIP_PURE_SHILL

    def test_contract_only_cast_accepted(self):
        decision = evaluate_cast(_make_payload(f"New deployment {CONTRACT}"))
        assert decision.accepted
        assert decision.candidate.tickers == []

    def test_to_dict(self):
        assert evaluate_cast(_make_payload(score=0.1)).to_dict() == {"ok": True, "skipped": SKIP_LOW_SCORE}


class TestImportance:
    def test_listing_with_link_and_contract(self):
        score, event = compute_importance(
            f"$CAT listing on Coinbase https://coinbase.com {CONTRACT}",
            ["$CAT"], [CONTRACT.lower()], 0.96,
        )
        # both mentions +2, link +2, listing +3, high author +1
        assert score == pytest.approx(8)
        assert event == "listing"

    def test_banter_penalized(self):
        score, event = compute_importance("gm $CAT", ["$CAT"], [], 0.5)
        assert score == pytest.approx(-3)
        assert event is None

    def test_clamped(self):
        text = "listing airdrop launch partnership exploit migration tokenomics https://a.xyz"
        score, _ = compute_importance(text, ["$A"], ["0x1"], 0.99)
        assert score == 10.0


class TestIntake:
    @pytest.mark.asyncio
    async def test_stores_accepted_cast(self):
        store = FakeSignalStore()
        decision = await SignalIntake(store).ingest(_make_payload())
        assert decision.accepted
        assert len(store.inserted) == 1
        assert decision.to_dict() == {"ok": True, "cast_hash": "0xcasthash1234"}

    @pytest.mark.asyncio
    async def test_author_cooldown(self):
        store = FakeSignalStore(author_busy=True)
        decision = await SignalIntake(store).ingest(_make_payload())
        assert decision.skipped == SKIP_AUTHOR_COOLDOWN
        assert store.inserted == []

    @pytest.mark.asyncio
    async def test_ticker_cooldown(self):
        store = FakeSignalStore(tickers_busy=True)
        assert (await SignalIntake(store).ingest(_make_payload())).skipped == SKIP_TICKER_COOLDOWN

    @pytest.mark.asyncio
    async def test_duplicate_hash(self):
        store = FakeSignalStore(duplicate=True)
        assert (await SignalIntake(store).ingest(_make_payload())).skipped == SKIP_DUPLICATE

    @pytest.mark.asyncio
    async def test_filtered_cast_never_hits_store(self):
        store = FakeSignalStore(author_busy=True)
        decision = await SignalIntake(store, min_author_score=0.95).ingest(_make_payload())
        assert decision.skipped == SKIP_LOW_SCORE
