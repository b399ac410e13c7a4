"""Tests for the incremental alert scan."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from hatchr.parsers.alerts import TAG_SCORE, TAG_VOLUME, AlertScanner, AlertState, is_fresh
from hatchr.parsers.exceptions import IdentityUnresolved, PersistenceFailure
from hatchr.parsers.notifier import DispatchResult, NotificationPayload
from hatchr.parsers.scoring import HatchrScore
from hatchr.parsers.token_types import CreatorIdentity, EnrichedToken, MarketSnapshot, Token

ADDR = "0x" + "ab" * 20


class FakeStore:
    def __init__(self, cursor: datetime | None = None) -> None:
        self.cursor = cursor
        self.states: dict[str, AlertState] = {}
        self.fail_marks = False

    async def get_cursor(self):
        return self.cursor

    async def advance_cursor(self, ts):
        if self.cursor is None or ts > self.cursor:
            self.cursor = ts

    async def get_state(self, address):
        return self.states.get(address, AlertState(token_address=address))

    async def mark_alerted(self, address, *, score90=False, vol1000=False):
        if self.fail_marks:
            raise PersistenceFailure("db down")
        state = self.states.setdefault(address, AlertState(token_address=address))
        state.alerted_score_90 = state.alerted_score_90 or score90
        state.alerted_vol_1000 = state.alerted_vol_1000 or vol1000


class FakeNotifier:
    def __init__(self, ok: bool = True) -> None:
        self.sent: list[NotificationPayload] = []
        self.ok = ok

    async def send(self, payload):
        self.sent.append(payload)
        if self.ok:
            return DispatchResult(attempted=1, delivered=1, batches=1)
        return DispatchResult(attempted=1, batches=1, failed_batches=1, errors=["HTTP 500"])


class FakeEnricher:
    """Attaches a fixed market volume and identity to every token."""

    def __init__(self, volume: float | None = None, fid: int | None = None) -> None:
        self.volume = volume
        self.fid = fid
        self.seen: list[Token] = []

    async def enrich_many(self, tokens):
        self.seen.extend(tokens)
        return [
            EnrichedToken(
                token=t,
                market=MarketSnapshot(token_address=t.token_address, volume_24h_usd=self.volume)
                if self.volume is not None
                else None,
                identity=CreatorIdentity(fid=self.fid) if self.fid is not None else None,
            )
            for t in tokens
        ]


class FakeReputation:
    def __init__(self, score: float | None = None, exc: Exception | None = None) -> None:
        self.score = score
        self.exc = exc
        self.calls = 0

    async def hatchr_score(self, fid):
        self.calls += 1
        if self.exc:
            raise self.exc
        return HatchrScore(creator_score=self.score, followers_quality=None, hatchr_score=self.score)


def _make_token(**kwargs) -> Token:
    defaults = {"token_address": ADDR, "name": "Cat", "symbol": "cat", "first_seen_at": None}
    defaults.update(kwargs)
    return Token(**defaults)


def _make_scanner(tokens, *, store=None, notifier=None, enricher=None, reputation=None, **kwargs):
    async def collector():
        return list(tokens)

    return AlertScanner(
        collector=collector,
        enricher=enricher or FakeEnricher(),
        reputation=reputation or FakeReputation(),
        store=store or FakeStore(),
        notifier=notifier or FakeNotifier(),
        site_url="https://hatchr.example/",
        **kwargs,
    )


def test_is_fresh():
    cursor = datetime(2024, 1, 1, tzinfo=UTC)
    assert is_fresh(_make_token(first_seen_at=None), cursor)
    assert is_fresh(_make_token(first_seen_at=cursor + timedelta(seconds=1)), cursor)
    assert not is_fresh(_make_token(first_seen_at=cursor), cursor)


@pytest.mark.asyncio
async def test_volume_alert_fires_once():
    """A token over $1,000 volume alerts once; later scans never repeat it."""
    store, notifier = FakeStore(), FakeNotifier()
    scanner = _make_scanner([_make_token()], store=store, notifier=notifier, enricher=FakeEnricher(1500))

    first = await scanner.run()
    assert first.ok
    assert first.sent[TAG_VOLUME] == 1
    assert notifier.sent[0].notification_id == f"{TAG_VOLUME}:{ADDR}"
    assert notifier.sent[0].body == "$CAT volume crossed $1,000"
    assert notifier.sent[0].target_url == f"https://hatchr.example/token?address={ADDR}"
    assert store.states[ADDR].alerted_vol_1000

    scanner._enricher = FakeEnricher(2000)
    second = await scanner.run()
    assert second.sent[TAG_VOLUME] == 0
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_volume_at_threshold_does_not_fire():
    notifier = FakeNotifier()
    summary = await _make_scanner([_make_token()], notifier=notifier, enricher=FakeEnricher(1000)).run()
    assert summary.sent[TAG_VOLUME] == 0
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_score_alert_fires_above_threshold():
    notifier = FakeNotifier()
    scanner = _make_scanner(
        [_make_token()],
        notifier=notifier,
        enricher=FakeEnricher(fid=42),
        reputation=FakeReputation(0.93),
    )
    summary = await scanner.run()
    assert summary.sent[TAG_SCORE] == 1
    assert notifier.sent[0].title == "High-score token"
    assert notifier.sent[0].body == "$CAT hit Hatchr Score 0.93"


@pytest.mark.asyncio
async def test_score_at_threshold_does_not_fire():
    scanner = _make_scanner(
        [_make_token()], enricher=FakeEnricher(fid=42), reputation=FakeReputation(0.9)
    )
    assert (await scanner.run()).sent[TAG_SCORE] == 0


@pytest.mark.asyncio
async def test_no_identity_skips_score_only():
    reputation = FakeReputation(0.99)
    scanner = _make_scanner(
        [_make_token()], enricher=FakeEnricher(volume=5000), reputation=reputation
    )
    summary = await scanner.run()
    assert summary.skipped_no_identity == 1
    assert summary.sent == {TAG_SCORE: 0, TAG_VOLUME: 1}
    assert reputation.calls == 0


@pytest.mark.asyncio
async def test_unresolved_user_is_retried_later():
    store = FakeStore()
    scanner = _make_scanner(
        [_make_token()],
        store=store,
        enricher=FakeEnricher(fid=7),
        reputation=FakeReputation(exc=IdentityUnresolved("gone")),
    )
    summary = await scanner.run()
    assert summary.ok
    assert summary.sent[TAG_SCORE] == 0
    assert ADDR not in store.states


@pytest.mark.asyncio
async def test_failed_dispatch_leaves_flag_unset():
    store = FakeStore()
    scanner = _make_scanner(
        [_make_token()], store=store, notifier=FakeNotifier(ok=False), enricher=FakeEnricher(5000)
    )
    summary = await scanner.run()
    assert summary.sent[TAG_VOLUME] == 0
    assert ADDR not in store.states


@pytest.mark.asyncio
async def test_persist_failure_still_counts_as_sent():
    store = FakeStore()
    store.fail_marks = True
    scanner = _make_scanner([_make_token()], store=store, enricher=FakeEnricher(5000))
    summary = await scanner.run()
    assert summary.ok
    assert summary.sent[TAG_VOLUME] == 1


@pytest.mark.asyncio
async def test_cursor_advances_to_newest_and_filters_old():
    cursor = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    store = FakeStore(cursor=cursor)
    enricher = FakeEnricher()
    newer = cursor + timedelta(minutes=5)
    newest = cursor + timedelta(minutes=9)
    tokens = [
        _make_token(token_address="0x" + "01" * 20, first_seen_at=cursor - timedelta(minutes=1)),
        _make_token(token_address="0x" + "02" * 20, first_seen_at=newer),
        _make_token(token_address="0x" + "03" * 20, first_seen_at=newest),
        _make_token(token_address="0x" + "04" * 20, first_seen_at=None),
    ]
    summary = await _make_scanner(tokens, store=store, enricher=enricher).run()

    assert summary.checked == 4
    assert summary.fresh == 3
    assert [t.token_address for t in enricher.seen] == ["0x" + "02" * 20, "0x" + "03" * 20, "0x" + "04" * 20]
    assert store.cursor == newest
    assert summary.cursor == newest


@pytest.mark.asyncio
async def test_cursor_never_moves_back():
    cursor = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    store = FakeStore(cursor=cursor)
    summary = await _make_scanner([_make_token(first_seen_at=None)], store=store).run()
    assert summary.fresh == 1
    assert store.cursor == cursor


@pytest.mark.asyncio
async def test_default_cursor_uses_lookback():
    store = FakeStore()
    old = datetime.now(UTC) - timedelta(hours=2)
    summary = await _make_scanner(
        [_make_token(first_seen_at=old)], store=store, lookback_minutes=30
    ).run()
    assert summary.fresh == 0
    assert store.cursor is None


@pytest.mark.asyncio
async def test_scan_timeout():
    async def slow_collector():
        await asyncio.sleep(5)
        return []

    scanner = AlertScanner(
        collector=slow_collector,
        enricher=FakeEnricher(),
        reputation=FakeReputation(),
        store=FakeStore(),
        notifier=FakeNotifier(),
        scan_timeout_sec=0.05,
    )
    summary = await scanner.run()
    assert not summary.ok
    assert summary.error == "timeout"
    assert summary.to_dict()["error"] == "timeout"


@pytest.mark.asyncio
async def test_unexpected_error_reported():
    async def broken_collector():
        raise RuntimeError("boom")

    scanner = AlertScanner(
        collector=broken_collector,
        enricher=FakeEnricher(),
        reputation=FakeReputation(),
        store=FakeStore(),
        notifier=FakeNotifier(),
    )
    summary = await scanner.run()
    assert not summary.ok
    assert "boom" in summary.error


class FlakyStateStore(FakeStore):
    """Fails to read alert state for one address."""

    def __init__(self, broken: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.broken = broken

    async def get_state(self, address):
        if address == self.broken:
            raise PersistenceFailure(f"alert state read failed for {address}")
        return await super().get_state(address)


@pytest.mark.asyncio
async def test_state_read_failure_skips_only_that_token():
    broken, healthy = "0x" + "0a" * 20, "0x" + "0b" * 20
    cursor = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    newest = cursor + timedelta(minutes=3)
    store = FlakyStateStore(broken, cursor=cursor)
    notifier = FakeNotifier()
    tokens = [
        _make_token(token_address=broken, first_seen_at=cursor + timedelta(minutes=1)),
        _make_token(token_address=healthy, first_seen_at=newest),
    ]
    summary = await _make_scanner(tokens, store=store, notifier=notifier, enricher=FakeEnricher(1500)).run()

    assert summary.ok
    assert summary.sent[TAG_VOLUME] == 1
    assert [p.notification_id for p in notifier.sent] == [f"{TAG_VOLUME}:{healthy}"]
    assert store.cursor == newest


@pytest.mark.asyncio
async def test_fully_alerted_undated_token_not_enriched():
    store = FakeStore()
    store.states[ADDR] = AlertState(token_address=ADDR, alerted_score_90=True, alerted_vol_1000=True)
    enricher = FakeEnricher(5000, fid=1)
    summary = await _make_scanner([_make_token(first_seen_at=None)], store=store, enricher=enricher).run()

    assert summary.fresh == 1
    assert enricher.seen == []
    assert summary.sent == {TAG_SCORE: 0, TAG_VOLUME: 0}


@pytest.mark.asyncio
async def test_partly_alerted_undated_token_still_scanned():
    store = FakeStore()
    store.states[ADDR] = AlertState(token_address=ADDR, alerted_vol_1000=True)
    enricher = FakeEnricher(5000, fid=1)
    notifier = FakeNotifier()
    summary = await _make_scanner(
        [_make_token(first_seen_at=None)],
        store=store,
        notifier=notifier,
        enricher=enricher,
        reputation=FakeReputation(0.95),
    ).run()

    assert len(enricher.seen) == 1
    assert summary.sent == {TAG_SCORE: 1, TAG_VOLUME: 0}
