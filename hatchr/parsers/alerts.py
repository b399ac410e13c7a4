"""Incremental alert scan over freshly discovered tokens.

Each scan reads the persisted cursor, collects and enriches tokens first
seen after it, and fires at most one ``score90`` and one ``vol1000``
notification per token ever. The per-token flags are the dedup mechanism:
a flag is written only after its notification went out, and flags are
never reset, so a failed dispatch is simply retried on the next scan.

The cursor moves to the newest ``first_seen_at`` among the fresh tokens and
never backwards. Tokens without a timestamp are scanned but never move it,
and stop being enriched once both of their flags are set.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from loguru import logger

from hatchr.parsers.enrichment import Enricher
from hatchr.parsers.exceptions import HatchrError, IdentityUnresolved
from hatchr.parsers.notifier import DispatchResult, NotificationPayload
from hatchr.parsers.scoring import DEFAULT_SCORE_CONFIG, HatchrScore, ScoreConfig
from hatchr.parsers.token_types import EnrichedToken, Token

TAG_SCORE = "score90"
TAG_VOLUME = "vol1000"


@dataclass
class AlertState:
    token_address: str
    alerted_score_90: bool = False
    alerted_vol_1000: bool = False
    updated_at: datetime | None = None


class AlertStateStore(Protocol):
    async def get_cursor(self) -> datetime | None: ...

    async def advance_cursor(self, ts: datetime) -> None: ...

    async def get_state(self, address: str) -> AlertState: ...

    async def mark_alerted(self, address: str, *, score90: bool = False, vol1000: bool = False) -> None: ...


class ScoreSource(Protocol):
    async def hatchr_score(self, fid: int) -> HatchrScore: ...


class Notifier(Protocol):
    async def send(self, payload: NotificationPayload) -> DispatchResult: ...


@dataclass
class ScanSummary:
    ok: bool = True
    checked: int = 0
    fresh: int = 0
    cursor: datetime | None = None
    sent: dict[str, int] = field(default_factory=lambda: {TAG_SCORE: 0, TAG_VOLUME: 0})
    skipped_no_identity: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "checked": self.checked,
            "fresh": self.fresh,
            "cursor": self.cursor.isoformat() if self.cursor else None,
            "sent": dict(self.sent),
            "skipped_no_identity": self.skipped_no_identity,
            "error": self.error,
        }


def is_fresh(token: Token, cursor: datetime) -> bool:
    return token.first_seen_at is None or token.first_seen_at > cursor


def _label(token: Token) -> str:
    if token.symbol:
        return f"${token.symbol.lstrip('$').upper()}"
    return token.name or f"{token.token_address[:10]}…"


class AlertScanner:
    def __init__(
        self,
        *,
        collector: Callable[[], Awaitable[list[Token]]],
        enricher: Enricher,
        reputation: ScoreSource,
        store: AlertStateStore,
        notifier: Notifier,
        config: ScoreConfig = DEFAULT_SCORE_CONFIG,
        site_url: str = "",
        scan_timeout_sec: float = 12.0,
        lookback_minutes: int = 30,
    ) -> None:
        self._collector = collector
        self._enricher = enricher
        self._reputation = reputation
        self._store = store
        self._notifier = notifier
        self._config = config
        self._site_url = site_url.rstrip("/")
        self._timeout = scan_timeout_sec
        self._lookback = timedelta(minutes=lookback_minutes)

    async def run(self) -> ScanSummary:
        summary = ScanSummary()
        try:
            await asyncio.wait_for(self._scan(summary), timeout=self._timeout)
        except TimeoutError:
            summary.ok = False
            summary.error = "timeout"
            logger.warning(f"[ALERTS] scan timed out after {self._timeout}s")
        except Exception as e:
            summary.ok = False
            summary.error = f"{type(e).__name__}: {e}"
            logger.exception(f"[ALERTS] scan failed: {e}")
        return summary

    async def _scan(self, summary: ScanSummary) -> None:
        stored = await self._store.get_cursor()
        cursor = stored or datetime.now(UTC) - self._lookback
        summary.cursor = cursor

        tokens = await self._collector()
        summary.checked = len(tokens)
        fresh = [t for t in tokens if is_fresh(t, cursor)]
        summary.fresh = len(fresh)
        if not fresh:
            logger.info(f"[ALERTS] {len(tokens)} checked, nothing fresh since {cursor.isoformat()}")
            return

        states = await self._load_states(fresh)
        pending = [t for t in fresh if t.token_address in states]
        enriched = await self._enricher.enrich_many(pending) if pending else []
        for item in enriched:
            try:
                await self._process(item, states[item.token.token_address], summary)
            except HatchrError as e:
                logger.warning(f"[ALERTS] {item.token.token_address} skipped: {e}")

        newest = max((t.first_seen_at for t in fresh if t.first_seen_at), default=None)
        if newest is not None and newest > cursor:
            await self._store.advance_cursor(newest)
            summary.cursor = newest

        logger.info(
            f"[ALERTS] checked={summary.checked} fresh={summary.fresh} "
            f"sent={summary.sent} cursor={summary.cursor.isoformat()}"
        )

    async def _load_states(self, fresh: list[Token]) -> dict[str, AlertState]:
        """Alert state per fresh token. Unreadable states and fully alerted
        tokens without a timestamp are left out of enrichment."""
        states: dict[str, AlertState] = {}
        for token in fresh:
            address = token.token_address
            try:
                state = await self._store.get_state(address)
            except HatchrError as e:
                logger.warning(f"[ALERTS] {address} skipped: {e}")
                continue
            if token.first_seen_at is None and state.alerted_score_90 and state.alerted_vol_1000:
                continue
            states[address] = state
        return states

    async def _process(self, item: EnrichedToken, state: AlertState, summary: ScanSummary) -> None:
        token = item.token
        address = token.token_address

        if not state.alerted_score_90:
            if item.identity is None:
                summary.skipped_no_identity += 1
            else:
                score = await self._score(item)
                if score is not None and score > self._config.score_alert_threshold:
                    payload = NotificationPayload(
                        notification_id=f"{TAG_SCORE}:{address}",
                        title="High-score token",
                        body=f"{_label(token)} hit Hatchr Score {score:.2f}",
                        target_url=self._target_url(address),
                    )
                    if await self._dispatch_and_mark(address, payload, score90=True):
                        summary.sent[TAG_SCORE] += 1

        volume = item.volume_24h_usd
        threshold = self._config.volume_alert_threshold_usd
        if not state.alerted_vol_1000 and volume is not None and volume > threshold:
            payload = NotificationPayload(
                notification_id=f"{TAG_VOLUME}:{address}",
                title="Volume spike",
                body=f"{_label(token)} volume crossed ${threshold:,.0f}",
                target_url=self._target_url(address),
            )
            if await self._dispatch_and_mark(address, payload, vol1000=True):
                summary.sent[TAG_VOLUME] += 1

    async def _score(self, item: EnrichedToken) -> float | None:
        try:
            result = await self._reputation.hatchr_score(item.identity.fid)
        except IdentityUnresolved:
            logger.debug(f"[ALERTS] fid {item.identity.fid} not found, retry next scan")
            return None
        except HatchrError as e:
            logger.warning(f"[ALERTS] score failed for {item.token.token_address}: {e}")
            return None
        return result.hatchr_score

    async def _dispatch_and_mark(
        self, address: str, payload: NotificationPayload, *, score90: bool = False, vol1000: bool = False
    ) -> bool:
        """Send, then persist the flag. Returns True once the notification went out."""
        try:
            result = await self._notifier.send(payload)
        except Exception as e:
            logger.warning(f"[ALERTS] dispatch {payload.notification_id} failed: {type(e).__name__}: {e}")
            return False
        if not result.ok:
            logger.warning(f"[ALERTS] dispatch {payload.notification_id} not delivered: {result.errors}")
            return False

        try:
            await self._store.mark_alerted(address, score90=score90, vol1000=vol1000)
        except HatchrError as e:
            # flag stays false and the next scan retries the alert
            logger.error(f"[ALERTS] could not persist {payload.notification_id}: {e}")
        return True

    def _target_url(self, address: str) -> str:
        return f"{self._site_url}/token?address={address}"
