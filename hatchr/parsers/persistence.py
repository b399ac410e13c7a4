"""Data persistence layer: maps pipeline records onto SQLAlchemy models.

Module-level functions take an ``AsyncSession`` and leave committing to the
caller. The ``Sql*Store`` classes own a session factory and commit per call;
they are what the alert scan, the notifier and the webhook intake depend on.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hatchr.models import Market, NotificationSubscriber, NotifyCursor, SocialSignal, TokenAlertState
from hatchr.parsers.alerts import AlertState
from hatchr.parsers.exceptions import PersistenceFailure
from hatchr.parsers.social_signals import SocialSignalCandidate
from hatchr.parsers.token_types import MarketSnapshot

CURSOR_ROW_ID = 1


def _sanitize(val: str | None) -> str | None:
    """Strip null bytes that PostgreSQL rejects in text columns."""
    if val is None:
        return None
    return val.replace("\x00", "").strip() or None


def _decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


# --- markets ---


async def upsert_market(session: AsyncSession, snapshot: MarketSnapshot) -> None:
    """Overwrite the market row for a token (last write wins)."""
    values = {
        "price_usd": _decimal(snapshot.price_usd),
        "market_cap_usd": _decimal(snapshot.market_cap_usd),
        "liquidity_usd": _decimal(snapshot.liquidity_usd),
        "volume_24h_usd": _decimal(snapshot.volume_24h_usd),
        "updated_at": snapshot.updated_at,
    }
    stmt = (
        pg_insert(Market)
        .values(token_address=snapshot.token_address.lower(), **values)
        .on_conflict_do_update(index_elements=[Market.token_address], set_=values)
    )
    await session.execute(stmt)


async def get_markets(session: AsyncSession, addresses: Sequence[str]) -> dict[str, Market]:
    if not addresses:
        return {}
    result = await session.execute(
        select(Market).where(Market.token_address.in_([a.lower() for a in addresses]))
    )
    return {m.token_address: m for m in result.scalars()}


class SqlMarketSink:
    """Callable market sink for the enricher, one short transaction per snapshot."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def __call__(self, snapshot: MarketSnapshot) -> None:
        try:
            async with self._session_factory() as session:
                await upsert_market(session, snapshot)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"market upsert failed for {snapshot.token_address}") from e


# --- alert state / cursor ---


async def get_alert_state(session: AsyncSession, address: str) -> AlertState:
    row = await session.get(TokenAlertState, address.lower())
    if row is None:
        return AlertState(token_address=address.lower())
    return AlertState(
        token_address=row.token_address,
        alerted_score_90=bool(row.alerted_score_90),
        alerted_vol_1000=bool(row.alerted_vol_1000),
        updated_at=row.updated_at,
    )


async def mark_alert_flags(
    session: AsyncSession, address: str, *, score90: bool = False, vol1000: bool = False
) -> None:
    """Set flags to true. Stored flags are OR-ed, so nothing ever resets."""
    stmt = pg_insert(TokenAlertState).values(
        token_address=address.lower(),
        alerted_score_90=score90,
        alerted_vol_1000=vol1000,
        updated_at=func.now(),
    )
    table = TokenAlertState.__table__
    stmt = stmt.on_conflict_do_update(
        index_elements=[TokenAlertState.token_address],
        set_={
            "alerted_score_90": or_(table.c.alerted_score_90, stmt.excluded.alerted_score_90),
            "alerted_vol_1000": or_(table.c.alerted_vol_1000, stmt.excluded.alerted_vol_1000),
            "updated_at": func.now(),
        },
    )
    await session.execute(stmt)


async def get_cursor(session: AsyncSession) -> datetime | None:
    row = await session.get(NotifyCursor, CURSOR_ROW_ID)
    return row.last_seen_at if row else None


async def advance_cursor(session: AsyncSession, ts: datetime) -> None:
    """Move the watermark forward; GREATEST keeps it from going back."""
    stmt = pg_insert(NotifyCursor).values(id=CURSOR_ROW_ID, last_seen_at=ts)
    stmt = stmt.on_conflict_do_update(
        index_elements=[NotifyCursor.id],
        set_={
            "last_seen_at": func.greatest(
                NotifyCursor.__table__.c.last_seen_at, stmt.excluded.last_seen_at
            )
        },
    )
    await session.execute(stmt)


class SqlAlertStateStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_cursor(self) -> datetime | None:
        try:
            async with self._session_factory() as session:
                return await get_cursor(session)
        except SQLAlchemyError as e:
            raise PersistenceFailure("cursor read failed") from e

    async def advance_cursor(self, ts: datetime) -> None:
        try:
            async with self._session_factory() as session:
                await advance_cursor(session, ts)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure("cursor update failed") from e

    async def get_state(self, address: str) -> AlertState:
        try:
            async with self._session_factory() as session:
                return await get_alert_state(session, address)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"alert state read failed for {address}") from e

    async def mark_alerted(self, address: str, *, score90: bool = False, vol1000: bool = False) -> None:
        try:
            async with self._session_factory() as session:
                await mark_alert_flags(session, address, score90=score90, vol1000=vol1000)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"alert flag update failed for {address}") from e


# --- social signals ---


async def insert_social_signal(session: AsyncSession, candidate: SocialSignalCandidate) -> bool:
    """Insert a cast; returns False when the cast hash was already stored."""
    stmt = (
        pg_insert(SocialSignal)
        .values(
            cast_hash=candidate.cast_hash,
            cast_timestamp=candidate.cast_timestamp,
            warpcast_url=candidate.warpcast_url,
            text=_sanitize(candidate.text),
            author_fid=candidate.author_fid,
            author_username=_sanitize(candidate.author_username),
            author_display_name=_sanitize(candidate.author_display_name),
            author_pfp_url=candidate.author_pfp_url,
            author_score=candidate.author_score,
            tickers=list(candidate.tickers),
            contracts=list(candidate.contracts),
            raw=candidate.raw,
        )
        .on_conflict_do_nothing(index_elements=[SocialSignal.cast_hash])
        .returning(SocialSignal.id)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def author_posted_since(session: AsyncSession, author_fid: int, since: datetime) -> bool:
    result = await session.execute(
        select(SocialSignal.id)
        .where(SocialSignal.author_fid == author_fid, SocialSignal.created_at > since)
        .limit(1)
    )
    return result.first() is not None


async def tickers_posted_since(session: AsyncSession, tickers: Sequence[str], since: datetime) -> bool:
    if not tickers:
        return False
    result = await session.execute(
        select(SocialSignal.id)
        .where(SocialSignal.tickers.overlap(list(tickers)), SocialSignal.created_at > since)
        .limit(1)
    )
    return result.first() is not None


async def list_social_signals(
    session: AsyncSession, *, limit: int = 25, min_score: float | None = None
) -> list[SocialSignal]:
    stmt = select(SocialSignal)
    if min_score is not None:
        stmt = stmt.where(SocialSignal.author_score >= min_score)
    stmt = stmt.order_by(
        func.coalesce(SocialSignal.cast_timestamp, SocialSignal.created_at).desc()
    ).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars())


class SqlSignalStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def author_on_cooldown(self, author_fid: int, cooldown_sec: int) -> bool:
        since = datetime.now(UTC) - timedelta(seconds=cooldown_sec)
        async with self._session_factory() as session:
            return await author_posted_since(session, author_fid, since)

    async def tickers_on_cooldown(self, tickers: Sequence[str], cooldown_sec: int) -> bool:
        since = datetime.now(UTC) - timedelta(seconds=cooldown_sec)
        async with self._session_factory() as session:
            return await tickers_posted_since(session, tickers, since)

    async def insert(self, candidate: SocialSignalCandidate) -> bool:
        try:
            async with self._session_factory() as session:
                inserted = await insert_social_signal(session, candidate)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"social signal insert failed for {candidate.cast_hash}") from e
        if not inserted:
            logger.debug(f"[WEBHOOK] cast {candidate.cast_hash} already stored")
        return inserted


# --- notification subscribers ---


async def load_enabled_subscribers(session: AsyncSession) -> list[NotificationSubscriber]:
    result = await session.execute(
        select(NotificationSubscriber).where(NotificationSubscriber.status == "enabled")
    )
    return list(result.scalars())


async def disable_subscriber_tokens(session: AsyncSession, tokens: Sequence[str]) -> int:
    if not tokens:
        return 0
    result = await session.execute(
        update(NotificationSubscriber)
        .where(NotificationSubscriber.token.in_(list(tokens)))
        .values(status="disabled", updated_at=func.now())
    )
    return result.rowcount or 0


class SqlSubscriberStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def enabled_subscribers(self) -> list[tuple[str, str]]:
        """(token, url) pairs for every enabled subscriber."""
        async with self._session_factory() as session:
            rows = await load_enabled_subscribers(session)
        return [(row.token, row.url) for row in rows]

    async def disable(self, tokens: Sequence[str]) -> int:
        try:
            async with self._session_factory() as session:
                count = await disable_subscriber_tokens(session, tokens)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure("disabling subscriber tokens failed") from e
        return count
