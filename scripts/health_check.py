"""System health check: reports storage, alert scan and feature status.

Checks:
- Database connectivity and table sizes
- Redis connectivity (score cache)
- Alert scan cursor age
- Social signal intake over the last 24h
- Feature flags and missing credentials

Usage:
    poetry run python scripts/health_check.py
"""

import asyncio
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from redis.asyncio import Redis  # noqa: E402
from redis.exceptions import RedisError  # noqa: E402
from sqlalchemy import func, select, text  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from config.settings import settings  # noqa: E402
from hatchr.db.database import create_database  # noqa: E402
from hatchr.models import (  # noqa: E402
    Market,
    NotificationSubscriber,
    SocialSignal,
    TokenAlertState,
)
from hatchr.parsers.persistence import get_cursor  # noqa: E402

STATUS_OK = "OK"
STATUS_WARN = "WARN"
STATUS_ERROR = "ERROR"

# cursor older than this means scans are not running or find nothing
CURSOR_STALE_MIN = 120


async def check_health() -> dict:
    """Run all health checks and return structured report."""
    report: dict = {"timestamp": datetime.now(UTC).isoformat(), "checks": {}}

    # 1. Database
    db = create_database(settings.database_url, pool_size=1)
    try:
        async with db.session_factory() as session:
            await session.execute(text("SELECT 1"))
            report["checks"]["database"] = {"status": STATUS_OK}
            await _add_table_stats(session, report)
            await _add_cursor(session, report)
            await _add_signal_stats(session, report)
    except (SQLAlchemyError, OSError) as e:
        report["checks"]["database"] = {"status": STATUS_ERROR, "error": str(e)}
    finally:
        await db.dispose()

    # 2. Redis
    redis = Redis.from_url(settings.redis_url)
    try:
        await redis.ping()
        cached = 0
        async for _ in redis.scan_iter("score:*"):
            cached += 1
        report["checks"]["redis"] = {"status": STATUS_OK, "cached_scores": cached}
    except (RedisError, OSError) as e:
        report["checks"]["redis"] = {"status": STATUS_WARN, "error": str(e)}
    finally:
        await redis.aclose()

    # 3. Feature flags
    report["checks"]["features"] = {
        "clanker": settings.enable_clanker,
        "zora": settings.enable_zora and bool(settings.zora_api_key),
        "social_scrape": settings.enable_social_scrape,
        "market_enrichment": settings.enable_market_enrichment,
        "creator_resolution": settings.enable_creator_resolution and bool(settings.neynar_api_key),
        "score_cache": settings.enable_score_cache,
        "webhook_intake": bool(settings.neynar_webhook_secret),
        "cron_endpoints": bool(settings.cron_token),
    }

    return report


async def _add_table_stats(session: AsyncSession, report: dict) -> None:
    """Add row counts for key tables."""
    tables = {
        "markets": Market.token_address,
        "token_alert_state": TokenAlertState.token_address,
        "social_signals": SocialSignal.id,
        "subscribers": NotificationSubscriber.token,
    }
    counts = {}
    for name, column in tables.items():
        count = await session.scalar(select(func.count(column)))
        counts[name] = count or 0

    counts["subscribers_enabled"] = await session.scalar(
        select(func.count(NotificationSubscriber.token)).where(NotificationSubscriber.status == "enabled")
    ) or 0
    report["checks"]["table_counts"] = counts


async def _add_cursor(session: AsyncSession, report: dict) -> None:
    cursor = await get_cursor(session)
    if cursor is None:
        report["checks"]["cursor"] = {"status": STATUS_WARN, "last_seen_at": None}
        return
    age_min = round((datetime.now(UTC) - cursor).total_seconds() / 60, 1)
    report["checks"]["cursor"] = {
        "status": STATUS_OK if age_min < CURSOR_STALE_MIN else STATUS_WARN,
        "last_seen_at": cursor.isoformat(),
        "age_min": age_min,
    }


async def _add_signal_stats(session: AsyncSession, report: dict) -> None:
    since = datetime.now(UTC) - timedelta(hours=24)
    last_24h = await session.scalar(
        select(func.count(SocialSignal.id)).where(SocialSignal.created_at > since)
    )
    alerted = await session.scalar(
        select(func.count(TokenAlertState.token_address)).where(
            TokenAlertState.alerted_score_90 | TokenAlertState.alerted_vol_1000
        )
    )
    report["checks"]["signals"] = {"last_24h": last_24h or 0, "tokens_alerted": alerted or 0}


def print_report(report: dict) -> None:
    """Pretty-print the health report."""
    print("=" * 60)
    print(f"HEALTH CHECK: {report['timestamp']}")
    print("=" * 60)

    checks = report["checks"]

    db = checks.get("database", {})
    print(f"\n  Database: [{db.get('status', STATUS_ERROR)}]")
    if "error" in db:
        print(f"    Error: {db['error']}")

    redis = checks.get("redis", {})
    status = redis.get("status", STATUS_ERROR)
    print(f"  Redis:    [{status}]")
    if status == STATUS_OK:
        print(f"    Cached scores: {redis.get('cached_scores', 0)}")
    elif "error" in redis:
        print(f"    Error: {redis['error']}")

    counts = checks.get("table_counts", {})
    if counts:
        print("\n  Table counts:")
        for table, count in counts.items():
            print(f"    {table:20s} {count:>8,}")

    cursor = checks.get("cursor")
    if cursor:
        print(f"\n  Alert cursor: {cursor.get('last_seen_at') or 'N/A'} [{cursor['status']}]")
        if "age_min" in cursor:
            print(f"    Age: {cursor['age_min']} min")

    signals = checks.get("signals", {})
    if signals:
        print("\n  Signals:")
        print(f"    Social signals 24h: {signals.get('last_24h', 0):,}")
        print(f"    Tokens alerted:     {signals.get('tokens_alerted', 0):,}")

    features = checks.get("features", {})
    if features:
        print("\n  Feature flags:")
        for name, enabled in features.items():
            status = "ON" if enabled else "OFF"
            print(f"    {name:20s} [{status}]")

    print("\n" + "=" * 60)


async def main() -> None:
    report = await check_health()
    print_report(report)


if __name__ == "__main__":
    asyncio.run(main())
