"""Construction of every external client from settings.

Built once per process (API app or scheduler) and passed down explicitly.
Tests swap individual fields for fakes.
"""

from dataclasses import dataclass, field

from loguru import logger
from redis.asyncio import Redis

from config.settings import Settings
from hatchr.db.database import Database, create_database
from hatchr.parsers.basescan.client import BasescanClient
from hatchr.parsers.clanker.client import ClankerClient
from hatchr.parsers.dexscreener.client import DexScreenerClient
from hatchr.parsers.enrichment import Enricher
from hatchr.parsers.neynar.client import NeynarClient
from hatchr.parsers.notifier import NotificationDispatcher
from hatchr.parsers.persistence import (
    SqlAlertStateStore,
    SqlMarketSink,
    SqlSignalStore,
    SqlSubscriberStore,
)
from hatchr.parsers.rate_limiter import RateLimiter
from hatchr.parsers.reputation import ReputationService
from hatchr.parsers.scoring import ScoreConfig
from hatchr.parsers.social_scrape import SocialScraper
from hatchr.parsers.sources import SourceAdapter
from hatchr.parsers.zora.client import ZoraClient


@dataclass
class Clients:
    database: Database
    redis: Redis | None
    adapters: list[SourceAdapter]
    dexscreener: DexScreenerClient
    basescan: BasescanClient
    neynar: NeynarClient
    scraper: SocialScraper
    enricher: Enricher
    reputation: ReputationService
    notifier: NotificationDispatcher
    alert_store: SqlAlertStateStore
    signal_store: SqlSignalStore
    score_config: ScoreConfig = field(default_factory=ScoreConfig)

    async def close(self) -> None:
        for adapter in self.adapters:
            await adapter.close()
        for client in (self.dexscreener, self.basescan, self.neynar, self.scraper, self.notifier):
            await client.close()
        if self.redis is not None:
            await self.redis.aclose()
        await self.database.dispose()


def build_clients(settings: Settings) -> Clients:
    database = create_database(settings.database_url)
    redis = (
        Redis.from_url(settings.redis_url, decode_responses=True)
        if settings.enable_score_cache and settings.redis_url
        else None
    )

    adapters: list[SourceAdapter] = []
    if settings.enable_clanker:
        adapters.append(
            ClankerClient(
                window_hours=settings.source_window_hours,
                max_pages=settings.clanker_max_pages,
                blocked_users=settings.blocked_farcaster_users,
            )
        )
    if settings.enable_zora:
        adapters.append(
            ZoraClient(
                settings.zora_api_key,
                window_hours=settings.source_window_hours,
                max_pages=settings.zora_max_pages,
            )
        )

    dexscreener = DexScreenerClient(max_rps=settings.dexscreener_max_rps)
    basescan = BasescanClient(settings.basescan_api_key, max_rps=settings.basescan_max_rps)
    neynar = NeynarClient(
        settings.neynar_api_key, rate_limiter=RateLimiter(settings.neynar_max_rps)
    )
    scraper = SocialScraper()

    for setting in ("zora_api_key", "basescan_api_key", "neynar_api_key", "neynar_webhook_secret", "cron_token"):
        if not getattr(settings, setting):
            logger.warning(f"[CONFIG] {setting} not set, dependent features disabled")

    score_config = ScoreConfig(
        follower_sample_size=settings.follower_sample_size,
        size_ref_followers=settings.size_ref_followers,
    )
    enricher = Enricher(
        scraper=scraper if settings.enable_social_scrape else None,
        dexscreener=dexscreener if settings.enable_market_enrichment else None,
        basescan=basescan if settings.enable_creator_resolution else None,
        neynar=neynar if settings.enable_creator_resolution else None,
        market_sink=SqlMarketSink(database.session_factory),
        concurrency=settings.enrichment_concurrency,
    )
    reputation = ReputationService(
        neynar,
        redis=redis,
        config=score_config,
        cache_ttl_sec=settings.score_cache_ttl_sec,
    )

    return Clients(
        database=database,
        redis=redis,
        adapters=adapters,
        dexscreener=dexscreener,
        basescan=basescan,
        neynar=neynar,
        scraper=scraper,
        enricher=enricher,
        reputation=reputation,
        notifier=NotificationDispatcher(SqlSubscriberStore(database.session_factory)),
        alert_store=SqlAlertStateStore(database.session_factory),
        signal_store=SqlSignalStore(database.session_factory),
        score_config=score_config,
    )
