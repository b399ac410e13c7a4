"""Wiring of the discovery pipeline: adapters -> merge -> enrich -> alert scan."""

from config.settings import Settings
from hatchr.parsers.alerts import AlertScanner
from hatchr.parsers.clients import Clients
from hatchr.parsers.merge import merge_tokens
from hatchr.parsers.sources import SourceAdapter, fetch_all_sources
from hatchr.parsers.token_types import EnrichedToken, Token


async def collect_tokens(adapters: list[SourceAdapter], timeout: float) -> list[Token]:
    """One merged record per token address across all sources."""
    return merge_tokens(await fetch_all_sources(adapters, timeout=timeout))


async def collect_enriched(clients: Clients, settings: Settings) -> list[EnrichedToken]:
    tokens = await collect_tokens(clients.adapters, settings.adapter_timeout_sec)
    return await clients.enricher.enrich_many(tokens)


def build_alert_scanner(clients: Clients, settings: Settings) -> AlertScanner:
    async def _collect() -> list[Token]:
        return await collect_tokens(clients.adapters, settings.adapter_timeout_sec)

    return AlertScanner(
        collector=_collect,
        enricher=clients.enricher,
        reputation=clients.reputation,
        store=clients.alert_store,
        notifier=clients.notifier,
        config=clients.score_config,
        site_url=settings.site_url,
        scan_timeout_sec=settings.scan_timeout_sec,
        lookback_minutes=settings.alert_lookback_minutes,
    )
