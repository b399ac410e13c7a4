"""Periodic alert scan. One scan at a time; the next starts ``interval_sec``
after the previous one finished."""

import asyncio

from loguru import logger

from config.settings import Settings
from hatchr.parsers.alerts import ScanSummary
from hatchr.parsers.clients import Clients
from hatchr.parsers.pipeline import build_alert_scanner


async def run_scan_once(clients: Clients, settings: Settings) -> ScanSummary:
    scanner = build_alert_scanner(clients, settings)
    return await scanner.run()


async def run_scheduler(
    clients: Clients,
    settings: Settings,
    *,
    interval_sec: int | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    interval = interval_sec if interval_sec is not None else settings.scan_interval_sec
    stop_event = stop_event or asyncio.Event()
    scanner = build_alert_scanner(clients, settings)
    logger.info(f"[SCHEDULER] alert scan every {interval}s")

    cycle = 0
    while not stop_event.is_set():
        cycle += 1
        summary = await scanner.run()
        if not summary.ok:
            logger.warning(f"[SCHEDULER] cycle {cycle} failed: {summary.error}")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except TimeoutError:
            pass
    logger.info(f"[SCHEDULER] stopped after {cycle} cycles")
