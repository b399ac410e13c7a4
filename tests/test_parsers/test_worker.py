"""Tests for the periodic scan loop."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from config.settings import Settings
from hatchr.parsers.alerts import ScanSummary
from hatchr.parsers.worker import run_scan_once, run_scheduler


class CountingScanner:
    def __init__(self, stop_after: int, stop_event: asyncio.Event, ok: bool = True):
        self.runs = 0
        self._stop_after = stop_after
        self._stop_event = stop_event
        self._ok = ok

    async def run(self):
        self.runs += 1
        if self.runs >= self._stop_after:
            self._stop_event.set()
        return ScanSummary(ok=self._ok, error=None if self._ok else "timeout")


@pytest.mark.asyncio
async def test_scheduler_runs_until_stopped():
    stop = asyncio.Event()
    scanner = CountingScanner(stop_after=3, stop_event=stop)
    with patch("hatchr.parsers.worker.build_alert_scanner", return_value=scanner):
        await asyncio.wait_for(
            run_scheduler(MagicMock(), Settings(), interval_sec=0, stop_event=stop), timeout=2
        )
    assert scanner.runs == 3


@pytest.mark.asyncio
async def test_scheduler_survives_failed_cycles():
    stop = asyncio.Event()
    scanner = CountingScanner(stop_after=2, stop_event=stop, ok=False)
    with patch("hatchr.parsers.worker.build_alert_scanner", return_value=scanner):
        await asyncio.wait_for(
            run_scheduler(MagicMock(), Settings(), interval_sec=0, stop_event=stop), timeout=2
        )
    assert scanner.runs == 2


@pytest.mark.asyncio
async def test_run_scan_once_returns_summary():
    stop = asyncio.Event()
    scanner = CountingScanner(stop_after=99, stop_event=stop)
    with patch("hatchr.parsers.worker.build_alert_scanner", return_value=scanner):
        summary = await run_scan_once(MagicMock(), Settings())
    assert summary.ok
    assert scanner.runs == 1
