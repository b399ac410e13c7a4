"""Scheduled alert scan trigger (external cron)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from config.settings import Settings
from hatchr.api.dependencies import get_clients, get_settings, require_cron_token
from hatchr.parsers.clients import Clients
from hatchr.parsers.worker import run_scan_once

router = APIRouter(prefix="/api/v1/cron", tags=["cron"])


@router.api_route("/alerts", methods=["GET", "POST"], dependencies=[Depends(require_cron_token)])
async def cron_alerts(
    clients: Clients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Run one alert scan and return its summary."""
    summary = await run_scan_once(clients, settings)
    return summary.to_dict()
