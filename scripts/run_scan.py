"""Run a single alert scan and print its summary.

Usage:
    poetry run python scripts/run_scan.py
    poetry run python scripts/run_scan.py --tokens   # list the enriched candidate set only
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger  # noqa: E402

from config.settings import settings  # noqa: E402
from hatchr.parsers.clients import build_clients  # noqa: E402
from hatchr.parsers.pipeline import collect_enriched  # noqa: E402
from hatchr.parsers.worker import run_scan_once  # noqa: E402
from hatchr.utils.logger import setup_logger  # noqa: E402


async def main() -> int:
    parser = argparse.ArgumentParser(description="Run one Hatchr alert scan")
    parser.add_argument(
        "--tokens",
        action="store_true",
        help="Only collect and enrich tokens, no alerts",
    )
    args = parser.parse_args()

    setup_logger(level=settings.log_level)
    clients = build_clients(settings)
    try:
        if args.tokens:
            enriched = await collect_enriched(clients, settings)
            print(json.dumps([e.to_dict() for e in enriched], indent=2, default=str))
            return 0

        summary = await run_scan_once(clients, settings)
        print(json.dumps(summary.to_dict(), indent=2))
        if not summary.ok:
            logger.error(f"Scan failed: {summary.error}")
        return 0 if summary.ok else 1
    finally:
        await clients.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
