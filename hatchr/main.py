"""Entry point: alert scheduler plus (optionally) the HTTP API in one loop."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from hatchr.parsers.clients import build_clients
from hatchr.parsers.worker import run_scheduler
from hatchr.utils.logger import setup_logger


async def main() -> None:
    setup_logger(json_logs=settings.json_logs, level=settings.log_level)
    logger.info("Starting hatchr radar...")

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    clients = build_clients(settings)
    tasks = [
        asyncio.create_task(run_scheduler(clients, settings, stop_event=shutdown_event)),
    ]
    if settings.api_enabled:
        from hatchr.api.server import run_api_server

        tasks.append(asyncio.create_task(run_api_server(clients)))

    # Wait for either a task to finish or the shutdown signal
    done, pending = await asyncio.wait(
        [*tasks, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )
    for task in done:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Task crashed: {task.exception()!r}")

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    await clients.close()
    logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
