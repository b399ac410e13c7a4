"""Concurrent fan-out over the source adapters."""

import asyncio
from typing import Protocol

from loguru import logger

from hatchr.parsers.token_types import Token


class SourceAdapter(Protocol):
    source: object

    async def fetch_tokens(self) -> list[Token]: ...

    async def close(self) -> None: ...


async def _run_adapter(adapter: SourceAdapter, timeout: float) -> list[Token]:
    name = getattr(adapter.source, "value", str(adapter.source)).upper()
    try:
        return await asyncio.wait_for(adapter.fetch_tokens(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"[{name}] adapter timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"[{name}] adapter failed: {type(e).__name__}: {e}")
    return []


async def fetch_all_sources(adapters: list[SourceAdapter], timeout: float = 15.0) -> list[Token]:
    """Run every adapter concurrently and concatenate results in adapter order.

    A failing or slow adapter contributes an empty list.
    """
    if not adapters:
        return []
    results = await asyncio.gather(*(_run_adapter(a, timeout) for a in adapters))
    out: list[Token] = []
    for batch in results:
        out.extend(batch)
    return out
