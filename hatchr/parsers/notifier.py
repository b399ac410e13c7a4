"""Mini-app notification fan-out to every enabled subscriber token.

Delivery endpoints are external: each subscriber registered a delivery URL
together with its token. Tokens are grouped by URL and posted in batches of
at most 100. Any token reported back in ``invalidTokens`` is disabled.
"""

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import httpx
from loguru import logger

from hatchr.parsers.exceptions import HatchrError

BATCH_SIZE = 100
MAX_ID_LEN = 128
MAX_TITLE_LEN = 32
MAX_BODY_LEN = 128
MAX_URL_LEN = 1024


class SubscriberStore(Protocol):
    async def enabled_subscribers(self) -> list[tuple[str, str]]: ...

    async def disable(self, tokens: Sequence[str]) -> int: ...


@dataclass(frozen=True)
class NotificationPayload:
    notification_id: str
    title: str
    body: str
    target_url: str

    def clamped(self) -> "NotificationPayload":
        return NotificationPayload(
            notification_id=self.notification_id.strip()[:MAX_ID_LEN],
            title=self.title.strip()[:MAX_TITLE_LEN],
            body=self.body.strip()[:MAX_BODY_LEN],
            target_url=self.target_url.strip()[:MAX_URL_LEN],
        )

    def to_json(self, tokens: list[str]) -> dict:
        return {
            "notificationId": self.notification_id,
            "title": self.title,
            "body": self.body,
            "targetUrl": self.target_url,
            "tokens": tokens,
        }


@dataclass
class DispatchResult:
    attempted: int = 0
    delivered: int = 0
    invalidated: int = 0
    batches: int = 0
    failed_batches: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when nothing needed sending or at least one batch went through."""
        return self.batches == 0 or self.failed_batches < self.batches


def _chunks(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class NotificationDispatcher:
    def __init__(
        self,
        store: SubscriberStore,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._store = store
        self._http = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, payload: NotificationPayload) -> DispatchResult:
        payload = payload.clamped()
        if not (payload.notification_id and payload.title and payload.body and payload.target_url):
            raise ValueError("notification_id, title, body and target_url are required")

        result = DispatchResult()
        by_url: dict[str, list[str]] = defaultdict(list)
        for token, url in await self._store.enabled_subscribers():
            token, url = (token or "").strip(), (url or "").strip()
            if token and url:
                by_url[url].append(token)

        if not by_url:
            logger.info(f"[NOTIFY] {payload.notification_id}: no enabled subscribers")
            return result

        for url, tokens in by_url.items():
            for batch in _chunks(tokens, BATCH_SIZE):
                await self._post_batch(url, batch, payload, result)

        logger.info(
            f"[NOTIFY] {payload.notification_id}: attempted={result.attempted} "
            f"delivered={result.delivered} invalidated={result.invalidated} "
            f"failed_batches={result.failed_batches}/{result.batches}"
        )
        return result

    async def _post_batch(
        self, url: str, tokens: list[str], payload: NotificationPayload, result: DispatchResult
    ) -> None:
        result.batches += 1
        result.attempted += len(tokens)
        try:
            response = await self._http.post(url, json=payload.to_json(tokens))
        except httpx.HTTPError as e:
            result.failed_batches += 1
            result.errors.append(f"{url}: {type(e).__name__}")
            logger.warning(f"[NOTIFY] delivery to {url} failed: {type(e).__name__}: {e}")
            return

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_success:
            successful = data.get("successfulTokens")
            result.delivered += len(successful) if isinstance(successful, list) else len(tokens)
        else:
            result.failed_batches += 1
            result.errors.append(f"{url}: HTTP {response.status_code}")
            logger.warning(f"[NOTIFY] delivery to {url} returned HTTP {response.status_code}")

        invalid = [t for t in data.get("invalidTokens") or [] if isinstance(t, str)]
        if invalid:
            try:
                result.invalidated += await self._store.disable(invalid)
            except HatchrError as e:
                result.errors.append(f"disable: {e}")
                logger.warning(f"[NOTIFY] could not disable {len(invalid)} tokens: {e}")

    async def close(self) -> None:
        await self._http.aclose()
