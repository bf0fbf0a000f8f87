"""Collector backends that receive finished snapshots."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import Counter
from typing import Any, Iterable, Mapping, Protocol

import httpx

from ..aggregator.models import EventKind
from ..config import CollectorConfig
from .encoding import dumps, encode_envelope

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


class CollectorUnavailable(RuntimeError):
    """Raised when a snapshot cannot be handed to the collector."""


class Collector(Protocol):
    def add_tags(self, tags: Iterable[str]) -> None: ...

    def set_key(self, key: str) -> None: ...

    def emit(self, kind: EventKind, snapshot: Any) -> None: ...

    def start(self) -> None: ...

    async def close(self) -> None: ...


class LocalCollector:
    """Log-only collector used when no endpoint is configured."""

    def __init__(self) -> None:
        self.tags: list[str] = []
        self.key: str | None = None

    def add_tags(self, tags: Iterable[str]) -> None:
        self.tags.extend(tags)

    def set_key(self, key: str) -> None:
        self.key = key

    def emit(self, kind: EventKind, snapshot: Any) -> None:
        logger.info("[local-collector] event=%s payload=%s", kind.value, dumps(snapshot).decode("utf-8"))

    def start(self) -> None:
        pass

    async def close(self) -> None:
        pass


class HttpCollector:
    """Posts envelopes to a remote collector from a background task.

    ``emit`` only encodes and buffers; delivery happens in ``_deliver`` once
    ``start`` has been called on a running event loop.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_ms: int = 1000,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("http collector requires endpoint")
        self._endpoint = endpoint
        self._client = httpx.AsyncClient(timeout=timeout_ms / 1000, transport=transport)
        self._queue: asyncio.Queue[tuple[EventKind, bytes]] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task[None] | None = None
        self.tags: list[str] = []
        self.key: str | None = None
        self.delivered: Counter[EventKind] = Counter()
        self.failed: Counter[EventKind] = Counter()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def add_tags(self, tags: Iterable[str]) -> None:
        self.tags.extend(tags)

    def set_key(self, key: str) -> None:
        self.key = key

    def emit(self, kind: EventKind, snapshot: Any) -> None:
        body = encode_envelope(kind, snapshot, self.tags)
        try:
            self._queue.put_nowait((kind, body))
        except asyncio.QueueFull as exc:
            raise CollectorUnavailable(f"send buffer full, {kind.value} event not queued") from exc

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._deliver())

    async def flush(self) -> None:
        await self._queue.join()

    async def close(self) -> None:
        if self._worker is not None:
            await self.flush()
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        await self._client.aclose()

    async def _deliver(self) -> None:
        while True:
            kind, body = await self._queue.get()
            try:
                await self._post(kind, body)
                self.delivered[kind] += 1
            except CollectorUnavailable as exc:
                self.failed[kind] += 1
                logger.error("Can't log %s event, collector unavailable: %s", kind.value, exc)
            except Exception:
                self.failed[kind] += 1
                logger.exception("unexpected failure delivering %s event", kind.value)
            finally:
                self._queue.task_done()

    async def _post(self, kind: EventKind, body: bytes) -> None:
        headers = {"content-type": "application/json"}
        if self.key:
            headers["x-api-key"] = self.key
        try:
            response = await self._client.post(self._endpoint, content=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CollectorUnavailable(f"collector rejected {kind.value} event: {exc}") from exc


def build_collector(
    config: CollectorConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Collector:
    options: Mapping[str, Any] = config.options
    if config.backend == "local":
        return LocalCollector()
    if config.backend == "http":
        return HttpCollector(
            str(options.get("endpoint", "")),
            timeout_ms=int(options.get("timeout_ms", 1000)),
            queue_size=int(options.get("queue_size", DEFAULT_QUEUE_SIZE)),
            transport=transport,
        )
    raise ValueError(f"unknown collector backend {config.backend}")
