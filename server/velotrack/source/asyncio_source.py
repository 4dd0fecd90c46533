"""In-process asyncio queue implementation of PositionSource."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, TYPE_CHECKING

if TYPE_CHECKING:
    from velotrack.source.base import PositionEvent

# Put on the queue by close() to end the iteration.
_CLOSED = object()


class AsyncioPositionSource:
    """PositionSource backed by asyncio.Queue. Fixes are pushed by the API layer."""

    def __init__(self, max_size: int = 1000, available: bool = True) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._available = available
        self._closed = False

    @property
    def available(self) -> bool:
        return self._available

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: PositionEvent) -> None:
        """Deliver one event. Raises asyncio.QueueFull if the consumer lags."""
        if self._closed:
            raise RuntimeError("position source is closed")
        self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[PositionEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Events already queued are still delivered before the sentinel.
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    def qsize(self) -> int:
        return self._queue.qsize()
