"""
Ordered, bounded event channel between one orchestration run and its consumer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional, Protocol

from pydantic import BaseModel

from .errors import EventStreamClosedError

DEFAULT_QUEUE_SIZE = 64

_CLOSED = object()


class IEventEmitter(Protocol):
    async def emit(self, event: BaseModel) -> None: ...


class EventStream:
    """
    Single-consumer channel of stream events.

    ``emit`` suspends while the queue is full, so a producer never runs
    further ahead of the consumer than ``maxsize`` events.
    """

    def __init__(self, *, maxsize: int = DEFAULT_QUEUE_SIZE, logger: Optional[logging.Logger] = None) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._emitted = 0
        self.logger = logger or logging.getLogger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: BaseModel) -> None:
        if self._closed:
            raise EventStreamClosedError(f"Cannot emit '{getattr(event, 'type', event)}' on a closed stream.")
        await self._queue.put(event)
        self._emitted += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Consumer stops once the backlog is drained.
            pass
        self.logger.debug("Event stream closed after %d events", self._emitted)

    async def __aiter__(self) -> AsyncIterator[BaseModel]:
        while True:
            if self._closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]


__all__ = ["DEFAULT_QUEUE_SIZE", "EventStream", "IEventEmitter"]
