"""Close-once result stream shared between the dispatch engine and its caller."""

from __future__ import annotations

import asyncio
from typing import Self

from push_relay.core.exceptions import ResultStreamClosedError
from push_relay.types.models import PushResult

__all__ = ["ResultStream"]


class ResultStream:
    """Unordered stream of push results.

    Producers ``put`` results and the engine calls ``close`` exactly once
    after every producer has finished. Consumers iterate with ``async for``
    until the stream is closed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[PushResult | None] = asyncio.Queue()
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, result: PushResult) -> None:
        """Append a result to the stream.

        Raises:
            ResultStreamClosedError: If the stream was already closed
        """
        if self._closed:
            msg = "Cannot write to a closed result stream"
            raise ResultStreamClosedError(msg)
        await self._queue.put(result)

    def close(self) -> None:
        """Mark the end of the stream.

        Raises:
            ResultStreamClosedError: If the stream was already closed
        """
        if self._closed:
            msg = "Result stream closed twice"
            raise ResultStreamClosedError(msg)
        self._closed = True
        self._queue.put_nowait(None)

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> PushResult:
        item = await self._queue.get()
        if item is None:
            # Leave the marker in place so later iterations also terminate
            self._queue.put_nowait(None)
            raise StopAsyncIteration
        return item

    async def collect(self) -> tuple[PushResult, ...]:
        """Consume the stream until it is closed and return every result."""
        return tuple([result async for result in self])
