"""
Bounded single-producer channel between a background task and a stream consumer.
"""

import asyncio
import weakref
from typing import AsyncIterator, Generic, Optional, TypeVar

T = TypeVar("T")

_END = object()


class Channel(Generic[T]):
    """
    Bounded queue with an end-of-stream marker and a receiver-closed signal.

    `send` suspends while the buffer is full and returns False once the
    receiver has gone away, so a producer never blocks on an abandoned stream.
    """

    def __init__(self, capacity: int = 16):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._receiver_closed = asyncio.Event()
        self._finished = False
        self._end_queued = False
        self._error: Optional[BaseException] = None

    @property
    def receiver_closed(self) -> bool:
        return self._receiver_closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def send(self, item: T) -> bool:
        """Deliver one item. Returns False if the receiver is gone."""
        if self._receiver_closed.is_set():
            return False
        if not self._queue.full():
            self._queue.put_nowait(item)
            return True

        put = asyncio.ensure_future(self._queue.put(item))
        closed = asyncio.ensure_future(self._receiver_closed.wait())
        try:
            await asyncio.wait({put, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in (put, closed):
                if not waiter.done():
                    waiter.cancel()
        return put.done() and not put.cancelled() and not self._receiver_closed.is_set()

    async def finish(self, error: Optional[BaseException] = None) -> None:
        """Mark the end of the stream, optionally with a terminal error."""
        if self._finished:
            return
        self._finished = True
        self._error = error
        self._end_queued = await self.send(_END)

    def abort(self, error: BaseException) -> None:
        """
        End the stream with `error` immediately, without waiting for buffer space.

        Buffered items are dropped. Does nothing once the end marker is queued
        or the receiver is gone, so it is safe to call after `finish`.
        """
        if self._end_queued or self._receiver_closed.is_set():
            return
        self._finished = True
        self._error = error
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_END)
        self._end_queued = True

    def close_receiver(self) -> None:
        """Signal the producer that nobody will read any more items."""
        self._receiver_closed.set()
        # Drop buffered items so their memory is released immediately
        while not self._queue.empty():
            self._queue.get_nowait()

    async def receive(self) -> T:
        """Next item; raises StopAsyncIteration at the end or the terminal error."""
        if self._receiver_closed.is_set():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._receiver_closed.set()
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration
        return item


class ReceiverStream(Generic[T]):
    """
    Consumer end of a Channel: an async iterator and async context manager.

    Finite and single-pass. Stopping early (aclose, leaving `async with`, or
    dropping the object) tells the producer to stop; it does not cancel the
    producer's in-flight request.
    """

    def __init__(self, channel: Channel[T]):
        self._channel = channel
        self._finalizer = weakref.finalize(self, channel.close_receiver)

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        return await self._channel.receive()

    async def aclose(self) -> None:
        self._finalizer()

    async def __aenter__(self) -> "ReceiverStream[T]":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def collect(self) -> list:
        """Drain the remaining items into a list."""
        return [item async for item in self]

    @property
    def closed(self) -> bool:
        return self._channel.receiver_closed
