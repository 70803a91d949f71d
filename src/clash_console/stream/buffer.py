"""
Record Buffer
=============

Bounded ring buffer with independent subscriber cursors.

This module provides the RecordBuffer class, which sits between a
StreamReader's read loop (the only writer) and any number of readers.

Design Rules:
    - Fixed maximum size (evicts oldest on overflow)
    - append() never waits; a slow reader cannot stall the writer
    - Every reader has its own cursor (last sequence delivered)
    - A reader that falls behind skips to the oldest buffered record
      and the skipped count is recorded on its Subscription
    - close() wakes every waiting reader with StreamClosedError
"""

import asyncio
import logging
import time
from collections import deque
from typing import Deque, Generic, List, Optional, Set, TypeVar

from clash_console.stream.record import Record


logger = logging.getLogger(__name__)

T = TypeVar("T")


class StreamClosedError(Exception):
    """Raised to readers once the stream (or their subscription) is closed."""
    pass


class Subscription(Generic[T]):
    """
    Read cursor into a RecordBuffer.

    Async-iterable: iteration ends when the stream closes.

    Attributes:
        last_seq: Sequence number of the last record delivered
        missed: Records evicted before this cursor could read them
    """

    def __init__(self, buffer: "RecordBuffer[T]", last_seq: int) -> None:
        self._buffer = buffer
        self.last_seq = last_seq
        self.missed = 0
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def next(self) -> Record[T]:
        return await self._buffer.next_record(self)

    def close(self) -> None:
        self._buffer.unsubscribe(self)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> Record[T]:
        try:
            return await self._buffer.next_record(self)
        except StreamClosedError:
            raise StopAsyncIteration

    def __repr__(self) -> str:
        return (
            f"Subscription(last_seq={self.last_seq}, "
            f"missed={self.missed}, active={self._active})"
        )


class RecordBuffer(Generic[T]):
    """
    Ring buffer of the most recent records of a feed.

    Attributes:
        maxsize: Maximum number of records kept
        evicted_count: Records dropped because the buffer was full

    Example:
        buffer = RecordBuffer(maxsize=200)
        sub = buffer.subscribe()

        # Writer
        buffer.append(log_line)

        # Reader
        record = await buffer.next_record(sub)
    """

    def __init__(self, maxsize: int = 200) -> None:
        """
        Initialize record buffer.

        Args:
            maxsize: Maximum records to keep. Must be >= 1.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._records: Deque[Record[T]] = deque(maxlen=maxsize)
        self._next_seq: int = 1
        self._evicted_count: int = 0
        self._total_put: int = 0
        self._closed: bool = False
        self._subscriptions: Set[Subscription[T]] = set()

        # Replaced on every append; waiters hold the old one
        self._new_data = asyncio.Event()

    @property
    def maxsize(self) -> int:
        """Maximum buffer size."""
        return self._maxsize

    @property
    def size(self) -> int:
        """Current number of records in buffer."""
        return len(self._records)

    @property
    def evicted_count(self) -> int:
        """Number of records evicted due to overflow."""
        return self._evicted_count

    @property
    def total_put(self) -> int:
        """Total records ever appended."""
        return self._total_put

    @property
    def last_seq(self) -> int:
        """Sequence number of the newest record (0 if none yet)."""
        return self._next_seq - 1

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def append(self, data: T) -> Record[T]:
        """
        Add a record under the next sequence number, evicting the oldest if full.

        Args:
            data: Decoded payload

        Returns:
            The stored Record.

        Raises:
            StreamClosedError: If the buffer was closed
        """
        if self._closed:
            raise StreamClosedError("buffer is closed")

        record = Record(seq=self._next_seq, data=data, received_at=time.time())
        self._next_seq += 1
        self._total_put += 1

        if len(self._records) == self._maxsize:
            self._evicted_count += 1
        self._records.append(record)

        self._wake()
        return record

    def subscribe(self) -> Subscription[T]:
        """
        Register a cursor at the current tail.

        The subscriber only sees records appended after this call.

        Raises:
            StreamClosedError: If the buffer was closed
        """
        if self._closed:
            raise StreamClosedError("buffer is closed")
        subscription = Subscription(self, last_seq=self.last_seq)
        self._subscriptions.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        """Release a cursor. Pending and later reads on it raise StreamClosedError."""
        subscription._active = False
        self._subscriptions.discard(subscription)
        self._wake()

    async def next_record(self, subscription: Subscription[T]) -> Record[T]:
        """
        Wait for the next record after the subscription's cursor.

        Returns:
            Next Record for this subscription.

        Raises:
            StreamClosedError: If the buffer or the subscription is closed
        """
        while True:
            if self._closed or not subscription.active:
                raise StreamClosedError("stream is closed")

            record = self._advance(subscription)
            if record is not None:
                return record

            await self._new_data.wait()

    def snapshot(self) -> List[Record[T]]:
        """Copy of the buffered records, oldest first."""
        return list(self._records)

    def close(self) -> None:
        """Close the buffer and release every subscription."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription._active = False
        self._subscriptions.clear()
        self._wake()

    def metrics(self) -> dict:
        """
        Get buffer metrics for observability.

        Returns:
            Dict with size, maxsize, evicted_count, total_put, last_seq, subscribers
        """
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "evicted_count": self._evicted_count,
            "total_put": self._total_put,
            "last_seq": self.last_seq,
            "subscribers": self.subscriber_count,
        }

    def _advance(self, subscription: Subscription[T]) -> Optional[Record[T]]:
        if not self._records:
            return None

        wanted = subscription.last_seq + 1
        oldest = self._records[0].seq
        if wanted > self._records[-1].seq:
            return None

        if wanted < oldest:
            skipped = oldest - wanted
            subscription.missed += skipped
            logger.debug(f"Subscriber fell behind, skipped {skipped} records")
            wanted = oldest

        # Buffered sequence numbers are contiguous
        record = self._records[wanted - oldest]
        subscription.last_seq = record.seq
        return record

    def _wake(self) -> None:
        event = self._new_data
        self._new_data = asyncio.Event()
        event.set()
