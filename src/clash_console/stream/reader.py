"""
Stream Reader
=============

Live feed reader for the daemon's /logs and /connections endpoints.

This module provides the StreamReader class which:
    - Schedules its own read loop on construction (no I/O in __init__)
    - Reads the feed over WebSocket or HTTP streaming
    - Decodes each message into a typed record
    - Drops and counts malformed messages without stopping
    - Keeps the most recent records in a RecordBuffer
    - Reconnects with a fixed backoff until close() is called

Design Rules:
    - At most one transport connection per reader at any time
    - Only the read loop writes to the buffer
    - Sequence numbers continue across reconnects
    - Transport errors are never raised to subscribers
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from clash_console.stream.buffer import RecordBuffer, Subscription
from clash_console.stream.config import StreamConfig
from clash_console.stream.record import Record
from clash_console.stream.transport import Message, Transport, select_transport


logger = logging.getLogger(__name__)

T = TypeVar("T")

Decoder = Callable[[Message], T]


class ReaderState(str, Enum):
    """Lifecycle states of a StreamReader."""

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    RETRYING = "RETRYING"
    CLOSED = "CLOSED"


class StreamReaderMetrics:
    """Metrics for StreamReader observability."""

    __slots__ = (
        "records_received",
        "parse_errors",
        "reconnect_count",
        "last_seq",
        "last_received_at",
    )

    def __init__(self) -> None:
        self.records_received: int = 0
        self.parse_errors: int = 0
        self.reconnect_count: int = 0
        self.last_seq: int = 0
        self.last_received_at: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "records_received": self.records_received,
            "parse_errors": self.parse_errors,
            "reconnect_count": self.reconnect_count,
            "last_seq": self.last_seq,
            "last_received_at": self.last_received_at,
        }


def decode_json(message: Message) -> Any:
    """Default decoder: plain JSON."""
    return json.loads(message)


class StreamReader(Generic[T]):
    """
    Bounded, multi-subscriber reader of one daemon feed.

    Must be constructed inside a running event loop; the read loop is
    started as a background task right away.

    Attributes:
        config: Immutable stream configuration
        name: Label used in log messages
        metrics: Operational metrics

    Example:
        reader = StreamReader(
            StreamConfig(url="http://127.0.0.1:9090/logs?level=info"),
            decode=LogRecord.model_validate_json,
        )
        sub = reader.subscribe()

        async for record in sub:
            print(record.seq, record.data.payload)

        # Elsewhere, on shutdown
        await reader.close()
    """

    def __init__(
        self,
        config: StreamConfig,
        decode: Optional[Decoder] = None,
        transport: Optional[Transport] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Initialize and start the reader.

        Args:
            config: Stream configuration
            decode: Function turning one raw message into a record.
                Any exception it raises marks the message malformed.
            transport: Override for the transport chosen from config
            name: Label for logs (defaults to the feed URL)

        Raises:
            RuntimeError: If there is no running event loop
        """
        self.config = config
        self.name = name or config.url
        self.metrics = StreamReaderMetrics()

        self._decode: Decoder = decode or decode_json
        self._transport = transport
        self._buffer: RecordBuffer[T] = RecordBuffer(maxsize=config.buffer_length)
        self._state = ReaderState.IDLE
        self._closed = False
        self._stop_event = asyncio.Event()

        loop = asyncio.get_running_loop()
        self._task: Optional[asyncio.Task] = loop.create_task(self._run())

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connected(self) -> bool:
        """Whether the reader is currently receiving records."""
        return self._state is ReaderState.STREAMING

    # -------------------------------------------------------------------------
    # Consumer API
    # -------------------------------------------------------------------------

    def subscribe(self) -> Subscription[T]:
        """
        Register a new subscriber at the current tail.

        Only records that arrive after this call are delivered.

        Raises:
            StreamClosedError: If the reader is closed
        """
        return self._buffer.subscribe()

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        self._buffer.unsubscribe(subscription)

    async def next_record(self, subscription: Subscription[T]) -> Record[T]:
        """
        Wait for the next record for this subscription.

        Suspends only the caller. There is no timeout; wrap in
        asyncio.wait_for() if one is needed.

        Raises:
            StreamClosedError: If the reader is or becomes closed
        """
        return await self._buffer.next_record(subscription)

    def buffer(self) -> List[Record[T]]:
        """Copy of the buffered records, oldest first."""
        return self._buffer.snapshot()

    def stats(self) -> dict:
        """Reader and buffer metrics combined."""
        return {
            "name": self.name,
            "state": self._state.value,
            **self.metrics.to_dict(),
            "buffer": self._buffer.metrics(),
        }

    async def close(self) -> None:
        """
        Stop the reader.

        Tears down the transport and wakes every waiting subscriber
        with StreamClosedError. Safe to call more than once.
        """
        if self._closed:
            return

        logger.info(f"StreamReader closing: {self.name}")
        self._closed = True
        self._state = ReaderState.CLOSED
        self._stop_event.set()
        self._buffer.close()

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "StreamReader[T]":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Read loop
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        """Connect, consume and reconnect until closed."""
        logger.info(f"StreamReader starting: {self.name}")

        while not self._closed:
            self._state = ReaderState.CONNECTING
            try:
                await self._connect_and_consume()
                logger.info(f"Feed ended: {self.name}")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Feed transport error ({self.name}): {e!r}")

            if self._closed:
                break

            self._state = ReaderState.RETRYING
            self.metrics.reconnect_count += 1
            backoff_sec = self.config.reconnect_backoff_ms / 1000.0
            logger.info(
                f"Reconnecting {self.name} in {backoff_sec:.1f}s "
                f"(attempt {self.metrics.reconnect_count})"
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=backoff_sec)
                # Stop event was set, exit
                break
            except asyncio.TimeoutError:
                pass

        self._state = ReaderState.CLOSED
        logger.info(f"StreamReader stopped: {self.name}")

    async def _connect_and_consume(self) -> None:
        """Open one transport connection and consume it until it ends."""
        transport = self._transport or select_transport(self.config)
        messages = transport(self.config)

        try:
            async for message in messages:
                if self._closed:
                    break
                self._state = ReaderState.STREAMING
                self._handle_message(message)
        finally:
            aclose = getattr(messages, "aclose", None)
            if aclose is not None:
                await aclose()

    def _handle_message(self, message: Message) -> None:
        try:
            data = self._decode(message)
        except Exception as e:
            # Any decoder failure (bad JSON, schema mismatch, nesting too
            # deep) drops this message only; the connection stays up
            self.metrics.parse_errors += 1
            logger.warning(f"Dropped malformed message on {self.name}: {e}")
            return

        record = self._buffer.append(data)
        self.metrics.records_received += 1
        self.metrics.last_seq = record.seq
        self.metrics.last_received_at = record.received_at
