"""
Stream Module
=============

Real-time feed consumption and record buffering components.

This module provides the feed layer for clash-console:
    - StreamConfig: Immutable per-reader configuration
    - Record: Decoded message plus its sequence number
    - RecordBuffer: Ring buffer with per-subscriber cursors
    - StreamReader: WebSocket / HTTP streaming reader with reconnection

Example:
    from clash_console.stream import StreamConfig, StreamReader

    reader = StreamReader(
        StreamConfig(url="http://127.0.0.1:9090/connections", token="secret"),
    )
    sub = reader.subscribe()

    while True:
        record = await reader.next_record(sub)
        process(record.data)
"""

from clash_console.stream.config import StreamConfig
from clash_console.stream.record import Record
from clash_console.stream.buffer import RecordBuffer, StreamClosedError, Subscription
from clash_console.stream.reader import ReaderState, StreamReader, StreamReaderMetrics
from clash_console.stream.transport import (
    http_stream_messages,
    select_transport,
    websocket_messages,
    websocket_url,
)


__all__ = [
    "StreamConfig",
    "Record",
    "RecordBuffer",
    "StreamClosedError",
    "Subscription",
    "ReaderState",
    "StreamReader",
    "StreamReaderMetrics",
    "http_stream_messages",
    "select_transport",
    "websocket_messages",
    "websocket_url",
]
