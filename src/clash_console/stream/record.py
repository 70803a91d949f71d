"""
Record Data Model
=================

Internal record representation for the feed pipeline.

A Record wraps one decoded feed message (a LogRecord, a
ConnectionsSnapshot, ...) together with the sequence number the
StreamReader assigned to it.

Design Rules:
    - Sequence numbers start at 1 and increase by exactly 1 per record
    - Sequence numbers are never reused, even across reconnects
    - The payload is passed through unchanged
"""

from dataclasses import dataclass
from typing import Generic, TypeVar


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Record(Generic[T]):
    """
    Decoded feed message with its position in the stream.

    Attributes:
        seq: Sequence number assigned on arrival
        data: Decoded payload
        received_at: UNIX timestamp when the message was decoded
    """

    seq: int
    data: T
    received_at: float

    def __repr__(self) -> str:
        """Compact repr that doesn't dump large snapshots."""
        return (
            f"Record(seq={self.seq}, "
            f"type={type(self.data).__name__}, "
            f"received_at={self.received_at:.3f})"
        )
