"""
Stream Configuration
====================

Immutable per-reader configuration.

Example:
    config = StreamConfig(
        url="http://127.0.0.1:9090/logs?level=info",
        buffer_length=200,
        token="secret",
    )
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StreamConfig(BaseModel):
    """
    Configuration of a single StreamReader.

    Frozen: a reader keeps the same config for its whole lifetime,
    including every reconnect.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        ...,
        description="Feed URL in http(s) form; converted to ws(s) for WebSocket",
    )
    buffer_length: int = Field(
        default=200,
        ge=1,
        description="Number of most recent records kept",
    )
    token: Optional[str] = Field(
        default=None,
        description="Bearer secret passed to the daemon",
    )
    prefer_websocket: bool = Field(
        default=True,
        description="Use WebSocket transport instead of HTTP streaming",
    )
    reconnect_backoff_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay in milliseconds between reconnect attempts",
    )
    ping_interval_seconds: float = Field(
        default=20.0,
        gt=0,
        description="WebSocket keepalive ping interval",
    )
