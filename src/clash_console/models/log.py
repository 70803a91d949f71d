"""
Log Record Schema
=================

One line of the daemon's /logs feed.

Input Contract (from the daemon):
    {
        "type": "info",
        "payload": "[TCP] 127.0.0.1:51234 --> example.com:443 match Match using DIRECT"
    }
"""

from pydantic import BaseModel, Field


class LogRecord(BaseModel):
    """
    Single log line emitted by the daemon.

    Attributes:
        type: Log level of the line (debug, info, warning, error)
        payload: Log message text
    """

    type: str = Field(..., description="Log level")
    payload: str = Field(..., description="Log message")

    def __str__(self) -> str:
        return f"[{self.type}] {self.payload}"
