"""
Connections Snapshot Schema
===========================

Point-in-time traffic snapshot from the daemon's /connections feed
(also returned by GET /connections).

Input Contract (from the daemon):
    {
        "uploadTotal": 1024,
        "downloadTotal": 4096,
        "connections": [
            {
                "id": "6f1c...",
                "metadata": {
                    "network": "tcp",
                    "type": "HTTP",
                    "host": "example.com",
                    "sourceIP": "127.0.0.1",
                    "sourcePort": "51234",
                    "destinationPort": "443",
                    "destinationIP": "93.184.216.34"
                },
                "upload": 512,
                "download": 2048,
                "start": "2024-01-01T00:00:00.000Z",
                "chains": ["DIRECT"],
                "rule": "Match",
                "rulePayload": ""
            }
        ]
    }

Notes:
    - "connections" is null when nothing is open; it is normalised to [].
    - Wire names are camelCase; models expose snake_case with aliases.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConnectionMetadata(BaseModel):
    """Network/transport metadata of one connection."""

    model_config = ConfigDict(populate_by_name=True)

    network: str = Field(..., description="tcp or udp")
    type: str = Field(..., description="Inbound type, e.g. HTTP, Socks5")
    host: str = Field(default="", description="Requested host name")
    source_ip: str = Field(default="", alias="sourceIP")
    source_port: str = Field(default="", alias="sourcePort")
    destination_port: str = Field(default="", alias="destinationPort")
    destination_ip: Optional[str] = Field(default=None, alias="destinationIP")


class Connection(BaseModel):
    """
    One active connection tracked by the daemon.

    Attributes:
        id: Daemon-assigned connection id
        metadata: Network/transport metadata
        upload: Bytes sent
        download: Bytes received
        start: Start time (ISO 8601 string as sent by the daemon)
        chains: Proxy chain, innermost first
        rule: Matched rule type
        rule_payload: Matched rule payload
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    metadata: ConnectionMetadata
    upload: int = Field(default=0, ge=0)
    download: int = Field(default=0, ge=0)
    start: str = ""
    chains: List[str] = Field(default_factory=list)
    rule: str = ""
    rule_payload: str = Field(default="", alias="rulePayload")


class ConnectionsSnapshot(BaseModel):
    """
    Aggregate traffic totals plus the ordered list of active connections.
    """

    model_config = ConfigDict(populate_by_name=True)

    upload_total: int = Field(default=0, ge=0, alias="uploadTotal")
    download_total: int = Field(default=0, ge=0, alias="downloadTotal")
    connections: List[Connection] = Field(default_factory=list)

    @field_validator("connections", mode="before")
    @classmethod
    def _null_connections(cls, value):
        return [] if value is None else value

    def by_id(self) -> dict:
        """Index connections by id."""
        return {conn.id: conn for conn in self.connections}
