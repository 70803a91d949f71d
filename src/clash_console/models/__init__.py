"""
Data Models
===========

Pydantic models for the daemon's control API.

This module re-exports all data models for convenient access.

Models:
    Feeds:
        - LogRecord: One line of the /logs feed
        - ConnectionsSnapshot: One message of the /connections feed
        - Connection, ConnectionMetadata: Entries of a snapshot

    Control API:
        - DaemonConfig, Version
        - Rule, Rules
        - Proxy, Group, ProxyHistory, Proxies, ProxyDelay
        - ProxyProvider, ProxyProviders, RuleProvider, RuleProviders
"""

from clash_console.models.log import LogRecord
from clash_console.models.connections import (
    Connection,
    ConnectionMetadata,
    ConnectionsSnapshot,
)
from clash_console.models.control import (
    DaemonConfig,
    Group,
    Proxies,
    Proxy,
    ProxyDelay,
    ProxyHistory,
    ProxyProvider,
    ProxyProviders,
    Rule,
    RuleProvider,
    RuleProviders,
    Rules,
    Version,
    parse_proxy,
)

__all__ = [
    # Feeds
    "LogRecord",
    "Connection",
    "ConnectionMetadata",
    "ConnectionsSnapshot",
    # Control API
    "DaemonConfig",
    "Version",
    "Rule",
    "Rules",
    "Proxy",
    "Group",
    "ProxyHistory",
    "Proxies",
    "ProxyDelay",
    "ProxyProvider",
    "ProxyProviders",
    "RuleProvider",
    "RuleProviders",
    "parse_proxy",
]
