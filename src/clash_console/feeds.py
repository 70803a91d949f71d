"""
Feed Singletons
===============

Process-wide StreamReaders for the daemon's two real-time feeds.

    get_logs_stream()         -> StreamReader[LogRecord]
    get_connections_stream()  -> StreamReader[ConnectionsSnapshot]

Each reader is built exactly once, however many callers race for it:

    1. Resolve the controller endpoint           (failure is fatal)
    2. Logs only: read the daemon's log level    (failure is fatal)
    3. Probe the daemon version                  (failure is logged and ignored)
    4. Construct the StreamReader

A fatal failure is cached; every later call raises the same error until
dispose_streams() resets the singletons.

The version probe is informational. Transport choice comes from
settings.stream.prefer_websocket only.
"""

import logging
from urllib.parse import quote

from clash_console.client import ControlAPIError, ControlClient, get_control_client
from clash_console.config import settings
from clash_console.endpoint import Endpoint, resolve_endpoint
from clash_console.models import ConnectionsSnapshot, LogRecord
from clash_console.singleton import AsyncSingleton
from clash_console.stream import StreamConfig, StreamReader


logger = logging.getLogger(__name__)


UNKNOWN_VERSION = "unknown version"


def logs_url(endpoint: Endpoint, log_level: str) -> str:
    return f"{endpoint.base_url}/logs?level={quote(log_level, safe='')}"


def connections_url(endpoint: Endpoint) -> str:
    return f"{endpoint.base_url}/connections"


async def probe_version(client: ControlClient) -> str:
    """Return the daemon version, or UNKNOWN_VERSION if it can't be read."""
    try:
        version = await client.get_version()
    except ControlAPIError as e:
        logger.warning(f"Version probe failed, continuing: {e}")
        return UNKNOWN_VERSION
    return version.version


def _stream_config(url: str, endpoint: Endpoint) -> StreamConfig:
    return StreamConfig(
        url=url,
        buffer_length=settings.stream.buffer_length,
        token=endpoint.secret,
        prefer_websocket=settings.stream.prefer_websocket,
        reconnect_backoff_ms=settings.stream.reconnect_backoff_ms,
        ping_interval_seconds=settings.stream.ping_interval_seconds,
    )


async def _create_logs_stream() -> StreamReader[LogRecord]:
    endpoint = resolve_endpoint()
    client = await get_control_client()
    daemon_config = await client.get_config()
    version = await probe_version(client)

    url = logs_url(endpoint, daemon_config.log_level)
    logger.info(
        f"Opening logs feed: {url} "
        f"(daemon {version}, websocket={settings.stream.prefer_websocket})"
    )
    return StreamReader(
        _stream_config(url, endpoint),
        decode=LogRecord.model_validate_json,
        name="logs",
    )


async def _create_connections_stream() -> StreamReader[ConnectionsSnapshot]:
    endpoint = resolve_endpoint()
    client = await get_control_client()
    version = await probe_version(client)

    url = connections_url(endpoint)
    logger.info(
        f"Opening connections feed: {url} "
        f"(daemon {version}, websocket={settings.stream.prefer_websocket})"
    )
    return StreamReader(
        _stream_config(url, endpoint),
        decode=ConnectionsSnapshot.model_validate_json,
        name="connections",
    )


logs_stream: AsyncSingleton[StreamReader[LogRecord]] = AsyncSingleton(
    _create_logs_stream,
    name="logs-stream",
)
connections_stream: AsyncSingleton[StreamReader[ConnectionsSnapshot]] = AsyncSingleton(
    _create_connections_stream,
    name="connections-stream",
)


async def get_logs_stream() -> StreamReader[LogRecord]:
    """Return the process-wide logs reader."""
    return await logs_stream.get()


async def get_connections_stream() -> StreamReader[ConnectionsSnapshot]:
    """Return the process-wide connections reader."""
    return await connections_stream.get()


async def dispose_streams() -> None:
    """Close both cached readers (if resolved) and reset their singletons."""
    for singleton in (logs_stream, connections_stream):
        reader = singleton.resolved()
        singleton.reset()
        if reader is not None:
            await reader.close()
