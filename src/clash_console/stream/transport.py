"""
Feed Transports
===============

The two wire transports a StreamReader can read a feed over.

A transport is a callable taking a StreamConfig and returning an async
iterator of raw messages (one JSON document each). It owns exactly one
connection for as long as it is iterated; the connection is torn down
when iteration ends, fails or is cancelled.

    - websocket_messages: persistent WebSocket. The http(s) URL is
      rewritten to ws(s) and the secret is sent as the "token" query
      parameter, the form the daemon accepts from browsers.
    - http_stream_messages: long-lived GET. The secret is sent as a
      bearer header and the body is read as newline-delimited JSON.
"""

import logging
from typing import AsyncIterator, Callable, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
import websockets

from clash_console.stream.config import StreamConfig


logger = logging.getLogger(__name__)


Message = Union[str, bytes]
Transport = Callable[[StreamConfig], AsyncIterator[Message]]

_WS_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}


def websocket_url(url: str, token: Optional[str] = None) -> str:
    """
    Convert a feed URL into its WebSocket form.

    Example:
        websocket_url("http://127.0.0.1:9090/logs?level=info", "s3cret")
        -> "ws://127.0.0.1:9090/logs?level=info&token=s3cret"
    """
    parts = urlsplit(url)
    scheme = _WS_SCHEMES.get(parts.scheme.lower())
    if scheme is None:
        raise ValueError(f"Unsupported feed URL scheme: {parts.scheme!r}")

    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "token"]
    query.append(("token", token or ""))

    return urlunsplit((scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def bearer_headers(token: Optional[str]) -> dict:
    return {"Authorization": f"Bearer {token}"} if token else {}


async def websocket_messages(config: StreamConfig) -> AsyncIterator[Message]:
    """Yield messages from a WebSocket connection to the feed."""
    url = websocket_url(config.url, config.token)

    async with websockets.connect(
        url,
        ping_interval=config.ping_interval_seconds,
        ping_timeout=10,
        close_timeout=5,
        max_size=None,
    ) as ws:
        logger.info(f"WebSocket connected: {config.url}")
        async for message in ws:
            yield message

    logger.info(f"WebSocket closed by server: {config.url}")


async def http_stream_messages(
    config: StreamConfig,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[Message]:
    """
    Yield newline-delimited messages from a streaming HTTP response.

    Args:
        config: Stream configuration
        http_transport: Optional httpx transport (used by tests)
    """
    timeout = httpx.Timeout(10.0, read=None)

    async with httpx.AsyncClient(timeout=timeout, transport=http_transport) as client:
        async with client.stream("GET", config.url, headers=bearer_headers(config.token)) as response:
            response.raise_for_status()
            logger.info(f"HTTP stream connected: {config.url}")

            async for line in response.aiter_lines():
                line = line.strip()
                if line:
                    yield line

    logger.info(f"HTTP stream ended: {config.url}")


def select_transport(config: StreamConfig) -> Transport:
    """Pick the transport for a (re)connect attempt."""
    if config.prefer_websocket:
        return websocket_messages
    return http_stream_messages
