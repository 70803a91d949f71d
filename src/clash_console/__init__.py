"""
clash-console
=============

Async control client for a local proxy daemon's HTTP control API.

The package resolves the daemon's controller address and secret, wraps
its REST endpoints, and turns its two real-time feeds (log lines and
connection snapshots) into bounded, multi-subscriber record streams.

Components:
    - endpoint: Controller address/secret resolution
    - singleton: Once-only async initializer
    - client: Typed REST client
    - stream: Feed reader, ring buffer and transports
    - feeds: Process-wide logs/connections readers
    - models: Pydantic wire models

Example:
    from clash_console.feeds import get_logs_stream

    reader = await get_logs_stream()
    async for record in reader.subscribe():
        print(record.seq, record.data)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
