"""
Test Helpers
============

In-memory feed transport and polling helpers shared by the tests.
"""

import asyncio
import json
from typing import Callable

import httpx


DISCONNECT = object()
END = object()


class FakeFeed:
    """
    In-memory stand-in for a feed transport.

    Every call opens a new "connection" that yields queued messages.
    Queue DISCONNECT to fail the connection, END to close it cleanly.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.connects = 0
        self.active = 0
        self.max_active = 0
        self.configs = []

    def push(self, *messages) -> None:
        for message in messages:
            self.queue.put_nowait(message)

    def disconnect(self) -> None:
        self.queue.put_nowait(DISCONNECT)

    def end(self) -> None:
        self.queue.put_nowait(END)

    async def __call__(self, config):
        self.connects += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.configs.append(config)
        try:
            while True:
                item = await self.queue.get()
                if item is DISCONNECT:
                    raise ConnectionError("simulated disconnect")
                if item is END:
                    return
                yield item
        finally:
            self.active -= 1


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate on the event loop until true or fail."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


def log_line(payload: str, level: str = "info") -> str:
    return json.dumps({"type": level, "payload": payload})


class FakeDaemon:
    """Routes requests to canned responses and records them."""

    def __init__(self) -> None:
        self.routes = {}
        self.requests = []

    def route(self, method: str, path: str, status: int = 200, body=None) -> None:
        self.routes[(method, path)] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "not found"})
        status, body = self.routes[key]
        if isinstance(body, Exception):
            raise body
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)
