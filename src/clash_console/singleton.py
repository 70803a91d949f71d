"""
Async Singleton
===============

Once-only asynchronous initializer.

AsyncSingleton wraps a coroutine factory and guarantees that the factory
runs at most once, no matter how many callers await it concurrently.
The outcome is cached: every caller receives the identical value, or the
identical exception if the factory failed.

Design Rules:
    - Factory runs as its own task; cancelling one caller does not
      cancel the shared run
    - Failures are cached and NOT retried automatically
    - reset() is the only way to run the factory again
    - Callers cut off by reset() get SingletonResetError, never a
      CancelledError that looks like their own cancellation

Example:
    async def build_client() -> ControlClient:
        endpoint = resolve_endpoint()
        return ControlClient(endpoint)

    get_client = AsyncSingleton(build_client, name="control-client")

    client = await get_client()      # runs build_client
    same = await get_client.get()    # cached
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingletonResetError(Exception):
    """Raised to callers whose pending get() was cut off by reset()."""
    pass


class SingletonState(str, Enum):
    """Resolution state of an AsyncSingleton."""

    UNRESOLVED = "UNRESOLVED"
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


class AsyncSingleton(Generic[T]):
    """
    Caches the result of an async factory for the process lifetime.

    Attributes:
        name: Label used in log messages
        state: Current SingletonState
    """

    def __init__(
        self,
        factory: Callable[[], Awaitable[T]],
        name: Optional[str] = None,
    ) -> None:
        self._factory = factory
        self.name = name or getattr(factory, "__name__", "singleton")
        self._future: Optional[asyncio.Future] = None

    @property
    def state(self) -> SingletonState:
        if self._future is None:
            return SingletonState.UNRESOLVED
        if not self._future.done():
            return SingletonState.PENDING
        if self._future.cancelled() or self._future.exception() is not None:
            return SingletonState.FAILED
        return SingletonState.RESOLVED

    def resolved(self) -> Optional[T]:
        """Return the cached value without awaiting, or None if not resolved."""
        if self.state is SingletonState.RESOLVED:
            return self._future.result()
        return None

    async def get(self) -> T:
        """
        Return the shared value, running the factory on first use.

        Raises:
            Whatever the factory raised, for this and every later call.
            SingletonResetError: If reset() ran while the factory was pending
        """
        if self._future is None:
            logger.debug(f"Initializing singleton '{self.name}'")
            self._future = asyncio.ensure_future(self._run())

        future = self._future
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # Only reset() cancels the shared future itself
            if future.cancelled():
                raise SingletonResetError(
                    f"Singleton '{self.name}' was reset during initialization"
                ) from None
            raise

    async def _run(self) -> T:
        try:
            value = await self._factory()
        except Exception as e:
            logger.error(f"Singleton '{self.name}' failed to initialize: {e}")
            raise
        logger.debug(f"Singleton '{self.name}' resolved")
        return value

    def reset(self) -> None:
        """
        Forget the cached outcome.

        The next get() runs the factory again. A value that was already
        handed out is not closed or otherwise touched. A factory still
        running is cancelled, and its waiters get SingletonResetError.
        """
        if self._future is not None and not self._future.done():
            self._future.cancel()
        self._future = None

    def __call__(self) -> Awaitable[T]:
        return self.get()
