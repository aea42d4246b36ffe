"""Synchronous and asynchronous execution of adapter operations.

Each adapter operation is written once as a coroutine. ``BlockingRunner``
executes it on a private event loop running in a daemon thread and lets the
caller choose per call whether to block for the result (``sync=True``) or
to receive an awaitable (``sync=False``).

Running everything on one loop keeps the aiohttp session inside the GCS
client bound to a single loop, whichever mode the caller uses.
"""

import asyncio
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import Future
from typing import Any, Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BlockingRunner:
    """Runs adapter coroutines on a dedicated event loop thread.

    The loop and thread are started lazily on first use and stopped by
    ``close()``. A closed runner restarts on the next submission.
    """

    def __init__(self, name: str = "kv-gcs-runner") -> None:
        self.name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._serve, args=(loop,), name=self.name, daemon=True
                )
                thread.start()
                self._loop = loop
                self._thread = thread
                logger.debug("Started runner loop %s", self.name)
            return self._loop

    @staticmethod
    def _serve(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    def _in_runner(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def submit(self, coro: Coroutine[Any, Any, T]) -> "Future[T]":
        """Schedule a coroutine on the runner loop."""
        return asyncio.run_coroutine_threadsafe(coro, self._ensure_loop())

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the runner loop and block for its result.

        Raises:
            RuntimeError: If called from the runner thread itself, which
                would deadlock.
        """
        if self._in_runner():
            coro.close()
            raise RuntimeError("Blocking call issued from the runner loop")
        return self.submit(coro).result()

    async def run_async(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the runner loop and await its result."""
        if self._in_runner():
            return await coro
        return await asyncio.wrap_future(self.submit(coro))

    def dispatch(self, coro: Coroutine[Any, Any, T], sync: bool) -> T | Awaitable[T]:
        """Block for ``coro`` when ``sync`` is set, else return an awaitable."""
        if sync:
            return self.run(coro)
        return self.run_async(coro)

    def close(self) -> None:
        """Stop the loop and join the runner thread."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return
        if thread is threading.current_thread():
            loop.call_soon(loop.stop)
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join()
        loop.close()
        logger.debug("Stopped runner loop %s", self.name)
