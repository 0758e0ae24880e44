"""Callback-style facade over an asyncio document store.

:class:`EventLoopCallbackStore` owns a private event loop running on a
daemon thread. Every lookup is scheduled on that loop and answered through
a ``callback(result, error)`` invoked exactly once, normally on the loop
thread, the way natively asynchronous database drivers report completion.
Lookups issued after :meth:`EventLoopCallbackStore.close` are answered at
once with a :class:`StoreAccessError`.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, TypeVar

from shop_stats.core.errors import StoreAccessError
from shop_stats.core.interfaces import IAsyncDocumentStore, StoreCallback

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventLoopCallbackStore:
    """Expose an :class:`IAsyncDocumentStore` through callbacks.

    The loop thread starts on first use. Starting, closing and scheduling
    are serialized by one lock, so a lookup is either scheduled before
    :meth:`close` cancels pending work or answered with an error at once.

    Args:
        store: The asyncio store to drive.
        name: Name of the loop thread.
    """

    def __init__(self, store: IAsyncDocumentStore, name: str = "shop-store-loop") -> None:
        self._store = store
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name=name, daemon=True)
        self._lock = threading.Lock()
        self._started = False
        self._closed = False

    @property
    def store(self) -> IAsyncDocumentStore:
        return self._store

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the loop thread.

        Raises:
            StoreAccessError: if the store was already closed.
        """
        with self._lock:
            if self._closed:
                raise StoreAccessError("start", "store is closed")
            self._start_locked()

    def _start_locked(self) -> None:
        if self._started:
            return
        self._thread.start()
        self._started = True
        logger.debug("Store event loop started")

    def close(self, timeout: float = 5.0) -> None:
        """Stop the loop; pending lookups are answered with an error."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            started = self._started
        if not started:
            self._loop.close()
            return
        asyncio.run_coroutine_threadsafe(self._cancel_pending(), self._loop).result(timeout)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Store event loop still running after %.1fs", timeout)
            return
        self._loop.close()
        logger.debug("Store event loop closed")

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    async def _cancel_pending(self) -> None:
        current = asyncio.current_task()
        pending = [t for t in asyncio.all_tasks() if t is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def call(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run *coro* on the store loop and block for its result.

        For setup and teardown work (connect, seeding) done outside the
        pipeline.

        Raises:
            StoreAccessError: if the store was already closed.
        """
        with self._lock:
            if self._closed:
                coro.close()
                raise StoreAccessError("call", "store is closed")
            self._start_locked()
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    # -- lookups -------------------------------------------------------------

    def lookup_one(self, collection: str, key: str, callback: StoreCallback) -> None:
        self._dispatch(self._store.lookup_one(collection, key), callback, f"lookup_one {collection}")

    def lookup_many(
        self, collection: str, field: str, value: Any, callback: StoreCallback
    ) -> None:
        self._dispatch(
            self._store.lookup_many(collection, field, value),
            callback,
            f"lookup_many {collection}.{field}",
        )

    def _dispatch(self, coro: Coroutine[Any, Any, Any], callback: StoreCallback, operation: str) -> None:
        # The callback runs in the dispatching thread's context.
        context = contextvars.copy_context()

        def _done(f: Future) -> None:
            if f.cancelled():
                context.run(callback, None, StoreAccessError(operation, "store loop stopped"))
                return
            error = f.exception()
            context.run(callback, None if error is not None else f.result(), error)

        with self._lock:
            closed = self._closed
            if not closed:
                self._start_locked()
                future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        if closed:
            coro.close()
            context.run(callback, None, StoreAccessError(operation, "store is closed"))
            return
        future.add_done_callback(_done)
