"""Process-wide bounded worker pool with outstanding-run tracking.

The pool runs every blocking store lookup. Orchestration runs register with
the context when they start and release it from their terminal handler, so
shutdown can wait for the last run to finish instead of sleeping.
"""

from __future__ import annotations

import contextvars
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from shop_stats.core.errors import ExecutionContextClosed

from .async_result import AsyncResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExecutionContext:
    """Fixed-size worker pool shared by all data-access calls.

    Args:
        worker_count: Number of worker threads. Defaults to the number of
            available CPUs.
        name: Thread name prefix.
    """

    def __init__(self, worker_count: int | None = None, name: str = "shop-worker") -> None:
        self._worker_count = worker_count or os.cpu_count() or 1
        self._executor = ThreadPoolExecutor(
            max_workers=self._worker_count, thread_name_prefix=name
        )
        self._lock = threading.Condition()
        self._closed = False
        self._outstanding_runs = 0
        self._submitted = 0
        logger.debug("Execution context started with %d workers", self._worker_count)

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def is_shutdown(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def submitted_tasks(self) -> int:
        with self._lock:
            return self._submitted

    # -- tasks ---------------------------------------------------------------

    def submit(self, fn: Callable[..., T], *args: Any, label: str = "") -> AsyncResult[T]:
        """Run ``fn(*args)`` on the pool. Never blocks the caller.

        The task runs in a copy of the caller's context. The returned result
        fails with :class:`ExecutionContextClosed` if the context was shut
        down, or with whatever *fn* raised.
        """
        promise: AsyncResult[T] = AsyncResult(label or getattr(fn, "__name__", "task"))

        def _task() -> None:
            try:
                value = fn(*args)
            except Exception as exc:
                promise.complete_with_failure(exc)
                return
            promise.complete(value)

        with self._lock:
            if self._closed:
                promise.complete_with_failure(
                    ExecutionContextClosed(f"cannot submit {promise!r}: context is shut down")
                )
                return promise
            self._submitted += 1
            self._executor.submit(contextvars.copy_context().run, _task)
        return promise

    # -- run tracking --------------------------------------------------------

    @property
    def outstanding_runs(self) -> int:
        with self._lock:
            return self._outstanding_runs

    def begin_run(self) -> None:
        """Register a new orchestration run.

        Raises:
            ExecutionContextClosed: if the context is already shut down.
        """
        with self._lock:
            if self._closed:
                raise ExecutionContextClosed("cannot start a run: context is shut down")
            self._outstanding_runs += 1

    def end_run(self) -> None:
        """Release a run registered with :meth:`begin_run`."""
        with self._lock:
            if self._outstanding_runs == 0:
                logger.warning("end_run() called with no outstanding runs")
                return
            self._outstanding_runs -= 1
            if self._outstanding_runs == 0:
                self._lock.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no run is outstanding. Returns ``False`` on timeout."""
        with self._lock:
            return self._lock.wait_for(lambda: self._outstanding_runs == 0, timeout)

    # -- lifecycle -----------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Reject new submissions and let in-flight tasks finish."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info("Execution context shut down (%d tasks run)", self._submitted)

    def shutdown_when_idle(self, timeout: float | None = None) -> bool:
        """Wait for outstanding runs to finish, then shut down.

        Returns ``False`` if *timeout* elapsed with runs still outstanding;
        the context is shut down either way.
        """
        idle = self.wait_idle(timeout)
        if not idle:
            logger.warning(
                "Shutting down with %d outstanding runs after %.1fs",
                self.outstanding_runs,
                timeout or 0.0,
            )
        self.shutdown(wait=True)
        return idle

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown_when_idle()
