"""Write-once promise shared by every step of the statistics pipeline.

An :class:`AsyncResult` completes exactly once, either with a value or with
a failure. Failures are exception instances carried as values: they are
never raised through the chain, only handed to the next continuation.

Continuations attached before completion run on whichever thread performs
the completion; continuations attached afterwards run immediately on the
attaching thread. Either way they run in the context captured at attach
time. Built on :class:`concurrent.futures.Future`, which provides the
write-once state machine and the blocking wait.
"""

from __future__ import annotations

import contextvars
import logging
from concurrent.futures import Future, InvalidStateError
from typing import Any, Callable, Generic, TypeVar

from shop_stats.core.result import Err, Ok, Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class AsyncResult(Generic[T]):
    """Eventual outcome of one asynchronous step."""

    __slots__ = ("_future", "_label")

    def __init__(self, label: str = "") -> None:
        self._future: Future = Future()
        self._label = label

    # -- factories -----------------------------------------------------------

    @classmethod
    def completed(cls, value: T, label: str = "") -> AsyncResult[T]:
        result: AsyncResult[T] = cls(label)
        result.complete(value)
        return result

    @classmethod
    def failed(cls, failure: BaseException, label: str = "") -> AsyncResult[T]:
        result: AsyncResult[T] = cls(label)
        result.complete_with_failure(failure)
        return result

    # -- completion ----------------------------------------------------------

    def complete(self, value: T) -> bool:
        """Complete with *value*. Returns ``False`` if already completed."""
        try:
            self._future.set_result(value)
        except InvalidStateError:
            logger.debug("Ignoring second completion of %r", self)
            return False
        return True

    def complete_with_failure(self, failure: BaseException) -> bool:
        """Complete with *failure*. Returns ``False`` if already completed."""
        try:
            self._future.set_exception(failure)
        except InvalidStateError:
            logger.debug("Ignoring second completion of %r", self)
            return False
        return True

    def complete_from(self, other: AsyncResult[T]) -> bool:
        """Copy the outcome of an already completed *other*."""
        failure = other.failure()
        if failure is not None:
            return self.complete_with_failure(failure)
        return self.complete(other._future.result())

    # -- state ---------------------------------------------------------------

    @property
    def is_done(self) -> bool:
        return self._future.done()

    @property
    def is_failed(self) -> bool:
        return self._future.done() and self._future.exception() is not None

    def failure(self) -> BaseException | None:
        """Failure of a completed result, ``None`` on success.

        Raises:
            InvalidStateError: if the result has not completed yet.
        """
        if not self._future.done():
            raise InvalidStateError(f"{self!r} has not completed")
        return self._future.exception()

    # -- continuations -------------------------------------------------------

    def attach_continuation(self, continuation: Callable[[AsyncResult[T]], Any]) -> None:
        """Run *continuation* exactly once, with this result, on completion.

        The continuation runs in a copy of the attaching thread's context,
        so context variables (the trace id) follow it to the completing
        thread.
        """
        context = contextvars.copy_context()

        def _run(_future: Future) -> None:
            try:
                context.run(continuation, self)
            except Exception:
                logger.exception("Continuation failed on %r", self)

        self._future.add_done_callback(_run)

    def then_apply(self, fn: Callable[[T], U], label: str = "") -> AsyncResult[U]:
        """Derive a result by applying *fn* to the value.

        A failure of this result, or an exception raised by *fn*, fails the
        derived result; *fn* is not called on failure.
        """
        derived: AsyncResult[U] = AsyncResult(label or f"{self._label}.apply")

        def _apply(source: AsyncResult[T]) -> None:
            failure = source.failure()
            if failure is not None:
                derived.complete_with_failure(failure)
                return
            try:
                value = fn(source._future.result())
            except Exception as exc:
                derived.complete_with_failure(exc)
                return
            derived.complete(value)

        self.attach_continuation(_apply)
        return derived

    def then_compose(
        self, fn: Callable[[T], AsyncResult[U]], label: str = ""
    ) -> AsyncResult[U]:
        """Chain a dependent asynchronous step.

        *fn* is only called once this result holds a value, so the step it
        builds never starts early. Failures short-circuit: *fn* is skipped
        and the failure is forwarded unchanged.
        """
        derived: AsyncResult[U] = AsyncResult(label or f"{self._label}.compose")

        def _compose(source: AsyncResult[T]) -> None:
            failure = source.failure()
            if failure is not None:
                derived.complete_with_failure(failure)
                return
            try:
                inner = fn(source._future.result())
            except Exception as exc:
                derived.complete_with_failure(exc)
                return
            inner.attach_continuation(derived.complete_from)

        self.attach_continuation(_compose)
        return derived

    def when_complete(
        self, handler: Callable[[T | None, BaseException | None], Any], label: str = ""
    ) -> AsyncResult[T]:
        """Run *handler(value, failure)* on completion.

        The derived result completes with this result's outcome once the
        handler has returned. A handler exception is logged and does not
        change the outcome.
        """
        derived: AsyncResult[T] = AsyncResult(label or f"{self._label}.done")

        def _finish(source: AsyncResult[T]) -> None:
            failure = source.failure()
            value = None if failure is not None else source._future.result()
            try:
                handler(value, failure)
            except Exception:
                logger.exception("Completion handler failed on %r", source)
            derived.complete_from(source)

        self.attach_continuation(_finish)
        return derived

    # -- blocking access -----------------------------------------------------

    def await_blocking(self, timeout: float | None = None) -> Outcome:
        """Suspend the calling thread until completion.

        Returns ``Ok(value)`` or ``Err(failure)``; never raises the failure.

        Raises:
            TimeoutError: if *timeout* elapses first.
        """
        failure = self._future.exception(timeout)
        if failure is not None:
            return Err(failure)
        return Ok(self._future.result())

    def get(self, timeout: float | None = None) -> T:
        """Block for the value, raising the failure if there is one."""
        return self._future.result(timeout)

    def __repr__(self) -> str:
        if not self._future.done():
            state = "pending"
        elif self._future.exception() is not None:
            state = f"failed={self._future.exception()!r}"
        else:
            state = "ok"
        return f"<AsyncResult {self._label or '?'} {state}>"


def completing_callback(
    promise: AsyncResult[U],
    transform: Callable[[Any], U] | None = None,
) -> Callable[[Any, BaseException | None], None]:
    """Adapt *promise* to a foreign ``callback(result, error)`` API.

    The returned callback completes *promise* with ``transform(result)``
    (or *result* itself) when *error* is ``None``, and with *error*
    otherwise. An exception raised by *transform* fails the promise.
    """

    def _callback(result: Any, error: BaseException | None) -> None:
        if error is not None:
            promise.complete_with_failure(error)
            return
        try:
            value = transform(result) if transform is not None else result
        except Exception as exc:
            promise.complete_with_failure(exc)
            return
        promise.complete(value)

    return _callback
