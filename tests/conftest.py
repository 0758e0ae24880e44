"""Shared fixtures for the shop-stats test suite."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from shop_stats.access.data_access import CallbackDataAccess, ExecutorDataAccess
from shop_stats.concurrency.execution import ExecutionContext
from shop_stats.core.enums import Discipline
from shop_stats.core.models import Credentials, OrderStatistics
from shop_stats.pipeline.orchestrator import Orchestrator
from shop_stats.store.memory_store import InMemoryDocumentStore
from shop_stats.store.seed import seed_demo_data


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------

class RecordingStore:
    """Wraps a blocking store and records every lookup."""

    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    def lookup_one(self, collection, key):
        with self._lock:
            self.calls.append(("lookup_one", collection, key))
        return self._inner.lookup_one(collection, key)

    def lookup_many(self, collection, field, value):
        with self._lock:
            self.calls.append(("lookup_many", collection, field, value))
        return self._inner.lookup_many(collection, field, value)

    def insert(self, collection, document):
        return self._inner.insert(collection, document)

    def calls_of(self, operation: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == operation]


class FailingStore:
    """Store whose lookups raise, optionally only for one operation."""

    def __init__(self, inner: Any = None, fail_on: str = "any") -> None:
        self._inner = inner
        self._fail_on = fail_on

    def lookup_one(self, collection, key):
        if self._fail_on in ("any", "lookup_one"):
            raise ConnectionError("users store unreachable")
        return self._inner.lookup_one(collection, key)

    def lookup_many(self, collection, field, value):
        if self._fail_on in ("any", "lookup_many"):
            raise ConnectionError("orders store unreachable")
        return self._inner.lookup_many(collection, field, value)

    def insert(self, collection, document):
        raise ConnectionError("store unreachable")


class GatedStore:
    """Store whose lookups block until ``release`` is set."""

    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self.release = threading.Event()

    def lookup_one(self, collection, key):
        self.release.wait(5)
        return self._inner.lookup_one(collection, key)

    def lookup_many(self, collection, field, value):
        self.release.wait(5)
        return self._inner.lookup_many(collection, field, value)

    def insert(self, collection, document):
        return self._inner.insert(collection, document)


class RecordingCallbackStore:
    """Callback-style store answering synchronously from a blocking store.

    Records every lookup. Operations listed in ``raise_on`` raise on the
    calling thread instead of answering through the callback.
    """

    def __init__(self, inner: Any, raise_on: tuple[str, ...] = ()) -> None:
        self._inner = inner
        self._raise_on = raise_on
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    def lookup_one(self, collection, key, callback):
        self._record("lookup_one", collection, key)
        callback(self._inner.lookup_one(collection, key), None)

    def lookup_many(self, collection, field, value, callback):
        self._record("lookup_many", collection, field, value)
        callback(self._inner.lookup_many(collection, field, value), None)

    def _record(self, operation: str, *args: Any) -> None:
        with self._lock:
            self.calls.append((operation, *args))
        if operation in self._raise_on:
            raise ConnectionError("driver refused request")

    def calls_of(self, operation: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == operation]


class RecordingReporter:
    """Collects terminal outcomes; ``wait_for(n)`` blocks until n arrived."""

    def __init__(self) -> None:
        self.successes: list[OrderStatistics] = []
        self.failures: list[str] = []
        self._cond = threading.Condition()

    def report_success(self, statistics: OrderStatistics) -> None:
        with self._cond:
            self.successes.append(statistics)
            self._cond.notify_all()

    def report_failure(self, description: str) -> None:
        with self._cond:
            self.failures.append(description)
            self._cond.notify_all()

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self.total >= count, timeout)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """Return an in-memory store seeded with the demo data set."""
    store = InMemoryDocumentStore()
    seed_demo_data(store)
    return store


@pytest.fixture
def recording_store(memory_store) -> RecordingStore:
    return RecordingStore(memory_store)


@pytest.fixture
def failing_store(memory_store) -> FailingStore:
    """Store whose every lookup raises ConnectionError."""
    return FailingStore(memory_store)


@pytest.fixture
def gated_store(memory_store) -> GatedStore:
    return GatedStore(memory_store)


@pytest.fixture
def orders_failing_store(memory_store) -> FailingStore:
    """Store whose user lookups work but order scans raise."""
    return FailingStore(memory_store, fail_on="lookup_many")


@pytest.fixture
def recording_callback_store(memory_store) -> RecordingCallbackStore:
    return RecordingCallbackStore(memory_store)


@pytest.fixture
def raising_callback_store(memory_store) -> RecordingCallbackStore:
    """Callback store whose user lookup raises instead of calling back."""
    return RecordingCallbackStore(memory_store, raise_on=("lookup_one",))


@pytest.fixture
def orders_raising_callback_store(memory_store) -> RecordingCallbackStore:
    """Callback store whose order scan raises instead of calling back."""
    return RecordingCallbackStore(memory_store, raise_on=("lookup_many",))


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

@pytest.fixture
def execution_context():
    """A small worker pool, shut down after the test."""
    context = ExecutionContext(worker_count=4)
    yield context
    context.shutdown(wait=True)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def make_orchestrator(execution_context, reporter):
    """Factory: orchestrator over *store* with the shared context and reporter."""

    def _make(store, discipline: Discipline = Discipline.COMPOSED) -> Orchestrator:
        data_access = ExecutorDataAccess(store, execution_context)
        return Orchestrator.build(data_access, reporter, execution_context, discipline)

    return _make


@pytest.fixture
def make_callback_orchestrator(execution_context, reporter):
    """Factory: callback-discipline orchestrator over a callback-style *store*."""

    def _make(store) -> Orchestrator:
        return Orchestrator.build(
            CallbackDataAccess(store), reporter, execution_context, Discipline.CALLBACK
        )

    return _make


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

@pytest.fixture
def lisa_credentials() -> Credentials:
    return Credentials(username="lisa", password="password")
