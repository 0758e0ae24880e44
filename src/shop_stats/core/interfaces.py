"""Protocol interfaces for the shop statistics service.

All module boundaries are defined here as Protocol classes.
Store flavours and reporters can be swapped without changing callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from .models import Order, OrderStatistics, User

if TYPE_CHECKING:
    from shop_stats.concurrency.async_result import AsyncResult

Document = dict[str, Any]

# (result, error) -- exactly one of the two is meaningful
StoreCallback = Callable[[Any, "BaseException | None"], None]


# ---------------------------------------------------------------------------
# Document stores
# ---------------------------------------------------------------------------

@runtime_checkable
class IDocumentStore(Protocol):
    """Blocking document store. Called from worker threads only."""

    def lookup_one(self, collection: str, key: str) -> Document | None: ...

    def lookup_many(self, collection: str, field: str, value: Any) -> list[Document]: ...

    def insert(self, collection: str, document: Document) -> str: ...


@runtime_checkable
class IAsyncDocumentStore(Protocol):
    """Asyncio document store."""

    async def lookup_one(self, collection: str, key: str) -> Document | None: ...

    async def lookup_many(self, collection: str, field: str, value: Any) -> list[Document]: ...

    async def insert(self, collection: str, document: Document) -> str: ...


@runtime_checkable
class ICallbackDocumentStore(Protocol):
    """Callback-style document store.

    Each call returns immediately; ``callback(result, error)`` is invoked
    exactly once, on a thread owned by the store.
    """

    def lookup_one(self, collection: str, key: str, callback: StoreCallback) -> None: ...

    def lookup_many(
        self, collection: str, field: str, value: Any, callback: StoreCallback
    ) -> None: ...


# ---------------------------------------------------------------------------
# Data access
# ---------------------------------------------------------------------------

@runtime_checkable
class IDataAccess(Protocol):
    """Asynchronous user/order lookups. Both calls return immediately."""

    def find_user_by_name(self, name: str) -> "AsyncResult[User | None]": ...

    def find_orders_by_username(self, username: str) -> "AsyncResult[list[Order]]": ...


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

@runtime_checkable
class IReporter(Protocol):
    """Receives the terminal outcome of every orchestration run."""

    def report_success(self, statistics: OrderStatistics) -> None: ...

    def report_failure(self, description: str) -> None: ...
