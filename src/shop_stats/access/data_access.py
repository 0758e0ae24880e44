"""Asynchronous user and order lookups.

Both implementations return an :class:`AsyncResult` immediately and never
block the caller:

- :class:`ExecutorDataAccess` runs a blocking store call on the shared
  worker pool.
- :class:`CallbackDataAccess` issues the call through a callback-style
  store and completes the promise from the store's callback.

Store failures surface as :class:`StoreAccessError` with the underlying
error chained as ``__cause__``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from shop_stats.concurrency.async_result import AsyncResult, completing_callback
from shop_stats.concurrency.execution import ExecutionContext
from shop_stats.core.enums import Collection
from shop_stats.core.errors import StoreAccessError
from shop_stats.core.interfaces import Document, ICallbackDocumentStore, IDocumentStore
from shop_stats.core.models import Order, User
from shop_stats.store.mapping import orders_from_documents, user_from_document

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_store_error(operation: str, error: BaseException) -> StoreAccessError:
    if isinstance(error, StoreAccessError):
        return error
    wrapped = StoreAccessError(operation, f"{type(error).__name__}: {error}")
    wrapped.__cause__ = error
    return wrapped


class ExecutorDataAccess:
    """Data access backed by a blocking store and the worker pool."""

    def __init__(self, store: IDocumentStore, context: ExecutionContext) -> None:
        self._store = store
        self._context = context

    def find_user_by_name(self, name: str) -> AsyncResult[User | None]:
        operation = f"find user {name!r}"

        def _find() -> User | None:
            return user_from_document(self._store.lookup_one(Collection.USERS.value, name))

        return self._submit(_find, operation)

    def find_orders_by_username(self, username: str) -> AsyncResult[list[Order]]:
        operation = f"find orders of {username!r}"

        def _find() -> list[Order]:
            docs = self._store.lookup_many(Collection.ORDERS.value, "username", username)
            return orders_from_documents(docs)

        return self._submit(_find, operation)

    def _submit(self, fn: Callable[[], T], operation: str) -> AsyncResult[T]:
        def _guarded() -> T:
            try:
                return fn()
            except Exception as exc:
                logger.warning("Store access failed: %s: %s", operation, exc)
                raise _as_store_error(operation, exc)

        logger.debug("Submitting %s", operation)
        return self._context.submit(_guarded, label=operation)


class CallbackDataAccess:
    """Data access bridged from a callback-style store.

    A store call that raises instead of answering through its callback
    fails the returned promise the same way a reported error does.
    """

    def __init__(self, store: ICallbackDocumentStore) -> None:
        self._store = store

    def find_user_by_name(self, name: str) -> AsyncResult[User | None]:
        operation = f"find user {name!r}"
        promise: AsyncResult[User | None] = AsyncResult(operation)
        callback = self._callback(promise, user_from_document, operation)
        try:
            self._store.lookup_one(Collection.USERS.value, name, callback)
        except Exception as exc:
            callback(None, exc)
        return promise

    def find_orders_by_username(self, username: str) -> AsyncResult[list[Order]]:
        operation = f"find orders of {username!r}"
        promise: AsyncResult[list[Order]] = AsyncResult(operation)
        callback = self._callback(promise, orders_from_documents, operation)
        try:
            self._store.lookup_many(Collection.ORDERS.value, "username", username, callback)
        except Exception as exc:
            callback(None, exc)
        return promise

    @staticmethod
    def _callback(
        promise: AsyncResult[T], transform: Callable[[Any], T], operation: str
    ) -> Callable[[Document | list[Document] | None, BaseException | None], None]:
        complete = completing_callback(promise, transform)

        def _on_result(result: Any, error: BaseException | None) -> None:
            if error is not None:
                logger.warning("Store access failed: %s: %s", operation, error)
                error = _as_store_error(operation, error)
            complete(result, error)

        return _on_result
