"""Explicit mapping from store documents to domain records.

This is the only place that knows the stored document schema:

``users``  -- ``{"_id": name, "password": str, "email"?: str, "full_name"?: str}``
``orders`` -- ``{"_id": id, "username": str, "amount": int, "description"?: str}``

A document that does not fit the schema is a store access failure, not a
programming error in the pipeline.
"""

from __future__ import annotations

from pydantic import ValidationError

from shop_stats.core.errors import StoreAccessError
from shop_stats.core.interfaces import Document
from shop_stats.core.models import Order, User


def user_from_document(document: Document | None) -> User | None:
    """Map a ``users`` document to a :class:`User` (``None`` stays ``None``)."""
    if document is None:
        return None
    try:
        return User.model_validate(document)
    except ValidationError as exc:
        raise StoreAccessError("map user", f"malformed user document: {exc.error_count()} errors") from exc


def orders_from_documents(documents: list[Document]) -> list[Order]:
    """Map ``orders`` documents to :class:`Order` records, preserving order."""
    try:
        return [Order.model_validate(doc) for doc in documents]
    except ValidationError as exc:
        raise StoreAccessError("map orders", f"malformed order document: {exc.error_count()} errors") from exc


def user_to_document(user: User) -> Document:
    return user.model_dump(by_alias=True, exclude_none=True)


def order_to_document(order: Order) -> Document:
    return order.model_dump(by_alias=True, exclude_none=True)
