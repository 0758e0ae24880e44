"""Demo data set and seeding helpers."""

from __future__ import annotations

import logging

from shop_stats.core.enums import Collection
from shop_stats.core.interfaces import Document, IAsyncDocumentStore, IDocumentStore

logger = logging.getLogger(__name__)

LISA = "lisa"
PETER = "peter"
MARY = "mary"

DEMO_USERS: list[Document] = [
    {"_id": LISA, "password": "password", "email": "lisa@example.com", "full_name": "Lisa Miller"},
    {"_id": PETER, "password": "secret", "email": "peter@example.com"},
    {"_id": MARY, "password": "mary123", "full_name": "Mary Jones"},
]

DEMO_ORDERS: list[Document] = [
    {"_id": "order-1", "username": LISA, "amount": 10, "description": "coffee beans"},
    {"_id": "order-2", "username": LISA, "amount": 30, "description": "grinder"},
    {"_id": "order-3", "username": PETER, "amount": 250, "description": "bicycle"},
    {"_id": "order-4", "username": PETER, "amount": 15},
    {"_id": "order-5", "username": PETER, "amount": 40},
    # mary has no orders
]


def seed_demo_data(store: IDocumentStore) -> int:
    """Insert the demo users and orders. Returns the number of documents."""
    for user in DEMO_USERS:
        store.insert(Collection.USERS.value, user)
    for order in DEMO_ORDERS:
        store.insert(Collection.ORDERS.value, order)
    count = len(DEMO_USERS) + len(DEMO_ORDERS)
    logger.info("Seeded %d demo documents", count)
    return count


async def seed_demo_data_async(store: IAsyncDocumentStore) -> int:
    for user in DEMO_USERS:
        await store.insert(Collection.USERS.value, user)
    for order in DEMO_ORDERS:
        await store.insert(Collection.ORDERS.value, order)
    count = len(DEMO_USERS) + len(DEMO_ORDERS)
    logger.info("Seeded %d demo documents", count)
    return count
