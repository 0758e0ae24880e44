"""In-memory document stores for tests, demos and local runs.

No external dependencies. Documents keep insertion order, so filtered
scans return a stable sequence. An optional simulated latency makes the
asynchronous behaviour of the pipeline visible in demos.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import time
from collections import defaultdict
from typing import Any

from shop_stats.core.ids import new_document_id
from shop_stats.core.interfaces import Document

logger = logging.getLogger(__name__)


class _Collections:
    """Shared storage behind both memory store flavours."""

    def __init__(self) -> None:
        # collection -> _id -> document
        self._data: dict[str, dict[str, Document]] = defaultdict(dict)
        self._lock = threading.Lock()

    def get(self, collection: str, key: str) -> Document | None:
        with self._lock:
            doc = self._data[collection].get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def scan(self, collection: str, field: str, value: Any) -> list[Document]:
        with self._lock:
            return [
                copy.deepcopy(doc)
                for doc in self._data[collection].values()
                if doc.get(field) == value
            ]

    def put(self, collection: str, document: Document) -> str:
        doc = dict(document)
        key = str(doc.setdefault("_id", new_document_id()))
        with self._lock:
            self._data[collection][key] = doc
        return key

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class InMemoryDocumentStore:
    """Blocking in-memory document store. Thread-safe."""

    def __init__(self, latency_ms: int = 0) -> None:
        self._collections = _Collections()
        self._latency = latency_ms / 1000.0

    def lookup_one(self, collection: str, key: str) -> Document | None:
        self._simulate_latency()
        return self._collections.get(collection, key)

    def lookup_many(self, collection: str, field: str, value: Any) -> list[Document]:
        self._simulate_latency()
        return self._collections.scan(collection, field, value)

    def insert(self, collection: str, document: Document) -> str:
        return self._collections.put(collection, document)

    def clear(self) -> None:
        self._collections.clear()

    def _simulate_latency(self) -> None:
        if self._latency:
            time.sleep(self._latency)


class AsyncInMemoryDocumentStore:
    """Asyncio in-memory document store."""

    def __init__(self, latency_ms: int = 0) -> None:
        self._collections = _Collections()
        self._latency = latency_ms / 1000.0

    async def lookup_one(self, collection: str, key: str) -> Document | None:
        await self._simulate_latency()
        return self._collections.get(collection, key)

    async def lookup_many(self, collection: str, field: str, value: Any) -> list[Document]:
        await self._simulate_latency()
        return self._collections.scan(collection, field, value)

    async def insert(self, collection: str, document: Document) -> str:
        return self._collections.put(collection, document)

    async def _simulate_latency(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)
