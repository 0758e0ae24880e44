"""Redis-backed document stores.

Documents are stored as JSON strings; secondary indexes are Redis lists of
document ids, appended on insert, so a filtered scan returns documents in
insertion order:

  - ``{prefix}{collection}:doc:{id}``              -- JSON document
  - ``{prefix}{collection}:idx:{field}:{value}``   -- list of ids

Re-inserting a document moves its id out of index lists for values it no
longer has, and indexed reads re-check the field against each document.

All keys are namespaced under a configurable prefix (default ``shop:``)
so multiple environments can share a single Redis instance.

:class:`RedisDocumentStore` uses the blocking client and is meant to run
on worker threads; :class:`AsyncRedisDocumentStore` uses ``redis.asyncio``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis
import redis.asyncio as aioredis

from shop_stats.core.ids import new_document_id
from shop_stats.core.interfaces import Document

logger = logging.getLogger(__name__)

# collection -> fields maintained as secondary indexes
DEFAULT_INDEXES: dict[str, tuple[str, ...]] = {"orders": ("username",)}


# ---------------------------------------------------------------------------
# JSON serialisation
# ---------------------------------------------------------------------------


def _serialize(obj: Document) -> str:
    return json.dumps(obj, sort_keys=True)


def _deserialize(raw: str | bytes | None) -> Document | None:
    """Deserialize a JSON string back to a dict."""
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def _decode_id(raw: str | bytes) -> str:
    return raw.decode("utf-8") if isinstance(raw, bytes) else raw


# ---------------------------------------------------------------------------
# Key builders
# ---------------------------------------------------------------------------

def _doc_key(prefix: str, collection: str, doc_id: str) -> str:
    return f"{prefix}{collection}:doc:{doc_id}"


def _index_key(prefix: str, collection: str, field: str, value: Any) -> str:
    return f"{prefix}{collection}:idx:{field}:{value}"


def _prepare(document: Document) -> tuple[str, Document]:
    doc = dict(document)
    doc_id = str(doc.setdefault("_id", new_document_id()))
    return doc_id, doc


def _matching(docs: list[Document | None], field: str, value: Any) -> list[Document]:
    return [d for d in docs if d is not None and d.get(field) == value]


def _by_id(docs: list[Document]) -> list[Document]:
    return sorted(docs, key=lambda d: str(d.get("_id")))


def _stale_index_keys(
    prefix: str,
    collection: str,
    fields: tuple[str, ...],
    previous: Document | None,
    doc: Document,
) -> list[str]:
    """Index lists that still hold the id under a value the document no longer has."""
    if previous is None:
        return []
    return [
        _index_key(prefix, collection, field, previous[field])
        for field in fields
        if field in previous and previous[field] != doc.get(field)
    ]


# ---------------------------------------------------------------------------
# RedisDocumentStore
# ---------------------------------------------------------------------------


class RedisDocumentStore:
    """Blocking Redis document store.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
        prefix: Key namespace prefix. Defaults to ``"shop:"``.
        indexes: Secondary index fields per collection.
        client: Pre-built client (tests); skips :meth:`connect`.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "shop:",
        indexes: dict[str, tuple[str, ...]] | None = None,
        client: redis.Redis | None = None,
    ) -> None:
        self._url = redis_url
        self._prefix = prefix
        self._indexes = DEFAULT_INDEXES if indexes is None else indexes
        self._redis: redis.Redis | None = client

    # -- lifecycle -----------------------------------------------------------

    def connect(self) -> None:
        """Establish the Redis connection pool."""
        if self._redis is not None:
            return
        self._redis = redis.Redis.from_url(
            self._url,
            decode_responses=False,  # We handle decoding ourselves
            max_connections=20,
        )
        self._redis.ping()
        logger.info("Redis connected: %s", self._url.split("@")[-1])

    def close(self) -> None:
        if self._redis is not None:
            self._redis.close()
            self._redis = None
            logger.info("Redis connection closed.")

    @property
    def redis(self) -> redis.Redis:
        """Return the underlying Redis client, raising if not connected."""
        if self._redis is None:
            raise RuntimeError(
                "RedisDocumentStore not connected. Call connect() first."
            )
        return self._redis

    # -- documents -----------------------------------------------------------

    def lookup_one(self, collection: str, key: str) -> Document | None:
        raw = self.redis.get(_doc_key(self._prefix, collection, key))
        return _deserialize(raw)

    def lookup_many(self, collection: str, field: str, value: Any) -> list[Document]:
        if field not in self._indexes.get(collection, ()):
            return self._scan(collection, field, value)
        ids = self.redis.lrange(_index_key(self._prefix, collection, field, value), 0, -1)
        if not ids:
            return []
        keys = [_doc_key(self._prefix, collection, _decode_id(i)) for i in ids]
        docs = [_deserialize(raw) for raw in self.redis.mget(keys)]
        return _matching(docs, field, value)

    def insert(self, collection: str, document: Document) -> str:
        """Write *document*, replacing any previous version and its index entries."""
        doc_id, doc = _prepare(document)
        key = _doc_key(self._prefix, collection, doc_id)
        fields = self._indexes.get(collection, ())
        previous = _deserialize(self.redis.get(key)) if fields else None
        pipe = self.redis.pipeline(transaction=True)
        pipe.set(key, _serialize(doc))
        for stale in _stale_index_keys(self._prefix, collection, fields, previous, doc):
            pipe.lrem(stale, 0, doc_id)
        for field in fields:
            if field in doc:
                index = _index_key(self._prefix, collection, field, doc[field])
                pipe.lrem(index, 0, doc_id)
                pipe.rpush(index, doc_id)
        pipe.execute()
        logger.debug("Inserted %s/%s", collection, doc_id)
        return doc_id

    def _scan(self, collection: str, field: str, value: Any) -> list[Document]:
        """Full scan for unindexed fields, ordered by ``_id``."""
        logger.debug("Unindexed scan of %s by %s", collection, field)
        pattern = _doc_key(self._prefix, collection, "*")
        docs = [_deserialize(self.redis.get(k)) for k in self.redis.scan_iter(match=pattern, count=100)]
        return _by_id(_matching(docs, field, value))


# ---------------------------------------------------------------------------
# AsyncRedisDocumentStore
# ---------------------------------------------------------------------------


class AsyncRedisDocumentStore:
    """Asyncio Redis document store. Same key layout as the blocking store."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "shop:",
        indexes: dict[str, tuple[str, ...]] | None = None,
        client: aioredis.Redis | None = None,
    ) -> None:
        self._url = redis_url
        self._prefix = prefix
        self._indexes = DEFAULT_INDEXES if indexes is None else indexes
        self._redis: aioredis.Redis | None = client

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        if self._redis is not None:
            return
        self._redis = aioredis.from_url(
            self._url,
            decode_responses=False,
            max_connections=20,
        )
        await self._redis.ping()
        logger.info("Redis (asyncio) connected: %s", self._url.split("@")[-1])

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis (asyncio) connection closed.")

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError(
                "AsyncRedisDocumentStore not connected. Call connect() first."
            )
        return self._redis

    # -- documents -----------------------------------------------------------

    async def lookup_one(self, collection: str, key: str) -> Document | None:
        raw = await self.redis.get(_doc_key(self._prefix, collection, key))
        return _deserialize(raw)

    async def lookup_many(self, collection: str, field: str, value: Any) -> list[Document]:
        if field not in self._indexes.get(collection, ()):
            pattern = _doc_key(self._prefix, collection, "*")
            docs = []
            async for key in self.redis.scan_iter(match=pattern, count=100):
                docs.append(_deserialize(await self.redis.get(key)))
            return _by_id(_matching(docs, field, value))
        ids = await self.redis.lrange(_index_key(self._prefix, collection, field, value), 0, -1)
        if not ids:
            return []
        keys = [_doc_key(self._prefix, collection, _decode_id(i)) for i in ids]
        docs = [_deserialize(raw) for raw in await self.redis.mget(keys)]
        return _matching(docs, field, value)

    async def insert(self, collection: str, document: Document) -> str:
        doc_id, doc = _prepare(document)
        key = _doc_key(self._prefix, collection, doc_id)
        fields = self._indexes.get(collection, ())
        previous = _deserialize(await self.redis.get(key)) if fields else None
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(key, _serialize(doc))
            for stale in _stale_index_keys(self._prefix, collection, fields, previous, doc):
                pipe.lrem(stale, 0, doc_id)
            for field in fields:
                if field in doc:
                    index = _index_key(self._prefix, collection, field, doc[field])
                    pipe.lrem(index, 0, doc_id)
                    pipe.rpush(index, doc_id)
            await pipe.execute()
        return doc_id
