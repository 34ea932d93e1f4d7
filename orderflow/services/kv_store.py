"""
Key-Value Store for all persisted entities.

One flat keyspace serves as a small multi-collection document database.
Entity kinds are namespaced by key prefix:

    order:<id>      product:<id>      user:<id>      bug:<id>      feedback:<id>

Supports:
1. SQL table via SQLAlchemy (default, SQLite or PostgreSQL)
2. Redis
3. In-memory (development/testing, and the client-side fallback store)

There are no secondary indexes. Any filtered query ("orders of user X") is a
full prefix scan plus an in-process predicate, so it costs O(n) in the
number of records of that kind. That is the scaling limit of this design.

compare_and_set is the only primitive stronger than last-writer-wins and is
what order transitions use to stay race-free.

Usage:
    store = get_store()

    await store.set("order:abc", {"id": "order:abc", "status": "pending"})
    order = await store.get("order:abc")
    orders = await store.scan_by_prefix("order:")

    won = await store.compare_and_set(
        "order:abc", {"status": "pending"}, {**order, "status": "on_the_way"}
    )
"""
import json
import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError
from sqlalchemy import select, update, delete, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.config import settings
from orderflow.core.exceptions import StoreUnavailableError
from orderflow.database import custom_json_dumps
from orderflow.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)


def _matches(current: Mapping[str, Any], expected: Mapping[str, Any]) -> bool:
    return all(current.get(field) == value for field, value in expected.items())


class KeyValueStore(ABC):
    """Abstract key-value store interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get the value stored at key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Dict[str, Any]) -> None:
        """Store value at key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key. Deleting a missing key is not an error."""
        pass

    @abstractmethod
    async def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        """Get all values whose key starts with prefix. Order is unspecified."""
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        key: str,
        expected: Mapping[str, Any],
        value: Dict[str, Any],
    ) -> bool:
        """
        Atomically replace the value at key if it still matches.

        The write happens only if the key exists and, for every field in
        expected, the stored value's top-level field equals the given
        scalar (string, integer or boolean).

        Returns:
            True if the value was written, False otherwise
        """
        pass

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreUnavailableError if the backend cannot be reached."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """
    In-memory store for development, tests and the client-side fallback.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        async with self._lock:
            self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        async with self._lock:
            return [
                copy.deepcopy(value)
                for key, value in self._data.items()
                if key.startswith(prefix)
            ]

    async def compare_and_set(
        self,
        key: str,
        expected: Mapping[str, Any],
        value: Dict[str, Any],
    ) -> bool:
        async with self._lock:
            current = self._data.get(key)
            if current is None or not _matches(current, expected):
                return False
            self._data[key] = copy.deepcopy(value)
            return True

    async def ping(self) -> None:
        return None


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value store on a single SQL table (kv_store).

    compare_and_set is one conditional UPDATE whose WHERE clause checks the
    JSON fields, so the database serialises racing writers and the row
    count tells the caller who won.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._table = KVEntry.__table__

    def _dialect_name(self, session: AsyncSession) -> str:
        return session.get_bind().dialect.name

    def _json_field(self, field: str, expected_value: Any):
        """Typed accessor for a top-level JSON field, matched to the expected value."""
        element = self._table.c.value[field]
        if isinstance(expected_value, bool):
            return element.as_boolean()
        if isinstance(expected_value, int):
            return element.as_integer()
        if isinstance(expected_value, str):
            return element.as_string()
        raise TypeError(f"Unsupported compare_and_set value for {field}: {expected_value!r}")

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(self._table.c.value).where(self._table.c.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"KV get failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        try:
            async with self._session_factory() as session, session.begin():
                dialect = self._dialect_name(session)
                if dialect == "postgresql":
                    from sqlalchemy.dialects.postgresql import insert
                elif dialect == "sqlite":
                    from sqlalchemy.dialects.sqlite import insert
                else:
                    await session.merge(KVEntry(key=key, value=value, updated_at=now))
                    return

                stmt = insert(self._table).values(key=key, value=value, updated_at=now)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[self._table.c.key],
                    set_={"value": stmt.excluded.value, "updated_at": now},
                )
                await session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"KV set failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def delete(self, key: str) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(delete(self._table).where(self._table.c.key == key))
        except SQLAlchemyError as e:
            logger.error(f"KV delete failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(self._table.c.value).where(
                        self._table.c.key.startswith(prefix, autoescape=True)
                    )
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"KV scan failed for prefix {prefix}: {e}")
            raise StoreUnavailableError() from e

    async def compare_and_set(
        self,
        key: str,
        expected: Mapping[str, Any],
        value: Dict[str, Any],
    ) -> bool:
        conditions = [self._table.c.key == key]
        for field, expected_value in expected.items():
            conditions.append(self._json_field(field, expected_value) == expected_value)

        stmt = (
            update(self._table)
            .where(*conditions)
            .values(value=value, updated_at=datetime.now(timezone.utc))
        )
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(stmt)
                return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"KV compare-and-set failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Database unreachable: {e}") from e


class RedisKeyValueStore(KeyValueStore):
    """
    Redis key-value store.

    Values are JSON strings. compare_and_set uses an optimistic
    WATCH/MULTI transaction and re-checks the condition whenever another
    client touched the key in between.
    """

    def __init__(self, redis_url: str, namespace: str = "orderflow"):
        self._redis_url = redis_url
        self._namespace = namespace
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    @staticmethod
    def _escape_glob(value: str) -> str:
        for char in ("\\", "*", "?", "[", "]"):
            value = value.replace(char, f"\\{char}")
        return value

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self._get_client().get(self._make_key(key))
        except RedisError as e:
            logger.error(f"KV get failed for {key}: {e}")
            raise StoreUnavailableError() from e
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            await self._get_client().set(self._make_key(key), custom_json_dumps(value))
        except RedisError as e:
            logger.error(f"KV set failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def delete(self, key: str) -> None:
        try:
            await self._get_client().delete(self._make_key(key))
        except RedisError as e:
            logger.error(f"KV delete failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def scan_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        pattern = self._escape_glob(self._make_key(prefix)) + "*"
        try:
            client = self._get_client()
            keys = [key async for key in client.scan_iter(match=pattern, count=100)]
            if not keys:
                return []
            raw_values = await client.mget(keys)
        except RedisError as e:
            logger.error(f"KV scan failed for prefix {prefix}: {e}")
            raise StoreUnavailableError() from e
        # A key deleted between SCAN and MGET comes back as None
        return [json.loads(raw) for raw in raw_values if raw is not None]

    async def compare_and_set(
        self,
        key: str,
        expected: Mapping[str, Any],
        value: Dict[str, Any],
    ) -> bool:
        redis_key = self._make_key(key)
        try:
            async with self._get_client().pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(redis_key)
                        raw = await pipe.get(redis_key)
                        if raw is None or not _matches(json.loads(raw), expected):
                            await pipe.unwatch()
                            return False
                        pipe.multi()
                        pipe.set(redis_key, custom_json_dumps(value))
                        await pipe.execute()
                        return True
                    except WatchError:
                        logger.debug(f"KV compare-and-set retry for {key}")
                        continue
        except RedisError as e:
            logger.error(f"KV compare-and-set failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def ping(self) -> None:
        try:
            await self._get_client().ping()
        except RedisError as e:
            raise StoreUnavailableError(f"Redis unreachable: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


_store_instance: Optional[KeyValueStore] = None


def build_store(backend: str) -> KeyValueStore:
    """Create a store for the named backend."""
    if backend == "memory":
        logger.info("Key-value store initialized with in-memory backend")
        return InMemoryKeyValueStore()
    if backend == "redis":
        if not settings.REDIS_URL:
            raise ValueError("REDIS_URL must be set when KV_BACKEND=redis")
        logger.info("Key-value store initialized with Redis backend")
        return RedisKeyValueStore(settings.REDIS_URL, namespace=settings.REDIS_NAMESPACE)

    from orderflow.database import async_session_factory
    logger.info("Key-value store initialized with SQL backend")
    return SqlKeyValueStore(async_session_factory)


def get_store() -> KeyValueStore:
    """Get the key-value store singleton."""
    global _store_instance

    if _store_instance is None:
        _store_instance = build_store(settings.KV_BACKEND)

    return _store_instance


async def close_store() -> None:
    global _store_instance

    if _store_instance is not None:
        await _store_instance.close()
        _store_instance = None
