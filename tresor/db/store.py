"""
Record store interface.

Services talk to storage only through these operations, so MongoDB can be
swapped for the in-memory store in tests and local runs. The interface is
deliberately small: equality filters, single-field sorts, $set updates.

Store errors (network, permission, constraint) propagate unchanged.
Lookups by id that match nothing raise NotFoundError.
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from bson import ObjectId

from tresor.utils.errors import NotFoundError

Filter = Optional[dict[str, Any]]
Sort = Optional[list[tuple[str, int]]]


class RecordStore(ABC):
    """Typed read/insert/update/delete operations over named entities."""

    @abstractmethod
    async def list(self, entity: str, filter: Filter = None, sort: Sort = None, limit: Optional[int] = None) -> list[dict]:
        """Return records matching every key of `filter`, ordered by `sort`."""
        pass

    @abstractmethod
    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    async def insert(self, entity: str, fields: dict) -> dict:
        """Insert a record and return it with its assigned `_id`."""
        pass

    @abstractmethod
    async def update(self, entity: str, record_id: str, fields: dict) -> None:
        pass

    @abstractmethod
    async def delete(self, entity: str, record_id: str) -> None:
        pass

    @abstractmethod
    async def delete_many(self, entity: str, filter: Filter) -> int:
        pass

    @abstractmethod
    async def upsert(self, entity: str, key: dict, fields: dict) -> dict:
        """Return the record matching `key`, inserting `key | fields` if absent."""
        pass

    @abstractmethod
    def transaction(self):
        """
        Async context manager yielding a store bound to one unit of work.

        Backends without transactions yield themselves: writes are then
        applied one by one and an error midway leaves earlier writes in place.
        """
        pass


def _matches(doc: dict, filter: Filter) -> bool:
    if not filter:
        return True
    return all(doc.get(field) == value for field, value in filter.items())


def _sort_key(value: Any) -> tuple:
    # Missing values order first ascending, as in MongoDB
    return (value is not None, value if value is not None else 0)


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store for tests and single-process local runs.

    Transactions snapshot the data and restore it on error. They are
    serialized with a lock and must not be nested. A write made outside any
    transaction while one is rolling back is lost with it, so this backend
    assumes a single writer.
    """

    def __init__(self):
        self._data: dict[str, dict[str, dict]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, entity: str) -> dict[str, dict]:
        return self._data.setdefault(entity, {})

    async def list(self, entity: str, filter: Filter = None, sort: Sort = None, limit: Optional[int] = None) -> list[dict]:
        rows = [
            copy.deepcopy(doc)
            for doc in self._collection(entity).values()
            if _matches(doc, filter)
        ]
        # Stable sorts applied from the least significant key
        for field, direction in reversed(sort or []):
            rows.sort(key=lambda doc: _sort_key(doc.get(field)), reverse=direction < 0)
        if limit:
            rows = rows[:limit]
        return rows

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        doc = self._collection(entity).get(record_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def insert(self, entity: str, fields: dict) -> dict:
        doc = copy.deepcopy(fields)
        doc["_id"] = str(ObjectId())
        self._collection(entity)[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def update(self, entity: str, record_id: str, fields: dict) -> None:
        doc = self._collection(entity).get(record_id)
        if doc is None:
            raise NotFoundError(f"{entity} record {record_id} not found")
        doc.update(copy.deepcopy(fields))

    async def delete(self, entity: str, record_id: str) -> None:
        if self._collection(entity).pop(record_id, None) is None:
            raise NotFoundError(f"{entity} record {record_id} not found")

    async def delete_many(self, entity: str, filter: Filter) -> int:
        collection = self._collection(entity)
        doomed = [rid for rid, doc in collection.items() if _matches(doc, filter)]
        for rid in doomed:
            del collection[rid]
        return len(doomed)

    async def upsert(self, entity: str, key: dict, fields: dict) -> dict:
        existing = await self.list(entity, key, limit=1)
        if existing:
            return existing[0]
        return await self.insert(entity, {**fields, **key})

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryRecordStore"]:
        async with self._lock:
            snapshot = copy.deepcopy(self._data)
            try:
                yield self
            except BaseException:
                self._data = snapshot
                raise
