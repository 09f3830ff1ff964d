from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from tresor.core.config import settings
from tresor.core.logging_config import get_logger
from tresor.db.store import Filter, RecordStore, Sort
from tresor.utils.errors import NotFoundError

logger = get_logger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URI)
    mongodb.db = mongodb.client[settings.MONGODB_DB]

    # Create indexes
    await create_indexes(mongodb.db)
    logger.info(f"Connected to MongoDB: {settings.MONGODB_DB}")

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # One reconciliation category per (owner, name)
    await db["categories"].create_index([("user_id", ASCENDING), ("name", ASCENDING)], unique=True)

    # Obligation indexes
    await db["obligations"].create_index([("user_id", 1), ("status", 1)])
    await db["obligations"].create_index([("user_id", 1), ("linked_tontine_id", 1), ("type", 1)])
    await db["obligations"].create_index([("linked_fixed_charge_id", 1), ("due_date", 1)])
    await db["obligations"].create_index([("linked_savings_goal_id", 1), ("due_date", 1)])
    await db["obligation_payments"].create_index("obligation_id")

    # Tontine indexes
    await db["tontine_members"].create_index([("tontine_id", 1), ("position_in_order", 1)])
    await db["tontine_payments"].create_index("tontine_id")

    # Mirrored transactions are summed per payment method
    await db["transactions"].create_index("payment_method_id")


def _to_oid(record_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError):
        return None


def _to_query(filter: Filter) -> dict:
    query = dict(filter or {})
    if "_id" in query and isinstance(query["_id"], str):
        query["_id"] = _to_oid(query["_id"])
    return query


def _from_doc(doc: dict[str, Any]) -> dict[str, Any]:
    # Convert ObjectId to string at the boundary
    doc["_id"] = str(doc["_id"])
    return doc


class MotorRecordStore(RecordStore):
    """RecordStore over Motor collections, optionally bound to a client session."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        session: Optional[AsyncIOMotorClientSession] = None,
        use_transactions: bool = False
    ):
        self.db = db
        self.session = session
        self.use_transactions = use_transactions

    async def list(self, entity: str, filter: Filter = None, sort: Sort = None, limit: Optional[int] = None) -> list[dict]:
        cursor = self.db[entity].find(_to_query(filter), session=self.session)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(None)
        return [_from_doc(doc) for doc in docs]

    async def get(self, entity: str, record_id: str) -> Optional[dict]:
        oid = _to_oid(record_id)
        if oid is None:
            return None
        doc = await self.db[entity].find_one({"_id": oid}, session=self.session)
        return _from_doc(doc) if doc else None

    async def insert(self, entity: str, fields: dict) -> dict:
        doc = dict(fields)
        result = await self.db[entity].insert_one(doc, session=self.session)
        doc["_id"] = str(result.inserted_id)
        return doc

    async def update(self, entity: str, record_id: str, fields: dict) -> None:
        oid = _to_oid(record_id)
        if oid is None:
            raise NotFoundError(f"{entity} record {record_id} not found")
        result = await self.db[entity].update_one(
            {"_id": oid},
            {"$set": fields},
            session=self.session
        )
        if result.matched_count == 0:
            raise NotFoundError(f"{entity} record {record_id} not found")

    async def delete(self, entity: str, record_id: str) -> None:
        oid = _to_oid(record_id)
        if oid is None:
            raise NotFoundError(f"{entity} record {record_id} not found")
        result = await self.db[entity].delete_one({"_id": oid}, session=self.session)
        if result.deleted_count == 0:
            raise NotFoundError(f"{entity} record {record_id} not found")

    async def delete_many(self, entity: str, filter: Filter) -> int:
        result = await self.db[entity].delete_many(_to_query(filter), session=self.session)
        return result.deleted_count

    async def upsert(self, entity: str, key: dict, fields: dict) -> dict:
        doc = await self.db[entity].find_one_and_update(
            key,
            {"$setOnInsert": fields},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=self.session
        )
        return _from_doc(doc)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["MotorRecordStore"]:
        if self.session is not None or not self.use_transactions:
            yield self
            return
        async with await self.db.client.start_session() as session:
            async with session.start_transaction():
                yield MotorRecordStore(self.db, session=session, use_transactions=True)
