from tresor.core.config import settings
from tresor.db.mongo import MotorRecordStore, mongodb
from tresor.db.store import InMemoryRecordStore, RecordStore

_memory_store = InMemoryRecordStore()


async def get_store() -> RecordStore:
    """Return the record store for the configured backend."""
    if settings.STORE_BACKEND == "memory":
        return _memory_store
    return MotorRecordStore(mongodb.db, use_transactions=settings.MONGODB_USE_TRANSACTIONS)
