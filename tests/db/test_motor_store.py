import pytest
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from pymongo import ReturnDocument

from tresor.db.mongo import MotorRecordStore, create_indexes
from tresor.utils.errors import NotFoundError


@pytest.fixture
def mock_db():
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock()
    collection.update_one = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.find_one_and_update = AsyncMock()
    collection.create_index = AsyncMock()

    db = MagicMock()
    db.__getitem__.return_value = collection
    db.collection = collection
    return db


@pytest.mark.asyncio
async def test_insert_returns_string_id(mock_db):
    oid = ObjectId()
    mock_db.collection.insert_one.return_value = MagicMock(inserted_id=oid)

    doc = await MotorRecordStore(mock_db).insert("obligations", {"person_name": "Awa"})

    assert doc == {"person_name": "Awa", "_id": str(oid)}
    mock_db.collection.insert_one.assert_called_once()


@pytest.mark.asyncio
async def test_get_converts_ids(mock_db):
    oid = ObjectId()
    mock_db.collection.find_one.return_value = {"_id": oid, "name": "x"}
    store = MotorRecordStore(mock_db)

    assert await store.get("tontines", str(oid)) == {"_id": str(oid), "name": "x"}
    assert mock_db.collection.find_one.call_args[0][0] == {"_id": oid}

    # Malformed ids never reach the driver
    mock_db.collection.find_one.reset_mock()
    assert await store.get("tontines", "not-an-id") is None
    mock_db.collection.find_one.assert_not_called()


@pytest.mark.asyncio
async def test_list_applies_sort_and_limit(mock_db):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[{"_id": ObjectId(), "status": "active"}])
    mock_db.collection.find.return_value = cursor

    rows = await MotorRecordStore(mock_db).list("obligations", {"status": "active"}, sort=[("due_date", 1)], limit=1)

    assert isinstance(rows[0]["_id"], str)
    cursor.sort.assert_called_once_with([("due_date", 1)])
    cursor.limit.assert_called_once_with(1)


@pytest.mark.asyncio
async def test_update_without_match_raises(mock_db):
    mock_db.collection.update_one.return_value = MagicMock(matched_count=0)

    with pytest.raises(NotFoundError):
        await MotorRecordStore(mock_db).update("obligations", str(ObjectId()), {"status": "settled"})
    assert mock_db.collection.update_one.call_args[0][1] == {"$set": {"status": "settled"}}


@pytest.mark.asyncio
async def test_upsert_sets_on_insert_only(mock_db):
    oid = ObjectId()
    mock_db.collection.find_one_and_update.return_value = {"_id": oid, "user_id": "u1", "name": "Tontine"}

    doc = await MotorRecordStore(mock_db).upsert("categories", {"user_id": "u1", "name": "Tontine"}, {"type": "Expense"})

    assert doc["_id"] == str(oid)
    args, kwargs = mock_db.collection.find_one_and_update.call_args
    assert args == ({"user_id": "u1", "name": "Tontine"}, {"$setOnInsert": {"type": "Expense"}})
    assert kwargs["upsert"] is True
    assert kwargs["return_document"] == ReturnDocument.AFTER


@pytest.mark.asyncio
async def test_transaction_disabled_yields_same_store(mock_db):
    store = MotorRecordStore(mock_db)
    async with store.transaction() as tx:
        assert tx is store
    mock_db.client.start_session.assert_not_called()


@pytest.mark.asyncio
async def test_transaction_binds_session(mock_db):
    mock_session = MagicMock()
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    mock_session.start_transaction.return_value = MagicMock(
        __aenter__=AsyncMock(),
        __aexit__=AsyncMock(return_value=False)
    )
    mock_db.client.start_session = AsyncMock(return_value=mock_session)

    async with MotorRecordStore(mock_db, use_transactions=True).transaction() as tx:
        assert tx.session is mock_session

    mock_session.start_transaction.assert_called_once()


@pytest.mark.asyncio
async def test_create_indexes(mock_db):
    await create_indexes(mock_db)

    calls = mock_db.collection.create_index.call_args_list
    assert any(c.kwargs.get("unique") for c in calls)
    assert len(calls) == 9
