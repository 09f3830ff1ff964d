import asyncio
import pytest
import pytest_asyncio
from datetime import date
from fastapi.testclient import TestClient

from tresor.core.auth import get_current_user_id
from tresor.db.session import get_store
from tresor.db.store import InMemoryRecordStore
from tresor.main import app
from tresor.models.ledger import PaymentMethod
from tresor.repositories.ledger_repo import LedgerRepository
from tresor.schemas.tontine import MemberIn, TontineCreate
from tresor.services.obligation_service import ObligationService
from tresor.services.tontine_service import TontineService

USER_ID = "507f1f77bcf86cd799439011"
OTHER_USER_ID = "507f1f77bcf86cd799439099"


async def seed_payment_methods(store, user_id: str = USER_ID) -> dict:
    """
    Three payment methods:
    - cash: 50000 available, no overdraft
    - empty: 0 available, no overdraft
    - card: 0 available, overdraft allowed
    """
    repo = LedgerRepository(store)
    cash = await repo.insert_payment_method(PaymentMethod(user_id=user_id, name="Cash", initial_balance=50000))
    empty = await repo.insert_payment_method(PaymentMethod(user_id=user_id, name="Wave", method_type="mobile_money"))
    card = await repo.insert_payment_method(PaymentMethod(
        user_id=user_id,
        name="Visa",
        method_type="card",
        allow_negative_balance=True
    ))
    return {"cash": cash.id, "empty": empty.id, "card": card.id}


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Fresh in-memory record store."""
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def payment_methods(store):
    return await seed_payment_methods(store)


@pytest_asyncio.fixture
async def other_payment_methods(store):
    """The same three payment methods, owned by OTHER_USER_ID."""
    return await seed_payment_methods(store, OTHER_USER_ID)


@pytest.fixture
def obligation_service(store) -> ObligationService:
    return ObligationService(store, USER_ID)


@pytest.fixture
def tontine_service(store) -> TontineService:
    return TontineService(store, USER_ID)


@pytest.fixture
def tontine_in() -> TontineCreate:
    """3 members, A is the current user at position 1, pot of 3000."""
    return TontineCreate(
        name="Tontine Bureau",
        contribution_amount=1000,
        frequency="monthly",
        start_date=date(2025, 1, 1),
        members=[
            MemberIn(member_name="A", is_current_user=True),
            MemberIn(member_name="B"),
            MemberIn(member_name="C"),
        ]
    )


@pytest.fixture
def api_store():
    """In-memory store seeded outside of any running event loop, for TestClient tests."""
    store = InMemoryRecordStore()
    methods = asyncio.run(seed_payment_methods(store))
    return store, methods


@pytest.fixture
def client(api_store):
    """Fixture for FastAPI test client, authenticated as USER_ID."""
    store, _ = api_store
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def other_user_id() -> str:
    return OTHER_USER_ID
