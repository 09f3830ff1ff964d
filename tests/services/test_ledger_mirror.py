import pytest
from datetime import date

from tresor.models.ledger import CategoryNature, CategoryType
from tresor.services.ledger_service import LedgerService
from tresor.utils.errors import InsufficientBalanceError, NotFoundError


@pytest.mark.asyncio
async def test_balance_is_initial_plus_transactions(store, payment_methods, user_id):
    ledger = LedgerService(store)
    await ledger.mirror(user_id, -12000, "Courses", date(2025, 1, 2), payment_methods["cash"], None)
    await ledger.mirror(user_id, 5000, "Remboursement", date(2025, 1, 3), payment_methods["cash"], None)
    await ledger.mirror(user_id, -999, "Autre compte", date(2025, 1, 3), payment_methods["card"], None)

    method, balance = await ledger.get_payment_method_balance(user_id, payment_methods["cash"])
    assert method.name == "Cash"
    assert balance == 43000


@pytest.mark.asyncio
async def test_category_resolution_is_idempotent(store, user_id, other_user_id):
    ledger = LedgerService(store)
    first = await ledger.resolve_or_create_category(user_id, "Tontine", CategoryType.EXPENSE, CategoryNature.SAVINGS)
    again = await ledger.resolve_or_create_category(user_id, "Tontine", CategoryType.EXPENSE, CategoryNature.SAVINGS)
    other = await ledger.resolve_or_create_category(other_user_id, "Tontine", CategoryType.EXPENSE)

    assert first == again
    assert other != first
    assert len(await store.list("categories")) == 2


@pytest.mark.asyncio
async def test_ensure_can_debit(store, payment_methods, user_id):
    ledger = LedgerService(store)

    check = await ledger.ensure_can_debit(user_id, payment_methods["cash"], 50000)
    assert check.sufficient is True

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await ledger.ensure_can_debit(user_id, payment_methods["cash"], 50001)
    assert exc_info.value.check.current_balance == 50000

    assert (await ledger.ensure_can_debit(user_id, payment_methods["card"], 10 ** 6)).sufficient is True

    with pytest.raises(NotFoundError):
        await ledger.ensure_can_debit(user_id, "507f1f77bcf86cd799439000", 1)


@pytest.mark.asyncio
async def test_other_users_payment_method_is_not_found(store, payment_methods, other_user_id):
    ledger = LedgerService(store)

    with pytest.raises(NotFoundError):
        await ledger.get_payment_method(other_user_id, payment_methods["cash"])
    with pytest.raises(NotFoundError):
        await ledger.ensure_can_debit(other_user_id, payment_methods["cash"], 1)
