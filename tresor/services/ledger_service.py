from datetime import date
from typing import Optional, Tuple

from tresor.core.logging_config import get_logger
from tresor.db.store import RecordStore
from tresor.models.ledger import (
    Category,
    CategoryNature,
    CategoryType,
    PaymentMethod,
    Transaction,
    TransactionSource,
)
from tresor.repositories.ledger_repo import LedgerRepository
from tresor.utils.balance_guard import BalanceCheckResult, check_balance_sufficiency
from tresor.utils.errors import InsufficientBalanceError, NotFoundError

logger = get_logger(__name__)


class LedgerService:
    """Mirrors obligation and tontine money movements into the transaction ledger."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.repo = LedgerRepository(store)

    async def resolve_or_create_category(
        self,
        user_id: str,
        name: str,
        type: CategoryType,
        nature: CategoryNature = CategoryNature.ESSENTIAL,
        color: Optional[str] = None
    ) -> str:
        """Return the id of the user's category named `name`, creating it on first use."""
        category = await self.repo.upsert_category(Category(
            user_id=user_id,
            name=name,
            type=type,
            nature=nature,
            color=color
        ))
        return category.id

    async def mirror(
        self,
        user_id: str,
        amount: int,
        label: str,
        date: date,
        payment_method_id: Optional[str],
        category_id: Optional[str],
        source: Optional[TransactionSource] = None,
        source_id: Optional[str] = None
    ) -> Transaction:
        """Append one signed transaction for a money movement."""
        transaction = await self.repo.insert_transaction(Transaction(
            user_id=user_id,
            amount=amount,
            label=label,
            date=date,
            payment_method_id=payment_method_id,
            category_id=category_id,
            source=source,
            source_id=source_id
        ))
        logger.info(f"Mirrored transaction {transaction.id}: {amount} '{label}'")
        return transaction

    async def get_payment_method(self, user_id: str, payment_method_id: str) -> PaymentMethod:
        """The user's payment method. Another user's method is reported as missing."""
        method = await self.repo.get_payment_method(payment_method_id)
        if method.user_id != user_id:
            raise NotFoundError(f"Payment method {payment_method_id} not found")
        return method

    async def get_payment_method_balance(self, user_id: str, payment_method_id: str) -> Tuple[PaymentMethod, int]:
        """Current balance: initial balance plus every transaction booked on the method."""
        method = await self.get_payment_method(user_id, payment_method_id)
        booked = await self.repo.sum_for_payment_method(payment_method_id)
        return method, method.initial_balance + booked

    async def check_debit(self, user_id: str, payment_method_id: str, amount: int) -> BalanceCheckResult:
        method, balance = await self.get_payment_method_balance(user_id, payment_method_id)
        return check_balance_sufficiency(
            balance,
            method.allow_negative_balance,
            -amount,
            method_name=method.name
        )

    async def ensure_can_debit(self, user_id: str, payment_method_id: str, amount: int) -> BalanceCheckResult:
        """Raise InsufficientBalanceError when the method cannot be debited by `amount`."""
        check = await self.check_debit(user_id, payment_method_id, amount)
        if not check.sufficient:
            logger.warning(f"Debit of {amount} refused on payment method {payment_method_id}: {check.reason}")
            raise InsufficientBalanceError(check.reason, check=check)
        return check
