"""
Ledger models - ordinary transactions and the records they reference.

Payment methods and categories are managed by other screens; the engine
reads them, and only creates the reconciliation categories it needs.
A payment method's balance is never stored: it is initial_balance plus
the sum of its transactions.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from tresor.models.base import Record


class CategoryType(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


class CategoryNature(str, Enum):
    ESSENTIAL = "Essential"
    DESIRE = "Desire"
    SAVINGS = "Savings"


class TransactionStatus(str, Enum):
    PLANNED = "Planned"
    REALIZED = "Realized"


class TransactionSource(str, Enum):
    OBLIGATION_PAYMENT = "obligation_payment"
    TONTINE_CONTRIBUTION = "tontine_contribution"
    TONTINE_POT = "tontine_pot"


class PaymentMethod(Record):
    name: str
    method_type: str = "cash"
    allow_negative_balance: bool = False
    initial_balance: int = 0
    is_active: bool = True
    sort_order: int = 0


class Category(Record):
    name: str
    type: CategoryType
    nature: CategoryNature = CategoryNature.ESSENTIAL
    color: Optional[str] = None


class Transaction(Record):
    """Signed money movement: positive = inflow, negative = outflow."""
    amount: int
    label: str
    date: dt.date
    payment_method_id: Optional[str] = None
    category_id: Optional[str] = None
    status: TransactionStatus = TransactionStatus.REALIZED
    source: Optional[TransactionSource] = None
    source_id: Optional[str] = None
