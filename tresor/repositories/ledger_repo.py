"""
LedgerRepository - ordinary transactions, categories and payment methods.

Core rules:
1. A payment method's balance = initial_balance + sum of its transactions
2. Reconciliation categories are upserted by (user_id, name), never duplicated
3. Mirrored transactions are appended, never edited by the engine
"""

from typing import List, Optional

from tresor.db.store import RecordStore
from tresor.models.ledger import Category, PaymentMethod, Transaction
from tresor.utils.errors import NotFoundError

TRANSACTIONS = "transactions"
CATEGORIES = "categories"
PAYMENT_METHODS = "payment_methods"


class LedgerRepository:
    """Repository for ledger transactions and their reference records."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        doc = await self.store.insert(TRANSACTIONS, transaction.to_document())
        return Transaction(**doc)

    async def sum_for_payment_method(self, payment_method_id: str) -> int:
        """Sum of signed transaction amounts booked on a payment method."""
        docs = await self.store.list(TRANSACTIONS, {"payment_method_id": payment_method_id})
        return sum(doc.get("amount", 0) for doc in docs)

    async def get_payment_method(self, payment_method_id: str) -> PaymentMethod:
        doc = await self.store.get(PAYMENT_METHODS, payment_method_id)
        if not doc:
            raise NotFoundError(f"Payment method {payment_method_id} not found")
        return PaymentMethod(**doc)

    async def insert_payment_method(self, payment_method: PaymentMethod) -> PaymentMethod:
        doc = await self.store.insert(PAYMENT_METHODS, payment_method.to_document())
        return PaymentMethod(**doc)

    async def upsert_category(self, category: Category) -> Category:
        """Return the user's category with this name, creating it on first use."""
        key = {"user_id": category.user_id, "name": category.name}
        fields = category.to_document()
        for field in key:
            fields.pop(field, None)
        doc = await self.store.upsert(CATEGORIES, key, fields)
        return Category(**doc)

    async def find_category(self, user_id: str, name: str) -> Optional[Category]:
        docs = await self.store.list(CATEGORIES, {"user_id": user_id, "name": name}, limit=1)
        return Category(**docs[0]) if docs else None

    async def list_for_source(self, source_id: str) -> List[Transaction]:
        docs = await self.store.list(TRANSACTIONS, {"source_id": source_id})
        return [Transaction(**doc) for doc in docs]
