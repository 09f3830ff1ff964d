"""
ObligationRepository - persistence for obligations and obligation payments.

Obligations are listed newest first; payments newest payment date first.
Auto-settlement lookups are scoped by owner and the weak `linked_*` ids.
"""

from datetime import date
from typing import List, Optional

from tresor.db.store import RecordStore
from tresor.models.base import utcnow, to_storage
from tresor.models.obligation import (
    OPEN_STATUSES,
    Obligation,
    ObligationPayment,
    ObligationStatus,
    ObligationType,
)
from tresor.utils.errors import NotFoundError

OBLIGATIONS = "obligations"
OBLIGATION_PAYMENTS = "obligation_payments"


class ObligationRepository:
    """Repository for obligations (debts and credits)."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def insert_obligation(self, obligation: Obligation) -> Obligation:
        doc = await self.store.insert(OBLIGATIONS, obligation.to_document())
        return Obligation(**doc)

    async def get_obligation(self, obligation_id: str) -> Obligation:
        doc = await self.store.get(OBLIGATIONS, obligation_id)
        if not doc:
            raise NotFoundError(f"Obligation {obligation_id} not found")
        return Obligation(**doc)

    async def list_obligations(
        self,
        user_id: str,
        type: Optional[ObligationType] = None,
        status: Optional[ObligationStatus] = None
    ) -> List[Obligation]:
        """List a user's obligations, optionally filtered by type and status."""
        query = {"user_id": user_id}
        if type is not None:
            query["type"] = to_storage(type)
        if status is not None:
            query["status"] = to_storage(status)
        docs = await self.store.list(OBLIGATIONS, query, sort=[("created_at", -1)])
        return [Obligation(**doc) for doc in docs]

    async def list_open(self, user_id: str, type: Optional[ObligationType] = None) -> List[Obligation]:
        """Active and partially paid obligations."""
        obligations = await self.list_obligations(user_id, type=type)
        return [o for o in obligations if o.status in OPEN_STATUSES]

    async def update_obligation(self, obligation_id: str, fields: dict) -> None:
        updates = to_storage(dict(fields))
        updates["updated_at"] = utcnow()
        await self.store.update(OBLIGATIONS, obligation_id, updates)

    async def update_status(self, obligation_id: str, remaining_amount: int, status: ObligationStatus) -> None:
        await self.update_obligation(obligation_id, {
            "remaining_amount": remaining_amount,
            "status": status
        })

    async def cancel(self, obligation_id: str) -> None:
        await self.update_obligation(obligation_id, {"status": ObligationStatus.CANCELLED})

    async def find_oldest_active_engagement(self, user_id: str, tontine_id: str) -> Optional[Obligation]:
        """Oldest non-terminal engagement of the user linked to a tontine (FIFO by due date)."""
        docs = await self.store.list(
            OBLIGATIONS,
            {"user_id": user_id, "linked_tontine_id": tontine_id, "type": ObligationType.ENGAGEMENT.value},
            sort=[("due_date", 1), ("created_at", 1)]
        )
        for doc in docs:
            obligation = Obligation(**doc)
            if obligation.status in OPEN_STATUSES:
                return obligation
        return None

    async def find_tontine_creance(self, user_id: str, tontine_id: str) -> Optional[Obligation]:
        """The creance tracking the current user's own payout from a tontine."""
        docs = await self.store.list(
            OBLIGATIONS,
            {"user_id": user_id, "linked_tontine_id": tontine_id, "type": ObligationType.CREANCE.value},
            sort=[("created_at", 1)],
            limit=1
        )
        return Obligation(**docs[0]) if docs else None

    async def list_linked(
        self,
        user_id: str,
        field: str,
        link_id: str,
        due_date: Optional[date] = None
    ) -> List[Obligation]:
        """The user's obligations whose `field` (a linked_* id) equals `link_id`."""
        query = {"user_id": user_id, field: link_id}
        if due_date is not None:
            query["due_date"] = to_storage(due_date)
        docs = await self.store.list(OBLIGATIONS, query, sort=[("due_date", 1)])
        return [Obligation(**doc) for doc in docs]

    async def delete_for_tontine(self, user_id: str, tontine_id: str) -> int:
        return await self.store.delete_many(OBLIGATIONS, {"user_id": user_id, "linked_tontine_id": tontine_id})

    # ===== PAYMENTS =====

    async def insert_payment(self, payment: ObligationPayment) -> ObligationPayment:
        doc = await self.store.insert(OBLIGATION_PAYMENTS, payment.to_document())
        return ObligationPayment(**doc)

    async def list_payments(self, obligation_id: str) -> List[ObligationPayment]:
        docs = await self.store.list(
            OBLIGATION_PAYMENTS,
            {"obligation_id": obligation_id},
            sort=[("payment_date", -1), ("created_at", -1)]
        )
        return [ObligationPayment(**doc) for doc in docs]

    async def find_payment_by_key(self, obligation_id: str, idempotency_key: str) -> Optional[ObligationPayment]:
        docs = await self.store.list(
            OBLIGATION_PAYMENTS,
            {"obligation_id": obligation_id, "idempotency_key": idempotency_key},
            limit=1
        )
        return ObligationPayment(**docs[0]) if docs else None
