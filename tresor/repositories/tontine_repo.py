from typing import Iterable, List, Optional, Tuple

from tresor.db.store import RecordStore
from tresor.models.base import utcnow, to_storage
from tresor.models.tontine import Tontine, TontineMember, TontinePayment
from tresor.utils.errors import NotFoundError

TONTINES = "tontines"
TONTINE_MEMBERS = "tontine_members"
TONTINE_PAYMENTS = "tontine_payments"


class TontineRepository:
    """Tontine, member and payment database operations."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def insert_tontine(self, tontine: Tontine) -> Tontine:
        doc = await self.store.insert(TONTINES, tontine.to_document())
        return Tontine(**doc)

    async def get_tontine(self, tontine_id: str) -> Tontine:
        doc = await self.store.get(TONTINES, tontine_id)
        if not doc:
            raise NotFoundError(f"Tontine {tontine_id} not found")
        return Tontine(**doc)

    async def list_tontines(self, user_id: str) -> List[Tontine]:
        docs = await self.store.list(TONTINES, {"user_id": user_id}, sort=[("created_at", -1)])
        return [Tontine(**doc) for doc in docs]

    async def update_tontine(self, tontine_id: str, fields: dict) -> None:
        updates = to_storage(dict(fields))
        updates["updated_at"] = utcnow()
        await self.store.update(TONTINES, tontine_id, updates)

    async def delete_tontine(self, tontine_id: str) -> None:
        """Delete a tontine with its members and payments."""
        await self.store.delete_many(TONTINE_MEMBERS, {"tontine_id": tontine_id})
        await self.store.delete_many(TONTINE_PAYMENTS, {"tontine_id": tontine_id})
        await self.store.delete(TONTINES, tontine_id)

    # ===== MEMBERS =====

    async def insert_member(self, member: TontineMember) -> TontineMember:
        doc = await self.store.insert(TONTINE_MEMBERS, member.to_document())
        return TontineMember(**doc)

    async def get_member(self, member_id: str) -> TontineMember:
        doc = await self.store.get(TONTINE_MEMBERS, member_id)
        if not doc:
            raise NotFoundError(f"Tontine member {member_id} not found")
        return TontineMember(**doc)

    async def list_members(self, tontine_id: str) -> List[TontineMember]:
        """Members ordered by payout position."""
        docs = await self.store.list(
            TONTINE_MEMBERS,
            {"tontine_id": tontine_id},
            sort=[("position_in_order", 1)]
        )
        return [TontineMember(**doc) for doc in docs]

    async def update_member(self, member_id: str, fields: dict) -> None:
        updates = to_storage(dict(fields))
        updates["updated_at"] = utcnow()
        await self.store.update(TONTINE_MEMBERS, member_id, updates)

    async def update_members(self, updates: Iterable[Tuple[str, dict]]) -> None:
        """Apply a batch of (member_id, fields) updates, in order."""
        for member_id, fields in updates:
            await self.update_member(member_id, fields)

    async def delete_member(self, member_id: str) -> None:
        await self.store.delete(TONTINE_MEMBERS, member_id)

    # ===== PAYMENTS =====

    async def insert_payment(self, payment: TontinePayment) -> TontinePayment:
        doc = await self.store.insert(TONTINE_PAYMENTS, payment.to_document())
        return TontinePayment(**doc)

    async def list_payments(self, tontine_id: str) -> List[TontinePayment]:
        docs = await self.store.list(
            TONTINE_PAYMENTS,
            {"tontine_id": tontine_id},
            sort=[("payment_date", -1), ("created_at", -1)]
        )
        return [TontinePayment(**doc) for doc in docs]

    async def find_payment_by_key(self, tontine_id: str, idempotency_key: str) -> Optional[TontinePayment]:
        docs = await self.store.list(
            TONTINE_PAYMENTS,
            {"tontine_id": tontine_id, "idempotency_key": idempotency_key},
            limit=1
        )
        return TontinePayment(**docs[0]) if docs else None
