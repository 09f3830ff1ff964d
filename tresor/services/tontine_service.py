from datetime import date
from typing import List, Sequence

from tresor.core.config import settings
from tresor.core.logging_config import get_logger
from tresor.db.store import RecordStore
from tresor.models.ledger import CategoryNature, CategoryType, TransactionSource
from tresor.models.tontine import (
    Tontine,
    TontineMember,
    TontinePayment,
    TontinePaymentType,
    TontineStatus,
)
from tresor.repositories.obligation_repo import ObligationRepository
from tresor.repositories.tontine_repo import TontineRepository
from tresor.schemas.tontine import (
    ContributionCreate,
    MemberCreate,
    MemberUpdate,
    PotReceiptCreate,
    TontineCreate,
    TontineEventOutcome,
    TontineUpdate,
)
from tresor.services.auto_settlement import (
    build_tontine_obligations,
    force_settle_creance,
    settle_oldest_engagement,
)
from tresor.services.ledger_service import LedgerService
from tresor.utils.errors import (
    LedgerValidationError,
    LockedMemberError,
    NotFoundError,
    PolicyError,
)
from tresor.utils.obligation_validation import validate_positive_amount
from tresor.utils.schedule import add_cycles, payout_date

logger = get_logger(__name__)

MIN_MEMBERS = 2


def _normalize_name(name: str) -> str:
    return name.strip().lower()


class TontineService:
    """Rotation, payments and member order of one user's tontines."""

    def __init__(self, store: RecordStore, user_id: str):
        self.store = store
        self.user_id = user_id
        self.repo = TontineRepository(store)
        self.obligations = ObligationRepository(store)
        self.ledger = LedgerService(store)

    # ===== READS =====

    async def get(self, tontine_id: str) -> Tontine:
        tontine = await self.repo.get_tontine(tontine_id)
        if tontine.user_id != self.user_id:
            raise NotFoundError(f"Tontine {tontine_id} not found")
        return tontine

    async def list_tontines(self) -> List[Tontine]:
        return await self.repo.list_tontines(self.user_id)

    async def list_members(self, tontine_id: str) -> List[TontineMember]:
        tontine = await self.get(tontine_id)
        return await self.repo.list_members(tontine.id)

    async def list_payments(self, tontine_id: str) -> List[TontinePayment]:
        tontine = await self.get(tontine_id)
        return await self.repo.list_payments(tontine.id)

    async def get_member(self, tontine_id: str, member_id: str) -> TontineMember:
        tontine = await self.get(tontine_id)
        member = await self.repo.get_member(member_id)
        if member.tontine_id != tontine.id:
            raise NotFoundError(f"Tontine member {member_id} not found")
        return member

    @staticmethod
    def next_contribution_date(tontine: Tontine) -> date:
        return add_cycles(tontine.start_date, tontine.frequency, tontine.current_cycle - 1)

    # ===== CREATE / UPDATE / DELETE =====

    async def create(self, tontine_in: TontineCreate) -> Tontine:
        """
        Create a tontine with its members, in payout order.

        Also generates one engagement per cycle and one creance for the
        current user's payout, all linked to the tontine.
        """
        validate_positive_amount(tontine_in.contribution_amount)
        if len(tontine_in.members) < MIN_MEMBERS:
            raise LedgerValidationError("a tontine needs at least 2 members")
        if sum(1 for m in tontine_in.members if m.is_current_user) != 1:
            raise LedgerValidationError("exactly one member must be designated as the current user")

        names = [m.member_name.strip() for m in tontine_in.members]
        if not all(names):
            raise LedgerValidationError("member_name is required")
        if len({_normalize_name(n) for n in names}) != len(names):
            raise LedgerValidationError("member names must be unique within a tontine")

        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            obligations = ObligationRepository(tx)

            tontine = await repo.insert_tontine(Tontine(
                user_id=self.user_id,
                name=tontine_in.name,
                total_members=len(tontine_in.members),
                contribution_amount=tontine_in.contribution_amount,
                frequency=tontine_in.frequency,
                start_date=tontine_in.start_date
            ))

            members = []
            for position, (member_in, name) in enumerate(zip(tontine_in.members, names), start=1):
                members.append(await repo.insert_member(TontineMember(
                    user_id=self.user_id,
                    tontine_id=tontine.id,
                    member_name=name,
                    phone_number=member_in.phone_number,
                    position_in_order=position,
                    is_current_user=member_in.is_current_user,
                    payout_date=payout_date(tontine.start_date, tontine.frequency, position)
                )))

            for obligation in build_tontine_obligations(tontine, members):
                await obligations.insert_obligation(obligation)

        logger.info(f"Created tontine {tontine.id} with {tontine.total_members} members, pot {tontine.pot_amount}")
        return tontine

    async def update(self, tontine_id: str, update_in: TontineUpdate) -> Tontine:
        """
        Edit a tontine. Only future cycles are affected: recorded payments,
        generated obligations and members who already received the pot keep
        their dates.
        """
        tontine = await self.get(tontine_id)
        fields = {k: v for k, v in update_in.model_dump(exclude_unset=True).items() if v is not None}
        if "contribution_amount" in fields:
            validate_positive_amount(fields["contribution_amount"])
        if not fields:
            return tontine

        updated = tontine.model_copy(update=fields)
        reschedule = updated.start_date != tontine.start_date or updated.frequency != tontine.frequency

        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            await repo.update_tontine(tontine.id, fields)
            if reschedule:
                members = await repo.list_members(tontine.id)
                await repo.update_members(
                    (m.id, {"payout_date": payout_date(updated.start_date, updated.frequency, m.position_in_order)})
                    for m in members
                    if not m.has_received_pot
                )

        logger.info(f"Updated tontine {tontine.id}: {sorted(fields)}")
        return await self.repo.get_tontine(tontine.id)

    async def delete(self, tontine_id: str) -> None:
        """Delete a tontine, its linked obligations first, then members and payments."""
        tontine = await self.get(tontine_id)
        async with self.store.transaction() as tx:
            removed = await ObligationRepository(tx).delete_for_tontine(self.user_id, tontine.id)
            await TontineRepository(tx).delete_tontine(tontine.id)
        logger.info(f"Deleted tontine {tontine.id} and {removed} linked obligations")

    # ===== PAYMENTS =====

    async def log_contribution(self, tontine_id: str, contribution_in: ContributionCreate) -> TontineEventOutcome:
        """Pay into the tontine and settle the oldest open engagement."""
        tontine = await self.get(tontine_id)

        if contribution_in.idempotency_key:
            previous = await self.repo.find_payment_by_key(tontine.id, contribution_in.idempotency_key)
            if previous:
                logger.info(f"Contribution {previous.id} replayed for key {contribution_in.idempotency_key}")
                return TontineEventOutcome(payment=previous)

        self._ensure_active(tontine)
        validate_positive_amount(contribution_in.amount)
        self._validate_cycle(tontine, contribution_in.cycle_number)
        await self.ledger.ensure_can_debit(self.user_id, contribution_in.payment_method_id, contribution_in.amount)

        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            ledger = LedgerService(tx)

            payment = await repo.insert_payment(TontinePayment(
                user_id=self.user_id,
                tontine_id=tontine.id,
                type=TontinePaymentType.CONTRIBUTION,
                amount=contribution_in.amount,
                cycle_number=contribution_in.cycle_number,
                payment_method_id=contribution_in.payment_method_id,
                payment_date=contribution_in.payment_date,
                idempotency_key=contribution_in.idempotency_key
            ))
            category_id = await self._savings_category(ledger)
            await ledger.mirror(
                self.user_id,
                -contribution_in.amount,
                f"Cotisation - {tontine.name}",
                contribution_in.payment_date,
                contribution_in.payment_method_id,
                category_id,
                source=TransactionSource.TONTINE_CONTRIBUTION,
                source_id=payment.id
            )
            settled = await settle_oldest_engagement(ObligationRepository(tx), tontine, contribution_in.amount)

        logger.info(f"Contribution {payment.id} of {payment.amount} on tontine {tontine.id}, cycle {payment.cycle_number}")
        return TontineEventOutcome(payment=payment, settled_obligation=settled)

    async def receive_pot(self, tontine_id: str, receipt_in: PotReceiptCreate) -> TontineEventOutcome:
        """
        Record a pot payout to a member.

        Locks the member, advances the cycle and force-settles the tontine's
        creance. The tontine completes once every cycle has paid out.
        """
        tontine = await self.get(tontine_id)

        if receipt_in.idempotency_key:
            previous = await self.repo.find_payment_by_key(tontine.id, receipt_in.idempotency_key)
            if previous:
                logger.info(f"Payout {previous.id} replayed for key {receipt_in.idempotency_key}")
                return TontineEventOutcome(payment=previous)

        self._ensure_active(tontine)
        validate_positive_amount(receipt_in.amount)
        self._validate_cycle(tontine, receipt_in.cycle_number)
        if receipt_in.cycle_number < tontine.current_cycle:
            raise LedgerValidationError(
                f"cycle {receipt_in.cycle_number} has already paid out, current cycle is {tontine.current_cycle}"
            )

        member = await self.get_member(tontine.id, receipt_in.member_id)
        if member.has_received_pot:
            logger.warning(f"Second payout refused for member {member.id}")
            raise PolicyError(f"{member.member_name} already received the pot")
        await self.ledger.get_payment_method(self.user_id, receipt_in.payment_method_id)

        next_cycle = receipt_in.cycle_number + 1
        tontine_fields = {"current_cycle": next_cycle}
        if next_cycle > tontine.total_members:
            tontine_fields["status"] = TontineStatus.COMPLETED

        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            ledger = LedgerService(tx)

            payment = await repo.insert_payment(TontinePayment(
                user_id=self.user_id,
                tontine_id=tontine.id,
                type=TontinePaymentType.POT_RECEIVED,
                amount=receipt_in.amount,
                cycle_number=receipt_in.cycle_number,
                payment_method_id=receipt_in.payment_method_id,
                member_id=member.id,
                payment_date=receipt_in.payment_date,
                idempotency_key=receipt_in.idempotency_key
            ))
            await repo.update_member(member.id, {"has_received_pot": True})

            category_id = await self._savings_category(ledger)
            await ledger.mirror(
                self.user_id,
                receipt_in.amount,
                f"Pot reçu - {tontine.name}",
                receipt_in.payment_date,
                receipt_in.payment_method_id,
                category_id,
                source=TransactionSource.TONTINE_POT,
                source_id=payment.id
            )
            await repo.update_tontine(tontine.id, tontine_fields)
            settled = await force_settle_creance(ObligationRepository(tx), tontine)

        logger.info(f"Pot of {payment.amount} received by {member.id} on tontine {tontine.id}, next cycle {next_cycle}")
        return TontineEventOutcome(payment=payment, settled_obligation=settled)

    # ===== MEMBERS =====

    async def reorder_members(self, tontine_id: str, member_ids: Sequence[str]) -> List[TontineMember]:
        """
        Reassign positions from the full ordered list of member ids.

        Members who already received the pot must keep their slot. Payout
        dates are recomputed for everyone.
        """
        tontine = await self.get(tontine_id)
        members = await self.repo.list_members(tontine.id)
        by_id = {m.id: m for m in members}

        if len(member_ids) != len(members) or set(member_ids) != set(by_id):
            raise LedgerValidationError("the new order must list every member of the tontine exactly once")

        for position, member_id in enumerate(member_ids, start=1):
            member = by_id[member_id]
            if member.has_received_pot and member.position_in_order != position:
                logger.warning(f"Reorder refused on tontine {tontine.id}: {member.id} is locked")
                raise LockedMemberError(f"{member.member_name} already received the pot and cannot change position")

        async with self.store.transaction() as tx:
            await TontineRepository(tx).update_members(
                (member_id, {
                    "position_in_order": position,
                    "payout_date": payout_date(tontine.start_date, tontine.frequency, position)
                })
                for position, member_id in enumerate(member_ids, start=1)
            )

        logger.info(f"Reordered {len(members)} members of tontine {tontine.id}")
        return await self.repo.list_members(tontine.id)

    async def add_member(self, tontine_id: str, member_in: MemberCreate) -> TontineMember:
        """Append a member at the next position."""
        tontine = await self.get(tontine_id)
        members = await self.repo.list_members(tontine.id)
        position = len(members) + 1

        name = (member_in.member_name or "").strip() or f"Membre {position}"
        self._ensure_unique_name(members, name)

        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            member = await repo.insert_member(TontineMember(
                user_id=self.user_id,
                tontine_id=tontine.id,
                member_name=name,
                phone_number=member_in.phone_number,
                position_in_order=position,
                payout_date=payout_date(tontine.start_date, tontine.frequency, position)
            ))
            await repo.update_tontine(tontine.id, {"total_members": position})

        logger.info(f"Added member {member.id} at position {position} to tontine {tontine.id}")
        return member

    async def delete_member(self, tontine_id: str, member_id: str) -> None:
        """Remove a member and renumber the rest contiguously from 1."""
        tontine = await self.get(tontine_id)
        member = await self.get_member(tontine.id, member_id)

        if member.has_received_pot:
            logger.warning(f"Delete refused for locked member {member.id}")
            raise LockedMemberError("cannot remove a member who already received the pot")

        members = await self.repo.list_members(tontine.id)
        if len(members) <= MIN_MEMBERS:
            raise LedgerValidationError("a tontine needs at least 2 members")
        if member.is_current_user:
            raise PolicyError("cannot remove the member designated as the current user")

        remaining = [m for m in members if m.id != member.id]
        for position, other in enumerate(remaining, start=1):
            if other.has_received_pot and other.position_in_order != position:
                raise LockedMemberError(
                    f"removing this member would move {other.member_name}, who already received the pot"
                )

        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            await repo.delete_member(member.id)
            await repo.update_members(
                (other.id, {
                    "position_in_order": position,
                    "payout_date": payout_date(tontine.start_date, tontine.frequency, position)
                })
                for position, other in enumerate(remaining, start=1)
            )
            await repo.update_tontine(tontine.id, {"total_members": len(remaining)})

        logger.info(f"Removed member {member.id} from tontine {tontine.id}")

    async def update_member(self, tontine_id: str, member_id: str, update_in: MemberUpdate) -> TontineMember:
        member = await self.get_member(tontine_id, member_id)
        fields = {k: v for k, v in update_in.model_dump(exclude_unset=True).items() if v is not None}

        if "member_name" in fields:
            fields["member_name"] = fields["member_name"].strip()
            if not fields["member_name"]:
                raise LedgerValidationError("member_name is required")
            others = [m for m in await self.repo.list_members(member.tontine_id) if m.id != member.id]
            self._ensure_unique_name(others, fields["member_name"])

        if not fields:
            return member

        await self.repo.update_member(member.id, fields)
        return await self.repo.get_member(member.id)

    async def set_current_user(self, tontine_id: str, member_id: str) -> TontineMember:
        """Move the current-user flag, and the payout creance due date, to another member."""
        member = await self.get_member(tontine_id, member_id)
        if member.is_current_user:
            return member

        members = await self.repo.list_members(member.tontine_id)
        async with self.store.transaction() as tx:
            repo = TontineRepository(tx)
            await repo.update_members(
                (m.id, {"is_current_user": m.id == member.id})
                for m in members
                if m.is_current_user or m.id == member.id
            )
            obligations = ObligationRepository(tx)
            creance = await obligations.find_tontine_creance(self.user_id, member.tontine_id)
            if creance is not None and not creance.is_terminal():
                await obligations.update_obligation(creance.id, {"due_date": member.payout_date})

        logger.info(f"Member {member.id} is now the current user of tontine {member.tontine_id}")
        return member.model_copy(update={"is_current_user": True})

    # ===== HELPERS =====

    @staticmethod
    def _ensure_active(tontine: Tontine) -> None:
        if tontine.status == TontineStatus.COMPLETED:
            logger.warning(f"Payment refused on completed tontine {tontine.id}")
            raise PolicyError(f"Tontine {tontine.name} is completed")

    @staticmethod
    def _validate_cycle(tontine: Tontine, cycle_number: int) -> None:
        if cycle_number < 1 or cycle_number > tontine.total_members:
            raise LedgerValidationError(
                f"cycle_number must be between 1 and {tontine.total_members}"
            )

    @staticmethod
    def _ensure_unique_name(members: Sequence[TontineMember], name: str) -> None:
        if any(_normalize_name(m.member_name) == _normalize_name(name) for m in members):
            raise LedgerValidationError(f"a member named {name} already exists in this tontine")

    async def _savings_category(self, ledger: LedgerService) -> str:
        return await ledger.resolve_or_create_category(
            self.user_id,
            settings.CATEGORY_TONTINE,
            CategoryType.EXPENSE,
            CategoryNature.SAVINGS
        )
