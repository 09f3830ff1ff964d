from typing import List, Optional

from tresor.core.config import settings
from tresor.core.logging_config import get_logger
from tresor.db.store import RecordStore
from tresor.models.ledger import CategoryNature, CategoryType, TransactionSource
from tresor.models.obligation import (
    Obligation,
    ObligationConfidence,
    ObligationPayment,
    ObligationStatus,
    ObligationType,
)
from tresor.repositories.obligation_repo import ObligationRepository
from tresor.repositories.recurring_repo import RecurringRepository
from tresor.repositories.tontine_repo import TontineRepository
from tresor.schemas.obligation import (
    ObligationCreate,
    ObligationPaymentCreate,
    ObligationSummary,
    ObligationUpdate,
    PaymentOutcome,
)
from tresor.services.ledger_service import LedgerService
from tresor.utils.errors import LedgerValidationError, NotFoundError, TerminalObligationError
from tresor.utils.obligation_validation import (
    apply_payment,
    rebase_total,
    validate_payment_amount,
    validate_positive_amount,
)

logger = get_logger(__name__)

# Optional fields an edit may set back to empty
CLEARABLE_FIELDS = {"description", "due_date"}


class ObligationService:
    """
    Lifecycle of one user's obligations.

    active -> partially_paid -> settled, and active|partially_paid -> cancelled.
    settled and cancelled are terminal.
    """

    def __init__(self, store: RecordStore, user_id: str):
        self.store = store
        self.user_id = user_id
        self.repo = ObligationRepository(store)
        self.ledger = LedgerService(store)

    async def get(self, obligation_id: str) -> Obligation:
        obligation = await self.repo.get_obligation(obligation_id)
        if obligation.user_id != self.user_id:
            raise NotFoundError(f"Obligation {obligation_id} not found")
        return obligation

    async def list_obligations(
        self,
        type: Optional[ObligationType] = None,
        status: Optional[ObligationStatus] = None
    ) -> List[Obligation]:
        return await self.repo.list_obligations(self.user_id, type=type, status=status)

    async def list_active(self, type: Optional[ObligationType] = None) -> List[Obligation]:
        return await self.repo.list_open(self.user_id, type=type)

    async def list_payments(self, obligation_id: str) -> List[ObligationPayment]:
        obligation = await self.get(obligation_id)
        return await self.repo.list_payments(obligation.id)

    async def get_summary(self) -> ObligationSummary:
        open_obligations = await self.repo.list_open(self.user_id)
        owed_to_me = sum(o.remaining_amount for o in open_obligations if o.type == ObligationType.CREANCE)
        i_owe = sum(o.remaining_amount for o in open_obligations if o.type == ObligationType.ENGAGEMENT)
        return ObligationSummary(
            owed_to_me=owed_to_me,
            i_owe=i_owe,
            net=owed_to_me - i_owe,
            open_count=len(open_obligations)
        )

    async def create(self, obligation_in: ObligationCreate) -> Obligation:
        validate_positive_amount(obligation_in.total_amount)
        person_name = obligation_in.person_name.strip()
        if not person_name:
            raise LedgerValidationError("person_name is required")
        await self._ensure_owned_links(obligation_in)

        # What the user owes is never uncertain
        confidence = obligation_in.confidence or ObligationConfidence.CERTAIN
        if obligation_in.type == ObligationType.ENGAGEMENT:
            confidence = ObligationConfidence.CERTAIN

        obligation = Obligation(
            user_id=self.user_id,
            **obligation_in.model_dump(exclude={"person_name", "confidence"}),
            person_name=person_name,
            confidence=confidence,
            remaining_amount=obligation_in.total_amount,
            status=ObligationStatus.ACTIVE
        )
        obligation = await self.repo.insert_obligation(obligation)
        logger.info(f"Created {obligation.type.value} obligation {obligation.id} of {obligation.total_amount}")
        return obligation

    async def log_payment(self, obligation_id: str, payment_in: ObligationPaymentCreate) -> PaymentOutcome:
        """
        Record a payment against an obligation.

        Appends the payment, recomputes remaining_amount and status, and mirrors
        one signed transaction on the payment method (+ for a creance, - for an
        engagement). Engagement payments must pass the balance guard first.
        """
        obligation = await self.get(obligation_id)

        if payment_in.idempotency_key:
            previous = await self.repo.find_payment_by_key(obligation.id, payment_in.idempotency_key)
            if previous:
                logger.info(f"Payment {previous.id} replayed for key {payment_in.idempotency_key}")
                return PaymentOutcome(
                    settled=obligation.status == ObligationStatus.SETTLED,
                    obligation=obligation,
                    payment=previous
                )

        if obligation.is_terminal():
            logger.warning(f"Payment refused on {obligation.status.value} obligation {obligation.id}")
            raise TerminalObligationError(f"Obligation is already {obligation.status.value}")

        validate_payment_amount(payment_in.amount, obligation.remaining_amount)

        if obligation.type == ObligationType.ENGAGEMENT:
            await self.ledger.ensure_can_debit(self.user_id, payment_in.payment_method_id, payment_in.amount)
        else:
            await self.ledger.get_payment_method(self.user_id, payment_in.payment_method_id)

        remaining, status = apply_payment(obligation.remaining_amount, payment_in.amount)

        if obligation.type == ObligationType.CREANCE:
            category_name = settings.CATEGORY_SETTLEMENT_RECEIVED
            category_type, color, signed_amount = CategoryType.INCOME, "emerald", payment_in.amount
        else:
            category_name = settings.CATEGORY_SETTLEMENT_PAID
            category_type, color, signed_amount = CategoryType.EXPENSE, "red", -payment_in.amount

        async with self.store.transaction() as tx:
            repo = ObligationRepository(tx)
            ledger = LedgerService(tx)

            payment = await repo.insert_payment(ObligationPayment(
                user_id=self.user_id,
                obligation_id=obligation.id,
                **payment_in.model_dump()
            ))
            await repo.update_status(obligation.id, remaining, status)

            category_id = await ledger.resolve_or_create_category(
                self.user_id,
                category_name,
                category_type,
                CategoryNature.ESSENTIAL,
                color
            )
            await ledger.mirror(
                self.user_id,
                signed_amount,
                f"{category_name} - {obligation.person_name}",
                payment_in.payment_date,
                payment_in.payment_method_id,
                category_id,
                source=TransactionSource.OBLIGATION_PAYMENT,
                source_id=payment.id
            )

        settled = status == ObligationStatus.SETTLED
        logger.info(f"Logged payment {payment.id} of {payment.amount} on obligation {obligation.id} -> {status.value}")
        return PaymentOutcome(
            settled=settled,
            obligation=obligation.model_copy(update={"remaining_amount": remaining, "status": status}),
            payment=payment
        )

    async def update(self, obligation_id: str, update_in: ObligationUpdate) -> Obligation:
        obligation = await self.get(obligation_id)
        if obligation.is_terminal():
            logger.warning(f"Edit refused on {obligation.status.value} obligation {obligation.id}")
            raise TerminalObligationError(f"Cannot edit an obligation that is already {obligation.status.value}")

        fields = {
            k: v for k, v in update_in.model_dump(exclude_unset=True).items()
            if v is not None or k in CLEARABLE_FIELDS
        }

        if "person_name" in fields:
            fields["person_name"] = fields["person_name"].strip()
            if not fields["person_name"]:
                raise LedgerValidationError("person_name is required")

        if obligation.type == ObligationType.ENGAGEMENT and "confidence" in fields:
            fields["confidence"] = ObligationConfidence.CERTAIN

        if "total_amount" in fields and fields["total_amount"] != obligation.total_amount:
            remaining, status = rebase_total(
                obligation.total_amount,
                obligation.remaining_amount,
                fields["total_amount"]
            )
            fields["remaining_amount"] = remaining
            fields["status"] = status

        if not fields:
            return obligation

        await self.repo.update_obligation(obligation.id, fields)
        logger.info(f"Updated obligation {obligation.id}: {sorted(fields)}")
        return await self.repo.get_obligation(obligation.id)

    async def cancel(self, obligation_id: str) -> Obligation:
        obligation = await self.get(obligation_id)
        if obligation.is_terminal():
            logger.warning(f"Cancel refused on {obligation.status.value} obligation {obligation.id}")
            raise TerminalObligationError(f"Obligation is already {obligation.status.value}")

        await self.repo.cancel(obligation.id)
        logger.info(f"Cancelled obligation {obligation.id}")
        return obligation.model_copy(update={"status": ObligationStatus.CANCELLED})

    async def _ensure_owned_links(self, obligation_in: ObligationCreate) -> None:
        """Linked tontines, fixed charges and goals must belong to the same user."""
        links = []
        if obligation_in.linked_tontine_id:
            links.append(await TontineRepository(self.store).get_tontine(obligation_in.linked_tontine_id))
        if obligation_in.linked_fixed_charge_id:
            links.append(await RecurringRepository(self.store).get_fixed_charge(obligation_in.linked_fixed_charge_id))
        if obligation_in.linked_savings_goal_id:
            links.append(await RecurringRepository(self.store).get_goal(obligation_in.linked_savings_goal_id))

        for record in links:
            if record.user_id != self.user_id:
                logger.warning(f"Obligation link to foreign record {record.id} refused for user {self.user_id}")
                raise NotFoundError(f"{type(record).__name__} {record.id} not found")
