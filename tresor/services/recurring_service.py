"""
Recurring obligation generation.

Fixed charges and savings goals flagged for automation get one engagement
obligation per period. Generation is idempotent per (charge or goal, due date)
and is triggered from outside: there is no scheduler in this service.
"""

from datetime import date
from typing import List, Optional

from tresor.core.logging_config import get_logger
from tresor.db.store import RecordStore
from tresor.models.obligation import (
    OPEN_STATUSES,
    Obligation,
    ObligationConfidence,
    ObligationStatus,
    ObligationType,
)
from tresor.models.recurring import FixedCharge, FixedChargeFrequency, SavingsGoal
from tresor.repositories.obligation_repo import ObligationRepository
from tresor.repositories.recurring_repo import RecurringRepository
from tresor.schemas.obligation import ObligationPaymentCreate, PaymentOutcome
from tresor.services.obligation_service import ObligationService
from tresor.utils.errors import LedgerValidationError, NotFoundError
from tresor.utils.schedule import day_in_month

logger = get_logger(__name__)


def charge_due_date(charge: FixedCharge, today: date) -> date:
    """Due date of the charge's period containing `today`."""
    if charge.frequency == FixedChargeFrequency.MONTHLY:
        month = today.month
    elif charge.frequency == FixedChargeFrequency.QUARTERLY:
        month = (today.month - 1) // 3 * 3 + 1
    else:
        month = charge.start_date.month
    return day_in_month(today.year, month, charge.due_day)


def in_charge_period(charge: FixedCharge, due_date: Optional[date], today: date) -> bool:
    """Whether `due_date` falls in the same period as `today` for this charge."""
    if due_date is None or due_date.year != today.year:
        return False
    if charge.frequency == FixedChargeFrequency.MONTHLY:
        return due_date.month == today.month
    if charge.frequency == FixedChargeFrequency.QUARTERLY:
        return (due_date.month - 1) // 3 == (today.month - 1) // 3
    return True


def charge_period_status(charge: FixedCharge, obligations: List[Obligation], today: date) -> str:
    """paid, due or overdue for the charge's current period."""
    for obligation in obligations:
        if obligation.linked_fixed_charge_id != charge.id:
            continue
        if not in_charge_period(charge, obligation.due_date, today):
            continue
        if obligation.status == ObligationStatus.SETTLED:
            return "paid"
        if obligation.due_date < today:
            return "overdue"
        return "due"
    return "due"


class RecurringObligationService:
    def __init__(self, store: RecordStore):
        self.store = store
        self.repo = RecurringRepository(store)
        self.obligations = ObligationRepository(store)

    async def generate_due_obligations(self, today: Optional[date] = None, user_id: Optional[str] = None) -> int:
        """
        Create the current period's obligations for one user, or for every
        user when `user_id` is None. Returns how many were created.
        """
        today = today or date.today()
        created = 0

        for charge in await self.repo.list_auto_fixed_charges(user_id):
            if charge.start_date > today:
                continue
            if charge.end_date is not None and charge.end_date < today:
                continue
            if await self._generate_for_charge(charge, today):
                created += 1

        for goal in await self.repo.list_auto_goals(user_id):
            if goal.deadline < today or goal.current_amount >= goal.target_amount:
                continue
            if await self._generate_for_goal(goal, today):
                created += 1

        logger.info(f"Generated {created} recurring obligations for {today.isoformat()}")
        return created

    async def get_fixed_charge_status(self, user_id: str, charge_id: str, today: Optional[date] = None) -> str:
        """paid, due or overdue for the period containing `today`."""
        today = today or date.today()
        charge = await self._get_user_charge(user_id, charge_id)
        linked = await self.obligations.list_linked(charge.user_id, "linked_fixed_charge_id", charge.id)
        return charge_period_status(charge, linked, today)

    async def pay_fixed_charge(
        self,
        user_id: str,
        charge_id: str,
        payment_method_id: Optional[str] = None,
        payment_date: Optional[date] = None
    ) -> PaymentOutcome:
        """Settle the charge's open obligation for the period of `payment_date` in full."""
        payment_date = payment_date or date.today()
        charge = await self._get_user_charge(user_id, charge_id)

        payment_method_id = payment_method_id or charge.payment_method_id
        if not payment_method_id:
            raise LedgerValidationError("payment_method_id is required")

        linked = await self.obligations.list_linked(charge.user_id, "linked_fixed_charge_id", charge.id)
        target = next(
            (o for o in linked if o.status in OPEN_STATUSES and in_charge_period(charge, o.due_date, payment_date)),
            None
        )
        if target is None:
            raise NotFoundError(f"No open obligation for {charge.name} this period")

        return await ObligationService(self.store, user_id).log_payment(target.id, ObligationPaymentCreate(
            amount=target.remaining_amount,
            payment_date=payment_date,
            payment_method_id=payment_method_id,
            notes=f"Paiement {charge.name} - {payment_date.strftime('%m/%Y')}"
        ))

    async def _get_user_charge(self, user_id: str, charge_id: str) -> FixedCharge:
        charge = await self.repo.get_fixed_charge(charge_id)
        if charge.user_id != user_id:
            raise NotFoundError(f"Fixed charge {charge_id} not found")
        return charge

    async def _generate_for_charge(self, charge: FixedCharge, today: date) -> bool:
        due_date = charge_due_date(charge, today)
        if await self.obligations.list_linked(charge.user_id, "linked_fixed_charge_id", charge.id, due_date=due_date):
            return False
        await self.obligations.insert_obligation(Obligation(
            user_id=charge.user_id,
            type=ObligationType.ENGAGEMENT,
            person_name=charge.beneficiary or charge.name,
            description=charge.name,
            total_amount=charge.amount,
            remaining_amount=charge.amount,
            due_date=due_date,
            confidence=ObligationConfidence.CERTAIN,
            linked_fixed_charge_id=charge.id
        ))
        return True

    async def _generate_for_goal(self, goal: SavingsGoal, today: date) -> bool:
        due_date = day_in_month(today.year, today.month, goal.contribute_day or 1)
        if await self.obligations.list_linked(goal.user_id, "linked_savings_goal_id", goal.id, due_date=due_date):
            return False
        await self.obligations.insert_obligation(Obligation(
            user_id=goal.user_id,
            type=ObligationType.ENGAGEMENT,
            person_name=f"Épargne - {goal.name}",
            description=f'Versement mensuel objectif "{goal.name}"',
            total_amount=goal.monthly_contribution,
            remaining_amount=goal.monthly_contribution,
            due_date=due_date,
            confidence=ObligationConfidence.CERTAIN,
            linked_savings_goal_id=goal.id
        ))
        return True
