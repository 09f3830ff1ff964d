"""
Cross-link rules between tontines and obligations.

A tontine is mirrored as one engagement per cycle (what the user must pay in)
and one creance for the user's own payout (what the user will receive).

- A contribution pays down the oldest open engagement of the tontine, FIFO by
  due date. Partial payments are tolerated and overpayment clamps to zero.
- Receiving the pot settles the creance outright, whatever its history.
"""

from typing import List, Optional, Sequence

from tresor.core.logging_config import get_logger
from tresor.models.obligation import (
    Obligation,
    ObligationConfidence,
    ObligationStatus,
    ObligationType,
)
from tresor.models.tontine import Tontine, TontineMember
from tresor.repositories.obligation_repo import ObligationRepository
from tresor.utils.obligation_validation import apply_payment
from tresor.utils.schedule import add_cycles

logger = get_logger(__name__)


def build_tontine_obligations(tontine: Tontine, members: Sequence[TontineMember]) -> List[Obligation]:
    """Engagements for every cycle plus the creance for the current user's payout."""
    obligations = []
    for cycle in range(1, tontine.total_members + 1):
        obligations.append(Obligation(
            user_id=tontine.user_id,
            type=ObligationType.ENGAGEMENT,
            person_name=tontine.name,
            description=f"{tontine.name} - cycle {cycle}/{tontine.total_members}",
            total_amount=tontine.contribution_amount,
            remaining_amount=tontine.contribution_amount,
            due_date=add_cycles(tontine.start_date, tontine.frequency, cycle - 1),
            confidence=ObligationConfidence.CERTAIN,
            linked_tontine_id=tontine.id
        ))

    current_user = next(m for m in members if m.is_current_user)
    obligations.append(Obligation(
        user_id=tontine.user_id,
        type=ObligationType.CREANCE,
        person_name=tontine.name,
        description=f"{tontine.name} - pot (position {current_user.position_in_order})",
        total_amount=tontine.pot_amount,
        remaining_amount=tontine.pot_amount,
        due_date=current_user.payout_date,
        confidence=ObligationConfidence.CERTAIN,
        linked_tontine_id=tontine.id
    ))
    return obligations


async def settle_oldest_engagement(
    repo: ObligationRepository,
    tontine: Tontine,
    amount: int
) -> Optional[Obligation]:
    """Pay `amount` off the tontine owner's oldest open engagement linked to the tontine."""
    target = await repo.find_oldest_active_engagement(tontine.user_id, tontine.id)
    if target is None:
        logger.info(f"No open engagement left on tontine {tontine.id}")
        return None

    remaining, status = apply_payment(target.remaining_amount, amount)
    await repo.update_status(target.id, remaining, status)
    logger.info(f"Contribution of {amount} applied to obligation {target.id} -> {status.value}")
    return target.model_copy(update={"remaining_amount": remaining, "status": status})


async def force_settle_creance(repo: ObligationRepository, tontine: Tontine) -> Optional[Obligation]:
    """Close the tontine's payout creance. Cancelled or settled creances are left alone."""
    creance = await repo.find_tontine_creance(tontine.user_id, tontine.id)
    if creance is None or creance.is_terminal():
        return None

    await repo.update_status(creance.id, 0, ObligationStatus.SETTLED)
    logger.info(f"Pot received: creance {creance.id} settled")
    return creance.model_copy(update={"remaining_amount": 0, "status": ObligationStatus.SETTLED})
