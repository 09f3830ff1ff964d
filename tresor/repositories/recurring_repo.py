from typing import List, Optional

from tresor.db.store import RecordStore
from tresor.models.recurring import FixedCharge, SavingsGoal
from tresor.utils.errors import NotFoundError

FIXED_CHARGES = "fixed_charges"
GOALS = "goals"


class RecurringRepository:
    """Read access to fixed charges and savings goals."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def list_auto_fixed_charges(self, user_id: Optional[str] = None) -> List[FixedCharge]:
        """Active fixed charges flagged to generate obligations, for one user or everyone."""
        query = {"is_active": True, "auto_generate_obligation": True}
        if user_id is not None:
            query["user_id"] = user_id
        docs = await self.store.list(FIXED_CHARGES, query)
        return [FixedCharge(**doc) for doc in docs]

    async def get_fixed_charge(self, charge_id: str) -> FixedCharge:
        doc = await self.store.get(FIXED_CHARGES, charge_id)
        if not doc:
            raise NotFoundError(f"Fixed charge {charge_id} not found")
        return FixedCharge(**doc)

    async def get_goal(self, goal_id: str) -> SavingsGoal:
        doc = await self.store.get(GOALS, goal_id)
        if not doc:
            raise NotFoundError(f"Savings goal {goal_id} not found")
        return SavingsGoal(**doc)

    async def list_auto_goals(self, user_id: Optional[str] = None) -> List[SavingsGoal]:
        query = {"auto_contribute": True}
        if user_id is not None:
            query["user_id"] = user_id
        docs = await self.store.list(GOALS, query)
        return [SavingsGoal(**doc) for doc in docs if doc.get("monthly_contribution", 0) > 0]

    async def insert_fixed_charge(self, charge: FixedCharge) -> FixedCharge:
        doc = await self.store.insert(FIXED_CHARGES, charge.to_document())
        return FixedCharge(**doc)

    async def insert_goal(self, goal: SavingsGoal) -> SavingsGoal:
        doc = await self.store.insert(GOALS, goal.to_document())
        return SavingsGoal(**doc)
