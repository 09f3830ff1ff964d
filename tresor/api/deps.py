from fastapi import Depends

from tresor.core.auth import get_current_user_id
from tresor.db.session import get_store
from tresor.db.store import RecordStore
from tresor.services.obligation_service import ObligationService
from tresor.services.recurring_service import RecurringObligationService
from tresor.services.tontine_service import TontineService


async def get_obligation_service(
    store: RecordStore = Depends(get_store),
    user_id: str = Depends(get_current_user_id)
) -> ObligationService:
    return ObligationService(store, user_id)


async def get_tontine_service(
    store: RecordStore = Depends(get_store),
    user_id: str = Depends(get_current_user_id)
) -> TontineService:
    return TontineService(store, user_id)


async def get_recurring_service(store: RecordStore = Depends(get_store)) -> RecurringObligationService:
    return RecurringObligationService(store)
