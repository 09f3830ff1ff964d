import pytest
from datetime import date

from tresor.models.obligation import Obligation, ObligationStatus, ObligationType
from tresor.models.tontine import Tontine, TontineMember
from tresor.repositories.obligation_repo import ObligationRepository
from tresor.services.auto_settlement import (
    build_tontine_obligations,
    force_settle_creance,
    settle_oldest_engagement,
)

TONTINE_ID = "65a000000000000000000001"


def _weekly_tontine():
    return Tontine(
        id=TONTINE_ID,
        user_id="u1",
        name="Famille",
        total_members=3,
        contribution_amount=2000,
        frequency="weekly",
        start_date=date(2025, 3, 3)
    )


def _members():
    return [
        TontineMember(user_id="u1", tontine_id=TONTINE_ID, member_name=name, position_in_order=pos,
                      is_current_user=(pos == 2), payout_date=date(2025, 3, 3 + 7 * (pos - 1)))
        for pos, name in enumerate(["Ina", "Moi", "Seydou"], start=1)
    ]


async def _engagement(repo, due, remaining=1000, status=ObligationStatus.ACTIVE):
    return await repo.insert_obligation(Obligation(
        user_id="u1",
        type=ObligationType.ENGAGEMENT,
        person_name="Famille",
        total_amount=1000,
        remaining_amount=remaining,
        due_date=due,
        status=status,
        linked_tontine_id=TONTINE_ID
    ))


def test_build_tontine_obligations_weekly():
    obligations = build_tontine_obligations(_weekly_tontine(), _members())

    engagements = [o for o in obligations if o.type == ObligationType.ENGAGEMENT]
    creances = [o for o in obligations if o.type == ObligationType.CREANCE]
    assert [o.due_date for o in engagements] == [date(2025, 3, 3), date(2025, 3, 10), date(2025, 3, 17)]
    assert engagements[0].description == "Famille - cycle 1/3"
    assert len(creances) == 1
    assert creances[0].total_amount == 6000
    assert creances[0].due_date == date(2025, 3, 10)
    assert all(o.linked_tontine_id == TONTINE_ID for o in obligations)
    assert all(o.remaining_amount == o.total_amount for o in obligations)


@pytest.mark.asyncio
async def test_settle_oldest_engagement_skips_terminal_and_later(store):
    repo = ObligationRepository(store)
    await _engagement(repo, date(2025, 1, 1), remaining=0, status=ObligationStatus.SETTLED)
    later = await _engagement(repo, date(2025, 3, 1))
    oldest_open = await _engagement(repo, date(2025, 2, 1))

    settled = await settle_oldest_engagement(repo, _weekly_tontine(), 300)

    assert settled.id == oldest_open.id
    assert (await repo.get_obligation(oldest_open.id)).remaining_amount == 700
    assert (await repo.get_obligation(later.id)).remaining_amount == 1000


@pytest.mark.asyncio
async def test_settle_oldest_engagement_without_target(store):
    assert await settle_oldest_engagement(ObligationRepository(store), _weekly_tontine(), 500) is None


@pytest.mark.asyncio
async def test_force_settle_creance_leaves_cancelled_alone(store):
    repo = ObligationRepository(store)
    creance = await repo.insert_obligation(Obligation(
        user_id="u1",
        type=ObligationType.CREANCE,
        person_name="Famille",
        total_amount=6000,
        remaining_amount=6000,
        status=ObligationStatus.CANCELLED,
        linked_tontine_id=TONTINE_ID
    ))

    assert await force_settle_creance(repo, _weekly_tontine()) is None
    assert (await repo.get_obligation(creance.id)).status == ObligationStatus.CANCELLED


@pytest.mark.asyncio
async def test_force_settle_creance_ignores_other_users_creance(store):
    repo = ObligationRepository(store)
    foreign = await repo.insert_obligation(Obligation(
        user_id="u2",
        type=ObligationType.CREANCE,
        person_name="Famille",
        total_amount=6000,
        remaining_amount=6000,
        linked_tontine_id=TONTINE_ID
    ))

    assert await force_settle_creance(repo, _weekly_tontine()) is None
    assert (await repo.get_obligation(foreign.id)).remaining_amount == 6000
