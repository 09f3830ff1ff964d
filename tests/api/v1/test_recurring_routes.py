import asyncio
from datetime import date

from tresor.models.recurring import FixedCharge
from tresor.repositories.recurring_repo import RecurringRepository


def test_generate_then_pay_fixed_charge(client, api_store, user_id):
    store, methods = api_store
    charge = asyncio.run(RecurringRepository(store).insert_fixed_charge(FixedCharge(
        user_id=user_id,
        name="Internet",
        amount=25000,
        due_day=10,
        start_date=date(2024, 1, 1),
        auto_generate_obligation=True,
        payment_method_id=methods["cash"]
    )))

    response = client.post("/api/v1/recurring/generate", json={"today": "2025-05-02"})
    assert response.json() == {"ok": True, "created": 1}
    response = client.post("/api/v1/recurring/generate", json={"today": "2025-05-20"})
    assert response.json()["created"] == 0

    response = client.get(f"/api/v1/recurring/fixed-charges/{charge.id}/status", params={"today": "2025-05-12"})
    assert response.json() == {"status": "overdue"}

    response = client.post(f"/api/v1/recurring/fixed-charges/{charge.id}/pay", json={"payment_date": "2025-05-12"})
    assert response.status_code == 200
    assert response.json()["settled"] is True
    assert response.json()["payment"]["amount"] == 25000
    response = client.get(f"/api/v1/recurring/fixed-charges/{charge.id}/status", params={"today": "2025-05-12"})
    assert response.json() == {"status": "paid"}

    response = client.post(f"/api/v1/recurring/fixed-charges/{charge.id}/pay", json={"payment_date": "2025-05-13"})
    assert response.status_code == 404


def test_generate_only_covers_the_callers_charges(client, api_store, user_id, other_user_id):
    store, _ = api_store
    repo = RecurringRepository(store)
    own = asyncio.run(repo.insert_fixed_charge(FixedCharge(
        user_id=user_id, name="Internet", amount=25000, due_day=10,
        start_date=date(2024, 1, 1), auto_generate_obligation=True
    )))
    foreign = asyncio.run(repo.insert_fixed_charge(FixedCharge(
        user_id=other_user_id, name="Loyer", amount=150000, due_day=5,
        start_date=date(2024, 1, 1), auto_generate_obligation=True
    )))

    response = client.post("/api/v1/recurring/generate", json={"today": "2025-05-02"})
    assert response.json() == {"ok": True, "created": 1}

    obligations = asyncio.run(store.list("obligations"))
    assert [o["linked_fixed_charge_id"] for o in obligations] == [own.id]
    assert all(o.get("linked_fixed_charge_id") != foreign.id for o in obligations)
