from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from tresor.main import app


def _create(client, **overrides):
    payload = {"type": "creance", "person_name": "Moussa", "total_amount": 10000}
    payload.update(overrides)
    return client.post("/api/v1/obligations/", json=payload)


def test_create_and_pay_obligation(client, api_store):
    _, methods = api_store

    response = _create(client, due_date="2025-04-30")
    assert response.status_code == 201
    obligation = response.json()
    assert obligation["remaining_amount"] == 10000
    assert obligation["status"] == "active"

    response = client.post(
        f"/api/v1/obligations/{obligation['id']}/payments",
        json={"amount": 4000, "payment_method_id": methods["cash"], "payment_date": "2025-03-01"}
    )
    assert response.status_code == 201
    data = response.json()
    assert data["settled"] is False
    assert data["obligation"]["remaining_amount"] == 6000
    assert data["obligation"]["status"] == "partially_paid"

    response = client.post(
        f"/api/v1/obligations/{obligation['id']}/payments",
        json={"amount": 6000, "payment_method_id": methods["cash"]}
    )
    assert response.json()["settled"] is True

    response = client.get(f"/api/v1/obligations/{obligation['id']}/payments")
    assert [p["amount"] for p in response.json()] == [6000, 4000]


def test_payment_on_settled_obligation_conflicts(client, api_store):
    _, methods = api_store
    obligation = _create(client, total_amount=500).json()
    client.post(f"/api/v1/obligations/{obligation['id']}/payments",
                json={"amount": 500, "payment_method_id": methods["cash"]})

    response = client.post(f"/api/v1/obligations/{obligation['id']}/payments",
                           json={"amount": 1, "payment_method_id": methods["cash"]})
    assert response.status_code == 409
    assert response.json()["detail"] == "Obligation is already settled"


def test_insufficient_balance_conflicts(client, api_store):
    _, methods = api_store
    obligation = _create(client, type="engagement").json()

    response = client.post(f"/api/v1/obligations/{obligation['id']}/payments",
                           json={"amount": 100, "payment_method_id": methods["empty"]})
    assert response.status_code == 409
    assert response.json()["current_balance"] == 0


def test_validation_errors_are_400(client):
    response = _create(client, total_amount=0)
    assert response.status_code == 400
    assert response.json()["detail"] == "amount must be positive"


def test_update_below_paid_is_400(client, api_store):
    _, methods = api_store
    obligation = _create(client).json()
    client.post(f"/api/v1/obligations/{obligation['id']}/payments",
                json={"amount": 4000, "payment_method_id": methods["cash"]})

    response = client.patch(f"/api/v1/obligations/{obligation['id']}", json={"total_amount": 8000})
    assert response.status_code == 200
    assert response.json()["remaining_amount"] == 4000

    response = client.patch(f"/api/v1/obligations/{obligation['id']}", json={"total_amount": 3000})
    assert response.status_code == 400


def test_cancel_and_list_active(client):
    kept = _create(client).json()
    dropped = _create(client, type="engagement", total_amount=2000).json()

    response = client.post(f"/api/v1/obligations/{dropped['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = client.get("/api/v1/obligations/", params={"active_only": True})
    assert [o["id"] for o in response.json()] == [kept["id"]]

    response = client.get("/api/v1/obligations/", params={"type": "engagement"})
    assert [o["id"] for o in response.json()] == [dropped["id"]]

    summary = client.get("/api/v1/obligations/summary").json()
    assert summary == {"owed_to_me": 10000, "i_owe": 0, "net": 10000, "open_count": 1}


def test_unknown_obligation_is_404(client):
    response = client.get("/api/v1/obligations/507f1f77bcf86cd799439000")
    assert response.status_code == 404


def test_store_failure_is_503(client):
    with patch(
        "tresor.services.obligation_service.ObligationService.get_summary",
        new_callable=AsyncMock,
        side_effect=ServerSelectionTimeoutError("no primary")
    ):
        response = client.get("/api/v1/obligations/summary")
    assert response.status_code == 503


def test_missing_token_is_rejected():
    app.dependency_overrides.clear()
    response = TestClient(app).get("/api/v1/obligations/")
    assert response.status_code in (401, 403)
