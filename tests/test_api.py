from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient

from rental_jobs import config
from rental_jobs.infra.store import CONTRACTS, NOTIFICATIONS, TRANSACTIONS, USERS
from rental_jobs.main import create_app
from rental_jobs.models.report import money_to_json
from rental_jobs.services.push_relay import PushRelay


@pytest.fixture
def client(store, sender):
    app = create_app()
    app.state.store = store
    app.state.push_relay = PushRelay(sender)
    return TestClient(app)


def _auth(sub):
    token = jwt.encode({"sub": sub}, config.JWT_SECRET, algorithm=config.JWT_ALG)
    return {"Authorization": f"Bearer {token}"}


def _seed_users(store):
    store.seed(USERS, "admin1", role="admin", isActive=True)
    store.seed(USERS, "viewer1", role="viewer", isActive=True, pushToken="tok")


def test_send_notification(client, store, sender):
    _seed_users(store)

    response = client.post(
        "/notifications/send",
        json={"userId": "viewer1", "title": "Hola", "message": "Mensaje", "relatedId": "c9"},
        headers=_auth("admin1"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["notificationId"] == store.all(NOTIFICATIONS)[0]["id"]
    assert sender.sent[0]["data"] == {"type": "general", "relatedId": "c9"}


def test_viewer_gets_permission_denied(client, store):
    _seed_users(store)

    response = client.post(
        "/notifications/send",
        json={"userId": "admin1", "title": "Hola", "message": "Mensaje"},
        headers=_auth("viewer1"),
    )

    assert response.status_code == 403
    assert response.json()["error"]["status"] == "permission-denied"
    assert store.all(NOTIFICATIONS) == []


def test_missing_token_is_unauthenticated(client):
    response = client.post("/reports/monthly", json={"month": 3, "year": 2024})

    assert response.status_code == 401
    assert response.json()["error"]["status"] == "unauthenticated"


def test_bad_token_is_unauthenticated(client):
    response = client.post(
        "/reports/monthly",
        json={"month": 3, "year": 2024},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_report_missing_month_is_invalid_argument(client):
    response = client.post("/reports/monthly", json={"year": 2024}, headers=_auth("u1"))

    assert response.status_code == 400
    assert response.json()["error"]["status"] == "invalid-argument"


def test_monthly_report(client, store):
    when = datetime(2024, 3, 15, tzinfo=timezone.utc)
    store.seed(TRANSACTIONS, "t1", amount=1000, type="income", category="rent", apartmentId="A1",
               date=when, createdAt=when)
    store.seed(TRANSACTIONS, "t2", amount=150, type="expense", category="maintenance", apartmentId="A1",
               date=when, createdAt=when)

    response = client.post(
        "/reports/monthly",
        json={"month": 3, "year": 2024, "apartmentId": "A1", "timeFormat": "epoch_ms"},
        headers=_auth("u1"),
    )

    assert response.status_code == 200
    body = response.json()
    summary = body["summary"]
    assert summary["totalIncome"] == 1000
    assert summary["totalExpense"] == 150
    assert summary["profitLoss"] == 850
    assert body["incomeByCategory"] == {"rent": 1000}
    assert body["expensesByCategory"] == {"maintenance": 150}
    assert body["transactions"][0]["amount"] == 1000
    assert summary["transactionCount"] == 2
    assert response.json()["transactions"][0]["date"] == int(when.timestamp() * 1000)


def test_jobs_require_key(client, monkeypatch):
    monkeypatch.setattr(config, "JOBS_API_KEY", "s3cret")

    assert client.post("/jobs/cleanup-notifications").status_code == 401
    assert client.post("/jobs/cleanup-notifications", headers={"X-Jobs-Key": "nope"}).status_code == 403


def test_expiring_contracts_job(client, store, monkeypatch):
    monkeypatch.setattr(config, "JOBS_API_KEY", "s3cret")
    _seed_users(store)
    store.seed(CONTRACTS, "c1", guestId="g", apartmentId="a", roomId="r",
               endDate=datetime.now(timezone.utc) + timedelta(days=2), status="active")

    response = client.post("/jobs/expiring-contracts", headers={"X-Jobs-Key": "s3cret"})

    assert response.status_code == 200
    assert response.json()["notificationsCreated"] == 1
    assert response.json()["contractsExpiring"] == 1


def test_money_is_serialized_as_json_numbers():
    assert money_to_json(Decimal("850")) == 850
    assert isinstance(money_to_json(Decimal("850.00")), int)
    assert money_to_json(Decimal("169.99")) == 169.99
