from datetime import datetime, timezone

from rental_jobs.models.entities import User
from rental_jobs.models.notification import Notification
from rental_jobs.services.push_relay import PushRelay, build_payload
from tests.conftest import RecordingSender, run

NOTIFICATION = Notification(
    id="n1",
    userId="u1",
    title="Hola",
    message="Tu contrato vence pronto",
    type="contract_expiry",
    createdAt=datetime(2024, 3, 10, tzinfo=timezone.utc),
)


def test_payload_shape():
    payload = build_payload("tok", NOTIFICATION)

    assert payload == {
        "notification": {"title": "Hola", "body": "Tu contrato vence pronto"},
        "data": {"type": "contract_expiry", "relatedId": ""},
        "token": "tok",
    }


def test_user_without_token_is_skipped(push, sender):
    delivered = run(push.deliver(User(id="u1"), NOTIFICATION))

    assert delivered is False
    assert sender.sent == []


def test_gateway_failure_is_swallowed():
    relay = PushRelay(RecordingSender(fail=True))

    delivered = run(relay.deliver(User(id="u1", pushToken="tok"), NOTIFICATION))

    assert delivered is False


def test_legacy_fcm_token_is_used(push, sender):
    user = User.model_validate({"id": "u1", "fcmToken": "legacy-token"})

    assert run(push.deliver(user, NOTIFICATION)) is True
    assert sender.sent[0]["token"] == "legacy-token"


def test_relay_without_sender_does_nothing():
    assert run(PushRelay(None).deliver(User(id="u1", pushToken="tok"), NOTIFICATION)) is False
