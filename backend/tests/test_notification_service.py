import httpx
import pytest

from eventpos.models import Purchase
from eventpos.services import notification_service, purchase_service


class RecordingDispatcher:
    def __init__(self, result=True, exc=None):
        self.result = result
        self.exc = exc
        self.sent = []

    def send(self, to, message):
        if self.exc:
            raise self.exc
        self.sent.append((to, message))
        return self.result


def _cart():
    return [{"product_id": "p1", "quantity": 2}]


def test_message_summarizes_purchase(db_session, arepa):
    purchase = purchase_service.create_purchase(_cart(), "STU-001", channel="pre-sale")

    message = notification_service.format_purchase_message(purchase, event_name="Spring Fair")

    assert message.startswith("Pre-sale registered!")
    assert "Spring Fair" in message
    assert f"Code: {purchase.id}" in message
    assert "- Arepa (x2) - $100.00" in message
    assert "Total to pay: $100.00" in message


def test_self_service_checkout_notifies(db_session, arepa):
    dispatcher = RecordingDispatcher()

    purchase, notified = purchase_service.submit_self_service_purchase(
        _cart(), "STU-001", customer_phone="+573001112233", dispatcher=dispatcher
    )

    assert notified is True
    [(to, message)] = dispatcher.sent
    assert to == "+573001112233"
    assert purchase.id in message


@pytest.mark.parametrize("dispatcher", [
    RecordingDispatcher(result=False),
    RecordingDispatcher(exc=httpx.ConnectError("gateway down")),
    RecordingDispatcher(exc=RuntimeError("gateway client crashed")),
])
def test_failed_notification_keeps_purchase(db_session, arepa, dispatcher):
    purchase, notified = purchase_service.submit_self_service_purchase(
        _cart(), "STU-001", customer_phone="+573001112233", dispatcher=dispatcher
    )

    assert notified is False
    assert db_session.get(Purchase, purchase.id) is not None


def test_no_phone_or_no_dispatcher_skips(db_session, arepa):
    purchase = purchase_service.create_purchase(_cart(), "STU-001")

    assert notification_service.send_purchase_notification(purchase, None, RecordingDispatcher()) is False
    # NOTIFY_WEBHOOK_URL is unset in tests
    assert notification_service.get_dispatcher() is None
    assert notification_service.send_purchase_notification(purchase, "+573001112233") is False


def test_webhook_dispatcher_posts_json(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers, timeout))
        return httpx.Response(202, request=httpx.Request("POST", url))

    monkeypatch.setattr(notification_service.httpx, "post", fake_post)
    dispatcher = notification_service.WebhookDispatcher("https://gateway.test/send", token="t0k", timeout=3)

    assert dispatcher.send("+573001112233", "hello") is True
    assert calls == [(
        "https://gateway.test/send",
        {"to": "+573001112233", "message": "hello"},
        {"Authorization": "Bearer t0k"},
        3,
    )]


def test_unexpected_dispatcher_error_is_logged_not_raised(db_session, arepa, caplog):
    dispatcher = RecordingDispatcher(exc=RuntimeError("gateway client crashed"))

    purchase, notified = purchase_service.submit_self_service_purchase(
        _cart(), "STU-001", customer_phone="+573001112233", dispatcher=dispatcher
    )

    assert notified is False
    assert db_session.query(Purchase).count() == 1
    assert f"Failed to send notification for purchase {purchase.id}" in caplog.text
