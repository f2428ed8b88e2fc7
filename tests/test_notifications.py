# tests/test_notifications.py

import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import BackgroundTasks

from app.core import email_client
from app.core.notifications import (
    BackgroundNotificationQueue,
    EmailNotificationDispatcher,
    NoticeItem,
    OrderEvent,
    OrderNotice,
    Recipient,
    _deliver,
    get_dispatcher,
)
from app.main import app

API = "/api/v1"

ORDER_ID = "3f2a9c1e-0000-4000-8000-000000000000"


def _notice(**overrides) -> OrderNotice:
    fields = dict(
        order_id=ORDER_ID,
        customer_name="Asha",
        status="shipped",
        return_status="None",
        total=1048.0,
        payment_method="COD",
        items=(NoticeItem("Tee", 2, 499.0),),
    )
    fields.update(overrides)
    return OrderNotice(**fields)


RECIPIENT = Recipient(email="asha@example.com", name="Asha")

dispatcher = EmailNotificationDispatcher(store_name="UNI10")


# -------------------- Message composition --------------------


def test_confirmation_message():
    subject, text = dispatcher.compose(OrderEvent.ORDER_CONFIRMED, _notice(), RECIPIENT)

    assert subject == "[UNI10] Order confirmed #3f2a9c1e"
    assert "Hi Asha," in text
    assert "- Tee x 2 @ ₹499" in text
    assert "Total: ₹1048" in text


def test_shipped_message_includes_tracking():
    subject, text = dispatcher.compose(
        OrderEvent.ORDER_SHIPPED, _notice(tracking_number="AWB123"), RECIPIENT
    )

    assert subject == "[UNI10] Your order has been shipped"
    assert "Tracking number: AWB123" in text


def test_delivered_message():
    subject, _ = dispatcher.compose(
        OrderEvent.ORDER_DELIVERED, _notice(status="delivered"), RECIPIENT
    )
    assert subject == "[UNI10] Your order has been delivered"


def test_return_messages():
    approved, _ = dispatcher.compose(OrderEvent.RETURN_APPROVED, _notice(), RECIPIENT)
    rejected, text = dispatcher.compose(
        OrderEvent.RETURN_REJECTED, _notice(rejection_reason="Worn item"), RECIPIENT
    )

    assert approved == "[UNI10] Return approved #3f2a9c1e"
    assert rejected == "[UNI10] Return rejected #3f2a9c1e"
    assert "Reason: Worn item" in text


def test_notify_sends_through_email_client(monkeypatch):
    send = MagicMock()
    monkeypatch.setattr(email_client, "send_email", send)

    dispatcher.notify(OrderEvent.ORDER_SHIPPED, _notice(), RECIPIENT)

    send.assert_called_once()
    kwargs = send.call_args.kwargs
    assert kwargs["to_email"] == "asha@example.com"
    assert kwargs["subject"] == "[UNI10] Your order has been shipped"
    assert kwargs["html_body"].startswith("<p>Hi Asha,</p>")


# -------------------- Background delivery --------------------


def test_queue_schedules_delivery():
    tasks = BackgroundTasks()
    queue = BackgroundNotificationQueue(tasks, MagicMock())

    queue.emit(OrderEvent.ORDER_SHIPPED, _notice(), RECIPIENT)

    assert len(tasks.tasks) == 1


@pytest.mark.parametrize("recipient", [None, Recipient(email="", name="Guest")])
def test_queue_skips_without_recipient(recipient):
    tasks = BackgroundTasks()
    queue = BackgroundNotificationQueue(tasks, MagicMock())

    queue.emit(OrderEvent.ORDER_SHIPPED, _notice(), recipient)

    assert tasks.tasks == []


def test_failed_delivery_is_logged_not_raised(caplog):
    broken = MagicMock()
    broken.notify.side_effect = RuntimeError("SMTP down")

    _deliver(broken, OrderEvent.ORDER_SHIPPED, _notice(), RECIPIENT)

    broken.notify.assert_called_once()
    assert "Failed to send order_shipped" in caplog.text


# -------------------- Confirmation email endpoint --------------------


@pytest.fixture(name="fake_dispatcher")
def fake_dispatcher_fixture():
    fake = MagicMock()
    app.dependency_overrides[get_dispatcher] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_dispatcher, None)


def test_send_confirmation_email(client, auth, customer, place_order, fake_dispatcher):
    order = place_order(customer, {"title": "Tee", "price": 499, "qty": 2})

    response = client.post(f"{API}/orders/{order['id']}/email", headers=auth(customer))

    assert response.status_code == 200
    assert response.json() == {"ok": True, "data": None, "message": "Confirmation email sent"}
    event, notice, recipient = fake_dispatcher.notify.call_args.args
    assert event == OrderEvent.ORDER_CONFIRMED
    assert notice.items == (NoticeItem("Tee", 2, 499.0),)
    assert recipient.email == customer.email


def test_confirmation_needs_a_customer_email(client, auth, admin, place_order, fake_dispatcher):
    order = place_order(None)

    response = client.post(f"{API}/orders/{order['id']}/email", headers=auth(admin))

    assert response.status_code == 400
    assert response.json()["message"] == "Order has no customer email"
    fake_dispatcher.notify.assert_not_called()


def test_confirmation_send_failure_is_a_server_error(client, auth, customer, place_order, fake_dispatcher):
    order = place_order(customer)
    fake_dispatcher.notify.side_effect = OSError("connection refused")

    response = client.post(f"{API}/orders/{order['id']}/email", headers=auth(customer))

    assert response.status_code == 500
    assert response.json() == {"ok": False, "message": "Failed to send email: connection refused"}


def test_confirmation_unknown_order(client, auth, admin, fake_dispatcher):
    response = client.post(f"{API}/orders/{uuid.uuid4()}/email", headers=auth(admin))
    assert response.status_code == 404
