# tests/test_mail.py

from unittest.mock import MagicMock

import pytest

from app.core import email_client
from app.services.mail_service import html_to_text

API = "/api/v1"


@pytest.fixture(name="outbox")
def outbox_fixture(monkeypatch):
    """Pretends SMTP is configured and records every send."""
    send = MagicMock()
    monkeypatch.setattr(email_client, "is_configured", lambda: True)
    monkeypatch.setattr(email_client, "send_email", send)
    return send


def test_html_to_text():
    assert html_to_text("<p>Hello <b>there</b></p>") == "Hello there"
    assert html_to_text("<br>") == " "


def test_notify_is_simulated_without_smtp(client, auth, admin, customer, other_customer):
    response = client.post(
        f"{API}/admin/notify",
        json={"user_ids": [str(customer.id), str(other_customer.id)], "message": "Sale starts today"},
        headers=auth(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Simulated send (email not configured)"
    assert body["data"]["sent"] == 0
    assert sorted(body["data"]["recipients"]) == [customer.email, other_customer.email]


def test_notify_sends_one_bcc_message(client, auth, admin, customer, other_customer, outbox):
    response = client.post(
        f"{API}/admin/notify",
        json={
            "user_ids": [str(customer.id), str(other_customer.id)],
            "message": "Line one\n<script>",
            "subject": "Store news",
        },
        headers=auth(admin),
    )

    assert response.status_code == 200
    assert response.json()["data"]["sent"] == 2
    outbox.assert_called_once()
    kwargs = outbox.call_args.kwargs
    assert kwargs["subject"] == "Store news"
    assert sorted(kwargs["bcc"]) == [customer.email, other_customer.email]
    assert "Line one<br>&lt;script&gt;" in kwargs["html_body"]


@pytest.mark.parametrize(
    "body, message",
    [
        ({"message": "Hi"}, "user_ids is required"),
        ({"user_ids": ["6a1c8a4e-5f1f-4f5e-9a8e-1d7f3c2b1a00"], "message": "  "}, "message is required"),
    ],
)
def test_notify_validation(client, auth, admin, body, message):
    response = client.post(f"{API}/admin/notify", json=body, headers=auth(admin))
    assert response.status_code == 400
    assert response.json()["message"] == message


def test_notify_is_admin_only(client, auth, customer):
    response = client.post(
        f"{API}/admin/notify",
        json={"user_ids": [str(customer.id)], "message": "Hi"},
        headers=auth(customer),
    )
    assert response.status_code == 403


def test_send_mail(client, auth, admin, outbox):
    response = client.post(
        f"{API}/orders/send-mail",
        json={"to": "buyer@example.com", "subject": "Your order", "html": "<p>Thanks!</p>"},
        headers=auth(admin),
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Email sent"
    kwargs = outbox.call_args.kwargs
    assert kwargs["to_email"] == "buyer@example.com"
    assert kwargs["text_body"] == "Thanks!"


def test_send_mail_requires_all_fields(client, auth, admin):
    response = client.post(
        f"{API}/orders/send-mail", json={"subject": "Hi"}, headers=auth(admin)
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required fields: to, subject, html"


def test_send_mail_failure_is_a_server_error(client, auth, admin, monkeypatch):
    monkeypatch.setattr(email_client, "send_email", MagicMock(side_effect=RuntimeError("SMTP is not configured")))

    response = client.post(
        f"{API}/orders/send-mail",
        json={"to": "buyer@example.com", "subject": "Hi", "html": "<p>x</p>"},
        headers=auth(admin),
    )

    assert response.status_code == 500
    assert response.json()["ok"] is False
