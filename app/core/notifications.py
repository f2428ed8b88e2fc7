# app/core/notifications.py
"""
Outbound notifications for order lifecycle events.

The lifecycle engine only talks to a NotificationQueue: it emits an event
and moves on. The request-scoped queue hands each event to FastAPI
BackgroundTasks, so delivery happens after the response is sent and a
failed delivery is logged without touching the order.

    service --emit--> NotificationQueue --background--> NotificationDispatcher.notify
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from html import escape
from typing import Protocol

from fastapi import BackgroundTasks

from app.core import email_client
from app.core.config import get_settings

logger = logging.getLogger(__name__)


class OrderEvent(str, Enum):
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    RETURN_APPROVED = "return_approved"
    RETURN_REJECTED = "return_rejected"


STATUS_EVENTS: dict[str, OrderEvent] = {
    "shipped": OrderEvent.ORDER_SHIPPED,
    "delivered": OrderEvent.ORDER_DELIVERED,
}


@dataclass(frozen=True)
class NoticeItem:
    title: str
    quantity: int
    price: float


@dataclass(frozen=True)
class OrderNotice:
    """
    Detached copy of the order fields a message needs. Background tasks
    run after the request's DB session is closed, so ORM rows are never
    passed across.
    """

    order_id: str
    customer_name: str
    status: str
    return_status: str
    total: float
    payment_method: str
    tracking_number: str | None = None
    rejection_reason: str | None = None
    items: tuple[NoticeItem, ...] = field(default_factory=tuple)

    @property
    def short_id(self) -> str:
        return self.order_id[:8]

    @classmethod
    def from_order(cls, order, items=()) -> "OrderNotice":
        return cls(
            order_id=str(order.id),
            customer_name=order.name,
            status=order.status,
            return_status=order.return_status,
            total=order.total,
            payment_method=order.payment_method,
            tracking_number=order.tracking_number,
            rejection_reason=order.rejection_reason,
            items=tuple(NoticeItem(it.title, it.quantity, it.price) for it in items),
        )


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str


class NotificationDispatcher(Protocol):
    def notify(self, event: OrderEvent, order: OrderNotice, user: Recipient) -> None:
        ...


class NotificationQueue(Protocol):
    def emit(self, event: OrderEvent, order: OrderNotice, user: Recipient | None) -> None:
        ...


class EmailNotificationDispatcher:
    """
    Renders lifecycle events as transactional email and sends them
    through app.core.email_client.
    """

    def __init__(self, store_name: str | None = None):
        self.store_name = store_name or get_settings().STORE_NAME

    def notify(self, event: OrderEvent, order: OrderNotice, user: Recipient) -> None:
        subject, text = self.compose(event, order, user)
        html_body = "".join(
            f"<p>{escape(line)}</p>" for line in text.split("\n") if line
        )
        email_client.send_email(
            to_email=user.email,
            subject=subject,
            text_body=text,
            html_body=html_body,
        )

    def compose(self, event: OrderEvent, order: OrderNotice, user: Recipient) -> tuple[str, str]:
        """Return (subject, plain text body) for an event."""
        prefix = f"[{self.store_name}]"
        greeting = f"Hi {user.name or order.customer_name or 'there'},"
        ref = f"order #{order.short_id}"

        if event == OrderEvent.ORDER_CONFIRMED:
            lines = [f"- {it.title} x {it.quantity} @ ₹{it.price:g}" for it in order.items]
            body = "\n".join(
                [
                    greeting,
                    f"Thank you for your {ref}.",
                    *lines,
                    f"Total: ₹{order.total:g}",
                    f"Payment method: {order.payment_method}",
                ]
            )
            return f"{prefix} Order confirmed #{order.short_id}", body

        if event in (OrderEvent.ORDER_SHIPPED, OrderEvent.ORDER_DELIVERED):
            lines = [greeting, f"Your {ref} is now {order.status}."]
            if order.tracking_number:
                lines.append(f"Tracking number: {order.tracking_number}")
            return f"{prefix} Your order has been {order.status}", "\n".join(lines)

        if event == OrderEvent.RETURN_APPROVED:
            body = "\n".join(
                [greeting, f"Your return request for {ref} has been approved."]
            )
            return f"{prefix} Return approved #{order.short_id}", body

        if event == OrderEvent.RETURN_REJECTED:
            lines = [greeting, f"Your return request for {ref} has been rejected."]
            if order.rejection_reason:
                lines.append(f"Reason: {order.rejection_reason}")
            return f"{prefix} Return rejected #{order.short_id}", "\n".join(lines)

        raise ValueError(f"Unknown order event: {event}")


class BackgroundNotificationQueue:
    """
    Request-scoped queue backed by FastAPI BackgroundTasks.
    """

    def __init__(self, background_tasks: BackgroundTasks, dispatcher: NotificationDispatcher):
        self.background_tasks = background_tasks
        self.dispatcher = dispatcher

    def emit(self, event: OrderEvent, order: OrderNotice, user: Recipient | None) -> None:
        if user is None or not user.email:
            logger.info("Skipping %s for order %s: no recipient", event.value, order.order_id)
            return
        self.background_tasks.add_task(_deliver, self.dispatcher, event, order, user)


def _deliver(
    dispatcher: NotificationDispatcher,
    event: OrderEvent,
    order: OrderNotice,
    user: Recipient,
) -> None:
    try:
        dispatcher.notify(event, order, user)
        logger.info("Sent %s for order %s to %s", event.value, order.order_id, user.email)
    except Exception:
        # Delivery never rolls back the lifecycle change.
        logger.exception("Failed to send %s for order %s", event.value, order.order_id)


_dispatcher = EmailNotificationDispatcher()


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency for direct (synchronous) sends."""
    return _dispatcher


def get_notification_queue(background_tasks: BackgroundTasks) -> NotificationQueue:
    """FastAPI dependency; tests override it with a recording queue."""
    return BackgroundNotificationQueue(background_tasks, _dispatcher)
