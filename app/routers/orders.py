# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import get_current_user, require_admin, require_auth
from app.core.errors import Forbidden, Unauthorized
from app.core.notifications import (
    NotificationDispatcher,
    NotificationQueue,
    get_dispatcher,
    get_notification_queue,
)
from app.database import get_session
from app.models.user import User
from app.repositories.invoice_repo import InvoiceRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.schemas.common import Envelope, ok
from app.schemas.invoice import InvoiceDocument
from app.schemas.mail import SendMailRequest
from app.schemas.order import (
    AdminOrderUpdate,
    CancelRequest,
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
    RejectReturnRequest,
    ReturnRequest,
    ReturnRequestRead,
)
from app.services.inventory_service import InventoryLedger
from app.services.invoice_service import InvoiceService
from app.services.mail_service import MailService
from app.services.order_service import OrderService
from app.services.order_state import STATUS_ALIASES

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
user_repo = UserRepository()
inventory = InventoryLedger(ProductRepository())
service = OrderService(order_repo, user_repo, inventory)
invoice_service = InvoiceService(InvoiceRepository(), order_repo, user_repo)
mail_service = MailService(user_repo)


# -------- Checkout & listing --------


@router.post("", response_model=Envelope[OrderRead])
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Create an order. Guests may check out (no user is linked).

    400 on validation failure, 409 when a line exceeds available stock.
    """
    return ok(service.create_order(session, current_user, payload))


@router.get("", response_model=Envelope[list[OrderRead]])
def list_orders(
    mine: str | None = None,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    `?mine=1` lists the caller's orders; otherwise admin-only list of all.
    """
    if current_user is None:
        raise Unauthorized()
    if mine == "1":
        return ok(service.list_user_orders(session, current_user.id, skip, limit))
    if not current_user.is_admin:
        raise Forbidden()
    return ok(service.list_all_orders(session, skip, limit))


@router.get("/mine", response_model=Envelope[list[OrderRead]])
def list_my_orders(
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return ok(service.list_user_orders(session, current_user.id, skip, limit))


@router.get(
    "/admin/return-requests",
    response_model=Envelope[list[ReturnRequestRead]],
    dependencies=[Depends(require_admin)],
)
def list_return_requests(session: Session = Depends(get_session)):
    """
    Orders with any return activity, most recently updated first.
    """
    return ok(service.list_return_requests(session))


@router.post(
    "/send-mail",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def send_mail(payload: SendMailRequest):
    """
    Send a one-off email (admin only).
    """
    mail_service.send_custom(payload)
    return ok(message="Email sent")


# -------- Single order --------


@router.get("/{order_id}", response_model=Envelope[OrderRead])
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Owner or admin. Guests get 403 like any other non-owner.
    """
    return ok(service.get_order(session, order_id, current_user))


@router.put("/{order_id}/status", response_model=Envelope[OrderRead])
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
    notifications: NotificationQueue = Depends(get_notification_queue),
):
    """
    Set any of pending, paid, shipped, delivered, cancelled (admin only).
    """
    return ok(
        service.set_status(session, order_id, payload.status, current_user, notifications)
    )


@router.put("/{order_id}", response_model=Envelope[OrderRead])
def update_order_status_alias(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
    notifications: NotificationQueue = Depends(get_notification_queue),
):
    """
    Same as PUT /{order_id}/status, also accepting the admin UI labels
    `processing` (-> paid) and `completed` (-> delivered).
    """
    status = STATUS_ALIASES.get(payload.status, payload.status) if payload.status else None
    return ok(service.set_status(session, order_id, status, current_user, notifications))


@router.post("/{order_id}/cancel", response_model=Envelope[OrderRead])
def cancel_order(
    order_id: uuid.UUID,
    payload: CancelRequest | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Owner or admin, while the order is still pending.
    """
    reason = payload.reason if payload else None
    return ok(service.cancel(session, order_id, current_user, reason))


@router.post("/{order_id}/request-return", response_model=Envelope[OrderRead])
def request_return(
    order_id: uuid.UUID,
    payload: ReturnRequest | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    reason = payload.reason if payload else None
    return ok(
        service.request_return(session, order_id, current_user, reason),
        "Return request submitted",
    )


@router.post("/{order_id}/approve-return", response_model=Envelope[OrderRead])
def approve_return(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
    notifications: NotificationQueue = Depends(get_notification_queue),
):
    return ok(
        service.approve_return(session, order_id, current_user, notifications),
        "Return request approved",
    )


@router.post("/{order_id}/reject-return", response_model=Envelope[OrderRead])
def reject_return(
    order_id: uuid.UUID,
    payload: RejectReturnRequest | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
    notifications: NotificationQueue = Depends(get_notification_queue),
):
    reason = payload.reason if payload else None
    return ok(
        service.reject_return(session, order_id, current_user, notifications, reason),
        "Return request rejected",
    )


@router.put("/{order_id}/admin-update", response_model=Envelope[OrderRead])
def admin_update(
    order_id: uuid.UUID,
    payload: AdminOrderUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
    notifications: NotificationQueue = Depends(get_notification_queue),
):
    """
    Combined status / tracking number / return status edit (admin only).
    """
    return ok(
        service.admin_update(session, order_id, payload, current_user, notifications),
        "Order updated successfully",
    )


@router.get("/{order_id}/invoice", response_model=Envelope[InvoiceDocument])
def get_invoice(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Printable invoice (owner or admin). Issues the invoice number on
    first request.
    """
    return ok(invoice_service.get_invoice_document(session, order_id, current_user))


@router.post("/{order_id}/email", response_model=Envelope[None])
def send_confirmation_email(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Send the order confirmation email to the order's customer now.
    """
    service.send_confirmation(session, order_id, current_user, dispatcher)
    return ok(message="Confirmation email sent")
