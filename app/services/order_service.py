# app/services/order_service.py
import logging
import re
import smtplib
import uuid

from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import Forbidden, InsufficientStock, NotFound, ServerError, ValidationError
from app.core.notifications import (
    STATUS_EVENTS,
    NotificationDispatcher,
    NotificationQueue,
    OrderEvent,
    OrderNotice,
    Recipient,
)
from app.models.order import Order, OrderItem
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import (
    AdminOrderDetail,
    AdminOrderLine,
    AdminOrderTotals,
    AdminOrderUpdate,
    AdminShipping,
    OrderCreate,
    OrderItemRead,
    OrderRead,
    ReturnRequestRead,
)
from app.services.inventory_service import InventoryLedger
from app.services.order_state import (
    ASSIGNABLE_STATUSES,
    NOTIFY_ON_STATUS,
    OrderState,
    OrderStatus,
    ReturnStatus,
    parse_return_status,
    parse_status,
)

logger = logging.getLogger(__name__)

PINCODE_RE = re.compile(r"^\d{4,8}$")
# last six-digit run with no digit after it
ADDRESS_PIN_RE = re.compile(r"(\d{6})(?!.*\d)")


def derive_city_pincode(address: str) -> tuple[str, str]:
    """
    Best-effort (city, pincode) from a free-text address such as
    "12 MG Road, Koregaon Park, Pune 411001". The city is the last
    comma or line separated part, letters and spaces only.
    """
    address = address or ""
    match = ADDRESS_PIN_RE.search(address)
    pincode = match.group(1) if match else ""
    cleaned = address.replace(pincode, "", 1) if pincode else address
    parts = [p.strip() for p in re.split(r",|\n", cleaned) if p.strip()]
    city = re.sub(r"[^A-Za-z\s]", "", parts[-1]).strip() if parts else ""
    return city, pincode


class OrderService:
    """
    Order lifecycle engine.

    Responsibilities:
      - Create orders: validate checkout, compute totals, reserve stock
        for every line in one transaction, snapshot customer fields
      - Status changes, cancellation, return requests and decisions,
        all validated through OrderState
      - Ownership checks (owner or admin)
      - Emit customer notifications without waiting on them
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        user_repo: UserRepository,
        inventory: InventoryLedger,
    ):
        self.order_repo = order_repo
        self.user_repo = user_repo
        self.inventory = inventory

    # -------- Creation --------

    def create_order(
        self,
        session: Session,
        user: User | None,
        payload: OrderCreate,
    ) -> OrderRead:
        """
        Steps:
          1. Validate items and address fields.
          2. Compute subtotal and total.
          3. Reserve stock for every managed line. The first shortage
             rolls back the whole transaction, so no line keeps a
             decrement.
          4. Insert the Order and its items, commit.
        """
        # 1) Validation
        if not payload.items:
            raise ValidationError("No items")
        if not payload.city or not payload.state or not payload.pincode:
            raise ValidationError("City, state and pincode are required")
        if not PINCODE_RE.match(payload.pincode):
            raise ValidationError("Invalid pincode")

        # 2) Totals
        subtotal = round(sum(it.price * it.qty for it in payload.items), 2)
        # a discount larger than the bill brings the total to zero, never below
        computed = max(round(subtotal - payload.discount + payload.shipping + payload.tax, 2), 0.0)
        if payload.total is not None and payload.total > 0:
            total = payload.total
        else:
            total = computed

        status = OrderStatus.PENDING
        if payload.status:
            try:
                requested = OrderStatus(payload.status)
            except ValueError:
                requested = None
            if requested in ASSIGNABLE_STATUSES:
                status = requested

        upi_payer_name = upi_txn_id = None
        if payload.payment_method.upper() == "UPI" and payload.upi is not None:
            upi_payer_name = payload.upi.payer_name
            upi_txn_id = payload.upi.txn_id

        # 3) Reserve stock (all-or-nothing)
        try:
            for it in payload.items:
                self.inventory.reserve(session, it.product_id, it.size, it.qty)
        except InsufficientStock:
            session.rollback()
            raise

        # 4) Persist order + items
        order = Order(
            user_id=user.id if user else None,
            name=payload.name,
            phone=payload.phone,
            address=payload.address,
            city=payload.city,
            state=payload.state,
            pincode=payload.pincode,
            subtotal=subtotal,
            discount=payload.discount,
            shipping=payload.shipping,
            tax=payload.tax,
            total=total,
            payment_method=payload.payment_method,
            upi_payer_name=upi_payer_name,
            upi_txn_id=upi_txn_id,
        )
        OrderState(status).apply_to(order)
        order = self.order_repo.create_order(session, order)

        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=it.product_id,
                    title=it.title,
                    price=it.price,
                    quantity=it.qty,
                    size=it.size,
                    position=idx,
                )
                for idx, it in enumerate(payload.items)
            ],
        )

        session.commit()
        session.refresh(order)
        logger.info("Order %s created (%d items, total %.2f)", order.id, len(items), total)

        return self.build_order_dto(order, items)

    # -------- Reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return self._build_many(session, orders)

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_all(session, skip, limit)
        return self._build_many(session, orders)

    def get_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User | None,
    ) -> OrderRead:
        """
        Owner or admin only.
        """
        order = self._get_or_404(session, order_id)
        self._ensure_owner_or_admin(order, actor)
        return self._build_one(session, order)

    def list_return_requests(self, session: Session) -> list[ReturnRequestRead]:
        orders = self.order_repo.list_with_return_requests(session)
        users = self.user_repo.get_many(
            session, [o.user_id for o in orders if o.user_id is not None]
        )
        dtos = self._build_many(session, orders)

        rows: list[ReturnRequestRead] = []
        for order, dto in zip(orders, dtos):
            user = users.get(order.user_id) if order.user_id else None
            rows.append(
                ReturnRequestRead(
                    id=order.id,
                    order_ref=str(order.id)[:8],
                    user_email=user.email if user else "N/A",
                    user_name=user.name if user else "N/A",
                    reason=order.return_reason or "No reason provided",
                    status=order.return_status,
                    date=order.updated_at or order.created_at,
                    total=order.total,
                    order=dto,
                )
            )
        return rows

    def get_admin_detail(self, session: Session, order_id: uuid.UUID) -> AdminOrderDetail:
        order = self._get_or_404(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        city, pincode = derive_city_pincode(order.address)

        return AdminOrderDetail(
            id=order.id,
            created_at=order.created_at,
            status=order.status,
            return_status=order.return_status,
            payment_method=order.payment_method,
            tracking_number=order.tracking_number,
            totals=AdminOrderTotals(
                subtotal=order.subtotal,
                discount=order.discount,
                shipping=order.shipping,
                tax=order.tax,
                total=order.total,
            ),
            shipping=AdminShipping(
                name=order.name or "",
                phone=order.phone or "",
                address1=order.address or "",
                city=(order.city or "").strip() or city,
                state=(order.state or "").strip(),
                pincode=(order.pincode or "").strip() or pincode,
            ),
            items=[
                AdminOrderLine(
                    product_id=it.product_id,
                    title=it.title or "Item",
                    price=it.price,
                    qty=it.quantity,
                    size=it.size,
                )
                for it in items
            ],
        )

    # -------- Transitions --------

    def set_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: str | None,
        actor: User,
        notifications: NotificationQueue,
    ) -> OrderRead:
        """
        Admin-only. Any assignable status may follow any other; the
        return sub-state must stay legal. shipped/delivered changes
        notify the customer.
        """
        self._ensure_admin(actor)
        if not new_status:
            raise ValidationError("Missing status")
        target = parse_status(new_status)

        order = self._get_or_404(session, order_id)
        previous = OrderState.of(order)
        previous.with_status(target).apply_to(order)

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        if target != previous.status:
            logger.info("Order %s status %s -> %s", order.id, previous.status.value, target.value)
            if target in NOTIFY_ON_STATUS:
                self._emit(session, notifications, STATUS_EVENTS[target.value], order)

        return self._build_one(session, order)

    def cancel(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User,
        reason: str | None = None,
    ) -> OrderRead:
        """
        Owner or admin; only from pending / cod_pending /
        pending_verification. Restocks managed lines when
        RESTOCK_ON_CANCEL is set.
        """
        order = self._get_or_404(session, order_id)
        self._ensure_owner_or_admin(order, actor)

        OrderState.of(order).cancel().apply_to(order)
        if reason and reason.strip():
            order.cancellation_reason = reason.strip()

        if get_settings().RESTOCK_ON_CANCEL:
            for it in self.order_repo.list_items_for_order(session, order.id):
                self.inventory.release(session, it.product_id, it.size, it.quantity)

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        logger.info("Order %s cancelled by %s", order.id, actor.id)

        return self._build_one(session, order)

    def request_return(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User,
        reason: str | None,
    ) -> OrderRead:
        """
        Owner only, delivered orders only, non-empty reason.
        """
        if not reason or not reason.strip():
            raise ValidationError("Return reason is required")

        order = self._get_or_404(session, order_id)
        if order.user_id != actor.id:
            raise Forbidden()

        OrderState.of(order).request_return().apply_to(order)
        order.return_reason = reason.strip()
        order.rejection_reason = None

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        return self._build_one(session, order)

    def approve_return(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User,
        notifications: NotificationQueue,
    ) -> OrderRead:
        self._ensure_admin(actor)
        order = self._get_or_404(session, order_id)

        OrderState.of(order).approve_return().apply_to(order)
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        self._emit(session, notifications, OrderEvent.RETURN_APPROVED, order)
        return self._build_one(session, order)

    def reject_return(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User,
        notifications: NotificationQueue,
        reason: str | None = None,
    ) -> OrderRead:
        self._ensure_admin(actor)
        order = self._get_or_404(session, order_id)

        OrderState.of(order).reject_return().apply_to(order)
        if reason and reason.strip():
            order.rejection_reason = reason.strip()

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        self._emit(session, notifications, OrderEvent.RETURN_REJECTED, order)
        return self._build_one(session, order)

    def admin_update(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: AdminOrderUpdate,
        actor: User,
        notifications: NotificationQueue,
    ) -> OrderRead:
        """
        Combined admin edit of status, tracking number and return status.
        The resulting (status, return status) pair must be legal; the
        request/approve/reject ordering is not enforced here.
        """
        self._ensure_admin(actor)
        order = self._get_or_404(session, order_id)
        previous = OrderState.of(order)

        status = parse_status(payload.status) if payload.status else previous.status
        return_status = (
            parse_return_status(payload.return_status)
            if payload.return_status
            else previous.return_status
        )
        OrderState(status, return_status).apply_to(order)

        if payload.tracking_number and payload.tracking_number.strip():
            order.tracking_number = payload.tracking_number.strip()

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)

        if status != previous.status and status in NOTIFY_ON_STATUS:
            self._emit(session, notifications, STATUS_EVENTS[status.value], order)
        if return_status != previous.return_status:
            if return_status == ReturnStatus.APPROVED:
                self._emit(session, notifications, OrderEvent.RETURN_APPROVED, order)
            elif return_status == ReturnStatus.REJECTED:
                self._emit(session, notifications, OrderEvent.RETURN_REJECTED, order)

        return self._build_one(session, order)

    def send_confirmation(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User,
        dispatcher: NotificationDispatcher,
    ) -> None:
        """
        Send the order confirmation email now (not queued); SMTP errors
        are reported to the caller.
        """
        order = self._get_or_404(session, order_id)
        self._ensure_owner_or_admin(order, actor)

        recipient = self._recipient(session, order)
        if recipient is None:
            raise ValidationError("Order has no customer email")

        items = self.order_repo.list_items_for_order(session, order.id)
        try:
            dispatcher.notify(
                OrderEvent.ORDER_CONFIRMED,
                OrderNotice.from_order(order, items),
                recipient,
            )
        except (RuntimeError, OSError, smtplib.SMTPException) as e:
            logger.exception("Confirmation email for order %s failed", order.id)
            raise ServerError(f"Failed to send email: {e}")

    # -------- Helpers --------

    def _get_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    @staticmethod
    def _ensure_admin(actor: User) -> None:
        if actor is None or not actor.is_admin:
            raise Forbidden("Admin access required")

    @staticmethod
    def _ensure_owner_or_admin(order: Order, actor: User | None) -> None:
        if actor is None:
            raise Forbidden()
        if actor.is_admin or (order.user_id is not None and order.user_id == actor.id):
            return
        raise Forbidden()

    def _recipient(self, session: Session, order: Order) -> Recipient | None:
        if order.user_id is None:
            return None
        user = self.user_repo.get_by_id(session, order.user_id)
        if user is None or not user.email:
            return None
        return Recipient(email=user.email, name=user.name)

    def _emit(
        self,
        session: Session,
        notifications: NotificationQueue,
        event: OrderEvent,
        order: Order,
    ) -> None:
        notice = OrderNotice.from_order(order)
        notifications.emit(event, notice, self._recipient(session, order))

    def _build_one(self, session: Session, order: Order) -> OrderRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        return self.build_order_dto(order, items)

    def _build_many(self, session: Session, orders: list[Order]) -> list[OrderRead]:
        grouped = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        return [self.build_order_dto(o, grouped.get(o.id, [])) for o in orders]

    @staticmethod
    def build_order_dto(order: Order, items: list[OrderItem]) -> OrderRead:
        """
        Compose OrderRead from ORM models, including line totals.
        """
        item_dtos = [
            OrderItemRead(
                id=it.id,
                product_id=it.product_id,
                title=it.title,
                price=it.price,
                qty=it.quantity,
                size=it.size,
                line_total=round(it.price * it.quantity, 2),
            )
            for it in items
        ]

        return OrderRead(
            id=order.id,
            user_id=order.user_id,
            name=order.name,
            phone=order.phone,
            address=order.address,
            city=order.city,
            state=order.state,
            pincode=order.pincode,
            items=item_dtos,
            subtotal=order.subtotal,
            discount=order.discount,
            shipping=order.shipping,
            tax=order.tax,
            total=order.total,
            status=order.status,
            return_status=order.return_status,
            return_reason=order.return_reason,
            rejection_reason=order.rejection_reason,
            cancellation_reason=order.cancellation_reason,
            payment_method=order.payment_method,
            upi_payer_name=order.upi_payer_name,
            upi_txn_id=order.upi_txn_id,
            tracking_number=order.tracking_number,
            invoice_id=order.invoice_id,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
