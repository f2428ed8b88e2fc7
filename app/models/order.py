# app/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order.

    The customer fields are a snapshot taken at checkout; later profile
    edits never rewrite historical orders.

    `status` and `return_status` are only ever changed through
    app.services.order_state.OrderState, which rejects illegal
    combinations (e.g. a return on an order that is not delivered).
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # None for guest checkout
    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    # Customer snapshot
    name: str = Field(default="")
    phone: str = Field(default="")
    address: str = Field(default="")
    city: str
    state: str
    pincode: str

    # Financials
    subtotal: float = Field(default=0.0)
    discount: float = Field(default=0.0)
    shipping: float = Field(default=0.0)
    tax: float = Field(default=0.0)
    total: float

    # pending | cod_pending | pending_verification | paid | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
    )

    # None | Pending | Approved | Rejected
    return_status: str = Field(
        default="None",
        index=True,
    )
    return_reason: str | None = None
    rejection_reason: str | None = None
    cancellation_reason: str | None = None

    payment_method: str = Field(default="COD")
    upi_payer_name: str | None = None
    upi_txn_id: str | None = None

    tracking_number: str | None = None

    invoice_id: uuid.UUID | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=_utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Last mutation timestamp (UTC)",
    )

    def touch(self) -> None:
        self.updated_at = _utcnow()


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Immutable once the order is created.

    `product_id` is an opaque reference: items may point at products that
    are not under managed inventory, or that were later removed.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID | None = Field(default=None, index=True)

    title: str = Field(default="Item")

    price: float = Field(
        ge=0,
        description="Unit price at time of order",
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    size: str | None = None

    # Keeps the original line order of the checkout payload
    position: int = Field(default=0)
