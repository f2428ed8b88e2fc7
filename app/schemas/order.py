# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

CUSTOMER_FIELDS = ("name", "phone", "address", "city", "state", "pincode")


def _adopt_aliases(data: Any, aliases: dict[str, tuple[str, ...]]) -> Any:
    """
    Copy the first present alias onto its canonical key when the canonical
    key itself is missing. Storefront clients send camelCase.
    """
    if not isinstance(data, dict):
        return data
    out = dict(data)
    for key, names in aliases.items():
        if out.get(key) not in (None, ""):
            continue
        for name in names:
            if out.get(name) not in (None, ""):
                out[key] = out[name]
                break
    return out


def _as_uuid(v: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(v))
    except ValueError:
        return None


class OrderItemCreate(SQLModel):
    """
    One checkout line.

    `product_id` is optional: lines without one (or pointing at an unknown
    product) are recorded but not reserved against inventory. Also read
    from `productId`, or from a cart line `id` when that id is a UUID.
    """

    model_config = ConfigDict(extra="ignore")

    product_id: uuid.UUID | None = None
    title: str = "Item"
    price: float = Field(ge=0)
    qty: int = Field(default=1, gt=0)
    size: str | None = None

    @model_validator(mode="before")
    @classmethod
    def adopt_product_ref(cls, data: Any) -> Any:
        data = _adopt_aliases(data, {"product_id": ("productId",)})
        if isinstance(data, dict) and data.get("product_id") in (None, "") and data.get("id"):
            data["product_id"] = _as_uuid(data["id"])
        return data

    @field_validator("size", mode="before")
    @classmethod
    def normalize_size(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class UpiDetails(SQLModel):
    model_config = ConfigDict(extra="ignore")

    payer_name: str = ""
    txn_id: str = ""

    @model_validator(mode="before")
    @classmethod
    def adopt_camel_case(cls, data: Any) -> Any:
        return _adopt_aliases(data, {"payer_name": ("payerName",), "txn_id": ("txnId",)})


class OrderCreate(SQLModel):
    """
    Checkout payload.

    Customer fields may be sent at the top level or nested under
    `customer`; top-level values win.

    Backend derives:
      - user_id from token (None for guests)
      - total from items unless a positive `total` is supplied
      - status = 'pending' unless an assignable status is supplied
    """

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""

    items: list[OrderItemCreate] = []

    discount: float = Field(default=0.0, ge=0)
    shipping: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    total: float | None = None

    status: str | None = None
    payment_method: str = "COD"
    upi: UpiDetails | None = None

    @model_validator(mode="before")
    @classmethod
    def merge_customer(cls, data: Any) -> Any:
        data = _adopt_aliases(data, {"payment_method": ("paymentMethod", "payment")})
        if not isinstance(data, dict):
            return data
        customer = data.get("customer")
        if not isinstance(customer, dict):
            return data
        merged = dict(data)
        for key in CUSTOMER_FIELDS:
            if not merged.get(key) and customer.get(key):
                merged[key] = customer[key]
        return merged

    @field_validator(*CUSTOMER_FIELDS, mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("payment_method", mode="before")
    @classmethod
    def default_payment(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "COD"
        return str(v).strip()


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID | None
    title: str
    price: float
    qty: int
    size: str | None
    line_total: float


class OrderRead(SQLModel):
    """
    Full order view including items.
    """

    id: uuid.UUID
    user_id: uuid.UUID | None
    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    items: list[OrderItemRead]
    subtotal: float
    discount: float
    shipping: float
    tax: float
    total: float
    status: str
    return_status: str
    return_reason: str | None
    rejection_reason: str | None
    cancellation_reason: str | None
    payment_method: str
    upi_payer_name: str | None
    upi_txn_id: str | None
    tracking_number: str | None
    invoice_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    Validated against the assignable set by the service (400 otherwise).
    """

    status: str | None = None


class CancelRequest(SQLModel):
    reason: str | None = None


class ReturnRequest(SQLModel):
    reason: str | None = None


class RejectReturnRequest(SQLModel):
    reason: str | None = None


class AdminOrderUpdate(SQLModel):
    """
    Combined admin edit. Every field is optional.
    """

    status: str | None = None
    tracking_number: str | None = None
    return_status: str | None = None


class ReturnRequestRead(SQLModel):
    """
    Row of the admin return-requests list.
    """

    id: uuid.UUID
    order_ref: str
    user_email: str
    user_name: str
    reason: str
    status: str
    date: datetime
    total: float
    order: OrderRead


class AdminShipping(SQLModel):
    name: str
    phone: str
    address1: str
    address2: str = ""
    city: str
    state: str
    pincode: str


class AdminOrderLine(SQLModel):
    product_id: uuid.UUID | None
    title: str
    price: float
    qty: int
    size: str | None


class AdminOrderTotals(SQLModel):
    subtotal: float
    discount: float
    shipping: float
    tax: float
    total: float


class AdminOrderDetail(SQLModel):
    """
    Admin order page: shipping block (city and pincode filled from the
    address when the order lacks them), flattened lines and totals.
    """

    id: uuid.UUID
    created_at: datetime
    status: str
    return_status: str
    payment_method: str
    tracking_number: str | None
    totals: AdminOrderTotals
    shipping: AdminShipping
    items: list[AdminOrderLine]
