# app/services/order_state.py
"""
Combined order state: fulfilment status x return sub-state.

The two axes are stored as separate columns but are only ever changed
through OrderState, whose constructor rejects any combination missing
from LEGAL_COMBINATIONS. That makes states such as "return Approved on a
shipped order" unrepresentable.

Return sub-state machine:

    None ──request──> Pending ──approve──> Approved   (terminal)
                         │
                         └────reject───> Rejected ──request──> Pending
"""

from dataclasses import dataclass
from enum import Enum

from app.core.errors import InvalidState, ValidationError


class OrderStatus(str, Enum):
    PENDING = "pending"
    COD_PENDING = "cod_pending"
    PENDING_VERIFICATION = "pending_verification"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ReturnStatus(str, Enum):
    NONE = "None"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Statuses an admin (or checkout payload) may assign directly.
# cod_pending / pending_verification are set by the payment flow only.
ASSIGNABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.PAID,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }
)

CANCELLABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.COD_PENDING,
        OrderStatus.PENDING_VERIFICATION,
    }
)

# UI labels accepted by PUT /orders/{id}
STATUS_ALIASES: dict[str, str] = {
    "processing": OrderStatus.PAID.value,
    "completed": OrderStatus.DELIVERED.value,
}

# Status changes the customer is told about
NOTIFY_ON_STATUS: frozenset[OrderStatus] = frozenset(
    {OrderStatus.SHIPPED, OrderStatus.DELIVERED}
)

LEGAL_COMBINATIONS: frozenset[tuple[OrderStatus, ReturnStatus]] = frozenset(
    [(s, ReturnStatus.NONE) for s in OrderStatus]
    + [(OrderStatus.DELIVERED, r) for r in ReturnStatus]
)


def parse_status(value: str, assignable_only: bool = True) -> OrderStatus:
    """
    Map a raw status string to OrderStatus.

    Raises ValidationError ("Invalid status") for unknown values, or for
    payment-flow statuses when `assignable_only` is set.
    """
    try:
        parsed = OrderStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")
    if assignable_only and parsed not in ASSIGNABLE_STATUSES:
        raise ValidationError("Invalid status")
    return parsed


def parse_return_status(value: str) -> ReturnStatus:
    try:
        return ReturnStatus(value)
    except ValueError:
        raise ValidationError("Invalid return status")


@dataclass(frozen=True)
class OrderState:
    status: OrderStatus
    return_status: ReturnStatus = ReturnStatus.NONE

    def __post_init__(self):
        if (self.status, self.return_status) not in LEGAL_COMBINATIONS:
            raise InvalidState(
                f"Return status {self.return_status.value} is not allowed "
                f"for a {self.status.value} order"
            )

    @classmethod
    def of(cls, order) -> "OrderState":
        """Read the state stored on an Order row."""
        return cls(OrderStatus(order.status), ReturnStatus(order.return_status))

    def apply_to(self, order) -> None:
        order.status = self.status.value
        order.return_status = self.return_status.value

    # ---- transitions ----

    def with_status(self, new_status: OrderStatus) -> "OrderState":
        """
        Any status may move to any other status, as long as the result is
        still a legal combination with the current return sub-state.
        """
        if new_status != self.status and self.return_status != ReturnStatus.NONE:
            raise InvalidState(
                "Status cannot change while a return request exists "
                f"(return status {self.return_status.value})"
            )
        return OrderState(new_status, self.return_status)

    def cancel(self) -> "OrderState":
        if self.status not in CANCELLABLE_STATUSES:
            raise InvalidState("Order cannot be cancelled in current status")
        return OrderState(OrderStatus.CANCELLED, self.return_status)

    def request_return(self) -> "OrderState":
        if self.status != OrderStatus.DELIVERED:
            raise InvalidState("Return can only be requested for delivered orders")
        if self.return_status == ReturnStatus.PENDING:
            raise InvalidState("A return request is already pending")
        if self.return_status == ReturnStatus.APPROVED:
            raise InvalidState("Return has already been approved")
        return OrderState(self.status, ReturnStatus.PENDING)

    def approve_return(self) -> "OrderState":
        if self.return_status != ReturnStatus.PENDING:
            raise InvalidState("Return request is not pending")
        return OrderState(self.status, ReturnStatus.APPROVED)

    def reject_return(self) -> "OrderState":
        if self.return_status != ReturnStatus.PENDING:
            raise InvalidState("Return request is not pending")
        return OrderState(self.status, ReturnStatus.REJECTED)
