# app/core/errors.py
"""
Error taxonomy for the storefront API.

Every error is an HTTPException so services can raise them the same way
they raise plain HTTPException; the handlers in app.main render all of
them as the `{ok: false, message}` envelope.
"""

from typing import Any

from fastapi import HTTPException, status


class StoreError(HTTPException):
    """Base class. `extra` keys are merged into the error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: str | None = None, **extra: Any):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
        )
        self.extra = extra


class ValidationError(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InvalidState(StoreError):
    """Operation is not legal for the order's current lifecycle state."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in current state"


class InsufficientStock(StoreError):
    """
    Inventory conflict while reserving a line item.

    Carries the failing product, the requested size (if any) and the
    quantity that was available at the time of the check.
    """

    status_code = status.HTTP_409_CONFLICT
    default_message = "Insufficient stock"

    def __init__(
        self,
        product_id: Any,
        size: str | None,
        available: int,
        title: str | None = None,
    ):
        label = title or str(product_id)
        message = f"Insufficient stock for {label}"
        if size:
            message += f" size {size}"
        super().__init__(
            message,
            item_id=str(product_id),
            available_qty=available,
        )
        self.product_id = product_id
        self.size = size
        self.available = available


class Conflict(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class ServerError(StoreError):
    pass
