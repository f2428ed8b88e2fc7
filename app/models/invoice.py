# app/models/invoice.py
import uuid
from datetime import date, datetime, timezone

from sqlmodel import SQLModel, Field


class Invoice(SQLModel, table=True):
    """
    One invoice per order, numbered INV-YYYYMMDD-NNNN.

    `sequence` is the position within `issue_date` (UTC day).
    Unique constraints on order_id and invoice_no close the race between
    two first-time issuers.
    """

    __tablename__ = "invoices"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        unique=True,
        index=True,
    )

    invoice_no: str = Field(
        unique=True,
        index=True,
    )

    issue_date: date = Field(index=True)

    sequence: int = Field(ge=1)

    issued_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    status: str = Field(default="issued")
