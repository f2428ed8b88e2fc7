# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalogue entry and its inventory counter.

    Inventory modes (mutually exclusive, selected per product):
      - scalar:   `stock` holds the units on hand
      - per-size: `track_inventory_by_size` is set and each size has its
                  own row in `product_sizes`; `stock` is ignored
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str = Field(
        max_length=200,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(default=None)

    price: float = Field(
        ge=0,
        description="Unit price (INR)",
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Units on hand (scalar inventory mode)",
    )

    track_inventory_by_size: bool = Field(
        default=False,
        description="Use per-size counters instead of `stock`",
    )

    is_active: bool = Field(
        default=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class ProductSize(SQLModel, table=True):
    """
    Per-size stock counter, e.g. code="M", qty=4.
    """

    __tablename__ = "product_sizes"
    __table_args__ = (UniqueConstraint("product_id", "code"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    code: str = Field(max_length=20)

    qty: int = Field(
        default=0,
        ge=0,
        description="Units on hand for this size",
    )
