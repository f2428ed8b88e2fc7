# app/schemas/product.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class SizeStock(SQLModel):
    """
    Stock for one size variant.
    """

    model_config = ConfigDict(extra="forbid")

    code: str = Field(max_length=20)
    qty: int = Field(ge=0)

    @field_validator("code")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("size code cannot be empty")
        return v


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `title`.
    - Sending `sizes` switches the product to per-size inventory and
      `stock` is ignored.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200)
    slug: str | None = None
    description: str | None = None
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    sizes: list[SizeStock] | None = None
    is_active: bool = True

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty if provided")
        return v


class ProductUpdate(SQLModel):
    """
    Partial update payload for catalogue fields.
    Stock is changed through the inventory endpoint.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    is_active: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty")
        return v


class InventoryUpdate(SQLModel):
    """
    Admin stock correction. Exactly one of `stock` / `sizes` is expected,
    matching the product's inventory mode.
    """

    model_config = ConfigDict(extra="forbid")

    stock: int | None = Field(default=None, ge=0)
    sizes: list[SizeStock] | None = None


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    title: str
    slug: str
    description: str | None
    price: float
    stock: int
    track_inventory_by_size: bool
    sizes: list[SizeStock]
    is_active: bool
    created_at: datetime
