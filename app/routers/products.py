# app/routers/products.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.schemas.common import Envelope, ok
from app.schemas.product import (
    InventoryUpdate,
    ProductCreate,
    ProductRead,
    ProductUpdate,
)
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------


@router.get("", response_model=Envelope[list[ProductRead]])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    only_active: bool = True,
):
    """
    List products.

    - Public endpoint.
    - `only_active=True` hides inactive products by default.
    """
    return ok(service.list_products(session, skip=skip, limit=limit, only_active=only_active))


@router.get("/{product_id}", response_model=Envelope[ProductRead])
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id, with per-size stock when tracked.
    """
    return ok(service.get_product(session, product_id))


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=Envelope[ProductRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product (admin only).
    """
    return ok(service.create_product(session, payload))


@router.patch(
    "/{product_id}",
    response_model=Envelope[ProductRead],
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update catalogue fields of a product (admin only).
    """
    return ok(service.update_product(session, product_id, payload))


@router.put(
    "/{product_id}/inventory",
    response_model=Envelope[ProductRead],
    dependencies=[Depends(require_admin)],
)
def set_product_inventory(
    product_id: uuid.UUID,
    payload: InventoryUpdate,
    session: Session = Depends(get_session),
):
    """
    Overwrite stock counters (admin only). Send `stock` for single-count
    products and `sizes` for per-size products.
    """
    return ok(service.set_inventory(session, product_id, payload), "Inventory updated")
