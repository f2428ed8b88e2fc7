# tests/test_inventory.py

import uuid

import pytest

from sqlmodel import Session, select

from app.core.errors import InsufficientStock
from app.database import engine
from app.models.product import Product, ProductSize
from app.repositories.product_repo import ProductRepository
from app.services.inventory_service import InventoryLedger

ledger = InventoryLedger(ProductRepository())


def test_reserve_scalar_stock(session, make_product, stock_of):
    product = make_product(stock=5)

    ledger.reserve(session, product.id, None, 3)
    session.commit()

    assert stock_of(product.id) == 2


def test_reserve_exact_remaining_stock(session, make_product, stock_of):
    product = make_product(stock=2)

    ledger.reserve(session, product.id, None, 2)
    session.commit()

    assert stock_of(product.id) == 0


def test_insufficient_scalar_stock_writes_nothing(session, make_product, stock_of):
    product = make_product(title="Hoodie", stock=1)

    with pytest.raises(InsufficientStock) as exc_info:
        ledger.reserve(session, product.id, None, 2)
    session.rollback()

    err = exc_info.value
    assert err.status_code == 409
    assert err.available == 1
    assert err.size is None
    assert err.detail == "Insufficient stock for Hoodie"
    assert err.extra == {"item_id": str(product.id), "available_qty": 1}
    assert stock_of(product.id) == 1


def test_stock_drained_by_another_session_is_not_oversold(session, make_product, stock_of):
    product = make_product(title="Hoodie", stock=5)
    assert session.get(Product, product.id).stock == 5

    with Session(engine) as other:
        other.get(Product, product.id).stock = 1
        other.commit()

    # `session` still holds the product loaded with stock 5
    with pytest.raises(InsufficientStock) as exc_info:
        ledger.reserve(session, product.id, None, 3)
    session.rollback()

    assert exc_info.value.available == 1
    assert stock_of(product.id) == 1


def test_size_drained_by_another_session_is_not_oversold(session, make_product, stock_of):
    product = make_product(title="Tee", sizes={"M": 4})
    size_row = session.exec(
        select(ProductSize).where(ProductSize.product_id == product.id, ProductSize.code == "M")
    ).one()
    assert size_row.qty == 4

    with Session(engine) as other:
        other.get(ProductSize, size_row.id).qty = 0
        other.commit()

    with pytest.raises(InsufficientStock) as exc_info:
        ledger.reserve(session, product.id, "M", 1)
    session.rollback()

    assert exc_info.value.available == 0
    assert stock_of(product.id, "M") == 0


def test_reserve_per_size(session, make_product, stock_of):
    product = make_product(sizes={"S": 3, "M": 1})

    ledger.reserve(session, product.id, "S", 2)
    session.commit()

    assert stock_of(product.id, "S") == 1
    assert stock_of(product.id, "M") == 1


def test_insufficient_size_stock_reports_size(session, make_product, stock_of):
    product = make_product(title="Tee", sizes={"M": 1})

    with pytest.raises(InsufficientStock) as exc_info:
        ledger.reserve(session, product.id, "M", 2)
    session.rollback()

    assert exc_info.value.detail == "Insufficient stock for Tee size M"
    assert exc_info.value.available == 1
    assert stock_of(product.id, "M") == 1


@pytest.mark.parametrize("size", [None, "XXL"])
def test_unmatched_size_on_sized_product_is_a_noop(session, make_product, stock_of, size):
    product = make_product(sizes={"M": 1})

    ledger.reserve(session, product.id, size, 10)
    session.commit()

    assert stock_of(product.id, "M") == 1


def test_unknown_or_missing_product_is_a_noop(session):
    ledger.reserve(session, uuid.uuid4(), None, 10)
    ledger.reserve(session, None, "M", 10)


def test_release_restores_stock(session, make_product, stock_of):
    scalar = make_product(stock=0)
    sized = make_product(sizes={"L": 0})

    ledger.release(session, scalar.id, None, 2)
    ledger.release(session, sized.id, "L", 3)
    session.commit()

    assert stock_of(scalar.id) == 2
    assert stock_of(sized.id, "L") == 3


def test_available(session, make_product):
    product = make_product(stock=4, title="Cap")
    sized = make_product(sizes={"M": 7})

    assert ledger.available(session, product.id, None) == 4
    assert ledger.available(session, sized.id, "M") == 7
    assert ledger.available(session, uuid.uuid4(), None) == 0
