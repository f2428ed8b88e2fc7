# tests/conftest.py

import os

# Point the app at an in-memory database before anything imports settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import SQLModel, Session, select

from app.core.notifications import get_notification_queue
from app.database import engine
from app.main import app
from app.models.order import Order
from app.models.product import Product, ProductSize
from app.models.user import User

API = "/api/v1"


class RecordingQueue:
    """Stands in for the background notification queue; keeps every emit."""

    def __init__(self):
        self.events = []

    def emit(self, event, order, user):
        self.events.append((event, order, user))


# ------------------------------ Fixtures ------------------------------


@pytest.fixture(name="session")
def session_fixture():
    """
    Creates all tables before each test and drops them afterwards.
    Seed data committed through this session is visible to the app.
    """
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="notifications")
def notifications_fixture():
    queue = RecordingQueue()
    app.dependency_overrides[get_notification_queue] = lambda: queue
    yield queue
    app.dependency_overrides.pop(get_notification_queue, None)


@pytest.fixture(name="client")
def client_fixture(session, notifications):
    return TestClient(app)


def _make_user(session: Session, email: str, name: str, role: str = "user") -> User:
    user = User(id=uuid.uuid4(), email=email, name=name, role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="customer")
def customer_fixture(session):
    return _make_user(session, "asha@example.com", "Asha")


@pytest.fixture(name="other_customer")
def other_customer_fixture(session):
    return _make_user(session, "ravi@example.com", "Ravi")


@pytest.fixture(name="admin")
def admin_fixture(session):
    return _make_user(session, "admin@example.com", "Admin", role="admin")


@pytest.fixture(name="auth")
def auth_fixture():
    """
    Returns a function building an Authorization header for a user,
    signed with the test secret.
    """

    def _auth(user: User) -> dict[str, str]:
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = jwt.encode(claims, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _auth


@pytest.fixture(name="make_product")
def make_product_fixture(session):
    """
    Returns a function creating a product. `sizes` ({"M": 2}) switches
    it to per-size inventory.
    """

    def _make(title: str = "Tee", stock: int = 0, sizes: dict | None = None, price: float = 100.0):
        product = Product(
            title=title,
            slug=f"{title.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}",
            price=price,
            stock=stock,
            track_inventory_by_size=sizes is not None,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        for code, qty in (sizes or {}).items():
            session.add(ProductSize(product_id=product.id, code=code, qty=qty))
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture(name="stock_of")
def stock_of_fixture(session):
    """Reads the current counter for a product (or one of its sizes)."""

    def _stock(product_id: uuid.UUID, size: str | None = None) -> int:
        session.expire_all()
        if size is None:
            return session.get(Product, product_id).stock
        row = session.exec(
            select(ProductSize).where(ProductSize.product_id == product_id, ProductSize.code == size)
        ).first()
        assert row is not None, f"no size {size} for {product_id}"
        return row.qty

    return _stock


@pytest.fixture(name="order_payload")
def order_payload_fixture():
    """Builds a valid checkout body around the given items."""

    def _payload(*items, **extra):
        body = {
            "name": "Asha",
            "phone": "9876543210",
            "address": "12 MG Road",
            "city": "Pune",
            "state": "MH",
            "pincode": "411001",
            "items": list(items) or [{"title": "Gift card", "price": 500, "qty": 1}],
        }
        body.update(extra)
        return body

    return _payload


@pytest.fixture(name="place_order")
def place_order_fixture(client, auth, order_payload):
    """Checks out as `user` (guest when None) and returns the order data."""

    def _place(user: User | None = None, *items, **extra):
        headers = auth(user) if user else {}
        response = client.post(f"{API}/orders", json=order_payload(*items, **extra), headers=headers)
        assert response.status_code == 200, response.json()
        return response.json()["data"]

    return _place


@pytest.fixture(name="set_status")
def set_status_fixture(client, auth, admin):
    """Moves an order to `status` as the admin and returns the order data."""

    def _set(order_id: str, status: str):
        response = client.put(
            f"{API}/orders/{order_id}/status",
            json={"status": status},
            headers=auth(admin),
        )
        assert response.status_code == 200, response.json()
        return response.json()["data"]

    return _set


@pytest.fixture(name="make_order_row")
def make_order_row_fixture(session):
    """Inserts an Order row directly (for stats / invoice numbering)."""

    def _make(total: float = 100.0, status: str = "pending", created_at: datetime | None = None, **extra):
        fields = {"city": "Pune", "state": "MH", "pincode": "411001", **extra}
        order = Order(
            subtotal=total,
            total=total,
            status=status,
            created_at=created_at or datetime.now(timezone.utc),
            **fields,
        )
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    return _make
