# app/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from app.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    No commits here: checkout reserves stock and inserts the order and
    its items in one transaction owned by the service. Every write that
    goes through update_order() bumps `updated_at`.
    """

    # ---- Orders ----

    @staticmethod
    def _newest_first(stmt, skip: int, limit: int):
        return stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.user_id == user_id)
        return session.exec(self._newest_first(stmt, skip, limit)).all()

    def list_all(self, session: Session, skip: int = 0, limit: int = 50) -> list[Order]:
        return session.exec(self._newest_first(select(Order), skip, limit)).all()

    def list_with_return_requests(self, session: Session) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.return_status != "None")
            .order_by(Order.updated_at.desc())
        )
        return session.exec(stmt).all()

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        order.touch()
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.position)
        )
        return session.exec(stmt).all()

    def list_items_for_orders(
        self,
        session: Session,
        order_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        if not order_ids:
            return {}
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id.in_(order_ids))
            .order_by(OrderItem.position)
        )
        grouped: dict[uuid.UUID, list[OrderItem]] = {oid: [] for oid in order_ids}
        for item in session.exec(stmt).all():
            grouped[item.order_id].append(item)
        return grouped

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items
