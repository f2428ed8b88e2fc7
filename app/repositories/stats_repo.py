# app/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import case, func
from sqlmodel import Session, select

from app.models.user import User
from app.models.order import Order


class StatsRepository:
    """
    Read-only aggregated queries for the admin dashboard.

    Revenue sums skip cancelled orders; order counts include them.
    """

    def count_users(self, session: Session) -> int:
        stmt = select(func.count()).select_from(User)
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_orders(
        self,
        session: Session,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(Order)
        if start is not None:
            stmt = stmt.where(Order.created_at >= start)
        if end is not None:
            stmt = stmt.where(Order.created_at < end)
        value = session.exec(stmt).one()
        return int(value or 0)

    def revenue(
        self,
        session: Session,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> float:
        """
        Sum of total for non-cancelled orders created in [start, end).
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total), 0.0))
            .where(Order.status != "cancelled")
        )
        if start is not None:
            stmt = stmt.where(Order.created_at >= start)
        if end is not None:
            stmt = stmt.where(Order.created_at < end)
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def daily_series(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple]:
        """
        (day, revenue, order_count) per calendar day in [start, end).

        func.date() yields a string on SQLite and a date on Postgres;
        the service normalizes both. Cancelled orders count towards
        order_count but not revenue.
        """
        day_expr = func.date(Order.created_at)
        live_total = func.coalesce(
            func.sum(case((Order.status == "cancelled", 0.0), else_=Order.total)),
            0.0,
        )

        stmt = (
            select(
                day_expr.label("day"),
                live_total.label("revenue"),
                func.count(Order.id).label("order_count"),
            )
            .where(Order.created_at >= start, Order.created_at < end)
            .group_by(day_expr)
            .order_by(day_expr)
        )

        return list(session.exec(stmt).all())
