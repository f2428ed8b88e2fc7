# app/schemas/stats.py
from pydantic import ConfigDict
from sqlmodel import SQLModel


class StatsTotals(SQLModel):
    """
    All-time totals.
    """
    model_config = ConfigDict(extra="forbid")

    revenue: float
    orders: int
    users: int


class PeriodStats(SQLModel):
    """
    Revenue and order count for one calendar month.
    """
    model_config = ConfigDict(extra="forbid")

    revenue: float
    orders: int


class SeriesPoint(SQLModel):
    model_config = ConfigDict(extra="forbid")

    date: str  # YYYY-MM-DD
    revenue: float
    orders: int


class StatsOverview(SQLModel):
    """
    Full payload for the admin dashboard overview.
    """
    model_config = ConfigDict(extra="forbid")

    range: str
    totals: StatsTotals
    last_month: PeriodStats
    prev_month: PeriodStats
    series: list[SeriesPoint]
