# app/services/stats_service.py
from datetime import date, datetime, time, timedelta, timezone

from sqlmodel import Session

from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import PeriodStats, SeriesPoint, StatsOverview, StatsTotals

RANGE_DAYS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_RANGE = "30d"


def _month_start(year: int, month: int) -> datetime:
    # Normalize month overflow/underflow (e.g. month=0 -> December of year-1)
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _day_key(value) -> str:
    """func.date() gives 'YYYY-MM-DD' on SQLite and a date on Postgres."""
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.
    All calendar boundaries are UTC.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def get_overview(
        self,
        session: Session,
        range_key: str | None = None,
        now: datetime | None = None,
    ) -> StatsOverview:
        range_key = (range_key or DEFAULT_RANGE).lower()
        if range_key not in RANGE_DAYS:
            range_key = DEFAULT_RANGE
        days = RANGE_DAYS[range_key]

        now = now or datetime.now(timezone.utc)
        today = now.date()

        totals = StatsTotals(
            revenue=self.repo.revenue(session),
            orders=self.repo.count_orders(session),
            users=self.repo.count_users(session),
        )

        # Previous two full calendar months
        this_month = _month_start(today.year, today.month)
        last_month = _month_start(today.year, today.month - 1)
        prev_month = _month_start(today.year, today.month - 2)

        last = PeriodStats(
            revenue=self.repo.revenue(session, last_month, this_month),
            orders=self.repo.count_orders(session, last_month, this_month),
        )
        prev = PeriodStats(
            revenue=self.repo.revenue(session, prev_month, last_month),
            orders=self.repo.count_orders(session, prev_month, last_month),
        )

        # Daily series, zero-filled, ending today
        first_day = today - timedelta(days=days - 1)
        start = datetime.combine(first_day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(today + timedelta(days=1), time.min, tzinfo=timezone.utc)

        found: dict[str, tuple[float, int]] = {}
        for day, revenue, order_count in self.repo.daily_series(session, start, end):
            found[_day_key(day)] = (float(revenue or 0.0), int(order_count or 0))

        series: list[SeriesPoint] = []
        for offset in range(days):
            key = (first_day + timedelta(days=offset)).strftime("%Y-%m-%d")
            revenue, order_count = found.get(key, (0.0, 0))
            series.append(SeriesPoint(date=key, revenue=revenue, orders=order_count))

        return StatsOverview(
            range=range_key,
            totals=totals,
            last_month=last,
            prev_month=prev,
            series=series,
        )
