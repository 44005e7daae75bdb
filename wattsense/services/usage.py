"""Usage aggregation — sums a metric across both sensor series over a time window."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.sensor import SENSOR_SERIES, SensorSeries

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


class Metric(str, Enum):
    PRICE = "price"
    ENERGY = "energy"


def end_of_day(day: date) -> datetime:
    """Last millisecond of a calendar day (local wall clock)."""
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, END_OF_DAY)


def start_of_day(day: date) -> datetime:
    if isinstance(day, datetime):
        return day
    return datetime.combine(day, time.min)


@dataclass(frozen=True)
class UsageWindow:
    """Time filter for sensor readings. ``None`` bounds are open."""

    start: datetime | None = None  # inclusive
    end: datetime | None = None
    end_inclusive: bool = True

    @classmethod
    def from_dates(cls, start: date | None = None, end: date | None = None) -> "UsageWindow":
        """Calendar-date window: start inclusive, end inclusive through end of day."""
        return cls(
            start=start_of_day(start) if start else None,
            end=end_of_day(end) if end else None,
            end_inclusive=True,
        )

    @classmethod
    def month(cls, year: int, month: int) -> "UsageWindow":
        """Whole calendar month: ``[first day, first day of next month)``."""
        first = datetime(year, month, 1)
        nxt = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        return cls(start=first, end=nxt, end_inclusive=False)


@dataclass
class UsageTotal:
    """Aggregate result. ``degraded`` names series that could not be read."""

    total: float = 0.0
    by_series: dict[str, float] = field(default_factory=dict)
    degraded: tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded)


def sum_metric_in_window(
    db: Session, series: SensorSeries, metric: Metric, window: UsageWindow | None = None,
) -> float:
    """Sum one metric of one series. Raises SQLAlchemyError if the table is unreadable."""
    window = window or UsageWindow()
    model = series.model
    column = getattr(model, Metric(metric).value)
    stmt = select(func.coalesce(func.sum(column), 0.0))
    if window.start is not None:
        stmt = stmt.where(model.date >= window.start)
    if window.end is not None:
        stmt = stmt.where(model.date <= window.end if window.end_inclusive else model.date < window.end)
    return float(db.execute(stmt).scalar_one() or 0.0)


def aggregate_detailed(
    db: Session,
    window: UsageWindow | None = None,
    metric: Metric = Metric.PRICE,
    series: tuple[SensorSeries, ...] = SENSOR_SERIES,
) -> UsageTotal:
    """Sum ``metric`` over every series; unreadable series contribute 0."""
    window = window or UsageWindow()
    by_series: dict[str, float] = {}
    degraded: list[str] = []

    for s in series:
        try:
            by_series[s.name] = sum_metric_in_window(db, s, metric, window)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Sensor series %s unavailable, counting as 0: %s", s.name, e)
            by_series[s.name] = 0.0
            degraded.append(s.name)

    return UsageTotal(
        total=sum(by_series.values()),
        by_series=by_series,
        degraded=tuple(degraded),
    )


def aggregate(
    db: Session,
    window: UsageWindow | None = None,
    metric: Metric = Metric.PRICE,
) -> float:
    """Combined total of ``metric`` across both sensor series."""
    return aggregate_detailed(db, window, metric).total


def window_for_budget(budget) -> UsageWindow:  # noqa: ANN001
    if budget is None:
        return UsageWindow()
    return UsageWindow.from_dates(budget.start_date, budget.end_date)


def previous_month_window(now: datetime) -> UsageWindow:
    """Calendar month before ``now``."""
    last_of_prev = now.replace(day=1) - timedelta(days=1)
    return UsageWindow.month(last_of_prev.year, last_of_prev.month)
