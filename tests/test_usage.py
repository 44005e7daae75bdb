"""Tests for the usage aggregator — window boundaries and degraded series."""

from datetime import date, datetime

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import sessionmaker

from wattsense.db import Base
from wattsense.models import SensorDataA
from wattsense.services.usage import (
    Metric,
    UsageWindow,
    aggregate,
    aggregate_detailed,
    end_of_day,
    previous_month_window,
)


@pytest.fixture()
def january(add_reading):
    add_reading("A", datetime(2023, 12, 31, 23, 59), price=1_000, energy=0.7)
    add_reading("A", datetime(2024, 1, 1, 0, 0), price=2_000, energy=1.4)
    add_reading("B", datetime(2024, 1, 15, 12, 0), price=3_000, energy=2.1)
    add_reading("B", datetime(2024, 1, 31, 23, 0), price=4_000, energy=2.8)
    add_reading("A", datetime(2024, 2, 1, 0, 0), price=5_000, energy=3.5)


def test_unbounded_window_sums_everything(db_session, january):
    assert aggregate(db_session, UsageWindow(), Metric.PRICE) == pytest.approx(15_000)
    assert aggregate(db_session, None, Metric.PRICE) == pytest.approx(15_000)


def test_energy_metric(db_session, january):
    assert aggregate(db_session, UsageWindow(), Metric.ENERGY) == pytest.approx(10.5)


def test_window_is_inclusive_through_end_of_day(db_session, january):
    window = UsageWindow.from_dates(date(2024, 1, 1), date(2024, 1, 31))
    # 2024-01-01 00:00 and 2024-01-31 23:00 in, 2023-12-31 and 2024-02-01 out
    assert aggregate(db_session, window, Metric.PRICE) == pytest.approx(9_000)


def test_open_start(db_session, january):
    window = UsageWindow.from_dates(None, date(2024, 1, 15))
    assert aggregate(db_session, window) == pytest.approx(6_000)


def test_open_end(db_session, january):
    window = UsageWindow.from_dates(date(2024, 1, 15), None)
    assert aggregate(db_session, window) == pytest.approx(12_000)


def test_reading_at_last_millisecond_is_included(db_session, add_reading):
    add_reading("A", datetime(2024, 1, 31, 23, 59, 59, 999000), price=10)
    window = UsageWindow.from_dates(date(2024, 1, 1), date(2024, 1, 31))
    assert aggregate(db_session, window) == pytest.approx(10)


def test_empty_tables_sum_to_zero(db_session):
    total = aggregate_detailed(db_session, UsageWindow(), Metric.PRICE)
    assert total.total == 0.0
    assert total.by_series == {"A": 0.0, "B": 0.0}
    assert not total.is_degraded


def test_month_window_excludes_next_month_start(db_session, january):
    window = UsageWindow.month(2024, 1)
    assert window.end_inclusive is False
    assert aggregate(db_session, window) == pytest.approx(9_000)


def test_missing_series_b_degrades_to_series_a():
    partial = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(partial, tables=[SensorDataA.__table__])
    session = sessionmaker(bind=partial)()
    try:
        session.add(SensorDataA(date=datetime(2024, 1, 5), price=7_500, energy=5.0))
        session.commit()

        total = aggregate_detailed(session, UsageWindow(), Metric.PRICE)
        assert total.total == pytest.approx(7_500)
        assert total.degraded == ("B",)
        assert aggregate(session, UsageWindow(), Metric.ENERGY) == pytest.approx(5.0)
    finally:
        session.close()
        partial.dispose()


def test_end_of_day():
    assert end_of_day(date(2024, 1, 31)) == datetime(2024, 1, 31, 23, 59, 59, 999000)
    assert end_of_day(datetime(2024, 1, 31, 8, 30)) == datetime(2024, 1, 31, 23, 59, 59, 999000)


def test_from_dates_bounds():
    window = UsageWindow.from_dates(date(2024, 1, 1), date(2024, 1, 31))
    assert window.start == datetime(2024, 1, 1)
    assert window.end == datetime(2024, 1, 31, 23, 59, 59, 999000)
    assert window.end_inclusive is True
    assert UsageWindow.from_dates() == UsageWindow()


def test_previous_month_window():
    window = previous_month_window(datetime(2024, 3, 15, 10, 0))
    assert window.start == datetime(2024, 2, 1)
    assert window.end == datetime(2024, 3, 1)

    window = previous_month_window(datetime(2024, 1, 1, 0, 0))
    assert window.start == datetime(2023, 12, 1)
    assert window.end == datetime(2024, 1, 1)
