"""Readings API — latest sensor samples and windowed usage totals."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..services.readings import latest_readings
from ..services.usage import Metric, UsageWindow, aggregate_detailed
from .schemas import ReadingsOut, UsageOut

router = APIRouter(tags=["readings"])


@router.get("/readings", response_model=ReadingsOut)
def list_readings(limit: int = Query(200, ge=1, le=5000), db: Session = Depends(get_db)):
    return ReadingsOut(series=latest_readings(db, limit))


@router.get("/usage", response_model=UsageOut)
def usage(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    metric: Metric = Metric.PRICE,
    db: Session = Depends(get_db),
):
    """Total of a metric over both meters; unreadable meters count as 0."""
    total = aggregate_detailed(db, UsageWindow.from_dates(start_date, end_date), metric)
    return UsageOut(
        metric=metric.value,
        start_date=start_date,
        end_date=end_date,
        total=total.total,
        by_series=total.by_series,
        degraded=list(total.degraded),
    )
