"""Latest sensor readings for the dashboard charts."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.sensor import SENSOR_SERIES, SensorSeries

logger = logging.getLogger(__name__)


def _normalize(row: Any, series: SensorSeries) -> dict[str, Any]:
    return {
        "id": row.id,
        "timestamp": row.date.isoformat(),
        "voltage": row.voltage,
        "ampere": row.ampere,
        "power": row.power,
        "energy": row.energy,
        "pf": row.pf,
        "price": row.price,
        "sensor": series.label,
    }


def latest_readings(
    db: Session, limit: int = 200, series: tuple[SensorSeries, ...] = SENSOR_SERIES,
) -> dict[str, list[dict[str, Any]]]:
    """Newest ``limit`` rows per series, returned oldest-first for charting.

    A series whose table cannot be read comes back empty.
    """
    result: dict[str, list[dict[str, Any]]] = {}
    for s in series:
        model = s.model
        try:
            rows = db.execute(
                select(model).order_by(model.date.desc()).limit(limit)
            ).scalars().all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Failed to fetch readings for series %s: %s", s.name, e)
            rows = []
        result[s.name] = [_normalize(r, s) for r in reversed(rows)]
    return result
