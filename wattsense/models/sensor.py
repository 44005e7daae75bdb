"""Sensor reading models — two PZEM meters writing into structurally identical tables.

Rows are written by the external ingestion process; the engine only reads them.
``date`` holds the local wall-clock time of the sample.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import DateTime, Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class SensorReadingMixin:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    voltage: Mapped[float] = mapped_column(Float, default=0.0)
    ampere: Mapped[float] = mapped_column(Float, default=0.0)
    power: Mapped[float] = mapped_column(Float, default=0.0)
    energy: Mapped[float] = mapped_column(Float, default=0.0)  # kWh
    pf: Mapped[float] = mapped_column(Float, default=0.0)
    price: Mapped[float] = mapped_column(Float, default=0.0)  # IDR


class SensorDataA(SensorReadingMixin, Base):
    __tablename__ = "sensor_data"


class SensorDataB(SensorReadingMixin, Base):
    __tablename__ = "sensor_data2"


@dataclass(frozen=True)
class SensorSeries:
    """One sensor data stream: discriminant name, display label, and backing table."""

    name: str
    label: str
    model: type[SensorReadingMixin]


SENSOR_SERIES: tuple[SensorSeries, ...] = (
    SensorSeries(name="A", label="PZEM A", model=SensorDataA),
    SensorSeries(name="B", label="PZEM B", model=SensorDataB),
)
