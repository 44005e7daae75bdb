"""WattSense data models — re-export all models for convenient imports."""

from .budget import Budget
from .sensor import SENSOR_SERIES, SensorDataA, SensorDataB, SensorSeries
from .setting import Setting
from .user import User

__all__ = [
    "Budget",
    "SENSOR_SERIES",
    "SensorDataA",
    "SensorDataB",
    "SensorSeries",
    "Setting",
    "User",
]
