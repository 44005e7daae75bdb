"""Pydantic schemas for API request/response — decoupled from SQLAlchemy models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Budget schemas
# ---------------------------------------------------------------------------


class BudgetUpdate(BaseModel):
    # Validated by the handler so each failure gets its own message
    value: Union[float, str] = Field(..., description="Budget amount in the given unit")
    unit: str = Field("idr", description="idr | kwh")
    start_date: Optional[str] = Field(None, description="Inclusive start, YYYY-MM-DD")
    end_date: Optional[str] = Field(None, description="Inclusive end, YYYY-MM-DD")


class BudgetOut(BaseModel):
    id: str
    user_id: str
    amount: float
    amount_kwh: float
    start_date: Optional[date]
    end_date: Optional[date]
    last_alert_sent: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BudgetRead(BaseModel):
    budget: Optional[BudgetOut]
    current_expenses: float
    current_expenses_label: str


class BudgetEvaluationOut(BaseModel):
    budget_amount: float
    usage: float
    percent_used: float
    should_alert: bool


class BudgetWriteOut(BaseModel):
    success: bool = True
    budget: BudgetOut
    evaluation: BudgetEvaluationOut
    alert: str
    alert_error: Optional[str] = None


class BudgetStatusOut(BaseModel):
    percent_used: float
    last_alert_sent: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Usage & readings
# ---------------------------------------------------------------------------


class UsageOut(BaseModel):
    metric: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total: float
    by_series: dict[str, float] = Field(default_factory=dict)
    degraded: list[str] = Field(default_factory=list)


class ReadingOut(BaseModel):
    id: int
    timestamp: str
    voltage: float
    ampere: float
    power: float
    energy: float
    pf: float
    price: float
    sensor: str


class ReadingsOut(BaseModel):
    series: dict[str, list[ReadingOut]]


# ---------------------------------------------------------------------------
# Job runs
# ---------------------------------------------------------------------------


class JobRunOut(BaseModel):
    ran_at: datetime
    report: dict[str, Any]
