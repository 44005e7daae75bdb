"""Budget command handlers — read, write, and status for the signed-in user."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import (
    BudgetOwnerNotFoundError,
    DateRangeError,
    InvalidAmountError,
    InvalidEndDateError,
    InvalidStartDateError,
    StorageError,
    UnauthenticatedError,
)
from ..models.budget import Budget
from ..models.user import User
from .alerts import Notifier
from .budget_monitor import (
    DEFAULT_POLICY,
    AlertOutcome,
    AlertPolicy,
    AlertResult,
    BudgetEvaluation,
    evaluate,
    fire_budget_alert,
    percent_used,
)
from .failures import ErrorTracker, FailureSource
from .units import KWH_RATE_IDR, Unit, parse_unit, to_energy, to_money
from .usage import Metric, aggregate, window_for_budget

logger = logging.getLogger(__name__)


@dataclass
class BudgetSnapshot:
    budget: Budget | None
    current_expenses: float
    amount_kwh: float | None = None


@dataclass
class BudgetWriteResult:
    budget: Budget
    evaluation: BudgetEvaluation
    alert: AlertResult


@dataclass
class BudgetStatusSnapshot:
    percent_used: float = 0.0
    last_alert_sent: datetime | None = None


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------


def parse_amount(value: Any) -> float:
    """Positive finite number from a number or numeric string."""
    if isinstance(value, bool):
        raise InvalidAmountError()
    try:
        number = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, AttributeError):
        raise InvalidAmountError() from None
    if not math.isfinite(number) or number <= 0:
        raise InvalidAmountError()
    return number


def parse_date(value: Any, error: type[Exception]) -> date | None:
    """Calendar date from a date, datetime, or ISO string; empty means unset."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise error()


def _require_auth(auth_id: str | None) -> str:
    if not auth_id or not str(auth_id).strip():
        raise UnauthenticatedError()
    return str(auth_id)


def _load_user(db: Session, auth_id: str) -> User:
    try:
        user = db.execute(select(User).where(User.auth_id == auth_id)).scalar_one_or_none()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("User lookup for %s failed: %s", auth_id, e)
        raise StorageError(f"Could not load user: {e}") from e
    if user is None:
        raise BudgetOwnerNotFoundError()
    return user


def find_budget_by_user(db: Session, user_id: str) -> Budget | None:
    return db.execute(select(Budget).where(Budget.user_id == user_id)).scalar_one_or_none()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def read_budget(db: Session, auth_id: str | None, rate: float = KWH_RATE_IDR) -> BudgetSnapshot:
    """Load the caller's budget with current spend over its window."""
    auth_id = _require_auth(auth_id)
    user = _load_user(db, auth_id)
    budget = find_budget_by_user(db, user.id)
    if budget is None:
        return BudgetSnapshot(budget=None, current_expenses=0.0)

    expenses = aggregate(db, window_for_budget(budget), Metric.PRICE)
    return BudgetSnapshot(
        budget=budget,
        current_expenses=expenses,
        amount_kwh=to_energy(budget.amount, rate),
    )


def upsert_budget(
    db: Session, user_id: str, amount: float, start: date | None, end: date | None,
) -> Budget:
    """Replace amount and window; ``last_alert_sent`` is left alone."""
    try:
        budget = find_budget_by_user(db, user_id)
        if budget is None:
            budget = Budget(user_id=user_id, amount=amount, start_date=start, end_date=end)
            db.add(budget)
        else:
            budget.amount = amount
            budget.start_date = start
            budget.end_date = end
        db.commit()
        db.refresh(budget)
        return budget
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Budget upsert for user %s failed: %s", user_id, e)
        raise StorageError(f"Could not save budget: {e}") from e


def write_budget(
    db: Session,
    auth_id: str | None,
    amount: Any,
    unit: Any = Unit.IDR,
    start: Any = None,
    end: Any = None,
    *,
    notifier: Notifier,
    policy: AlertPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
    rate: float = KWH_RATE_IDR,
) -> BudgetWriteResult:
    """Validate and save the caller's budget, then re-check it against the new window."""
    auth_id = _require_auth(auth_id)

    value = parse_amount(amount)
    parsed_unit = parse_unit(unit)
    start_date = parse_date(start, InvalidStartDateError)
    end_date = parse_date(end, InvalidEndDateError)
    if start_date and end_date and start_date > end_date:
        raise DateRangeError()

    user = _load_user(db, auth_id)
    amount_idr = to_money(value, rate) if parsed_unit is Unit.KWH else value
    budget = upsert_budget(db, user.id, amount_idr, start_date, end_date)

    evaluation = evaluate(db, budget, policy)
    alert = fire_budget_alert(db, budget, evaluation, notifier, policy, now=now, rate=rate)
    if alert.outcome is AlertOutcome.FAILED:
        logger.warning("Budget saved for user %s but warning email failed: %s", user.id, alert.error)
    return BudgetWriteResult(budget=budget, evaluation=evaluation, alert=alert)


def get_budget_status(
    db: Session, auth_id: str | None, tracker: ErrorTracker | None = None,
) -> BudgetStatusSnapshot:
    """Percent used and last alert time; returns zeros instead of raising."""
    try:
        snapshot = read_budget(db, auth_id)
        if snapshot.budget is None:
            return BudgetStatusSnapshot()
        return BudgetStatusSnapshot(
            percent_used=percent_used(snapshot.current_expenses, snapshot.budget.amount),
            last_alert_sent=snapshot.budget.last_alert_sent,
        )
    except Exception as e:
        logger.error("Budget status for %s failed: %s", auth_id, e)
        if tracker is not None:
            tracker.record(FailureSource.BUDGET_STATUS, e, auth_id)
        return BudgetStatusSnapshot()
