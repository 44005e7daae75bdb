"""Budget monitor — evaluates usage against a budget and gates warning emails.

Per budget the order is fixed: aggregate, evaluate, throttle check, send,
persist ``last_alert_sent``. The timestamp is written only after a
successful send so a failed dispatch is retried on the next cycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings
from ..exceptions import StorageError
from ..models.budget import Budget
from .alerts import Notifier, render_budget_warning
from .units import KWH_RATE_IDR
from .usage import Metric, aggregate, window_for_budget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertPolicy:
    threshold_percent: float = 90.0
    throttle: timedelta = timedelta(hours=24)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlertPolicy":
        return cls(
            threshold_percent=settings.alert_threshold_percent,
            throttle=settings.alert_throttle,
        )


DEFAULT_POLICY = AlertPolicy()


@dataclass(frozen=True)
class BudgetEvaluation:
    budget_amount: float
    usage: float
    percent_used: float
    should_alert: bool


class AlertOutcome(str, Enum):
    NOT_NEEDED = "not_needed"
    THROTTLED = "throttled"
    NO_CONTACT = "no_contact"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class AlertResult:
    outcome: AlertOutcome
    error: str | None = None


def percent_used(usage: float, budget_amount: float) -> float:
    """Usage as a percentage of the budget; 0 when the budget is not positive."""
    if not budget_amount or budget_amount <= 0:
        return 0.0
    return (usage / budget_amount) * 100


def evaluate_usage(
    budget_amount: float, usage: float, policy: AlertPolicy = DEFAULT_POLICY,
) -> BudgetEvaluation:
    pct = percent_used(usage, budget_amount)
    return BudgetEvaluation(
        budget_amount=float(budget_amount or 0.0),
        usage=usage,
        percent_used=pct,
        should_alert=pct >= policy.threshold_percent,
    )


def evaluate(db: Session, budget: Budget, policy: AlertPolicy = DEFAULT_POLICY) -> BudgetEvaluation:
    """Aggregate price over the budget window and compare with the budget amount."""
    usage = aggregate(db, window_for_budget(budget), Metric.PRICE)
    return evaluate_usage(budget.amount, usage, policy)


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def should_send(budget: Budget, now: datetime | None = None, policy: AlertPolicy = DEFAULT_POLICY) -> bool:
    """False while the last alert is younger than the throttle window."""
    if budget.last_alert_sent is None:
        return True
    now = _as_utc(now or datetime.now(timezone.utc))
    return now - _as_utc(budget.last_alert_sent) >= policy.throttle


def mark_alert_sent(
    db: Session, budget: Budget, now: datetime, previous: datetime | None,
) -> bool:
    """Stamp ``last_alert_sent`` only if nobody else changed it since it was read."""
    budget_id = budget.id
    stmt = update(Budget).where(Budget.id == budget_id)
    if previous is None:
        stmt = stmt.where(Budget.last_alert_sent.is_(None))
    else:
        stmt = stmt.where(Budget.last_alert_sent == previous)
    try:
        result = db.execute(stmt.values(last_alert_sent=now).execution_options(synchronize_session=False))
        db.commit()
        db.refresh(budget)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Could not stamp alert time on budget %s: %s", budget_id, e)
        raise StorageError(f"Alert sent but its timestamp was not saved: {e}") from e
    if result.rowcount == 0:
        logger.info("Budget %s alert timestamp already updated by another run", budget_id)
        return False
    return True


def fire_budget_alert(
    db: Session,
    budget: Budget,
    evaluation: BudgetEvaluation,
    notifier: Notifier,
    policy: AlertPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
    rate: float = KWH_RATE_IDR,
) -> AlertResult:
    """Throttle check, send the warning, then persist the timestamp on success."""
    if not evaluation.should_alert:
        return AlertResult(AlertOutcome.NOT_NEEDED)

    now = now or datetime.now(timezone.utc)
    if not should_send(budget, now, policy):
        logger.debug("Budget %s alert throttled (last sent %s)", budget.id, budget.last_alert_sent)
        return AlertResult(AlertOutcome.THROTTLED)

    user = budget.user
    if user is None or not user.email:
        return AlertResult(AlertOutcome.NO_CONTACT)

    subject, body = render_budget_warning(
        user.name,
        evaluation.percent_used,
        evaluation.budget_amount,
        evaluation.usage,
        threshold_percent=policy.threshold_percent,
        rate=rate,
    )
    previous = budget.last_alert_sent
    result = notifier.send(user.email, subject, body)
    if not result.success:
        logger.warning("Budget warning for %s not delivered: %s", user.email, result.error)
        return AlertResult(AlertOutcome.FAILED, result.error or "Failed to send budget alert")

    mark_alert_sent(db, budget, now, previous)
    logger.info(
        "Budget warning sent to %s (%.1f%% of %.0f IDR)",
        user.email, evaluation.percent_used, evaluation.budget_amount,
    )
    return AlertResult(AlertOutcome.SENT)
