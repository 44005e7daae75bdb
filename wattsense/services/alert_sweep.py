"""Scheduled budget alert sweep — evaluates every stored budget independently."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..models.budget import Budget
from .alerts import Notifier
from .budget_monitor import DEFAULT_POLICY, AlertOutcome, AlertPolicy, evaluate, fire_budget_alert
from .failures import ErrorTracker, FailureSource
from .units import KWH_RATE_IDR

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    processed: int = 0
    outcomes: dict[str, str] = field(default_factory=dict)  # budget id -> outcome
    failures: list[dict[str, Any]] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for o in self.outcomes.values() if o == AlertOutcome.SENT.value)

    def as_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "sent": self.sent,
            "outcomes": dict(self.outcomes),
            "failures": list(self.failures),
        }


def find_all_budgets_with_owner(db: Session) -> list[Budget]:
    return list(db.execute(select(Budget).options(joinedload(Budget.user))).scalars().all())


def run_budget_alert_sweep(
    db: Session,
    notifier: Notifier,
    policy: AlertPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
    rate: float = KWH_RATE_IDR,
    tracker: ErrorTracker | None = None,
) -> SweepReport:
    """Check every budget; one bad budget never stops the rest."""
    now = now or datetime.now(timezone.utc)
    report = SweepReport()

    for budget in find_all_budgets_with_owner(db):
        report.processed += 1
        budget_id = budget.id
        if budget.user is None or not budget.user.email:
            report.outcomes[budget_id] = AlertOutcome.NO_CONTACT.value
            continue

        try:
            evaluation = evaluate(db, budget, policy)
            result = fire_budget_alert(db, budget, evaluation, notifier, policy, now=now, rate=rate)
        except Exception as e:
            db.rollback()
            logger.error("Budget alert check failed for %s: %s", budget_id, e)
            report.outcomes[budget_id] = AlertOutcome.FAILED.value
            report.failures.append({"budget_id": budget_id, "error": str(e)})
            if tracker is not None:
                tracker.record(FailureSource.BUDGET_ALERT_SWEEP, e, budget_id)
            continue

        report.outcomes[budget_id] = result.outcome.value
        if result.outcome is AlertOutcome.FAILED:
            report.failures.append({"budget_id": budget_id, "error": result.error})
            if tracker is not None:
                tracker.record(FailureSource.BUDGET_ALERT_SWEEP, result.error or "send failed", budget_id)

    if report.failures:
        logger.warning(
            "Budget alert sweep: %d/%d budgets failed", len(report.failures), report.processed,
        )
    return report
