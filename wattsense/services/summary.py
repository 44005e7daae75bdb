"""Monthly usage summary — previous month's cost and energy, emailed to every user."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.user import User
from .alerts import Notifier, render_monthly_summary
from .failures import ErrorTracker, FailureSource
from .tips import TipGenerator, ensure_tips
from .usage import Metric, aggregate, previous_month_window

logger = logging.getLogger(__name__)


@dataclass
class SummaryReport:
    period: str
    processed: int = 0
    sent: int = 0
    skipped: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "processed": self.processed,
            "sent": self.sent,
            "skipped": self.skipped,
            "failures": list(self.failures),
        }


def send_monthly_summaries(
    db: Session,
    notifier: Notifier,
    tip_generator: TipGenerator | None = None,
    now: datetime | None = None,
    tracker: ErrorTracker | None = None,
) -> SummaryReport:
    """Email last month's totals to each user with an address."""
    now = now or datetime.now()
    window = previous_month_window(now)
    month_label = window.start.strftime("%B")
    report = SummaryReport(period=window.start.strftime("%Y-%m"))

    # Usage is global to both meters, so it is computed once for everyone
    total_cost = aggregate(db, window, Metric.PRICE)
    total_energy = aggregate(db, window, Metric.ENERGY)
    tips = ensure_tips(tip_generator)

    users = db.execute(select(User).order_by(User.created_at)).scalars().all()
    for user in users:
        report.processed += 1
        if not user.email:
            report.skipped += 1
            continue

        subject, body = render_monthly_summary(user.name, month_label, total_cost, total_energy, tips)
        result = notifier.send(user.email, subject, body)
        if result.success:
            report.sent += 1
            continue

        error = result.error or "Failed to send summary email"
        report.failures.append({"user_id": user.id, "error": error})
        if tracker is not None:
            tracker.record(FailureSource.MONTHLY_SUMMARY, error, user.id)

    logger.info(
        "Monthly summary %s: %d sent, %d skipped, %d failed",
        report.period, report.sent, report.skipped, len(report.failures),
    )
    return report
