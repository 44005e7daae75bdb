"""Scheduled tasks — periodic budget alert sweep and monthly usage summaries."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from ..models.setting import Setting
from .alert_sweep import SweepReport, run_budget_alert_sweep
from .failures import FailureSource
from .summary import SummaryReport, send_monthly_summaries
from .usage import previous_month_window

if TYPE_CHECKING:
    from ..context import AppContext

logger = logging.getLogger(__name__)

DEFAULT_ALERT_INTERVAL = 6 * 60 * 60     # every 6 hours
DEFAULT_SUMMARY_INTERVAL = 60 * 60       # hourly check for a new month

SUMMARY_PERIOD_KEY = "monthly_summary_last_period"


def run_alert_sweep_once(ctx: "AppContext") -> SweepReport:
    db = ctx.session()
    try:
        return run_budget_alert_sweep(
            db, ctx.notifier, ctx.policy, rate=ctx.kwh_rate, tracker=ctx.error_tracker,
        )
    finally:
        db.close()


def _get_setting(db: Session, key: str) -> str | None:
    setting = db.get(Setting, key)
    return setting.value if setting else None


def _put_setting(db: Session, key: str, value: str) -> None:
    setting = db.get(Setting, key)
    if setting:
        setting.value = value
    else:
        db.add(Setting(key=key, value=value))
    db.commit()


def run_monthly_summary_if_due(ctx: "AppContext", now: datetime | None = None) -> SummaryReport | None:
    """Send last month's summaries unless they already went out for that period."""
    now = now or datetime.now()
    period = previous_month_window(now).start.strftime("%Y-%m")
    db = ctx.session()
    try:
        if _get_setting(db, SUMMARY_PERIOD_KEY) == period:
            return None
        report = send_monthly_summaries(
            db, ctx.notifier, ctx.tip_generator, now=now, tracker=ctx.error_tracker,
        )
        if report.sent == 0 and report.failures:
            # Nothing delivered (e.g. SMTP down or unconfigured); try again next check
            logger.warning("Monthly summary %s not delivered to anyone; will retry", period)
            return report
        # Partial failures are reported, not retried
        _put_setting(db, SUMMARY_PERIOD_KEY, period)
        return report
    finally:
        db.close()


async def budget_alert_loop(ctx: "AppContext", interval: int = DEFAULT_ALERT_INTERVAL) -> None:
    """Periodically check every budget and send due warnings."""
    logger.info("Budget alert loop started (interval=%ds)", interval)
    while True:
        try:
            report = await asyncio.to_thread(run_alert_sweep_once, ctx)
            if report.sent or report.failures:
                logger.info(
                    "Budget alert sweep: %d processed, %d sent, %d failed",
                    report.processed, report.sent, len(report.failures),
                )
        except Exception as e:
            logger.error("Budget alert loop error: %s", e)
            ctx.error_tracker.record(FailureSource.BUDGET_ALERT_LOOP, e)
        await asyncio.sleep(interval)


async def monthly_summary_loop(ctx: "AppContext", interval: int = DEFAULT_SUMMARY_INTERVAL) -> None:
    """Send monthly summaries once per calendar month."""
    logger.info("Monthly summary loop started (interval=%ds)", interval)
    while True:
        try:
            await asyncio.to_thread(run_monthly_summary_if_due, ctx)
        except Exception as e:
            logger.error("Monthly summary loop error: %s", e)
            ctx.error_tracker.record(FailureSource.MONTHLY_SUMMARY_LOOP, e)
        await asyncio.sleep(interval)
