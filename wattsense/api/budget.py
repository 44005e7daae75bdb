"""Budget API — read/write the caller's budget, status checks, and manual job runs."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..context import AppContext
from ..db import get_db
from ..models.budget import Budget
from ..services.alert_sweep import run_budget_alert_sweep
from ..services.budgets import get_budget_status, read_budget, write_budget
from ..services.summary import send_monthly_summaries
from ..services.units import format_idr, to_energy
from .deps import get_context, require_auth_id
from .schemas import (
    BudgetEvaluationOut,
    BudgetOut,
    BudgetRead,
    BudgetStatusOut,
    BudgetUpdate,
    BudgetWriteOut,
    JobRunOut,
)

router = APIRouter(tags=["budget"])


def _budget_out(budget: Budget, rate: float) -> BudgetOut:
    return BudgetOut(
        id=budget.id,
        user_id=budget.user_id,
        amount=budget.amount,
        amount_kwh=to_energy(budget.amount, rate),
        start_date=budget.start_date,
        end_date=budget.end_date,
        last_alert_sent=budget.last_alert_sent,
        created_at=budget.created_at,
        updated_at=budget.updated_at,
    )


# ---------------------------------------------------------------------------
# Budget read / write
# ---------------------------------------------------------------------------


@router.get("/budget", response_model=BudgetRead)
def get_budget(
    auth_id: str = Depends(require_auth_id),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
):
    snapshot = read_budget(db, auth_id, rate=ctx.kwh_rate)
    return BudgetRead(
        budget=_budget_out(snapshot.budget, ctx.kwh_rate) if snapshot.budget else None,
        current_expenses=snapshot.current_expenses,
        current_expenses_label=format_idr(snapshot.current_expenses),
    )


@router.put("/budget", response_model=BudgetWriteOut)
def put_budget(
    body: BudgetUpdate,
    auth_id: str = Depends(require_auth_id),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
):
    result = write_budget(
        db, auth_id, body.value, body.unit, body.start_date, body.end_date,
        notifier=ctx.notifier, policy=ctx.policy, rate=ctx.kwh_rate,
    )
    ev = result.evaluation
    return BudgetWriteOut(
        budget=_budget_out(result.budget, ctx.kwh_rate),
        evaluation=BudgetEvaluationOut(
            budget_amount=ev.budget_amount,
            usage=ev.usage,
            percent_used=ev.percent_used,
            should_alert=ev.should_alert,
        ),
        alert=result.alert.outcome.value,
        alert_error=result.alert.error,
    )


@router.get("/budget/status", response_model=BudgetStatusOut)
def budget_status(
    auth_id: str = Depends(require_auth_id),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
):
    """Percent of budget used and when the last warning went out."""
    status = get_budget_status(db, auth_id, tracker=ctx.error_tracker)
    return BudgetStatusOut(percent_used=status.percent_used, last_alert_sent=status.last_alert_sent)


# ---------------------------------------------------------------------------
# Manual job triggers
# ---------------------------------------------------------------------------


@router.post("/budget/alerts/run", response_model=JobRunOut)
def run_alerts(db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """Run the budget alert sweep now instead of waiting for the scheduler."""
    report = run_budget_alert_sweep(
        db, ctx.notifier, ctx.policy, rate=ctx.kwh_rate, tracker=ctx.error_tracker,
    )
    return JobRunOut(ran_at=datetime.now(timezone.utc), report=report.as_dict())


@router.post("/summaries/run", response_model=JobRunOut)
def run_summaries(db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """Send last month's usage summaries now."""
    report = send_monthly_summaries(
        db, ctx.notifier, ctx.tip_generator, tracker=ctx.error_tracker,
    )
    return JobRunOut(ran_at=datetime.now(timezone.utc), report=report.as_dict())
