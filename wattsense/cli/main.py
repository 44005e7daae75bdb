# WattSense CLI — main entry point
"""wattsense CLI — inspect budgets and run alert jobs from the terminal."""

from __future__ import annotations

import click

from ..config import settings


def _context():
    from ..context import build_context

    ctx = build_context()
    ctx.init_db()
    return ctx


@click.group()
@click.version_option(version=settings.app_version, prog_name="wattsense")
def cli():
    """WattSense — energy monitoring, budgets and usage alerts."""
    pass


@cli.command()
def status():
    """Show engine configuration and current usage totals."""
    from rich.console import Console
    from rich.table import Table

    from ..services.units import format_idr
    from ..services.usage import Metric, aggregate_detailed

    ctx = _context()
    console = Console()
    console.print(f"[bold blue]WattSense Engine[/] v{settings.app_version}")
    console.print(f"Database: {settings.effective_database_url}")
    console.print(f"Environment: {settings.environment}")
    console.print(f"Email: {'SMTP ' + settings.smtp_host if settings.smtp_host else '[yellow]disabled[/]'}")
    console.print(f"Tariff: {format_idr(settings.kwh_rate)} / kWh")

    db = ctx.session()
    try:
        price = aggregate_detailed(db, metric=Metric.PRICE)
        energy = aggregate_detailed(db, metric=Metric.ENERGY)
        table = Table(title="All-time usage")
        table.add_column("Series", style="cyan")
        table.add_column("Cost", justify="right")
        table.add_column("Energy (kWh)", justify="right")
        table.add_column("Readable", style="green")
        for name in price.by_series:
            table.add_row(
                name,
                format_idr(price.by_series[name]),
                f"{energy.by_series.get(name, 0.0):.2f}",
                "✖" if name in price.degraded else "✔",
            )
        table.add_row("[bold]Total[/]", format_idr(price.total), f"{energy.total:.2f}", "")
        console.print(table)
        if price.is_degraded:
            console.print(f"[yellow]Unreadable series counted as 0:[/] {', '.join(price.degraded)}")
    finally:
        db.close()
        ctx.dispose()


@cli.command()
def serve():
    """Start the WattSense API server."""
    import uvicorn
    uvicorn.run(
        "wattsense.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


# ---------------------------------------------------------------------------
# Budget commands
# ---------------------------------------------------------------------------


@cli.group()
def budget():
    """Inspect and set user budgets."""
    pass


@budget.command("show")
@click.option("--user", "auth_id", required=True, help="Auth provider user id")
def budget_show(auth_id: str):
    """Show a user's budget and current spend."""
    from rich.console import Console

    from ..exceptions import WattSenseError
    from ..services.budget_monitor import percent_used
    from ..services.budgets import read_budget
    from ..services.units import format_idr

    ctx = _context()
    console = Console()
    db = ctx.session()
    try:
        snapshot = read_budget(db, auth_id, rate=ctx.kwh_rate)
    except WattSenseError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()
        ctx.dispose()

    if snapshot.budget is None:
        console.print("[dim]No budget set.[/dim]")
        return
    b = snapshot.budget
    window = f"{b.start_date or '…'} → {b.end_date or '…'}"
    pct = percent_used(snapshot.current_expenses, b.amount)
    console.print(f"Budget: {format_idr(b.amount)} ({snapshot.amount_kwh:.2f} kWh)")
    console.print(f"Window: {window}")
    console.print(f"Spent:  {format_idr(snapshot.current_expenses)} ({pct:.1f}%)")
    console.print(f"Last alert: {b.last_alert_sent or 'never'}")


@budget.command("set")
@click.option("--user", "auth_id", required=True, help="Auth provider user id")
@click.option("--value", required=True, help="Budget amount")
@click.option("--unit", type=click.Choice(["idr", "kwh"]), default="idr", show_default=True)
@click.option("--start", default=None, help="Inclusive start date (YYYY-MM-DD)")
@click.option("--end", default=None, help="Inclusive end date (YYYY-MM-DD)")
def budget_set(auth_id: str, value: str, unit: str, start: str | None, end: str | None):
    """Create or replace a user's budget and send a warning if already over threshold."""
    from rich.console import Console

    from ..exceptions import WattSenseError
    from ..services.budgets import write_budget
    from ..services.units import format_idr

    ctx = _context()
    console = Console()
    db = ctx.session()
    try:
        result = write_budget(
            db, auth_id, value, unit, start, end,
            notifier=ctx.notifier, policy=ctx.policy, rate=ctx.kwh_rate,
        )
        ev = result.evaluation
        console.print(f"[green]Saved[/] budget {format_idr(result.budget.amount)}")
        console.print(f"Usage: {format_idr(ev.usage)} ({ev.percent_used:.1f}%)")
        console.print(f"Alert: {result.alert.outcome.value}")
    except WattSenseError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()
        ctx.dispose()


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@cli.group()
def alerts():
    """Budget alert jobs."""
    pass


@alerts.command("sweep")
def alerts_sweep():
    """Check every budget now and send due warnings."""
    from rich.console import Console
    from rich.table import Table

    from ..services.scheduler import run_alert_sweep_once

    ctx = _context()
    console = Console()
    try:
        report = run_alert_sweep_once(ctx)
    finally:
        ctx.dispose()

    table = Table(title=f"Budget alert sweep — {report.processed} budgets")
    table.add_column("Budget", style="cyan")
    table.add_column("Outcome")
    for budget_id, outcome in report.outcomes.items():
        style = "green" if outcome == "sent" else "red" if outcome == "failed" else ""
        table.add_row(budget_id, f"[{style}]{outcome}[/]" if style else outcome)
    console.print(table)
    for failure in report.failures:
        console.print(f"[red]✖[/] {failure['budget_id']}: {failure['error']}")


@cli.group()
def summary():
    """Monthly usage summaries."""
    pass


@summary.command("send")
def summary_send():
    """Email last month's usage summary to every user."""
    from rich.console import Console

    from ..services.summary import send_monthly_summaries

    ctx = _context()
    console = Console()
    db = ctx.session()
    try:
        report = send_monthly_summaries(db, ctx.notifier, ctx.tip_generator)
    finally:
        db.close()
        ctx.dispose()

    console.print(
        f"Summary {report.period}: [green]{report.sent} sent[/], "
        f"{report.skipped} skipped, [red]{len(report.failures)} failed[/]"
    )


@cli.command()
@click.argument("amount", type=float)
@click.option("--from", "unit", type=click.Choice(["idr", "kwh"]), default="idr", show_default=True)
def convert(amount: float, unit: str):
    """Convert between Rupiah and kWh at the configured tariff."""
    from ..services.units import format_idr, to_energy, to_money

    if unit == "idr":
        click.echo(f"{format_idr(amount)} = {to_energy(amount, settings.kwh_rate):.2f} kWh")
    else:
        click.echo(f"{amount:.2f} kWh = {format_idr(to_money(amount, settings.kwh_rate))}")


if __name__ == "__main__":
    cli()
