"""Alert monitoring commands for PriceAlert CLI.

``check`` runs a single monitoring cycle (suitable for cron); ``monitor``
keeps running cycles on a fixed interval.
"""

import json
import logging
import threading
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from pricealert.cli.common import fail, get_data_store, load_or_fail
from pricealert.config import Settings
from pricealert.engine import MonitoringCycle
from pricealert.errors import PriceAlertError
from pricealert.feeds import ForexFactoryFeed
from pricealert.models import CycleReport
from pricealert.notifiers import TelegramNotifier

console = Console()
logger = logging.getLogger(__name__)


def build_cycle(settings: Settings, dry_run: bool = False, workers: Optional[int] = None) -> MonitoringCycle:
    """Wire a MonitoringCycle from settings.

    Args:
        settings: Loaded settings.
        dry_run: Print notifications instead of sending them.
        workers: Override for the number of parallel workers.

    Returns:
        Ready-to-run MonitoringCycle.

    Raises:
        ValueError: If Telegram is not configured outside dry-run mode.
    """
    feed = ForexFactoryFeed(
        url=settings.feed.url,
        timeframe=settings.feed.timeframe,
        timeout=settings.feed.timeout,
    )
    notifier = TelegramNotifier.from_config(settings, dry_run=dry_run)
    return MonitoringCycle(
        store=get_data_store(settings),
        feed=feed,
        notifier=notifier,
        max_workers=workers or settings.monitor.max_workers,
    )


def _run_once(cycle: MonitoringCycle, deadline: Optional[float]) -> CycleReport:
    """Run one cycle, cancelling new per-alert work after ``deadline`` seconds."""
    if not deadline:
        return cycle.run()

    cancel_event = threading.Event()
    timer = threading.Timer(deadline, cancel_event.set)
    timer.daemon = True
    timer.start()
    try:
        return cycle.run(cancel_event=cancel_event)
    finally:
        timer.cancel()


def render_report(report: CycleReport) -> None:
    """Print a cycle report as a table."""
    if report.error_kind == "store_unavailable":
        console.print(f"[red]✗ Alert store unavailable:[/red] {report.error_message}")
        return

    if report.eligible == 0:
        console.print("[dim]No active alerts to check[/dim]")
        return

    if report.error_kind == "feed_unavailable":
        console.print(f"[yellow]⚠ Price feed unavailable:[/yellow] {report.error_message}")

    table = Table(
        title=f"Alert Check {report.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Symbol", style="bold")
    table.add_column("Current", justify="right")
    table.add_column("Matched", justify="center")
    table.add_column("Notified", justify="center")
    table.add_column("Error", style="red")

    for outcome in report.outcomes:
        table.add_row(
            str(outcome.alert_id),
            outcome.display_label,
            str(outcome.current_price) if outcome.current_price is not None else "-",
            "[green]✓[/green]" if outcome.matched else "-",
            "[green]✓[/green]" if outcome.notified else "-",
            outcome.error_kind or "",
        )

    console.print(table)
    console.print(
        f"\n[dim]{report.eligible} checked, {report.triggered_count} triggered, "
        f"{report.notified_count} notified[/dim]"
    )


@click.command("check")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.option(
    "--dry-run",
    is_flag=True,
    help=(
        "Print notifications instead of sending them. "
        "Matched alerts are still marked triggered."
    ),
)
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel workers.")
@click.option(
    "--deadline",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop starting new alert work after this many seconds.",
)
@click.pass_context
def check(
    ctx: click.Context,
    as_json: bool,
    dry_run: bool,
    workers: Optional[int],
    deadline: Optional[float],
) -> None:
    """Run one alert check.

    Fetches prices for all active alerts, marks the ones whose threshold
    was crossed as triggered and sends a Telegram message for each.
    Exits with status 1 if the alert store or the price feed was unavailable.
    With --dry-run nothing is sent, but matched alerts are still marked
    triggered and will not fire again.

    \b
    Examples:
      pricealert check             # Check and notify
      pricealert check --dry-run   # Print messages instead of sending
      pricealert check --json      # Machine-readable result
    """
    settings = load_or_fail(ctx, console)

    try:
        cycle = build_cycle(settings, dry_run=dry_run, workers=workers)
    except (ValueError, PriceAlertError) as e:
        fail(console, "Cannot start alert check", e)

    report = _run_once(cycle, deadline)

    if as_json:
        click.echo(json.dumps(report.to_summary(), indent=2))
    else:
        render_report(report)

    if not report.ok:
        raise SystemExit(1)


@click.command("monitor")
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds between checks (default from config).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help=(
        "Print notifications instead of sending them. "
        "Matched alerts are still marked triggered."
    ),
)
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel workers.")
@click.option(
    "--max-cycles",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many checks.",
)
@click.option(
    "--deadline",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-check limit in seconds for starting new alert work.",
)
@click.pass_context
def monitor(
    ctx: click.Context,
    interval: Optional[int],
    dry_run: bool,
    workers: Optional[int],
    max_cycles: Optional[int],
    deadline: Optional[float],
) -> None:
    """Check alerts continuously on a fixed interval.

    Press Ctrl+C to stop. A failed check is logged and retried on the
    next interval.

    \b
    Examples:
      pricealert monitor                 # Interval from config
      pricealert monitor --interval 30   # Check every 30 seconds
    """
    settings = load_or_fail(ctx, console)
    interval = interval or settings.monitor.interval_seconds

    try:
        cycle = build_cycle(settings, dry_run=dry_run, workers=workers)
    except (ValueError, PriceAlertError) as e:
        fail(console, "Cannot start monitor", e)

    console.print(f"[bold]Monitoring alerts every {interval}s[/bold] [dim](Ctrl+C to stop)[/dim]")

    stop = threading.Event()
    cycles = 0
    try:
        while not stop.is_set():
            report = _run_once(cycle, deadline)
            cycles += 1
            if not report.ok:
                logger.warning("Alert check failed: %s", report.error_kind)
            elif report.triggered_count:
                render_report(report)

            if max_cycles is not None and cycles >= max_cycles:
                break
            stop.wait(interval)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopping monitor[/dim]")

    console.print(f"[dim]Ran {cycles} checks[/dim]")
