"""Alert management commands for PriceAlert CLI.

Handles creating, listing, and removing price alerts.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pricealert.cli.common import fail, get_data_store, load_or_fail
from pricealert.errors import PriceAlertError
from pricealert.models import Alert
from pricealert.notifiers.messages import DIRECTION_LABELS

console = Console()

DIRECTIONS = {
    "up": "crossing_up",
    "down": "crossing_down",
}

STATUS_STYLES = {
    "active": "[green]● Active[/green]",
    "triggered": "[yellow]✓ Triggered[/yellow]",
    "expired": "[dim]Expired[/dim]",
}


def parse_price(value: str) -> Decimal:
    """Parse a threshold price, keeping the digits as typed.

    Args:
        value: Price text (e.g., '1.2000').

    Returns:
        Decimal price.

    Raises:
        click.BadParameter: If the value is not a positive number.
    """
    try:
        price = Decimal(value)
    except InvalidOperation:
        raise click.BadParameter(f"'{value}' is not a number", param_hint="PRICE")
    if not price.is_finite() or price <= 0:
        raise click.BadParameter("price must be greater than zero", param_hint="PRICE")
    return price


@click.command("alert")
@click.argument("symbol")
@click.argument("price")
@click.option(
    "-d", "--direction",
    type=click.Choice(sorted(DIRECTIONS)),
    required=True,
    help="Trigger when the price moves up to or down to PRICE.",
)
@click.option(
    "-i", "--instrument",
    default=None,
    help="Quote feed identifier (e.g., EUR/USD). Defaults to SYMBOL.",
)
@click.option("--category", default="", help="Symbol category shown in notifications.")
@click.option("--note", default="", help="Free-text note included in the notification.")
@click.option(
    "--expires",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]),
    default=None,
    help="Expiry date/time; the alert is ignored after it.",
)
@click.pass_context
def create_alert(
    ctx: click.Context,
    symbol: str,
    price: str,
    direction: str,
    instrument: Optional[str],
    category: str,
    note: str,
    expires: Optional[datetime],
) -> None:
    """Create a price alert.

    SYMBOL is the display symbol (e.g., EURUSD).
    PRICE is the threshold price (e.g., 1.2000).

    \b
    Examples:
      pricealert alert EURUSD 1.2000 -i EUR/USD -d up
      pricealert alert XAUUSD 1950 -i XAU/USD -d down --note "retest"
      pricealert alert GBPUSD 1.25 -i GBP/USD -d up --expires 2026-12-31
    """
    threshold = parse_price(price)
    settings = load_or_fail(ctx, console)

    try:
        alert = Alert(
            instrument_key=instrument or symbol,
            display_label=symbol.upper(),
            category=category,
            note=note,
            threshold=threshold,
            direction=DIRECTIONS[direction],
            created_at=datetime.now(),
            expires_at=expires,
        )
    except ValidationError as e:
        fail(console, "Invalid alert", e)

    try:
        store = get_data_store(settings)
        alert_id = store.save_alert(alert)
    except PriceAlertError as e:
        fail(console, "Failed to create alert", e)

    expiry = alert.expires_at.strftime("%Y-%m-%d %H:%M") if alert.expires_at else "never"
    console.print(Panel(
        f"[bold green]Alert Created[/bold green]\n\n"
        f"ID:         {alert_id}\n"
        f"Symbol:     {alert.display_label}\n"
        f"Instrument: {alert.instrument_key}\n"
        f"Price:      {alert.threshold} {DIRECTION_LABELS[alert.direction]}\n"
        f"Expires:    {expiry}",
        title="[bold]New Alert[/bold]",
        border_style="green",
    ))


@click.command("alerts")
@click.option(
    "--status",
    type=click.Choice(["active", "triggered", "expired"]),
    default=None,
    help="Only show alerts with this status.",
)
@click.option(
    "--remove", "remove_id",
    type=int,
    default=None,
    help="Remove alert with specified ID.",
)
@click.pass_context
def list_alerts(ctx: click.Context, status: Optional[str], remove_id: Optional[int]) -> None:
    """Display or manage alerts.

    Shows all alerts. Use --remove ID to delete an alert.

    \b
    Examples:
      pricealert alerts                   # List all alerts
      pricealert alerts --status active   # List active alerts
      pricealert alerts --remove 5        # Remove alert with ID 5
    """
    settings = load_or_fail(ctx, console)

    try:
        store = get_data_store(settings)

        if remove_id is not None:
            alert = store.get_alert_by_id(remove_id)
            if alert is None:
                console.print(f"[yellow]Alert with ID {remove_id} not found[/yellow]")
                return

            store.delete_alert(remove_id)
            console.print(
                f"[green]✓ Removed alert {remove_id} "
                f"({alert.display_label} {alert.threshold})[/green]"
            )
            return

        alerts = store.get_alerts(status=status)
    except PriceAlertError as e:
        fail(console, "Failed to list alerts", e)

    if not alerts:
        console.print(Panel(
            "[dim]No alerts. Use 'pricealert alert SYMBOL PRICE -d up|down' to create one.[/dim]",
            title="[bold]Alerts[/bold]",
            border_style="dim",
        ))
        return

    table = Table(
        title="Alerts",
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("ID", style="dim", width=6)
    table.add_column("Symbol", style="bold")
    table.add_column("Instrument")
    table.add_column("Price", justify="right")
    table.add_column("Direction")
    table.add_column("Note")
    table.add_column("Expires", style="dim")
    table.add_column("Status", justify="center")

    for alert in alerts:
        status_text = STATUS_STYLES[alert.status]
        if alert.triggered_at:
            status_text += f" [dim]{alert.triggered_at.strftime('%m-%d %H:%M')}[/dim]"

        table.add_row(
            str(alert.id),
            alert.display_label,
            alert.instrument_key,
            str(alert.threshold),
            DIRECTION_LABELS[alert.direction],
            alert.note or "-",
            alert.expires_at.strftime("%Y-%m-%d %H:%M") if alert.expires_at else "-",
            status_text,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(alerts)} alerts[/dim]")
    console.print("[dim]Use 'pricealert alerts --remove ID' to delete an alert[/dim]")
