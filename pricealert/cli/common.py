"""Helpers shared by CLI commands."""

import click
from rich.console import Console
from rich.panel import Panel

from pricealert.config import Settings, load_settings
from pricealert.db.store import DataStore
from pricealert.errors import PriceAlertError


def get_settings(ctx: click.Context) -> Settings:
    """Load settings for the current invocation."""
    config_path = (ctx.obj or {}).get("config_path")
    return load_settings(config_path)


def get_data_store(settings: Settings) -> DataStore:
    """Get the data store instance."""
    return DataStore(settings.monitor.db_path)


def fail(console: Console, title: str, error: Exception | str) -> None:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        f"[red]{title}:[/red]\n\n{error}",
        title="[bold red]Error[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def load_or_fail(ctx: click.Context, console: Console) -> Settings:
    try:
        return get_settings(ctx)
    except PriceAlertError as e:
        fail(console, "Failed to load configuration", e)
