"""Configuration commands for PriceAlert CLI."""

import click
from rich.console import Console
from rich.panel import Panel

from pricealert.config import create_template_config, get_config_path

console = Console()


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create a template configuration file.

    Telegram credentials can be left empty in the file and supplied
    through TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID instead.
    """
    config_path = get_config_path((ctx.obj or {}).get("config_path"))

    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        console.print("[dim]Use --force to overwrite it[/dim]")
        return

    written = create_template_config(config_path)
    console.print(Panel(
        f"[bold green]Config created[/bold green]\n\n"
        f"Edit {written} to add your Telegram bot token and chat ID.",
        title="[bold]PriceAlert Setup[/bold]",
        border_style="green",
    ))
