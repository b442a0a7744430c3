"""PriceAlert command group. Subcommand modules load on first use."""

from pathlib import Path
from typing import Optional

import click


class LazyGroup(click.Group):
    """Click group whose subcommands are imported on first use.

    ``lazy_subcommands`` maps a command name to ``"module:attribute"``.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = dict(lazy_subcommands or {})

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted({*super().list_commands(ctx), *self._lazy_subcommands})

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        command = super().get_command(ctx, cmd_name)
        if command is None and cmd_name in self._lazy_subcommands:
            command = self._import_command(cmd_name)
            self.add_command(command, cmd_name)
        return command

    def _import_command(self, cmd_name: str) -> click.Command:
        import importlib

        target = self._lazy_subcommands[cmd_name]
        module_path, _, attr_name = target.partition(":")
        command = getattr(importlib.import_module(module_path), attr_name, None)
        if not isinstance(command, click.Command):
            raise click.ClickException(f"'{target}' is not a click command")
        return command


LAZY_SUBCOMMANDS = {
    "init": "pricealert.cli.configure:init",
    "alert": "pricealert.cli.alerts:create_alert",
    "alerts": "pricealert.cli.alerts:list_alerts",
    "check": "pricealert.cli.monitor:check",
    "monitor": "pricealert.cli.monitor:monitor",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml (default: ~/.config/pricealert/config.toml).",
)
@click.version_option(package_name="pricealert")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[Path]) -> None:
    """PriceAlert - threshold price alerts delivered to Telegram.

    \b
    Quick Start:
      pricealert init                                   # Write config template
      pricealert alert EURUSD 1.2000 -i EUR/USD -d up   # Create an alert
      pricealert check                                  # Run one alert check
      pricealert monitor --interval 60                  # Check every minute
    """
    from pricealert.logs import setup_logging

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    setup_logging(verbose)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
