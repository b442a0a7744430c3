"""CLI commands for PriceAlert.

This package provides the command-line interface for managing alerts
and running the monitoring engine.
"""

from pricealert.cli.main import cli, main

__all__ = ["cli", "main"]
