"""Notification sinks for PriceAlert."""

from pricealert.notifiers.base import BaseNotifier
from pricealert.notifiers.messages import format_alert_message
from pricealert.notifiers.telegram import TelegramNotifier

__all__ = ["BaseNotifier", "TelegramNotifier", "format_alert_message"]
