"""Notification message formatting."""

from datetime import datetime
from decimal import Decimal
from html import escape
from typing import Optional

from pricealert.models import Alert

DIRECTION_LABELS = {
    "crossing_up": "⬆️ UP",
    "crossing_down": "⬇️ DOWN",
}

# Telegram accepts 4096 characters; user text is clipped so the
# price lines always fit.
MAX_LABEL_LENGTH = 100
MAX_CATEGORY_LENGTH = 100
MAX_NOTE_LENGTH = 1000


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def format_alert_message(
    alert: Alert, current_price: Decimal, now: Optional[datetime] = None
) -> str:
    """Render the Telegram message for a triggered alert.

    Free text is clipped before it is escaped, so a long note never pushes
    out the threshold or current price and never splits an HTML entity.

    Args:
        alert: The alert that fired.
        current_price: Price observed in this cycle.
        now: Trigger time shown in the message.

    Returns:
        HTML formatted message text.
    """
    now = now or datetime.now()
    symbol = f"<b>{escape(_clip(alert.display_label, MAX_LABEL_LENGTH))}</b>"
    if alert.note:
        symbol += f" - {escape(_clip(alert.note, MAX_NOTE_LENGTH))}"

    lines = [
        "🚨 <b>ALERT TRIGGERED</b>",
        "",
        f"Symbol: {symbol}",
        f"Price: <b>{alert.threshold}</b> {DIRECTION_LABELS[alert.direction]}",
        f"Current: <b>{current_price}</b>",
    ]
    if alert.category:
        lines.append(f"Category: <i>{escape(_clip(alert.category, MAX_CATEGORY_LENGTH))}</i>")
    lines.append(f"Time: {now.strftime('%b %d, %H:%M')}")
    return "\n".join(lines)
