"""Telegram notification sink."""

import logging
from typing import Optional

import requests
from rich.console import Console
from rich.panel import Panel

from pricealert.notifiers.base import BaseNotifier

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
DEFAULT_TIMEOUT = 10


class TelegramNotifier(BaseNotifier):
    """Sends alert messages through the Telegram Bot API.

    Delivery is a single POST; a non-200 answer, a timeout or a
    connection error all count as a failed send.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = DEFAULT_TIMEOUT,
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
        console: Optional[Console] = None,
    ):
        """Initialize the notifier.

        Args:
            bot_token: Telegram bot token.
            chat_id: Destination chat ID.
            timeout: Request timeout in seconds.
            dry_run: Print messages instead of sending them.
            session: Optional requests session to reuse.
            console: Console used for dry-run output.

        Raises:
            ValueError: If token or chat ID is missing outside dry-run mode.
        """
        if not dry_run:
            if not bot_token:
                raise ValueError("Telegram bot token is required (or use --dry-run)")
            if not chat_id:
                raise ValueError("Telegram chat ID is required (or use --dry-run)")

        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.dry_run = dry_run
        self._session = session or requests.Session()
        self._console = console or Console()

    @classmethod
    def from_config(cls, settings, dry_run: bool = False) -> "TelegramNotifier":
        """Create a notifier from loaded settings.

        Args:
            settings: Settings instance from ``pricealert.config``.
            dry_run: Print messages instead of sending them.
        """
        telegram = settings.telegram
        return cls(
            bot_token=telegram.bot_token,
            chat_id=telegram.chat_id,
            timeout=telegram.timeout,
            dry_run=dry_run,
        )

    @property
    def endpoint(self) -> str:
        return f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage"

    def send(self, message: str) -> bool:
        if self.dry_run:
            logger.info("[DRY RUN] Would send Telegram message to %s", self.chat_id or "-")
            self._console.print(Panel(
                message,
                title="[bold yellow]Telegram (dry run)[/bold yellow]",
                border_style="yellow",
            ))
            return True

        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "HTML",
        }

        try:
            response = self._session.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.warning("Telegram request timed out")
            return False
        except requests.exceptions.RequestException as e:
            # Exception text can contain the URL, which carries the bot token
            logger.warning("Telegram request failed: %s", type(e).__name__)
            return False

        if response.status_code != 200:
            logger.warning("Telegram API error: HTTP %s", response.status_code)
            return False

        logger.info("Telegram message sent to %s", self.chat_id)
        return True
