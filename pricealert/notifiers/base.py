"""Base notifier interface for PriceAlert."""

from abc import ABC, abstractmethod


class BaseNotifier(ABC):
    """Abstract base class for notification sinks.

    ``send`` reports delivery with its return value and must not raise.
    """

    @abstractmethod
    def send(self, message: str) -> bool:
        """Deliver a message.

        Args:
            message: Message text (HTML subset: <b>, <i>).

        Returns:
            True if the sink accepted the message, False otherwise.
        """
        pass
