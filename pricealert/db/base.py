"""Alert store interface consumed by the monitoring engine."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from pricealert.models import Alert, AlertStatus, to_local_naive


class AlertFilter(BaseModel):
    """Selection criteria for listing alerts."""

    status: Optional[AlertStatus] = Field(default=None, description="Required status")
    active_at: Optional[datetime] = Field(
        default=None, description="Exclude alerts that expired before this instant"
    )

    model_config = {"frozen": True}

    @field_validator("active_at")
    @classmethod
    def _local_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(value)

    @classmethod
    def eligible(cls, now: datetime) -> "AlertFilter":
        """Filter for alerts that should be evaluated at ``now``."""
        return cls(status="active", active_at=now)

    def matches(self, alert: Alert) -> bool:
        if self.status is not None and alert.status != self.status:
            return False
        if self.active_at is not None and alert.expires_at is not None:
            return alert.expires_at >= self.active_at
        return True


class AlertStore(ABC):
    """Abstract base class for alert persistence.

    The monitoring engine only needs to list alerts and to move a single
    alert out of the ``active`` state.
    """

    @abstractmethod
    def list_alerts(self, alert_filter: AlertFilter) -> list[Alert]:
        """List alerts matching a filter.

        Args:
            alert_filter: Selection criteria.

        Returns:
            Matching alerts.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        pass

    @abstractmethod
    def update_status(
        self,
        alert_id: int,
        status: AlertStatus,
        triggered_at: Optional[datetime] = None,
    ) -> bool:
        """Move one alert out of the ``active`` state.

        The update only applies while the alert is still active, so a
        repeated call for the same alert is a no-op.

        Args:
            alert_id: Alert ID.
            status: New status ('triggered' or 'expired').
            triggered_at: Trigger timestamp, required for 'triggered'.

        Returns:
            True if the alert was updated, False if it was no longer active.

        Raises:
            StoreUnavailableError: If the store cannot be written.
        """
        pass
