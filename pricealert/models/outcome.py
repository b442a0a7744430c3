"""Monitoring cycle outcome models."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

ErrorKind = Literal[
    "feed_unavailable",
    "store_unavailable",
    "notification_failed",
    "transition_conflict",
    "processing_error",
    "cancelled",
]


class CycleOutcome(BaseModel):
    """What happened to one alert during one monitoring cycle."""

    alert_id: int = Field(..., description="Alert database ID")
    display_label: str = Field(default="", description="Symbol shown to the user")
    matched: bool = Field(default=False, description="Crossing condition satisfied")
    notified: bool = Field(default=False, description="Notification delivered")
    error_kind: Optional[ErrorKind] = Field(default=None, description="Failure category")
    current_price: Optional[Decimal] = Field(
        default=None, description="Price the alert was evaluated against"
    )

    model_config = {"frozen": True}

    @property
    def triggered(self) -> bool:
        """True if this cycle moved the alert to 'triggered'."""
        return self.matched and self.error_kind not in (
            "transition_conflict",
            "processing_error",
            "cancelled",
        )


class CycleReport(BaseModel):
    """Result of one complete monitoring cycle."""

    started_at: datetime = Field(..., description="Cycle start, also the evaluation instant")
    finished_at: Optional[datetime] = Field(default=None, description="Cycle end")
    eligible: int = Field(default=0, ge=0, description="Number of eligible alerts")
    outcomes: list[CycleOutcome] = Field(default_factory=list)
    error_kind: Optional[ErrorKind] = Field(
        default=None, description="Cycle-level failure (feed or store)"
    )
    error_message: Optional[str] = Field(default=None, description="Cycle-level failure cause")

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @property
    def triggered_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.triggered)

    @property
    def notified_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.notified)

    def to_summary(self) -> dict:
        """Build a JSON-serializable summary of the cycle.

        Returns:
            Dictionary with success flag, message, alert counts and the
            per-alert results of triggered alerts.
        """
        if self.error_kind == "store_unavailable":
            message = "Failed to check alerts"
        elif self.eligible == 0:
            message = "No active alerts to check"
        else:
            message = "Alert check completed"

        results = []
        for outcome in self.outcomes:
            if not outcome.matched:
                continue
            results.append({
                "alert_id": outcome.alert_id,
                "symbol": outcome.display_label,
                "current_price": (
                    str(outcome.current_price) if outcome.current_price is not None else None
                ),
                "notification_sent": outcome.notified,
                "error": outcome.error_kind,
            })

        return {
            "success": self.error_kind != "store_unavailable",
            "message": message,
            "error": self.error_kind,
            "error_message": self.error_message,
            "total_alerts": self.eligible,
            "triggered": self.triggered_count,
            "notified": self.notified_count,
            "results": results,
        }
