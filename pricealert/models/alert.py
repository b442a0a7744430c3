"""Alert data model."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from urllib.parse import unquote

from pydantic import BaseModel, Field, field_validator, model_validator

AlertDirection = Literal["crossing_up", "crossing_down"]
AlertStatus = Literal["active", "triggered", "expired"]


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware timestamp to naive local time.

    All alert timestamps and the cycle clock are naive local time, so they
    stay comparable with each other. Naive values pass through unchanged.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def normalize_instrument_key(raw: str) -> str:
    """Decode a stored instrument key into the form the quote feed uses.

    Stored keys may carry a URL-escaped separator (``EUR%2FUSD``).
    """
    return unquote(raw).strip()


class Alert(BaseModel):
    """A standing request to be told when a price crosses a threshold."""

    id: Optional[int] = Field(default=None, description="Database ID")
    instrument_key: str = Field(
        ..., min_length=1, description="Quote feed identifier (e.g., 'EUR/USD')"
    )
    display_label: str = Field(..., min_length=1, description="Symbol shown to the user")
    category: str = Field(default="", description="Free-form symbol category")
    note: str = Field(default="", description="Free-text annotation")
    threshold: Decimal = Field(..., gt=0, description="Trigger price")
    direction: AlertDirection = Field(..., description="Crossing direction")
    status: AlertStatus = Field(default="active", description="Lifecycle status")
    created_at: datetime = Field(
        default_factory=datetime.now, description="Alert creation timestamp"
    )
    expires_at: Optional[datetime] = Field(
        default=None, description="Expiry timestamp, None means never"
    )
    triggered_at: Optional[datetime] = Field(
        default=None, description="When the alert fired"
    )

    model_config = {"frozen": True}

    @field_validator("instrument_key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        key = normalize_instrument_key(value)
        if not key:
            raise ValueError("instrument_key must not be blank")
        return key

    @field_validator("created_at", "expires_at", "triggered_at")
    @classmethod
    def _local_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(value)

    @model_validator(mode="after")
    def _check_triggered_at(self) -> "Alert":
        if (self.status == "triggered") != (self.triggered_at is not None):
            raise ValueError("triggered_at must be set exactly when status is 'triggered'")
        return self

    def is_eligible(self, now: datetime) -> bool:
        """Check whether this alert should be evaluated at ``now``."""
        if self.status != "active":
            return False
        return self.expires_at is None or self.expires_at >= to_local_naive(now)
