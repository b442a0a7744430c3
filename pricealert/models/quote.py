"""Price quote model."""

from decimal import Decimal

from pydantic import BaseModel, Field


class PriceQuote(BaseModel):
    """Latest price for one instrument, valid for a single cycle."""

    instrument_key: str = Field(..., min_length=1, description="Quote feed identifier")
    price: Decimal = Field(..., gt=0, description="Current price")

    model_config = {"frozen": True}
