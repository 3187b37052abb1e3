# backend/gold_ledger/schemas/prices.py
"""
Pydantic schemas for gold prices.

Each account has at most one stored quote. Accounts without one are valued
at the portfolio-wide current price, or the default gold price if that is
unset too; `resolved` shows the price each account is actually valued at.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class PriceQuoteResponse(BaseModel):
    """Stored quote of one account."""

    model_config = ConfigDict(from_attributes=True)

    account: str
    price: Decimal = Field(..., description="Price per gram")
    source: str = Field(..., description="'manual' or the name of the quote provider")
    observed_at: dt.datetime


class PriceListResponse(BaseModel):
    quotes: list[PriceQuoteResponse]
    current_price: Decimal | None = Field(
        default=None,
        description="Portfolio-wide price for accounts without a quote"
    )
    default_price: Decimal = Field(..., description="Last-resort price")
    last_update_time: dt.datetime | None = Field(
        default=None,
        description="Time of the last bulk refresh"
    )
    resolved: dict[str, Decimal] = Field(
        ...,
        description="Price each account is valued at, by account code"
    )


class AccountFetchResponse(BaseModel):
    """Outcome of refreshing one account's quote."""

    model_config = ConfigDict(from_attributes=True)

    account: str
    success: bool
    price: Decimal | None = None
    observed_at: dt.datetime | None = None
    error: str | None = None


class FetchAllResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    results: list[AccountFetchResponse]
    success_count: int
    total_count: int
    last_update_time: dt.datetime | None = None


# =============================================================================
# UPDATE SCHEMAS
# =============================================================================

class PriceUpdate(BaseModel):
    """Manual price per gram, for one account or the whole portfolio."""

    price: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Price per gram (must be positive)",
        examples=["521.40"]
    )
