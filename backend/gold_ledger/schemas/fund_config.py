# backend/gold_ledger/schemas/fund_config.py
"""
Pydantic schemas for the ledger config.

The config is a single row: budget, target price, portfolio-wide price and
the client's auto-refresh preferences. All update fields are optional -
only send what you want to change.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from gold_ledger.services.constants import MAX_UPDATE_INTERVAL, MIN_UPDATE_INTERVAL


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class LedgerConfigResponse(BaseModel):
    """Schema for the ledger config response."""

    total_funds: Decimal = Field(..., description="Budget for gold purchases (0 = use total invested)")
    target_price: Decimal = Field(..., description="Price per gram to sell at (0 = unset)")
    current_price: Decimal | None = Field(
        default=None,
        description="Portfolio-wide price (null = default gold price)"
    )
    auto_update_enabled: bool
    update_interval: int = Field(..., description="Seconds between client-side refreshes")
    last_update_time: dt.datetime | None = None
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class ConfigUpdateResponse(LedgerConfigResponse):
    """Config after an update, with what actually changed."""

    changed_fields: list[str] = Field(
        default_factory=list,
        description="Fields whose value changed"
    )


# =============================================================================
# UPDATE SCHEMAS
# =============================================================================

class LedgerConfigUpdate(BaseModel):
    total_funds: Decimal | None = Field(default=None, ge=0, max_digits=18, decimal_places=8)
    target_price: Decimal | None = Field(default=None, ge=0, max_digits=18, decimal_places=8)
    current_price: Decimal | None = Field(default=None, gt=0, max_digits=18, decimal_places=8)
    auto_update_enabled: bool | None = None
    update_interval: int | None = Field(
        default=None,
        ge=MIN_UPDATE_INTERVAL,
        le=MAX_UPDATE_INTERVAL,
        description=f"Seconds, {MIN_UPDATE_INTERVAL}-{MAX_UPDATE_INTERVAL}"
    )


class TotalFundsUpdate(BaseModel):
    total_funds: Decimal = Field(..., ge=0, max_digits=18, decimal_places=8, examples=["100000"])


class TargetPriceUpdate(BaseModel):
    target_price: Decimal = Field(..., ge=0, max_digits=18, decimal_places=8, examples=["560"])


class AutoUpdateSettings(BaseModel):
    auto_update_enabled: bool
    update_interval: int | None = Field(
        default=None,
        ge=MIN_UPDATE_INTERVAL,
        le=MAX_UPDATE_INTERVAL,
    )
