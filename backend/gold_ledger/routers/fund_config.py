# backend/gold_ledger/routers/fund_config.py
"""
Ledger config endpoints.

Design:
- The config row is created with defaults on first access
- Partial updates: only send what you want to change
- Reset restores defaults and drops every stored account quote;
  transactions are never touched

Endpoints:
    GET   /config/              - Current config
    PATCH /config/              - Partial update
    PUT   /config/total-funds   - Set the budget
    PUT   /config/target-price  - Set the target sale price
    PUT   /config/auto-update   - Client-side refresh settings
    POST  /config/reset         - Restore defaults
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gold_ledger.database import get_db
from gold_ledger.dependencies import get_fund_config_service
from gold_ledger.middleware.rate_limit import RATE_LIMIT_DEFAULT, RATE_LIMIT_WRITE, limiter
from gold_ledger.models import LedgerConfig
from gold_ledger.schemas.fund_config import (
    AutoUpdateSettings,
    ConfigUpdateResponse,
    LedgerConfigResponse,
    LedgerConfigUpdate,
    TargetPriceUpdate,
    TotalFundsUpdate,
)
from gold_ledger.services.fund_config_service import ConfigUpdateResult, FundConfigService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/config",
    tags=["Config"],
)


def _update_response(result: ConfigUpdateResult) -> ConfigUpdateResponse:
    response = ConfigUpdateResponse.model_validate(result.config)
    response.changed_fields = result.changed_fields
    return response


@router.get(
    "/",
    response_model=LedgerConfigResponse,
    summary="Get ledger config",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_config(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> LedgerConfig:
    """
    Current config, created with defaults if it does not exist yet:

    | Setting | Default |
    |---------|---------|
    | `total_funds` | `0` (usage measured against total invested) |
    | `target_price` | `0` (unset) |
    | `current_price` | `null` (default gold price) |
    | `auto_update_enabled` | `true` |
    | `update_interval` | `10` |
    """
    return service.get_or_create_default(db)


@router.patch(
    "/",
    response_model=ConfigUpdateResponse,
    summary="Update ledger config",
)
@limiter.limit(RATE_LIMIT_WRITE)
def update_config(
        request: Request,  # Required for rate limiting
        update: LedgerConfigUpdate,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> ConfigUpdateResponse:
    """Only send the fields you want to change. Omitted fields remain unchanged."""
    logger.info(f"Updating ledger config: {update.model_dump(exclude_unset=True)}")
    result = service.update_config(db, **update.model_dump(exclude_none=True))
    return _update_response(result)


@router.put(
    "/total-funds",
    response_model=ConfigUpdateResponse,
    summary="Set total funds",
)
@limiter.limit(RATE_LIMIT_WRITE)
def set_total_funds(
        request: Request,  # Required for rate limiting
        update: TotalFundsUpdate,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> ConfigUpdateResponse:
    """0 means usage and remaining funds are measured against total invested."""
    return _update_response(service.update_config(db, total_funds=update.total_funds))


@router.put(
    "/target-price",
    response_model=ConfigUpdateResponse,
    summary="Set target price",
)
@limiter.limit(RATE_LIMIT_WRITE)
def set_target_price(
        request: Request,  # Required for rate limiting
        update: TargetPriceUpdate,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> ConfigUpdateResponse:
    return _update_response(service.update_config(db, target_price=update.target_price))


@router.put(
    "/auto-update",
    response_model=ConfigUpdateResponse,
    summary="Set auto-update settings",
)
@limiter.limit(RATE_LIMIT_WRITE)
def set_auto_update(
        request: Request,  # Required for rate limiting
        update: AutoUpdateSettings,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> ConfigUpdateResponse:
    """The server only stores these; the client runs the refresh loop."""
    return _update_response(service.update_config(
        db,
        auto_update_enabled=update.auto_update_enabled,
        update_interval=update.update_interval,
    ))


@router.post(
    "/reset",
    response_model=LedgerConfigResponse,
    summary="Reset config to defaults",
)
@limiter.limit(RATE_LIMIT_WRITE)
def reset_config(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> LedgerConfig:
    """
    Restore default settings and drop every stored account quote.

    **Transactions are not affected.**
    """
    logger.warning("Resetting ledger config and stored quotes")
    return service.reset(db)
