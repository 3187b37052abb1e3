# backend/gold_ledger/routers/summary.py
"""
Portfolio valuation endpoints.

Everything is recomputed from the full transaction log, the stored
quotes and the ledger config on every request.

Endpoints:
    GET /summary/          - Portfolio summary (all accounts)
    GET /summary/accounts  - Valuation of each account
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gold_ledger.database import get_db
from gold_ledger.dependencies import get_ledger_service
from gold_ledger.middleware.rate_limit import RATE_LIMIT_DEFAULT, limiter
from gold_ledger.schemas.summary import AccountValuationResponse, PortfolioSummaryResponse
from gold_ledger.services.ledger.service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/summary",
    tags=["Summary"],
)


@router.get(
    "/",
    response_model=PortfolioSummaryResponse,
    summary="Portfolio summary",
    response_description="Flows, current holding, P&L and fund usage"
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_summary(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> PortfolioSummaryResponse:
    """
    Aggregate view over every account.

    Key formulas:
    - `total_profit_loss = net_value - total_invested + total_sold_proceeds - total_fees`
    - `break_even_price`: quantity-weighted over accounts holding gold
    - `target_progress`: percent of the way from break-even to target
      (null when the two are equal)
    """
    return PortfolioSummaryResponse.model_validate(service.get_summary(db))


@router.get(
    "/accounts",
    response_model=list[AccountValuationResponse],
    summary="Account valuations",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_account_valuations(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> list[AccountValuationResponse]:
    """Every registered account, in registry order, active or not."""
    return [
        AccountValuationResponse.model_validate(valuation)
        for valuation in service.get_account_valuations(db)
    ]
