# backend/gold_ledger/routers/prices.py
"""
Gold price endpoints.

Quotes are stored per account and refreshed on demand; the server never
schedules a refresh itself. Clients with auto-update enabled call
POST /prices/fetch-all every update_interval seconds.

Endpoints:
    GET  /prices/                 - Stored quotes and resolved prices
    PUT  /prices/current          - Set the portfolio-wide price
    PUT  /prices/{account}        - Set one account's quote manually
    POST /prices/fetch-all        - Refresh every account (best-effort)
    GET  /prices/fetch/{account}  - Refresh one account
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gold_ledger.database import get_db
from gold_ledger.dependencies import get_price_service
from gold_ledger.middleware.rate_limit import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_PRICE_FETCH,
    RATE_LIMIT_WRITE,
    limiter,
)
from gold_ledger.models import LedgerConfig, PriceQuote
from gold_ledger.schemas.fund_config import LedgerConfigResponse
from gold_ledger.schemas.prices import (
    FetchAllResponse,
    PriceListResponse,
    PriceQuoteResponse,
    PriceUpdate,
)
from gold_ledger.services.ledger.accounts import ACCOUNT_CODES, resolve_account_code
from gold_ledger.services.price_service import PriceService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


@router.get(
    "/",
    response_model=PriceListResponse,
    summary="List prices",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_prices(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PriceService, Depends(get_price_service)],
) -> PriceListResponse:
    """
    Stored quotes plus the price each account is valued at.

    Resolution per account: its quote, then `current_price`, then
    `default_price`.
    """
    price_book = service.get_price_book(db)
    config = service.fund_config_service.get_config(db)

    return PriceListResponse(
        quotes=service.list_quotes(db),
        current_price=price_book.current_price,
        default_price=price_book.default_price,
        last_update_time=config.last_update_time if config is not None else None,
        resolved={code: price_book.resolve(code) for code in ACCOUNT_CODES},
    )


@router.put(
    "/current",
    response_model=LedgerConfigResponse,
    summary="Set the portfolio-wide price",
)
@limiter.limit(RATE_LIMIT_WRITE)
def set_current_price(
        request: Request,  # Required for rate limiting
        update: PriceUpdate,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PriceService, Depends(get_price_service)],
) -> LedgerConfig:
    """Used for every account that has no quote of its own."""
    return service.set_current_price(db, update.price)


@router.put(
    "/{account}",
    response_model=PriceQuoteResponse,
    summary="Set an account's quote",
)
@limiter.limit(RATE_LIMIT_WRITE)
def set_account_price(
        request: Request,  # Required for rate limiting
        account: str,
        update: PriceUpdate,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PriceService, Depends(get_price_service)],
) -> PriceQuote:
    """Raises **400** if the account is unknown."""
    return service.set_quote(db, resolve_account_code(account), update.price)


@router.post(
    "/fetch-all",
    response_model=FetchAllResponse,
    summary="Refresh every account's quote",
)
@limiter.limit(RATE_LIMIT_PRICE_FETCH)
def fetch_all_prices(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PriceService, Depends(get_price_service)],
) -> FetchAllResponse:
    """
    One fetch attempt per account; failures are reported per account and
    leave that account's stored quote untouched.

    Always returns 200, even if every fetch failed.
    """
    return FetchAllResponse.model_validate(service.fetch_all(db))


@router.get(
    "/fetch/{account}",
    response_model=PriceQuoteResponse,
    summary="Refresh one account's quote",
)
@limiter.limit(RATE_LIMIT_PRICE_FETCH)
def fetch_account_price(
        request: Request,  # Required for rate limiting
        account: str,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PriceService, Depends(get_price_service)],
) -> PriceQuote:
    """
    Raises **400** if the account is unknown.
    Raises **502** if the quote provider did not return a usable price.
    """
    return service.fetch_quote(db, resolve_account_code(account))
