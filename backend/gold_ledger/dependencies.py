# backend/gold_ledger/dependencies.py
"""
Dependency injection module for FastAPI services.

The services themselves are stateless, so they are built per request from
shared collaborators. The quote provider is the only long-lived object: it
is a singleton so tests can swap it out with one dependency override.

Usage in routers:
    from gold_ledger.dependencies import get_ledger_service

    @router.get("/")
    def get_summary(
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
    ):
        ...

Usage in tests:
    app.dependency_overrides[get_quote_provider] = lambda: FakeQuoteProvider()
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from gold_ledger.services.fund_config_service import FundConfigService
from gold_ledger.services.ledger.service import LedgerService
from gold_ledger.services.market_data import GoldQuoteProvider, JDGoldQuoteProvider
from gold_ledger.services.price_service import PriceService

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETONS
# =============================================================================

@lru_cache(maxsize=1)
def get_quote_provider() -> GoldQuoteProvider:
    """Get the singleton quote provider used for price fetches."""
    logger.debug("Initializing singleton JDGoldQuoteProvider")
    return JDGoldQuoteProvider()


# =============================================================================
# SERVICES
# =============================================================================

def get_fund_config_service() -> FundConfigService:
    return FundConfigService()


def get_price_service(
    provider: Annotated[GoldQuoteProvider, Depends(get_quote_provider)],
    fund_config_service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> PriceService:
    return PriceService(provider=provider, fund_config_service=fund_config_service)


def get_ledger_service(
    price_service: Annotated[PriceService, Depends(get_price_service)],
    fund_config_service: Annotated[FundConfigService, Depends(get_fund_config_service)],
) -> LedgerService:
    return LedgerService(price_service=price_service, fund_config_service=fund_config_service)

