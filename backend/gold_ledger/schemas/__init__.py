# backend/gold_ledger/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

Organized by domain:
- errors: Error response formats
- fund_config: Budget, target price and refresh settings
- pagination: Pagination metadata for list endpoints
- prices: Account quotes and price updates
- summary: Account valuations and the portfolio summary
- transactions: Transaction recording, listing, import and export
- validators: Reusable validation functions (account, kind, trade date)

Usage:
    from gold_ledger.schemas import TransactionCreate, TransactionResponse
    from gold_ledger.schemas import PortfolioSummaryResponse
"""

from gold_ledger.schemas.errors import (
    ErrorDetail,
    ValidationErrorDetail,
)
from gold_ledger.schemas.fund_config import (
    AutoUpdateSettings,
    ConfigUpdateResponse,
    LedgerConfigResponse,
    LedgerConfigUpdate,
    TargetPriceUpdate,
    TotalFundsUpdate,
)
from gold_ledger.schemas.pagination import PaginationMeta
from gold_ledger.schemas.prices import (
    AccountFetchResponse,
    FetchAllResponse,
    PriceListResponse,
    PriceQuoteResponse,
    PriceUpdate,
)
from gold_ledger.schemas.summary import (
    AccountValuationResponse,
    PortfolioSummaryResponse,
)
from gold_ledger.schemas.transactions import (
    AccountStatisticsResponse,
    SalePreviewResponse,
    TransactionCreate,
    TransactionExportResponse,
    TransactionImportRequest,
    TransactionImportResponse,
    TransactionImportRow,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatisticsResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Config
    "AutoUpdateSettings",
    "ConfigUpdateResponse",
    "LedgerConfigResponse",
    "LedgerConfigUpdate",
    "TargetPriceUpdate",
    "TotalFundsUpdate",
    # Pagination
    "PaginationMeta",
    # Prices
    "AccountFetchResponse",
    "FetchAllResponse",
    "PriceListResponse",
    "PriceQuoteResponse",
    "PriceUpdate",
    # Summary
    "AccountValuationResponse",
    "PortfolioSummaryResponse",
    # Transactions
    "AccountStatisticsResponse",
    "SalePreviewResponse",
    "TransactionCreate",
    "TransactionExportResponse",
    "TransactionImportRequest",
    "TransactionImportResponse",
    "TransactionImportRow",
    "TransactionListResponse",
    "TransactionResponse",
    "TransactionStatisticsResponse",
]
