# backend/gold_ledger/routers/transactions.py
"""
Transaction endpoints.

The transaction log is append-only: transactions are recorded, listed and
deleted, never edited. Every projection (positions, valuations, summary)
is recomputed from the log on read.

Key concepts:
- quantity is sent positive; the kind decides the stored sign
- Fee and realized P&L are computed by the server and frozen on the row
- Deleting a transaction does NOT recompute realized P&L of later sales

Endpoints:
    GET    /transactions/               - List (newest first, paginated)
    POST   /transactions/               - Record a purchase or sale
    GET    /transactions/sale-preview   - Outcome of a sale, not recorded
    POST   /transactions/import         - Bulk import (atomic)
    GET    /transactions/export         - Whole log, re-importable
    GET    /transactions/statistics     - Counts and per-account totals
    GET    /transactions/{id}           - One transaction
    DELETE /transactions/{id}           - Delete one transaction
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from gold_ledger.database import get_db
from gold_ledger.dependencies import get_ledger_service
from gold_ledger.middleware.rate_limit import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_IMPORT,
    RATE_LIMIT_WRITE,
    limiter,
)
from gold_ledger.models import Transaction
from gold_ledger.schemas.pagination import PaginationMeta
from gold_ledger.schemas.transactions import (
    SalePreviewResponse,
    TransactionCreate,
    TransactionExportResponse,
    TransactionImportRequest,
    TransactionImportResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatisticsResponse,
)
from gold_ledger.services.ledger.service import ImportRecord, LedgerService
from gold_ledger.services.ledger.types import TransactionKind

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/",
    response_model=TransactionListResponse,
    summary="List transactions",
    response_description="Transactions matching the filters, newest first"
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_transactions(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
        account: str | None = Query(
            default=None,
            description="Filter by account code (e.g., CMBC)"
        ),
        kind: TransactionKind | None = Query(
            default=None,
            description="Filter by PURCHASE or SALE"
        ),
        skip: int = Query(default=0, ge=0, description="Number of records to skip"),
        limit: int = Query(default=100, ge=1, le=1000, description="Maximum records to return"),
) -> TransactionListResponse:
    """
    Retrieve transactions, newest first.

    Raises **400** if the account filter is not a known account.
    """
    items, total = service.list_transactions(db, account=account, kind=kind, skip=skip, limit=limit)
    return TransactionListResponse(
        items=items,
        pagination=PaginationMeta.create(total=total, skip=skip, limit=limit),
    )


@router.post(
    "/",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
    response_description="The stored transaction with its computed fee and realized P&L"
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_transaction(
        request: Request,  # Required for rate limiting
        transaction: TransactionCreate,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> Transaction:
    """
    Record a purchase or sale.

    **PURCHASE**: no fee; cost basis grows by `quantity × unit_price`.
    Send `amount` instead of `quantity` to buy by money spent; grams are
    `amount / unit_price` rounded to 4 decimal places.

    **SALE**: the fee follows the account's fee policy and realized P&L is
    frozen as `(unit_price - avg_cost) × quantity - fee`, using the average
    cost just before the sale.

    Raises **400** if the account is unknown, or a sale exceeds the grams
    held on the account.
    """
    return service.record_transaction(
        db,
        kind=transaction.kind,
        account=transaction.account,
        quantity=transaction.quantity,
        unit_price=transaction.unit_price,
        trade_date=transaction.trade_date,
    )


@router.get(
    "/sale-preview",
    response_model=SalePreviewResponse,
    summary="Preview a sale",
    response_description="Expected fee and realized P&L (nothing is recorded)"
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def preview_sale(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
        account: str = Query(..., description="Account code"),
        quantity: Decimal = Query(..., gt=0, description="Grams to sell"),
        unit_price: Decimal = Query(..., gt=0, description="Price per gram"),
) -> SalePreviewResponse:
    """
    Compute what selling `quantity` grams at `unit_price` would yield.

    `exceeds_holdings` is true when the account holds fewer grams; the
    preview is still returned so a client can show it next to the warning.
    """
    return SalePreviewResponse.model_validate(service.preview_sale(db, account, quantity, unit_price))


@router.post(
    "/import",
    response_model=TransactionImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import transactions",
    response_description="Number of transactions imported and cleared"
)
@limiter.limit(RATE_LIMIT_IMPORT)
def import_transactions(
        request: Request,  # Required for rate limiting
        body: TransactionImportRequest,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> TransactionImportResponse:
    """
    Import a batch of transactions in one atomic step.

    Accepts the current export format and the legacy one
    (`type`/`bank`/`weight`/`price`/`realizedProfitLoss`/`createdAt`).
    A whole export file can be posted unchanged.

    Fees are recomputed from each account's fee policy. Realized P&L of a
    sale is kept when the row carries one.

    Raises **400** with one entry per invalid row if any row is rejected;
    nothing is written in that case.
    """
    records = [
        ImportRecord(
            kind=row.kind,
            account=row.account,
            quantity=row.quantity,
            unit_price=row.unit_price,
            trade_date=row.trade_date,
            realized_pnl=row.realized_pnl,
            created_at=row.created_at,
        )
        for row in body.transactions
    ]

    logger.info(f"Importing {len(records)} transactions (clear_existing={body.clear_existing})")

    result = service.import_transactions(
        db,
        records,
        clear_existing=body.clear_existing,
        legacy_fallback=body.legacy_fallback,
    )

    return TransactionImportResponse(
        message=f"Imported {result.imported_count} transactions",
        imported_count=result.imported_count,
        cleared_count=result.cleared_count,
    )


@router.get(
    "/export",
    response_model=TransactionExportResponse,
    summary="Export transactions",
    response_description="Every transaction in insertion order"
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def export_transactions(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> TransactionExportResponse:
    """The response body can be posted to `/transactions/import` as is."""
    transactions = service.export_transactions(db)
    return TransactionExportResponse(
        export_date=datetime.now(timezone.utc),
        count=len(transactions),
        transactions=transactions,
    )


@router.get(
    "/statistics",
    response_model=TransactionStatisticsResponse,
    summary="Transaction statistics",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_statistics(
        request: Request,  # Required for rate limiting
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> TransactionStatisticsResponse:
    """
    Counts by kind, net grams and amount per account, and the most
    recently recorded transactions.
    """
    return TransactionStatisticsResponse.model_validate(service.get_statistics(db))


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transaction by ID",
    response_description="The requested transaction"
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_transaction(
        request: Request,  # Required for rate limiting
        transaction_id: int,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> Transaction:
    """Raises **404** if the transaction does not exist."""
    return service.get_transaction(db, transaction_id)


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transaction",
)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_transaction(
        request: Request,  # Required for rate limiting
        transaction_id: int,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> None:
    """
    Delete a transaction permanently.

    **Warning:** Realized P&L already frozen on later sales is not
    recomputed. Positions and the summary change immediately.

    Raises **404** if the transaction does not exist.
    """
    service.delete_transaction(db, transaction_id)
    return None
