# backend/gold_ledger/services/ledger/service.py
"""
Ledger Service - orchestrator for the transaction log.

This is the single entry point for reading and changing the log:
- record_purchase() / record_sale(): append one transaction
- delete_transaction(): remove one transaction (nothing else is recomputed)
- import_transactions() / export_transactions(): bulk transfer
- get_summary() / get_account_valuations(): projections at current prices

Design Principles:
- The engine calculators do the arithmetic; this class loads the log,
  persists drafts and hands prices and fund config to the engine
- One commit per mutation, so the next read sees a complete log
- No HTTP Knowledge: raises domain exceptions, not HTTPException

Usage:
    from gold_ledger.services.ledger.service import LedgerService

    service = LedgerService()
    sale = service.record_sale(db, "CMBC", Decimal("4"), Decimal("520"), date.today())
    summary = service.get_summary(db)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gold_ledger.models import Transaction
from gold_ledger.services.constants import MAX_IMPORT_SIZE, RECENT_TRANSACTIONS_LIMIT
from gold_ledger.services.exceptions import (
    ImportValidationError,
    ServiceError,
    TransactionNotFoundError,
)
from gold_ledger.services.fund_config_service import FundConfigService
from gold_ledger.services.ledger.accounts import ACCOUNT_CODES, resolve_account_code
from gold_ledger.services.ledger.calculators import (
    CostBasisCalculator,
    FeeModel,
    RealizedPnLTracker,
    SummaryAggregator,
    ValuationEngine,
    quantize_money,
)
from gold_ledger.services.ledger.types import (
    ZERO,
    AccountPosition,
    AccountValuation,
    PortfolioSummary,
    LedgerEntry,
    SalePreview,
    TransactionDraft,
    TransactionKind,
)
from gold_ledger.services.price_service import PriceService

logger = logging.getLogger(__name__)

# Held from reading the log to committing a change that depends on it.
# Services are built per request, so the lock lives at module level.
_log_write_lock = threading.Lock()


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class ImportRecord:
    """
    One row of a bulk import, already normalized from either file format.

    Attributes:
        kind: PURCHASE or SALE
        account: Account code or legacy alias
        quantity: Grams (sign ignored; the kind decides it)
        unit_price: Price per gram
        trade_date: User-entered trade date
        realized_pnl: Stored realized P&L of a sale, kept verbatim if present
        created_at: Original insertion time, if the file carries one
    """

    kind: TransactionKind
    account: str
    quantity: Decimal
    unit_price: Decimal
    trade_date: date
    realized_pnl: Decimal | None = None
    created_at: datetime | None = None


@dataclass
class ImportResult:
    """Result of a committed bulk import."""

    imported_count: int
    cleared_count: int
    transactions: list[Transaction] = field(default_factory=list)


@dataclass(frozen=True)
class AccountStatistics:
    account: str
    transaction_count: int
    total_quantity: Decimal
    total_notional: Decimal


@dataclass
class TransactionStatistics:
    """Counts and per-account totals over the whole log."""

    total_count: int
    purchase_count: int
    sale_count: int
    accounts: list[AccountStatistics]
    recent: list[Transaction]


# =============================================================================
# SERVICE
# =============================================================================

class LedgerService:
    """
    Main service for ledger operations.

    Composes the engine calculators once and shares them, so fee rules and
    cost-basis folding are identical for recording, previewing and reporting.

    Attributes:
        price_service: Source of the PriceBook
        fund_config_service: Source of the FundConfig
    """

    def __init__(
            self,
            price_service: PriceService | None = None,
            fund_config_service: FundConfigService | None = None,
    ) -> None:
        self.fund_config_service = fund_config_service or FundConfigService()
        self.price_service = price_service or PriceService(fund_config_service=self.fund_config_service)

        self._fee_model = FeeModel()
        self._cost_calc = CostBasisCalculator()
        self._tracker = RealizedPnLTracker(self._fee_model, self._cost_calc)
        self._valuation = ValuationEngine(self._fee_model, self._cost_calc, self._tracker)
        self._summary = SummaryAggregator(self._valuation)

    # =========================================================================
    # READ
    # =========================================================================

    def load_log(self, db: Session) -> list[Transaction]:
        """The full log in insertion order (ascending id)."""
        return list(db.scalars(select(Transaction).order_by(Transaction.id)))

    def list_transactions(
            self,
            db: Session,
            account: str | None = None,
            kind: TransactionKind | None = None,
            skip: int = 0,
            limit: int = 100,
    ) -> tuple[list[Transaction], int]:
        """
        Page through the log, newest first.

        Returns:
            (transactions on this page, total matching)
        """
        query = select(Transaction)
        if account is not None:
            account = resolve_account_code(account)
            query = query.where(Transaction.account == account)
        if kind is not None:
            query = query.where(Transaction.kind == kind)

        total = db.scalar(select(func.count()).select_from(query.subquery())) or 0
        items = db.scalars(
            query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset(skip)
            .limit(limit)
        ).all()
        return list(items), total

    def get_transaction(self, db: Session, transaction_id: int) -> Transaction:
        transaction = db.get(Transaction, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def record_purchase(
            self,
            db: Session,
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
            trade_date: date,
    ) -> Transaction:
        account = resolve_account_code(account)
        draft = self._tracker.record_purchase(account, quantity, unit_price, trade_date)
        transaction = self._persist(db, draft)
        logger.info(
            f"Recorded PURCHASE {transaction.id} on {account}: "
            f"{draft.quantity} g @ {draft.unit_price}"
        )
        return transaction

    def record_sale(
            self,
            db: Session,
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
            trade_date: date,
    ) -> Transaction:
        """
        Append a sale with its realized P&L frozen against the current log.

        Raises:
            InsufficientHoldingsError: If the account holds fewer grams
        """
        account = resolve_account_code(account)
        with _log_write_lock:
            draft = self._tracker.record_sale(self.load_log(db), account, quantity, unit_price, trade_date)
            transaction = self._persist(db, draft)
        logger.info(
            f"Recorded SALE {transaction.id} on {account}: "
            f"{-draft.quantity} g @ {draft.unit_price}, fee={draft.fee}, realized={draft.realized_pnl}"
        )
        return transaction

    def record_transaction(
            self,
            db: Session,
            kind: TransactionKind,
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
            trade_date: date,
    ) -> Transaction:
        if kind == TransactionKind.SALE:
            return self.record_sale(db, account, quantity, unit_price, trade_date)
        return self.record_purchase(db, account, quantity, unit_price, trade_date)

    def delete_transaction(self, db: Session, transaction_id: int) -> None:
        """
        Remove one transaction.

        Realized P&L frozen on later sales is left as it is.
        """
        with _log_write_lock:
            transaction = self.get_transaction(db, transaction_id)
            db.delete(transaction)
            db.commit()
        logger.info(f"Deleted {transaction.kind.value} {transaction_id} on {transaction.account}")

    def preview_sale(
            self,
            db: Session,
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
    ) -> SalePreview:
        account = resolve_account_code(account)
        return self._tracker.preview_sale(self.load_log(db), account, quantity, unit_price)

    # =========================================================================
    # BULK TRANSFER
    # =========================================================================

    def import_transactions(
            self,
            db: Session,
            records: list[ImportRecord],
            clear_existing: bool = False,
            legacy_fallback: bool = False,
    ) -> ImportResult:
        """
        Import a batch of transactions atomically.

        Rows are replayed through the same recording logic as single
        transactions, against the existing log (unless clear_existing) plus
        the rows imported before them. When every row carries created_at the
        batch is replayed in created_at order, otherwise in the order given.

        Sales keep a realized_pnl present in the file. Missing values are
        computed as for a new sale, or stored as NULL when legacy_fallback is
        set (they then read back as proceeds net of fee).

        Raises:
            ImportValidationError: If any row is invalid; nothing is written
        """
        if len(records) > MAX_IMPORT_SIZE:
            raise ImportValidationError([{
                "row": None,
                "field": None,
                "message": f"Batch of {len(records)} rows exceeds the limit of {MAX_IMPORT_SIZE}",
            }])

        with _log_write_lock:
            staged = self._stage_import(db, records, clear_existing, legacy_fallback)

            try:
                cleared_count = 0
                if clear_existing:
                    cleared_count = db.execute(delete(Transaction)).rowcount or 0

                transactions = [self._to_model(draft, created_at) for draft, created_at in staged]
                db.add_all(transactions)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

        logger.info(
            f"Imported {len(transactions)} transactions "
            f"(cleared {cleared_count}, legacy_fallback={legacy_fallback})"
        )
        return ImportResult(
            imported_count=len(transactions),
            cleared_count=cleared_count,
            transactions=transactions,
        )

    def export_transactions(self, db: Session) -> list[Transaction]:
        """Every transaction in insertion order, ready to re-import."""
        return self.load_log(db)

    def get_statistics(self, db: Session) -> TransactionStatistics:
        log = self.load_log(db)

        per_account: dict[str, list[Transaction]] = {code: [] for code in ACCOUNT_CODES}
        for txn in log:
            per_account.setdefault(txn.account, []).append(txn)

        accounts = [
            AccountStatistics(
                account=code,
                transaction_count=len(txns),
                total_quantity=sum((txn.quantity for txn in txns), ZERO),
                total_notional=sum((txn.notional for txn in txns), ZERO),
            )
            for code, txns in per_account.items()
        ]

        recent = sorted(log, key=lambda txn: (txn.created_at, txn.id), reverse=True)

        return TransactionStatistics(
            total_count=len(log),
            purchase_count=sum(1 for txn in log if txn.kind == TransactionKind.PURCHASE),
            sale_count=sum(1 for txn in log if txn.kind == TransactionKind.SALE),
            accounts=accounts,
            recent=recent[:RECENT_TRANSACTIONS_LIMIT],
        )

    # =========================================================================
    # PROJECTIONS
    # =========================================================================

    def get_positions(self, db: Session) -> dict[str, AccountPosition]:
        return self._cost_calc.calculate(self.load_log(db))

    def get_account_valuations(self, db: Session) -> list[AccountValuation]:
        price_book = self.price_service.get_price_book(db)
        return list(self._valuation.value_portfolio(self.load_log(db), price_book).values())

    def get_summary(self, db: Session) -> PortfolioSummary:
        """Summary recomputed from the full log, current prices and fund config."""
        return self._summary.summarize(
            self.load_log(db),
            self.price_service.get_price_book(db),
            self.fund_config_service.get_fund_config(db),
        )

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    def _stage_import(
            self,
            db: Session,
            records: list[ImportRecord],
            clear_existing: bool,
            legacy_fallback: bool,
    ) -> list[tuple[TransactionDraft, datetime | None]]:
        """Replay every row and collect per-row errors; raises if any row failed."""
        running: list[LedgerEntry] = [] if clear_existing else list(self.load_log(db))
        staged: list[tuple[TransactionDraft, datetime | None]] = []
        errors: list[dict] = []

        for index, record in self._replay_order(records):
            try:
                draft = self._draft_from_record(running, record, legacy_fallback)
            except ServiceError as e:
                errors.append({"row": index, "field": getattr(e, "field", None), "message": str(e)})
                continue
            running.append(draft)
            staged.append((draft, record.created_at))

        if errors:
            logger.warning(f"Import rejected: {len(errors)} of {len(records)} rows invalid")
            raise ImportValidationError(errors)
        return staged

    def _draft_from_record(
            self,
            running: list[LedgerEntry],
            record: ImportRecord,
            legacy_fallback: bool,
    ) -> TransactionDraft:
        account = resolve_account_code(record.account)
        quantity = abs(record.quantity)

        if record.kind == TransactionKind.PURCHASE:
            return self._tracker.record_purchase(account, quantity, record.unit_price, record.trade_date)

        draft = self._tracker.record_sale(running, account, quantity, record.unit_price, record.trade_date)
        if record.realized_pnl is not None:
            return replace(draft, realized_pnl=quantize_money(record.realized_pnl))
        if legacy_fallback:
            return replace(draft, realized_pnl=None)
        return draft

    @staticmethod
    def _replay_order(records: list[ImportRecord]) -> list[tuple[int, ImportRecord]]:
        indexed = list(enumerate(records))
        if indexed and all(record.created_at is not None for record in records):
            # Stable: rows sharing a timestamp keep their file order
            indexed.sort(key=lambda item: item[1].created_at)
        return indexed

    def _persist(self, db: Session, draft: TransactionDraft) -> Transaction:
        transaction = self._to_model(draft)
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction

    @staticmethod
    def _to_model(draft: TransactionDraft, created_at: datetime | None = None) -> Transaction:
        transaction = Transaction(
            kind=draft.kind,
            account=draft.account,
            quantity=draft.quantity,
            unit_price=draft.unit_price,
            notional=draft.notional,
            fee=draft.fee,
            trade_date=draft.trade_date,
            realized_pnl=draft.realized_pnl,
        )
        if created_at is not None:
            transaction.created_at = created_at
        return transaction
