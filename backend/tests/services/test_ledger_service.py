# backend/tests/services/test_ledger_service.py
"""
Integration tests for LedgerService against an in-memory database.

Tests cover:
- Recording purchases and sales (fee and realized P&L frozen on the row)
- Listing, fetching and deleting transactions
- Bulk import (legacy ordering, verbatim realized P&L, atomic rejection)
- Export and statistics
- Summary built from stored quotes and fund config
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from gold_ledger.models import Transaction
from gold_ledger.services.exceptions import (
    ImportValidationError,
    InsufficientHoldingsError,
    InvalidAccountError,
    TransactionNotFoundError,
)
from gold_ledger.services.fund_config_service import FundConfigService
from gold_ledger.services.ledger.service import ImportRecord, LedgerService
from gold_ledger.services.ledger.types import TransactionKind
from gold_ledger.services.price_service import PriceService

TRADE_DATE = date(2026, 1, 15)


@pytest.fixture
def service(quote_provider) -> LedgerService:
    return LedgerService(price_service=PriceService(provider=quote_provider))


def count_transactions(db) -> int:
    return db.scalar(select(func.count()).select_from(Transaction))


def record(kind, account, quantity, price, created_at=None, realized_pnl=None) -> ImportRecord:
    return ImportRecord(
        kind=kind,
        account=account,
        quantity=Decimal(quantity),
        unit_price=Decimal(price),
        trade_date=TRADE_DATE,
        realized_pnl=realized_pnl,
        created_at=created_at,
    )


# =============================================================================
# RECORDING
# =============================================================================

class TestRecordTransactions:

    def test_purchase_is_stored(self, db, service):
        txn = service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)

        assert txn.id is not None
        assert txn.kind == TransactionKind.PURCHASE
        assert txn.quantity == Decimal("10")
        assert txn.notional == Decimal("5000")
        assert txn.fee == 0
        assert txn.realized_pnl == 0
        assert txn.trade_date == TRADE_DATE
        assert txn.created_at is not None

    def test_account_aliases_are_resolved(self, db, service):
        legacy = service.record_purchase(db, "民生银行(JD)", Decimal("1"), Decimal("500"), TRADE_DATE)
        lowercase = service.record_purchase(db, "czb_jd", Decimal("1"), Decimal("500"), TRADE_DATE)

        assert legacy.account == "CMBC_JD"
        assert lowercase.account == "CZB_JD"

    def test_sale_freezes_realized_pnl(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)

        sale = service.record_sale(db, "CMBC", Decimal("4"), Decimal("520"), TRADE_DATE)

        assert sale.quantity == Decimal("-4")
        assert sale.notional == Decimal("-2080")
        assert sale.fee == Decimal("12")
        assert sale.realized_pnl == Decimal("68")

    def test_record_transaction_dispatches_on_kind(self, db, service):
        service.record_transaction(db, TransactionKind.PURCHASE, "CZB_JD", Decimal("2"), Decimal("500"), TRADE_DATE)
        sale = service.record_transaction(db, TransactionKind.SALE, "CZB_JD", Decimal("1"), Decimal("500"), TRADE_DATE)

        assert sale.kind == TransactionKind.SALE
        assert sale.fee == Decimal("2")

    def test_oversell_stores_nothing(self, db, service):
        service.record_purchase(db, "CMBC_JD", Decimal("5"), Decimal("500"), TRADE_DATE)

        with pytest.raises(InsufficientHoldingsError):
            service.record_sale(db, "CMBC_JD", Decimal("6"), Decimal("510"), TRADE_DATE)

        assert count_transactions(db) == 1

    def test_unknown_account_rejected(self, db, service):
        with pytest.raises(InvalidAccountError):
            service.record_purchase(db, "ICBC", Decimal("1"), Decimal("500"), TRADE_DATE)

        assert count_transactions(db) == 0


# =============================================================================
# READ / DELETE
# =============================================================================

class TestReadAndDelete:

    def test_list_newest_first_with_total(self, db, service):
        first = service.record_purchase(db, "CMBC", Decimal("1"), Decimal("500"), TRADE_DATE)
        second = service.record_purchase(db, "CMBC", Decimal("2"), Decimal("500"), TRADE_DATE)
        third = service.record_purchase(db, "CZB_JD", Decimal("3"), Decimal("500"), TRADE_DATE)

        items, total = service.list_transactions(db, skip=0, limit=2)

        assert total == 3
        assert [txn.id for txn in items] == [third.id, second.id]

        items, _ = service.list_transactions(db, skip=2, limit=2)
        assert [txn.id for txn in items] == [first.id]

    def test_list_filters(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)
        service.record_purchase(db, "CZB_JD", Decimal("3"), Decimal("500"), TRADE_DATE)
        service.record_sale(db, "CMBC", Decimal("1"), Decimal("510"), TRADE_DATE)

        cmbc, cmbc_total = service.list_transactions(db, account="cmbc")
        sales, sales_total = service.list_transactions(db, kind=TransactionKind.SALE)

        assert cmbc_total == 2
        assert all(txn.account == "CMBC" for txn in cmbc)
        assert sales_total == 1
        assert sales[0].kind == TransactionKind.SALE

    def test_get_missing_transaction_raises(self, db, service):
        with pytest.raises(TransactionNotFoundError) as exc_info:
            service.get_transaction(db, 999)

        assert exc_info.value.resource_id == 999

    def test_delete_does_not_recompute_later_sales(self, db, service):
        first = service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("540"), TRADE_DATE)
        sale = service.record_sale(db, "CMBC", Decimal("5"), Decimal("530"), TRADE_DATE)

        service.delete_transaction(db, first.id)

        assert service.get_transaction(db, sale.id).realized_pnl == Decimal("35")
        position = service.get_positions(db)["CMBC"]
        assert position.quantity == Decimal("15")
        assert position.total_cost == Decimal("2765")

    def test_delete_and_readd_latest_sale_restores_state(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)
        service.record_purchase(db, "CZB_JD", Decimal("6"), Decimal("515"), TRADE_DATE)
        service.record_purchase(db, "CMBC", Decimal("5"), Decimal("530"), TRADE_DATE)
        sale = service.record_sale(db, "CMBC", Decimal("4"), Decimal("525"), TRADE_DATE)
        before = service.get_summary(db)

        service.delete_transaction(db, sale.id)
        readded = service.record_sale(db, "CMBC", Decimal("4"), Decimal("525"), TRADE_DATE)

        assert readded.realized_pnl == sale.realized_pnl == Decimal("48")
        assert service.get_summary(db) == before

    def test_delete_and_readd_latest_purchase_restores_state(self, db, service):
        service.record_purchase(db, "CMBC_JD", Decimal("8"), Decimal("505"), TRADE_DATE)
        service.record_sale(db, "CMBC_JD", Decimal("3"), Decimal("520"), TRADE_DATE)
        purchase = service.record_purchase(db, "CMBC_JD", Decimal("2"), Decimal("512"), TRADE_DATE)
        before = service.get_summary(db)

        service.delete_transaction(db, purchase.id)
        service.record_purchase(db, "CMBC_JD", Decimal("2"), Decimal("512"), TRADE_DATE)

        assert service.get_summary(db) == before

    def test_delete_missing_transaction_raises(self, db, service):
        with pytest.raises(TransactionNotFoundError):
            service.delete_transaction(db, 42)

    def test_preview_sale_reads_current_log(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)

        preview = service.preview_sale(db, "cmbc", Decimal("4"), Decimal("520"))

        assert preview.account == "CMBC"
        assert preview.realized_pnl == Decimal("68")
        assert count_transactions(db) == 1


# =============================================================================
# IMPORT / EXPORT
# =============================================================================

class TestImport:

    def test_rows_replayed_in_created_at_order(self, db, service):
        """Legacy exports list newest first; replay follows created_at."""
        records = [
            record(TransactionKind.SALE, "民生银行", "4", "520",
                   created_at=datetime(2025, 3, 2, tzinfo=timezone.utc)),
            record(TransactionKind.PURCHASE, "民生银行", "10", "500",
                   created_at=datetime(2025, 3, 1, tzinfo=timezone.utc)),
        ]

        result = service.import_transactions(db, records)

        assert result.imported_count == 2
        log = service.load_log(db)
        assert [txn.kind for txn in log] == [TransactionKind.PURCHASE, TransactionKind.SALE]
        assert log[1].account == "CMBC"
        assert log[1].fee == Decimal("12")
        assert log[1].realized_pnl == Decimal("68")

    def test_rows_without_timestamps_keep_given_order(self, db, service):
        records = [
            record(TransactionKind.PURCHASE, "CZB_JD", "2", "500"),
            record(TransactionKind.SALE, "CZB_JD", "-1", "510"),
        ]

        service.import_transactions(db, records)

        log = service.load_log(db)
        assert log[1].quantity == Decimal("-1")
        assert log[1].fee == Decimal("2.04")

    def test_provided_realized_pnl_is_kept(self, db, service):
        records = [
            record(TransactionKind.PURCHASE, "CMBC", "10", "500"),
            record(TransactionKind.SALE, "CMBC", "4", "520", realized_pnl=Decimal("70")),
        ]

        service.import_transactions(db, records)

        assert service.load_log(db)[1].realized_pnl == Decimal("70")

    def test_legacy_fallback_stores_null_and_reads_net_proceeds(self, db, service):
        records = [
            record(TransactionKind.PURCHASE, "CMBC", "10", "500"),
            record(TransactionKind.SALE, "CMBC", "4", "520"),
        ]

        service.import_transactions(db, records, legacy_fallback=True)

        assert service.load_log(db)[1].realized_pnl is None
        assert service.get_summary(db).realized_pnl == Decimal("2068")

    def test_invalid_rows_reject_whole_batch(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("1"), Decimal("500"), TRADE_DATE)
        records = [
            record(TransactionKind.PURCHASE, "CMBC", "10", "500"),
            record(TransactionKind.PURCHASE, "ICBC", "1", "500"),
            record(TransactionKind.SALE, "CZB_JD", "1", "500"),
        ]

        with pytest.raises(ImportValidationError) as exc_info:
            service.import_transactions(db, records, clear_existing=True)

        errors = exc_info.value.errors
        assert [error["row"] for error in errors] == [1, 2]
        assert errors[0]["field"] == "account"
        assert count_transactions(db) == 1

    def test_clear_existing_replaces_log(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("1"), Decimal("500"), TRADE_DATE)
        service.record_purchase(db, "CMBC", Decimal("2"), Decimal("500"), TRADE_DATE)

        result = service.import_transactions(
            db, [record(TransactionKind.PURCHASE, "CMBC_JD", "3", "505")], clear_existing=True
        )

        assert result.cleared_count == 2
        assert result.imported_count == 1
        assert [txn.account for txn in service.load_log(db)] == ["CMBC_JD"]

    def test_import_extends_existing_log(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)

        service.import_transactions(db, [record(TransactionKind.SALE, "CMBC", "4", "520")])

        assert service.load_log(db)[1].realized_pnl == Decimal("68")

    def test_export_round_trips_through_import(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)
        service.record_sale(db, "CMBC", Decimal("4"), Decimal("520"), TRADE_DATE)
        before = service.get_summary(db)

        exported = service.export_transactions(db)
        records = [
            record(txn.kind, txn.account, str(txn.quantity), str(txn.unit_price), realized_pnl=txn.realized_pnl)
            for txn in exported
        ]
        service.import_transactions(db, records, clear_existing=True)

        after = service.get_summary(db)
        assert after.total_quantity == before.total_quantity
        assert after.realized_pnl == before.realized_pnl
        assert after.total_fees == before.total_fees


# =============================================================================
# STATISTICS / SUMMARY
# =============================================================================

class TestStatisticsAndSummary:

    def test_statistics(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)
        service.record_sale(db, "CMBC", Decimal("4"), Decimal("520"), TRADE_DATE)
        last = service.record_purchase(db, "CZB_JD", Decimal("2"), Decimal("505"), TRADE_DATE)

        stats = service.get_statistics(db)

        assert stats.total_count == 3
        assert stats.purchase_count == 2
        assert stats.sale_count == 1

        by_account = {entry.account: entry for entry in stats.accounts}
        assert list(by_account) == ["CMBC", "CMBC_JD", "CZB_JD"]
        assert by_account["CMBC"].transaction_count == 2
        assert by_account["CMBC"].total_quantity == Decimal("6")
        assert by_account["CMBC"].total_notional == Decimal("2920")
        assert by_account["CMBC_JD"].transaction_count == 0
        assert stats.recent[0].id == last.id

    def test_summary_uses_stored_quotes_and_config(self, db, service):
        service.record_purchase(db, "CMBC", Decimal("10"), Decimal("500"), TRADE_DATE)
        service.price_service.set_quote(db, "CMBC", Decimal("510"))
        FundConfigService().update_config(db, total_funds=Decimal("10000"))

        summary = service.get_summary(db)

        assert summary.weighted_current_price == Decimal("510")
        assert summary.net_value == Decimal("5070")
        assert summary.usage_rate == Decimal("50")

    def test_account_valuations_fall_back_to_default_price(self, db, service):
        service.record_purchase(db, "CZB_JD", Decimal("1"), Decimal("500"), TRADE_DATE)

        valuations = {v.account: v for v in service.get_account_valuations(db)}

        assert valuations["CZB_JD"].current_price == Decimal("520")
        assert not valuations["CMBC"].is_active
