# backend/tests/routers/test_transactions_api.py
"""
Integration tests for the Transaction API.

Tests cover:
- Recording purchases and sales (computed fee and realized P&L)
- Oversell, unknown account and request validation errors
- Listing with filters and pagination, get and delete
- Sale preview
- Import (current and legacy formats) and export
- Statistics
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest


# =============================================================================
# HELPERS
# =============================================================================

def post_transaction(client, kind, account, quantity, unit_price, trade_date="2026-01-15"):
    return client.post("/transactions/", json={
        "kind": kind,
        "account": account,
        "quantity": str(quantity),
        "unit_price": str(unit_price),
        "date": trade_date,
    })


@pytest.fixture
def cmbc_holding(client):
    """10 g bought at 500 on CMBC."""
    response = post_transaction(client, "PURCHASE", "CMBC", 10, 500)
    assert response.status_code == 201
    return response.json()


# =============================================================================
# CREATE
# =============================================================================

class TestCreateTransaction:

    def test_purchase(self, client):
        response = post_transaction(client, "PURCHASE", "CMBC", 10, 500)

        assert response.status_code == 201
        data = response.json()
        assert data["id"] > 0
        assert data["kind"] == "PURCHASE"
        assert data["account"] == "CMBC"
        assert Decimal(data["notional"]) == Decimal("5000")
        assert Decimal(data["fee"]) == 0
        assert data["date"] == "2026-01-15"
        assert "trade_date" not in data

    def test_sale_computes_fee_and_realized_pnl(self, client, cmbc_holding):
        response = post_transaction(client, "SALE", "CMBC", 4, 520)

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["quantity"]) == Decimal("-4")
        assert Decimal(data["notional"]) == Decimal("-2080")
        assert Decimal(data["fee"]) == Decimal("12")
        assert Decimal(data["realized_pnl"]) == Decimal("68")

    def test_legacy_kind_and_alias(self, client):
        response = post_transaction(client, "buy", "浙商银行(JD)", 1, 500)

        assert response.status_code == 201
        assert response.json()["kind"] == "PURCHASE"
        assert response.json()["account"] == "CZB_JD"

    def test_lowercase_account_code(self, client):
        response = post_transaction(client, "PURCHASE", "cmbc_jd", 1, 500)

        assert response.json()["account"] == "CMBC_JD"

    def test_oversell_rejected(self, client, cmbc_holding):
        response = post_transaction(client, "SALE", "CMBC", 10.5, 520)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "InsufficientHoldingsError"
        assert data["details"]["account"] == "CMBC"
        assert Decimal(data["details"]["requested"]) == Decimal("10.5")
        assert Decimal(data["details"]["available"]) == Decimal("10")

        listing = client.get("/transactions/").json()
        assert listing["pagination"]["total"] == 1

    def test_unknown_account_rejected(self, client):
        response = post_transaction(client, "PURCHASE", "ICBC", 1, 500)

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidAccountError"
        assert response.json()["details"] == {"field": "account"}

    @pytest.mark.parametrize("field,value", [
        ("quantity", "0"),
        ("quantity", "-1"),
        ("unit_price", "0"),
        ("kind", "TRANSFER"),
    ])
    def test_invalid_body_rejected(self, client, field, value):
        body = {"kind": "PURCHASE", "account": "CMBC", "quantity": "1", "unit_price": "500", "date": "2026-01-15"}
        body[field] = value

        response = client.post("/transactions/", json=body)

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_purchase_by_amount(self, client):
        response = client.post("/transactions/", json={
            "kind": "buy", "account": "CMBC_JD", "amount": "5000", "unit_price": "512.35", "date": "2026-01-15",
        })

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["quantity"]) == Decimal("9.759")
        assert Decimal(data["notional"]) == Decimal("5000.02365")
        assert Decimal(data["fee"]) == 0

    @pytest.mark.parametrize("body", [
        {"kind": "SALE", "amount": "1000"},
        {"kind": "PURCHASE", "amount": "1000", "quantity": "2"},
        {"kind": "PURCHASE"},
    ])
    def test_amount_and_quantity_combinations_rejected(self, client, body):
        body = {"account": "CMBC", "unit_price": "500", "date": "2026-01-15", **body}

        response = client.post("/transactions/", json=body)

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_future_trade_date_rejected(self, client):
        future = (date.today() + timedelta(days=10)).isoformat()

        response = post_transaction(client, "PURCHASE", "CMBC", 1, 500, trade_date=future)

        assert response.status_code == 422

    def test_missing_trade_date_rejected(self, client):
        response = client.post("/transactions/", json={
            "kind": "PURCHASE", "account": "CMBC", "quantity": "1", "unit_price": "500",
        })

        assert response.status_code == 422


# =============================================================================
# READ / DELETE
# =============================================================================

class TestListAndGet:

    def test_list_newest_first(self, client):
        first = post_transaction(client, "PURCHASE", "CMBC", 1, 500).json()
        second = post_transaction(client, "PURCHASE", "CZB_JD", 2, 500).json()

        data = client.get("/transactions/").json()

        assert [item["id"] for item in data["items"]] == [second["id"], first["id"]]
        assert data["pagination"]["total"] == 2

    def test_filters_and_pagination(self, client, cmbc_holding):
        post_transaction(client, "PURCHASE", "CZB_JD", 2, 500)
        post_transaction(client, "SALE", "CMBC", 1, 510)

        by_account = client.get("/transactions/", params={"account": "CMBC"}).json()
        sales = client.get("/transactions/", params={"kind": "SALE"}).json()
        page = client.get("/transactions/", params={"skip": 1, "limit": 1}).json()

        assert by_account["pagination"]["total"] == 2
        assert sales["pagination"]["total"] == 1
        assert len(page["items"]) == 1
        assert page["pagination"]["has_next"] is True
        assert page["pagination"]["has_previous"] is True

    def test_unknown_account_filter(self, client):
        response = client.get("/transactions/", params={"account": "ICBC"})

        assert response.status_code == 400

    def test_get_by_id(self, client, cmbc_holding):
        response = client.get(f"/transactions/{cmbc_holding['id']}")

        assert response.status_code == 200
        assert response.json() == cmbc_holding

    def test_get_missing(self, client):
        response = client.get("/transactions/999")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "TransactionNotFoundError"
        assert data["details"] == {"resource_type": "Transaction", "resource_id": 999}

    def test_delete(self, client, cmbc_holding):
        response = client.delete(f"/transactions/{cmbc_holding['id']}")

        assert response.status_code == 204
        assert client.get(f"/transactions/{cmbc_holding['id']}").status_code == 404

    def test_delete_leaves_later_sale_untouched(self, client, cmbc_holding):
        post_transaction(client, "PURCHASE", "CMBC", 10, 540)
        sale = post_transaction(client, "SALE", "CMBC", 5, 530).json()

        client.delete(f"/transactions/{cmbc_holding['id']}")

        stored = client.get(f"/transactions/{sale['id']}").json()
        assert Decimal(stored["realized_pnl"]) == Decimal("35")

    def test_delete_missing(self, client):
        assert client.delete("/transactions/999").status_code == 404


# =============================================================================
# SALE PREVIEW
# =============================================================================

class TestSalePreview:

    def test_preview(self, client, cmbc_holding):
        response = client.get("/transactions/sale-preview", params={
            "account": "CMBC", "quantity": "4", "unit_price": "520",
        })

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["fee"]) == Decimal("12")
        assert Decimal(data["realized_pnl"]) == Decimal("68")
        assert Decimal(data["profit_rate"]) == Decimal("4")
        assert data["exceeds_holdings"] is False

        assert client.get("/transactions/").json()["pagination"]["total"] == 1

    def test_preview_flags_oversell(self, client, cmbc_holding):
        data = client.get("/transactions/sale-preview", params={
            "account": "CMBC", "quantity": "11", "unit_price": "520",
        }).json()

        assert data["exceeds_holdings"] is True

    def test_preview_requires_positive_quantity(self, client):
        response = client.get("/transactions/sale-preview", params={
            "account": "CMBC", "quantity": "0", "unit_price": "520",
        })

        assert response.status_code == 422


# =============================================================================
# IMPORT / EXPORT
# =============================================================================

class TestImportExport:

    def test_import_current_format(self, client):
        response = client.post("/transactions/import", json={"transactions": [
            {"kind": "PURCHASE", "account": "CMBC", "quantity": "10", "unit_price": "500", "date": "2025-03-01"},
            {"kind": "SALE", "account": "CMBC", "quantity": "-4", "unit_price": "520", "date": "2025-03-02"},
        ]})

        assert response.status_code == 201
        assert response.json()["imported_count"] == 2
        assert response.json()["cleared_count"] == 0

        sale = client.get("/transactions/", params={"kind": "SALE"}).json()["items"][0]
        assert Decimal(sale["fee"]) == Decimal("12")
        assert Decimal(sale["realized_pnl"]) == Decimal("68")

    def test_import_legacy_format_newest_first(self, client):
        legacy_file = {
            "exportDate": "2025-03-05T08:00:00.000Z",
            "count": 2,
            "clearExisting": True,
            "transactions": [
                {
                    "type": "sell", "bank": "民生银行(JD)", "weight": 5, "price": 510,
                    "amount": 2550, "fee": 99, "date": "2025-03-02T00:00:00.000Z",
                    "createdAt": "2025-03-02T10:00:00.000Z",
                },
                {
                    "type": "buy", "bank": "民生银行(JD)", "weight": 10, "price": 500,
                    "amount": 5000, "fee": 0, "date": "2025-03-01",
                    "createdAt": "2025-03-01T10:00:00.000Z",
                },
            ],
        }

        response = client.post("/transactions/import", json=legacy_file)

        assert response.status_code == 201
        exported = client.get("/transactions/export").json()["transactions"]
        assert [row["kind"] for row in exported] == ["PURCHASE", "SALE"]
        assert exported[1]["account"] == "CMBC_JD"
        assert exported[1]["date"] == "2025-03-02"
        assert Decimal(exported[1]["fee"]) == Decimal("10.2")
        assert Decimal(exported[1]["realized_pnl"]) == Decimal("39.8")

    def test_import_keeps_stored_realized_value(self, client):
        client.post("/transactions/import", json={"transactions": [
            {"type": "buy", "bank": "民生银行", "weight": 10, "price": 500, "date": "2025-03-01"},
            {"type": "sell", "bank": "民生银行", "weight": 4, "price": 520, "date": "2025-03-02",
             "realizedProfitLoss": 70},
        ]})

        sale = client.get("/transactions/", params={"kind": "SALE"}).json()["items"][0]
        assert Decimal(sale["realized_pnl"]) == Decimal("70")

    def test_import_legacy_fallback_stores_null(self, client):
        client.post("/transactions/import", json={
            "legacy_fallback": True,
            "transactions": [
                {"type": "buy", "bank": "民生银行", "weight": 10, "price": 500, "date": "2025-03-01"},
                {"type": "sell", "bank": "民生银行", "weight": 4, "price": 520, "date": "2025-03-02"},
            ],
        })

        sale = client.get("/transactions/", params={"kind": "SALE"}).json()["items"][0]
        assert sale["realized_pnl"] is None

    def test_invalid_rows_reject_whole_batch(self, client, cmbc_holding):
        response = client.post("/transactions/import", json={
            "clear_existing": True,
            "transactions": [
                {"kind": "PURCHASE", "account": "ICBC", "quantity": "1", "unit_price": "500", "date": "2025-03-01"},
                {"kind": "SALE", "account": "CZB_JD", "quantity": "1", "unit_price": "500", "date": "2025-03-01"},
            ],
        })

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "ImportValidationError"
        assert [error["row"] for error in data["details"]["errors"]] == [0, 1]

        remaining = client.get("/transactions/").json()["items"]
        assert [row["id"] for row in remaining] == [cmbc_holding["id"]]

    def test_malformed_row_is_422(self, client):
        response = client.post("/transactions/import", json={"transactions": [
            {"kind": "PURCHASE", "account": "CMBC", "unit_price": "500", "date": "2025-03-01"},
        ]})

        assert response.status_code == 422

    def test_export_reimports_to_same_summary(self, client, cmbc_holding):
        post_transaction(client, "SALE", "CMBC", 4, 520)
        before = client.get("/summary/").json()

        export = client.get("/transactions/export").json()
        assert export["count"] == 2

        export["clear_existing"] = True
        response = client.post("/transactions/import", json=export)
        assert response.status_code == 201
        assert response.json()["cleared_count"] == 2

        after = client.get("/summary/").json()
        for name in ("total_quantity", "realized_pnl", "total_fees", "total_profit_loss"):
            assert Decimal(after[name]) == Decimal(before[name]), name


# =============================================================================
# STATISTICS
# =============================================================================

class TestStatistics:

    def test_statistics(self, client, cmbc_holding):
        post_transaction(client, "SALE", "CMBC", 4, 520)
        last = post_transaction(client, "PURCHASE", "CZB_JD", 2, 505).json()

        data = client.get("/transactions/statistics").json()

        assert data["total_count"] == 3
        assert data["purchase_count"] == 2
        assert data["sale_count"] == 1
        accounts = {entry["account"]: entry for entry in data["accounts"]}
        assert Decimal(accounts["CMBC"]["total_quantity"]) == Decimal("6")
        assert accounts["CMBC_JD"]["transaction_count"] == 0
        assert data["recent"][0]["id"] == last["id"]

    def test_recent_is_capped(self, client):
        for _ in range(7):
            post_transaction(client, "PURCHASE", "CMBC", 1, 500)

        data = client.get("/transactions/statistics").json()

        assert data["total_count"] == 7
        assert len(data["recent"]) == 5
