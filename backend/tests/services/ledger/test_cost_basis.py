# backend/tests/services/ledger/test_cost_basis.py
"""
Unit tests for CostBasisCalculator.

These tests verify the pure fold WITHOUT database dependencies. A simple
dataclass stands in for the Transaction model.

Net-total-cost method:
    PURCHASE  total_cost += notional
    SALE      total_cost -= |notional| - fee
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from gold_ledger.services.exceptions import InvalidAccountError
from gold_ledger.services.ledger.calculators import CostBasisCalculator
from gold_ledger.services.ledger.types import TransactionKind


# =============================================================================
# MOCK OBJECTS (No database needed)
# =============================================================================

@dataclass
class MockTransaction:
    """Mock Transaction for unit testing."""
    kind: TransactionKind
    account: str
    quantity: Decimal
    unit_price: Decimal
    notional: Decimal
    fee: Decimal
    realized_pnl: Decimal | None = None


def purchase(account: str, quantity: str, price: str) -> MockTransaction:
    q, p = Decimal(quantity), Decimal(price)
    return MockTransaction(TransactionKind.PURCHASE, account, q, p, q * p, Decimal("0"), Decimal("0"))


def sale(account: str, quantity: str, price: str, fee: str) -> MockTransaction:
    q, p = Decimal(quantity), Decimal(price)
    return MockTransaction(TransactionKind.SALE, account, -q, p, -(q * p), Decimal(fee))


@pytest.fixture
def calculator() -> CostBasisCalculator:
    return CostBasisCalculator()


# =============================================================================
# TESTS
# =============================================================================

class TestCostBasisCalculator:

    def test_empty_log_reports_every_account_at_zero(self, calculator):
        positions = calculator.calculate([])

        assert list(positions) == ["CMBC", "CMBC_JD", "CZB_JD"]
        for position in positions.values():
            assert position.quantity == 0
            assert position.total_cost == 0
            assert position.avg_cost == 0
            assert not position.is_active

    def test_single_purchase(self, calculator):
        position = calculator.calculate([purchase("CMBC", "10", "500")])["CMBC"]

        assert position.quantity == Decimal("10")
        assert position.total_cost == Decimal("5000")
        assert position.avg_cost == Decimal("500")
        assert position.is_active

    def test_purchases_average_by_weight(self, calculator):
        log = [
            purchase("CMBC", "10", "500"),
            purchase("CMBC", "30", "520"),
        ]

        position = calculator.calculate(log)["CMBC"]

        assert position.quantity == Decimal("40")
        assert position.total_cost == Decimal("20600")
        assert position.avg_cost == Decimal("515")

    def test_sale_subtracts_net_proceeds(self, calculator):
        """A sale reduces total cost by what it brought in, not by a share of cost."""
        log = [
            purchase("CMBC", "10", "500"),
            sale("CMBC", "4", "520", fee="12"),
        ]

        position = calculator.calculate(log)["CMBC"]

        assert position.quantity == Decimal("6")
        assert position.total_cost == Decimal("2932")
        assert position.avg_cost.quantize(Decimal("0.01")) == Decimal("488.67")

    def test_sold_out_account_keeps_residual_cost(self, calculator):
        log = [
            purchase("CMBC", "10", "500"),
            sale("CMBC", "10", "520", fee="30"),
        ]

        position = calculator.calculate(log)["CMBC"]

        assert position.quantity == 0
        assert position.total_cost == Decimal("-170")
        assert position.avg_cost == 0
        assert not position.is_active

    def test_accounts_are_independent(self, calculator):
        log = [
            purchase("CMBC", "10", "500"),
            purchase("CZB_JD", "5", "510"),
            sale("CMBC", "2", "505", fee="6"),
        ]

        positions = calculator.calculate(log)

        assert positions["CMBC"].quantity == Decimal("8")
        assert positions["CZB_JD"].quantity == Decimal("5")
        assert positions["CZB_JD"].total_cost == Decimal("2550")
        assert positions["CMBC_JD"].quantity == 0

    def test_unknown_account_raises(self, calculator):
        with pytest.raises(InvalidAccountError):
            calculator.calculate([purchase("ICBC", "1", "500")])

    def test_position_of_single_account(self, calculator):
        log = [
            purchase("CMBC", "10", "500"),
            purchase("CMBC_JD", "3", "480"),
        ]

        position = calculator.position(log, "CMBC_JD")

        assert position.account == "CMBC_JD"
        assert position.quantity == Decimal("3")
        assert position.avg_cost == Decimal("480")

    def test_position_of_unknown_account_raises(self, calculator):
        with pytest.raises(InvalidAccountError):
            calculator.position([], "ICBC")

    def test_total_cost_matches_avg_cost_times_quantity(self, calculator):
        log = [
            purchase("CZB_JD", "3", "501.37"),
            purchase("CZB_JD", "7.25", "498.11"),
            sale("CZB_JD", "2.5", "505.2", fee="5.052"),
            purchase("CZB_JD", "1.1", "509.99"),
        ]

        position = calculator.calculate(log)["CZB_JD"]

        assert position.quantity == Decimal("8.85")
        assert abs(position.avg_cost * position.quantity - position.total_cost) < Decimal("1e-18")

    def test_quantity_equals_signed_sum(self, calculator):
        log = [
            purchase("CMBC_JD", "4", "500"),
            sale("CMBC_JD", "1.5", "510", fee="3.06"),
            purchase("CMBC_JD", "2", "505"),
        ]

        position = calculator.calculate(log)["CMBC_JD"]

        assert position.quantity == sum(txn.quantity for txn in log)
