# backend/gold_ledger/services/ledger/types.py
"""
Internal data types for the ledger engine.

These dataclasses are used by the ledger calculators. They are NOT Pydantic
schemas; API serialization lives in gold_ledger/schemas/.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL money and quantities (never float)
- Signed quantities: purchases positive, sales negative
- None only where a value is genuinely undefined, never as a zero stand-in

Type Hierarchy:
    TransactionKind     - PURCHASE | SALE
    LedgerEntry         - What the engine reads from a transaction (protocol)
    TransactionDraft    - A validated transaction ready to be stored
    AccountPosition     - Cost-basis state of one account
    PriceBook           - Quotes per account plus fallbacks
    FundConfig          - Budget and target price
    AccountValuation    - One account valued at its current price
    SalePreview         - Outcome of a hypothetical sale
    PortfolioSummary    - Everything the dashboard shows
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Mapping, Protocol

from gold_ledger.services.constants import DEFAULT_GOLD_PRICE

ZERO = Decimal("0")


class TransactionKind(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"


class LedgerEntry(Protocol):
    """
    Read-only view of a transaction as the engine consumes it.

    Satisfied by the ORM Transaction model and by TransactionDraft.
    """

    kind: TransactionKind
    account: str
    quantity: Decimal
    unit_price: Decimal
    notional: Decimal
    fee: Decimal
    realized_pnl: Decimal | None


# =============================================================================
# TRANSACTIONS
# =============================================================================

@dataclass(frozen=True)
class TransactionDraft:
    """
    A fully computed transaction that has not been stored yet.

    Produced by RealizedPnLTracker.record_purchase / record_sale. All money
    fields are already quantized, so the stored row matches the draft.

    Attributes:
        kind: PURCHASE or SALE
        account: Account code
        quantity: Signed grams (sales negative)
        unit_price: Price per gram, positive
        notional: unit_price × |quantity| with the sign of quantity
        fee: Fee charged on this transaction, frozen at creation
        trade_date: User-entered trade date
        realized_pnl: Zero for purchases; frozen P&L for sales
    """

    kind: TransactionKind
    account: str
    quantity: Decimal
    unit_price: Decimal
    notional: Decimal
    fee: Decimal
    trade_date: date
    realized_pnl: Decimal | None = ZERO


# =============================================================================
# COST BASIS
# =============================================================================

@dataclass(frozen=True)
class AccountPosition:
    """
    Cost-basis state of one account after folding the log.

    total_cost is net-total-cost: sales subtract their net proceeds rather
    than a pro-rata share of cost, so it can be non-zero (even negative)
    while quantity is zero.

    Attributes:
        account: Account code
        quantity: Grams currently held
        total_cost: Cost attributed to the held grams
        avg_cost: total_cost / quantity, or 0 when nothing is held
    """

    account: str
    quantity: Decimal = ZERO
    total_cost: Decimal = ZERO
    avg_cost: Decimal = ZERO

    @property
    def is_active(self) -> bool:
        """True if grams are currently held on the account."""
        return self.quantity > ZERO


# =============================================================================
# PRICING / CONFIGURATION INPUTS
# =============================================================================

@dataclass(frozen=True)
class PriceBook:
    """
    Current prices per gram.

    Resolution order for an account: its own quote, then the portfolio-wide
    current price, then the default. Missing and non-positive values are
    skipped at each step.

    Attributes:
        quotes: Latest quote per account code
        current_price: Portfolio-wide price set by the user (optional)
        default_price: Last-resort price
    """

    quotes: Mapping[str, Decimal] = field(default_factory=dict)
    current_price: Decimal | None = None
    default_price: Decimal = DEFAULT_GOLD_PRICE

    def resolve(self, account: str) -> Decimal:
        quote = self.quotes.get(account)
        if quote is not None and quote > ZERO:
            return quote
        if self.current_price is not None and self.current_price > ZERO:
            return self.current_price
        return self.default_price


@dataclass(frozen=True)
class FundConfig:
    """
    Attributes:
        total_funds: Budget for gold purchases; 0 means "use total invested"
        target_price: Price per gram the user aims to sell at; 0 means unset
    """

    total_funds: Decimal = ZERO
    target_price: Decimal = ZERO


# =============================================================================
# VALUATION
# =============================================================================

@dataclass(frozen=True)
class AccountValuation:
    """
    One account valued as if its whole holding were sold now.

    Fields other than quantity, total_cost, avg_cost, current_price and
    realized_pnl are zero for inactive accounts (nothing held).

    Attributes:
        account: Account code
        quantity: Grams held
        total_cost: Net total cost of the holding
        avg_cost: Average cost per gram
        current_price: Resolved price per gram
        gross_value: quantity × current_price
        sell_fee: Fee a full sale at current_price would incur
        net_value: gross_value - sell_fee
        break_even_price: Price at which a full sale nets zero gain
        unrealized_pnl: net_value - total_cost
        realized_pnl: Sum of frozen realized P&L of the account's sales
    """

    account: str
    quantity: Decimal
    total_cost: Decimal
    avg_cost: Decimal
    current_price: Decimal
    gross_value: Decimal = ZERO
    sell_fee: Decimal = ZERO
    net_value: Decimal = ZERO
    break_even_price: Decimal = ZERO
    unrealized_pnl: Decimal = ZERO
    realized_pnl: Decimal = ZERO

    @property
    def is_active(self) -> bool:
        return self.quantity > ZERO


@dataclass(frozen=True)
class SalePreview:
    """
    Expected outcome of selling `quantity` grams at `unit_price`, not recorded.

    Attributes:
        account: Account code
        quantity: Grams to sell (positive)
        unit_price: Price per gram
        available_quantity: Grams currently held
        avg_cost: Current average cost per gram
        fee: Fee the sale would incur
        realized_pnl: (unit_price - avg_cost) × quantity - fee
        profit_rate: (unit_price - avg_cost) / avg_cost × 100, 0 if avg_cost is 0
    """

    account: str
    quantity: Decimal
    unit_price: Decimal
    available_quantity: Decimal
    avg_cost: Decimal
    fee: Decimal
    realized_pnl: Decimal
    profit_rate: Decimal

    @property
    def exceeds_holdings(self) -> bool:
        return self.quantity > self.available_quantity


# =============================================================================
# SUMMARY
# =============================================================================

@dataclass(frozen=True)
class PortfolioSummary:
    """
    Aggregate view over every account.

    Value fields (gross_value, net_value, sell_fees, total_quantity and the
    weighted prices) cover active accounts only. Ratios whose denominator is
    zero are 0. target_progress is None when target_price equals
    break_even_price (the ratio is undefined there).
    """

    # Flows
    total_invested: Decimal = ZERO
    total_sold_proceeds: Decimal = ZERO
    total_fees: Decimal = ZERO
    realized_pnl: Decimal = ZERO

    # Current holding
    total_quantity: Decimal = ZERO
    gross_value: Decimal = ZERO
    sell_fees: Decimal = ZERO
    net_value: Decimal = ZERO

    # Results
    total_profit_loss: Decimal = ZERO
    profit_rate: Decimal = ZERO

    # Weighted prices
    avg_price: Decimal = ZERO
    break_even_price: Decimal = ZERO
    weighted_current_price: Decimal = ZERO

    # Funds
    actual_total_funds: Decimal = ZERO
    remaining_funds: Decimal = ZERO
    usage_rate: Decimal = ZERO
    target_price: Decimal = ZERO
    target_progress: Decimal | None = ZERO

    # Counts
    purchase_count: int = 0
    sale_count: int = 0

    accounts: tuple[AccountValuation, ...] = ()

    @property
    def trade_count(self) -> int:
        return self.purchase_count + self.sale_count

    @property
    def account_quantities(self) -> dict[str, Decimal]:
        return {valuation.account: valuation.quantity for valuation in self.accounts}
