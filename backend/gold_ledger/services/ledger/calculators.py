# backend/gold_ledger/services/ledger/calculators.py
"""
Position and profit/loss calculators for the gold ledger.

Each calculator has one job:
- FeeModel: Fee of a transaction under the account's FeePolicy
- CostBasisCalculator: Folds the log into per-account cost-basis state
- RealizedPnLTracker: Builds transaction drafts, freezing realized P&L on sales
- ValuationEngine: Values holdings at current prices (fees of a full sale included)
- SummaryAggregator: Portfolio-wide figures for the dashboard

Design Principles:
- Stateless; every input is passed explicitly
- The transaction log is folded in the order given (callers pass it in
  insertion order, i.e. ascending id)
- Realized P&L is computed once, when a sale is recorded, and then only
  read back; nothing here recomputes it for stored sales
- Decimal for ALL financial values; division by zero resolves to 0

Usage:
    tracker = RealizedPnLTracker()
    draft = tracker.record_sale(log, "CMBC", Decimal("4"), Decimal("520"), date.today())

    summary = SummaryAggregator().summarize(log, PriceBook(current_price=Decimal("510")), FundConfig())
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from gold_ledger.services.constants import MONEY_QUANT, PERCENT
from gold_ledger.services.exceptions import (
    InsufficientHoldingsError,
    InvalidAccountError,
    InvalidPriceError,
    InvalidQuantityError,
)
from gold_ledger.services.ledger.accounts import (
    ACCOUNT_CODES,
    FeePolicy,
    FlatPerUnit,
    ProportionalOfNotional,
    get_account,
)
from gold_ledger.services.ledger.types import (
    ZERO,
    AccountPosition,
    AccountValuation,
    FundConfig,
    LedgerEntry,
    PortfolioSummary,
    PriceBook,
    SalePreview,
    TransactionDraft,
    TransactionKind,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")


def quantize_money(value: Decimal) -> Decimal:
    """Round to the precision of the stored Numeric(18, 8) columns."""
    return value.quantize(MONEY_QUANT)


def realized_value(txn: LedgerEntry) -> Decimal:
    """
    Realized P&L carried by a sale.

    Rows imported from the legacy format may have no stored value; for those
    the gross proceeds net of fee are used.
    """
    if txn.realized_pnl is not None:
        return txn.realized_pnl
    return abs(txn.notional) - txn.fee


def _percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return numerator / denominator * PERCENT


# =============================================================================
# FEE MODEL
# =============================================================================

class FeeModel:
    """
    Computes transaction fees from each account's static FeePolicy.

    Purchases are free. Sales pay:
        FlatPerUnit(rate)             rate × |quantity|
        ProportionalOfNotional(rate)  rate × |notional|
    """

    def fee(
            self,
            kind: TransactionKind,
            account: str,
            quantity: Decimal,
            notional: Decimal,
    ) -> Decimal:
        """
        Fee for one transaction.

        Args:
            kind: PURCHASE or SALE
            account: Account code
            quantity: Grams (sign ignored)
            notional: Gross amount (sign ignored)

        Returns:
            Non-negative fee

        Raises:
            InvalidAccountError: If the account is not registered
        """
        policy = get_account(account).fee_policy
        if kind == TransactionKind.PURCHASE:
            return ZERO
        return self._apply(policy, quantity, notional)

    def liquidation_fee(self, account: str, quantity: Decimal, gross_value: Decimal) -> Decimal:
        """Fee of selling `quantity` grams for `gross_value` right now."""
        return self.fee(TransactionKind.SALE, account, quantity, gross_value)

    def break_even_price(self, account: str, avg_cost: Decimal) -> Decimal:
        """
        Sale price per gram at which a full sale nets exactly the cost basis.

            FlatPerUnit:             avg_cost + rate
            ProportionalOfNotional:  avg_cost / (1 - rate)
        """
        policy = get_account(account).fee_policy
        if isinstance(policy, FlatPerUnit):
            return avg_cost + policy.rate
        if isinstance(policy, ProportionalOfNotional):
            return avg_cost / (ONE - policy.rate)
        raise TypeError(f"Unsupported fee policy: {policy!r}")

    @staticmethod
    def _apply(policy: FeePolicy, quantity: Decimal, notional: Decimal) -> Decimal:
        if isinstance(policy, FlatPerUnit):
            return policy.rate * abs(quantity)
        if isinstance(policy, ProportionalOfNotional):
            return policy.rate * abs(notional)
        raise TypeError(f"Unsupported fee policy: {policy!r}")


# =============================================================================
# COST BASIS CALCULATOR
# =============================================================================

class CostBasisCalculator:
    """
    Folds the transaction log into per-account cost-basis state.

    Net-total-cost method:
        PURCHASE  quantity += qty          total_cost += notional
        SALE      quantity += qty (< 0)    total_cost -= |notional| - fee
        avg_cost = total_cost / quantity when quantity > 0, else 0

    Every registered account is present in the result, at zero when it has
    no transactions.
    """

    def calculate(self, transactions: Iterable[LedgerEntry]) -> dict[str, AccountPosition]:
        """
        Args:
            transactions: Log in insertion order

        Returns:
            AccountPosition per account code, in registry order

        Raises:
            InvalidAccountError: If a transaction names an unknown account
        """
        state: dict[str, tuple[Decimal, Decimal]] = {code: (ZERO, ZERO) for code in ACCOUNT_CODES}

        for txn in transactions:
            if txn.account not in state:
                raise InvalidAccountError(txn.account)
            state[txn.account] = self.apply_transaction(state[txn.account], txn)

        return {
            code: self._to_position(code, quantity, total_cost)
            for code, (quantity, total_cost) in state.items()
        }

    def position(self, transactions: Iterable[LedgerEntry], account: str) -> AccountPosition:
        """Cost-basis state of a single account."""
        get_account(account)
        return self.calculate(txn for txn in transactions if txn.account == account)[account]

    @staticmethod
    def apply_transaction(
            state: tuple[Decimal, Decimal],
            txn: LedgerEntry,
    ) -> tuple[Decimal, Decimal]:
        """Apply one transaction to (quantity, total_cost)."""
        quantity, total_cost = state
        quantity += txn.quantity
        if txn.kind == TransactionKind.SALE:
            total_cost -= abs(txn.notional) - txn.fee
        else:
            total_cost += txn.notional
        return quantity, total_cost

    @staticmethod
    def _to_position(account: str, quantity: Decimal, total_cost: Decimal) -> AccountPosition:
        avg_cost = total_cost / quantity if quantity > ZERO else ZERO
        return AccountPosition(
            account=account,
            quantity=quantity,
            total_cost=total_cost,
            avg_cost=avg_cost,
        )


# =============================================================================
# REALIZED P&L TRACKER
# =============================================================================

class RealizedPnLTracker:
    """
    Records new transactions and reads back realized P&L.

    record_sale() is the only place realized P&L is computed:

        realized_pnl = (unit_price - avg_cost_before) × |quantity| - fee

    where avg_cost_before comes from the log as it stands before the sale.
    The value is frozen onto the draft. Deleting an earlier transaction later
    does not change it.
    """

    def __init__(
            self,
            fee_model: FeeModel | None = None,
            cost_basis: CostBasisCalculator | None = None,
    ) -> None:
        self.fee_model = fee_model or FeeModel()
        self.cost_basis = cost_basis or CostBasisCalculator()

    def record_purchase(
            self,
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
            trade_date: date,
    ) -> TransactionDraft:
        """
        Build a purchase draft (fee 0, realized P&L 0).

        Raises:
            InvalidAccountError, InvalidQuantityError, InvalidPriceError
        """
        quantity, unit_price = self._validate(account, quantity, unit_price)
        notional = quantize_money(unit_price * quantity)
        return TransactionDraft(
            kind=TransactionKind.PURCHASE,
            account=account,
            quantity=quantity,
            unit_price=unit_price,
            notional=notional,
            fee=quantize_money(self.fee_model.fee(TransactionKind.PURCHASE, account, quantity, notional)),
            trade_date=trade_date,
            realized_pnl=quantize_money(ZERO),
        )

    def record_sale(
            self,
            transactions: Iterable[LedgerEntry],
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
            trade_date: date,
    ) -> TransactionDraft:
        """
        Build a sale draft with its realized P&L frozen.

        Args:
            transactions: The log before this sale, in insertion order
            account: Account code
            quantity: Grams to sell (positive; stored negative)
            unit_price: Sale price per gram
            trade_date: User-entered trade date

        Raises:
            InvalidAccountError, InvalidQuantityError, InvalidPriceError
            InsufficientHoldingsError: If quantity exceeds the grams held
        """
        quantity, unit_price = self._validate(account, quantity, unit_price)
        position = self.cost_basis.position(transactions, account)

        if quantity > position.quantity:
            raise InsufficientHoldingsError(account, quantity, position.quantity)

        notional = -quantize_money(unit_price * quantity)
        fee = quantize_money(self.fee_model.fee(TransactionKind.SALE, account, quantity, notional))
        realized = quantize_money((unit_price - position.avg_cost) * quantity - fee)

        logger.debug(
            f"Sale on {account}: {quantity} g @ {unit_price}, "
            f"avg_cost_before={position.avg_cost}, fee={fee}, realized={realized}"
        )

        return TransactionDraft(
            kind=TransactionKind.SALE,
            account=account,
            quantity=-quantity,
            unit_price=unit_price,
            notional=notional,
            fee=fee,
            trade_date=trade_date,
            realized_pnl=realized,
        )

    def preview_sale(
            self,
            transactions: Iterable[LedgerEntry],
            account: str,
            quantity: Decimal,
            unit_price: Decimal,
    ) -> SalePreview:
        """
        Expected outcome of a sale without recording it.

        Does not enforce holdings; the caller inspects exceeds_holdings.
        """
        quantity, unit_price = self._validate(account, quantity, unit_price)
        position = self.cost_basis.position(transactions, account)

        # Same rounding as record_sale, so the preview equals the stored sale
        notional = -quantize_money(unit_price * quantity)
        fee = quantize_money(self.fee_model.fee(TransactionKind.SALE, account, quantity, notional))
        realized = quantize_money((unit_price - position.avg_cost) * quantity - fee)

        return SalePreview(
            account=account,
            quantity=quantity,
            unit_price=unit_price,
            available_quantity=position.quantity,
            avg_cost=position.avg_cost,
            fee=fee,
            realized_pnl=realized,
            profit_rate=_percent(unit_price - position.avg_cost, position.avg_cost),
        )

    def total(self, transactions: Iterable[LedgerEntry]) -> Decimal:
        """Sum of realized P&L over all sales."""
        return sum(
            (realized_value(txn) for txn in transactions if txn.kind == TransactionKind.SALE),
            ZERO,
        )

    def by_account(self, transactions: Iterable[LedgerEntry]) -> dict[str, Decimal]:
        """Realized P&L per account code; every registered account is present."""
        totals = {code: ZERO for code in ACCOUNT_CODES}
        for txn in transactions:
            if txn.account not in totals:
                raise InvalidAccountError(txn.account)
            if txn.kind == TransactionKind.SALE:
                totals[txn.account] += realized_value(txn)
        return totals

    @staticmethod
    def _validate(account: str, quantity: Decimal, unit_price: Decimal) -> tuple[Decimal, Decimal]:
        get_account(account)

        quantity = quantize_money(Decimal(quantity))
        if quantity <= ZERO:
            raise InvalidQuantityError(quantity)

        unit_price = quantize_money(Decimal(unit_price))
        if unit_price <= ZERO:
            raise InvalidPriceError(unit_price)

        return quantity, unit_price


# =============================================================================
# VALUATION ENGINE
# =============================================================================

class ValuationEngine:
    """
    Values each account as a hypothetical full sale at its current price.

        gross_value      = quantity × current_price
        sell_fee         = FeeModel fee of that sale
        net_value        = gross_value - sell_fee
        unrealized_pnl   = net_value - total_cost
        break_even_price = FeeModel.break_even_price(avg_cost)

    Inactive accounts (nothing held) report zeros for these fields but keep
    their realized P&L.
    """

    def __init__(
            self,
            fee_model: FeeModel | None = None,
            cost_basis: CostBasisCalculator | None = None,
            realized: RealizedPnLTracker | None = None,
    ) -> None:
        self.fee_model = fee_model or FeeModel()
        self.cost_basis = cost_basis or CostBasisCalculator()
        self.realized = realized or RealizedPnLTracker(self.fee_model, self.cost_basis)

    def value_account(
            self,
            position: AccountPosition,
            price_book: PriceBook,
            realized_pnl: Decimal = ZERO,
    ) -> AccountValuation:
        current_price = price_book.resolve(position.account)

        if not position.is_active:
            return AccountValuation(
                account=position.account,
                quantity=position.quantity,
                total_cost=position.total_cost,
                avg_cost=position.avg_cost,
                current_price=current_price,
                realized_pnl=realized_pnl,
            )

        gross_value = position.quantity * current_price
        sell_fee = self.fee_model.liquidation_fee(position.account, position.quantity, gross_value)
        net_value = gross_value - sell_fee

        return AccountValuation(
            account=position.account,
            quantity=position.quantity,
            total_cost=position.total_cost,
            avg_cost=position.avg_cost,
            current_price=current_price,
            gross_value=gross_value,
            sell_fee=sell_fee,
            net_value=net_value,
            break_even_price=self.fee_model.break_even_price(position.account, position.avg_cost),
            unrealized_pnl=net_value - position.total_cost,
            realized_pnl=realized_pnl,
        )

    def value_portfolio(
            self,
            transactions: Iterable[LedgerEntry],
            price_book: PriceBook,
    ) -> dict[str, AccountValuation]:
        """Value every registered account, in registry order."""
        transactions = list(transactions)
        positions = self.cost_basis.calculate(transactions)
        realized = self.realized.by_account(transactions)

        return {
            code: self.value_account(position, price_book, realized[code])
            for code, position in positions.items()
        }


# =============================================================================
# SUMMARY AGGREGATOR
# =============================================================================

class SummaryAggregator:
    """
    Portfolio-wide figures, recomputed from scratch on every call.

        total_profit_loss = net_value - total_invested + total_sold_proceeds - total_fees
        profit_rate       = total_profit_loss / total_invested × 100
        usage_rate        = total_invested / actual_total_funds × 100
        remaining_funds   = actual_total_funds - total_invested + total_sold_proceeds - total_fees
        target_progress   = (weighted_current_price - break_even_price)
                            / (target_price - break_even_price) × 100

    avg_price, break_even_price and weighted_current_price are weighted by
    the grams held on each active account.
    """

    def __init__(self, valuation: ValuationEngine | None = None) -> None:
        self.valuation = valuation or ValuationEngine()

    def summarize(
            self,
            transactions: Iterable[LedgerEntry],
            price_book: PriceBook,
            fund_config: FundConfig,
    ) -> PortfolioSummary:
        transactions = list(transactions)
        valuations = self.valuation.value_portfolio(transactions, price_book)

        purchases = [txn for txn in transactions if txn.kind == TransactionKind.PURCHASE]
        sales = [txn for txn in transactions if txn.kind == TransactionKind.SALE]

        total_invested = sum((txn.notional for txn in purchases), ZERO)
        total_sold_proceeds = sum((abs(txn.notional) for txn in sales), ZERO)
        total_fees = sum((txn.fee for txn in transactions), ZERO)

        active = [valuation for valuation in valuations.values() if valuation.is_active]
        total_quantity = sum((v.quantity for v in active), ZERO)
        gross_value = sum((v.gross_value for v in active), ZERO)
        sell_fees = sum((v.sell_fee for v in active), ZERO)
        net_value = sum((v.net_value for v in active), ZERO)

        total_profit_loss = net_value - total_invested + total_sold_proceeds - total_fees

        avg_price = self._weighted(active, total_quantity, lambda v: v.avg_cost)
        break_even_price = self._weighted(active, total_quantity, lambda v: v.break_even_price)
        weighted_current_price = self._weighted(active, total_quantity, lambda v: v.current_price)

        actual_total_funds = fund_config.total_funds if fund_config.total_funds else total_invested

        return PortfolioSummary(
            total_invested=total_invested,
            total_sold_proceeds=total_sold_proceeds,
            total_fees=total_fees,
            realized_pnl=sum((v.realized_pnl for v in valuations.values()), ZERO),
            total_quantity=total_quantity,
            gross_value=gross_value,
            sell_fees=sell_fees,
            net_value=net_value,
            total_profit_loss=total_profit_loss,
            profit_rate=_percent(total_profit_loss, total_invested),
            avg_price=avg_price,
            break_even_price=break_even_price,
            weighted_current_price=weighted_current_price,
            actual_total_funds=actual_total_funds,
            remaining_funds=actual_total_funds - total_invested + total_sold_proceeds - total_fees,
            usage_rate=_percent(total_invested, actual_total_funds),
            target_price=fund_config.target_price,
            target_progress=self._target_progress(
                weighted_current_price, break_even_price, fund_config.target_price
            ),
            purchase_count=len(purchases),
            sale_count=len(sales),
            accounts=tuple(valuations.values()),
        )

    @staticmethod
    def _weighted(active: list[AccountValuation], total_quantity: Decimal, value) -> Decimal:
        if total_quantity == ZERO:
            return ZERO
        return sum((value(v) * v.quantity for v in active), ZERO) / total_quantity

    @staticmethod
    def _target_progress(
            current_price: Decimal,
            break_even_price: Decimal,
            target_price: Decimal,
    ) -> Decimal | None:
        if target_price <= ZERO or current_price <= ZERO:
            return ZERO
        if target_price == break_even_price:
            logger.debug(f"Target price {target_price} equals break-even; progress undefined")
            return None
        return (current_price - break_even_price) / (target_price - break_even_price) * PERCENT
