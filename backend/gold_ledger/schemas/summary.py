# backend/gold_ledger/schemas/summary.py
"""
Pydantic schemas for portfolio valuation and summary.

Built from the engine's frozen dataclasses (AccountValuation,
PortfolioSummary) via from_attributes.

All values are recomputed from the full log on every request; nothing
here is stored.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from gold_ledger.services.ledger.accounts import ACCOUNTS


class AccountValuationResponse(BaseModel):
    """One account valued as if its whole holding were sold now."""

    model_config = ConfigDict(from_attributes=True)

    account: str
    is_active: bool = Field(..., description="True if grams are held")
    quantity: Decimal
    total_cost: Decimal = Field(..., description="Net total cost (sales subtract net proceeds)")
    avg_cost: Decimal
    current_price: Decimal
    gross_value: Decimal
    sell_fee: Decimal = Field(..., description="Fee a full sale at current_price would incur")
    net_value: Decimal
    break_even_price: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal

    @computed_field
    @property
    def display_name(self) -> str:
        account = ACCOUNTS.get(self.account)
        return account.display_name if account is not None else self.account


class PortfolioSummaryResponse(BaseModel):
    """
    Aggregate view over every account.

    Value fields and weighted prices cover active accounts only.
    Ratios with a zero denominator are 0; target_progress is null when the
    target price equals the break-even price.
    """

    model_config = ConfigDict(from_attributes=True)

    # Flows
    total_invested: Decimal
    total_sold_proceeds: Decimal
    total_fees: Decimal
    realized_pnl: Decimal

    # Current holding
    total_quantity: Decimal
    gross_value: Decimal
    sell_fees: Decimal
    net_value: Decimal

    # Results
    total_profit_loss: Decimal = Field(..., description="net_value - total_invested + total_sold_proceeds - total_fees")
    profit_rate: Decimal = Field(..., description="Percent of total_invested")

    # Weighted prices
    avg_price: Decimal
    break_even_price: Decimal
    weighted_current_price: Decimal

    # Funds
    actual_total_funds: Decimal
    remaining_funds: Decimal
    usage_rate: Decimal
    target_price: Decimal
    target_progress: Decimal | None = Field(
        default=None,
        description="Percent of the way from break-even to target"
    )

    # Counts
    purchase_count: int
    sale_count: int
    trade_count: int

    account_quantities: dict[str, Decimal]
    accounts: list[AccountValuationResponse]
