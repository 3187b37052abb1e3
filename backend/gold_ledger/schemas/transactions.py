# backend/gold_ledger/schemas/transactions.py
"""
Pydantic schemas for Transaction validation.

These schemas define:
- What data clients must send to record a transaction (Create)
- What the API returns (Response, List, Statistics, SalePreview)
- The bulk transfer formats (Import, Export)

Transactions are append-only: there is no Update schema.

The trade date is `date` on the wire and `trade_date` in Python, so the
field name never shadows the `date` type.

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from gold_ledger.schemas.pagination import PaginationMeta
from gold_ledger.schemas.validators import (
    normalize_account,
    parse_transaction_kind,
    validate_trade_date,
)
from gold_ledger.services.constants import AMOUNT_QUANTITY_QUANT, MAX_IMPORT_SIZE
from gold_ledger.services.ledger.types import TransactionKind


def _trade_date_field(**kwargs: Any) -> Any:
    return Field(
        validation_alias=AliasChoices("trade_date", "date"),
        serialization_alias="date",
        description="Trade date entered by the user (not used for ordering)",
        examples=["2026-01-15"],
        **kwargs,
    )


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class TransactionCreate(BaseModel):
    """
    Schema for recording one purchase or sale.

    quantity is always positive here; a SALE is stored with negative
    quantity and notional. Fee and realized P&L are computed by the server.

    A PURCHASE may instead give the money spent as `amount`; quantity is
    then amount / unit_price rounded to 4 decimal places, and the stored
    notional follows from that rounded quantity.
    """

    kind: TransactionKind = Field(
        ...,
        description="PURCHASE or SALE (legacy 'buy'/'sell' accepted)",
        examples=[TransactionKind.PURCHASE, TransactionKind.SALE]
    )

    account: str = Field(
        ...,
        min_length=1,
        max_length=32,
        description="Account code (or legacy bank name)",
        examples=["CMBC", "CMBC_JD", "CZB_JD"]
    )

    quantity: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Grams bought or sold (must be positive); required unless amount is given",
        examples=["10", "2.5"]
    )

    amount: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Money spent on a PURCHASE, instead of quantity",
        examples=["5000"]
    )

    unit_price: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Price per gram (must be positive)",
        examples=["520.35"]
    )

    trade_date: dt.date = _trade_date_field()

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, v: object) -> object:
        return parse_transaction_kind(v)

    @field_validator("account")
    @classmethod
    def normalize_account_name(cls, v: str) -> str:
        return normalize_account(v)

    @model_validator(mode="after")
    def resolve_quantity(self) -> "TransactionCreate":
        """Require exactly one of quantity/amount and derive grams from an amount."""
        if self.amount is None:
            if self.quantity is None:
                raise ValueError("Either quantity or amount is required")
            return self

        if self.kind != TransactionKind.PURCHASE:
            raise ValueError("amount is only accepted for purchases; give quantity for a sale")
        if self.quantity is not None:
            raise ValueError("Give either quantity or amount, not both")

        quantity = (self.amount / self.unit_price).quantize(AMOUNT_QUANTITY_QUANT, rounding=ROUND_HALF_UP)
        if quantity <= 0:
            raise ValueError(f"amount {self.amount} buys less than {AMOUNT_QUANTITY_QUANT} g")
        self.quantity = quantity
        return self

    @field_validator("trade_date")
    @classmethod
    def check_trade_date(cls, v: dt.date) -> dt.date:
        return validate_trade_date(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class TransactionResponse(BaseModel):
    """A stored transaction."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: TransactionKind
    account: str
    quantity: Decimal = Field(..., description="Signed grams (sales negative)")
    unit_price: Decimal
    notional: Decimal = Field(..., description="unit_price × |quantity|, signed like quantity")
    fee: Decimal
    trade_date: dt.date = _trade_date_field()
    realized_pnl: Decimal | None = Field(
        ...,
        description="Frozen realized P&L (0 for purchases; null on legacy sales without a stored value)"
    )
    created_at: dt.datetime


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    pagination: PaginationMeta


class SalePreviewResponse(BaseModel):
    """Expected outcome of a sale that is not recorded."""

    model_config = ConfigDict(from_attributes=True)

    account: str
    quantity: Decimal
    unit_price: Decimal
    available_quantity: Decimal = Field(..., description="Grams currently held on the account")
    avg_cost: Decimal
    fee: Decimal
    realized_pnl: Decimal
    profit_rate: Decimal = Field(..., description="(unit_price - avg_cost) / avg_cost × 100")
    exceeds_holdings: bool = Field(..., description="True if recording this sale would be rejected")


class AccountStatisticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account: str
    transaction_count: int
    total_quantity: Decimal = Field(..., description="Net grams (purchases minus sales)")
    total_notional: Decimal = Field(..., description="Net signed amount")


class TransactionStatisticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_count: int
    purchase_count: int
    sale_count: int
    accounts: list[AccountStatisticsResponse]
    recent: list[TransactionResponse] = Field(..., description="Most recently recorded transactions")


# =============================================================================
# IMPORT / EXPORT
# =============================================================================

# Legacy export field -> current field
_LEGACY_FIELDS = {
    "type": "kind",
    "bank": "account",
    "weight": "quantity",
    "price": "unit_price",
    "realizedProfitLoss": "realized_pnl",
    "createdAt": "created_at",
}


class TransactionImportRow(BaseModel):
    """
    One imported transaction, in the current export format or the legacy one.

    Legacy rows (type/bank/weight/price/realizedProfitLoss/createdAt) are
    mapped onto the current fields. Their amount and fee are ignored: both
    are recomputed from quantity, price and the account's fee policy.
    Quantity sign is ignored; kind decides it.
    """

    kind: TransactionKind
    account: str = Field(..., min_length=1, max_length=32)
    quantity: Decimal = Field(..., max_digits=18, decimal_places=8)
    unit_price: Decimal = Field(..., max_digits=18, decimal_places=8)
    trade_date: dt.date = _trade_date_field()
    realized_pnl: Decimal | None = Field(
        default=None,
        description="Kept verbatim on sales when present"
    )
    created_at: dt.datetime | None = Field(
        default=None,
        description="Original insertion time; when every row has one, rows are replayed in this order"
    )

    @model_validator(mode="before")
    @classmethod
    def map_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        mapped = dict(data)
        for legacy, current in _LEGACY_FIELDS.items():
            if legacy in mapped and current not in mapped:
                mapped[current] = mapped.pop(legacy)
        return mapped

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, v: object) -> object:
        return parse_transaction_kind(v)

    @field_validator("account")
    @classmethod
    def normalize_account_name(cls, v: str) -> str:
        return normalize_account(v)

    @field_validator("trade_date", mode="before")
    @classmethod
    def strip_time_part(cls, v: object) -> object:
        # Legacy files sometimes store full ISO timestamps as the trade date
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: dt.datetime | None) -> dt.datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=dt.timezone.utc)
        return v


class TransactionImportRequest(BaseModel):
    """
    Bulk import body. An export file (either format) can be posted as is:
    unknown top-level keys such as exportDate and count are ignored.
    """

    transactions: list[TransactionImportRow] = Field(..., max_length=MAX_IMPORT_SIZE)
    clear_existing: bool = Field(
        default=False,
        validation_alias=AliasChoices("clear_existing", "clearExisting"),
        description="Delete every existing transaction before importing"
    )
    legacy_fallback: bool = Field(
        default=False,
        description="Store missing realized P&L of sales as null instead of recomputing it"
    )


class TransactionImportResponse(BaseModel):
    message: str
    imported_count: int
    cleared_count: int


class TransactionExportResponse(BaseModel):
    export_date: dt.datetime
    count: int
    transactions: list[TransactionResponse]
