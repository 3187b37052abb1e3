# backend/gold_ledger/models.py
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Enum, Numeric, Boolean, Integer, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from gold_ledger.services.constants import DEFAULT_UPDATE_INTERVAL
from gold_ledger.services.ledger.types import TransactionKind


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Transaction(Base):
    """
    One purchase or sale of gold on one account.

    Rows are append-only: created once, optionally deleted, never edited.
    Ascending id is the insertion order the ledger engine folds in;
    created_at is for display only.

    Sign convention: quantity and notional are positive for purchases and
    negative for sales. fee and realized_pnl are computed when the row is
    created and never recomputed. realized_pnl is NULL only on sales
    imported from the legacy format without a stored value.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_account_id", "account", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    kind: Mapped[TransactionKind] = mapped_column(Enum(TransactionKind))
    account: Mapped[str] = mapped_column(String(16), index=True)

    # Grams, signed
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    notional: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    fee: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))

    trade_date: Mapped[date] = mapped_column("date", Date)
    realized_pnl: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class PriceQuote(Base):
    """
    Latest price per gram for one account.

    One row per account, overwritten on every manual update or successful
    fetch. source is "manual" or the name of the quote provider.
    """
    __tablename__ = "price_quotes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    source: Mapped[str] = mapped_column(String(32), default="manual")
    observed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class LedgerConfig(Base):
    """
    Singleton row of user-level ledger settings.

    Created with defaults on first access by FundConfigService.
    current_price is the portfolio-wide price used for accounts without a
    quote; NULL means "fall back to the default gold price".
    """
    __tablename__ = "ledger_config"

    id: Mapped[int] = mapped_column(primary_key=True)

    total_funds: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    target_price: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    current_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)

    # Client-side quote refresh; the server does not schedule anything
    auto_update_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    update_interval: Mapped[int] = mapped_column(Integer, default=DEFAULT_UPDATE_INTERVAL)
    last_update_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
