# backend/gold_ledger/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

- Account normalization (codes are case-insensitive, aliases exact)
- Legacy transaction type mapping (buy/sell)
- Trade date sanity bounds
"""

from datetime import date, timedelta

from gold_ledger.services.ledger.accounts import ACCOUNTS
from gold_ledger.services.ledger.types import TransactionKind

# Earliest trade date accepted
MIN_VALID_DATE = date(2000, 1, 1)

# Trade dates may run ahead of the server clock by at most a day (time zones)
MAX_FUTURE_DAYS = 1

LEGACY_KINDS = {
    "buy": TransactionKind.PURCHASE,
    "sell": TransactionKind.SALE,
}


def normalize_account(value: str) -> str:
    """
    Trim an account name and uppercase it if it is a known code.

    Unknown names pass through unchanged; the ledger service rejects them
    with InvalidAccountError so the client gets the standard 400 body.
    """
    value = value.strip()
    if value.upper() in ACCOUNTS:
        return value.upper()
    return value


def parse_transaction_kind(value: object) -> object:
    """Accept PURCHASE/SALE in any case, and the legacy buy/sell."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in LEGACY_KINDS:
            return LEGACY_KINDS[lowered]
        return value.strip().upper()
    return value


def validate_trade_date(value: date) -> date:
    """
    Reject trade dates that are implausibly old or in the future.

    Raises:
        ValueError: If the date is out of range
    """
    if value < MIN_VALID_DATE:
        raise ValueError(f"Trade date {value} is before {MIN_VALID_DATE}")
    latest = date.today() + timedelta(days=MAX_FUTURE_DAYS)
    if value > latest:
        raise ValueError(f"Trade date cannot be in the future (sent: {value})")
    return value
