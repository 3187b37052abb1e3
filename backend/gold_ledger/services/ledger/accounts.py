# backend/gold_ledger/services/ledger/accounts.py
"""
Static registry of the custodial accounts gold can be held in.

Each account carries its own FeePolicy. The policy is declared here,
explicitly, and never inferred from the account's name.

    CMBC      Minsheng Bank          FlatPerUnit(3)                 3 per gram sold
    CMBC_JD   Minsheng Bank (JD)     ProportionalOfNotional(0.004)  0.4% of proceeds
    CZB_JD    Zheshang Bank (JD)     ProportionalOfNotional(0.004)  0.4% of proceeds

Records exported by the earlier version of the application name accounts
by their Chinese bank names; those names are accepted as aliases.

Usage:
    from gold_ledger.services.ledger.accounts import get_account, resolve_account_code

    account = get_account("CMBC")
    account.fee_policy          # FlatPerUnit(rate=Decimal('3'))

    resolve_account_code("民生银行(JD)")   # "CMBC_JD"
"""

from dataclasses import dataclass
from decimal import Decimal

from gold_ledger.services.exceptions import InvalidAccountError


# =============================================================================
# FEE POLICIES
# =============================================================================

@dataclass(frozen=True)
class FlatPerUnit:
    """Sale fee of `rate` currency units per gram sold."""

    rate: Decimal


@dataclass(frozen=True)
class ProportionalOfNotional:
    """Sale fee of `rate` times the gross sale amount."""

    rate: Decimal


FeePolicy = FlatPerUnit | ProportionalOfNotional


# =============================================================================
# ACCOUNTS
# =============================================================================

@dataclass(frozen=True)
class Account:
    """
    A recognized custodial account.

    Attributes:
        code: Stable identifier stored on every transaction (e.g. "CMBC")
        display_name: Human-readable name
        fee_policy: How sale fees are charged on this account
        aliases: Other names accepted on import (legacy bank names)
    """

    code: str
    display_name: str
    fee_policy: FeePolicy
    aliases: tuple[str, ...] = ()


ACCOUNTS: dict[str, Account] = {
    account.code: account
    for account in (
        Account(
            code="CMBC",
            display_name="Minsheng Bank",
            fee_policy=FlatPerUnit(rate=Decimal("3")),
            aliases=("民生银行",),
        ),
        Account(
            code="CMBC_JD",
            display_name="Minsheng Bank (JD)",
            fee_policy=ProportionalOfNotional(rate=Decimal("0.004")),
            aliases=("民生银行(JD)",),
        ),
        Account(
            code="CZB_JD",
            display_name="Zheshang Bank (JD)",
            fee_policy=ProportionalOfNotional(rate=Decimal("0.004")),
            aliases=("浙商银行(JD)",),
        ),
    )
}

# Registry order; every per-account report lists accounts in this order
ACCOUNT_CODES: tuple[str, ...] = tuple(ACCOUNTS)

_ALIASES: dict[str, str] = {
    alias: account.code
    for account in ACCOUNTS.values()
    for alias in account.aliases
}


def get_account(code: str) -> Account:
    """
    Look up an account by its code.

    Raises:
        InvalidAccountError: If the code is not registered
    """
    try:
        return ACCOUNTS[code]
    except KeyError:
        raise InvalidAccountError(code) from None


def resolve_account_code(name: str) -> str:
    """
    Map an account code or legacy alias to the canonical account code.

    Codes are matched case-insensitively; aliases must match exactly
    (surrounding whitespace ignored).

    Raises:
        InvalidAccountError: If the name matches no account
    """
    candidate = name.strip()
    if candidate.upper() in ACCOUNTS:
        return candidate.upper()
    if candidate in _ALIASES:
        return _ALIASES[candidate]
    raise InvalidAccountError(name)
