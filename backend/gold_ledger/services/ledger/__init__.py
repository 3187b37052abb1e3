# backend/gold_ledger/services/ledger/__init__.py
"""
Ledger engine package.

Pure position and profit/loss accounting over an ordered transaction log.
Nothing exported here touches the database or the network; the
database-backed orchestrator is LedgerService in service.py.

Usage:
    from gold_ledger.services.ledger import SummaryAggregator, PriceBook, FundConfig

    summary = SummaryAggregator().summarize(log, PriceBook(), FundConfig())

Architecture:
    ledger/
    ├── __init__.py      # This file - engine exports
    ├── accounts.py      # Account registry and fee policies
    ├── types.py         # Internal data classes
    ├── calculators.py   # FeeModel, CostBasisCalculator, RealizedPnLTracker,
    │                    # ValuationEngine, SummaryAggregator
    └── service.py       # LedgerService (database orchestrator)

Data Flow:
    Log → CostBasisCalculator → AccountPosition per account
    Log + new sale → RealizedPnLTracker → TransactionDraft (realized P&L frozen)
    AccountPosition + PriceBook → ValuationEngine → AccountValuation
    Log + PriceBook + FundConfig → SummaryAggregator → PortfolioSummary
"""

from gold_ledger.services.ledger.accounts import (
    ACCOUNTS,
    ACCOUNT_CODES,
    Account,
    FeePolicy,
    FlatPerUnit,
    ProportionalOfNotional,
    get_account,
    resolve_account_code,
)
from gold_ledger.services.ledger.calculators import (
    CostBasisCalculator,
    FeeModel,
    RealizedPnLTracker,
    SummaryAggregator,
    ValuationEngine,
)
from gold_ledger.services.ledger.types import (
    AccountPosition,
    AccountValuation,
    FundConfig,
    PortfolioSummary,
    PriceBook,
    SalePreview,
    TransactionDraft,
    TransactionKind,
)

__all__ = [
    # Accounts
    "ACCOUNTS",
    "ACCOUNT_CODES",
    "Account",
    "FeePolicy",
    "FlatPerUnit",
    "ProportionalOfNotional",
    "get_account",
    "resolve_account_code",

    # Calculators
    "FeeModel",
    "CostBasisCalculator",
    "RealizedPnLTracker",
    "ValuationEngine",
    "SummaryAggregator",

    # Data types
    "TransactionKind",
    "TransactionDraft",
    "AccountPosition",
    "PriceBook",
    "FundConfig",
    "AccountValuation",
    "SalePreview",
    "PortfolioSummary",
]
