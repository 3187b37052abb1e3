# backend/gold_ledger/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions (exceptions.py)
- Receive database sessions as parameters (not via Depends)

Nothing is re-exported here: models.py imports constants and ledger types
from this package, so importing the database-backed services at package
level would be circular. Import from the modules directly.

Architecture:
    services/
    ├── __init__.py                # This file
    ├── exceptions.py              # Domain exceptions
    ├── constants.py               # Business constants and limits
    ├── fund_config_service.py     # Singleton ledger config (funds, target, refresh)
    ├── price_service.py           # Stored quotes, PriceBook, quote refresh
    ├── ledger/                    # Accounting engine + LedgerService
    └── market_data/               # Gold quote providers (JD Finance)
"""
