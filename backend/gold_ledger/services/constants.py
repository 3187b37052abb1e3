# backend/gold_ledger/services/constants.py
"""
Business constants for the gold ledger.

Single place for the numbers the ledger engine, the price service and the
routers agree on. Fee rates are NOT here: they belong to each account's
static FeePolicy in services/ledger/accounts.py.

Usage:
    from gold_ledger.services.constants import (
        DEFAULT_GOLD_PRICE,
        MONEY_QUANT,
        PERCENT,
    )
"""

from decimal import Decimal


# =============================================================================
# PRICING
# =============================================================================

# Last-resort price per gram when neither an account quote nor the
# portfolio-wide current price is a positive number
DEFAULT_GOLD_PRICE: Decimal = Decimal("520")


# =============================================================================
# PRECISION
# =============================================================================

# Money and quantity columns are Numeric(18, 8); values frozen onto a
# transaction are quantized to this step before they are stored
MONEY_QUANT: Decimal = Decimal("0.00000001")

# Display precision for rates returned by the API (percentages)
RATE_QUANT: Decimal = Decimal("0.01")

PERCENT: Decimal = Decimal("100")

# Grams derived from a purchase entered by amount (amount / unit_price)
# are rounded to this step
AMOUNT_QUANTITY_QUANT: Decimal = Decimal("0.0001")


# =============================================================================
# AUTO-UPDATE INTERVAL (seconds between client-side quote refreshes)
# =============================================================================

MIN_UPDATE_INTERVAL: int = 5
MAX_UPDATE_INTERVAL: int = 60
DEFAULT_UPDATE_INTERVAL: int = 10


# =============================================================================
# TRANSACTIONS
# =============================================================================

# Upper bound on rows accepted by one bulk import request
MAX_IMPORT_SIZE: int = 5000

# Number of rows shown under "recent" in transaction statistics
RECENT_TRANSACTIONS_LIMIT: int = 5


# =============================================================================
# RATE LIMITING (slowapi format: "<count>/<period>")
# =============================================================================

RATE_LIMIT_DEFAULT: str = "100/minute"

# Ledger mutations: create, delete, config changes
RATE_LIMIT_WRITE: str = "30/minute"

# Bulk import replaces or extends the whole log
RATE_LIMIT_IMPORT: str = "5/minute"

# Outbound calls to the JD quote endpoints
RATE_LIMIT_PRICE_FETCH: str = "12/minute"

RATE_LIMIT_HEALTH: str = "60/minute"
