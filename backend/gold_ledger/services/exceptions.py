# backend/gold_ledger/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain errors and contain NO HTTP knowledge.
main.py maps them to HTTP responses through global exception handlers.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidAccountError
    │   ├── InvalidQuantityError
    │   └── InvalidPriceError
    ├── InsufficientHoldingsError
    ├── ImportValidationError
    ├── NotFoundError
    │   └── TransactionNotFoundError
    └── MarketDataError
        └── PriceFetchError
"""

from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when an engine input is invalid.

    Pydantic rejects malformed request bodies before they reach the service;
    this covers values that are well-formed but not acceptable to the ledger.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidAccountError(ValidationError):
    """Raised when an account code (or legacy alias) is not in the whitelist."""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(f"Unknown account: '{account}'", field="account")


class InvalidQuantityError(ValidationError):
    """Raised when a quantity in grams is zero or negative."""

    def __init__(self, quantity: Decimal) -> None:
        self.quantity = quantity
        super().__init__(f"Quantity must be positive, got {quantity}", field="quantity")


class InvalidPriceError(ValidationError):
    """Raised when a unit price is zero or negative."""

    def __init__(self, price: Decimal, field: str = "unit_price") -> None:
        self.price = price
        super().__init__(f"Price must be positive, got {price}", field=field)


# =============================================================================
# LEDGER ERRORS
# =============================================================================


class InsufficientHoldingsError(ServiceError):
    """
    Raised when a sale would take an account's held quantity below zero.

    Attributes:
        account: Account code
        requested: Grams the sale tried to remove
        available: Grams currently held on the account
    """

    def __init__(self, account: str, requested: Decimal, available: Decimal) -> None:
        self.account = account
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient holdings on {account}: "
            f"requested {requested} g, available {available} g"
        )


class ImportValidationError(ServiceError):
    """
    Raised when a bulk import batch contains invalid rows.

    The whole batch is rejected; nothing is written.

    Attributes:
        errors: One entry per failing row: {"row": int, "field": str | None, "message": str}
    """

    def __init__(self, errors: list[dict]) -> None:
        self.errors = errors
        super().__init__(f"Import rejected: {len(errors)} invalid row(s)")


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Transaction")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: int) -> None:
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} not found",
            resource_type="Transaction",
            resource_id=transaction_id,
        )


# =============================================================================
# MARKET DATA ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for quote provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class PriceFetchError(MarketDataError):
    """
    Raised when a single quote fetch fails (transport error, non-2xx status,
    or a payload without a usable price).

    Fetches are best-effort and never retried.

    Attributes:
        account: Account whose quote was requested
        reason: Specific reason for failure
    """

    def __init__(self, account: str, provider: str, reason: str) -> None:
        self.account = account
        self.reason = reason
        super().__init__(f"Price fetch for {account} via '{provider}' failed: {reason}", provider=provider)


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidAccountError",
    "InvalidQuantityError",
    "InvalidPriceError",
    # Ledger
    "InsufficientHoldingsError",
    "ImportValidationError",
    # Not Found
    "NotFoundError",
    "TransactionNotFoundError",
    # Market Data
    "MarketDataError",
    "PriceFetchError",
]
