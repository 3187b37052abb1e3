# backend/gold_ledger/services/fund_config_service.py
"""
Fund Config Service for the user-level ledger settings.

This service handles:
- Retrieving the singleton LedgerConfig row, creating defaults on first access
- Partial updates with validation (budget, target price, portfolio price,
  auto-update flag and interval)
- Resetting everything to defaults, stored account quotes included
- Projecting the row into the engine's FundConfig input

Design Principles:
- Sensible Defaults: the row is created automatically when needed
- No HTTP Knowledge: raises domain exceptions, not HTTPException

Default Settings:
- total_funds: 0 (usage is measured against total invested)
- target_price: 0 (unset)
- current_price: None (falls back to the default gold price)
- auto_update_enabled: True, update_interval: 10 s

Usage:
    service = FundConfigService()

    config = service.get_or_create_default(db)
    result = service.update_config(db, total_funds=Decimal("100000"))
    fund_config = service.get_fund_config(db)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from gold_ledger.models import LedgerConfig, PriceQuote
from gold_ledger.services.constants import (
    DEFAULT_UPDATE_INTERVAL,
    MAX_UPDATE_INTERVAL,
    MIN_UPDATE_INTERVAL,
)
from gold_ledger.services.exceptions import InvalidPriceError, ValidationError
from gold_ledger.services.ledger.types import ZERO, FundConfig

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class ConfigUpdateResult:
    """Result of updating the ledger config."""

    config: LedgerConfig
    was_created: bool  # True if the row was just created
    changed_fields: list[str]  # Fields whose value actually changed


# =============================================================================
# SERVICE
# =============================================================================

class FundConfigService:
    """Reads and writes the singleton LedgerConfig row."""

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_config(self, db: Session) -> LedgerConfig | None:
        return db.scalar(select(LedgerConfig).order_by(LedgerConfig.id).limit(1))

    def get_or_create_default(self, db: Session) -> LedgerConfig:
        """
        Get the config row, creating it with defaults if it does not exist.

        Args:
            db: Database session

        Returns:
            LedgerConfig (existing or newly created)
        """
        config = self.get_config(db)
        if config is not None:
            return config

        logger.info("Creating default ledger config")
        config = self._new_default()
        db.add(config)
        db.commit()
        db.refresh(config)
        return config

    def get_fund_config(self, db: Session) -> FundConfig:
        """Engine input built from the stored row (defaults if none stored)."""
        config = self.get_config(db)
        if config is None:
            return FundConfig()
        return FundConfig(
            total_funds=config.total_funds or ZERO,
            target_price=config.target_price or ZERO,
        )

    def update_config(
            self,
            db: Session,
            total_funds: Decimal | None = None,
            target_price: Decimal | None = None,
            current_price: Decimal | None = None,
            auto_update_enabled: bool | None = None,
            update_interval: int | None = None,
    ) -> ConfigUpdateResult:
        """
        Apply a partial update. None means "leave unchanged".

        Raises:
            ValidationError: Negative total_funds / target_price, or
                             update_interval outside 5-60 seconds
            InvalidPriceError: Non-positive current_price
        """
        if total_funds is not None and total_funds < ZERO:
            raise ValidationError(f"Total funds must be non-negative, got {total_funds}", field="total_funds")
        if target_price is not None and target_price < ZERO:
            raise ValidationError(f"Target price must be non-negative, got {target_price}", field="target_price")
        if current_price is not None and current_price <= ZERO:
            raise InvalidPriceError(current_price, field="current_price")
        if update_interval is not None and not MIN_UPDATE_INTERVAL <= update_interval <= MAX_UPDATE_INTERVAL:
            raise ValidationError(
                f"Update interval must be between {MIN_UPDATE_INTERVAL} and "
                f"{MAX_UPDATE_INTERVAL} seconds, got {update_interval}",
                field="update_interval",
            )

        was_created = self.get_config(db) is None
        config = self.get_or_create_default(db)

        requested = {
            "total_funds": total_funds,
            "target_price": target_price,
            "current_price": current_price,
            "auto_update_enabled": auto_update_enabled,
            "update_interval": update_interval,
        }
        changed_fields = []
        for name, value in requested.items():
            if value is not None and getattr(config, name) != value:
                setattr(config, name, value)
                changed_fields.append(name)

        if changed_fields:
            db.commit()
            db.refresh(config)
            logger.info(f"Ledger config updated: {', '.join(changed_fields)}")

        return ConfigUpdateResult(config=config, was_created=was_created, changed_fields=changed_fields)

    def mark_prices_updated(self, db: Session, when: datetime | None = None) -> LedgerConfig:
        """Record the time of the last bulk quote refresh."""
        config = self.get_or_create_default(db)
        config.last_update_time = when or datetime.now(timezone.utc)
        db.commit()
        db.refresh(config)
        return config

    def reset(self, db: Session) -> LedgerConfig:
        """
        Restore defaults.

        Drops the config row and every stored account quote, so all prices
        fall back to the default gold price. Transactions are untouched.
        """
        db.execute(delete(LedgerConfig))
        db.execute(delete(PriceQuote))
        config = self._new_default()
        db.add(config)
        db.commit()
        db.refresh(config)

        logger.info("Ledger config reset to defaults")
        return config

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    @staticmethod
    def _new_default() -> LedgerConfig:
        return LedgerConfig(
            total_funds=ZERO,
            target_price=ZERO,
            current_price=None,
            auto_update_enabled=True,
            update_interval=DEFAULT_UPDATE_INTERVAL,
        )
