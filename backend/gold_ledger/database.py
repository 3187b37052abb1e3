# backend/gold_ledger/database.py
"""
Database connection and session management.

Engines by URL:
- sqlite:///:memory:   StaticPool, one shared connection (tests)
- sqlite:///path.db    default pool, check_same_thread off (local development)
- postgresql://...     QueuePool sized from DB_POOL_* settings

Every request gets its own session through get_db(); one ledger mutation
(insert or delete) commits fully before the next request reads the log.
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .config import settings

logger = logging.getLogger(__name__)

# Tables the ledger cannot serve requests without
REQUIRED_TABLES = ("transactions", "price_quotes", "ledger_config")


def _create_engine() -> Engine:
    url = settings.database_url

    if settings.is_sqlite:
        in_memory = ":memory:" in url or url.rstrip("/").lower() == "sqlite:"
        logger.info(f"Configuring SQLite database ({'in-memory' if in_memory else 'file'})")
        return create_engine(
            url,
            poolclass=StaticPool if in_memory else None,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info(
        f"Configuring PostgreSQL pool: size={settings.db_pool_size}, "
        f"max_overflow={settings.db_pool_max_overflow}, recycle={settings.db_pool_recycle}s"
    )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_timeout=30,
        echo=settings.debug,
    )


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session.

    Usage:
        @router.get("/summary/")
        def get_summary(db: Annotated[Session, Depends(get_db)]):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_health() -> dict:
    """
    Connectivity plus presence of the ledger tables.

    Returns:
        {"status": "healthy" | "unhealthy", "database": ..., "missing_tables": [...]}
    """
    backend = "sqlite" if settings.is_sqlite else "postgresql"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            existing = set(inspect(conn).get_table_names())
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": backend, "error": str(e)}

    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        logger.warning(f"Database reachable but ledger tables missing: {', '.join(missing)}")

    return {
        "status": "unhealthy" if missing else "healthy",
        "database": backend,
        "missing_tables": missing,
    }
