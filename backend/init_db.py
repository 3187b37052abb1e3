#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates every ledger table that does not exist yet:
    python backend/init_db.py

The API also does this on startup; the script is for preparing a database
before the first deploy.
"""

from gold_ledger.database import engine
from gold_ledger.models import Base


def init_db() -> None:
    """Create all database tables defined in models."""
    print(f"Creating ledger tables: {', '.join(Base.metadata.tables)}")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")


if __name__ == "__main__":
    init_db()
