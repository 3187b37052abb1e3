# backend/gold_ledger/__init__.py
"""
Gold Ledger: position and profit/loss accounting for physical gold held
across several bank accounts, served over a small FastAPI application.
"""

__version__ = "1.0.0"
