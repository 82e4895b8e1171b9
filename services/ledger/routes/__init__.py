"""
Ledger Service Routes
=====================

API route handlers for the ledger service.
"""

from services.ledger.routes import sessions


__all__ = ["sessions"]
