"""
Prover Service Routes
=====================

API route handlers for the prover service.
"""

from services.prover.routes import proofs, verification


__all__ = ["proofs", "verification"]
