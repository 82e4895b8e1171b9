"""
ZKARENA Library
===============

Hidden-state transition verification for two-party games.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - crypto: Field arithmetic, Poseidon commitments and Merkle trees
    - circuits: Constraint gadgets and per-action transition circuits
    - proofs: Proof generation, verification and key management
    - randomness: Commit-reveal shared seed protocol
    - ledger: Session records, store and the authoritative state machine
    - games: Per-game phase graphs and accumulator rules

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "ZKArena Team"

from zkarena.config import settings
from zkarena.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
