"""
ZK Arena Services
=================

HTTP services for hidden-state game sessions.

Services:
- prover: transition proof generation and verification
- ledger: session lifecycle and proof-gated transitions
"""

__all__ = [
    "prover",
    "ledger",
]
