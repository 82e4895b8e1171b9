"""
Ledger Service
==============

Authoritative session ledger for two-party games over HTTP.

This service provides:
- Session creation, joining and commit-reveal seeding
- Proof-gated state transitions and public game actions
- Inactivity expiry with forfeit or refund

Version: 0.1.0
"""

__version__ = "0.1.0"
