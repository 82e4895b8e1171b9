"""
Prover Service
==============

Transition proof generation and verification over HTTP.

This service provides:
- Proof generation for every registered transition circuit
- Proof verification against pinned verification keys
- Circuit interface and key discovery

Version: 0.1.0
"""

__version__ = "0.1.0"
