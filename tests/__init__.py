"""
ZK Arena Test Suite
===================

Test organization:
- tests/unit/          - Circuits, proofs, ledger and game rules
- tests/services/      - HTTP APIs through an in-process ASGI client

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=zkarena            # With coverage
"""
