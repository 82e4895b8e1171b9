"""
BN254 Scalar Field
==================

Helpers for working with elements of the BN254 scalar field, the field
snarkjs and circom circuits operate over.

Version: 0.1.0
"""

import hashlib

# BN254 scalar field order
FIELD_ORDER = 21888242871839275222246405745257275088548364400416034343698204186575808495617

_HALF = FIELD_ORDER // 2


def to_field(value: int) -> int:
    """Reduce an integer (possibly negative) into [0, FIELD_ORDER)."""
    return value % FIELD_ORDER


def to_signed(value: int) -> int:
    """Interpret a field element as a signed integer (upper half is negative)."""
    value = to_field(value)
    return value - FIELD_ORDER if value > _HALF else value


def parse_field(value: int | str) -> int:
    """
    Parse a decimal signal into a field element.

    Raises:
        ValueError: If the value is not a canonical field element
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a field element")
    number = int(value)
    if number < 0 or number >= FIELD_ORDER:
        raise ValueError(f"Value out of field range: {value}")
    return number


def hash_to_field(data: str | bytes) -> int:
    """
    Hash arbitrary data to a field element.

    Uses SHA-256 and reduces mod field order.
    """
    if isinstance(data, str):
        data = data.encode()
    digest = hashlib.sha256(data).digest()
    return int.from_bytes(digest, "big") % FIELD_ORDER
