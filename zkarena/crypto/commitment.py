"""
Commitments
===========

Binding and hiding commitments to hidden game state.

A commitment is Poseidon(fields..., salt). Callers must supply a fresh
salt for every new commitment; reuse weakens hiding but is not enforced.

Version: 0.1.0
"""

import secrets
from collections.abc import Sequence

from zkarena.crypto.field import to_field
from zkarena.crypto.poseidon import MAX_INPUTS, poseidon_hash

# One Poseidon input is reserved for the salt
MAX_COMMIT_FIELDS = MAX_INPUTS - 1


def commit(values: Sequence[int], salt: int) -> int:
    """
    Commit to an ordered tuple of field elements.

    Args:
        values: Hidden fields, reduced into the field
        salt: High-entropy blinding value

    Returns:
        Commitment as a field element

    Raises:
        ValueError: If more than MAX_COMMIT_FIELDS values are supplied
    """
    if len(values) > MAX_COMMIT_FIELDS:
        raise ValueError(
            f"Cannot commit to {len(values)} values (max {MAX_COMMIT_FIELDS}); use a Merkle root"
        )
    return poseidon_hash([*(to_field(v) for v in values), to_field(salt)])


def generate_salt() -> int:
    """Generate a random salt as a field element."""
    # 31 bytes keeps the value below the field order
    return int.from_bytes(secrets.token_bytes(31), "big")
