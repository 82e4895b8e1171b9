"""
Commitment Layer
================

Field arithmetic, Poseidon hashing, commitments and Merkle trees.

Usage:
    from zkarena.crypto import commit, generate_salt

    salt = generate_salt()
    position = commit([x, y, z], salt)
"""

from zkarena.crypto.commitment import MAX_COMMIT_FIELDS, commit, generate_salt
from zkarena.crypto.field import FIELD_ORDER, hash_to_field, parse_field, to_field, to_signed
from zkarena.crypto.merkle import (
    MerkleProof,
    MerkleTree,
    compute_root,
    leaf_position,
    verify_inclusion,
)
from zkarena.crypto.poseidon import poseidon_hash


__all__ = [
    "FIELD_ORDER",
    "MAX_COMMIT_FIELDS",
    "MerkleProof",
    "MerkleTree",
    "commit",
    "compute_root",
    "generate_salt",
    "hash_to_field",
    "leaf_position",
    "parse_field",
    "poseidon_hash",
    "to_field",
    "to_signed",
    "verify_inclusion",
]
