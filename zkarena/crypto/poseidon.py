"""
Poseidon Hash
=============

Poseidon permutation over the BN254 scalar field.

Uses the x^5 S-box, 8 full rounds and the circomlib partial-round
schedule per width. Round constants come from a domain-separated SHA-256
expansion and the MDS matrix is a Cauchy matrix, so outputs are stable
across runs but are not interchangeable with circomlib's constants.

Version: 0.1.0
"""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from zkarena.crypto.field import FIELD_ORDER

FULL_ROUNDS = 8

# Partial rounds for widths 2..17
PARTIAL_ROUNDS = (56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68)

MAX_INPUTS = len(PARTIAL_ROUNDS)

_DOMAIN = b"zkarena.poseidon.v1"


@dataclass(frozen=True)
class PoseidonParams:
    """Constants for one state width."""

    width: int
    partial_rounds: int
    round_constants: tuple[int, ...]
    mds: tuple[tuple[int, ...], ...]


def _expand_constant(width: int, index: int) -> int:
    digest = hashlib.sha256(_DOMAIN + width.to_bytes(2, "big") + index.to_bytes(4, "big")).digest()
    return int.from_bytes(digest, "big") % FIELD_ORDER


@lru_cache(maxsize=None)
def poseidon_params(width: int) -> PoseidonParams:
    """Build (and cache) the constants for a state width in [2, 17]."""
    if width < 2 or width > MAX_INPUTS + 1:
        raise ValueError(f"Unsupported Poseidon width: {width}")

    partial_rounds = PARTIAL_ROUNDS[width - 2]
    total_rounds = FULL_ROUNDS + partial_rounds
    constants = tuple(_expand_constant(width, i) for i in range(total_rounds * width))

    # Cauchy matrix 1 / (x_i + y_j) with x_i = i, y_j = width + j
    mds = tuple(
        tuple(pow(i + width + j, -1, FIELD_ORDER) for j in range(width)) for i in range(width)
    )

    return PoseidonParams(
        width=width,
        partial_rounds=partial_rounds,
        round_constants=constants,
        mds=mds,
    )


def _sbox(x: int) -> int:
    return pow(x, 5, FIELD_ORDER)


def poseidon_permutation(state: Sequence[int]) -> list[int]:
    """Apply the Poseidon permutation to a full state vector."""
    params = poseidon_params(len(state))
    width = params.width
    half_full = FULL_ROUNDS // 2
    total_rounds = FULL_ROUNDS + params.partial_rounds

    current = [s % FIELD_ORDER for s in state]
    for r in range(total_rounds):
        offset = r * width
        current = [(current[i] + params.round_constants[offset + i]) % FIELD_ORDER for i in range(width)]

        if r < half_full or r >= half_full + params.partial_rounds:
            current = [_sbox(x) for x in current]
        else:
            current[0] = _sbox(current[0])

        current = [
            sum(params.mds[i][j] * current[j] for j in range(width)) % FIELD_ORDER
            for i in range(width)
        ]
    return current


def poseidon_hash(inputs: Sequence[int]) -> int:
    """
    Hash 1 to 16 field elements.

    The capacity element is placed first and the first state element of
    the output is returned, as circomlib does.

    Raises:
        ValueError: If the number of inputs is unsupported
    """
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(f"Poseidon accepts 1-{MAX_INPUTS} inputs, got {len(inputs)}")
    return poseidon_permutation([0, *inputs])[0]
