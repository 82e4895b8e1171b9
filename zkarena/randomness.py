"""
Commit-Reveal Randomness
========================

Shared entropy from independently committed seeds.

Each participant commits SHA-256(seed), then reveals the seed. The shared
seed is SHA-256 over the seeds in participant-slot order, so it does not
depend on who revealed first. Every derived value (turn order, shuffles,
spawn placement, item layout) is a pure function of the shared seed and
public counters, never of clocks or block data.

Version: 0.1.0
"""

import hashlib
import secrets
from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel

from zkarena.crypto.field import FIELD_ORDER
from zkarena.errors import CommitmentMismatch, PhaseViolation

SEED_BYTES = 32


class SeedState(str, Enum):
    UNCOMMITTED = "uncommitted"
    COMMITTED = "committed"
    REVEALED = "revealed"


def hash_seed(seed: bytes) -> str:
    """Commitment to a seed as a hex digest."""
    return hashlib.sha256(seed).hexdigest()


class SeedCommitment(BaseModel):
    """One participant's seed through its lifecycle."""

    state: SeedState = SeedState.UNCOMMITTED
    seed_hash: str | None = None
    seed: str | None = None

    def commit(self, seed_hash: str) -> None:
        """
        Store the seed hash.

        Raises:
            PhaseViolation: If a hash was already committed
            ValueError: If the hash is not a SHA-256 hex digest
        """
        if self.state != SeedState.UNCOMMITTED:
            raise PhaseViolation("seed already committed")
        normalized = seed_hash.lower()
        if len(normalized) != 64 or any(c not in "0123456789abcdef" for c in normalized):
            raise ValueError("Seed hash must be a 32-byte hex digest")
        self.seed_hash = normalized
        self.state = SeedState.COMMITTED

    def reveal(self, seed: bytes) -> None:
        """
        Store the seed after checking it against the committed hash.

        Raises:
            PhaseViolation: If no hash is committed or the seed was revealed
            CommitmentMismatch: If the seed does not match the hash
        """
        if self.state != SeedState.COMMITTED:
            raise PhaseViolation(f"cannot reveal seed in state {self.state.value}")
        if hash_seed(seed) != self.seed_hash:
            raise CommitmentMismatch("revealed seed does not match commitment")
        self.seed = seed.hex()
        self.state = SeedState.REVEALED

    @property
    def revealed_bytes(self) -> bytes:
        if self.state != SeedState.REVEALED or self.seed is None:
            raise PhaseViolation("seed not revealed")
        return bytes.fromhex(self.seed)


def combine_seeds(seeds: Sequence[bytes]) -> bytes:
    """Shared seed from seeds given in slot order."""
    return hashlib.sha256(b"".join(seeds)).digest()


def shared_seed(commitments: Sequence[SeedCommitment]) -> bytes:
    """
    Shared seed once every participant has revealed.

    Raises:
        PhaseViolation: If any seed is still hidden
    """
    return combine_seeds([c.revealed_bytes for c in commitments])


def derive_int(seed: bytes, label: str, counter: int, modulus: int) -> int:
    """Uniform-enough integer in [0, modulus) for (label, counter)."""
    if modulus <= 0:
        raise ValueError("Modulus must be positive")
    digest = hashlib.sha256(seed + label.encode() + counter.to_bytes(8, "big")).digest()
    return int.from_bytes(digest, "big") % modulus


def first_actor(seed: bytes) -> int:
    """Slot that moves first: even last digest byte picks slot 0."""
    return 0 if hashlib.sha256(seed).digest()[-1] % 2 == 0 else 1


def shuffle(seed: bytes, n: int, label: str) -> list[int]:
    """Fisher-Yates permutation of range(n)."""
    order = list(range(n))
    for i in range(n - 1, 0, -1):
        j = derive_int(seed, label, i, i + 1)
        order[i], order[j] = order[j], order[i]
    return order


def seed_to_field(seed: bytes) -> int:
    """Shared seed as a circuit input."""
    return int.from_bytes(seed, "big") % FIELD_ORDER


def generate_seed() -> bytes:
    """Fresh participant seed."""
    return secrets.token_bytes(SEED_BYTES)
