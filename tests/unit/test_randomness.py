"""
Unit tests for commit-reveal randomness.
"""

import pytest

from zkarena.errors import CommitmentMismatch, PhaseViolation
from zkarena.randomness import (
    SeedCommitment,
    SeedState,
    combine_seeds,
    derive_int,
    first_actor,
    generate_seed,
    hash_seed,
    seed_to_field,
    shared_seed,
    shuffle,
)
from zkarena.crypto import FIELD_ORDER


class TestSeedCommitment:
    """Tests for the seed lifecycle."""

    def test_commit_then_reveal(self) -> None:
        """Test the happy path."""
        seed = generate_seed()
        commitment = SeedCommitment()
        commitment.commit(hash_seed(seed))
        commitment.reveal(seed)

        assert commitment.state == SeedState.REVEALED
        assert commitment.revealed_bytes == seed

    def test_hash_normalized(self) -> None:
        """Test that upper-case hex digests are accepted."""
        seed = generate_seed()
        commitment = SeedCommitment()
        commitment.commit(hash_seed(seed).upper())
        commitment.reveal(seed)
        assert commitment.state == SeedState.REVEALED

    def test_wrong_seed(self) -> None:
        """Test that a seed not matching the hash is a commitment mismatch."""
        commitment = SeedCommitment()
        commitment.commit(hash_seed(b"a" * 32))

        with pytest.raises(CommitmentMismatch):
            commitment.reveal(b"b" * 32)
        assert commitment.state == SeedState.COMMITTED

    def test_double_commit(self) -> None:
        """Test that a hash cannot be replaced."""
        commitment = SeedCommitment()
        commitment.commit(hash_seed(b"a"))
        with pytest.raises(PhaseViolation):
            commitment.commit(hash_seed(b"b"))

    def test_reveal_before_commit(self) -> None:
        """Test that revealing needs a commitment."""
        with pytest.raises(PhaseViolation):
            SeedCommitment().reveal(b"a")

    def test_malformed_hash(self) -> None:
        """Test that non-digest strings are rejected."""
        with pytest.raises(ValueError):
            SeedCommitment().commit("abc")
        with pytest.raises(ValueError):
            SeedCommitment().commit("z" * 64)


class TestDerivation:
    """Tests for values derived from the shared seed."""

    def test_shared_seed_slot_order(self) -> None:
        """Test that the shared seed follows slot order, not reveal order."""
        seeds = [b"\x01" * 32, b"\x02" * 32]
        commitments = []
        for seed in seeds:
            c = SeedCommitment()
            c.commit(hash_seed(seed))
            commitments.append(c)
        commitments[1].reveal(seeds[1])
        commitments[0].reveal(seeds[0])

        assert shared_seed(commitments) == combine_seeds(seeds)
        assert combine_seeds(seeds) != combine_seeds(list(reversed(seeds)))

    def test_shared_seed_needs_all_reveals(self) -> None:
        """Test that the shared seed waits for every reveal."""
        c = SeedCommitment()
        c.commit(hash_seed(b"x"))
        with pytest.raises(PhaseViolation):
            shared_seed([c])

    def test_derive_int(self) -> None:
        """Test determinism and range."""
        seed = b"\x05" * 32
        assert derive_int(seed, "label", 3, 10) == derive_int(seed, "label", 3, 10)
        assert all(0 <= derive_int(seed, "label", i, 7) < 7 for i in range(50))
        with pytest.raises(ValueError):
            derive_int(seed, "label", 0, 0)

    def test_shuffle_is_permutation(self) -> None:
        """Test that shuffles are deterministic permutations."""
        seed = generate_seed()
        order = shuffle(seed, 20, "deck")
        assert sorted(order) == list(range(20))
        assert order == shuffle(seed, 20, "deck")

    def test_first_actor(self) -> None:
        """Test that the first actor is a slot and both slots occur."""
        actors = {first_actor(bytes([i]) * 32) for i in range(32)}
        assert actors == {0, 1}

    def test_seed_to_field(self) -> None:
        """Test conversion into the circuit field."""
        assert 0 <= seed_to_field(b"\xff" * 32) < FIELD_ORDER
