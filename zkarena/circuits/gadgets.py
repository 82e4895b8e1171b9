"""
Constraint Gadgets
==================

Reusable checks for transition circuits, written in the arithmetic style
of circomlib: comparisons go through bit decomposition, selections go
through one-hot vectors and compound validity is the product of bits.

Gadgets that cannot produce a witness at all (a value that does not fit
its bit width, a malformed Merkle path) raise ConstraintViolation.
Gadgets that answer a question return a bit and leave enforcement to the
caller's validity product.

Version: 0.1.0
"""

from collections.abc import Sequence
from dataclasses import dataclass

from zkarena.crypto.commitment import commit
from zkarena.crypto.merkle import compute_root, leaf_position
from zkarena.crypto.poseidon import poseidon_hash
from zkarena.errors import ConstraintViolation

DEFAULT_BITS = 64

# Wide enough for squared distances and LP products
WIDE_BITS = 192

Point = tuple[int, int, int]


@dataclass(frozen=True)
class Comparison:
    """Mutually exclusive comparison bits."""

    lt: int
    eq: int
    gt: int


# ============================================================================
# Bits and equality
# ============================================================================


def assert_bit(x: int, label: str = "bit") -> int:
    if x not in (0, 1):
        raise ConstraintViolation(f"{label}: expected a bit, got {x}")
    return x


def assert_equal(a: int, b: int, label: str) -> None:
    if a != b:
        raise ConstraintViolation(label)


def num_bits(x: int, n: int, label: str = "num_bits") -> list[int]:
    """Decompose x into n little-endian bits."""
    if x < 0 or x >= 1 << n:
        raise ConstraintViolation(f"{label}: value does not fit in {n} bits")
    return [(x >> i) & 1 for i in range(n)]


def is_zero(x: int) -> int:
    return 1 if x == 0 else 0


def is_equal(a: int, b: int) -> int:
    return is_zero(a - b)


# ============================================================================
# Comparisons and ranges
# ============================================================================


def less_than(a: int, b: int, bits: int = DEFAULT_BITS) -> int:
    """1 if a < b. Requires |a - b| < 2**bits."""
    decomposed = num_bits(a + (1 << bits) - b, bits + 1, "less_than")
    return 1 - decomposed[bits]


def less_equal(a: int, b: int, bits: int = DEFAULT_BITS) -> int:
    return less_than(a, b + 1, bits)


def compare(a: int, b: int, bits: int = DEFAULT_BITS) -> Comparison:
    lt = less_than(a, b, bits)
    eq = is_equal(a, b)
    return Comparison(lt=lt, eq=eq, gt=1 - lt - eq)


def range_check(x: int, lo: int, hi: int, label: str, bits: int = DEFAULT_BITS) -> int:
    """
    Enforce lo <= x <= hi.

    Both differences are decomposed into bits, so no division is needed.
    """
    num_bits(x - lo, bits, f"{label} below {lo}")
    num_bits(hi - x, bits, f"{label} above {hi}")
    return x


def in_range(x: int, lo: int, hi: int, bits: int = DEFAULT_BITS) -> int:
    """Bit form of range_check."""
    return less_equal(lo, x, bits) * less_equal(x, hi, bits)


def min_of(a: int, b: int, bits: int = DEFAULT_BITS) -> int:
    lt = less_than(a, b, bits)
    return lt * a + (1 - lt) * b


def clamped_sub(a: int, b: int, bits: int = DEFAULT_BITS) -> tuple[int, int]:
    """
    Subtract without underflow.

    Returns:
        (max(a - b, 0), is_negative)
    """
    is_negative = less_than(a, b, bits)
    return (1 - is_negative) * (a - b), is_negative


def divmod_checked(x: int, divisor: int, label: str) -> tuple[int, int]:
    """Quotient and remainder with the remainder range-checked."""
    quotient, remainder = divmod(x, divisor)
    range_check(remainder, 0, divisor - 1, f"{label} remainder")
    assert_equal(quotient * divisor + remainder, x, f"{label} division")
    return quotient, remainder


# ============================================================================
# Selection and aggregation
# ============================================================================


def one_hot(index: int, n: int, label: str = "index") -> list[int]:
    range_check(index, 0, n - 1, label)
    return [is_equal(index, i) for i in range(n)]


def select_by_index(values: Sequence[int], index: int, label: str = "index") -> int:
    """Pick values[index] as a selector sum, so every entry takes part."""
    selector = one_hot(index, len(values), label)
    return sum(v * s for v, s in zip(values, selector))


def all_of(bits: Sequence[int]) -> int:
    result = 1
    for bit in bits:
        result *= assert_bit(bit)
    return result


def any_of(bits: Sequence[int]) -> int:
    none = 1
    for bit in bits:
        none *= 1 - assert_bit(bit)
    return 1 - none


# ============================================================================
# Geometry
# ============================================================================


def dot(u: Point, v: Point) -> int:
    return u[0] * v[0] + u[1] * v[1] + u[2] * v[2]


def cross(u: Point, v: Point) -> Point:
    return (
        u[1] * v[2] - u[2] * v[1],
        u[2] * v[0] - u[0] * v[2],
        u[0] * v[1] - u[1] * v[0],
    )


def sub(u: Point, v: Point) -> Point:
    return (u[0] - v[0], u[1] - v[1], u[2] - v[2])


def squared_distance(p: Point, q: Point) -> int:
    d = sub(p, q)
    return dot(d, d)


# ============================================================================
# Commitments and membership
# ============================================================================


def commitment_matches(values: Sequence[int], salt: int, expected: int) -> int:
    """Recompute a commitment and compare it with the supplied one."""
    return is_equal(commit(values, salt), expected)


def merkle_root(
    leaf: int,
    path_elements: Sequence[int],
    path_indices: Sequence[int],
    depth: int,
) -> tuple[int, int]:
    """
    Recompute a Merkle root from a fixed-depth path.

    Returns:
        (root, leaf position)
    """
    if len(path_elements) != depth or len(path_indices) != depth:
        raise ConstraintViolation(f"merkle path must have depth {depth}")
    for bit in path_indices:
        assert_bit(bit, "merkle direction")
    return compute_root(leaf, path_elements, path_indices), leaf_position(path_indices)


def merkle_inclusion(
    leaf: int,
    path_elements: Sequence[int],
    path_indices: Sequence[int],
    root: int,
    depth: int,
) -> int:
    computed, _ = merkle_root(leaf, path_elements, path_indices, depth)
    return is_equal(computed, root)


def permutation_from_seed(seed: int, n: int) -> list[int]:
    """Fisher-Yates permutation of range(n) driven by Poseidon(seed, i)."""
    order = list(range(n))
    for i in range(n - 1, 0, -1):
        _, j = divmod_checked(poseidon_hash([seed, i]), i + 1, "shuffle")
        order[i], order[j] = order[j], order[i]
    return order
