"""
Fixed-Depth Merkle Trees
========================

Poseidon Merkle trees with explicit sibling and direction arrays.

Nodes are stored level by level (leaves first) and addressed by index.
Empty leaves are zero. A direction bit of 0 means the running node is the
left child at that level.

Version: 0.1.0
"""

from collections.abc import Sequence
from dataclasses import dataclass

from zkarena.crypto.field import to_field
from zkarena.crypto.poseidon import poseidon_hash


@dataclass(frozen=True)
class MerkleProof:
    """Authentication path for one leaf."""

    leaf: int
    path_elements: tuple[int, ...]
    path_indices: tuple[int, ...]
    root: int

    @property
    def depth(self) -> int:
        return len(self.path_elements)

    @property
    def position(self) -> int:
        return leaf_position(self.path_indices)


def hash_pair(left: int, right: int) -> int:
    """Hash two child nodes into their parent."""
    return poseidon_hash([left, right])


def leaf_position(path_indices: Sequence[int]) -> int:
    """Leaf index encoded by a direction array (least significant level first)."""
    return sum(bit << level for level, bit in enumerate(path_indices))


def compute_root(leaf: int, path_elements: Sequence[int], path_indices: Sequence[int]) -> int:
    """
    Recompute a root from a leaf and its authentication path.

    Raises:
        ValueError: If the arrays differ in length or a direction is not a bit
    """
    if len(path_elements) != len(path_indices):
        raise ValueError("Path elements and indices must have the same length")

    node = to_field(leaf)
    for sibling, direction in zip(path_elements, path_indices):
        if direction not in (0, 1):
            raise ValueError(f"Path index must be 0 or 1, got {direction}")
        if direction == 0:
            node = hash_pair(node, sibling)
        else:
            node = hash_pair(sibling, node)
    return node


def verify_inclusion(proof: MerkleProof, expected_root: int, depth: int | None = None) -> bool:
    """Check that a proof recomputes to the expected root."""
    if depth is not None and proof.depth != depth:
        return False
    try:
        return compute_root(proof.leaf, proof.path_elements, proof.path_indices) == expected_root
    except ValueError:
        return False


class MerkleTree:
    """
    Fixed-depth binary Poseidon tree.

    Usage:
        tree = MerkleTree([leaf_a, leaf_b, leaf_c], depth=4)
        proof = tree.proof(2)
        assert verify_inclusion(proof, tree.root)
    """

    def __init__(self, leaves: Sequence[int], depth: int):
        if depth < 1:
            raise ValueError("Tree depth must be at least 1")
        capacity = 1 << depth
        if len(leaves) > capacity:
            raise ValueError(f"{len(leaves)} leaves exceed capacity {capacity} at depth {depth}")

        self.depth = depth
        level = [to_field(leaf) for leaf in leaves] + [0] * (capacity - len(leaves))
        self._levels: list[list[int]] = [level]
        while len(level) > 1:
            level = [hash_pair(level[i], level[i + 1]) for i in range(0, len(level), 2)]
            self._levels.append(level)

    @property
    def root(self) -> int:
        return self._levels[-1][0]

    @property
    def capacity(self) -> int:
        return len(self._levels[0])

    def leaf(self, index: int) -> int:
        return self._levels[0][index]

    def proof(self, index: int) -> MerkleProof:
        """
        Build the authentication path for a leaf index.

        Raises:
            IndexError: If the index is outside the tree
        """
        if not 0 <= index < self.capacity:
            raise IndexError(f"Leaf index {index} outside tree of {self.capacity}")

        elements = []
        indices = []
        position = index
        for level in self._levels[:-1]:
            indices.append(position & 1)
            elements.append(level[position ^ 1])
            position >>= 1

        return MerkleProof(
            leaf=self._levels[0][index],
            path_elements=tuple(elements),
            path_indices=tuple(indices),
            root=self.root,
        )
