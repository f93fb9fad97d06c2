"""Expression tree stored as a flat postfix sequence.

A tree like ``(x + 2.5) * y`` is held as the node sequence::

    x 2.5 + y *

Each node's children are the subsequences immediately preceding it. The tree
keeps parallel index arrays (subtree length, depth, level, parent), so all
structural queries are offset arithmetic on flat arrays; no node holds a
reference to another node.

Trees are immutable. Every edit returns a new Tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence
import hashlib

import numpy as np

from symforge.errors import BoundsViolation
from symforge.expression.nodes import Node
from symforge.expression.types import NodeType


@dataclass(eq=False)
class Tree:
    """Postfix expression tree.

    Attributes:
        nodes: Node sequence in postfix order
        lengths: Number of descendants of each node
        depths: Height of the subtree rooted at each node (leaf = 1)
        levels: Distance from the root (root = 1)
        parents: Parent index of each node (root = -1)
    """

    nodes: tuple[Node, ...]
    lengths: np.ndarray = field(init=False, repr=False)
    depths: np.ndarray = field(init=False, repr=False)
    levels: np.ndarray = field(init=False, repr=False)
    parents: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.nodes = tuple(self.nodes)
        self._update()

    def _update(self) -> None:
        """Derive the structural arrays and check arity balance."""
        n = len(self.nodes)
        if n == 0:
            raise ValueError("A tree needs at least one node")

        lengths = np.zeros(n, dtype=np.int64)
        depths = np.ones(n, dtype=np.int64)
        parents = np.full(n, -1, dtype=np.int64)

        stack: list[int] = []
        for i, node in enumerate(self.nodes):
            arity = node.arity
            if arity > len(stack):
                raise ValueError(
                    f"Node {i} ({node.type.symbol}) needs {arity} operands, "
                    f"only {len(stack)} available"
                )
            if arity:
                children = stack[-arity:]
                del stack[-arity:]
                lengths[i] = sum(lengths[c] + 1 for c in children)
                depths[i] = 1 + max(depths[c] for c in children)
                for c in children:
                    parents[c] = i
            stack.append(i)

        if len(stack) != 1:
            raise ValueError(
                f"Node sequence encodes {len(stack)} expressions, expected exactly one"
            )

        levels = np.ones(n, dtype=np.int64)
        for i in range(n - 2, -1, -1):
            levels[i] = levels[parents[i]] + 1

        self.lengths = lengths
        self.depths = depths
        self.levels = levels
        self.parents = parents

    # ------------------------------------------------------------------
    # Size and shape
    # ------------------------------------------------------------------

    @property
    def length(self) -> int:
        """Total number of nodes."""
        return len(self.nodes)

    @property
    def depth(self) -> int:
        return int(self.depths[-1])

    @property
    def root(self) -> Node:
        return self.nodes[-1]

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def is_within(self, max_length: int, max_depth: int) -> bool:
        return self.length <= max_length and self.depth <= max_depth

    def check_bounds(self, max_length: int, max_depth: int) -> "Tree":
        """Return self, or raise BoundsViolation if the tree is too large."""
        if not self.is_within(max_length, max_depth):
            raise BoundsViolation(self.length, self.depth, max_length, max_depth)
        return self

    # ------------------------------------------------------------------
    # Structure queries
    # ------------------------------------------------------------------

    def subtree_start(self, index: int) -> int:
        """Index of the first node of the subtree rooted at ``index``."""
        return index - int(self.lengths[index])

    def subtree_size(self, index: int) -> int:
        return int(self.lengths[index]) + 1

    def subtree(self, index: int) -> tuple[Node, ...]:
        """Node sequence of the subtree rooted at ``index``."""
        return self.nodes[self.subtree_start(index):index + 1]

    def children(self, index: int) -> list[int]:
        """Child indices in operand order (left to right)."""
        arity = self.nodes[index].arity
        result: list[int] = []
        j = index - 1
        for _ in range(arity):
            result.append(j)
            j -= int(self.lengths[j]) + 1
        result.reverse()
        return result

    def function_indices(self) -> list[int]:
        return [i for i, n in enumerate(self.nodes) if not n.is_leaf]

    def leaf_indices(self) -> list[int]:
        return [i for i, n in enumerate(self.nodes) if n.is_leaf]

    def variable_hashes(self) -> set[int]:
        return {n.hash for n in self.nodes if n.is_variable}

    # ------------------------------------------------------------------
    # Edits (all return new trees)
    # ------------------------------------------------------------------

    def replace_subtree(self, index: int, new_nodes: Sequence[Node]) -> "Tree":
        """Create a new tree with the subtree at ``index`` replaced."""
        if not 0 <= index < self.length:
            raise IndexError(f"Index {index} out of range (tree length: {self.length})")
        start = self.subtree_start(index)
        return Tree(self.nodes[:start] + tuple(new_nodes) + self.nodes[index + 1:])

    def replace_node(self, index: int, node: Node) -> "Tree":
        """Create a new tree with one node swapped for another of equal arity."""
        if node.arity != self.nodes[index].arity:
            raise ValueError(
                f"Arity mismatch: {node.type.symbol} ({node.arity}) vs "
                f"{self.nodes[index].type.symbol} ({self.nodes[index].arity})"
            )
        nodes = list(self.nodes)
        nodes[index] = node
        return Tree(nodes)

    # ------------------------------------------------------------------
    # Coefficients
    # ------------------------------------------------------------------

    def coefficient_indices(self) -> list[int]:
        return [i for i, n in enumerate(self.nodes) if n.has_coefficient]

    @property
    def coefficients(self) -> np.ndarray:
        """Values of all tunable leaves, in sequence order."""
        return np.array(
            [n.value for n in self.nodes if n.has_coefficient], dtype=np.float64
        )

    def with_coefficients(self, values: Sequence[float]) -> "Tree":
        """Create a new tree with the tunable leaf values replaced."""
        indices = self.coefficient_indices()
        if len(values) != len(indices):
            raise ValueError(f"Expected {len(indices)} coefficients, got {len(values)}")
        nodes = list(self.nodes)
        for i, value in zip(indices, values):
            nodes[i] = nodes[i].with_value(value)
        return Tree(nodes)

    # ------------------------------------------------------------------
    # Interpreter encoding
    # ------------------------------------------------------------------

    def opcodes(self) -> np.ndarray:
        return np.array([int(n.type) for n in self.nodes], dtype=np.int64)

    def values(self) -> np.ndarray:
        return np.array([n.value for n in self.nodes], dtype=np.float64)

    # ------------------------------------------------------------------
    # Hashing and equality
    # ------------------------------------------------------------------

    def structural_hash(self, include_coefficients: bool = False) -> int:
        """64-bit hash of the expression structure.

        Operands of commutative symbols are hashed order-independently, so
        ``x + y`` and ``y + x`` collide on purpose.
        """
        hashes: list[bytes] = [b""] * self.length
        for i, node in enumerate(self.nodes):
            h = hashlib.blake2b(digest_size=8)
            h.update(node.hash.to_bytes(8, "little"))
            if include_coefficients and node.is_leaf:
                h.update(np.float64(node.value).tobytes())
            child_hashes = [hashes[c] for c in self.children(i)]
            if node.type.is_commutative():
                child_hashes.sort()
            for ch in child_hashes:
                h.update(ch)
            hashes[i] = h.digest()
        return int.from_bytes(hashes[-1], "little")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tree):
            return NotImplemented
        return self.nodes == other.nodes

    def __hash__(self) -> int:
        return hash(self.nodes)

    def __repr__(self) -> str:
        return f"Tree({' '.join(str(n) for n in self.nodes)}, length={self.length}, depth={self.depth})"


def count_symbols(tree: Tree) -> dict[NodeType, int]:
    """Count occurrences of each symbol in a tree."""
    counts: dict[NodeType, int] = {}
    for node in tree:
        counts[node.type] = counts.get(node.type, 0) + 1
    return counts
