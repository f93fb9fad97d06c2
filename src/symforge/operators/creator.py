"""Random tree construction.

Provides two creation strategies:
- Grow: depth-first, each position picks any symbol that still fits the
  length and depth budget (tends toward small, irregular trees)
- Balanced: breadth-first, fills open argument slots until the target
  length is reached (produces lengths close to the target)

Both guarantee arity balance, ``length <= max_length`` and
``depth <= max_depth``. Leaves are forced once the depth or length budget is
exhausted, so construction always terminates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from typing import Sequence

import numpy as np

from symforge.errors import ConfigError, GrammarError
from symforge.expression.nodes import Node
from symforge.expression.pset import PrimitiveSet
from symforge.expression.tree import Tree
from symforge.expression.types import NodeType


class TreeCreator(ABC):
    """Base class for random tree creators.

    Args:
        pset: Primitive set to sample symbols from
        variables: Hashes of the variables leaves may reference
        max_length: Hard upper bound on tree length
        max_depth: Hard upper bound on tree depth
        constant_scale: Standard deviation of initial constant values
        variable_weight: Initial weight of variable leaves

    Raises:
        GrammarError: If the primitive set cannot terminate a tree
    """

    def __init__(
        self,
        pset: PrimitiveSet,
        variables: Sequence[int],
        max_length: int = 50,
        max_depth: int = 10,
        constant_scale: float = 1.0,
        variable_weight: float = 1.0,
    ):
        if max_length < 1 or max_depth < 1:
            raise ConfigError(
                f"max_length and max_depth must be >= 1, got {max_length}, {max_depth}"
            )
        self.pset = pset
        self.variables = list(variables)
        self.max_length = max_length
        self.max_depth = max_depth
        self.constant_scale = constant_scale
        self.variable_weight = variable_weight
        self._check_grammar()

    def _check_grammar(self) -> None:
        self.pset.validate()
        if not self._leaf_types():
            raise GrammarError(
                "Only variable leaves are enabled but no input variables were given"
            )

    def _leaf_types(self) -> list[NodeType]:
        leaves = self.pset.leaves
        if not self.variables:
            leaves = [t for t in leaves if t != NodeType.VARIABLE]
        return leaves

    def _sample_weighted(self, rng: np.random.Generator, candidates: list[NodeType]) -> NodeType:
        weights = np.array([self.pset.frequency(t) for t in candidates], dtype=np.float64)
        return candidates[int(rng.choice(len(candidates), p=weights / weights.sum()))]

    def make_leaf(self, rng: np.random.Generator) -> Node:
        """Sample a leaf node with an initialised coefficient."""
        leaf_type = self._sample_weighted(rng, self._leaf_types())
        if leaf_type == NodeType.CONSTANT:
            return Node.constant(rng.normal(0.0, self.constant_scale))
        hash_value = self.variables[int(rng.integers(len(self.variables)))]
        return Node.variable(hash_value, self.variable_weight)

    def make_function(self, rng: np.random.Generator, max_arity: int) -> Node | None:
        """Sample a function node with arity <= max_arity, or None if none fits."""
        candidates = self.pset.symbols_with_arity(1, max_arity)
        if not candidates:
            return None
        return Node.function(self._sample_weighted(rng, candidates))

    @abstractmethod
    def create(
        self,
        rng: np.random.Generator,
        target_length: int,
        max_depth: int | None = None,
    ) -> Tree:
        """Create a random tree.

        Args:
            rng: Random generator
            target_length: Desired length (clamped to ``max_length``)
            max_depth: Depth limit (defaults to the creator's)
        """


class GrowTreeCreator(TreeCreator):
    """Depth-first grow method bounded by length and depth."""

    def create(
        self,
        rng: np.random.Generator,
        target_length: int,
        max_depth: int | None = None,
    ) -> Tree:
        self._check_grammar()
        max_length = max(1, min(target_length, self.max_length))
        max_depth = min(max_depth or self.max_depth, self.max_depth)
        budget = max_length
        nodes: list[Node] = []

        def grow(depth: int, reserve: int) -> None:
            nonlocal budget
            # Nodes this subtree may use while leaving room for pending siblings.
            available = budget - reserve
            candidates = list(self._leaf_types())
            if depth < max_depth:
                candidates += self.pset.symbols_with_arity(1, available - 1)
            symbol = self._sample_weighted(rng, candidates)

            budget -= 1
            if symbol.is_leaf():
                nodes.append(self.make_leaf(rng))
                return
            arity = symbol.arity
            for k in range(arity):
                grow(depth + 1, reserve + (arity - k - 1))
            nodes.append(Node.function(symbol))

        grow(1, 0)
        return Tree(nodes)


class BalancedTreeCreator(TreeCreator):
    """Breadth-first creator targeting an exact length.

    Args:
        irregularity_bias: Probability of closing a slot with a leaf even
            when a function would still fit (0 = as bushy as possible)
    """

    def __init__(self, *args, irregularity_bias: float = 0.0, **kwargs):
        super().__init__(*args, **kwargs)
        if not 0.0 <= irregularity_bias <= 1.0:
            raise ConfigError(f"irregularity_bias must be in [0, 1], got {irregularity_bias}")
        self.irregularity_bias = irregularity_bias

    def create(
        self,
        rng: np.random.Generator,
        target_length: int,
        max_depth: int | None = None,
    ) -> Tree:
        self._check_grammar()
        target = max(1, min(target_length, self.max_length))
        max_depth = min(max_depth or self.max_depth, self.max_depth)

        root = None
        if target > 1 and max_depth > 1:
            root = self.make_function(rng, target - 1)
        if root is None:
            return Tree([self.make_leaf(rng)])

        # Breadth-first layout: node list, child lists and depths by position.
        layout: list[Node] = [root]
        children: list[list[int]] = [[]]
        depths = [1]
        queue: deque[int] = deque([0] * root.arity)
        open_slots = root.arity

        while queue:
            parent = queue.popleft()
            open_slots -= 1
            depth = depths[parent] + 1
            # Room left after this node while every other open slot still gets a leaf.
            max_arity = target - len(layout) - open_slots - 1

            node = None
            if depth < max_depth and max_arity >= 1 and rng.random() >= self.irregularity_bias:
                node = self.make_function(rng, max_arity)
            if node is None:
                node = self.make_leaf(rng)

            index = len(layout)
            layout.append(node)
            children.append([])
            depths.append(depth)
            children[parent].append(index)
            if not node.is_leaf:
                queue.extend([index] * node.arity)
                open_slots += node.arity

        postfix: list[Node] = []

        def emit(index: int) -> None:
            for child in children[index]:
                emit(child)
            postfix.append(layout[index])

        emit(0)
        return Tree(postfix)


class UniformInitializer:
    """Initial-population tree factory with uniformly distributed lengths.

    Args:
        creator: Tree creator to delegate to
        min_length: Smallest target length
        max_length: Largest target length (defaults to the creator's)
        max_depth: Depth limit (defaults to the creator's)
    """

    def __init__(
        self,
        creator: TreeCreator,
        min_length: int = 1,
        max_length: int | None = None,
        max_depth: int | None = None,
    ):
        self.creator = creator
        self.min_length = min_length
        self.max_length = max_length or creator.max_length
        self.max_depth = max_depth or creator.max_depth
        if not 1 <= self.min_length <= self.max_length:
            raise ConfigError(
                f"Need 1 <= min_length <= max_length, got {self.min_length}, {self.max_length}"
            )

    def __call__(self, rng: np.random.Generator) -> Tree:
        target = int(rng.integers(self.min_length, self.max_length + 1))
        return self.creator.create(rng, target, self.max_depth)
