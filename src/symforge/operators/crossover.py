"""Crossover operators for expression trees.

Subtree crossover splices a random subtree of the second parent into a random
position of the first. Cut points are biased toward function nodes so that
recombination moves structure rather than single leaves.
"""

from __future__ import annotations

import logging

import numpy as np

from symforge.errors import BoundsViolation, ConfigError
from symforge.expression.tree import Tree

logger = logging.getLogger(__name__)


def select_cut_point(
    rng: np.random.Generator,
    tree: Tree,
    internal_probability: float,
) -> int:
    """Pick a node index, preferring function nodes with the given probability."""
    functions = tree.function_indices()
    if functions and rng.random() < internal_probability:
        return functions[int(rng.integers(len(functions)))]
    leaves = tree.leaf_indices()
    return leaves[int(rng.integers(len(leaves)))]


class SubtreeCrossover:
    """Subtree crossover with bounded retries.

    Args:
        internal_probability: Probability of cutting at a function node
        max_length: Maximum child length
        max_depth: Maximum child depth
        max_attempts: Cut point pairs to try before giving up

    When no attempted pair yields a child within bounds, the first parent is
    returned unchanged.
    """

    def __init__(
        self,
        internal_probability: float = 0.9,
        max_length: int = 50,
        max_depth: int = 10,
        max_attempts: int = 10,
    ):
        if not 0.0 <= internal_probability <= 1.0:
            raise ConfigError(
                f"internal_probability must be in [0, 1], got {internal_probability}"
            )
        if max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {max_attempts}")
        self.internal_probability = internal_probability
        self.max_length = max_length
        self.max_depth = max_depth
        self.max_attempts = max_attempts

    def __call__(self, rng: np.random.Generator, lhs: Tree, rhs: Tree) -> Tree:
        """Produce one child from two parents.

        Args:
            rng: Random generator
            lhs: Parent receiving the subtree
            rhs: Parent donating the subtree

        Returns:
            A new tree within bounds, or ``lhs`` unchanged
        """
        for _ in range(self.max_attempts):
            i = select_cut_point(rng, lhs, self.internal_probability)
            j = select_cut_point(rng, rhs, self.internal_probability)

            length = lhs.length - lhs.subtree_size(i) + rhs.subtree_size(j)
            if length > self.max_length:
                continue
            if int(lhs.levels[i]) - 1 + int(rhs.depths[j]) > self.max_depth:
                continue

            try:
                return lhs.replace_subtree(i, rhs.subtree(j)).check_bounds(
                    self.max_length, self.max_depth
                )
            except BoundsViolation:
                continue

        logger.debug(
            f"Crossover found no splice within bounds after {self.max_attempts} attempts"
        )
        return lhs
