"""Mutation operators for expression trees.

Every rule rewrites one node (or the subtree rooted at it) chosen uniformly
among the eligible positions, and returns a new Tree. Results that break the
length or depth bound are discarded and the parent is returned unchanged.

Rules:
- OnePointMutation: Gaussian perturbation of a leaf coefficient
- ChangeVariableMutation: point a variable leaf at another input column
- ChangeFunctionMutation: swap a function for another of the same arity
- ReplaceSubtreeMutation: regrow a subtree from scratch
- InsertSubtreeMutation: wrap a subtree in a new function node
- RemoveSubtreeMutation: hoist one child in place of its parent
- MultiMutation: weighted choice among the above
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from symforge.errors import BoundsViolation, ConfigError
from symforge.expression.nodes import Node
from symforge.expression.pset import PrimitiveSet
from symforge.expression.tree import Tree
from symforge.operators.creator import TreeCreator

logger = logging.getLogger(__name__)


def _pick(rng: np.random.Generator, indices: Sequence[int]) -> int:
    return indices[int(rng.integers(len(indices)))]


class Mutation(ABC):
    """Base class for bounded mutation rules.

    Args:
        max_length: Maximum length of the mutated tree
        max_depth: Maximum depth of the mutated tree
    """

    def __init__(self, max_length: int = 50, max_depth: int = 10):
        if max_length < 1 or max_depth < 1:
            raise ConfigError(
                f"max_length and max_depth must be >= 1, got {max_length}, {max_depth}"
            )
        self.max_length = max_length
        self.max_depth = max_depth

    @abstractmethod
    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        """Apply the rule. May return a tree that violates the bounds."""

    def __call__(self, rng: np.random.Generator, tree: Tree) -> Tree:
        try:
            return self.mutate(rng, tree).check_bounds(self.max_length, self.max_depth)
        except BoundsViolation as e:
            logger.debug(f"{type(self).__name__} discarded: {e}")
            return tree


class OnePointMutation(Mutation):
    """Add N(0, scale) noise to one leaf coefficient."""

    def __init__(self, scale: float = 1.0, **kwargs):
        super().__init__(**kwargs)
        self.scale = scale

    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        candidates = tree.coefficient_indices()
        if not candidates:
            return tree
        i = _pick(rng, candidates)
        node = tree[i]
        return tree.replace_node(i, node.with_value(node.value + rng.normal(0.0, self.scale)))


class ChangeVariableMutation(Mutation):
    """Replace the column referenced by one variable leaf.

    Args:
        variables: Hashes of the input variables to choose from
    """

    def __init__(self, variables: Sequence[int], **kwargs):
        super().__init__(**kwargs)
        self.variables = list(variables)

    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        candidates = [i for i, n in enumerate(tree) if n.is_variable]
        if not candidates or not self.variables:
            return tree
        i = _pick(rng, candidates)
        node = tree[i]
        new_hash = self.variables[int(rng.integers(len(self.variables)))]
        return tree.replace_node(i, Node.variable(new_hash, node.value))


class ChangeFunctionMutation(Mutation):
    """Replace one function symbol with a different enabled symbol of the same arity."""

    def __init__(self, pset: PrimitiveSet, **kwargs):
        super().__init__(**kwargs)
        self.pset = pset

    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        candidates = tree.function_indices()
        if not candidates:
            return tree
        i = _pick(rng, candidates)
        current = tree[i].type
        options = [t for t in self.pset.symbols_with_arity(current.arity) if t != current]
        if not options:
            return tree
        weights = np.array([self.pset.frequency(t) for t in options])
        new_type = options[int(rng.choice(len(options), p=weights / weights.sum()))]
        return tree.replace_node(i, Node.function(new_type))


class ReplaceSubtreeMutation(Mutation):
    """Replace a random subtree with a freshly created one that fits the remaining budget."""

    def __init__(self, creator: TreeCreator, **kwargs):
        super().__init__(**kwargs)
        self.creator = creator

    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        i = int(rng.integers(tree.length))
        length_budget = self.max_length - (tree.length - tree.subtree_size(i))
        depth_budget = self.max_depth - (int(tree.levels[i]) - 1)
        if length_budget < 1 or depth_budget < 1:
            return tree
        target = int(rng.integers(1, length_budget + 1))
        subtree = self.creator.create(rng, target, depth_budget)
        return tree.replace_subtree(i, subtree.nodes)


class InsertSubtreeMutation(Mutation):
    """Wrap a random subtree in a new function node.

    The wrapped subtree becomes one operand of the new function; the other
    operands are created fresh.
    """

    def __init__(self, creator: TreeCreator, pset: PrimitiveSet, **kwargs):
        super().__init__(**kwargs)
        self.creator = creator
        self.pset = pset

    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        i = int(rng.integers(tree.length))
        # New function node plus one leaf per extra operand at minimum.
        spare = self.max_length - tree.length
        if spare < 1 or int(tree.levels[i]) + int(tree.depths[i]) > self.max_depth:
            return tree
        candidates = self.pset.symbols_with_arity(1, spare)
        if not candidates:
            return tree
        weights = np.array([self.pset.frequency(t) for t in candidates])
        function = candidates[int(rng.choice(len(candidates), p=weights / weights.sum()))]

        position = int(rng.integers(function.arity))
        budget = spare - 1
        depth_budget = self.max_depth - int(tree.levels[i])
        fresh = function.arity - 1
        operands: list[tuple[Node, ...]] = []
        for k in range(function.arity):
            if k == position:
                operands.append(tree.subtree(i))
                continue
            fresh -= 1
            # Leave at least one node for every operand still to be created.
            cap = max(1, budget - fresh)
            sibling = self.creator.create(rng, int(rng.integers(1, cap + 1)), depth_budget)
            budget -= sibling.length
            operands.append(sibling.nodes)

        nodes: list[Node] = []
        for operand in operands:
            nodes.extend(operand)
        nodes.append(Node.function(function))
        return tree.replace_subtree(i, nodes)


class RemoveSubtreeMutation(Mutation):
    """Replace a function node by one of its children (hoisting)."""

    def mutate(self, rng: np.random.Generator, tree: Tree) -> Tree:
        candidates = tree.function_indices()
        if not candidates:
            return tree
        i = _pick(rng, candidates)
        child = _pick(rng, tree.children(i))
        return tree.replace_subtree(i, tree.subtree(child))


class MultiMutation:
    """Weighted choice among mutation rules.

    Example:
        >>> mutation = MultiMutation()
        >>> mutation.add(OnePointMutation(), 1.0)
        >>> mutation.add(ChangeFunctionMutation(pset), 0.5)
        >>> child = mutation(rng, tree)
    """

    def __init__(self):
        self.rules: list[Mutation] = []
        self.weights: list[float] = []

    def add(self, rule: Mutation, weight: float = 1.0) -> "MultiMutation":
        if weight < 0:
            raise ConfigError(f"Mutation weight must be non-negative, got {weight}")
        self.rules.append(rule)
        self.weights.append(float(weight))
        return self

    def __len__(self) -> int:
        return len(self.rules)

    def __call__(self, rng: np.random.Generator, tree: Tree) -> Tree:
        total = sum(self.weights)
        if total <= 0:
            raise ConfigError("MultiMutation has no rule with positive weight")
        p = np.asarray(self.weights) / total
        rule = self.rules[int(rng.choice(len(self.rules), p=p))]
        return rule(rng, tree)


def default_mutation(
    pset: PrimitiveSet,
    creator: TreeCreator,
    variables: Sequence[int],
    max_length: int = 50,
    max_depth: int = 10,
) -> MultiMutation:
    """Build the standard rule mix used by the algorithms."""
    bounds = dict(max_length=max_length, max_depth=max_depth)
    mutation = MultiMutation()
    mutation.add(OnePointMutation(**bounds), 1.0)
    mutation.add(ChangeVariableMutation(variables, **bounds), 1.0)
    mutation.add(ChangeFunctionMutation(pset, **bounds), 1.0)
    mutation.add(ReplaceSubtreeMutation(creator, **bounds), 1.0)
    mutation.add(InsertSubtreeMutation(creator, pset, **bounds), 1.0)
    mutation.add(RemoveSubtreeMutation(**bounds), 1.0)
    return mutation
