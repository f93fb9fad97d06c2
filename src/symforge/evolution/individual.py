"""Individuals, Pareto dominance and comparators.

All objectives are minimised. An unevaluated Individual carries ``+inf`` in
every fitness slot, so it is dominated by anything that has been evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from symforge.expression.tree import Tree


@dataclass
class Individual:
    """Tree paired with a fixed-length fitness vector.

    Attributes:
        genotype: Expression tree
        fitness: Objective values (minimised)
        rank: Pareto front index (0 = non-dominated)
        distance: Crowding distance within the front
        evaluated: Whether ``fitness`` holds real values
    """

    genotype: Tree
    fitness: np.ndarray
    rank: int = 0
    distance: float = 0.0
    evaluated: bool = False

    @classmethod
    def unevaluated(cls, genotype: Tree, n_objectives: int) -> "Individual":
        return cls(genotype=genotype, fitness=np.full(n_objectives, np.inf))

    @property
    def n_objectives(self) -> int:
        return len(self.fitness)

    def __getitem__(self, objective: int) -> float:
        return float(self.fitness[objective])

    def set_fitness(self, values: np.ndarray) -> None:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self.fitness.shape:
            raise ValueError(
                f"Expected {len(self.fitness)} objective values, got {values.shape}"
            )
        # NaN compares false with everything; treat it as the worst value.
        self.fitness = np.where(np.isnan(values), np.inf, values)
        self.evaluated = True

    def copy(self) -> "Individual":
        """Copy with its own fitness array (trees are immutable and shared)."""
        return Individual(
            genotype=self.genotype,
            fitness=self.fitness.copy(),
            rank=self.rank,
            distance=self.distance,
            evaluated=self.evaluated,
        )

    def dominates(self, other: "Individual", epsilon: float = 0.0) -> bool:
        return dominates(self.fitness, other.fitness, epsilon)


def dominates(a: np.ndarray, b: np.ndarray, epsilon: float = 0.0) -> bool:
    """Check whether fitness ``a`` Pareto-dominates fitness ``b``.

    ``a`` dominates ``b`` when it is no worse in every objective and better
    by more than ``epsilon`` in at least one.
    """
    return bool(np.all(a <= b + epsilon) and np.any(a < b - epsilon))


def dominance_matrix(fitness: np.ndarray, epsilon: float = 0.0) -> np.ndarray:
    """Pairwise dominance for a (n, m) fitness matrix.

    Returns:
        Boolean (n, n) matrix, ``[i, j]`` is True when i dominates j
    """
    lhs = fitness[:, None, :]
    rhs = fitness[None, :, :]
    no_worse = np.all(lhs <= rhs + epsilon, axis=2)
    better = np.any(lhs < rhs - epsilon, axis=2)
    return no_worse & better


@dataclass(frozen=True)
class SingleObjectiveComparison:
    """Order individuals by one objective.

    Values within ``epsilon`` are ties; ties prefer the larger crowding
    distance and otherwise keep insertion order.
    """

    index: int = 0
    epsilon: float = 0.0

    def __call__(self, a: Individual, b: Individual) -> bool:
        """True if ``a`` is strictly better than ``b``."""
        fa, fb = a.fitness[self.index], b.fitness[self.index]
        if fa < fb - self.epsilon:
            return True
        if fb < fa - self.epsilon:
            return False
        return a.distance > b.distance

    def order(self, individuals: list[Individual]) -> np.ndarray:
        """Indices from best to worst (stable)."""
        values = np.array([ind.fitness[self.index] for ind in individuals])
        return np.argsort(values, kind="stable")


@dataclass(frozen=True)
class CrowdedComparison:
    """Order individuals by front rank, then by descending crowding distance."""

    def __call__(self, a: Individual, b: Individual) -> bool:
        if a.rank != b.rank:
            return a.rank < b.rank
        return a.distance > b.distance

    def order(self, individuals: list[Individual]) -> np.ndarray:
        ranks = np.array([ind.rank for ind in individuals])
        distances = np.array([ind.distance for ind in individuals])
        # lexsort keys are given last-primary; stable on full ties
        return np.lexsort((-distances, ranks))


def fitness_matrix(individuals: list[Individual]) -> np.ndarray:
    """Stack fitness vectors into an (n, m) array."""
    if not individuals:
        return np.empty((0, 0))
    return np.vstack([ind.fitness for ind in individuals])

