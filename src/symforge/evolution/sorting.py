"""Non-dominated sorting and crowding distance.

Provides:
- FastNondominatedSorter: vectorised dominance matrix, front peeling
- EfficientNondominatedSorter: lexicographic pre-sort, binary search
  over fronts (ENS-BS)
- crowding_distance: per-front diversity measure

Both sorters return the same partition: a list of fronts, each an ascending
array of row indices into the fitness matrix. All objectives are minimised.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np

from symforge.evolution.individual import Individual, dominance_matrix, fitness_matrix

logger = logging.getLogger(__name__)


class NondominatedSorter(ABC):
    """Partition a fitness matrix into Pareto fronts."""

    @abstractmethod
    def sort(self, fitness: np.ndarray, epsilon: float = 0.0) -> list[np.ndarray]:
        """Sort an (n, m) fitness matrix.

        Args:
            fitness: Objective values, one row per individual
            epsilon: Dominance tolerance

        Returns:
            Fronts in rank order; front 0 is the Pareto-optimal set
        """

    def __call__(self, fitness: np.ndarray, epsilon: float = 0.0) -> list[np.ndarray]:
        fitness = np.asarray(fitness, dtype=np.float64)
        if fitness.ndim != 2:
            raise ValueError(f"Fitness must be 2-dimensional, got shape {fitness.shape}")
        if len(fitness) == 0:
            return []
        return self.sort(fitness, epsilon)


class FastNondominatedSorter(NondominatedSorter):
    """Deb's fast non-dominated sort on a vectorised dominance matrix.

    O(M * N^2) time and O(N^2) memory.
    """

    def sort(self, fitness: np.ndarray, epsilon: float = 0.0) -> list[np.ndarray]:
        dominates = dominance_matrix(fitness, epsilon)
        remaining = np.ones(len(fitness), dtype=bool)
        fronts: list[np.ndarray] = []

        while remaining.any():
            # dominates[j, i]: j dominates i; only remaining j count
            is_dominated = (dominates & remaining[:, None]).any(axis=0) & remaining
            front = remaining & ~is_dominated
            if not front.any():
                # Tolerance-induced cycle: close out the remainder as one front
                front = remaining.copy()
            fronts.append(np.flatnonzero(front))
            remaining &= ~front

        return fronts


class EfficientNondominatedSorter(NondominatedSorter):
    """Efficient non-dominated sort with binary search (Zhang et al., 2015).

    Individuals are visited in lexicographic order, so an individual can only
    be dominated by ones already placed. Each is inserted into the first
    front that holds no dominator of it, found by binary search.

    The lexicographic argument requires exact dominance; with a positive
    ``epsilon`` the fast sorter is used instead.
    """

    def __init__(self):
        self._fallback = FastNondominatedSorter()

    def sort(self, fitness: np.ndarray, epsilon: float = 0.0) -> list[np.ndarray]:
        if epsilon > 0:
            logger.debug("Positive epsilon, using fast non-dominated sort")
            return self._fallback.sort(fitness, epsilon)

        # lexsort: last key is primary, so reverse the objective order
        order = np.lexsort(fitness.T[::-1])
        fronts: list[list[int]] = []

        for i in order:
            lo, hi = 0, len(fronts)
            while lo < hi:
                mid = (lo + hi) // 2
                if self._is_dominated(fitness, fronts[mid], i):
                    lo = mid + 1
                else:
                    hi = mid
            if lo == len(fronts):
                fronts.append([int(i)])
            else:
                fronts[lo].append(int(i))

        return [np.sort(np.array(front, dtype=np.int64)) for front in fronts]

    @staticmethod
    def _is_dominated(fitness: np.ndarray, front: list[int], i: int) -> bool:
        members = fitness[front]
        point = fitness[i]
        return bool(np.any(np.all(members <= point, axis=1) & np.any(members < point, axis=1)))


def crowding_distance(fitness: np.ndarray) -> np.ndarray:
    """Crowding distance of each row of one front.

    For every objective the front is sorted; boundary rows get ``inf`` and
    interior rows accumulate the gap between their neighbours, normalised by
    the objective's span. Objectives with a zero or non-finite span only
    mark their boundaries.

    Args:
        fitness: (n, m) objective values of one front

    Returns:
        Array of n distances
    """
    n, m = fitness.shape
    distances = np.zeros(n)
    if n < 3:
        distances[:] = np.inf
        return distances

    for j in range(m):
        sorted_idx = np.argsort(fitness[:, j], kind="stable")
        values = fitness[sorted_idx, j]

        distances[sorted_idx[0]] = np.inf
        distances[sorted_idx[-1]] = np.inf

        span = values[-1] - values[0]
        if not np.isfinite(span) or span == 0:
            continue

        distances[sorted_idx[1:-1]] += (values[2:] - values[:-2]) / span

    return distances


def assign_ranks(
    individuals: list[Individual],
    sorter: NondominatedSorter,
    epsilon: float = 0.0,
) -> list[np.ndarray]:
    """Set ``rank`` and ``distance`` on every individual in place.

    Returns:
        The fronts, as index arrays into ``individuals``
    """
    if not individuals:
        return []
    fitness = fitness_matrix(individuals)
    fronts = sorter(fitness, epsilon)
    for rank, front in enumerate(fronts):
        distances = crowding_distance(fitness[front])
        for idx, distance in zip(front, distances):
            individuals[idx].rank = rank
            individuals[idx].distance = float(distance)
    return fronts
