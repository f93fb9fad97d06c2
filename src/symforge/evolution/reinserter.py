"""Reinsertion (environmental selection).

A reinserter merges the current population with a batch of evaluated
offspring and returns exactly ``size`` individuals for the next generation.
Survivors are copied, so no Individual object is shared between
generations. Ties are broken by stable sorts over the input order, so the
result is deterministic for a given input.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, Sequence

import numpy as np

from symforge.evolution.individual import Individual, SingleObjectiveComparison
from symforge.evolution.sorting import (
    FastNondominatedSorter,
    NondominatedSorter,
    assign_ranks,
)


class OrderedComparison(Protocol):
    def order(self, individuals: list[Individual]) -> np.ndarray: ...


def _fill(pool: Sequence[Individual], size: int) -> list[Individual]:
    """Cycle through ``pool`` until ``size`` copies are taken."""
    if not pool:
        raise ValueError("Cannot fill a population from nothing")
    return [pool[i % len(pool)].copy() for i in range(size)]


class Reinserter(ABC):
    """Base class for reinsertion policies."""

    @abstractmethod
    def __call__(
        self,
        parents: Sequence[Individual],
        offspring: Sequence[Individual],
        size: int,
    ) -> list[Individual]:
        """Produce the next population of exactly ``size`` individuals."""


class ReplaceWorstReinserter(Reinserter):
    """Offspring replace the worst parents.

    The best ``size - len(offspring)`` parents survive and all offspring
    enter (the best ``size`` of them, if there are more).
    """

    def __init__(self, comparison: OrderedComparison | None = None):
        self.comparison = comparison or SingleObjectiveComparison()

    def __call__(self, parents, offspring, size):
        parents, offspring = list(parents), list(offspring)
        ranked_offspring = [offspring[i] for i in self.comparison.order(offspring)] if offspring else []
        ranked_parents = [parents[i] for i in self.comparison.order(parents)] if parents else []
        n_offspring = min(len(ranked_offspring), size)
        survivors = ranked_parents[: size - n_offspring] + ranked_offspring[:n_offspring]
        if len(survivors) < size:
            return _fill(survivors, size)
        return [ind.copy() for ind in survivors]


class KeepBestReinserter(Reinserter):
    """The best ``size`` of parents and offspring together survive."""

    def __init__(self, comparison: OrderedComparison | None = None):
        self.comparison = comparison or SingleObjectiveComparison()

    def __call__(self, parents, offspring, size):
        combined = list(parents) + list(offspring)
        ranked = [combined[i] for i in self.comparison.order(combined)]
        if len(ranked) < size:
            return _fill(ranked, size)
        return [ind.copy() for ind in ranked[:size]]


class GenerationalReinserter(Reinserter):
    """Offspring replace the parents entirely.

    Surplus offspring are dropped in order; a shortfall is padded with the
    best parents.
    """

    def __init__(self, comparison: OrderedComparison | None = None):
        self.comparison = comparison or SingleObjectiveComparison()

    def __call__(self, parents, offspring, size):
        survivors = list(offspring)[:size]
        if len(survivors) < size and parents:
            parents = list(parents)
            ranked_parents = [parents[i] for i in self.comparison.order(parents)]
            survivors += ranked_parents[: size - len(survivors)]
        if len(survivors) < size:
            return _fill(survivors, size)
        return [ind.copy() for ind in survivors]


class RankCrowdingReinserter(Reinserter):
    """Pareto-elitist survival (NSGA-II).

    Parents and offspring are sorted into fronts; whole fronts are admitted
    while they fit and the last partial front is filled by descending
    crowding distance. Survivors carry rank and distance from the merged
    sort.

    Args:
        sorter: Non-dominated sorter
        epsilon: Dominance tolerance
    """

    def __init__(self, sorter: NondominatedSorter | None = None, epsilon: float = 0.0):
        self.sorter = sorter or FastNondominatedSorter()
        self.epsilon = epsilon

    def __call__(self, parents, offspring, size):
        combined = [ind.copy() for ind in list(parents) + list(offspring)]
        if len(combined) <= size:
            assign_ranks(combined, self.sorter, self.epsilon)
            return _fill(combined, size) if len(combined) < size else combined

        fronts = assign_ranks(combined, self.sorter, self.epsilon)
        selected: list[Individual] = []
        for front in fronts:
            if len(selected) + len(front) <= size:
                selected.extend(combined[i] for i in front)
                if len(selected) == size:
                    break
                continue
            n_needed = size - len(selected)
            members = [combined[i] for i in front]
            distances = np.array([m.distance for m in members])
            order = np.argsort(-distances, kind="stable")
            selected.extend(members[i] for i in order[:n_needed])
            break
        return selected
