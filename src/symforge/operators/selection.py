"""Parent selection.

Provides selection strategies:
- Tournament selection: best of k individuals drawn without replacement
- Proportional selection: roulette wheel on one (minimised) objective
- Random selection: uniform draw

A selector is prepared once per generation with the ranked population, then
called once per parent with the slot's random generator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

import numpy as np

from symforge.errors import ConfigError
from symforge.evolution.individual import CrowdedComparison, Individual

Comparison = Callable[[Individual, Individual], bool]


class Selector(ABC):
    """Base class for parent selectors."""

    def __init__(self):
        self.population: Sequence[Individual] = ()

    def prepare(self, population: Sequence[Individual]) -> None:
        """Bind the population parents are drawn from."""
        if not population:
            raise ValueError("Cannot select from an empty population")
        self.population = population

    @abstractmethod
    def select(self, rng: np.random.Generator) -> int:
        """Return the population index of the selected parent."""

    def __call__(self, rng: np.random.Generator) -> Individual:
        return self.population[self.select(rng)]


class TournamentSelector(Selector):
    """k-way tournament.

    Contestants are drawn uniformly without replacement and visited in
    population order; a contestant replaces the current winner only when the
    comparison judges it strictly better, so ties go to the lower index.

    Args:
        comparison: ``comparison(a, b)`` is True when a beats b
        tournament_size: Number of contestants
    """

    def __init__(self, comparison: Comparison | None = None, tournament_size: int = 2):
        super().__init__()
        if tournament_size < 1:
            raise ConfigError(f"tournament_size must be >= 1, got {tournament_size}")
        self.comparison = comparison or CrowdedComparison()
        self.tournament_size = tournament_size

    def select(self, rng: np.random.Generator) -> int:
        n = len(self.population)
        k = min(self.tournament_size, n)
        contestants = np.sort(rng.choice(n, size=k, replace=False))
        best = int(contestants[0])
        for i in contestants[1:]:
            if self.comparison(self.population[i], self.population[best]):
                best = int(i)
        return best


class ProportionalSelector(Selector):
    """Fitness-proportional (roulette wheel) selection on one objective.

    Since objectives are minimised, each individual's weight is its distance
    from the worst finite value. Non-finite fitness gets zero weight.

    Args:
        index: Objective to select on
    """

    def __init__(self, index: int = 0):
        super().__init__()
        self.index = index
        self._probabilities: np.ndarray = np.empty(0)

    def prepare(self, population: Sequence[Individual]) -> None:
        super().prepare(population)
        values = np.array([ind.fitness[self.index] for ind in population], dtype=np.float64)
        finite = np.isfinite(values)
        weights = np.zeros(len(values))
        if finite.any():
            worst = values[finite].max()
            weights[finite] = worst - values[finite]
        if weights.sum() <= 0:
            # Nothing to prefer: all equal or all degenerate
            weights = np.ones(len(values))
        self._probabilities = weights / weights.sum()

    def select(self, rng: np.random.Generator) -> int:
        return int(rng.choice(len(self.population), p=self._probabilities))


class RandomSelector(Selector):
    """Uniform random selection."""

    def select(self, rng: np.random.Generator) -> int:
        return int(rng.integers(len(self.population)))
