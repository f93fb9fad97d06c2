"""Tests for parent selection."""

import numpy as np
import pytest

from symforge.errors import ConfigError
from symforge.evolution import Individual, SingleObjectiveComparison
from symforge.expression import Node, Tree
from symforge.operators import ProportionalSelector, RandomSelector, TournamentSelector


def make_population(values, ranks=None) -> list[Individual]:
    population = []
    for i, value in enumerate(values):
        ind = Individual.unevaluated(Tree([Node.constant(float(i))]), 1)
        ind.set_fitness([value])
        if ranks is not None:
            ind.rank = ranks[i]
        population.append(ind)
    return population


class TestTournamentSelector:
    """Test k-way tournament selection."""

    def test_full_tournament_picks_best(self):
        population = make_population([5.0, 1.0, 3.0, 2.0])
        selector = TournamentSelector(SingleObjectiveComparison(), tournament_size=4)
        selector.prepare(population)
        rng = np.random.default_rng(0)

        assert all(selector.select(rng) == 1 for _ in range(20))

    def test_ties_go_to_lower_index(self):
        population = make_population([1.0, 1.0, 1.0])
        selector = TournamentSelector(SingleObjectiveComparison(), tournament_size=3)
        selector.prepare(population)

        assert selector.select(np.random.default_rng(0)) == 0

    def test_crowded_comparison_by_default(self):
        population = make_population([0.0, 0.0], ranks=[1, 0])
        selector = TournamentSelector(tournament_size=2)
        selector.prepare(population)

        assert selector(np.random.default_rng(0)) is population[1]

    def test_tournament_larger_than_population(self):
        population = make_population([2.0, 1.0])
        selector = TournamentSelector(SingleObjectiveComparison(), tournament_size=7)
        selector.prepare(population)

        assert selector.select(np.random.default_rng(0)) == 1

    def test_selection_pressure(self):
        population = make_population(np.arange(20, dtype=float))
        selector = TournamentSelector(SingleObjectiveComparison(), tournament_size=3)
        selector.prepare(population)
        rng = np.random.default_rng(1)

        picks = [selector.select(rng) for _ in range(500)]
        assert np.mean(picks) < 7.0

    def test_repeatable(self):
        population = make_population(np.arange(10, dtype=float)[::-1])
        selector = TournamentSelector(SingleObjectiveComparison(), tournament_size=2)
        selector.prepare(population)

        first = [selector.select(np.random.default_rng(3)) for _ in range(5)]
        second = [selector.select(np.random.default_rng(3)) for _ in range(5)]
        assert first == second

    def test_invalid_size(self):
        with pytest.raises(ConfigError):
            TournamentSelector(tournament_size=0)

    def test_empty_population(self):
        with pytest.raises(ValueError):
            TournamentSelector().prepare([])


class TestProportionalSelector:
    def test_favours_low_values(self):
        population = make_population([0.0, 9.0, 10.0])
        selector = ProportionalSelector()
        selector.prepare(population)
        rng = np.random.default_rng(0)

        picks = [selector.select(rng) for _ in range(300)]
        # The worst finite value has zero weight
        assert 2 not in picks
        assert picks.count(0) > picks.count(1)

    def test_degenerate_fitness_never_selected(self):
        population = make_population([1.0, np.inf, 2.0])
        selector = ProportionalSelector()
        selector.prepare(population)
        rng = np.random.default_rng(0)

        assert 1 not in [selector.select(rng) for _ in range(100)]

    def test_uniform_when_all_equal(self):
        population = make_population([np.inf, np.inf, np.inf])
        selector = ProportionalSelector()
        selector.prepare(population)
        rng = np.random.default_rng(0)

        assert set(selector.select(rng) for _ in range(100)) == {0, 1, 2}


class TestRandomSelector:
    def test_covers_population(self):
        population = make_population([3.0, 2.0, 1.0, 0.0])
        selector = RandomSelector()
        selector.prepare(population)
        rng = np.random.default_rng(0)

        assert set(selector.select(rng) for _ in range(200)) == {0, 1, 2, 3}
