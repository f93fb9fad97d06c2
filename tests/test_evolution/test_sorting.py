"""Tests for non-dominated sorting and crowding distance."""

import numpy as np
import pytest

from symforge.evolution import (
    EfficientNondominatedSorter,
    FastNondominatedSorter,
    Individual,
    assign_ranks,
    crowding_distance,
)
from symforge.evolution.individual import dominance_matrix
from symforge.expression import Node, Tree

SORTERS = [FastNondominatedSorter, EfficientNondominatedSorter]


def as_sets(fronts) -> list[set[int]]:
    return [set(int(i) for i in front) for front in fronts]


def brute_force_pareto_set(fitness: np.ndarray) -> set[int]:
    dominated = dominance_matrix(fitness).any(axis=0)
    return set(np.flatnonzero(~dominated).tolist())


@pytest.mark.parametrize("sorter_cls", SORTERS)
class TestSorters:
    """Properties both sorters must satisfy."""

    def test_simple_fronts(self, sorter_cls):
        fitness = np.array([
            [1.0, 4.0],
            [2.0, 2.0],
            [4.0, 1.0],
            [3.0, 3.0],
            [5.0, 5.0],
        ])
        fronts = sorter_cls()(fitness)
        assert as_sets(fronts) == [{0, 1, 2}, {3}, {4}]

    def test_front_zero_is_pareto_set(self, sorter_cls):
        fitness = np.random.default_rng(0).random((60, 3))
        fronts = sorter_cls()(fitness)
        assert as_sets(fronts)[0] == brute_force_pareto_set(fitness)

    def test_partition_and_rank_order(self, sorter_cls):
        """Every row in exactly one front; each member of front k>0 has a
        dominator in front k-1 and none in fronts >= k."""
        fitness = np.random.default_rng(1).integers(0, 6, size=(80, 2)).astype(float)
        fronts = sorter_cls()(fitness)
        dom = dominance_matrix(fitness)

        flat = np.concatenate(fronts)
        assert sorted(flat.tolist()) == list(range(80))

        for k, front in enumerate(fronts):
            later = np.concatenate(fronts[k:])
            for i in front:
                assert not dom[later, i].any()
                if k > 0:
                    assert dom[fronts[k - 1], i].any()

    def test_duplicates_share_a_front(self, sorter_cls):
        fitness = np.array([[1.0, 1.0], [1.0, 1.0], [2.0, 2.0]])
        assert as_sets(sorter_cls()(fitness)) == [{0, 1}, {2}]

    def test_degenerate_rows_sort_last(self, sorter_cls):
        fitness = np.array([[np.inf, np.inf], [1.0, 2.0], [np.inf, np.inf]])
        assert as_sets(sorter_cls()(fitness)) == [{1}, {0, 2}]

    def test_single_objective_is_total_order(self, sorter_cls):
        fitness = np.array([[3.0], [1.0], [2.0]])
        assert as_sets(sorter_cls()(fitness)) == [{1}, {2}, {0}]

    def test_empty_and_shape(self, sorter_cls):
        assert sorter_cls()(np.empty((0, 2))) == []
        with pytest.raises(ValueError):
            sorter_cls()(np.array([1.0, 2.0]))


class TestSorterAgreement:
    def test_efficient_matches_fast(self):
        rng = np.random.default_rng(2)
        for _ in range(10):
            fitness = rng.integers(0, 8, size=(50, 3)).astype(float)
            fast = as_sets(FastNondominatedSorter()(fitness))
            efficient = as_sets(EfficientNondominatedSorter()(fitness))
            assert fast == efficient

    def test_epsilon_merges_near_ties(self):
        fitness = np.array([[1.0, 1.0], [1.0, 1.0 + 1e-9]])
        exact = FastNondominatedSorter()(fitness)
        tolerant = FastNondominatedSorter()(fitness, epsilon=1e-6)

        assert len(exact) == 2
        assert as_sets(tolerant) == [{0, 1}]

    def test_efficient_with_epsilon_uses_fast(self):
        fitness = np.random.default_rng(3).random((30, 2))
        assert as_sets(EfficientNondominatedSorter()(fitness, 0.05)) == as_sets(
            FastNondominatedSorter()(fitness, 0.05)
        )


class TestCrowdingDistance:
    """Test the per-front diversity measure."""

    def test_boundaries_are_infinite(self):
        fitness = np.array([[1.0, 5.0], [2.0, 3.0], [3.0, 2.0], [5.0, 1.0]])
        distances = crowding_distance(fitness)

        assert np.isinf(distances[0]) and np.isinf(distances[3])
        assert np.all(np.isfinite(distances[1:3]))

    def test_interior_values(self):
        fitness = np.array([[0.0, 4.0], [1.0, 3.0], [4.0, 0.0]])
        distances = crowding_distance(fitness)
        # (4 - 0) / 4 on both objectives
        assert distances[1] == pytest.approx(2.0)

    def test_small_fronts(self):
        assert np.all(np.isinf(crowding_distance(np.array([[1.0, 2.0], [2.0, 1.0]]))))
        assert np.all(np.isinf(crowding_distance(np.array([[1.0, 2.0]]))))

    def test_constant_objective_is_skipped(self):
        fitness = np.array([[1.0, 0.0], [2.0, 0.0], [3.0, 0.0]])
        distances = crowding_distance(fitness)
        assert distances[1] == pytest.approx(1.0)

    def test_non_negative(self):
        fitness = np.random.default_rng(4).random((25, 3))
        assert np.all(crowding_distance(fitness) >= 0)


class TestAssignRanks:
    def test_sets_rank_and_distance(self):
        individuals = []
        for values in ([1.0, 3.0], [3.0, 1.0], [2.0, 2.0], [4.0, 4.0]):
            ind = Individual.unevaluated(Tree([Node.constant(0.0)]), 2)
            ind.set_fitness(values)
            individuals.append(ind)

        fronts = assign_ranks(individuals, FastNondominatedSorter())

        assert len(fronts) == 2
        assert [ind.rank for ind in individuals] == [0, 0, 0, 1]
        assert individuals[2].distance == pytest.approx(2.0)
        assert np.isinf(individuals[3].distance)

    def test_empty(self):
        assert assign_ranks([], FastNondominatedSorter()) == []
