"""Tests for offspring generation and the generational loop."""

import numpy as np
import pytest

from symforge.data import Problem
from symforge.errors import ConfigError, GrammarError
from symforge.evaluation import ErrorEvaluator
from symforge.evolution import (
    NSGA2,
    BasicOffspringGenerator,
    BroodOffspringGenerator,
    EfficientNondominatedSorter,
    GeneticAlgorithmConfig,
    GeneticProgrammingAlgorithm,
    Individual,
    StopReason,
    build_algorithm,
    dominates,
)
from symforge.evolution.generator import evaluate_tree
from symforge.expression import InfixParser, PrimitiveSet
from symforge.operators import (
    BalancedTreeCreator,
    SubtreeCrossover,
    TournamentSelector,
    default_mutation,
)
from symforge.random import Phase, RandomStreams

SMALL = GeneticAlgorithmConfig(population_size=20, generations=3, seed=7)


class TestOffspringGenerators:
    """Test one-slot offspring production."""

    @pytest.fixture
    def parts(self, xy_problem):
        variables = xy_problem.input_hashes
        creator = BalancedTreeCreator(xy_problem.pset, variables, max_length=15, max_depth=6)
        evaluator = ErrorEvaluator(xy_problem)
        rng = np.random.default_rng(0)
        population = [evaluate_tree(evaluator, creator.create(rng, 9))[0] for _ in range(10)]
        return {
            "evaluator": evaluator,
            "crossover": SubtreeCrossover(max_length=15, max_depth=6),
            "mutation": default_mutation(xy_problem.pset, creator, variables, 15, 6),
            "population": population,
        }

    def make(self, cls, parts, **kwargs):
        generator = cls(
            parts["evaluator"],
            parts["crossover"],
            parts["mutation"],
            TournamentSelector(tournament_size=2),
            **kwargs,
        )
        generator.prepare(parts["population"])
        return generator

    def test_basic_generator(self, parts):
        generator = self.make(BasicOffspringGenerator, parts)
        offspring = generator(np.random.default_rng(1))

        assert offspring.evaluations == 1
        assert offspring.individual.evaluated
        assert offspring.individual.genotype.length <= 15

    def test_same_stream_same_child(self, parts):
        generator = self.make(BasicOffspringGenerator, parts, mutation_probability=0.5)
        streams = RandomStreams(3)
        a = generator(streams.stream(Phase.RECOMBINE, 1, 4))
        b = generator(streams.stream(Phase.RECOMBINE, 1, 4))

        assert a.individual.genotype == b.individual.genotype

    def test_no_variation_copies_mother(self, parts):
        generator = self.make(
            BasicOffspringGenerator, parts, crossover_probability=0.0, mutation_probability=0.0
        )
        child = generator.recombine(np.random.default_rng(2))
        assert any(child is ind.genotype for ind in parts["population"])

    def test_brood_generator_keeps_best(self, parts):
        generator = self.make(BroodOffspringGenerator, parts, brood_size=4)
        offspring = generator(np.random.default_rng(3))

        assert offspring.evaluations == 4
        assert offspring.individual.evaluated

    def test_brood_size_validated(self, parts):
        with pytest.raises(ConfigError):
            self.make(BroodOffspringGenerator, parts, brood_size=0)


class TestGeneticProgramming:
    """Test the single-objective driver."""

    def test_scenario_run(self, xy_problem):
        """Population 50, 10 generations, seed 42."""
        config = GeneticAlgorithmConfig(population_size=50, generations=10, seed=42)
        result = build_algorithm(xy_problem, config, algorithm="gp").run()

        assert result.generations == 10
        assert result.stop_reason == StopReason.GENERATIONS
        assert len(result.pareto_front) > 0
        assert result.evaluation_count == 50 * 11
        assert len(result.population) == 50
        assert result.seed == 42
        assert all(ind.evaluated for ind in result.population)

    def test_best_never_gets_worse(self, xy_problem):
        result = build_algorithm(xy_problem, SMALL.replace(generations=6)).run()

        best = [stats.min_fitness[0] for stats in result.generation_stats]
        assert len(best) == 7
        assert all(b <= a for a, b in zip(best, best[1:]))

    def test_time_limit_zero_stops_after_initial_population(self, xy_problem):
        config = GeneticAlgorithmConfig(population_size=50, generations=10, seed=1, time_limit=0)
        result = build_algorithm(xy_problem, config).run()

        assert result.generations == 0
        assert result.evaluation_count == 50
        assert result.stop_reason == StopReason.TIME_LIMIT

    def test_evaluation_budget(self, xy_problem):
        config = GeneticAlgorithmConfig(population_size=50, generations=100, evaluations=120, seed=1)
        result = build_algorithm(xy_problem, config).run()

        assert result.stop_reason == StopReason.EVALUATIONS
        assert result.evaluation_count == 120
        assert result.generations == 2

    def test_zero_generations(self, xy_problem):
        result = build_algorithm(xy_problem, SMALL.replace(generations=0)).run()

        assert result.generations == 0
        assert result.evaluation_count == 20
        assert result.stop_reason == StopReason.GENERATIONS

    def test_deterministic_across_worker_counts(self, xy_problem):
        results = [
            build_algorithm(xy_problem, SMALL, n_workers=n).run() for n in (1, 4)
        ]
        first, second = ([ind.genotype for ind in r.population] for r in results)

        assert first == second
        np.testing.assert_array_equal(results[0].best.fitness, results[1].best.fitness)

    def test_different_seeds_differ(self, xy_problem):
        a = build_algorithm(xy_problem, SMALL).run()
        b = build_algorithm(xy_problem, SMALL.replace(seed=8)).run()
        assert [i.genotype for i in a.population] != [i.genotype for i in b.population]

    def test_random_seed_is_reported(self, xy_problem):
        result = build_algorithm(xy_problem, SMALL.replace(seed=None, generations=1)).run()
        assert isinstance(result.seed, int)
        assert result.seed >= 0

    def test_callback_once_per_generation(self, xy_problem):
        reports = []
        build_algorithm(xy_problem, SMALL.replace(generations=4)).run(on_generation=reports.append)

        assert [r.generation for r in reports] == [0, 1, 2, 3, 4]
        assert reports[0].evaluation_count == 20
        assert reports[-1].evaluation_count == 100
        assert all(r.best is not None for r in reports)

    def test_request_stop(self, xy_problem):
        algorithm = build_algorithm(xy_problem, SMALL.replace(generations=50))

        def stop_at_two(report):
            if report.generation == 2:
                algorithm.request_stop()

        result = algorithm.run(on_generation=stop_at_two)

        assert result.stop_reason == StopReason.CANCELLED
        assert result.generations == 2
        assert algorithm.generation == 2

    def test_warm_start(self, xy_problem):
        exact = InfixParser.parse("x * x + 0.5 * x", xy_problem.dataset)
        reports = []
        build_algorithm(xy_problem, SMALL.replace(generations=0)).run(
            on_generation=reports.append, warm_start=[exact]
        )

        assert reports[0].best.fitness[0] == pytest.approx(0.0, abs=1e-9)

    def test_rank_marks_ties_with_best(self, xy_problem):
        algorithm = build_algorithm(xy_problem, SMALL.replace(epsilon=0.1))
        individuals = []
        for value in (1.0, 1.05, 2.0):
            ind = Individual.unevaluated(InfixParser.parse("x", xy_problem.dataset), 1)
            ind.set_fitness([value])
            individuals.append(ind)

        algorithm.rank(individuals)
        assert [ind.rank for ind in individuals] == [0, 0, 1]

    def test_local_search_counted(self, xy_problem):
        result = build_algorithm(xy_problem, SMALL.replace(iterations=5, generations=1)).run()
        assert result.local_evaluation_count > 0
        assert result.summary()["local_evaluation_count"] == result.local_evaluation_count

    def test_isinstance(self, xy_problem):
        assert isinstance(build_algorithm(xy_problem, SMALL), GeneticProgrammingAlgorithm)


class TestNSGA2:
    """Test the multi-objective driver."""

    @pytest.mark.parametrize("sorter", [None, EfficientNondominatedSorter()])
    def test_front_is_non_dominated(self, xy_problem, sorter):
        algorithm = build_algorithm(
            xy_problem, SMALL.replace(population_size=30, epsilon=0.0), algorithm="nsga2", sorter=sorter
        )
        result = algorithm.run()

        assert isinstance(algorithm, NSGA2)
        assert result.population[0].n_objectives == 2
        front = result.pareto_front
        assert front
        for a in front:
            for b in result.population:
                assert not dominates(b.fitness, a.fitness)

    def test_second_objective_is_length(self, xy_problem):
        result = build_algorithm(xy_problem, SMALL, algorithm="nsga2").run()
        for ind in result.population:
            assert ind.fitness[1] == ind.genotype.length


class TestBuildAlgorithm:
    def test_unknown_algorithm(self, xy_problem):
        with pytest.raises(ConfigError):
            build_algorithm(xy_problem, SMALL, algorithm="cmaes")

    def test_invalid_config(self, xy_problem):
        with pytest.raises(ConfigError):
            build_algorithm(xy_problem, SMALL.replace(population_size=0))

    def test_grammar_without_leaves(self, xy_dataset):
        problem = Problem.from_dataset(
            xy_dataset, target="y", pset=PrimitiveSet(["add", "mul"])
        )
        with pytest.raises(GrammarError):
            build_algorithm(problem, SMALL)
