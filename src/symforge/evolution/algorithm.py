"""Generational evolutionary algorithms.

Implements the loop shared by both drivers:

1. Evaluate the initial population
2. Rank it (single-objective order or non-dominated sorting)
3. Produce the offspring pool slot by slot in a thread pool
4. Reinsert to form the next population, rank it
5. Stop when the generation, evaluation or time budget is used up

Stopping criteria are checked only between generations, so every returned
population is completely evaluated and ranked. Every offspring slot draws
from its own random stream derived from (seed, generation, slot), which makes
a run reproducible for any number of worker threads.
"""

from __future__ import annotations

import logging
import os
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import numpy as np

from symforge.data.problem import Problem
from symforge.errors import ConfigError
from symforge.evaluation.evaluator import ErrorEvaluator, Evaluator, LengthEvaluator, MultiEvaluator
from symforge.evolution.config import GeneticAlgorithmConfig
from symforge.evolution.generator import (
    BasicOffspringGenerator,
    Offspring,
    OffspringGenerator,
    evaluate_tree,
)
from symforge.evolution.individual import CrowdedComparison, Individual, SingleObjectiveComparison
from symforge.evolution.population import Population, PopulationStats, create_initial_population
from symforge.evolution.reinserter import (
    KeepBestReinserter,
    RankCrowdingReinserter,
    Reinserter,
)
from symforge.evolution.sorting import (
    FastNondominatedSorter,
    NondominatedSorter,
    assign_ranks,
)
from symforge.expression.tree import Tree
from symforge.operators.creator import BalancedTreeCreator, UniformInitializer
from symforge.operators.crossover import SubtreeCrossover
from symforge.operators.mutation import default_mutation
from symforge.operators.selection import TournamentSelector
from symforge.random import Phase, RandomStreams

logger = logging.getLogger(__name__)

# Default worker count for evaluation
N_EVAL_THREADS = min(os.cpu_count() or 4, 8)


class StopReason(str, Enum):
    GENERATIONS = "generations"
    EVALUATIONS = "evaluations"
    TIME_LIMIT = "time_limit"
    CANCELLED = "cancelled"


@dataclass
class GenerationReport:
    """Progress snapshot passed to ``on_generation`` after every generation.

    Attributes:
        generation: Generation just completed (0 = initial population)
        evaluation_count: Individuals evaluated so far
        local_evaluation_count: Local search residual evaluations so far
        elapsed: Seconds since the run started
        best: Best individual on the first objective
        pareto_front: Rank-0 individuals
        stats: Population statistics
    """

    generation: int
    evaluation_count: int
    local_evaluation_count: int
    elapsed: float
    best: Individual
    pareto_front: list[Individual]
    stats: PopulationStats


@dataclass
class AlgorithmResult:
    """Outcome of a run.

    Attributes:
        population: Final population
        pareto_front: Rank-0 individuals of the final population
        best: Best individual on the first objective
        generations: Generations completed
        evaluation_count: Individuals evaluated
        local_evaluation_count: Local search residual evaluations
        elapsed: Run time in seconds
        stop_reason: Criterion that ended the run
        seed: Seed actually used
        generation_stats: Statistics per generation, starting at generation 0
    """

    population: Population
    pareto_front: list[Individual]
    best: Individual
    generations: int
    evaluation_count: int
    local_evaluation_count: int
    elapsed: float
    stop_reason: StopReason
    seed: int
    generation_stats: list[PopulationStats] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "generations": self.generations,
            "evaluation_count": self.evaluation_count,
            "local_evaluation_count": self.local_evaluation_count,
            "elapsed": self.elapsed,
            "stop_reason": self.stop_reason.value,
            "seed": self.seed,
            "best_fitness": self.best.fitness.tolist(),
            "front_size": len(self.pareto_front),
        }


class GeneticAlgorithm(ABC):
    """Generational loop shared by the single- and multi-objective drivers.

    Args:
        config: Run configuration
        initializer: ``initializer(rng) -> Tree`` for the initial population
        generator: Offspring generator (owns evaluator and operators)
        reinserter: Survival policy
        n_workers: Worker threads (default: min(cpu count, 8))
    """

    def __init__(
        self,
        config: GeneticAlgorithmConfig,
        initializer: Callable[[np.random.Generator], Tree],
        generator: OffspringGenerator,
        reinserter: Reinserter,
        n_workers: int | None = None,
    ):
        self.config = config.validate()
        self.initializer = initializer
        self.generator = generator
        self.reinserter = reinserter
        self.n_workers = n_workers or N_EVAL_THREADS

        self._population = Population()
        self._generation = 0
        self._evaluation_count = 0
        self._local_evaluation_count = 0
        self._start: float | None = None
        self._elapsed = 0.0
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Progress surface
    # ------------------------------------------------------------------

    @property
    def evaluator(self) -> Evaluator:
        return self.generator.evaluator

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def evaluation_count(self) -> int:
        return self._evaluation_count

    @property
    def local_evaluation_count(self) -> int:
        return self._local_evaluation_count

    @property
    def elapsed(self) -> float:
        if self._start is None:
            return self._elapsed
        return time.perf_counter() - self._start

    @property
    def population(self) -> Population:
        return self._population

    @property
    def best(self) -> Individual | None:
        return self._population.get_best(0)

    @property
    def pareto_front(self) -> list[Individual]:
        return self._population.get_pareto_front()

    def request_stop(self) -> None:
        """Ask the run to stop at the next generation boundary."""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    @abstractmethod
    def rank(self, individuals: list[Individual]) -> None:
        """Assign ``rank`` and ``distance`` in place."""

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _stop_reason(self) -> StopReason | None:
        config = self.config
        if self._stop_requested:
            return StopReason.CANCELLED
        if self._generation >= config.generations:
            return StopReason.GENERATIONS
        if self._evaluation_count >= config.evaluations:
            return StopReason.EVALUATIONS
        if config.time_limit is not None and self.elapsed >= config.time_limit:
            return StopReason.TIME_LIMIT
        return None

    def _evaluate_initial(self, executor: ThreadPoolExecutor, population: Population) -> None:
        pending = population.unevaluated()
        trees = [population[i].genotype for i in pending]
        futures = [executor.submit(evaluate_tree, self.evaluator, tree) for tree in trees]
        for i, future in zip(pending, futures):
            individual, local = future.result()
            population.individuals[i] = individual
            self._local_evaluation_count += local
        self._evaluation_count += len(pending)

    def _produce_offspring(
        self, executor: ThreadPoolExecutor, streams: RandomStreams
    ) -> list[Offspring]:
        # Do not start more slots than the evaluation budget allows
        remaining = self.config.evaluations - self._evaluation_count
        n_slots = max(1, min(self.config.offspring_count, remaining))
        self.generator.prepare(self._population.individuals)
        rngs = streams.streams(Phase.RECOMBINE, self._generation, n_slots)
        futures = [executor.submit(self.generator, rng) for rng in rngs]
        return [future.result() for future in futures]

    def _report(self, on_generation: Callable[[GenerationReport], Any] | None) -> PopulationStats:
        stats = self._population.compute_stats()
        logger.debug(
            f"Generation {self._generation}: best={stats.min_fitness}, "
            f"front={stats.front_size}, evaluations={self._evaluation_count}"
        )
        if on_generation is not None:
            on_generation(
                GenerationReport(
                    generation=self._generation,
                    evaluation_count=self._evaluation_count,
                    local_evaluation_count=self._local_evaluation_count,
                    elapsed=self.elapsed,
                    best=self.best,
                    pareto_front=self.pareto_front,
                    stats=stats,
                )
            )
        return stats

    def run(
        self,
        on_generation: Callable[[GenerationReport], Any] | None = None,
        warm_start: Sequence[Tree] | None = None,
    ) -> AlgorithmResult:
        """Run the algorithm until a stopping criterion fires.

        Args:
            on_generation: Callback receiving a GenerationReport after the
                initial population and after every generation
            warm_start: Trees placed in the first slots of the initial population

        Returns:
            AlgorithmResult with the final population and counters
        """
        config = self.config
        seed = config.seed
        if seed is None:
            seed = int(np.random.SeedSequence().entropy)
        streams = RandomStreams(seed)

        self._generation = 0
        self._evaluation_count = 0
        self._local_evaluation_count = 0
        self._stop_requested = False
        self._start = time.perf_counter()
        generation_stats: list[PopulationStats] = []

        logger.info(
            f"Starting {type(self).__name__}: population={config.population_size}, "
            f"generations={config.generations}, seed={seed}"
        )

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            population = create_initial_population(
                size=config.population_size,
                n_objectives=self.evaluator.n_objectives,
                initializer=self.initializer,
                rngs=streams.streams(Phase.INITIALIZE, 0, config.population_size),
                warm_start=list(warm_start) if warm_start else None,
            )
            self._evaluate_initial(executor, population)
            self.rank(population.individuals)
            self._population = population
            generation_stats.append(self._report(on_generation))

            while (reason := self._stop_reason()) is None:
                offspring = self._produce_offspring(executor, streams)
                self._evaluation_count += sum(o.evaluations for o in offspring)
                self._local_evaluation_count += sum(o.local_evaluations for o in offspring)

                survivors = self.reinserter(
                    self._population.individuals,
                    [o.individual for o in offspring],
                    config.population_size,
                )
                self.rank(survivors)
                self._generation += 1
                self._population = Population(survivors, self._generation)
                generation_stats.append(self._report(on_generation))

        self._elapsed = time.perf_counter() - self._start
        self._start = None

        logger.info(
            f"Stopped after {self._generation} generations ({reason.value}): "
            f"{self._evaluation_count} evaluations in {self._elapsed:.2f}s"
        )

        return AlgorithmResult(
            population=self._population,
            pareto_front=self.pareto_front,
            best=self.best,
            generations=self._generation,
            evaluation_count=self._evaluation_count,
            local_evaluation_count=self._local_evaluation_count,
            elapsed=self._elapsed,
            stop_reason=reason,
            seed=seed,
            generation_stats=generation_stats,
        )


class GeneticProgrammingAlgorithm(GeneticAlgorithm):
    """Single-objective generational GP.

    The whole population is one front ordered by the first objective; the
    rank-0 set is every individual within ``epsilon`` of the best value.
    """

    def __init__(self, *args, objective: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.objective = objective

    def rank(self, individuals: list[Individual]) -> None:
        if not individuals:
            return
        values = np.array([ind.fitness[self.objective] for ind in individuals])
        best = values.min()
        for ind, value in zip(individuals, values):
            ind.distance = 0.0
            ind.rank = 0 if value <= best + self.config.epsilon else 1


class NSGA2(GeneticAlgorithm):
    """Multi-objective NSGA-II: non-dominated sorting with crowding distance.

    Args:
        sorter: Non-dominated sorter used for ranking
    """

    def __init__(self, *args, sorter: NondominatedSorter | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.sorter = sorter or FastNondominatedSorter()

    def rank(self, individuals: list[Individual]) -> None:
        assign_ranks(individuals, self.sorter, self.config.epsilon)


def build_algorithm(
    problem: Problem,
    config: GeneticAlgorithmConfig,
    algorithm: str = "gp",
    metric: str = "r2",
    linear_scaling: bool = True,
    max_length: int = 50,
    max_depth: int = 10,
    tournament_size: int = 5,
    sorter: NondominatedSorter | None = None,
    n_workers: int | None = None,
) -> GeneticAlgorithm:
    """Assemble a ready-to-run algorithm with the standard components.

    Args:
        problem: Regression problem (dataset, target, inputs, pset)
        config: Run configuration
        algorithm: "gp" (error only) or "nsga2" (error and length)
        metric: Error metric for the first objective
        linear_scaling: Linearly scale predictions before scoring
        max_length: Maximum tree length
        max_depth: Maximum tree depth
        tournament_size: Contestants per tournament
        sorter: Non-dominated sorter for "nsga2"
        n_workers: Worker threads

    Raises:
        ConfigError: For an unknown algorithm name or invalid config
        GrammarError: If the primitive set cannot build trees
    """
    name = algorithm.lower()
    if name not in ("gp", "nsga2"):
        raise ConfigError(f"Unknown algorithm: {algorithm}. Valid: ['gp', 'nsga2']")
    config.validate()

    variables = problem.input_hashes
    creator = BalancedTreeCreator(problem.pset, variables, max_length=max_length, max_depth=max_depth)
    initializer = UniformInitializer(creator, min_length=1, max_length=max_length, max_depth=max_depth)
    crossover = SubtreeCrossover(max_length=max_length, max_depth=max_depth)
    mutation = default_mutation(problem.pset, creator, variables, max_length, max_depth)
    error = ErrorEvaluator(problem, metric, linear_scaling=linear_scaling, iterations=config.iterations)

    if name == "gp":
        comparison = SingleObjectiveComparison(0, config.epsilon)
        generator = BasicOffspringGenerator(
            error,
            crossover,
            mutation,
            TournamentSelector(comparison, tournament_size),
            crossover_probability=config.crossover_probability,
            mutation_probability=config.mutation_probability,
        )
        return GeneticProgrammingAlgorithm(
            config, initializer, generator, KeepBestReinserter(comparison), n_workers=n_workers
        )

    sorter = sorter or FastNondominatedSorter()
    evaluator = MultiEvaluator([error, LengthEvaluator()])
    generator = BasicOffspringGenerator(
        evaluator,
        crossover,
        mutation,
        TournamentSelector(CrowdedComparison(), tournament_size),
        crossover_probability=config.crossover_probability,
        mutation_probability=config.mutation_probability,
    )
    return NSGA2(
        config,
        initializer,
        generator,
        RankCrowdingReinserter(sorter, config.epsilon),
        n_workers=n_workers,
        sorter=sorter,
    )
