"""Offspring generators.

A generator produces one evaluated offspring per call: select two parents,
recombine with probability ``crossover_probability``, mutate with probability
``mutation_probability``, evaluate. Each call uses only the random generator
it is given, so offspring slots can be produced concurrently and in any
order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from symforge.errors import ConfigError
from symforge.evaluation.evaluator import Evaluator
from symforge.evolution.individual import Individual
from symforge.expression.tree import Tree
from symforge.operators.selection import Selector

Crossover = Callable[[np.random.Generator, Tree, Tree], Tree]
Mutation = Callable[[np.random.Generator, Tree], Tree]


@dataclass
class Offspring:
    """One produced child plus the evaluation effort it cost."""

    individual: Individual
    evaluations: int
    local_evaluations: int = 0


def evaluate_tree(evaluator: Evaluator, tree: Tree) -> tuple[Individual, int]:
    """Evaluate a tree into a new Individual.

    Returns:
        (individual, local search evaluations spent)
    """
    result = evaluator(tree)
    individual = Individual.unevaluated(result.genotype, evaluator.n_objectives)
    individual.set_fitness(result.fitness)
    return individual, result.local_evaluations


class OffspringGenerator(ABC):
    """Base class for offspring generators.

    Args:
        evaluator: Fitness evaluator
        crossover: ``crossover(rng, lhs, rhs) -> Tree``
        mutation: ``mutation(rng, tree) -> Tree``
        female_selector: Selector for the first parent
        male_selector: Selector for the second parent (default: the first)
        crossover_probability: Probability of recombining
        mutation_probability: Probability of mutating the child
    """

    def __init__(
        self,
        evaluator: Evaluator,
        crossover: Crossover,
        mutation: Mutation,
        female_selector: Selector,
        male_selector: Selector | None = None,
        crossover_probability: float = 1.0,
        mutation_probability: float = 0.25,
    ):
        self.evaluator = evaluator
        self.crossover = crossover
        self.mutation = mutation
        self.female_selector = female_selector
        self.male_selector = male_selector or female_selector
        self.crossover_probability = crossover_probability
        self.mutation_probability = mutation_probability

    def prepare(self, population: Sequence[Individual]) -> None:
        """Bind the selectors to this generation's ranked population."""
        self.female_selector.prepare(population)
        if self.male_selector is not self.female_selector:
            self.male_selector.prepare(population)

    def recombine(self, rng: np.random.Generator) -> Tree:
        """Select parents and produce one unevaluated child tree."""
        mother = self.female_selector(rng)
        father = self.male_selector(rng)
        # Both gates are drawn every time so a slot's stream layout is fixed
        do_crossover = rng.random() < self.crossover_probability
        do_mutation = rng.random() < self.mutation_probability

        child = mother.genotype
        if do_crossover:
            child = self.crossover(rng, mother.genotype, father.genotype)
        if do_mutation:
            child = self.mutation(rng, child)
        return child

    @abstractmethod
    def __call__(self, rng: np.random.Generator) -> Offspring:
        """Produce one evaluated offspring."""


class BasicOffspringGenerator(OffspringGenerator):
    """One child per call."""

    def __call__(self, rng: np.random.Generator) -> Offspring:
        individual, local = evaluate_tree(self.evaluator, self.recombine(rng))
        return Offspring(individual, evaluations=1, local_evaluations=local)


class BroodOffspringGenerator(OffspringGenerator):
    """Produce a brood of children and keep the best.

    Every child is evaluated and counted against the budget.

    Args:
        brood_size: Children produced per call
        comparison: ``comparison(a, b)`` is True when a beats b
            (default: Pareto dominance)
    """

    def __init__(
        self,
        *args,
        brood_size: int = 10,
        comparison: Callable[[Individual, Individual], bool] | None = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        if brood_size < 1:
            raise ConfigError(f"brood_size must be >= 1, got {brood_size}")
        self.brood_size = brood_size
        self.comparison = comparison or (lambda a, b: a.dominates(b))

    def __call__(self, rng: np.random.Generator) -> Offspring:
        best: Individual | None = None
        local_total = 0
        for _ in range(self.brood_size):
            individual, local = evaluate_tree(self.evaluator, self.recombine(rng))
            local_total += local
            if best is None or self.comparison(individual, best):
                best = individual
        return Offspring(best, evaluations=self.brood_size, local_evaluations=local_total)
