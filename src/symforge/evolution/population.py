"""Population management and statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

import numpy as np

from symforge.evolution.individual import Individual, fitness_matrix
from symforge.expression.tree import Tree


@dataclass
class PopulationStats:
    """Statistics about a population."""

    generation: int
    size: int
    unique_genotypes: int
    mean_length: float
    min_fitness: list[float]
    mean_fitness: list[float]
    front_size: int
    degenerate: int  # Individuals with a non-finite objective

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "size": self.size,
            "unique_genotypes": self.unique_genotypes,
            "mean_length": self.mean_length,
            "min_fitness": self.min_fitness,
            "mean_fitness": self.mean_fitness,
            "front_size": self.front_size,
            "degenerate": self.degenerate,
        }


@dataclass
class Population:
    """Ordered collection of individuals for one generation."""

    individuals: list[Individual] = field(default_factory=list)
    generation: int = 0

    def __len__(self) -> int:
        return len(self.individuals)

    def __iter__(self) -> Iterator[Individual]:
        return iter(self.individuals)

    def __getitem__(self, idx: int) -> Individual:
        return self.individuals[idx]

    def add(self, individual: Individual) -> None:
        self.individuals.append(individual)

    def fitness(self) -> np.ndarray:
        """(n, m) matrix of objective values."""
        return fitness_matrix(self.individuals)

    def unevaluated(self) -> list[int]:
        return [i for i, ind in enumerate(self.individuals) if not ind.evaluated]

    def get_pareto_front(self) -> list[Individual]:
        """Individuals with rank 0."""
        return [ind for ind in self.individuals if ind.rank == 0]

    def get_best(self, objective: int = 0) -> Individual | None:
        """Individual with the lowest value of one objective (first on ties)."""
        if not self.individuals:
            return None
        values = np.array([ind.fitness[objective] for ind in self.individuals])
        return self.individuals[int(np.argmin(values))]

    def copy(self) -> "Population":
        return Population([ind.copy() for ind in self.individuals], self.generation)

    def compute_stats(self) -> PopulationStats:
        if not self.individuals:
            return PopulationStats(
                generation=self.generation,
                size=0,
                unique_genotypes=0,
                mean_length=0.0,
                min_fitness=[],
                mean_fitness=[],
                front_size=0,
                degenerate=0,
            )

        fitness = self.fitness()
        finite = np.isfinite(fitness)
        min_fitness = []
        mean_fitness = []
        for j in range(fitness.shape[1]):
            column = fitness[finite[:, j], j]
            min_fitness.append(float(column.min()) if len(column) else float("inf"))
            mean_fitness.append(float(column.mean()) if len(column) else float("inf"))

        return PopulationStats(
            generation=self.generation,
            size=len(self.individuals),
            unique_genotypes=len({ind.genotype.structural_hash() for ind in self.individuals}),
            mean_length=float(np.mean([ind.genotype.length for ind in self.individuals])),
            min_fitness=min_fitness,
            mean_fitness=mean_fitness,
            front_size=len(self.get_pareto_front()),
            degenerate=int((~finite.all(axis=1)).sum()),
        )

    def to_genotypes(self) -> list[Tree]:
        return [ind.genotype for ind in self.individuals]


def create_initial_population(
    size: int,
    n_objectives: int,
    initializer: Callable[[np.random.Generator], Tree],
    rngs: list[np.random.Generator],
    warm_start: list[Tree] | None = None,
) -> Population:
    """Create an unevaluated initial population.

    Args:
        size: Population size
        n_objectives: Length of each fitness vector
        initializer: Tree factory taking a random generator
        rngs: One generator per slot (at least ``size``)
        warm_start: Trees placed in the first slots

    Returns:
        Population of ``size`` unevaluated individuals
    """
    warm_start = list(warm_start or [])[:size]
    individuals = [Individual.unevaluated(tree, n_objectives) for tree in warm_start]
    for slot in range(len(warm_start), size):
        individuals.append(Individual.unevaluated(initializer(rngs[slot]), n_objectives))
    return Population(individuals)
