"""Genetic algorithm configuration."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from symforge.errors import ConfigError


@dataclass(frozen=True)
class GeneticAlgorithmConfig:
    """Configuration for a generational run.

    Attributes:
        generations: Maximum number of generations
        evaluations: Budget of individual evaluations
        iterations: Local search steps per evaluation (0 = off)
        population_size: Individuals per generation
        pool_size: Offspring per generation (None = population_size)
        crossover_probability: Probability of recombining two parents
        mutation_probability: Probability of mutating an offspring
        epsilon: Tolerance for fitness comparisons
        seed: Run seed (None = draw fresh entropy at run start)
        time_limit: Wall-clock limit in seconds (None = unlimited)
    """

    generations: int = 100
    evaluations: int = 1_000_000
    iterations: int = 0
    population_size: int = 1000
    pool_size: int | None = None
    crossover_probability: float = 1.0
    mutation_probability: float = 0.25
    epsilon: float = 1e-5
    seed: int | None = None
    time_limit: float | None = None

    @property
    def offspring_count(self) -> int:
        return self.population_size if self.pool_size is None else self.pool_size

    def validate(self) -> "GeneticAlgorithmConfig":
        """Return self, or raise ConfigError for a nonsensical setting."""
        if self.population_size < 1:
            raise ConfigError(f"population_size must be >= 1, got {self.population_size}")
        if self.pool_size is not None and self.pool_size < 1:
            raise ConfigError(f"pool_size must be >= 1, got {self.pool_size}")
        if self.generations < 0:
            raise ConfigError(f"generations must be >= 0, got {self.generations}")
        if self.evaluations < 0:
            raise ConfigError(f"evaluations must be >= 0, got {self.evaluations}")
        if self.iterations < 0:
            raise ConfigError(f"iterations must be >= 0, got {self.iterations}")
        for name in ("crossover_probability", "mutation_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be in [0, 1], got {value}")
        if self.epsilon < 0:
            raise ConfigError(f"epsilon must be >= 0, got {self.epsilon}")
        if self.seed is not None and self.seed < 0:
            raise ConfigError(f"seed must be >= 0, got {self.seed}")
        if self.time_limit is not None and self.time_limit < 0:
            raise ConfigError(f"time_limit must be >= 0, got {self.time_limit}")
        return self

    def replace(self, **changes: Any) -> "GeneticAlgorithmConfig":
        """Copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "GeneticAlgorithmConfig":
        """Build from a mapping, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown config fields: {sorted(unknown)}")
        return cls(**values)
