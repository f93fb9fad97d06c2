"""Deterministic, splittable random streams.

Every random draw in a run comes from a ``numpy.random.Generator`` derived
from the run seed and a spawn key ``(phase, generation, slot)``. Two workers
never share a generator, and the stream a slot consumes does not depend on
how many workers exist or in which order they are scheduled.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np


class Phase(IntEnum):
    """Loop phases that draw random numbers."""

    INITIALIZE = 0
    RECOMBINE = 1


class RandomStreams:
    """Factory of independent generators keyed by loop position.

    Args:
        seed: Run seed (any non-negative integer)
    """

    def __init__(self, seed: int):
        if seed < 0:
            raise ValueError(f"Seed must be non-negative, got {seed}")
        self.seed = int(seed)

    def stream(self, phase: Phase, generation: int = 0, slot: int = 0) -> np.random.Generator:
        """Get the generator for one work item."""
        sequence = np.random.SeedSequence(
            entropy=self.seed,
            spawn_key=(int(phase), int(generation), int(slot)),
        )
        return np.random.default_rng(sequence)

    def streams(
        self, phase: Phase, generation: int, n_slots: int
    ) -> list[np.random.Generator]:
        """Get one generator per slot for a batch of work items."""
        return [self.stream(phase, generation, slot) for slot in range(n_slots)]
