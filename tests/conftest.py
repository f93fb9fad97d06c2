"""
Pytest fixtures for Symforge tests.

All data is synthetic and generated from fixed numpy seeds.
"""

import numpy as np
import pytest

from symforge.data import Dataset, Problem
from symforge.expression import InfixParser, PrimitiveSet


@pytest.fixture
def rng() -> np.random.Generator:
    """Fixed-seed random generator."""
    return np.random.default_rng(42)


@pytest.fixture(scope="session")
def xy_dataset() -> Dataset:
    """100 rows, y = x^2 + 0.5 x + 1 with x uniform in [-2, 2]."""
    gen = np.random.default_rng(0)
    x = gen.uniform(-2.0, 2.0, size=100)
    y = x * x + 0.5 * x + 1.0
    return Dataset.from_columns(["x", "y"], [x, y])


@pytest.fixture(scope="session")
def xyz_dataset() -> Dataset:
    """200 rows, three inputs and a target z = x * y + sin(w)."""
    gen = np.random.default_rng(1)
    x = gen.normal(size=200)
    y = gen.normal(size=200)
    w = gen.uniform(-3.0, 3.0, size=200)
    z = x * y + np.sin(w)
    return Dataset.from_columns(["x", "y", "w", "z"], [x, y, w, z])


@pytest.fixture
def xy_problem(xy_dataset) -> Problem:
    """Predict y from x with {add, mul, constant, variable}."""
    pset = PrimitiveSet(["add", "mul", "constant", "variable"])
    return Problem.from_dataset(xy_dataset, target="y", inputs=["x"], pset=pset)


@pytest.fixture
def names(xyz_dataset) -> dict[str, int]:
    """Variable name -> hash mapping for the xyz dataset."""
    return {v.name: v.hash for v in xyz_dataset.variables}


@pytest.fixture
def parse(xyz_dataset):
    """Parse infix text against the xyz dataset."""
    def _parse(text: str):
        return InfixParser.parse(text, xyz_dataset)

    return _parse
