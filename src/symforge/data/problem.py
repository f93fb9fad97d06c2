"""Regression problem definition.

Binds a dataset to a target variable, the input variables trees may use,
the training/test partitions and the primitive set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from symforge.data.dataset import Dataset, Range, Variable
from symforge.expression.pset import PrimitiveSet


@dataclass
class Problem:
    """Symbolic regression problem.

    Attributes:
        dataset: Source data (shared read-only during a run)
        target: Target variable
        inputs: Variables available to trees (default: all but the target)
        training_range: Rows used for fitness evaluation
        test_range: Rows held out for reporting
        pset: Primitive set
    """

    dataset: Dataset
    target: Variable
    inputs: list[Variable]
    training_range: Range
    test_range: Range
    pset: PrimitiveSet = field(default_factory=PrimitiveSet)

    def __post_init__(self) -> None:
        if not self.inputs:
            raise ValueError("Problem needs at least one input variable")
        for r in (self.training_range, self.test_range):
            if r.end > self.dataset.rows:
                raise ValueError(f"Range {r} exceeds {self.dataset.rows} rows")
        if self.training_range.size == 0:
            raise ValueError("Training range is empty")

    @classmethod
    def from_dataset(
        cls,
        dataset: Dataset,
        target: str,
        inputs: Sequence[str] | None = None,
        training_range: Range | None = None,
        test_range: Range | None = None,
        pset: PrimitiveSet | None = None,
        training_fraction: float = 1.0,
    ) -> "Problem":
        """Build a problem by variable names.

        Args:
            dataset: Source data
            target: Target variable name
            inputs: Input variable names (default: every other column)
            training_range: Explicit training rows
            test_range: Explicit test rows
            pset: Primitive set (default arithmetic)
            training_fraction: Used when ranges are not given; the first
                fraction of rows trains, the rest is test
        """
        target_var = dataset.get_variable(target)
        if inputs is None:
            input_vars = [v for v in dataset.variables if v.name != target]
        else:
            input_vars = [dataset.get_variable(name) for name in inputs]

        if training_range is None:
            split = int(round(dataset.rows * training_fraction))
            training_range = Range(0, split)
            if test_range is None:
                test_range = Range(split, dataset.rows)
        if test_range is None:
            test_range = Range(training_range.end, dataset.rows)

        return cls(
            dataset=dataset,
            target=target_var,
            inputs=input_vars,
            training_range=training_range,
            test_range=test_range,
            pset=pset or PrimitiveSet(),
        )

    @property
    def input_hashes(self) -> list[int]:
        return [v.hash for v in self.inputs]

    def target_values(self, range: Range | None = None) -> np.ndarray:
        return self.dataset.get_values(self.target, self.training_range if range is None else range)
