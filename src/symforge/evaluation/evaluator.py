"""Fitness evaluators.

An evaluator maps a tree to a vector of minimised objective values. Error
evaluators may also return an improved tree when local search is enabled,
so every evaluator returns an ``Evaluation`` carrying both.

Numeric failures never escape: a prediction with non-finite values raises
NumericDegeneracy internally, which is turned into ``+inf`` for the affected
objective.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from symforge.data.dataset import Range
from symforge.data.problem import Problem
from symforge.errors import NumericDegeneracy
from symforge.evaluation.interpreter import Interpreter
from symforge.evaluation.metrics import get_objective, linear_scaling
from symforge.evaluation.optimizer import CoefficientOptimizer
from symforge.expression.tree import Tree

logger = logging.getLogger(__name__)

WORST_FITNESS = np.inf


@dataclass
class Evaluation:
    """Result of evaluating one tree.

    Attributes:
        genotype: The evaluated tree (with tuned coefficients, if any)
        fitness: Objective values
        local_evaluations: Residual evaluations spent in local search
    """

    genotype: Tree
    fitness: np.ndarray
    local_evaluations: int = 0


class Evaluator(ABC):
    """Base class for evaluators."""

    @property
    @abstractmethod
    def n_objectives(self) -> int:
        """Number of objective values produced."""

    @abstractmethod
    def __call__(self, tree: Tree) -> Evaluation:
        """Evaluate a tree."""


class ErrorEvaluator(Evaluator):
    """Prediction error on the problem's training range.

    Args:
        problem: Regression problem
        metric: One of r2, c2, mse, nmse, rmse, mae
        linear_scaling: Fit intercept and slope before scoring
        iterations: Local search budget per tree (0 = off)
    """

    def __init__(
        self,
        problem: Problem,
        metric: str = "r2",
        linear_scaling: bool = True,
        iterations: int = 0,
    ):
        self.problem = problem
        self.metric = metric
        self.objective = get_objective(metric)
        self.linear_scaling = linear_scaling
        self.interpreter = Interpreter(problem.dataset)
        self.optimizer = CoefficientOptimizer(self.interpreter, iterations)

    @property
    def n_objectives(self) -> int:
        return 1

    def predict(self, tree: Tree, range: Range | None = None) -> np.ndarray:
        """Predictions of ``tree`` on ``range``, linearly scaled if enabled.

        Raises:
            NumericDegeneracy: If any prediction is not finite
        """
        if range is None:
            range = self.problem.training_range
        predicted = self.interpreter.evaluate(tree, range)
        if not np.all(np.isfinite(predicted)):
            raise NumericDegeneracy(f"Non-finite predictions for {tree!r}")
        if self.linear_scaling:
            # Scale on training rows so test scores use the same mapping
            training = self.problem.training_range
            fit = predicted if range == training else self.interpreter.evaluate(tree, training)
            intercept, slope = linear_scaling(self.problem.target_values(training), fit)
            predicted = intercept + slope * predicted
        return predicted

    def error(self, tree: Tree, range: Range | None = None) -> float:
        """Objective value on ``range``; ``+inf`` for degenerate trees."""
        if range is None:
            range = self.problem.training_range
        if range.size == 0:
            return WORST_FITNESS
        try:
            predicted = self.predict(tree, range)
            value = self.objective(self.problem.target_values(range), predicted)
            if not np.isfinite(value):
                raise NumericDegeneracy(f"Non-finite {self.metric} for {tree!r}")
        except NumericDegeneracy as e:
            logger.debug(str(e))
            return WORST_FITNESS
        return float(value)

    def __call__(self, tree: Tree) -> Evaluation:
        local_evaluations = 0
        if self.optimizer.iterations > 0:
            training = self.problem.training_range
            summary = self.optimizer.optimize(tree, self.problem.target_values(training), training)
            tree = summary.tree
            local_evaluations = summary.evaluations
        return Evaluation(tree, np.array([self.error(tree)]), local_evaluations)


class LengthEvaluator(Evaluator):
    """Tree length as a complexity objective."""

    @property
    def n_objectives(self) -> int:
        return 1

    def __call__(self, tree: Tree) -> Evaluation:
        return Evaluation(tree, np.array([float(tree.length)]))


class ShapeEvaluator(Evaluator):
    """Tree depth as a complexity objective."""

    @property
    def n_objectives(self) -> int:
        return 1

    def __call__(self, tree: Tree) -> Evaluation:
        return Evaluation(tree, np.array([float(tree.depth)]))


class UserDefinedEvaluator(Evaluator):
    """Wrap a callable returning one or more objective values.

    Args:
        func: ``func(tree) -> float | Sequence[float]``
        n_objectives: Number of values ``func`` returns
    """

    def __init__(self, func: Callable[[Tree], float | Sequence[float]], n_objectives: int = 1):
        self.func = func
        self._n_objectives = n_objectives

    @property
    def n_objectives(self) -> int:
        return self._n_objectives

    def __call__(self, tree: Tree) -> Evaluation:
        values = np.atleast_1d(np.asarray(self.func(tree), dtype=np.float64))
        if len(values) != self._n_objectives:
            raise ValueError(
                f"User evaluator returned {len(values)} values, expected {self._n_objectives}"
            )
        return Evaluation(tree, np.where(np.isfinite(values), values, WORST_FITNESS))


class MultiEvaluator(Evaluator):
    """Concatenate the objectives of several evaluators.

    The tree returned by each evaluator is passed to the next, so local
    search results are seen by the later objectives.
    """

    def __init__(self, evaluators: Sequence[Evaluator]):
        if not evaluators:
            raise ValueError("MultiEvaluator needs at least one evaluator")
        self.evaluators = list(evaluators)

    @property
    def n_objectives(self) -> int:
        return sum(e.n_objectives for e in self.evaluators)

    def __call__(self, tree: Tree) -> Evaluation:
        parts: list[np.ndarray] = []
        local_evaluations = 0
        for evaluator in self.evaluators:
            result = evaluator(tree)
            tree = result.genotype
            parts.append(result.fitness)
            local_evaluations += result.local_evaluations
        return Evaluation(tree, np.concatenate(parts), local_evaluations)
