"""Coefficient local search.

Tunes the leaf coefficients of a tree (constants and variable weights) by
nonlinear least squares on the training rows. The improved coefficients are
written back into a new Tree (Lamarckian learning).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import least_squares

from symforge.data.dataset import Range
from symforge.evaluation.interpreter import Interpreter
from symforge.expression.tree import Tree

logger = logging.getLogger(__name__)

# Stand-in residual for rows that became non-finite during a step
_PENALTY = 1e100


@dataclass
class OptimizerSummary:
    """Outcome of one local search run."""

    tree: Tree
    initial_cost: float
    final_cost: float
    evaluations: int
    improved: bool


class CoefficientOptimizer:
    """Least-squares tuning of tree coefficients.

    Args:
        interpreter: Interpreter bound to the problem dataset
        iterations: Maximum residual evaluations (0 disables the search)
        method: ``scipy.optimize.least_squares`` method ("trf", "dogbox" or "lm")
    """

    def __init__(self, interpreter: Interpreter, iterations: int = 0, method: str = "trf"):
        if iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {iterations}")
        self.interpreter = interpreter
        self.iterations = iterations
        self.method = method

    def optimize(self, tree: Tree, target: np.ndarray, range: Range) -> OptimizerSummary:
        """Fit the coefficients of ``tree`` to ``target`` on ``range``.

        Returns the input tree unchanged when there is nothing to tune, the
        starting point is not finite or the search does not improve the cost.
        """
        x0 = tree.coefficients
        unchanged = OptimizerSummary(tree, np.inf, np.inf, 0, False)
        if self.iterations == 0 or len(x0) == 0:
            return unchanged
        # lm needs at least as many residuals as parameters
        if self.method == "lm" and range.size < len(x0):
            return unchanged

        def residuals(coefficients: np.ndarray) -> np.ndarray:
            predicted = self.interpreter.evaluate(tree, range, coefficients)
            r = predicted - target
            return np.where(np.isfinite(r), r, _PENALTY)

        initial = self.interpreter.evaluate(tree, range) - target
        if not np.all(np.isfinite(initial)):
            return unchanged
        initial_cost = 0.5 * float(initial @ initial)

        result = least_squares(residuals, x0, method=self.method, max_nfev=self.iterations)
        final_cost = float(result.cost)
        evaluations = int(result.nfev)

        if not np.isfinite(final_cost) or final_cost >= initial_cost:
            return OptimizerSummary(tree, initial_cost, initial_cost, evaluations, False)

        logger.debug(f"Local search: cost {initial_cost:.6g} -> {final_cost:.6g} ({evaluations} evals)")
        return OptimizerSummary(
            tree.with_coefficients(result.x),
            initial_cost,
            final_cost,
            evaluations,
            True,
        )
