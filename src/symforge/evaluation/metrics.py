"""Regression error metrics.

Each metric compares predictions with the target. ``OBJECTIVES`` maps metric
names to functions returning a minimised objective value (``1 - r2`` for the
goodness-of-fit scores).
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from symforge.errors import ConfigError

Metric = Callable[[np.ndarray, np.ndarray], float]


def mse(target: np.ndarray, predicted: np.ndarray) -> float:
    """Mean squared error."""
    return float(np.mean((target - predicted) ** 2))


def rmse(target: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sqrt(mse(target, predicted)))


def mae(target: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.mean(np.abs(target - predicted)))


def nmse(target: np.ndarray, predicted: np.ndarray) -> float:
    """MSE normalised by the target variance (inf for a constant target)."""
    variance = np.var(target)
    if variance == 0:
        return 0.0 if mse(target, predicted) == 0 else float("inf")
    return mse(target, predicted) / float(variance)


def r2(target: np.ndarray, predicted: np.ndarray) -> float:
    """Coefficient of determination."""
    ss_tot = float(np.sum((target - np.mean(target)) ** 2))
    ss_res = float(np.sum((target - predicted) ** 2))
    if ss_tot == 0:
        return 1.0 if ss_res == 0 else float("-inf")
    return 1.0 - ss_res / ss_tot


def c2(target: np.ndarray, predicted: np.ndarray) -> float:
    """Squared Pearson correlation (0 when either side is constant)."""
    if np.std(target) == 0 or np.std(predicted) == 0:
        return 0.0
    r = np.corrcoef(target, predicted)[0, 1]
    return float(r * r)


METRICS: dict[str, Metric] = {
    "r2": r2,
    "c2": c2,
    "mse": mse,
    "nmse": nmse,
    "rmse": rmse,
    "mae": mae,
}

OBJECTIVES: dict[str, Metric] = {
    "r2": lambda t, p: 1.0 - r2(t, p),
    "c2": lambda t, p: 1.0 - c2(t, p),
    "mse": mse,
    "nmse": nmse,
    "rmse": rmse,
    "mae": mae,
}


def get_objective(name: str) -> Metric:
    """Look up a minimised objective by metric name.

    Raises:
        ConfigError: If the name is unknown
    """
    try:
        return OBJECTIVES[name.lower()]
    except KeyError:
        raise ConfigError(f"Unknown metric: {name}. Valid: {sorted(OBJECTIVES)}") from None


def linear_scaling(target: np.ndarray, predicted: np.ndarray) -> tuple[float, float]:
    """Least-squares offset and slope mapping predictions onto the target.

    Returns:
        (intercept, slope) such that ``intercept + slope * predicted`` best
        fits ``target``; slope is 0 for constant predictions
    """
    variance = np.var(predicted)
    if variance == 0 or not np.isfinite(variance):
        return float(np.mean(target)), 0.0
    slope = float(np.mean((predicted - predicted.mean()) * (target - target.mean())) / variance)
    intercept = float(np.mean(target) - slope * np.mean(predicted))
    return intercept, slope
