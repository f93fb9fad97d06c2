"""Tree interpretation, error metrics, local search and fitness evaluators."""

from symforge.evaluation.interpreter import Interpreter, evaluate
from symforge.evaluation.metrics import METRICS, OBJECTIVES, get_objective, linear_scaling
from symforge.evaluation.optimizer import CoefficientOptimizer, OptimizerSummary
from symforge.evaluation.evaluator import (
    Evaluation,
    Evaluator,
    ErrorEvaluator,
    LengthEvaluator,
    ShapeEvaluator,
    UserDefinedEvaluator,
    MultiEvaluator,
    WORST_FITNESS,
)

__all__ = [
    "Interpreter",
    "evaluate",
    "METRICS",
    "OBJECTIVES",
    "get_objective",
    "linear_scaling",
    "CoefficientOptimizer",
    "OptimizerSummary",
    "Evaluation",
    "Evaluator",
    "ErrorEvaluator",
    "LengthEvaluator",
    "ShapeEvaluator",
    "UserDefinedEvaluator",
    "MultiEvaluator",
    "WORST_FITNESS",
]
