"""
Symforge: evolutionary symbolic regression.

Evolves expression trees against a tabular dataset, optimising prediction
error and (optionally) model complexity:
- Flat postfix trees with bounded length and depth
- Single-objective GP and multi-objective NSGA-II drivers
- numba-compiled tree interpreter with numeric failures penalised
- Reproducible runs for any number of worker threads
"""

__version__ = "0.1.0"

from symforge.data import Dataset, Variable, Range, Problem
from symforge.expression import Tree, Node, NodeType, PrimitiveSet, InfixFormatter, InfixParser
# evolution before operators: selection imports evolution.individual
from symforge.evolution import (
    GeneticAlgorithmConfig,
    GeneticProgrammingAlgorithm,
    NSGA2,
    Individual,
    build_algorithm,
)
from symforge.operators import BalancedTreeCreator, GrowTreeCreator, SubtreeCrossover
from symforge.evaluation import ErrorEvaluator, Interpreter

__all__ = [
    "__version__",
    "Dataset",
    "Variable",
    "Range",
    "Problem",
    "Tree",
    "Node",
    "NodeType",
    "PrimitiveSet",
    "InfixFormatter",
    "InfixParser",
    "GeneticAlgorithmConfig",
    "GeneticProgrammingAlgorithm",
    "NSGA2",
    "Individual",
    "build_algorithm",
    "BalancedTreeCreator",
    "GrowTreeCreator",
    "SubtreeCrossover",
    "ErrorEvaluator",
    "Interpreter",
]
