"""Genetic operators: tree creation, crossover, mutation and selection."""

from symforge.operators.creator import (
    TreeCreator,
    GrowTreeCreator,
    BalancedTreeCreator,
    UniformInitializer,
)
from symforge.operators.crossover import SubtreeCrossover
from symforge.operators.mutation import (
    Mutation,
    OnePointMutation,
    ChangeVariableMutation,
    ChangeFunctionMutation,
    ReplaceSubtreeMutation,
    InsertSubtreeMutation,
    RemoveSubtreeMutation,
    MultiMutation,
    default_mutation,
)
from symforge.operators.selection import (
    Selector,
    TournamentSelector,
    ProportionalSelector,
    RandomSelector,
)

__all__ = [
    "TreeCreator",
    "GrowTreeCreator",
    "BalancedTreeCreator",
    "UniformInitializer",
    "SubtreeCrossover",
    "Mutation",
    "OnePointMutation",
    "ChangeVariableMutation",
    "ChangeFunctionMutation",
    "ReplaceSubtreeMutation",
    "InsertSubtreeMutation",
    "RemoveSubtreeMutation",
    "MultiMutation",
    "default_mutation",
    "Selector",
    "TournamentSelector",
    "ProportionalSelector",
    "RandomSelector",
]
