"""Dataset and problem definitions."""

from symforge.data.dataset import Dataset, Variable, Range, hash_name
from symforge.data.problem import Problem

__all__ = [
    "Dataset",
    "Variable",
    "Range",
    "hash_name",
    "Problem",
]
