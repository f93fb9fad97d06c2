"""Expression tree representation for symbolic regression."""

from symforge.expression.types import NodeType, SYMBOL_SIGNATURES
from symforge.expression.nodes import Node
from symforge.expression.tree import Tree
from symforge.expression.pset import PrimitiveSet, ARITHMETIC, TYPE_COHERENT, FULL
from symforge.expression.formatter import InfixFormatter, TreeFormatter
from symforge.expression.parser import InfixParser

__all__ = [
    "NodeType",
    "SYMBOL_SIGNATURES",
    "Node",
    "Tree",
    "PrimitiveSet",
    "ARITHMETIC",
    "TYPE_COHERENT",
    "FULL",
    "InfixFormatter",
    "TreeFormatter",
    "InfixParser",
]
