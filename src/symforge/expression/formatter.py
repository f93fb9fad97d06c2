"""Text rendering of expression trees.

Variables are displayed by name, resolved either through a Dataset or through
an explicit hash -> name mapping.
"""

from __future__ import annotations

from typing import Mapping

from symforge.data.dataset import Dataset
from symforge.expression.tree import Tree
from symforge.expression.types import NodeType, SYMBOL_SIGNATURES


def _name_lookup(names: Dataset | Mapping[int, str] | None) -> Mapping[int, str]:
    if names is None:
        return {}
    if isinstance(names, Dataset):
        return {v.hash: v.name for v in names.variables}
    return names


def _format_number(value: float, precision: int) -> str:
    text = f"{value:.{precision}f}"
    return f"({text})" if value < 0 else text


class InfixFormatter:
    """Render a tree as a fully parenthesised infix string.

    Example:
        >>> InfixFormatter.format(tree, dataset, precision=2)
        '((1.00 * x) + 2.50)'
    """

    @staticmethod
    def format(
        tree: Tree,
        names: Dataset | Mapping[int, str] | None = None,
        precision: int = 3,
    ) -> str:
        lookup = _name_lookup(names)
        return InfixFormatter._format_node(tree, len(tree) - 1, lookup, precision)

    @staticmethod
    def _format_node(
        tree: Tree, index: int, names: Mapping[int, str], precision: int
    ) -> str:
        node = tree[index]

        if node.type == NodeType.CONSTANT:
            return _format_number(node.value, precision)

        if node.type == NodeType.VARIABLE:
            name = names.get(node.hash, f"v{node.hash:x}")
            if node.value == 1.0:
                return name
            return f"({_format_number(node.value, precision)} * {name})"

        args = [
            InfixFormatter._format_node(tree, c, names, precision)
            for c in tree.children(index)
        ]
        operator = SYMBOL_SIGNATURES[node.type].infix
        if operator is not None:
            return f"({args[0]} {operator} {args[1]})"
        return f"{node.type.symbol}({', '.join(args)})"


class TreeFormatter:
    """Render a tree as an indented outline, one node per line."""

    @staticmethod
    def format(
        tree: Tree,
        names: Dataset | Mapping[int, str] | None = None,
        precision: int = 3,
    ) -> str:
        lookup = _name_lookup(names)
        lines: list[str] = []

        def visit(index: int, indent: int) -> None:
            node = tree[index]
            if node.type == NodeType.CONSTANT:
                label = f"{node.value:.{precision}f}"
            elif node.type == NodeType.VARIABLE:
                label = f"{node.value:.{precision}f} * {lookup.get(node.hash, f'v{node.hash:x}')}"
            else:
                label = node.type.symbol
            lines.append("    " * indent + label)
            for child in tree.children(index):
                visit(child, indent + 1)

        visit(len(tree) - 1, 0)
        return "\n".join(lines)
