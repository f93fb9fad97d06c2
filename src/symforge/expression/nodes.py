"""Expression tree nodes.

A node is a small immutable value: its symbol, a coefficient and a hash.
Structure (children, subtree length, depth) is not stored on the node; it is
derived by the owning Tree from the node's position in the postfix sequence.

- Function nodes: ``value`` is unused (1.0)
- Constant nodes: ``value`` is the constant
- Variable nodes: ``value`` is the weight multiplying the column, ``hash``
  identifies the column
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import hashlib

from symforge.expression.types import NodeType


def _symbol_hash(node_type: NodeType) -> int:
    digest = hashlib.blake2b(node_type.symbol.encode(), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="little", signed=False)


SYMBOL_HASHES: dict[NodeType, int] = {t: _symbol_hash(t) for t in NodeType}


@dataclass(frozen=True)
class Node:
    """One symbol in a postfix expression."""

    type: NodeType
    value: float = 1.0
    hash: int = 0
    optimize: bool = True  # Whether local search may tune ``value``

    def __post_init__(self) -> None:
        if self.hash == 0 and self.type != NodeType.VARIABLE:
            object.__setattr__(self, "hash", SYMBOL_HASHES[self.type])

    @property
    def arity(self) -> int:
        return self.type.arity

    @property
    def is_leaf(self) -> bool:
        return self.type.arity == 0

    @property
    def is_constant(self) -> bool:
        return self.type == NodeType.CONSTANT

    @property
    def is_variable(self) -> bool:
        return self.type == NodeType.VARIABLE

    @property
    def has_coefficient(self) -> bool:
        """Leaves carry a tunable coefficient."""
        return self.is_leaf and self.optimize

    def with_value(self, value: float) -> "Node":
        return replace(self, value=float(value))

    @classmethod
    def function(cls, node_type: NodeType) -> "Node":
        if node_type.is_leaf():
            raise ValueError(f"{node_type.symbol} is not a function symbol")
        return cls(type=node_type)

    @classmethod
    def constant(cls, value: float) -> "Node":
        return cls(type=NodeType.CONSTANT, value=float(value))

    @classmethod
    def variable(cls, hash_value: int, weight: float = 1.0) -> "Node":
        return cls(type=NodeType.VARIABLE, value=float(weight), hash=int(hash_value))

    def __str__(self) -> str:
        if self.is_constant:
            return f"{self.value:g}"
        if self.is_variable:
            return f"{self.value:g}*v{self.hash:x}"
        return self.type.symbol
