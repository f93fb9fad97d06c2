"""Primitive set (grammar) for tree construction and mutation.

A PrimitiveSet records, for each symbol, whether it is enabled and how often
it should be sampled relative to the others. Tree creators and mutation
operators draw symbols from it with weighted sampling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from symforge.errors import GrammarError
from symforge.expression.types import NodeType, parse_symbol


@dataclass
class PrimitiveEntry:
    """Sampling configuration of one symbol."""

    type: NodeType
    frequency: float = 1.0
    enabled: bool = True

    @property
    def arity(self) -> int:
        return self.type.arity


# Named symbol groups
ARITHMETIC: frozenset[NodeType] = frozenset({
    NodeType.ADD, NodeType.SUB, NodeType.MUL, NodeType.DIV,
    NodeType.CONSTANT, NodeType.VARIABLE,
})

TYPE_COHERENT: frozenset[NodeType] = ARITHMETIC | frozenset({
    NodeType.POW, NodeType.EXP, NodeType.LOG, NodeType.SIN, NodeType.COS,
    NodeType.SQRT, NodeType.CBRT, NodeType.SQUARE,
})

FULL: frozenset[NodeType] = frozenset(NodeType)

PRESETS: dict[str, frozenset[NodeType]] = {
    "arithmetic": ARITHMETIC,
    "type_coherent": TYPE_COHERENT,
    "full": FULL,
}


class PrimitiveSet:
    """Weighted set of enabled symbols.

    Args:
        symbols: Symbols to enable (NodeType values or names). Defaults to
            the arithmetic preset.
    """

    def __init__(self, symbols: Iterable[NodeType | str] | None = None):
        self._entries: dict[NodeType, PrimitiveEntry] = {
            t: PrimitiveEntry(type=t, enabled=False) for t in NodeType
        }
        self.set_config(ARITHMETIC if symbols is None else symbols)

    @classmethod
    def from_preset(cls, name: str) -> "PrimitiveSet":
        try:
            return cls(PRESETS[name.lower()])
        except KeyError:
            raise GrammarError(
                f"Unknown preset: {name}. Valid: {sorted(PRESETS)}"
            ) from None

    @staticmethod
    def _resolve(symbol: NodeType | str) -> NodeType:
        if isinstance(symbol, NodeType):
            return symbol
        try:
            return parse_symbol(symbol)
        except ValueError as e:
            raise GrammarError(str(e)) from e

    def set_config(self, symbols: Iterable[NodeType | str]) -> None:
        """Enable exactly the given symbols."""
        wanted = {self._resolve(s) for s in symbols}
        for node_type, entry in self._entries.items():
            entry.enabled = node_type in wanted

    def enable(self, symbol: NodeType | str) -> None:
        self._entries[self._resolve(symbol)].enabled = True

    def disable(self, symbol: NodeType | str) -> None:
        self._entries[self._resolve(symbol)].enabled = False

    def is_enabled(self, symbol: NodeType | str) -> bool:
        return self._entries[self._resolve(symbol)].enabled

    def set_frequency(self, symbol: NodeType | str, frequency: float) -> None:
        if frequency < 0:
            raise GrammarError(f"Frequency must be non-negative, got {frequency}")
        self._entries[self._resolve(symbol)].frequency = float(frequency)

    def frequency(self, symbol: NodeType | str) -> float:
        return self._entries[self._resolve(symbol)].frequency

    @property
    def enabled_symbols(self) -> list[NodeType]:
        return [t for t, e in self._entries.items() if e.enabled]

    def symbols_with_arity(self, min_arity: int, max_arity: int | None = None) -> list[NodeType]:
        """Enabled symbols with ``min_arity <= arity <= max_arity``."""
        max_arity = min_arity if max_arity is None else max_arity
        return [
            t for t, e in self._entries.items()
            if e.enabled and e.frequency > 0 and min_arity <= t.arity <= max_arity
        ]

    @property
    def leaves(self) -> list[NodeType]:
        return self.symbols_with_arity(0)

    @property
    def functions(self) -> list[NodeType]:
        return self.symbols_with_arity(1, max(t.arity for t in NodeType))

    @property
    def max_function_arity(self) -> int:
        functions = self.functions
        return max((t.arity for t in functions), default=0)

    @property
    def min_function_arity(self) -> int:
        functions = self.functions
        return min((t.arity for t in functions), default=0)

    def validate(self) -> None:
        """Raise GrammarError if no tree can be terminated."""
        if not self.enabled_symbols:
            raise GrammarError("Primitive set has no enabled symbols")
        if not self.leaves:
            raise GrammarError(
                "Primitive set has no enabled leaf symbol (constant or variable); "
                "trees cannot be terminated"
            )

    def sample(
        self,
        rng: np.random.Generator,
        min_arity: int = 0,
        max_arity: int | None = None,
    ) -> NodeType:
        """Draw one enabled symbol, weighted by frequency.

        Raises:
            GrammarError: If no enabled symbol has an arity in range
        """
        max_arity = self.max_function_arity if max_arity is None else max_arity
        candidates = self.symbols_with_arity(min_arity, max_arity)
        if not candidates:
            raise GrammarError(
                f"No enabled symbol with arity in [{min_arity}, {max_arity}]"
            )
        weights = np.array([self._entries[t].frequency for t in candidates])
        choice = rng.choice(len(candidates), p=weights / weights.sum())
        return candidates[int(choice)]

    def __repr__(self) -> str:
        names = ", ".join(t.symbol for t in self.enabled_symbols)
        return f"PrimitiveSet({names})"
