"""Symbol catalogue for expression trees.

Every symbol has a fixed arity. Leaves (arity 0) are constants and dataset
variables; all other symbols are arithmetic functions evaluated by the
interpreter.
"""

from enum import IntEnum
from dataclasses import dataclass


class NodeType(IntEnum):
    """Symbols an expression tree node can hold.

    The integer values double as opcodes for the interpreter kernel.
    """

    ADD = 0
    SUB = 1
    MUL = 2
    DIV = 3
    AQ = 4       # Analytic quotient: a / sqrt(1 + b^2)
    POW = 5
    EXP = 6
    LOG = 7
    SIN = 8
    COS = 9
    TAN = 10
    TANH = 11
    SQRT = 12
    CBRT = 13
    SQUARE = 14
    ABS = 15
    CONSTANT = 16
    VARIABLE = 17

    @property
    def arity(self) -> int:
        return SYMBOL_SIGNATURES[self].arity

    @property
    def symbol(self) -> str:
        return SYMBOL_SIGNATURES[self].name

    def is_leaf(self) -> bool:
        return self.arity == 0

    def is_commutative(self) -> bool:
        return self in (NodeType.ADD, NodeType.MUL)


@dataclass(frozen=True)
class SymbolSignature:
    """Static description of a symbol."""

    name: str
    arity: int
    infix: str | None = None  # Operator token for binary infix display


SYMBOL_SIGNATURES: dict[NodeType, SymbolSignature] = {
    # Binary
    NodeType.ADD: SymbolSignature("add", 2, "+"),
    NodeType.SUB: SymbolSignature("sub", 2, "-"),
    NodeType.MUL: SymbolSignature("mul", 2, "*"),
    NodeType.DIV: SymbolSignature("div", 2, "/"),
    NodeType.AQ: SymbolSignature("aq", 2),
    NodeType.POW: SymbolSignature("pow", 2, "^"),

    # Unary
    NodeType.EXP: SymbolSignature("exp", 1),
    NodeType.LOG: SymbolSignature("log", 1),
    NodeType.SIN: SymbolSignature("sin", 1),
    NodeType.COS: SymbolSignature("cos", 1),
    NodeType.TAN: SymbolSignature("tan", 1),
    NodeType.TANH: SymbolSignature("tanh", 1),
    NodeType.SQRT: SymbolSignature("sqrt", 1),
    NodeType.CBRT: SymbolSignature("cbrt", 1),
    NodeType.SQUARE: SymbolSignature("square", 1),
    NodeType.ABS: SymbolSignature("abs", 1),

    # Leaves
    NodeType.CONSTANT: SymbolSignature("constant", 0),
    NodeType.VARIABLE: SymbolSignature("variable", 0),
}

SYMBOLS_BY_NAME: dict[str, NodeType] = {
    sig.name: node_type for node_type, sig in SYMBOL_SIGNATURES.items()
}


def parse_symbol(name: str) -> NodeType:
    """Resolve a symbol name (case-insensitive) to its NodeType."""
    try:
        return SYMBOLS_BY_NAME[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown symbol: {name}") from None
