"""Infix expression parser.

Turns text such as ``"2.5 * x + sin(y) / 3"`` into a Tree, resolving
variable names through a name -> hash mapping. Grammar (lowest to highest
precedence)::

    expr    := term (("+" | "-") term)*
    term    := factor (("*" | "/") factor)*
    factor  := unary ("^" factor)?
    unary   := "-" unary | primary
    primary := NUMBER | NAME | FUNC "(" expr ("," expr)* ")" | "(" expr ")"
"""

from __future__ import annotations

import re
from typing import Mapping

from symforge.data.dataset import Dataset
from symforge.errors import ParseError
from symforge.expression.nodes import Node
from symforge.expression.tree import Tree
from symforge.expression.types import NodeType, SYMBOLS_BY_NAME

_TOKEN_RE = re.compile(
    r"\s*(?:(?P<number>\d+\.?\d*(?:[eE][-+]?\d+)?|\.\d+(?:[eE][-+]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[-+*/^(),]))"
)

_BINARY_OPS = {
    "+": NodeType.ADD,
    "-": NodeType.SUB,
    "*": NodeType.MUL,
    "/": NodeType.DIV,
    "^": NodeType.POW,
}


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ParseError(f"Unexpected character {text[pos]!r} at position {pos}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[tuple[str, str]], names: Mapping[str, int]):
        self.tokens = tokens
        self.names = names
        self.pos = 0

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> tuple[str, str]:
        token = self.peek()
        if token is None:
            raise ParseError("Unexpected end of expression")
        self.pos += 1
        return token

    def expect(self, op: str) -> None:
        kind, value = self.take()
        if kind != "op" or value != op:
            raise ParseError(f"Expected {op!r}, got {value!r}")

    def at_op(self, *ops: str) -> bool:
        token = self.peek()
        return token is not None and token[0] == "op" and token[1] in ops

    # Each rule returns the postfix node list of the parsed subexpression.

    def expr(self) -> list[Node]:
        nodes = self.term()
        while self.at_op("+", "-"):
            _, op = self.take()
            nodes = nodes + self.term() + [Node.function(_BINARY_OPS[op])]
        return nodes

    def term(self) -> list[Node]:
        nodes = self.factor()
        while self.at_op("*", "/"):
            _, op = self.take()
            nodes = nodes + self.factor() + [Node.function(_BINARY_OPS[op])]
        return nodes

    def factor(self) -> list[Node]:
        nodes = self.unary()
        if self.at_op("^"):
            self.take()
            nodes = nodes + self.factor() + [Node.function(NodeType.POW)]
        return nodes

    def unary(self) -> list[Node]:
        if self.at_op("-"):
            self.take()
            operand = self.unary()
            if len(operand) == 1 and operand[0].is_leaf:
                return [operand[0].with_value(-operand[0].value)]
            return [Node.constant(-1.0)] + operand + [Node.function(NodeType.MUL)]
        if self.at_op("+"):
            self.take()
            return self.unary()
        return self.primary()

    def primary(self) -> list[Node]:
        kind, value = self.take()

        if kind == "number":
            return [Node.constant(float(value))]

        if kind == "name":
            if self.at_op("("):
                return self.call(value)
            if value not in self.names:
                raise ParseError(f"Unknown variable: {value}")
            return [Node.variable(self.names[value])]

        if value == "(":
            nodes = self.expr()
            self.expect(")")
            return nodes

        raise ParseError(f"Unexpected token {value!r}")

    def call(self, name: str) -> list[Node]:
        node_type = SYMBOLS_BY_NAME.get(name.lower())
        if node_type is None or node_type.is_leaf():
            raise ParseError(f"Unknown function: {name}")
        self.expect("(")
        args = [self.expr()]
        while self.at_op(","):
            self.take()
            args.append(self.expr())
        self.expect(")")
        if len(args) != node_type.arity:
            raise ParseError(
                f"{name} takes {node_type.arity} argument(s), got {len(args)}"
            )
        nodes: list[Node] = []
        for arg in args:
            nodes.extend(arg)
        nodes.append(Node.function(node_type))
        return nodes


class InfixParser:
    """Parse infix text into a Tree."""

    @staticmethod
    def parse(text: str, names: Dataset | Mapping[str, int]) -> Tree:
        """Parse an infix expression.

        Args:
            text: Expression such as ``"x * (y + 1.5)"``
            names: Dataset or variable name -> hash mapping

        Raises:
            ParseError: If the text is malformed or names an unknown variable
        """
        if isinstance(names, Dataset):
            names = {v.name: v.hash for v in names.variables}
        tokens = _tokenize(text)
        if not tokens:
            raise ParseError("Empty expression")
        parser = _Parser(tokens, names)
        nodes = parser.expr()
        if parser.peek() is not None:
            raise ParseError(f"Unexpected trailing token {parser.peek()[1]!r}")
        return Tree(nodes)
