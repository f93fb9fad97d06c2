"""Exception taxonomy for symforge.

Construction-time failures (bad data, bad grammar, bad configuration) are
``ValueError`` subclasses and surface to the caller. ``BoundsViolation`` and
``NumericDegeneracy`` are raised and recovered inside the generational loop.
"""


class SymforgeError(Exception):
    """Base class for all symforge errors."""


class InvalidShape(SymforgeError, ValueError):
    """Input data has the wrong dimensionality, layout or element type."""


class GrammarError(SymforgeError, ValueError):
    """The primitive set cannot produce a well-formed tree."""


class ConfigError(SymforgeError, ValueError):
    """A configuration value is out of its admissible range."""


class ParseError(SymforgeError, ValueError):
    """An infix expression could not be parsed."""


class BoundsViolation(SymforgeError):
    """A tree exceeds its configured length or depth limit."""

    def __init__(self, length: int, depth: int, max_length: int, max_depth: int):
        self.length = length
        self.depth = depth
        self.max_length = max_length
        self.max_depth = max_depth
        super().__init__(
            f"Tree (length={length}, depth={depth}) exceeds bounds "
            f"(max_length={max_length}, max_depth={max_depth})"
        )


class NumericDegeneracy(SymforgeError, ArithmeticError):
    """Evaluation produced a non-finite value."""
