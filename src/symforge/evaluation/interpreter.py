"""Tree interpreter.

Evaluates a postfix tree over a row range of a Dataset. The hot loop is a
numba kernel working on flat arrays (opcodes, node values, subtree lengths,
column indices), processing rows in fixed-size batches so the intermediate
buffer stays small regardless of dataset size.

Non-finite intermediates are not trapped here: division by zero, overflow
and domain errors produce inf/nan under numpy semantics and the caller
decides how to score them. The kernel releases the GIL, so evaluator
threads run it in parallel.
"""

from __future__ import annotations

from typing import Sequence

import numba
import numpy as np

from symforge.data.dataset import Dataset, Range
from symforge.expression.tree import Tree
from symforge.expression.types import NodeType

BATCH_SIZE = 64

# Opcodes as plain ints so numba freezes them as constants
_ADD = int(NodeType.ADD)
_SUB = int(NodeType.SUB)
_MUL = int(NodeType.MUL)
_DIV = int(NodeType.DIV)
_AQ = int(NodeType.AQ)
_POW = int(NodeType.POW)
_EXP = int(NodeType.EXP)
_LOG = int(NodeType.LOG)
_SIN = int(NodeType.SIN)
_COS = int(NodeType.COS)
_TAN = int(NodeType.TAN)
_TANH = int(NodeType.TANH)
_SQRT = int(NodeType.SQRT)
_CBRT = int(NodeType.CBRT)
_SQUARE = int(NodeType.SQUARE)
_ABS = int(NodeType.ABS)
_CONSTANT = int(NodeType.CONSTANT)
_VARIABLE = int(NodeType.VARIABLE)


@numba.jit(nopython=True, cache=True, error_model="numpy")
def _apply_binary(op: int, x: float, y: float) -> float:
    if op == _ADD:
        return x + y
    if op == _SUB:
        return x - y
    if op == _MUL:
        return x * y
    if op == _DIV:
        return x / y
    if op == _AQ:
        return x / np.sqrt(1.0 + y * y)
    return np.power(x, y)


@numba.jit(nopython=True, cache=True, error_model="numpy")
def _apply_unary(op: int, x: float) -> float:
    if op == _EXP:
        return np.exp(x)
    if op == _LOG:
        return np.log(x)
    if op == _SIN:
        return np.sin(x)
    if op == _COS:
        return np.cos(x)
    if op == _TAN:
        return np.tan(x)
    if op == _TANH:
        return np.tanh(x)
    if op == _SQRT:
        return np.sqrt(x)
    if op == _CBRT:
        return np.cbrt(x)
    if op == _SQUARE:
        return x * x
    return np.abs(x)


@numba.jit(nopython=True, cache=True, nogil=True, error_model="numpy")
def _interpret(
    opcodes: np.ndarray,
    values: np.ndarray,
    lengths: np.ndarray,
    columns: np.ndarray,
    data: np.ndarray,
    start: int,
    end: int,
    batch_size: int,
) -> np.ndarray:
    n = opcodes.shape[0]
    rows = end - start
    out = np.empty(rows)
    buf = np.empty((n, batch_size))

    for offset in range(0, rows, batch_size):
        m = min(batch_size, rows - offset)
        r0 = start + offset

        for i in range(n):
            op = opcodes[i]
            if op == _CONSTANT:
                v = values[i]
                for j in range(m):
                    buf[i, j] = v
            elif op == _VARIABLE:
                w = values[i]
                c = columns[i]
                for j in range(m):
                    buf[i, j] = w * data[r0 + j, c]
            elif op <= _POW:
                # Second operand ends just before i, first ends before that
                b = i - 1
                a = b - lengths[b] - 1
                for j in range(m):
                    buf[i, j] = _apply_binary(op, buf[a, j], buf[b, j])
            else:
                a = i - 1
                for j in range(m):
                    buf[i, j] = _apply_unary(op, buf[a, j])

        for j in range(m):
            out[offset + j] = buf[n - 1, j]

    return out


class Interpreter:
    """Evaluate trees against one Dataset.

    Safe to share between threads: it only reads the dataset.

    Args:
        dataset: Source data
        batch_size: Rows processed per kernel batch
    """

    def __init__(self, dataset: Dataset, batch_size: int = BATCH_SIZE):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.dataset = dataset
        self.batch_size = batch_size

    def _columns(self, tree: Tree) -> np.ndarray:
        columns = np.full(tree.length, -1, dtype=np.int64)
        for i, node in enumerate(tree):
            if node.is_variable:
                columns[i] = self.dataset.get_variable_by_hash(node.hash).index
        return columns

    def evaluate(
        self,
        tree: Tree,
        range: Range | None = None,
        coefficients: Sequence[float] | None = None,
    ) -> np.ndarray:
        """Predict one value per row of ``range``.

        Args:
            tree: Expression to evaluate
            range: Rows to evaluate (default: all rows)
            coefficients: Replacement leaf coefficients, in
                ``tree.coefficient_indices()`` order

        Raises:
            KeyError: If the tree references a variable not in the dataset
            IndexError: If ``range`` reaches past the last row
        """
        if range is None:
            range = Range(0, self.dataset.rows)
        self.dataset.check_range(range)
        values = tree.values()
        if coefficients is not None:
            values[tree.coefficient_indices()] = coefficients
        return _interpret(
            tree.opcodes(),
            values,
            tree.lengths,
            self._columns(tree),
            self.dataset.values,
            range.start,
            range.end,
            self.batch_size,
        )


def evaluate(tree: Tree, dataset: Dataset, range: Range | None = None) -> np.ndarray:
    """Convenience wrapper: evaluate a tree without keeping an Interpreter."""
    return Interpreter(dataset).evaluate(tree, range)
