"""Column-major numeric dataset for symbolic regression.

A Dataset owns (or borrows) a two-dimensional float64 matrix stored in
Fortran order, so that every variable is a contiguous column. Variables are
identified by name, by column index, or by a stable 64-bit hash of the name.

Read access is safe for any number of concurrent readers. The mutating
operations (``shuffle``, ``normalize``, ``standardize``) must not run while
workers are reading.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from symforge.errors import InvalidShape

logger = logging.getLogger(__name__)


def hash_name(name: str) -> int:
    """Derive the 64-bit variable hash from its name."""
    digest = hashlib.blake2b(name.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="little", signed=False)


@dataclass(frozen=True)
class Variable:
    """Reference to one dataset column.

    Attributes:
        name: Column name
        hash: 64-bit identifier derived from the name
        index: Column position
    """

    name: str
    hash: int
    index: int

    @classmethod
    def from_name(cls, name: str, index: int) -> "Variable":
        return cls(name=name, hash=hash_name(name), index=index)


@dataclass(frozen=True)
class Range:
    """Half-open row interval ``[start, end)``."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid range [{self.start}, {self.end})")

    @classmethod
    def from_pair(cls, pair: tuple[int, int]) -> "Range":
        start, end = pair
        return cls(int(start), int(end))

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def slice(self) -> slice:
        return slice(self.start, self.end)

    def __len__(self) -> int:
        return self.size


def _default_names(n: int) -> list[str]:
    return [f"X{i + 1}" for i in range(n)]


class Dataset:
    """Immutable-shape table of numeric observations.

    Args:
        data: A two-dimensional array-like, or another Dataset to copy
        variable_names: Optional column names (default ``X1..Xn``)

    Raises:
        InvalidShape: If the input is not two-dimensional or not numeric
    """

    def __init__(
        self,
        data: "np.ndarray | Dataset | Sequence[Sequence[float]]",
        variable_names: Sequence[str] | None = None,
    ):
        if isinstance(data, Dataset):
            self._values = np.array(data._values, dtype=np.float64, order="F", copy=True)
            self._owns_data = True
            names = list(variable_names) if variable_names else data.variable_names
        else:
            self._values, self._owns_data = self._as_column_major(data)
            names = list(variable_names) if variable_names else _default_names(self._values.shape[1])

        self._set_variables(names)

    @staticmethod
    def _as_column_major(data: object) -> tuple[np.ndarray, bool]:
        """Borrow the buffer when it is Fortran-ordered float64, copy otherwise."""
        try:
            array = np.asarray(data)
        except ValueError as e:
            raise InvalidShape(f"Input is not a rectangular array: {e}") from e

        if array.ndim != 2:
            raise InvalidShape(
                f"The input array must have exactly two dimensions, got {array.ndim}"
            )
        if array.dtype.kind not in "iuf":
            raise InvalidShape(f"The input array must be numeric, got dtype {array.dtype}")

        if array.dtype == np.float64 and array.flags.f_contiguous:
            return array, False

        logger.debug(
            "array does not satisfy contiguity or storage-order requirements. "
            "data will be copied."
        )
        return np.asfortranarray(array, dtype=np.float64), True

    # ------------------------------------------------------------------
    # Alternative constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_columns(
        cls,
        variables: Sequence[Variable | str],
        columns: Sequence[Sequence[float]],
    ) -> "Dataset":
        """Build from one buffer per variable (column-major input)."""
        if len(variables) != len(columns):
            raise InvalidShape(
                f"Got {len(variables)} variables but {len(columns)} columns"
            )
        lengths = {len(c) for c in columns}
        if len(lengths) > 1:
            raise InvalidShape(f"Columns have different lengths: {sorted(lengths)}")

        names = [v.name if isinstance(v, Variable) else str(v) for v in variables]
        n_rows = lengths.pop() if lengths else 0
        matrix = np.empty((n_rows, len(columns)), dtype=np.float64, order="F")
        for j, column in enumerate(columns):
            matrix[:, j] = np.asarray(column, dtype=np.float64)
        return cls(matrix, variable_names=names)

    @classmethod
    def from_rows(
        cls,
        variable_names: Sequence[str],
        rows: Iterable[Sequence[float]],
    ) -> "Dataset":
        """Build from row-major records."""
        return cls(list(rows), variable_names=variable_names)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "Dataset":
        """Build from a DataFrame with numeric columns."""
        non_numeric = [
            c for c in frame.columns
            if not pd.api.types.is_numeric_dtype(frame[c])
            or pd.api.types.is_bool_dtype(frame[c])
        ]
        if non_numeric:
            raise InvalidShape(f"Non-numeric columns: {non_numeric}")
        matrix = frame.to_numpy(dtype=np.float64)
        return cls(np.asfortranarray(matrix), variable_names=[str(c) for c in frame.columns])

    @classmethod
    def from_csv(
        cls,
        path: str | Path,
        has_header: bool = True,
        delimiter: str | None = None,
    ) -> "Dataset":
        """Load a delimited text file.

        Args:
            path: File path
            has_header: Whether the first line holds column names
            delimiter: Field separator (sniffed when None)
        """
        frame = pd.read_csv(
            path,
            header=0 if has_header else None,
            sep=delimiter,
            engine="python" if delimiter is None else "c",
        )
        if not has_header:
            frame.columns = _default_names(frame.shape[1])
        logger.info(f"Loaded {frame.shape[0]} rows x {frame.shape[1]} columns from {path}")
        return cls.from_frame(frame)

    def copy(self) -> "Dataset":
        return Dataset(self)

    __copy__ = copy

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def _set_variables(self, names: Sequence[str]) -> None:
        if len(names) != self._values.shape[1]:
            raise InvalidShape(
                f"Got {len(names)} variable names for {self._values.shape[1]} columns"
            )
        if len(set(names)) != len(names):
            raise InvalidShape(f"Variable names must be unique: {list(names)}")

        self._variables = [Variable.from_name(name, i) for i, name in enumerate(names)]
        self._by_name = {v.name: v for v in self._variables}
        self._by_hash = {v.hash: v for v in self._variables}

        if len(self._by_hash) != len(self._variables):
            raise InvalidShape("Variable name hashes collide")

    @property
    def variables(self) -> list[Variable]:
        return list(self._variables)

    @property
    def variable_names(self) -> list[str]:
        return [v.name for v in self._variables]

    @variable_names.setter
    def variable_names(self, names: Sequence[str]) -> None:
        self._set_variables(list(names))

    @property
    def variable_hashes(self) -> list[int]:
        return [v.hash for v in self._variables]

    def get_variable(self, name: str) -> Variable:
        """Look up a variable by name."""
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown variable: {name}") from None

    def get_variable_by_hash(self, hash_value: int) -> Variable:
        """Look up a variable by hash."""
        try:
            return self._by_hash[hash_value]
        except KeyError:
            raise KeyError(f"Unknown variable hash: {hash_value}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self._values.shape[0]

    @property
    def cols(self) -> int:
        return self._values.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return self._values.shape

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the full matrix (Fortran order)."""
        view = self._values.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return self.rows

    def check_range(self, range: Range) -> Range:
        """Raise IndexError if ``range`` reaches past the last row."""
        if range.end > self.rows:
            raise IndexError(f"Range {range} exceeds {self.rows} rows")
        return range

    def _column_view(self, index: int, range: Range | None) -> np.ndarray:
        column = self._values[:, index]
        if range is not None:
            column = column[self.check_range(range).slice]
        view = column.view()
        view.flags.writeable = False
        return view

    def get_values(self, key: str | int | Variable, range: Range | None = None) -> np.ndarray:
        """Get a read-only view of one column.

        Args:
            key: Variable name, column index or Variable
            range: Optional row restriction

        Returns:
            Contiguous float64 view
        """
        if isinstance(key, Variable):
            index = key.index
        elif isinstance(key, str):
            index = self.get_variable(key).index
        else:
            index = int(key)
            if not 0 <= index < self.cols:
                raise KeyError(f"Column index {index} out of range (cols={self.cols})")
        return self._column_view(index, range)

    def get_values_by_hash(self, hash_value: int, range: Range | None = None) -> np.ndarray:
        """Get a read-only view of the column with the given variable hash."""
        return self._column_view(self.get_variable_by_hash(hash_value).index, range)

    # ------------------------------------------------------------------
    # In-place mutation (not thread safe)
    # ------------------------------------------------------------------

    def _ensure_owned(self) -> None:
        if not self._owns_data:
            self._values = np.array(self._values, dtype=np.float64, order="F", copy=True)
            self._owns_data = True

    def _reference(self, index: int, range: Range | None) -> np.ndarray:
        if range is None:
            range = Range(0, self.rows)
        if range.size == 0:
            raise ValueError(f"Cannot rescale over empty range {range}")
        return self._values[self.check_range(range).slice, index]

    def _resolve_index(self, column: str | int | Variable) -> int:
        if isinstance(column, Variable):
            return column.index
        if isinstance(column, str):
            return self.get_variable(column).index
        return int(column)

    def shuffle(self, rng: np.random.Generator | int | None = None) -> None:
        """Permute the row order in place."""
        generator = rng if isinstance(rng, np.random.Generator) else np.random.default_rng(rng)
        self._ensure_owned()
        permutation = generator.permutation(self.rows)
        self._values = np.asfortranarray(self._values[permutation, :])

    def normalize(self, column: str | int | Variable, range: Range | None = None) -> None:
        """Rescale a column to [0, 1] using min/max over ``range``."""
        index = self._resolve_index(column)
        reference = self._reference(index, range)
        self._ensure_owned()
        lo, hi = float(reference.min()), float(reference.max())
        span = hi - lo
        if span == 0:
            self._values[:, index] = 0.0
        else:
            self._values[:, index] = (self._values[:, index] - lo) / span

    def standardize(self, column: str | int | Variable, range: Range | None = None) -> None:
        """Rescale a column to zero mean and unit variance over ``range``."""
        index = self._resolve_index(column)
        reference = self._reference(index, range)
        self._ensure_owned()
        mean = float(reference.mean())
        std = float(reference.std())
        if std == 0:
            self._values[:, index] = self._values[:, index] - mean
        else:
            self._values[:, index] = (self._values[:, index] - mean) / std

    def __repr__(self) -> str:
        return f"Dataset(rows={self.rows}, cols={self.cols}, variables={self.variable_names})"
