"""
Spatial weights matrix.

A WeightsMatrix holds an ordered set of observation keys and, for each key,
an ordered list of ``(neighbor_key, weight)`` pairs. Key order defines the
index space 0..n-1 shared by every vector bound to the matrix.

Implements:
- Validated construction from ``{key: [{"id": neighbor, "weight": w}, ...]}``
- Row standardization
- Windowing (self-inclusive neighborhoods)

Transforms never modify the instance; they return a new WeightsMatrix.
"""

import logging
import math
from collections.abc import Hashable, Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Optional, Union

import numpy as np

from spatialstatspy.core.csr import SparseWeightsMatrix
from spatialstatspy.errors import (
    DimensionMismatchError,
    InvalidWeightsError,
    RowCountMismatchError,
)

logger = logging.getLogger(__name__)

Entry = Union[Mapping, Sequence]


def _parse_entry(key: Hashable, entry: Entry) -> tuple[Hashable, float]:
    """Normalize a ``{"id", "weight"}`` mapping or ``(id, weight)`` pair."""
    if isinstance(entry, Mapping):
        try:
            neighbor, weight = entry["id"], entry["weight"]
        except KeyError as e:
            raise InvalidWeightsError(
                f"Weights entry {entry!r} of key {key!r} is missing {e.args[0]!r}"
            ) from None
    else:
        try:
            neighbor, weight = entry
        except (TypeError, ValueError):
            raise InvalidWeightsError(
                f"Weights entry {entry!r} of key {key!r} is not an (id, weight) pair"
            ) from None

    try:
        weight = float(weight)
    except (TypeError, ValueError):
        raise InvalidWeightsError(
            f"Weight {weight!r} for {key!r} -> {neighbor!r} is not numeric"
        ) from None
    if not math.isfinite(weight):
        raise InvalidWeightsError(f"Weight for {key!r} -> {neighbor!r} is not finite")

    return neighbor, weight


class WeightsMatrix:
    """
    Ordered, immutable neighbor graph with float weights.

    Parameters
    ----------
    weights : mapping
        Key -> sequence of ``{"id": neighbor_key, "weight": float}`` entries
        (``(neighbor_key, weight)`` pairs are accepted too). Iteration order of
        the mapping is the key order.
    n : int, optional
        Declared number of rows. Must equal the number of keys.

    Raises
    ------
    RowCountMismatchError
        If ``n`` differs from the number of keys.
    UnknownNeighborError
        If an entry references a key that has no row.
    InvalidWeightsError
        If an entry is malformed or its weight is not a finite number.

    Examples
    --------
    >>> W = WeightsMatrix({
    ...     1: [{"id": 2, "weight": 1}, {"id": 4, "weight": 1}],
    ...     2: [{"id": 1, "weight": 1}],
    ...     3: [{"id": 4, "weight": 1}],
    ...     4: [{"id": 1, "weight": 1}, {"id": 3, "weight": 1}],
    ... })
    >>> W.standardize().rows[1]
    ((2, 0.5), (4, 0.5))
    """

    def __init__(self, weights: Mapping[Hashable, Iterable[Entry]], n: Optional[int] = None):
        keys = tuple(weights.keys())
        if n is not None and n != len(keys):
            raise RowCountMismatchError(
                f"n_rows != keys.size ({n} != {len(keys)}), check your dimensions"
            )

        rows = {key: tuple(_parse_entry(key, e) for e in weights[key]) for key in keys}

        # Validates neighbor ids; a failed build leaves no instance behind.
        self._sparse = SparseWeightsMatrix.from_rows(rows, keys)
        self._keys = keys
        self._rows = MappingProxyType(rows)
        self._index = {key: i for i, key in enumerate(keys)}
        self._full: Optional[np.ndarray] = None

    @classmethod
    def _from_rows(cls, keys, rows) -> "WeightsMatrix":
        return cls({key: rows[key] for key in keys})

    @classmethod
    def from_dense(cls, matrix, keys: Optional[Sequence[Hashable]] = None) -> "WeightsMatrix":
        """
        Build a WeightsMatrix from a dense n x n array.

        Zero entries are dropped. Keys default to ``range(n)``.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise DimensionMismatchError(f"Expected a square matrix, got shape {matrix.shape}")
        n = matrix.shape[0]
        if keys is None:
            keys = list(range(n))
        if len(keys) != n:
            raise RowCountMismatchError(f"{len(keys)} keys for a {n} x {n} matrix")

        weights = {}
        for i, key in enumerate(keys):
            cols = np.flatnonzero(matrix[i])
            weights[key] = [(keys[j], float(matrix[i, j])) for j in cols]
        return cls(weights, n)

    @property
    def keys(self) -> tuple:
        """Ordered observation keys."""
        return self._keys

    @property
    def rows(self) -> Mapping[Hashable, tuple[tuple[Hashable, float], ...]]:
        """Read-only mapping of key -> ``((neighbor_key, weight), ...)``."""
        return self._rows

    @property
    def n(self) -> int:
        return len(self._keys)

    def __len__(self) -> int:
        return self.n

    @property
    def sparse(self) -> SparseWeightsMatrix:
        """CSR representation of the matrix."""
        return self._sparse

    @property
    def full(self) -> np.ndarray:
        """Dense n x n representation (computed once, read-only)."""
        if self._full is None:
            full = self._sparse.to_dense()
            full.setflags(write=False)
            self._full = full
        return self._full

    def index_of(self, key: Hashable) -> int:
        """Matrix index of ``key``."""
        return self._index[key]

    def neighbors(self, key: Hashable) -> tuple:
        """Neighbor keys of ``key`` in row order."""
        return tuple(neighbor for neighbor, _ in self._rows[key])

    def standardize(self) -> "WeightsMatrix":
        """
        Row-standardize the weights.

        Every weight is divided by its row sum so that each row sums to 1.
        Rows with zero sum (isolated observations) are left unchanged.

        Returns
        -------
        WeightsMatrix
            New matrix with the same keys.
        """
        rows = {}
        n_isolated = 0
        for key in self._keys:
            row = self._rows[key]
            total = sum(weight for _, weight in row)
            if total == 0:
                n_isolated += 1
                rows[key] = row
            else:
                rows[key] = tuple((neighbor, weight / total) for neighbor, weight in row)

        if n_isolated:
            logger.debug(f"standardize: {n_isolated} rows with zero weight sum left unchanged")
        return self._from_rows(self._keys, rows)

    def window(self) -> "WeightsMatrix":
        """
        Include every observation in its own neighborhood.

        Adds a self-entry of weight 1 to each row, or overwrites the existing
        self-entry with 1.

        Returns
        -------
        WeightsMatrix
            New matrix with the same keys.
        """
        rows = {}
        for key in self._keys:
            row = self._rows[key]
            if any(neighbor == key for neighbor, _ in row):
                rows[key] = tuple(
                    (neighbor, 1.0 if neighbor == key else weight) for neighbor, weight in row
                )
            else:
                rows[key] = row + ((key, 1.0),)
        return self._from_rows(self._keys, rows)

    def __eq__(self, other):
        if not isinstance(other, WeightsMatrix):
            return NotImplemented
        return self._keys == other._keys and dict(self._rows) == dict(other._rows)

    __hash__ = None

    def __repr__(self):
        return f"WeightsMatrix(n={self.n}, nnz={self._sparse.nnz})"
