"""
Compressed sparse row storage for square spatial weight matrices.

The matrix is described by three arrays:

- values:    non-zero weights, row-major (length nnz)
- col_index: column of each non-zero weight (length nnz)
- row_index: offset of the first non-zero of each row (length n + 1)

Row i owns ``values[row_index[i]:row_index[i + 1]]``. Products are delegated to
scipy.sparse, built from the same three arrays.
"""

from collections.abc import Hashable, Mapping, Sequence
from typing import Optional

import numpy as np
from scipy import sparse as sp_sparse

from spatialstatspy.errors import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidWeightsError,
    RowCountMismatchError,
    UnknownNeighborError,
)


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


class SparseWeightsMatrix:
    """
    Read-only CSR view of an n x n weights matrix.

    Parameters
    ----------
    values : array-like
        Non-zero weights (length nnz).
    col_index : array-like
        Column index of every non-zero weight (length nnz).
    row_index : array-like
        Row start offsets (length n + 1).

    Examples
    --------
    >>> csr = SparseWeightsMatrix([1.0, 1.0], [1, 0], [0, 1, 2])
    >>> csr.mulvec([3.0, 4.0])
    array([4., 3.])
    """

    def __init__(self, values, col_index, row_index):
        values = np.array(values, dtype=np.float64).ravel()
        col_index = np.array(col_index, dtype=np.int64).ravel()
        row_index = np.array(row_index, dtype=np.int64).ravel()

        if row_index.shape[0] < 1:
            raise DimensionMismatchError("row_index must have length n + 1 >= 1")
        n = row_index.shape[0] - 1
        nnz = values.shape[0]

        if col_index.shape[0] != nnz:
            raise DimensionMismatchError(
                f"col_index has {col_index.shape[0]} entries but values has {nnz}"
            )
        if row_index[0] != 0 or row_index[-1] != nnz:
            raise DimensionMismatchError(
                f"row_index must start at 0 and end at nnz={nnz}, "
                f"got {row_index[0]}..{row_index[-1]}"
            )
        if np.any(np.diff(row_index) < 0):
            raise DimensionMismatchError("row_index must be non-decreasing")
        if nnz and (col_index.min() < 0 or col_index.max() >= n):
            raise IndexOutOfRangeError(f"col_index entries must lie in [0, {n})")
        if not np.all(np.isfinite(values)):
            raise InvalidWeightsError("weights must be finite")

        self.n = n
        self.nnz = nnz
        self.values = _read_only(values)
        self.col_index = _read_only(col_index)
        self.row_index = _read_only(row_index)
        self._csr: Optional[sp_sparse.csr_matrix] = None

    @classmethod
    def from_rows(
        cls,
        rows_by_key: Mapping[Hashable, Sequence[tuple[Hashable, float]]],
        keys: Sequence[Hashable],
    ) -> "SparseWeightsMatrix":
        """
        Build a CSR matrix from per-key neighbor rows.

        Parameters
        ----------
        rows_by_key : mapping
            Key -> ordered sequence of ``(neighbor_key, weight)`` pairs.
        keys : sequence
            Ordered keys; position in this sequence is the matrix index.

        Returns
        -------
        SparseWeightsMatrix

        Raises
        ------
        RowCountMismatchError
            If the number of rows differs from ``len(keys)`` or keys repeat.
        UnknownNeighborError
            If a row references a key that is not in ``keys``.
        """
        n = len(keys)
        if len(rows_by_key) != n:
            raise RowCountMismatchError(
                f"n_rows != keys.size ({len(rows_by_key)} != {n}), check your dimensions"
            )
        if len(set(keys)) != n:
            raise RowCountMismatchError(f"keys contain duplicates ({n - len(set(keys))} repeated)")

        # First pass: column lookup and non-zero count.
        lookup = {}
        nnz = 0
        for i, key in enumerate(keys):
            lookup[key] = i
            if key not in rows_by_key:
                raise UnknownNeighborError(f"No weights row for key {key!r}")
            nnz += len(rows_by_key[key])

        values = np.empty(nnz, dtype=np.float64)
        col_index = np.empty(nnz, dtype=np.int64)
        row_index = np.empty(n + 1, dtype=np.int64)

        # Second pass: fill row-major.
        nz_idx = 0
        for i, key in enumerate(keys):
            row_index[i] = nz_idx
            for neighbor, weight in rows_by_key[key]:
                try:
                    col_index[nz_idx] = lookup[neighbor]
                except KeyError:
                    raise UnknownNeighborError(
                        f"Neighbor {neighbor!r} of key {key!r} is not one of the keys"
                    ) from None
                values[nz_idx] = weight
                nz_idx += 1
        row_index[n] = nnz

        return cls(values, col_index, row_index)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.n, self.n)

    def to_scipy(self) -> sp_sparse.csr_matrix:
        """Return the matrix as a scipy.sparse.csr_matrix (cached)."""
        if self._csr is None:
            self._csr = sp_sparse.csr_matrix(
                (self.values.copy(), self.col_index.copy(), self.row_index.copy()),
                shape=(self.n, self.n),
                dtype=np.float64,
            )
        return self._csr

    def _check_vector(self, vec) -> np.ndarray:
        vec = np.asarray(vec, dtype=np.float64)
        if vec.ndim == 0 or vec.shape[0] != self.n:
            size = 0 if vec.ndim == 0 else vec.shape[0]
            raise DimensionMismatchError(
                f"Dimension Mismatch CSRMatrix.n != vec.size ({self.n} != {size})"
            )
        return vec

    def mulvec(self, vec) -> np.ndarray:
        """
        Multiply the matrix by a vector.

        Formula: result[i] = sum over row i of value * vec[col]

        Parameters
        ----------
        vec : array-like
            Vector of length n, or an (n, k) matrix whose columns are
            multiplied independently.

        Returns
        -------
        np.ndarray
            Product of length n (or shape (n, k)).
        """
        vec = self._check_vector(vec)
        return np.asarray(self.to_scipy() @ vec)

    def dot_row(self, vec, row: int) -> float:
        """
        Dot product of one matrix row with ``vec``.

        Equivalent to ``mulvec(vec)[row]``.
        """
        vec = self._check_vector(vec)
        if not 0 <= row < self.n:
            raise IndexOutOfRangeError(f"Row {row} outside [0, {self.n})")
        start, end = self.row_index[row], self.row_index[row + 1]
        return float(np.dot(self.values[start:end], vec[self.col_index[start:end]]))

    def row(self, row: int) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(col_index, values)`` of a single row."""
        if not 0 <= row < self.n:
            raise IndexOutOfRangeError(f"Row {row} outside [0, {self.n})")
        start, end = self.row_index[row], self.row_index[row + 1]
        return self.col_index[start:end], self.values[start:end]

    def row_ids(self) -> np.ndarray:
        """Row index of every stored non-zero."""
        return np.repeat(np.arange(self.n, dtype=np.int64), np.diff(self.row_index))

    def row_sums(self) -> np.ndarray:
        """Sum of weights in every row."""
        return np.asarray(self.to_scipy().sum(axis=1)).ravel()

    def coordinates(self) -> dict[tuple[int, int], float]:
        """
        Map of ``(row, col) -> value`` for every stored non-zero.

        Examples
        --------
        >>> SparseWeightsMatrix([1.0, 2.0], [1, 0], [0, 1, 2]).coordinates()
        {(0, 1): 1.0, (1, 0): 2.0}
        """
        result = {}
        row = 0
        for k in range(self.nnz):
            # skip empty rows until k falls inside the current row
            while k >= self.row_index[row + 1]:
                row += 1
            result[(row, int(self.col_index[k]))] = float(self.values[k])
        return result

    def to_dense(self) -> np.ndarray:
        """Materialize the full n x n matrix. O(n^2) memory."""
        return self.to_scipy().toarray()

    def trace(self) -> float:
        """Sum of the diagonal entries."""
        rows = self.row_ids()
        return float(self.values[rows == self.col_index].sum())

    def __repr__(self):
        return f"SparseWeightsMatrix(n={self.n}, nnz={self.nnz})"
