"""
Spatial lag operators.

The spatial lag combines a weights matrix with a vector of observations:
    neighbor_sum:     lag_i = sum_j(w_ij * v_j)
    neighbor_average: lag_i = sum_j(w_ij * v_j) / sum_j(w_ij)
    window_sum:       neighbor_sum over weights that include i itself

Every operator accepts a WeightsMatrix, a SparseWeightsMatrix, a scipy sparse
matrix or a dense np.ndarray. Vectors may also be (n, k) matrices, in which
case each column is lagged independently.
"""

import numpy as np
from scipy import sparse as sp_sparse

from spatialstatspy.core.csr import SparseWeightsMatrix
from spatialstatspy.core.weights import WeightsMatrix
from spatialstatspy.errors import DimensionMismatchError


def _as_operator(W):
    """Return W as a scipy sparse matrix or dense ndarray."""
    if isinstance(W, WeightsMatrix):
        return W.sparse.to_scipy()
    if isinstance(W, SparseWeightsMatrix):
        return W.to_scipy()
    if sp_sparse.issparse(W):
        return W.tocsr()

    W = np.asarray(W, dtype=np.float64)
    if W.ndim != 2 or W.shape[0] != W.shape[1]:
        raise DimensionMismatchError(f"Expected a square weights matrix, got shape {W.shape}")
    return W


def _check_vector(W, v) -> np.ndarray:
    v = np.asarray(v, dtype=np.float64)
    n = W.shape[0]
    if v.ndim == 0 or v.shape[0] != n:
        size = 0 if v.ndim == 0 else v.shape[0]
        raise DimensionMismatchError(f"Vector length {size} != weights dimension {n}")
    return v


def _row_sums(W) -> np.ndarray:
    return np.asarray(W.sum(axis=1)).ravel()


def neighbor_sum(W, v) -> np.ndarray:
    """
    Weighted sum of neighbor values.

    Formula: lag = W @ v

    Parameters
    ----------
    W : WeightsMatrix, SparseWeightsMatrix, sparse matrix or np.ndarray
        Spatial weights (n x n).
    v : array-like
        Values (length n, or n x k).

    Returns
    -------
    np.ndarray
        Spatial lag (length n, or n x k).

    Examples
    --------
    >>> W = np.array([[0.0, 1.0], [1.0, 0.0]])
    >>> neighbor_sum(W, [1.0, 2.0])
    array([2., 1.])
    """
    W = _as_operator(W)
    v = _check_vector(W, v)

    if sp_sparse.issparse(W):
        return np.asarray(W @ v)
    return np.dot(W, v)


def neighbor_average(W, v) -> np.ndarray:
    """
    Weighted average of neighbor values.

    Each neighbor sum is divided by its row's weight sum. Observations with
    no neighbors (zero row sum) get a lag of 0.

    Parameters
    ----------
    W : WeightsMatrix, SparseWeightsMatrix, sparse matrix or np.ndarray
        Spatial weights (n x n).
    v : array-like
        Values (length n, or n x k).

    Returns
    -------
    np.ndarray
        Spatial lag (length n, or n x k).
    """
    W = _as_operator(W)
    lag = neighbor_sum(W, v)

    row_sums = _row_sums(W)
    if lag.ndim == 2:
        row_sums = row_sums[:, np.newaxis]

    safe = np.where(row_sums != 0, row_sums, 1.0)
    return np.where(row_sums != 0, lag / safe, 0.0)


def window_sum(W, v) -> np.ndarray:
    """
    Weighted sum of values over self-inclusive neighborhoods.

    W is windowed first (self weight set to 1) so that v_i contributes to
    its own lag.

    Parameters
    ----------
    W : WeightsMatrix, SparseWeightsMatrix, sparse matrix or np.ndarray
        Spatial weights (n x n).
    v : array-like
        Values (length n, or n x k).

    Returns
    -------
    np.ndarray
        Windowed spatial lag.
    """
    if isinstance(W, WeightsMatrix):
        return neighbor_sum(W.window(), v)

    W = _as_operator(W)
    if sp_sparse.issparse(W):
        W = W.tolil(copy=True)
        W.setdiag(1.0)
        W = W.tocsr()
    else:
        W = W.copy()
        np.fill_diagonal(W, 1.0)
    return neighbor_sum(W, v)
