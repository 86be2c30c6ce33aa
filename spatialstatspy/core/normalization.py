"""
Centering and standardization of observation vectors.

All functions compute mean/std across ALL observations bound to the weights
matrix, never across subsets.
"""

import numpy as np


def demean_vector(x) -> np.ndarray:
    """
    Center a vector (or each column of an n x k matrix) on its mean.

    Formula: z_i = x_i - mean(x)

    Examples
    --------
    >>> demean_vector([1.0, 2.0, 3.0])
    array([-1.,  0.,  1.])
    """
    x_arr = np.asarray(x, dtype=np.float64)
    return x_arr - x_arr.mean(axis=0)


def standardize_vector(x) -> np.ndarray:
    """
    Z-score standardization.

    Computes (x - mean(x)) / std(x) using population standard deviation.
    A 2-D input is standardized column by column.

    Parameters
    ----------
    x : array-like
        Input vector of length n, or an (n, k) matrix.

    Returns
    -------
    np.ndarray
        Standardized values with mean=0, std=1.
        Constant vectors (std < 1e-10) become zeros.

    Examples
    --------
    >>> x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    >>> z = standardize_vector(x)
    >>> np.abs(z.mean()) < 1e-10
    True

    Notes
    -----
    Uses population standard deviation (N, not N-1).
    """
    x_arr = np.asarray(x, dtype=np.float64)
    n = x_arr.shape[0]

    z = demean_vector(x_arr)
    std_x = np.sqrt(np.sum(z**2, axis=0) / n)

    constant = std_x < 1e-10
    result = z / np.where(constant, 1.0, std_x)
    if np.ndim(constant) == 0:
        return np.zeros(n, dtype=np.float64) if constant else result

    result[:, constant] = 0.0
    return result
