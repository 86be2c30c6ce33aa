"""
Multivariate local Geary's C.

Formula: c_i = (1 / k) * sum_v sum_j(w_ij * (z_vi - z_vj)^2)

over k variables, each converted to z-scores. The conditional permutation
test moves whole observations, keeping the k values of a row together.
"""

import numpy as np

from spatialstatspy.core.normalization import standardize_vector
from spatialstatspy.errors import DimensionMismatchError
from spatialstatspy.stats.base import LocalStatistic


class MultivariateGeary(LocalStatistic):
    """
    Local Geary's C over several variables at once.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights (row-standardized internally).
    x : array-like, optional
        (n, k) matrix, one column per variable.
    field : list, optional
        Fields fetched from ``source`` as the columns of x.

    Examples
    --------
    >>> mg = MultivariateGeary(weights, source=df, field=["income", "crime"])
    >>> mg.summary(permutations=999, seed=3)
    """

    def _validate_vector(self, x) -> np.ndarray:
        x = super()._validate_vector(x)
        if x.ndim != 2:
            raise DimensionMismatchError(
                f"MultivariateGeary needs an (n, k) matrix, got {x.ndim} dimension(s)"
            )
        return x

    @property
    def k(self) -> int:
        """Number of variables."""
        return self.x.shape[1]

    @property
    def neighborhood(self):
        return self._memo("w", lambda: self.weights.standardize().sparse)

    @property
    def zs(self) -> np.ndarray:
        return self._memo("zs", lambda: standardize_vector(self.x))

    def _statistic(self, x: np.ndarray) -> np.ndarray:
        z = standardize_vector(x)
        sparse = self.neighborhood
        rows = sparse.row_ids()
        squared = np.sum((z[rows] - z[sparse.col_index]) ** 2, axis=1)
        total = np.bincount(rows, weights=sparse.values * squared, minlength=self.n)
        return total / z.shape[1]

    def _conditional_statistic(self, i, ids, neighbor_weights, self_weight):
        z = self.zs
        # (permutations, k_i, variables)
        squared = np.sum((z[i] - z[ids]) ** 2, axis=2)
        return squared @ neighbor_weights / z.shape[1]
