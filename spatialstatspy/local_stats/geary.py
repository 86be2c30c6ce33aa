"""
Local Geary's C.

Formula: c_i = sum_j(w_ij * (z_i - z_j)^2)

z holds the z-scores of x and the weights are row-standardized. Small c_i
means i resembles its neighbors.
"""

import numpy as np

from spatialstatspy.core.normalization import standardize_vector
from spatialstatspy.stats.base import LocalStatistic


class Geary(LocalStatistic):
    """
    Local Geary's C with conditional permutation inference.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights (row-standardized internally).
    x : array-like, optional
        Observations aligned to ``weights.keys``.
    """

    @property
    def neighborhood(self):
        return self._memo("w", lambda: self.weights.standardize().sparse)

    @property
    def zs(self) -> np.ndarray:
        """z-scores of x."""
        return self._memo("zs", lambda: standardize_vector(self.x))

    def _statistic(self, x: np.ndarray) -> np.ndarray:
        z = standardize_vector(x)
        sparse = self.neighborhood
        rows = sparse.row_ids()
        diffs = z[rows] - z[sparse.col_index]
        return np.bincount(rows, weights=sparse.values * diffs**2, minlength=self.n)

    def _conditional_statistic(self, i, ids, neighbor_weights, self_weight):
        z = self.zs
        # the self term (z_i - z_i)^2 vanishes
        return (z[i] - z[ids]) ** 2 @ neighbor_weights

    def groups(self) -> list[str]:
        """"H" for observations above the mean, "L" otherwise."""
        return ["H" if value > 0 else "L" for value in self.zs]
