"""
Global Geary's C.

Formula: C = (n - 1) * sum_ij(w_ij * (x_i - x_j)^2) / (2 * W * sum_i(z_i^2))

C < 1 indicates positive spatial autocorrelation, C > 1 negative.
"""

import numpy as np

from spatialstatspy.core.normalization import demean_vector
from spatialstatspy.errors import NotComputableError
from spatialstatspy.stats.base import GlobalStatistic


class Geary(GlobalStatistic):
    """
    Global Geary's C with randomization moments.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights, used as given.
    x : array-like, optional
        Observations aligned to ``weights.keys``.
    """

    def _weight_sum(self) -> float:
        w = float(self.weights.sparse.values.sum())
        if w == 0.0:
            raise NotComputableError("Geary's C is undefined for all-zero weights")
        return w

    def _statistic(self, x: np.ndarray) -> float:
        n = self.n
        z = demean_vector(x)
        denominator = float(np.dot(z, z))
        if denominator == 0.0:
            raise NotComputableError("Geary's C is undefined for a constant vector")

        sparse = self.weights.sparse
        diffs = x[sparse.row_ids()] - x[sparse.col_index]
        numerator = float(np.sum(sparse.values * diffs**2))
        return (n - 1) * numerator / (2.0 * self._weight_sum() * denominator)

    def _expectation(self) -> float:
        return 1.0

    def _variance(self) -> float:
        n = self.n
        if n <= 3:
            raise NotComputableError(f"Geary's C variance needs n > 3, got n={n}")

        wij = self.weights.full
        s0 = self._weight_sum()
        s1 = 0.5 * float(np.sum((wij + wij.T) ** 2))
        s2 = float(np.sum((wij.sum(axis=1) + wij.sum(axis=0)) ** 2))

        z = self.z
        m2 = np.sum(z**2) / n
        if m2 == 0.0:
            raise NotComputableError("Geary's C variance is undefined for a constant vector")
        k = float((np.sum(z**4) / n) / m2**2)

        n2 = n * n
        s02 = s0 * s0
        a = (n - 1) * s1 * (n2 - 3 * n + 3 - (n - 1) * k)
        b = 0.25 * (n - 1) * s2 * (n2 + 3 * n - 6 - (n2 - n + 2) * k)
        c = s02 * (n2 - 3 - (n - 1) ** 2 * k)
        return (a - b + c) / (n * (n - 2) * (n - 3) * s02)
