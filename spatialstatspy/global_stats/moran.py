"""
Global Moran's I.

Formula: I = sum_i(z_i * lag_i) / sum_i(z_i^2)

where z = x - mean(x) and lag = neighbor_average(W, z). The classical
interpretation assumes row-standardized weights; other weights yield a
generalized statistic and are used as given.
"""

import logging

import numpy as np

from spatialstatspy.core.normalization import demean_vector
from spatialstatspy.core.spatial_lag import neighbor_average
from spatialstatspy.errors import NotComputableError
from spatialstatspy.stats.base import GlobalStatistic

logger = logging.getLogger(__name__)


class Moran(GlobalStatistic):
    """
    Global Moran's I with analytic moments and permutation inference.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights, typically row-standardized.
    x : array-like, optional
        Observations aligned to ``weights.keys``.

    Examples
    --------
    >>> moran = Moran(weights.standardize(), x)
    >>> moran.stat()
    >>> moran.mc(permutations=999, seed=42)

    Notes
    -----
    A constant vector has no variation to correlate; its I is 0.
    """

    def _statistic(self, x: np.ndarray) -> float:
        z = demean_vector(x)
        denominator = float(np.dot(z, z))
        if denominator == 0.0:
            logger.debug("Moran's I of a constant vector is defined as 0")
            return 0.0

        z_lag = neighbor_average(self.weights.sparse, z)
        return float(np.dot(z, z_lag)) / denominator

    def _expectation(self) -> float:
        # -1/(n-1)
        n = self.n
        if n < 2:
            raise NotComputableError("Moran's I expectation needs at least 2 observations")
        return -1.0 / (n - 1)

    def _variance(self) -> float:
        """
        Variance under randomization (Cliff and Ord).

        s1, s2 need full pairwise sums, so the dense matrix is used.
        """
        n = self.n
        if n <= 3:
            raise NotComputableError(f"Moran's I variance needs n > 3, got n={n}")

        wij = self.weights.full
        w = float(wij.sum())
        if w == 0.0:
            raise NotComputableError("Moran's I variance is undefined for all-zero weights")

        z = self.z
        m2 = np.sum(z**2) / n
        if m2 == 0.0:
            raise NotComputableError("Moran's I variance is undefined for a constant vector")

        e = self.expectation()
        s1 = 0.5 * float(np.sum((wij + wij.T) ** 2))
        s2 = float(np.sum((wij.sum(axis=1) + wij.sum(axis=0)) ** 2))
        s3 = float((np.sum(z**4) / n) / m2**2)

        s4 = (n**2 - 3 * n + 3) * s1 - n * s2 + 3 * w**2
        s5 = (n**2 - n) * s1 - 2 * n * s2 + 6 * w**2

        var_left = (n * s4 - s3 * s5) / ((n - 1) * (n - 2) * (n - 3) * w**2)
        return var_left - e**2
