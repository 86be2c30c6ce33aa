"""
Local Moran's I (LISA).

Formula: I_i = (z_i / m2_i) * sum_j(w_ij * z_j)

where z = x - mean(x) and m2_i = sum_{j != i}(z_j^2) / (n - 1), a variance
estimate that leaves observation i out. Weights are used as given.

Reference:
https://pro.arcgis.com/en/pro-app/tool-reference/spatial-statistics/h-how-cluster-and-outlier-analysis-anselin-local-m.htm
"""

import numpy as np

from spatialstatspy.core.normalization import demean_vector
from spatialstatspy.core.spatial_lag import neighbor_sum
from spatialstatspy.errors import NotComputableError
from spatialstatspy.stats.base import LocalStatistic


def quadrants(values, lags) -> list[str]:
    """
    Moran scatterplot quadrant of every observation.

    "HH": value and lag above the mean, "LL": both below,
    "HL" / "LH": high value among low neighbors and vice versa.
    """
    return [
        ("H" if value > 0 else "L") + ("H" if lag > 0 else "L")
        for value, lag in zip(values, lags)
    ]


class Moran(LocalStatistic):
    """
    Local Moran's I with conditional permutation inference.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights.
    x : array-like, optional
        Observations aligned to ``weights.keys``.

    Examples
    --------
    >>> lisa = Moran(weights.standardize(), x)
    >>> lisa.stat()           # one I_i per key
    >>> lisa.summary(permutations=999, seed=1)
    """

    @property
    def neighborhood(self):
        return self.weights.sparse

    def _si2(self, z: np.ndarray) -> np.ndarray:
        # sum of z_j^2 over j != i, divided by n - 1
        n = self.n
        if n < 2:
            raise NotComputableError("Local Moran's I needs at least 2 observations")
        z2 = z**2
        return (z2.sum() - z2) / (n - 1)

    def _statistic(self, x: np.ndarray) -> np.ndarray:
        z = demean_vector(x)
        si2 = self._si2(z)
        z_lag = neighbor_sum(self.neighborhood, z)

        # m2_i == 0 only when every other z_j is 0; the lag is 0 then too
        safe = np.where(si2 != 0, si2, 1.0)
        return np.where(si2 != 0, z / safe * z_lag, 0.0)

    def _conditional_statistic(self, i, ids, neighbor_weights, self_weight):
        z = self.z
        si2 = self._memo("si2", lambda: self._si2(z))
        if si2[i] == 0:
            return np.zeros(ids.shape[0])
        z_lag = z[ids] @ neighbor_weights + self_weight * z[i]
        return z[i] / si2[i] * z_lag

    def groups(self) -> list[str]:
        """Quadrant ("HH", "LH", "LL", "HL") of every observation."""
        return quadrants(self.z, neighbor_sum(self.neighborhood, self.z))
