"""
Local bivariate Moran's I.

Formula: I_i = zx_i * sum_j(w_ij * zy_j)

zx and zy are z-scores of x and y; weights are row-standardized. The
conditional permutation test holds zx_i fixed and draws i's neighborhood
from the other values of y.
"""

import numpy as np

from spatialstatspy.core.normalization import standardize_vector
from spatialstatspy.core.spatial_lag import neighbor_sum
from spatialstatspy.local_stats.moran import quadrants
from spatialstatspy.stats.base import BivariateMixin, LocalStatistic


class BivariateMoran(BivariateMixin, LocalStatistic):
    """
    Local association between x and the spatial lag of y.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights (row-standardized internally).
    x, y : array-like, optional
        Observations aligned to ``weights.keys``.
    y_field : hashable, optional
        Field fetched from ``source`` when y is omitted.
    """

    def __init__(self, weights, x=None, y=None, *, y_field=None, **kwargs):
        super().__init__(weights, x, **kwargs)
        self._init_y(y, y_field)

    @property
    def neighborhood(self):
        return self._memo("w", lambda: self.weights.standardize().sparse)

    @property
    def zx(self) -> np.ndarray:
        return self._memo("zx", lambda: standardize_vector(self.x))

    @property
    def zy(self) -> np.ndarray:
        return self._memo("zy", lambda: standardize_vector(self.y))

    def _statistic(self, x: np.ndarray) -> np.ndarray:
        zx = standardize_vector(x)
        return zx * neighbor_sum(self.neighborhood, self.zy)

    def _conditional_statistic(self, i, ids, neighbor_weights, self_weight):
        zy = self.zy
        zy_lag = zy[ids] @ neighbor_weights + self_weight * zy[i]
        return self.zx[i] * zy_lag

    def groups(self) -> list[str]:
        """Quadrant of (zx_i, lag(zy)_i): "HH", "LH", "LL" or "HL"."""
        return quadrants(self.zx, neighbor_sum(self.neighborhood, self.zy))
