"""
Global bivariate Moran's I.

Formula: I_B = zx' * lag(zy) / n

zx and zy are z-scores of x and y (population std) and lag uses the
row-standardized weights. The Monte Carlo test permutes y with x fixed.
"""

import numpy as np

from spatialstatspy.core.normalization import standardize_vector
from spatialstatspy.core.spatial_lag import neighbor_sum
from spatialstatspy.stats.base import BivariateMixin, GlobalStatistic


class BivariateMoran(BivariateMixin, GlobalStatistic):
    """
    Correlation between x and the spatial lag of y.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights (row-standardized internally).
    x, y : array-like, optional
        Observations aligned to ``weights.keys``.
    y_field : hashable, optional
        Field fetched from ``source`` when y is omitted.

    Examples
    --------
    >>> bv = BivariateMoran(weights, income, crime)
    >>> bv.summary(permutations=999, seed=7)
    {'stat': ..., 'p': ...}
    """

    def __init__(self, weights, x=None, y=None, *, y_field=None, **kwargs):
        super().__init__(weights, x, **kwargs)
        self._init_y(y, y_field)

    def _lag_weights(self):
        return self._memo("w", lambda: self.weights.standardize().sparse)

    def _bivariate(self, x: np.ndarray, y: np.ndarray) -> float:
        zx = standardize_vector(x)
        zy_lag = neighbor_sum(self._lag_weights(), standardize_vector(y))
        return float(np.dot(zx, zy_lag)) / self.n

    def _statistic(self, x: np.ndarray) -> float:
        return self._bivariate(x, self.y)

    def _permutation_target(self) -> np.ndarray:
        return self.y

    def _permuted_statistic(self, permuted: np.ndarray) -> float:
        return self._bivariate(self.x, permuted)
