"""
Getis-Ord G and G* hot spot statistics.

G_i  = sum_{j != i}(w_ij * x_j) / sum_{j != i}(x_j)
G*_i = sum_j(w_ij * x_j) / sum_j(x_j)

G uses row-standardized weights. G* first adds each observation to its own
neighborhood with weight 1, then row-standardizes, and divides by the total
of x. Windowing is idempotent, so pre-windowed weights give the same G*.

Closed-form moments follow Getis and Ord (1992) for general weights.
"""

import logging
from typing import Optional

import numpy as np

from spatialstatspy.core.spatial_lag import neighbor_sum
from spatialstatspy.errors import NotComputableError
from spatialstatspy.stats.base import LocalStatistic

logger = logging.getLogger(__name__)


class GetisOrd(LocalStatistic):
    """
    Local G or G* for every observation.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial weights. Values are row-standardized internally.
    x : array-like, optional
        Non-negative observations aligned to ``weights.keys``.
    star : bool, optional
        Compute G* (True) or G (False). When None, G* is used if the weights
        already contain self-weights (positive trace).

    Examples
    --------
    >>> g = GetisOrd(weights, x)
    >>> g.star
    False
    >>> GetisOrd(weights.window(), x).star
    True
    """

    def __init__(self, weights, x=None, star: Optional[bool] = None, **kwargs):
        super().__init__(weights, x, **kwargs)
        self._star = star

    @property
    def star(self) -> bool:
        """True when G* is computed."""
        if self._star is None:
            self._star = bool(self.weights.sparse.trace() > 0)
            logger.debug(f"GetisOrd: star={self._star} from the weights trace")
        return self._star

    @star.setter
    def star(self, value: bool):
        self._star = bool(value)
        self._invalidate()

    @property
    def neighborhood(self):
        def build():
            weights = self.weights.window() if self.star else self.weights
            return weights.standardize().sparse

        return self._memo("w", build)

    def _lag(self, x: np.ndarray) -> np.ndarray:
        return neighbor_sum(self.neighborhood, x)

    def _denominators(self, x: np.ndarray) -> np.ndarray:
        total = float(np.sum(x))
        if self.star:
            denominators = np.full(self.n, total)
        else:
            denominators = total - x

        if np.any(denominators == 0):
            raise NotComputableError(
                f"Getis-Ord {'G*' if self.star else 'G'} has a zero denominator"
            )
        return denominators

    def _statistic(self, x: np.ndarray) -> np.ndarray:
        return self._lag(x) / self._denominators(x)

    def _conditional_statistic(self, i, ids, neighbor_weights, self_weight):
        x = self.x
        denominators = self._memo("denominators", lambda: self._denominators(x))
        x_lag = x[ids] @ neighbor_weights + self_weight * x[i]
        return x_lag / denominators[i]

    def _weight_moments(self) -> tuple[np.ndarray, np.ndarray]:
        # W_i and S1_i over each row, the self weight dropped for G
        sparse = self.neighborhood
        values = sparse.values
        if not self.star:
            values = np.where(sparse.col_index == sparse.row_ids(), 0.0, values)
        rows = sparse.row_ids()
        w_i = np.bincount(rows, weights=values, minlength=self.n)
        s1_i = np.bincount(rows, weights=values**2, minlength=self.n)
        return w_i, s1_i

    def _expectation(self) -> np.ndarray:
        n = self.n
        w_i, _ = self._weight_moments()
        if self.star:
            return w_i / n
        if n < 2:
            raise NotComputableError("Getis-Ord G needs at least 2 observations")
        return w_i / (n - 1)

    def _variance(self) -> np.ndarray:
        n = self.n
        x = self.x
        w_i, s1_i = self._weight_moments()

        if self.star:
            if n < 2:
                raise NotComputableError("Getis-Ord G* variance needs at least 2 observations")
            y1 = np.full(n, np.mean(x))
            y2 = np.sum(x**2) / n - y1**2
            scale = (n * s1_i - w_i**2) / (n**2 * (n - 1))
        else:
            if n < 3:
                raise NotComputableError("Getis-Ord G variance needs at least 3 observations")
            y1 = (np.sum(x) - x) / (n - 1)
            y2 = (np.sum(x**2) - x**2) / (n - 1) - y1**2
            scale = ((n - 1) * s1_i - w_i**2) / ((n - 1) ** 2 * (n - 2))

        if np.any(y1 == 0):
            raise NotComputableError("Getis-Ord variance is undefined when the mean of x is 0")
        return scale * y2 / y1**2

    def groups(self) -> list[str]:
        """"H" (hot spot) where G_i exceeds its expectation, "L" otherwise."""
        expected = self.expectation()
        return ["H" if g > e else "L" for g, e in zip(self.stat(), expected)]
