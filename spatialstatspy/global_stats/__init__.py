"""Global spatial autocorrelation statistics."""

from spatialstatspy.global_stats.bivariate_moran import BivariateMoran
from spatialstatspy.global_stats.geary import Geary
from spatialstatspy.global_stats.moran import Moran

__all__ = [
    "Moran",
    "BivariateMoran",
    "Geary",
]
