"""Local indicators of spatial association: one value per observation."""

from spatialstatspy.local_stats.bivariate_moran import BivariateMoran
from spatialstatspy.local_stats.geary import Geary
from spatialstatspy.local_stats.getis_ord import GetisOrd
from spatialstatspy.local_stats.moran import Moran
from spatialstatspy.local_stats.multivariate_geary import MultivariateGeary

__all__ = [
    "Moran",
    "BivariateMoran",
    "GetisOrd",
    "Geary",
    "MultivariateGeary",
]
