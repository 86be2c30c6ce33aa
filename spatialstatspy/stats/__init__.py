"""Statistic engine and permutation testing."""

from spatialstatspy.stats.base import (
    GlobalStatistic,
    LocalStatistic,
    SpatialStatistic,
    StatState,
)
from spatialstatspy.stats.permutation import (
    conditional_permutation_test,
    folded_pseudo_pvalue,
    permutation_test,
)

__all__ = [
    "StatState",
    "SpatialStatistic",
    "GlobalStatistic",
    "LocalStatistic",
    "permutation_test",
    "conditional_permutation_test",
    "folded_pseudo_pvalue",
]
