"""
spatialstatspy - spatial autocorrelation statistics over weighted neighbor graphs

This package computes global and local indicators of spatial association for
observations linked by a sparse weights matrix. Statistics share one engine
with memoized results, closed-form moments where they exist and Monte Carlo
permutation inference.

Key Features:
- Sparse (CSR) weights with row-standardization and windowing
- Global Moran's I, bivariate Moran's I and Geary's C
- Local Moran's I, bivariate Moran's I, Getis-Ord G/G*, Geary's C and
  multivariate Geary's C
- Reproducible, optionally parallel permutation tests

Example:
    >>> from spatialstatspy import WeightsMatrix, global_stats
    >>> W = WeightsMatrix({1: [(2, 1.0)], 2: [(1, 1.0)]})
    >>> moran = global_stats.Moran(W.standardize(), [1.0, 2.0])
    >>> moran.stat()
"""

__version__ = "0.1.0"

from spatialstatspy import global_stats, local_stats
from spatialstatspy.config import InferenceConfig
from spatialstatspy.core.csr import SparseWeightsMatrix
from spatialstatspy.core.spatial_lag import neighbor_average, neighbor_sum, window_sum
from spatialstatspy.core.weights import WeightsMatrix
from spatialstatspy.errors import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidPermutationsError,
    InvalidWeightsError,
    NotComputableError,
    RowCountMismatchError,
    SpatialStatsError,
    UnboundVariableError,
    UnknownNeighborError,
)
from spatialstatspy.io.variables import query_field, query_fields, weights_from_frame
from spatialstatspy.stats.base import StatState

__all__ = [
    # Version
    "__version__",
    # Weights
    "WeightsMatrix",
    "SparseWeightsMatrix",
    "weights_from_frame",
    # Lag operators
    "neighbor_sum",
    "neighbor_average",
    "window_sum",
    # Statistics
    "global_stats",
    "local_stats",
    "StatState",
    "InferenceConfig",
    # Data fetch
    "query_field",
    "query_fields",
    # Errors
    "SpatialStatsError",
    "DimensionMismatchError",
    "RowCountMismatchError",
    "UnknownNeighborError",
    "IndexOutOfRangeError",
    "InvalidWeightsError",
    "InvalidPermutationsError",
    "NotComputableError",
    "UnboundVariableError",
]
