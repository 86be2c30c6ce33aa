"""Weights representations and lag operators."""

from spatialstatspy.core.csr import SparseWeightsMatrix
from spatialstatspy.core.normalization import demean_vector, standardize_vector
from spatialstatspy.core.spatial_lag import neighbor_average, neighbor_sum, window_sum
from spatialstatspy.core.weights import WeightsMatrix

__all__ = [
    "SparseWeightsMatrix",
    "WeightsMatrix",
    "demean_vector",
    "standardize_vector",
    "neighbor_sum",
    "neighbor_average",
    "window_sum",
]
