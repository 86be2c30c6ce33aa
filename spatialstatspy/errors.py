"""
Exception types raised by spatialstatspy.

Every error derives from SpatialStatsError and from the closest builtin
exception, so callers can catch either the package error or the builtin.
"""


class SpatialStatsError(Exception):
    """Base class for all spatialstatspy errors."""


class DimensionMismatchError(SpatialStatsError, ValueError):
    """A vector or row count does not match the number of observations."""


class RowCountMismatchError(DimensionMismatchError):
    """The declared row count of a weights input differs from its key count."""


class UnknownNeighborError(SpatialStatsError, KeyError):
    """A neighbor id referenced by a weights row is not one of the keys."""

    def __str__(self):
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class IndexOutOfRangeError(SpatialStatsError, IndexError):
    """A row or observation index is outside [0, n)."""


class InvalidWeightsError(SpatialStatsError, ValueError):
    """Weights input is malformed (non-numeric or non-finite weight).

    Invalid permutation counts are reported under this category too.
    """


class InvalidPermutationsError(InvalidWeightsError):
    """A permutation count is not a positive integer."""


class NotComputableError(SpatialStatsError, ArithmeticError):
    """A statistic or moment has a zero denominator for the bound data."""


class UnboundVariableError(SpatialStatsError, RuntimeError):
    """A statistic was used before any variable was bound to it."""
