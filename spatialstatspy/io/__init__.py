"""Data-fetch boundary: observation vectors and edge lists."""

from spatialstatspy.io.variables import query_field, query_fields, weights_from_frame

__all__ = ["query_field", "query_fields", "weights_from_frame"]
