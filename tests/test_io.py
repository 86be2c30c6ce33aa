"""Tests for the data-fetch boundary."""

import numpy as np
import pandas as pd
import pytest

from spatialstatspy.errors import DimensionMismatchError, UnknownNeighborError
from spatialstatspy.io.variables import query_field, query_fields, weights_from_frame


class TestQueryField:
    """Tests for query_field."""

    def test_dataframe_positional(self):
        """Test rows are taken in order without a key column."""
        frame = pd.DataFrame({"pop": [3, 1, 2]})
        values = query_field(frame, "pop")
        assert values.dtype == np.float64
        assert np.array_equal(values, [3.0, 1.0, 2.0])

    def test_dataframe_key_alignment(self):
        """Test values follow the requested key order."""
        frame = pd.DataFrame({"id": ["c", "a", "b"], "pop": [30.0, 10.0, 20.0]})
        values = query_field(frame, "pop", keys=["a", "b", "c"], key_column="id")
        assert np.array_equal(values, [10.0, 20.0, 30.0])

    def test_missing_key(self):
        """Test a key without a row is rejected."""
        frame = pd.DataFrame({"id": [1, 2], "pop": [1.0, 2.0]})
        with pytest.raises(DimensionMismatchError):
            query_field(frame, "pop", keys=[1, 2, 3], key_column="id")

    def test_duplicate_keys(self):
        """Test duplicate keys in the source are rejected."""
        frame = pd.DataFrame({"id": [1, 1], "pop": [1.0, 2.0]})
        with pytest.raises(ValueError):
            query_field(frame, "pop", keys=[1], key_column="id")

    def test_missing_field(self):
        """Test an unknown column raises KeyError."""
        with pytest.raises(KeyError):
            query_field(pd.DataFrame({"pop": [1.0]}), "income")

    def test_mapping_and_callable(self):
        """Test mapping and callable sources."""
        assert np.array_equal(query_field({"pop": [1, 2]}, "pop"), [1.0, 2.0])
        assert np.array_equal(query_field(lambda field: [len(field)] * 2, "pop"), [3.0, 3.0])

    def test_non_numeric(self):
        """Test non-numeric values are rejected."""
        with pytest.raises(ValueError):
            query_field({"name": ["a", "b"]}, "name")

    def test_unsupported_source(self):
        """Test unsupported source types are rejected."""
        with pytest.raises(TypeError):
            query_field(42, "pop")


class TestQueryFields:
    """Tests for query_fields."""

    def test_columns(self):
        """Test fields become columns in order."""
        matrix = query_fields({"a": [1, 2, 3], "b": [4, 5, 6]}, ["b", "a"])
        assert matrix.shape == (3, 2)
        assert np.array_equal(matrix[:, 0], [4.0, 5.0, 6.0])

    def test_unequal_lengths(self):
        """Test fields of different lengths are rejected."""
        with pytest.raises(DimensionMismatchError):
            query_fields({"a": [1, 2, 3], "b": [4, 5]}, ["a", "b"])


class TestWeightsFromFrame:
    """Tests for weights_from_frame."""

    def test_default_weight(self):
        """Test edges without a weight column weigh 1."""
        edges = pd.DataFrame({"source": ["a", "b", "b"], "neighbor": ["b", "a", "c"]})
        W = weights_from_frame(edges)

        assert W.keys == ("a", "b", "c")
        assert W.rows["b"] == (("a", 1.0), ("c", 1.0))
        assert W.rows["c"] == ()

    def test_weight_column(self):
        """Test weights are read from the weight column."""
        edges = pd.DataFrame({"from": [1, 2], "to": [2, 1], "w": [0.25, 4]})
        W = weights_from_frame(edges, source="from", neighbor="to", weight="w")
        assert W.rows[1] == ((2, 0.25),)
        assert W.rows[2] == ((1, 4.0),)

    def test_explicit_keys(self):
        """Test keys define order and may include isolates."""
        edges = pd.DataFrame({"source": [2], "neighbor": [1]})
        W = weights_from_frame(edges, keys=[1, 2, 3])
        assert W.keys == (1, 2, 3)
        assert W.rows[3] == ()

    def test_unknown_source(self):
        """Test an edge from a key outside ``keys`` is rejected."""
        edges = pd.DataFrame({"source": [9], "neighbor": [1]})
        with pytest.raises(UnknownNeighborError):
            weights_from_frame(edges, keys=[1, 2])

    def test_unknown_neighbor(self):
        """Test an edge to a key outside ``keys`` is rejected."""
        edges = pd.DataFrame({"source": [1], "neighbor": [9]})
        with pytest.raises(UnknownNeighborError):
            weights_from_frame(edges, keys=[1, 2])
