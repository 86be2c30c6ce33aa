"""Tests for normalization functions."""

import numpy as np

from spatialstatspy.core.normalization import demean_vector, standardize_vector


class TestDemeanVector:
    """Tests for demean_vector."""

    def test_basic(self):
        """Test values are centered on the mean."""
        assert np.allclose(demean_vector([1.0, 2.0, 3.0]), [-1.0, 0.0, 1.0])

    def test_columns(self):
        """Test each column of a matrix is centered separately."""
        x = np.array([[1.0, 10.0], [3.0, 30.0]])
        assert np.allclose(demean_vector(x), [[-1.0, -10.0], [1.0, 10.0]])


class TestStandardizeVector:
    """Tests for standardize_vector."""

    def test_basic_standardization(self):
        """Test basic z-score standardization."""
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        z = standardize_vector(x)

        assert np.abs(np.mean(z)) < 1e-10
        assert np.abs(np.std(z) - 1.0) < 1e-10

    def test_constant_vector(self):
        """Test constant vector returns zeros."""
        x = np.ones(10) * 5.0
        z = standardize_vector(x)

        assert np.allclose(z, 0.0)

    def test_population_std(self):
        """Test that population std (N) is used, not sample std (N-1)."""
        x = np.array([1.0, 2.0, 3.0])
        z = standardize_vector(x)

        # Population std = sqrt(2/3)
        expected = np.array([-1.0, 0.0, 1.0]) / np.sqrt(2.0 / 3.0)
        assert np.allclose(z, expected)

    def test_matrix_columns(self):
        """Test columns are standardized independently; constant ones become zeros."""
        rng = np.random.default_rng(3)
        x = np.column_stack([rng.standard_normal(20), np.full(20, 7.0)])
        z = standardize_vector(x)

        assert z.shape == (20, 2)
        assert np.allclose(z[:, 0], standardize_vector(x[:, 0]))
        assert np.allclose(z[:, 1], 0.0)
