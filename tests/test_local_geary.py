"""Tests for local and multivariate local Geary's C."""

import numpy as np
import pandas as pd
import pytest

from spatialstatspy.core.normalization import standardize_vector
from spatialstatspy.errors import DimensionMismatchError
from spatialstatspy.local_stats import Geary, MultivariateGeary


def naive_local_geary(W: np.ndarray, x: np.ndarray) -> np.ndarray:
    z = standardize_vector(x)
    n = len(z)
    return np.array([sum(W[i, j] * (z[i] - z[j]) ** 2 for j in range(n)) for i in range(n)])


class TestLocalGeary:
    """Tests for local_stats.Geary."""

    def test_matches_reference(self, lattice, clustered_values):
        """Test against a loop with row-standardized weights."""
        W = np.asarray(lattice.standardize().full)
        c = Geary(lattice, clustered_values).stat()
        assert np.allclose(c, naive_local_geary(W, clustered_values))

    def test_non_negative(self, lattice):
        """Test every c_i is a weighted sum of squares."""
        x = np.random.default_rng(0).standard_normal(25)
        assert np.all(Geary(lattice, x).stat() >= 0)

    def test_groups_follow_sign(self, lattice, clustered_values):
        """Test H / L groups by the sign of the z-score."""
        groups = Geary(lattice, clustered_values).groups()
        z = standardize_vector(clustered_values)
        assert groups == ["H" if v > 0 else "L" for v in z]

    def test_similar_neighbors_significant(self, large_lattice, block_values):
        """Test cells inside the high block resemble their neighbors."""
        geary = Geary(large_lattice, block_values)
        pvalues = geary.mc(permutations=99, seed=5)
        for key in (44, 45, 54, 55):
            assert pvalues[key] < 0.05

    def test_reproducible(self, lattice, clustered_values):
        """Test the same seed gives the same p-values."""
        a = Geary(lattice, clustered_values).mc(permutations=49, seed=3)
        b = Geary(lattice, clustered_values).mc(permutations=49, seed=3, n_jobs=2)
        assert np.array_equal(a, b)


class TestMultivariateGeary:
    """Tests for local_stats.MultivariateGeary."""

    def test_single_variable_matches_geary(self, lattice, clustered_values):
        """Test k = 1 reduces to the local Geary statistic."""
        multi = MultivariateGeary(lattice, clustered_values.reshape(-1, 1)).stat()
        assert np.allclose(multi, Geary(lattice, clustered_values).stat())

    def test_average_of_variables(self, lattice, clustered_values):
        """Test c_i is the mean of the per-variable local Geary values."""
        other = np.random.default_rng(9).standard_normal(25)
        multi = MultivariateGeary(lattice, np.column_stack([clustered_values, other])).stat()
        expected = (Geary(lattice, clustered_values).stat() + Geary(lattice, other).stat()) / 2
        assert np.allclose(multi, expected)

    def test_vector_rejected(self, lattice, clustered_values):
        """Test a 1-D input is rejected."""
        with pytest.raises(DimensionMismatchError):
            MultivariateGeary(lattice, clustered_values)

    def test_source_fields(self, lattice, clustered_values):
        """Test several fields are fetched as columns."""
        other = np.random.default_rng(9).standard_normal(25)
        frame = pd.DataFrame({"a": clustered_values, "b": other})
        multi = MultivariateGeary(lattice, source=frame, field=["a", "b"])

        assert multi.x.shape == (25, 2)
        assert multi.k == 2
        direct = MultivariateGeary(lattice, np.column_stack([clustered_values, other]))
        assert np.allclose(multi.stat(), direct.stat())

    def test_summary_without_groups(self, lattice, clustered_values):
        """Test records carry no group classification."""
        other = np.random.default_rng(9).standard_normal(25)
        multi = MultivariateGeary(lattice, np.column_stack([clustered_values, other]))
        records = multi.summary(permutations=19, seed=1)

        assert multi.groups() is None
        assert all(r["group"] is None for r in records)
        assert all(1 / 20 <= r["p"] <= 1 for r in records)

    def test_reproducible(self, lattice, clustered_values):
        """Test p-values do not depend on n_jobs."""
        x = np.column_stack([clustered_values, clustered_values**2])
        a = MultivariateGeary(lattice, x).mc(permutations=49, seed=2)
        b = MultivariateGeary(lattice, x).mc(permutations=49, seed=2, n_jobs=4)
        assert np.array_equal(a, b)
