"""Tests for global Moran's I."""

import numpy as np
import pytest

from spatialstatspy.core.weights import WeightsMatrix
from spatialstatspy.errors import NotComputableError
from spatialstatspy.global_stats import Moran


def naive_moran(W: np.ndarray, x: np.ndarray) -> float:
    """Reference formula n / S0 * z'Wz / z'z."""
    z = x - x.mean()
    return len(x) / W.sum() * (z @ W @ z) / (z @ z)


def naive_variance(W: np.ndarray, x: np.ndarray) -> float:
    """Cliff-Ord randomization variance with explicit loops."""
    n = len(x)
    z = x - x.mean()
    s0 = W.sum()
    s1 = 0.0
    for i in range(n):
        for j in range(n):
            s1 += (W[i, j] + W[j, i]) ** 2
    s1 /= 2.0
    s2 = sum((W[i, :].sum() + W[:, i].sum()) ** 2 for i in range(n))
    b2 = n * np.sum(z**4) / np.sum(z**2) ** 2

    e = -1.0 / (n - 1)
    numerator = n * ((n**2 - 3 * n + 3) * s1 - n * s2 + 3 * s0**2) - b2 * (
        (n**2 - n) * s1 - 2 * n * s2 + 6 * s0**2
    )
    return numerator / ((n - 1) * (n - 2) * (n - 3) * s0**2) - e**2


class TestMoranStatistic:
    """Tests for the statistic value."""

    def test_matches_reference(self, lattice, clustered_values):
        """Test against the dense textbook formula."""
        W = lattice.standardize()
        assert np.isclose(
            Moran(W, clustered_values).stat(), naive_moran(np.asarray(W.full), clustered_values)
        )

    def test_raw_weights_are_averaged(self, lattice, clustered_values):
        """Test binary weights give the same I as their standardized form."""
        raw = Moran(lattice, clustered_values).stat()
        standardized = Moran(lattice.standardize(), clustered_values).stat()
        assert np.isclose(raw, standardized)

    def test_constant_vector(self, worked_example):
        """Test a constant vector has I = 0."""
        assert Moran(worked_example.standardize(), [5.0, 5.0, 5.0, 5.0]).stat() == 0.0

    def test_clustered_positive(self, lattice, clustered_values):
        """Test clustered values give positive autocorrelation."""
        assert Moran(lattice.standardize(), clustered_values).stat() > 0.5

    def test_checkerboard_negative(self, lattice):
        """Test alternating values give negative autocorrelation."""
        x = (np.arange(25) % 2).astype(float)
        assert Moran(lattice.standardize(), x).stat() < -0.5


class TestMoranMoments:
    """Tests for expectation and variance."""

    def test_expectation(self, lattice):
        """Test E[I] = -1 / (n - 1)."""
        assert Moran(lattice, np.arange(25.0)).expectation() == pytest.approx(-1.0 / 24)

    def test_variance_matches_reference(self, lattice, clustered_values):
        """Test the variance against an explicit double loop."""
        W = lattice.standardize()
        variance = Moran(W, clustered_values).variance()
        assert variance > 0
        assert np.isclose(variance, naive_variance(np.asarray(W.full), clustered_values))

    def test_variance_asymmetric_weights(self):
        """Test asymmetric weights use both row and column sums."""
        rng = np.random.default_rng(8)
        dense = rng.uniform(size=(8, 8)) * (rng.uniform(size=(8, 8)) > 0.5)
        np.fill_diagonal(dense, 0.0)
        x = rng.standard_normal(8)

        variance = Moran(WeightsMatrix.from_dense(dense), x).variance()
        assert np.isclose(variance, naive_variance(dense, x))

    def test_variance_small_n(self):
        """Test n <= 3 is not computable."""
        W = WeightsMatrix({1: [(2, 1.0)], 2: [(3, 1.0)], 3: [(1, 1.0)]})
        with pytest.raises(NotComputableError):
            Moran(W, [1.0, 2.0, 3.0]).variance()

    def test_variance_constant(self, worked_example):
        """Test a constant vector has no variance."""
        with pytest.raises(NotComputableError):
            Moran(worked_example, [2.0, 2.0, 2.0, 2.0]).variance()

    def test_variance_zero_weights(self):
        """Test all-zero weights are not computable."""
        W = WeightsMatrix({k: [] for k in range(5)})
        with pytest.raises(NotComputableError):
            Moran(W, np.arange(5.0)).variance()


class TestMoranPermutation:
    """Tests for Monte Carlo inference."""

    def test_clustered_significant(self, lattice, clustered_values):
        """Test strong clustering is significant."""
        p = Moran(lattice.standardize(), clustered_values).mc(permutations=99, seed=1)
        assert p < 0.05

    def test_reproducible(self, lattice):
        """Test the same seed gives the same p-value, serially or in parallel."""
        x = np.random.default_rng(5).standard_normal(25)
        W = lattice.standardize()

        serial = Moran(W, x).mc(permutations=99, seed=42)
        again = Moran(W, x).mc(permutations=99, seed=42)
        parallel = Moran(W, x).mc(permutations=99, seed=42, n_jobs=2)
        assert serial == again == parallel

    def test_pvalue_range(self, lattice):
        """Test p lies in [1 / (permutations + 1), 1]."""
        x = np.random.default_rng(6).standard_normal(25)
        p = Moran(lattice.standardize(), x).mc(permutations=49, seed=0)
        assert 1 / 50 <= p <= 1
