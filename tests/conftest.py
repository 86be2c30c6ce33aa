"""Shared fixtures: small rook-contiguity lattices."""

import numpy as np
import pytest

from spatialstatspy.core.weights import WeightsMatrix


def rook_lattice(nrows: int, ncols: int) -> WeightsMatrix:
    """Binary rook contiguity on an nrows x ncols grid, keys 0..n-1 row-major."""
    weights = {}
    for r in range(nrows):
        for c in range(ncols):
            neighbors = []
            for dr, dc in ((-1, 0), (0, -1), (0, 1), (1, 0)):
                rr, cc = r + dr, c + dc
                if 0 <= rr < nrows and 0 <= cc < ncols:
                    neighbors.append({"id": rr * ncols + cc, "weight": 1})
            weights[r * ncols + c] = neighbors
    return WeightsMatrix(weights)


@pytest.fixture
def lattice():
    """5 x 5 rook lattice."""
    return rook_lattice(5, 5)


@pytest.fixture
def clustered_values():
    """Left two columns high, the rest low, with a little noise."""
    rng = np.random.default_rng(0)
    grid = np.zeros((5, 5))
    grid[:, :2] = 10.0
    return (grid + rng.uniform(0, 0.5, size=(5, 5))).ravel()


@pytest.fixture
def worked_example():
    """Four observations from the package documentation."""
    return WeightsMatrix(
        {
            1: [{"id": 2, "weight": 1}, {"id": 4, "weight": 1}],
            2: [{"id": 1, "weight": 1}],
            3: [{"id": 4, "weight": 1}],
            4: [{"id": 1, "weight": 1}, {"id": 3, "weight": 1}],
        }
    )


@pytest.fixture
def large_lattice():
    """10 x 10 rook lattice."""
    return rook_lattice(10, 10)


@pytest.fixture
def block_values():
    """A 4 x 4 block of high values in the middle of a 10 x 10 grid."""
    rng = np.random.default_rng(1)
    grid = rng.uniform(1.0, 2.0, size=(10, 10))
    grid[3:7, 3:7] += 20.0
    return grid.ravel()
