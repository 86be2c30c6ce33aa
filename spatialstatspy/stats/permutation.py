"""
Permutation testing for spatial statistics.

Implements:
- Full-permutation Monte Carlo tests for global statistics
- Conditional permutation tests for local statistics (LISA)
- The folded pseudo p-value shared by both

Pseudo p-value: let r be the number of permuted statistics >= the observed
one. If permutations - r < r, r is replaced by permutations - r, and
p = (r + 1) / (permutations + 1).

Reproducibility: global draws come from a single generator seeded with
``seed``; local draws use one child stream of ``SeedSequence(seed)`` per
observation. Results are therefore identical for any ``n_jobs``.
"""

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from spatialstatspy.config import PERMUTATIONS, validate_permutations
from spatialstatspy.core.csr import SparseWeightsMatrix
from spatialstatspy.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


def resolve_n_jobs(n_jobs: int, n_tasks: int) -> int:
    """Number of workers to use; -1 means all available cores."""
    if n_jobs == -1:
        n_jobs = max(1, (os.cpu_count() or 2) - 1)
    if n_jobs < 1:
        raise ValueError(f"n_jobs must be a positive integer or -1, got {n_jobs}")
    return max(1, min(n_jobs, n_tasks))


def run_in_parallel(func: Callable, items: Sequence, n_jobs: int = 1) -> list:
    """
    Apply ``func`` to every item, preserving input order.

    Runs serially when a single worker is requested, otherwise on a thread
    pool. Weights and bound vectors are read-only, so tasks share them.
    """
    n_jobs = resolve_n_jobs(n_jobs, len(items))

    if n_jobs == 1:
        return [func(item) for item in items]

    with ThreadPoolExecutor(max_workers=n_jobs) as pool:
        return list(pool.map(func, items))


def draw_permutations(values, permutations: int = PERMUTATIONS, seed: Optional[int] = None):
    """
    Draw independent full permutations of ``values``.

    Parameters
    ----------
    values : array-like
        Vector of length n, or (n, k) matrix whose rows are permuted together.
    permutations : int, default=99
        Number of permutations.
    seed : int, optional
        Random seed. None uses fresh OS entropy.

    Returns
    -------
    np.ndarray
        Array of shape (permutations, n) or (permutations, n, k).
    """
    permutations = validate_permutations(permutations)
    values = np.asarray(values, dtype=np.float64)

    rng = np.random.default_rng(seed)
    return np.stack([rng.permutation(values) for _ in range(permutations)])


def folded_pseudo_pvalue(null_distribution, observed, permutations: int):
    """
    Pseudo p-value with the smaller tail folded in.

    Parameters
    ----------
    null_distribution : array-like
        Permuted statistics, shape (permutations,) or (permutations, n).
    observed : float or array-like
        Observed statistic(s), shape () or (n,).
    permutations : int
        Number of permutations.

    Returns
    -------
    float or np.ndarray
        Values in [1 / (permutations + 1), 1].

    Examples
    --------
    >>> folded_pseudo_pvalue(np.array([0.1, 0.2, 0.3, 0.9]), 0.5, 4)
    0.4
    """
    null_distribution = np.asarray(null_distribution, dtype=np.float64)
    larger = np.sum(null_distribution >= observed, axis=0)
    larger = np.where(permutations - larger < larger, permutations - larger, larger)
    pvalue = (larger + 1.0) / (permutations + 1.0)

    if np.ndim(pvalue) == 0:
        return float(pvalue)
    return pvalue


def permutation_test(
    statistic: Callable[[np.ndarray], float],
    values,
    permutations: int = PERMUTATIONS,
    seed: Optional[int] = None,
    n_jobs: int = 1,
    observed: Optional[float] = None,
) -> dict:
    """
    Monte Carlo permutation test for a global statistic.

    Parameters
    ----------
    statistic : callable
        Maps a (permuted) vector to the statistic value. Weights are held
        fixed inside the callable.
    values : array-like
        Vector permuted under the null hypothesis.
    permutations : int, default=99
        Number of permutations.
    seed : int, optional
        Random seed for reproducibility.
    n_jobs : int, default=1
        Worker threads used to evaluate the permuted statistics.
    observed : float, optional
        Observed statistic. Computed from ``values`` when omitted.

    Returns
    -------
    dict
        Dictionary with:
        - 'observed': Observed statistic
        - 'pvalue': Folded pseudo p-value
        - 'null_distribution': Permuted statistics in draw order
        - 'null_mean': Mean of null distribution
        - 'null_std': Std of null distribution
        - 'z_score': Z-score of observed value

    Examples
    --------
    >>> x = np.arange(10.0)
    >>> result = permutation_test(lambda v: v[0] - v[-1], x, permutations=99, seed=1)
    >>> 0 < result['pvalue'] <= 1
    True
    """
    permutations = validate_permutations(permutations)
    values = np.asarray(values, dtype=np.float64)

    if observed is None:
        observed = statistic(values)

    if np.isnan(observed):
        return {
            "observed": np.nan,
            "pvalue": np.nan,
            "null_distribution": np.full(permutations, np.nan),
            "null_mean": np.nan,
            "null_std": np.nan,
            "z_score": np.nan,
        }

    shuffles = draw_permutations(values, permutations, seed)
    null_distribution = np.array(
        run_in_parallel(statistic, list(shuffles), n_jobs), dtype=np.float64
    )

    pvalue = folded_pseudo_pvalue(null_distribution, observed, permutations)

    null_mean = float(np.mean(null_distribution))
    null_std = float(np.std(null_distribution))
    z_score = (observed - null_mean) / null_std if null_std > 1e-10 else 0.0

    logger.debug(f"permutation_test: {permutations} permutations, p={pvalue:.4f}")

    return {
        "observed": observed,
        "pvalue": pvalue,
        "null_distribution": null_distribution,
        "null_mean": null_mean,
        "null_std": null_std,
        "z_score": z_score,
    }


def conditional_permutation_ids(
    i: int,
    n: int,
    k: int,
    permutations: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Random neighborhoods for observation i.

    Each draw is a random permutation of the other n - 1 indices, truncated
    to the first k entries.

    Returns
    -------
    np.ndarray
        Integer array of shape (permutations, k) that never contains i.
    """
    others = np.delete(np.arange(n, dtype=np.int64), i)
    ids = np.empty((permutations, k), dtype=np.int64)
    for p in range(permutations):
        ids[p] = rng.permutation(others)[:k]
    return ids


def conditional_permutation_test(
    crand: Callable[[int, np.ndarray, np.ndarray, float], np.ndarray],
    observed,
    weights: SparseWeightsMatrix,
    permutations: int = PERMUTATIONS,
    seed: Optional[int] = None,
    n_jobs: int = 1,
) -> dict:
    """
    Conditional permutation test for a local statistic.

    For every observation i the value at i is held fixed while its k_i
    non-self neighbors are replaced by values drawn from the other n - 1
    observations.

    Parameters
    ----------
    crand : callable
        ``crand(i, ids, neighbor_weights, self_weight)`` returns the local
        statistic at i for every row of ``ids`` (shape (permutations, k_i)).
    observed : array-like
        Observed local statistics (length n).
    weights : SparseWeightsMatrix
        Weights defining each observation's neighborhood.
    permutations : int, default=99
        Number of permutations per observation.
    seed : int, optional
        Random seed for reproducibility.
    n_jobs : int, default=1
        Worker threads; observations are split among them.

    Returns
    -------
    dict
        Dictionary with per-observation arrays:
        - 'observed', 'pvalue', 'null_mean', 'null_std', 'z_score'

    Notes
    -----
    Observations without non-self neighbors have nothing to permute. They get
    a p-value of 1 and NaN null moments.
    """
    permutations = validate_permutations(permutations)
    observed = np.asarray(observed, dtype=np.float64)
    n = weights.n
    if observed.shape[0] != n:
        raise DimensionMismatchError(f"{observed.shape[0]} local statistics for {n} observations")

    streams = np.random.SeedSequence(seed).spawn(n)

    def _test_one(i: int):
        cols, vals = weights.row(i)
        own = cols == i
        self_weight = float(vals[own].sum())
        neighbor_weights = vals[~own]
        k = neighbor_weights.shape[0]
        if k == 0:
            return 1.0, np.nan, np.nan, 0.0
        if k > n - 1:
            raise DimensionMismatchError(
                f"Observation {i} has {k} neighbor entries but only {n - 1} other observations"
            )

        rng = np.random.default_rng(streams[i])
        ids = conditional_permutation_ids(i, n, k, permutations, rng)
        sims = np.asarray(crand(i, ids, neighbor_weights, self_weight), dtype=np.float64)

        pvalue = folded_pseudo_pvalue(sims, observed[i], permutations)
        null_mean = float(sims.mean())
        null_std = float(sims.std())
        z_score = (observed[i] - null_mean) / null_std if null_std > 1e-10 else 0.0
        return pvalue, null_mean, null_std, z_score

    results = run_in_parallel(_test_one, list(range(n)), n_jobs)
    pvalue, null_mean, null_std, z_score = (
        np.array([r[j] for r in results], dtype=np.float64) for j in range(4)
    )

    n_isolated = int(np.isnan(null_mean).sum())
    if n_isolated:
        logger.warning(f"{n_isolated} observations have no neighbors; their p-value is 1")
    logger.debug(f"conditional_permutation_test: n={n}, {permutations} permutations")
    return {
        "observed": observed,
        "pvalue": pvalue,
        "null_mean": null_mean,
        "null_std": null_std,
        "z_score": z_score,
    }
