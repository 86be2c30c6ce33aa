"""
Shared machinery for spatial autocorrelation statistics.

Every statistic binds a WeightsMatrix to one or more observation vectors and
exposes the same operations:

- stat():        memoized statistic (float for global, array for local)
- expectation(), variance(), z_score(): closed-form inference where defined
- mc():          Monte Carlo permutation p-value(s)
- summary():     statistic, p-value and group classification as records

Lifecycle (StatState):

    UNBOUND -> BOUND -> COMPUTED -> INFERENCE_READY / PERMUTATION_TESTED

Assigning a new vector moves the instance back to BOUND and drops every
cached result.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable, Sequence
from enum import Enum
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from spatialstatspy.config import InferenceConfig
from spatialstatspy.core.csr import SparseWeightsMatrix
from spatialstatspy.core.normalization import demean_vector
from spatialstatspy.core.weights import WeightsMatrix
from spatialstatspy.errors import DimensionMismatchError, UnboundVariableError
from spatialstatspy.io.variables import query_field, query_fields
from spatialstatspy.stats.permutation import conditional_permutation_test, permutation_test

logger = logging.getLogger(__name__)

Field = Union[Hashable, Sequence[Hashable]]


class StatState(Enum):
    """Lifecycle of a statistic instance."""

    UNBOUND = "unbound"
    BOUND = "bound"
    COMPUTED = "computed"
    INFERENCE_READY = "inference_ready"
    PERMUTATION_TESTED = "permutation_tested"


class SpatialStatistic(ABC):
    """
    Base class of all statistics.

    Parameters
    ----------
    weights : WeightsMatrix
        Spatial relationships between observations.
    x : array-like, optional
        Observation vector aligned to ``weights.keys``. When omitted, it is
        fetched from ``source`` on first use.
    source : DataFrame, mapping or callable, optional
        Data source queried through :func:`spatialstatspy.io.query_field`.
    field : hashable, optional
        Field (column) to fetch from ``source``.
    key_column : hashable, optional
        Column of ``source`` holding observation keys; rows are aligned to
        ``weights.keys`` through it. Rows are taken in order otherwise.
    config : InferenceConfig, optional
        Defaults for ``mc()`` and ``summary()``.
    """

    #: True for statistics that produce one value per observation.
    local = False

    def __init__(
        self,
        weights: WeightsMatrix,
        x=None,
        *,
        source=None,
        field: Optional[Field] = None,
        key_column: Optional[Hashable] = None,
        config: Optional[InferenceConfig] = None,
    ):
        if not isinstance(weights, WeightsMatrix):
            raise TypeError(f"weights must be a WeightsMatrix, got {type(weights).__name__}")
        if x is None and source is not None and field is None:
            raise ValueError("field is required when a source is given")

        self._weights = weights
        self._source = source
        self._field = field
        self._key_column = key_column
        self.config = (config or InferenceConfig()).validate()
        self._cache: dict[str, Any] = {}
        self._x: Optional[np.ndarray] = None
        if x is not None:
            self.x = x

    # ------------------------------------------------------------------
    # Binding and caching
    # ------------------------------------------------------------------

    @property
    def weights(self) -> WeightsMatrix:
        return self._weights

    @property
    def keys(self) -> tuple:
        return self._weights.keys

    @property
    def n(self) -> int:
        return self._weights.n

    def _validate_vector(self, x) -> np.ndarray:
        x = np.array(x, dtype=np.float64)
        if x.ndim == 0 or x.shape[0] != self.n:
            size = 0 if x.ndim == 0 else x.shape[0]
            raise DimensionMismatchError(
                f"{type(self).__name__}: got {size} values for {self.n} observations"
            )
        x.setflags(write=False)
        return x

    def _fetch(self, field: Field) -> np.ndarray:
        if isinstance(field, (list, tuple)):
            return query_fields(self._source, field, self.keys, self._key_column)
        return query_field(self._source, field, self.keys, self._key_column)

    @property
    def x(self) -> np.ndarray:
        """Observation vector, fetched from the source on first access."""
        if self._x is None:
            if self._source is None:
                raise UnboundVariableError(
                    f"{type(self).__name__} has no variable bound; pass x or a source and field"
                )
            self._x = self._validate_vector(self._fetch(self._field))
            logger.debug(f"{type(self).__name__}: fetched {self._field!r} from source")
        return self._x

    @x.setter
    def x(self, value):
        self._x = self._validate_vector(value)
        self._invalidate()

    def _invalidate(self) -> None:
        if self._cache:
            logger.debug(f"{type(self).__name__}: variable reassigned, dropping cached results")
        self._cache.clear()

    def _memo(self, name: str, compute: Callable[[], Any]) -> Any:
        if name not in self._cache:
            self._cache[name] = compute()
        return self._cache[name]

    @property
    def state(self) -> StatState:
        """Current lifecycle state."""
        if self._x is None:
            return StatState.UNBOUND
        if "permutation" in self._cache:
            return StatState.PERMUTATION_TESTED
        if "variance" in self._cache or "expectation" in self._cache:
            return StatState.INFERENCE_READY
        if "stat" in self._cache:
            return StatState.COMPUTED
        return StatState.BOUND

    @property
    def z(self) -> np.ndarray:
        """Demeaned observation vector."""
        return self._memo("z", lambda: demean_vector(self.x))

    # ------------------------------------------------------------------
    # Statistic and analytic inference
    # ------------------------------------------------------------------

    @abstractmethod
    def _statistic(self, x: np.ndarray):
        """Statistic for vector ``x`` under the bound weights."""

    def stat(self):
        """Compute (once) and return the statistic."""
        return self._memo("stat", lambda: self._statistic(self.x))

    def _expectation(self):
        raise NotImplementedError(f"{type(self).__name__} has no closed-form expectation")

    def _variance(self):
        raise NotImplementedError(f"{type(self).__name__} has no closed-form variance")

    def expectation(self):
        """Expected value of the statistic under spatial randomness."""
        return self._memo("expectation", self._expectation)

    def variance(self):
        """Variance of the statistic under spatial randomness."""
        return self._memo("variance", self._variance)

    def z_score(self):
        """Standardized statistic: (stat - expectation) / sqrt(variance)."""
        return (self.stat() - self.expectation()) / np.sqrt(self.variance())

    # ------------------------------------------------------------------
    # Permutation inference
    # ------------------------------------------------------------------

    def _inference_args(self, permutations, seed, n_jobs) -> tuple:
        return (
            self.config.permutations if permutations is None else permutations,
            self.config.seed if seed is None else seed,
            self.config.n_jobs if n_jobs is None else n_jobs,
        )

    @abstractmethod
    def _permutation_test(self, permutations: int, seed: Optional[int], n_jobs: int) -> dict:
        """Run the Monte Carlo test and return its result dict."""

    def mc(
        self,
        permutations: Optional[int] = None,
        seed: Optional[int] = None,
        n_jobs: Optional[int] = None,
    ):
        """
        Monte Carlo pseudo p-value(s).

        Parameters
        ----------
        permutations : int, optional
            Number of permutations. Default: ``config.permutations``.
        seed : int, optional
            Random seed. Default: ``config.seed``.
        n_jobs : int, optional
            Worker threads. Default: ``config.n_jobs``.

        Returns
        -------
        float or np.ndarray
            p-value, or one p-value per key for local statistics.
        """
        permutations, seed, n_jobs = self._inference_args(permutations, seed, n_jobs)
        result = self._permutation_test(permutations, seed, n_jobs)
        self._cache["permutation"] = result
        return result["pvalue"]

    @property
    def permutation_result(self) -> Optional[dict]:
        """Full result of the last ``mc()`` run, or None."""
        return self._cache.get("permutation")

    def groups(self):
        """Qualitative classification of the statistic, or None if undefined."""
        return None

    @abstractmethod
    def summary(self, permutations=None, seed=None, n_jobs=None):
        """Statistic, p-value(s) and group(s) as records."""

    def summary_frame(self, permutations=None, seed=None, n_jobs=None) -> pd.DataFrame:
        """Summary as a pandas DataFrame (one row per record)."""
        records = self.summary(permutations, seed, n_jobs)
        if isinstance(records, dict):
            records = [records]
        return pd.DataFrame.from_records(records)

    def __repr__(self):
        return f"{type(self).__name__}(n={self.n}, state={self.state.value})"


class GlobalStatistic(SpatialStatistic):
    """A statistic summarizing the whole study area with one value."""

    local = False

    def _permutation_target(self) -> np.ndarray:
        """Vector shuffled under the null hypothesis."""
        return self.x

    def _permuted_statistic(self, permuted: np.ndarray) -> float:
        """Statistic with the permutation target replaced by ``permuted``."""
        return self._statistic(permuted)

    def stat(self) -> float:
        return float(super().stat())

    def _permutation_test(self, permutations, seed, n_jobs) -> dict:
        return permutation_test(
            self._permuted_statistic,
            self._permutation_target(),
            permutations=permutations,
            seed=seed,
            n_jobs=n_jobs,
            observed=self.stat(),
        )

    def summary(self, permutations=None, seed=None, n_jobs=None) -> dict:
        """
        Returns
        -------
        dict
            ``{"stat": float, "p": float}``
        """
        return {"stat": self.stat(), "p": self.mc(permutations, seed, n_jobs)}


class LocalStatistic(SpatialStatistic):
    """A statistic with one value per observation (LISA)."""

    local = True

    @property
    @abstractmethod
    def neighborhood(self) -> SparseWeightsMatrix:
        """Weights whose rows define each observation's neighborhood."""

    @abstractmethod
    def _conditional_statistic(
        self,
        i: int,
        ids: np.ndarray,
        neighbor_weights: np.ndarray,
        self_weight: float,
    ) -> np.ndarray:
        """
        Local statistic at i for randomized neighborhoods.

        ``ids`` has shape (permutations, k); row p lists the observations
        standing in for i's k neighbors in draw p.
        """

    def _permutation_test(self, permutations, seed, n_jobs) -> dict:
        return conditional_permutation_test(
            self._conditional_statistic,
            self.stat(),
            self.neighborhood,
            permutations=permutations,
            seed=seed,
            n_jobs=n_jobs,
        )

    def summary(self, permutations=None, seed=None, n_jobs=None) -> list[dict]:
        """
        Returns
        -------
        list of dict
            One ``{"key", "stat", "p", "group"}`` record per key, in key order.
            ``group`` is None for statistics without a classification.
        """
        stats = self.stat()
        pvalues = self.mc(permutations, seed, n_jobs)
        groups = self.groups()

        return [
            {
                "key": key,
                "stat": float(stats[i]),
                "p": float(pvalues[i]),
                "group": None if groups is None else groups[i],
            }
            for i, key in enumerate(self.keys)
        ]


class BivariateMixin:
    """Binding of a second observation vector ``y`` (same lifecycle as x)."""

    def _init_y(self, y, y_field) -> None:
        self._y_field = y_field
        self._y: Optional[np.ndarray] = None
        if y is not None:
            self.y = y

    @property
    def y(self) -> np.ndarray:
        """Second observation vector, fetched from the source on first access."""
        if self._y is None:
            if self._source is None or self._y_field is None:
                raise UnboundVariableError(
                    f"{type(self).__name__} has no y bound; pass y or a source and y_field"
                )
            self._y = self._validate_vector(self._fetch(self._y_field))
        return self._y

    @y.setter
    def y(self, value):
        self._y = self._validate_vector(value)
        self._invalidate()
