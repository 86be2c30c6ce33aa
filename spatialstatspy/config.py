"""
Configuration for permutation inference.

The dataclass carries the defaults used by every statistic's ``mc()`` and
``summary()`` calls; explicit arguments to those calls take precedence.
"""

import json
import numbers
from dataclasses import asdict, dataclass
from typing import Optional

from spatialstatspy.errors import InvalidPermutationsError

PERMUTATIONS = 99


@dataclass
class InferenceConfig:
    """
    Monte Carlo inference configuration.

    Parameters
    ----------
    permutations : int
        Number of random permutations drawn per test.
    seed : int, optional
        Seed for the random generator. None draws fresh OS entropy.
    n_jobs : int
        Worker threads used to evaluate permutations. 1 runs serially,
        -1 uses every available core.

    Example
    -------
    >>> config = InferenceConfig(permutations=999, seed=42)
    >>> config.save("inference.json")
    """

    permutations: int = PERMUTATIONS
    seed: Optional[int] = None
    n_jobs: int = 1

    def validate(self) -> "InferenceConfig":
        """Check field values; returns self for chaining."""
        validate_permutations(self.permutations)
        if not isinstance(self.n_jobs, int) or self.n_jobs == 0 or self.n_jobs < -1:
            raise ValueError(f"n_jobs must be a positive integer or -1, got {self.n_jobs!r}")
        if self.seed is not None and (not isinstance(self.seed, int) or self.seed < 0):
            raise ValueError(f"seed must be a non-negative integer or None, got {self.seed!r}")
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "InferenceConfig":
        """Load configuration from JSON file."""
        with open(path) as f:
            d = json.load(f)

        config = cls()
        for k, v in d.items():
            if not hasattr(config, k):
                raise KeyError(f"Unknown configuration field: {k!r}")
            setattr(config, k, v)

        return config.validate()


def validate_permutations(permutations) -> int:
    """
    Check that a permutation count is a positive integer.

    Raises
    ------
    InvalidPermutationsError
        For zero, negative or non-integer counts.
    """
    if isinstance(permutations, bool) or not isinstance(permutations, numbers.Integral):
        raise InvalidPermutationsError(
            f"permutations must be an integer, got {type(permutations).__name__}"
        )
    if permutations <= 0:
        raise InvalidPermutationsError(f"permutations must be positive, got {permutations}")
    return int(permutations)
