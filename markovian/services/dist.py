"""
Finite discrete distribution over index positions.
"""
from __future__ import annotations

import random
from typing import Any, Iterable, Optional

import numpy as np

from markovian.services.errors import DegenerateDistributionError


class Dist:
    """
    Normalized pmf and cdf built from non-negative counts.

    Sampling uses the inverse-CDF transform: draw u in [0, 1) and return
    the smallest index whose cumulative mass reaches u.
    """

    def __init__(self, counts: Iterable[float]):
        """
        Args:
            counts: Non-negative weights, e.g. a tensor fiber

        Raises:
            DegenerateDistributionError: if counts are empty, negative,
                non-finite, or sum to zero
        """
        if not isinstance(counts, np.ndarray):
            counts = list(counts)
        values = np.asarray(counts, dtype=np.float64).ravel()

        if values.size == 0:
            raise DegenerateDistributionError("cannot build a distribution from no counts")
        if not np.all(np.isfinite(values)):
            raise DegenerateDistributionError("counts must be finite")
        if np.any(values < 0):
            raise DegenerateDistributionError("counts must be non-negative")

        self.sum = float(values.sum())
        if not self.sum > 0:
            raise DegenerateDistributionError("counts sum to zero")

        # https://en.wikipedia.org/wiki/Probability_mass_function
        self.pmf = values / self.sum
        # https://en.wikipedia.org/wiki/Cumulative_distribution_function
        self.cdf = np.cumsum(self.pmf)

        self.pmf.setflags(write=False)
        self.cdf.setflags(write=False)

    def sample(self, rng: Optional[Any] = None, target: Optional[float] = None) -> int:
        """
        Draw an index by binary search over the cdf.

        Args:
            rng: Object with a random() method returning u in [0, 1)
                (default: the random module)
            target: Use this u directly instead of drawing one

        Returns:
            Index in [0, len(self))
        """
        u = target if target is not None else (rng or random).random()
        # u == 0 skips leading zero-mass entries
        i = int(np.searchsorted(self.cdf, u, side="left" if u > 0 else "right"))
        # cdf[-1] can land a hair under 1.0
        return min(i, len(self.cdf) - 1)

    def mean(self) -> float:
        """Expected index under the pmf."""
        return float(np.dot(np.arange(len(self.pmf)), self.pmf))

    def __len__(self) -> int:
        return len(self.pmf)

    def __repr__(self) -> str:
        return f"Dist(size={len(self)}, sum={self.sum:g})"
