"""
Count-valued prior distributions for chance variables (e.g. occupancy).

Each prior implements:
- pmf(k) -> float: P(X = k)
- cdf(k) -> float: P(X <= k)
- ppf(q) -> int: smallest k with cdf(k) >= q
- support(tail) -> (values, weights): finite discretisation of the prior
- sample(n) -> np.ndarray: independent pseudo-random draws
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Tuple
import warnings

import numpy as np
from scipy import stats

from .exceptions import InvalidParameterError


class CountPrior(ABC):
    """Base class for distributions over non-negative integers."""

    @abstractmethod
    def pmf(self, k) -> float:
        """Probability mass at k."""
        pass

    @abstractmethod
    def support(self, tail: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
        """
        Finite support carrying all but `tail` of the probability mass.

        Returns (values, weights) with weights normalised to sum to 1.
        """
        pass

    def cdf(self, k) -> float:
        values, weights = self.support()
        return float(np.sum(weights[values <= k]))

    def ppf(self, q):
        """Quantile function. Default inverts the discretised support."""
        q = np.asarray(q, dtype=float)
        if np.any((q < 0) | (q > 1)):
            raise InvalidParameterError("Quantiles must lie in [0, 1]")
        values, weights = self.support()
        cumulative = np.cumsum(weights)
        idx = np.searchsorted(cumulative, q - 1e-12, side='left')
        idx = np.clip(idx, 0, len(values) - 1)
        result = values[idx]
        return int(result) if result.ndim == 0 else result.astype(int)

    def mean(self) -> float:
        values, weights = self.support()
        return float(np.dot(values, weights))

    def sample(self, n: int) -> np.ndarray:
        """Independent draws (global numpy RNG)."""
        values, weights = self.support()
        return np.random.choice(values, size=n, p=weights)


# -----------------------------------------------------------------------------
# Parametric priors
# -----------------------------------------------------------------------------

class _ScipyCountPrior(CountPrior):
    """Shared plumbing for priors backed by a frozen scipy.stats distribution."""

    _dist = None

    def pmf(self, k) -> float:
        return self._dist.pmf(k)

    def cdf(self, k) -> float:
        return self._dist.cdf(k)

    def ppf(self, q):
        q = np.asarray(q, dtype=float)
        if np.any((q < 0) | (q > 1)):
            raise InvalidParameterError("Quantiles must lie in [0, 1]")
        # scipy returns -1 at q=0 and inf at q=1
        result = self._dist.ppf(np.minimum(q, 1.0 - 1e-12))
        result = np.maximum(result, 0)
        return int(result) if result.ndim == 0 else result.astype(int)

    def mean(self) -> float:
        return float(self._dist.mean())

    def support(self, tail: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
        upper = int(self._dist.ppf(1.0 - tail))
        values = np.arange(0, upper + 1)
        weights = self._dist.pmf(values)
        covered = weights.sum()
        if covered < 1.0 - 1e-6:
            warnings.warn(
                f"{self.__class__.__name__} support truncated, "
                f"covers {covered:.6f} of the mass"
            )
        return values, weights / covered

    def sample(self, n: int) -> np.ndarray:
        return self._dist.rvs(size=n)


class Poisson(_ScipyCountPrior):
    """Poisson prior, variance equal to the mean."""

    def __init__(self, mean: float):
        if mean <= 0:
            raise InvalidParameterError(f"Poisson mean must be > 0, got {mean}")
        self.rate = mean
        self._dist = stats.poisson(mu=mean)

    def __repr__(self) -> str:
        return f"Poisson(mean={self.rate})"


class NegativeBinomial(_ScipyCountPrior):
    """
    Over-dispersed count prior.

    Parameterised by mean and dispersion r:
        var = mean + mean^2 / r
    Large r approaches the Poisson.
    """

    def __init__(self, mean: float, dispersion: float):
        if mean <= 0:
            raise InvalidParameterError(f"mean must be > 0, got {mean}")
        if dispersion <= 0:
            raise InvalidParameterError(f"dispersion must be > 0, got {dispersion}")
        self.rate = mean
        self.dispersion = dispersion
        p = dispersion / (dispersion + mean)
        self._dist = stats.nbinom(n=dispersion, p=p)

    def __repr__(self) -> str:
        return f"NegativeBinomial(mean={self.rate}, dispersion={self.dispersion})"


# -----------------------------------------------------------------------------
# Point masses
# -----------------------------------------------------------------------------

class DeltaMass(CountPrior):
    """Value known with certainty."""

    def __init__(self, value: int):
        if value < 0 or int(value) != value:
            raise InvalidParameterError(f"value must be a non-negative integer, got {value}")
        self.value = int(value)

    def pmf(self, k) -> float:
        return 1.0 if k == self.value else 0.0

    def cdf(self, k) -> float:
        return 1.0 if k >= self.value else 0.0

    def ppf(self, q):
        q = np.asarray(q, dtype=float)
        if np.any((q < 0) | (q > 1)):
            raise InvalidParameterError("Quantiles must lie in [0, 1]")
        return self.value if q.ndim == 0 else np.full(q.shape, self.value, dtype=int)

    def mean(self) -> float:
        return float(self.value)

    def support(self, tail: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
        return np.array([self.value]), np.array([1.0])

    def sample(self, n: int) -> np.ndarray:
        return np.full(n, self.value, dtype=int)


class PointMasses(CountPrior):
    """
    Tabulated distribution, e.g. from logged occupancy counts.

    Args:
        point_masses: {value: probability} e.g. {0: 0.1, 20: 0.5, 40: 0.4}
    """

    def __init__(self, point_masses: Dict[int, float]):
        if not point_masses:
            raise InvalidParameterError("point_masses must not be empty")
        for value, p in point_masses.items():
            if value < 0 or int(value) != value:
                raise InvalidParameterError(f"values must be non-negative integers, got {value}")
            if p < 0:
                raise InvalidParameterError(f"probabilities must be >= 0, got {p}")
        total = sum(point_masses.values())
        if abs(total - 1.0) > 1e-9:
            raise InvalidParameterError(f"probabilities must sum to 1, got {total}")

        self.point_masses = dict(sorted(point_masses.items()))
        self._values = np.array(list(self.point_masses.keys()), dtype=int)
        self._weights = np.array(list(self.point_masses.values()), dtype=float)

    def pmf(self, k) -> float:
        return self.point_masses.get(int(k), 0.0)

    def support(self, tail: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
        return self._values.copy(), self._weights.copy()


# -----------------------------------------------------------------------------
# Composite priors
# -----------------------------------------------------------------------------

class Mixture(CountPrior):
    """
    Mixture of count priors.

    P(X = k) = sum_i w_i * P_i(X = k)

    Use case: occupied vs. unoccupied days, or term-time vs. holiday.
    """

    def __init__(self, priors: List[CountPrior], weights: List[float]):
        if len(priors) != len(weights):
            raise InvalidParameterError("Number of priors must match number of weights")
        if any(w < 0 for w in weights):
            raise InvalidParameterError("Mixture weights must be non-negative")
        total = sum(weights)
        if total <= 0:
            raise InvalidParameterError("Mixture weights must not all be zero")

        self.priors = priors
        self.weights = [w / total for w in weights]  # normalise

    def pmf(self, k) -> float:
        return sum(w * p.pmf(k) for w, p in zip(self.weights, self.priors))

    def support(self, tail: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
        masses: Dict[int, float] = {}
        for w, prior in zip(self.weights, self.priors):
            values, weights = prior.support(tail)
            for v, p in zip(values, weights):
                masses[int(v)] = masses.get(int(v), 0.0) + w * p
        values = np.array(sorted(masses))
        weights = np.array([masses[v] for v in values])
        return values, weights / weights.sum()

    def mean(self) -> float:
        return sum(w * p.mean() for w, p in zip(self.weights, self.priors))
