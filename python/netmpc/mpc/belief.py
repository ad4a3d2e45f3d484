"""
State Beliefs
=============

The controllers consume a probabilistic belief about the current state,
supplied by an external estimator. Only its mean is used for planning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple
import numpy as np

from ..exceptions import DimensionError


@dataclass
class GaussianBelief:
    """
    Gaussian state belief.

    Args:
        mean_: Mean vector (n_x,)
        cov: Covariance (n_x, n_x), identity if omitted

    Example:
        >>> belief = GaussianBelief(np.array([0.1, 0.0]), np.eye(2))
        >>> mean, cov = belief.get_mean_and_covariance()
    """
    mean_: np.ndarray
    cov: Optional[np.ndarray] = None

    def __post_init__(self):
        self.mean_ = np.asarray(self.mean_, dtype=np.float64).ravel()
        if self.cov is None:
            self.cov = np.eye(len(self.mean_))
        else:
            self.cov = np.asarray(self.cov, dtype=np.float64)
        if self.cov.shape != (self.dim, self.dim):
            raise DimensionError(f"cov must be ({self.dim}, {self.dim}), got {self.cov.shape}")

    @property
    def dim(self) -> int:
        return len(self.mean_)

    def mean(self) -> np.ndarray:
        return self.mean_.copy()

    def get_mean_and_covariance(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.mean(), self.cov.copy()


def get_belief_mean(belief: Any, dim_x: int) -> np.ndarray:
    """
    Extract the mean of a state belief.

    Accepts objects with ``get_mean_and_covariance()``, a ``mean()``
    method or a ``mean`` attribute.

    Raises:
        DimensionError: the mean does not have dim_x entries
    """
    if hasattr(belief, "get_mean_and_covariance"):
        mean = belief.get_mean_and_covariance()[0]
    elif callable(getattr(belief, "mean", None)):
        mean = belief.mean()
    elif hasattr(belief, "mean"):
        mean = belief.mean
    else:
        raise TypeError(f"cannot extract a mean from {type(belief).__name__}")

    mean = np.asarray(mean, dtype=np.float64).ravel()
    if mean.shape != (dim_x,):
        raise DimensionError(f"belief mean must have {dim_x} entries, got {mean.size}")
    return mean
