"""
MPC Constraints
===============

Constraint handling for the predictive controllers.

One scalar linear inequality is imposed on the state and one on the
input at every stage of the horizon:

    w_x . x_k <= c_x,    w_u . u_k <= c_u

The horizon solver stacks them into the generic form G U <= h.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Type
import numpy as np

from ..exceptions import (
    InvalidInputConstraints,
    InvalidInputWeightings,
    InvalidStateConstraints,
    InvalidStateWeightings,
    ValidationError,
)
from ..utils.validation import validate_scalar, validate_vector


@dataclass(frozen=True)
class LinearConstraint:
    """
    Scalar linear inequality constraint.

    Represents: weighting @ x <= bound

    Args:
        weighting: Weighting vector (n,)
        bound: Upper bound; +inf disables the constraint

    Example:
        >>> # x1 + x2 <= 1
        >>> constraint = LinearConstraint(np.array([1.0, 1.0]), 1.0)
        >>> constraint.is_satisfied(np.array([0.2, 0.3]))
        True
    """
    weighting: np.ndarray
    bound: float

    @property
    def dim(self) -> int:
        """Dimension of constrained variable."""
        return len(self.weighting)

    @property
    def is_active(self) -> bool:
        """False if the bound is +inf."""
        return not np.isposinf(self.bound)

    def is_satisfied(self, x: np.ndarray, tol: float = 1e-9) -> bool:
        """Check if x satisfies the constraint."""
        return bool(self.weighting @ x <= self.bound + tol)

    def violation(self, x: np.ndarray) -> float:
        """Compute constraint violation (0 if satisfied)."""
        return max(float(self.weighting @ x - self.bound), 0.0)

    def as_pair(self) -> Tuple[float, np.ndarray]:
        """(bound, weighting), the order the controller getters return."""
        return self.bound, self.weighting.copy()


def _make_constraint(
    weighting: Any,
    bound: Any,
    dim: int,
    weighting_error: Type[ValidationError],
    bound_error: Type[ValidationError],
    prefix: str,
) -> LinearConstraint:
    weighting = validate_vector(weighting, dim, weighting_error, f"{prefix}_weightings")
    bound = validate_scalar(bound, bound_error, f"{prefix}_constraints")
    if np.isneginf(bound):
        raise bound_error(f"{prefix}_constraints must not be -inf", f"{prefix}_constraints")
    return LinearConstraint(weighting, bound)


def state_constraint(weighting: Any, bound: Any, dim_x: int) -> LinearConstraint:
    """
    Validate and build the state constraint.

    Raises:
        InvalidStateWeightings: weighting is not a vector of length dim_x
        InvalidStateConstraints: bound is not a scalar
    """
    return _make_constraint(weighting, bound, dim_x,
                            InvalidStateWeightings, InvalidStateConstraints, "state")


def input_constraint(weighting: Any, bound: Any, dim_u: int) -> LinearConstraint:
    """
    Validate and build the input constraint.

    Raises:
        InvalidInputWeightings: weighting is not a vector of length dim_u
        InvalidInputConstraints: bound is not a scalar
    """
    return _make_constraint(weighting, bound, dim_u,
                            InvalidInputWeightings, InvalidInputConstraints, "input")


def stage_constraints(
    constraint: LinearConstraint,
    horizon: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Replicate a constraint over the horizon.

    Returns:
        (W, c) with W = blkdiag(w', ..., w') of shape (horizon, horizon * dim)
        and c = bound * ones(horizon)
    """
    W = np.kron(np.eye(horizon), constraint.weighting.reshape(1, -1))
    return W, np.full(horizon, constraint.bound)
