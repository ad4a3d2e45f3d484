"""Input validation utilities.

Every validator either returns the argument converted to a float array
(or float) or raises the given ``ValidationError`` subclass. Nothing is
mutated, so callers can validate all arguments before assigning any.
"""

from numbers import Integral, Real
from typing import Any, Optional, Tuple, Type

import numpy as np

from ..exceptions import (
    InvalidInputMatrix,
    InvalidQMatrix,
    InvalidQMatrixPSD,
    InvalidRMatrix,
    InvalidRMatrixPD,
    InvalidSystemMatrix,
    InvalidTransitionMatrix,
    ValidationError,
)

EIG_TOL = 1e-10
SYMMETRY_TOL = 1e-10


def _as_matrix(value: Any) -> Optional[np.ndarray]:
    try:
        matrix = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if matrix.ndim == 0:
        matrix = matrix.reshape(1, 1)
    return matrix if matrix.ndim == 2 else None


def is_positive_integer(value: Any) -> bool:
    """True for positive whole numbers (1, 2.0, np.int64(3)), False otherwise."""
    if isinstance(value, bool):
        return False
    if isinstance(value, Integral):
        return bool(value > 0)
    if isinstance(value, Real):
        return bool(np.isfinite(value) and value > 0 and float(value).is_integer())
    return False


def validate_system_matrix(A: Any, error: Type[ValidationError] = InvalidSystemMatrix) -> np.ndarray:
    """Square, finite system matrix."""
    matrix = _as_matrix(A)
    if matrix is None or matrix.shape[0] != matrix.shape[1] or matrix.size == 0:
        raise error("system matrix must be a non-empty square matrix", "A")
    if not np.all(np.isfinite(matrix)):
        raise error("system matrix must contain only finite values", "A")
    return matrix


def validate_input_matrix(B: Any, dim_x: int) -> np.ndarray:
    """Finite input matrix with dim_x rows."""
    matrix = _as_matrix(B)
    if matrix is None or matrix.shape[0] != dim_x or matrix.shape[1] == 0:
        raise InvalidInputMatrix(f"input matrix must have {dim_x} rows", "B")
    if not np.all(np.isfinite(matrix)):
        raise InvalidInputMatrix("input matrix must contain only finite values", "B")
    return matrix


def validate_cost_matrices(Q: Any, R: Any, dim_q: int, dim_u: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate the state (or output) cost Q and the input cost R.

    Q must be a finite, symmetric positive semi-definite dim_q x dim_q
    matrix, R a finite, symmetric positive definite dim_u x dim_u matrix.
    """
    Q_mat = _as_matrix(Q)
    if Q_mat is None or Q_mat.shape != (dim_q, dim_q):
        raise InvalidQMatrix(f"Q must be a square matrix of dimension {dim_q}", "Q")
    if not np.all(np.isfinite(Q_mat)):
        raise InvalidQMatrix("Q must contain only finite values", "Q")
    if not np.allclose(Q_mat, Q_mat.T, atol=SYMMETRY_TOL) \
            or np.linalg.eigvalsh(Q_mat).min() < -EIG_TOL * max(1.0, np.abs(Q_mat).max()):
        raise InvalidQMatrixPSD("Q must be symmetric and positive semi-definite", "Q")

    R_mat = _as_matrix(R)
    if R_mat is None or R_mat.shape != (dim_u, dim_u):
        raise InvalidRMatrix(f"R must be a square matrix of dimension {dim_u}", "R")
    if not np.all(np.isfinite(R_mat)):
        raise InvalidRMatrix("R must contain only finite values", "R")
    if not np.allclose(R_mat, R_mat.T, atol=SYMMETRY_TOL) or np.linalg.eigvalsh(R_mat).min() <= EIG_TOL:
        raise InvalidRMatrixPD("R must be symmetric and positive definite", "R")
    return Q_mat, R_mat


def validate_vector(value: Any, dim: int, error: Type[ValidationError], name: str) -> np.ndarray:
    """Row or column vector of length dim, returned as a flat array."""
    try:
        vector = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        raise error(f"{name} must be a real vector of length {dim}", name) from None
    if vector.ndim > 2 or (vector.ndim == 2 and min(vector.shape) != 1) or vector.size != dim:
        raise error(f"{name} must be a real vector of length {dim}", name)
    if not np.all(np.isfinite(vector)):
        raise error(f"{name} must contain only finite values", name)
    return vector.ravel()


def validate_scalar(value: Any, error: Type[ValidationError], name: str) -> float:
    """Real scalar (a size-1 array is accepted), NaN rejected."""
    try:
        array = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        raise error(f"{name} must be a real scalar", name) from None
    if array.size != 1 or np.isnan(array).any():
        raise error(f"{name} must be a real scalar", name)
    return float(array.ravel()[0])


def validate_transition_matrix(T: Any, num_modes: int) -> np.ndarray:
    """Row-stochastic num_modes x num_modes matrix."""
    matrix = _as_matrix(T)
    if matrix is None or matrix.shape != (num_modes, num_modes):
        raise InvalidTransitionMatrix(
            f"transition matrix must be of dimension {num_modes} x {num_modes}", "transition_matrix")
    if not np.all(np.isfinite(matrix)) or np.any(matrix < 0) \
            or not np.allclose(matrix.sum(axis=1), 1.0, atol=1e-8):
        raise InvalidTransitionMatrix(
            "transition matrix must be non-negative with rows summing to 1", "transition_matrix")
    return matrix
