"""
Reference Trajectories
======================

Output references for tracking controllers.

A tracking controller drives the output z_k = Z @ x_k towards a
reference r_k. References are stored column-wise: column k - 1 is the
reference for (1-based) time step k.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import numpy as np

from ..exceptions import InvalidReferenceTrajectory, InvalidZMatrix


@dataclass(frozen=True)
class ReferenceSpec:
    """
    Output selection, output cost and reference trajectory.

    Args:
        Z: Output selection matrix (p, n_x)
        Qref: Output cost matrix (p, p)
        trajectory: References (p, T), one column per time step

    Example:
        >>> # drive the first state variable to zero
        >>> spec = ReferenceSpec(np.array([[1.0, 0.0]]), np.array([[0.005]]), np.zeros((1, 20)))
        >>> spec.deviation(np.array([0.1, 0.0]), timestep=1)
        array([0.1])
    """
    Z: np.ndarray
    Qref: np.ndarray
    trajectory: np.ndarray

    @property
    def n_outputs(self) -> int:
        return self.Z.shape[0]

    @property
    def length(self) -> int:
        """Number of time steps covered."""
        return self.trajectory.shape[1]

    def get_reference(self, timestep: int) -> np.ndarray:
        """Reference for 1-based time step, holding the last one past the end."""
        k = min(max(timestep, 1), self.length) - 1
        return self.trajectory[:, k]

    def get_window(self, timestep: int, length: int) -> np.ndarray:
        """
        References for time steps timestep .. timestep + length - 1.

        If the window extends beyond the trajectory, the last value is
        repeated.

        Returns:
            Array (p, length)
        """
        columns = np.clip(np.arange(timestep, timestep + length), 1, self.length) - 1
        return self.trajectory[:, columns]

    def deviation(self, state: np.ndarray, timestep: int) -> np.ndarray:
        """Z @ state - r_timestep."""
        return self.Z @ state - self.get_reference(timestep)


def validate_output_matrix(Z: Any, dim_x: int) -> np.ndarray:
    """Finite (p, dim_x) output selection matrix."""
    try:
        Z = np.asarray(Z, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidZMatrix("Z must be a real matrix", "Z") from None
    if Z.ndim == 1:
        Z = Z.reshape(1, -1)
    if Z.ndim != 2 or Z.shape[0] == 0 or Z.shape[1] != dim_x:
        raise InvalidZMatrix(f"Z must be a matrix with {dim_x} columns", "Z")
    if not np.all(np.isfinite(Z)):
        raise InvalidZMatrix("Z must contain only finite values", "Z")
    return Z


def validate_reference_trajectory(trajectory: Any, n_outputs: int, min_length: int) -> np.ndarray:
    """Finite (n_outputs, T) reference trajectory with T >= min_length."""
    try:
        trajectory = np.asarray(trajectory, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidReferenceTrajectory("reference trajectory must be a real matrix",
                                         "ref_trajectory") from None
    if trajectory.ndim == 1 and n_outputs == 1:
        trajectory = trajectory.reshape(1, -1)
    if trajectory.ndim != 2 or trajectory.shape[0] != n_outputs:
        raise InvalidReferenceTrajectory(
            f"reference trajectory must have {n_outputs} rows", "ref_trajectory")
    if trajectory.shape[1] < min_length:
        raise InvalidReferenceTrajectory(
            f"reference trajectory must cover at least {min_length} time steps", "ref_trajectory")
    if not np.all(np.isfinite(trajectory)):
        raise InvalidReferenceTrajectory("reference trajectory must contain only finite values",
                                         "ref_trajectory")
    return trajectory


def constant_reference(
    r: np.ndarray,
    length: int,
) -> np.ndarray:
    """
    Create constant (setpoint) reference trajectory.

    Args:
        r: Target output (p,)
        length: Number of time steps

    Returns:
        Reference trajectory (p, length)

    Example:
        >>> traj = constant_reference(np.array([1.0]), length=50)
    """
    r = np.asarray(r, dtype=np.float64).ravel()
    return np.tile(r.reshape(-1, 1), (1, length))


def step_reference(
    r_initial: np.ndarray,
    r_final: np.ndarray,
    length: int,
    step_time: int = 0,
) -> np.ndarray:
    """
    Create step reference trajectory.

    Args:
        r_initial: Output reference before the step
        r_final: Output reference after the step
        length: Total trajectory length
        step_time: Column index at which the step occurs

    Returns:
        Reference trajectory (p, length)

    Example:
        >>> traj = step_reference([0.0], [1.0], length=100, step_time=20)
    """
    r_initial = np.asarray(r_initial, dtype=np.float64).ravel()
    r_final = np.asarray(r_final, dtype=np.float64).ravel()

    trajectory = np.zeros((len(r_initial), length))
    trajectory[:, :step_time] = r_initial.reshape(-1, 1)
    trajectory[:, step_time:] = r_final.reshape(-1, 1)

    return trajectory
