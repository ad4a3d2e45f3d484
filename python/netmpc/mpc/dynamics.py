"""
System Dynamics Models
======================

Classes for the linear systems the controllers plan with.

Supported models:
- Linear Time-Invariant (LTI): x_{k+1} = A x_k + B u_k
- Markov jump linear: x_{k+1} = A_{theta_k} x_k + B_{theta_k} u_k,
  where the mode theta_k switches according to a transition matrix
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import numpy as np
from scipy.linalg import block_diag

from ..exceptions import (
    InvalidMode,
    InvalidModeSystemModels,
    InvalidNumModes,
    InvalidSystemInput,
    InvalidSystemMatrix,
)
from ..utils.validation import (
    is_positive_integer,
    validate_input_matrix,
    validate_system_matrix,
    validate_transition_matrix,
)


@dataclass
class LinearSystem:
    """
    Linear Time-Invariant (LTI) discrete-time system.

    Dynamics: x_{k+1} = A @ x_k + B @ u_k

    Args:
        A: State transition matrix (n_x, n_x), finite
        B: Input matrix (n_x, n_u), finite

    Raises:
        InvalidSystemMatrix: A is not square or not finite
        InvalidInputMatrix: B has the wrong number of rows or is not finite

    Example:
        >>> A = np.diag([0.9512, 0.9048])
        >>> B = np.array([[4.877, 4.877], [-1.1895, 3.569]])
        >>> system = LinearSystem(A, B)
        >>> x_next = system.step(np.array([0.1, 0.0]), np.zeros(2))
    """
    A: np.ndarray
    B: np.ndarray

    def __post_init__(self):
        """Validate dimensions."""
        self.A = validate_system_matrix(self.A)
        self.B = validate_input_matrix(self.B, self.A.shape[0])

    @property
    def n_states(self) -> int:
        """Number of states."""
        return self.A.shape[0]

    @property
    def n_inputs(self) -> int:
        """Number of inputs."""
        return self.B.shape[1]

    def set_system_matrix(self, A: np.ndarray) -> None:
        """Replace A, keeping the state dimension."""
        A = validate_system_matrix(A)
        if A.shape != self.A.shape:
            raise InvalidSystemMatrix(
                f"system matrix must be {self.A.shape[0]} x {self.A.shape[0]}", "A")
        self.A = A

    def step(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Simulate one time step.

        Args:
            x: Current state (n_x,)
            u: Control input (n_u,)

        Returns:
            Next state (n_x,)
        """
        return self.A @ x + self.B @ u

    def simulate(
        self,
        x0: np.ndarray,
        u_sequence: np.ndarray,
    ) -> np.ndarray:
        """
        Simulate system over a sequence of inputs.

        Args:
            x0: Initial state (n_x,)
            u_sequence: Control sequence (N, n_u)

        Returns:
            State trajectory (N+1, n_x) including initial state
        """
        x0 = np.asarray(x0)
        u_sequence = np.asarray(u_sequence)

        N = len(u_sequence)
        trajectory = np.zeros((N + 1, self.n_states))
        trajectory[0] = x0

        for k in range(N):
            trajectory[k + 1] = self.step(trajectory[k], u_sequence[k])

        return trajectory


class JumpLinearSystem:
    """
    Container of per-mode linear systems with an active mode.

    Modes are numbered 0 .. num_modes - 1; mode 0 is active initially.
    No system input is applied until set_system_input is called.

    Args:
        num_modes: Number of modes (positive integer)
        systems: At least num_modes LinearSystem instances; extra ones
            are ignored

    Example:
        >>> jls = JumpLinearSystem(2, [LinearSystem(A, B), LinearSystem(A, 0 * B)])
        >>> jls.set_active_mode(1)
        >>> x_next = jls.step(x, u)
    """

    def __init__(self, num_modes: int, systems: Sequence[LinearSystem]) -> None:
        if not is_positive_integer(num_modes):
            raise InvalidNumModes("number of modes must be a positive integer", "num_modes")
        self.num_modes = int(num_modes)
        self.set_mode_systems(systems)
        self._active_mode = 0
        self._system_input: Optional[np.ndarray] = None

    def set_mode_systems(self, systems: Sequence[LinearSystem]) -> None:
        """Replace the per-mode systems."""
        systems = list(systems) if systems is not None else []
        if len(systems) < self.num_modes \
                or any(not isinstance(system, LinearSystem) for system in systems[:self.num_modes]):
            raise InvalidModeSystemModels(
                f"at least {self.num_modes} LinearSystem instances required", "systems")
        systems = systems[:self.num_modes]
        shapes = {(system.n_states, system.n_inputs) for system in systems}
        if len(shapes) != 1:
            raise InvalidModeSystemModels("all modes must share state and input dimensions", "systems")
        self.mode_systems: List[LinearSystem] = systems

    @property
    def active_mode(self) -> int:
        return self._active_mode

    @property
    def n_states(self) -> int:
        return self.mode_systems[0].n_states

    @property
    def n_inputs(self) -> int:
        return self.mode_systems[0].n_inputs

    def _check_mode(self, mode: int) -> int:
        if isinstance(mode, bool) or not isinstance(mode, (int, np.integer)) \
                or not 0 <= mode < self.num_modes:
            raise InvalidMode(f"mode must be from {{0, ..., {self.num_modes - 1}}}", "mode")
        return int(mode)

    def set_active_mode(self, mode: int) -> None:
        self._active_mode = self._check_mode(mode)

    def set_system_matrix_for_mode(self, A: np.ndarray, mode: int) -> None:
        self.mode_systems[self._check_mode(mode)].set_system_matrix(A)

    def system(self, mode: Optional[int] = None) -> LinearSystem:
        """The system of the given mode (default: the active one)."""
        if mode is None:
            return self.mode_systems[self._active_mode]
        return self.mode_systems[self._check_mode(mode)]

    def set_system_input(self, system_input: Optional[np.ndarray]) -> None:
        """
        Set the input applied by step when no input is passed.

        Args:
            system_input: (n_u, num_modes) with column-wise mode-specific
                inputs, a single (n_u,) vector for all modes, or None / an
                empty array for no input

        Raises:
            InvalidSystemInput: none of the above, or not finite
        """
        if system_input is None or np.size(system_input) == 0:
            self._system_input = None
            return
        try:
            value = np.asarray(system_input)
        except ValueError:
            raise InvalidSystemInput("system input must be a numeric array", "system_input") from None
        if not np.issubdtype(value.dtype, np.number) or np.iscomplexobj(value) \
                or not np.all(np.isfinite(value)):
            raise InvalidSystemInput("system input must be real and finite", "system_input")
        value = value.astype(np.float64)

        n_u = self.n_inputs
        if value.shape == (n_u, self.num_modes):
            self._system_input = value.copy()
        elif value.ndim <= 2 and min(value.shape, default=1) == 1 and value.size == n_u:
            self._system_input = np.tile(value.reshape(-1, 1), (1, self.num_modes))
        else:
            raise InvalidSystemInput(
                f"system input must be a {n_u} x {self.num_modes} matrix of mode-specific inputs, "
                f"a single vector of length {n_u} or empty", "system_input")

    def get_system_input(self) -> Optional[np.ndarray]:
        """Mode-specific inputs (n_u, num_modes), column i for mode i; None if no input is set."""
        if self._system_input is None:
            return None
        return self._system_input.copy()

    def step(self, x: np.ndarray, u: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Simulate one step with the active mode.

        Without u, the system input of the active mode is applied (zero if
        none is set).
        """
        if u is None:
            if self._system_input is None:
                u = np.zeros(self.n_inputs)
            else:
                u = self._system_input[:, self._active_mode]
        return self.system().step(x, u)

    def simulate(self, x0: np.ndarray, u_sequence: np.ndarray) -> np.ndarray:
        """Simulate with the active mode, returns (N+1, n_x)."""
        return self.system().simulate(x0, u_sequence)

    def stacked_matrices(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Per-mode matrices as tensors.

        Returns:
            (A, B) with shapes (n_x, n_x, num_modes) and (n_x, n_u, num_modes)
        """
        A = np.stack([system.A for system in self.mode_systems], axis=2)
        B = np.stack([system.B for system in self.mode_systems], axis=2)
        return A, B

    def averaged_matrices(self, probabilities: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Mode-probability weighted A and B.

        Args:
            probabilities: Mode distribution (num_modes,), non-negative,
                summing to 1

        Returns:
            (sum_i p_i A_i, sum_i p_i B_i)
        """
        probabilities = validate_transition_matrix(
            np.tile(np.asarray(probabilities, dtype=np.float64).ravel(), (self.num_modes, 1)),
            self.num_modes)[0]
        A, B = self.stacked_matrices()
        return A @ probabilities, B @ probabilities

    def is_mean_square_stable(self, transition_matrix: np.ndarray) -> bool:
        """
        Mean square stability of the autonomous jump system.

        Uses the spectral radius of blkdiag(A_i kron A_i) (T' kron I).
        """
        transition_matrix = validate_transition_matrix(transition_matrix, self.num_modes)
        dim = self.n_states
        blocks = block_diag(*[np.kron(system.A, system.A) for system in self.mode_systems])
        operator = blocks @ np.kron(transition_matrix.T, np.eye(dim ** 2))
        return bool(np.max(np.abs(np.linalg.eigvals(operator))) < 1)
