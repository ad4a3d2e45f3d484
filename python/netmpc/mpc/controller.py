"""
MPC Controllers
===============

Linearly constrained predictive control for networked control loops.

Each planning cycle computes an optimal open-loop input sequence over a
horizon of N steps and transmits its first ``sequence_length`` moves, so
that the actuator can keep applying planned inputs while packets are
lost or delayed.

Classes:
- PredictiveController: regulation to the origin or output tracking
"""

from __future__ import annotations

import warnings
from typing import Any, Dict, Optional, Tuple
import numpy as np

from ..exceptions import (
    InvalidHorizonLength,
    InvalidNumberOfArguments,
    InvalidSequenceLength,
    InvalidStateTrajectory,
    InvalidTimestep,
    ProblemInfeasibleWarning,
)
from ..result import SequenceResult
from ..utils.validation import is_positive_integer, validate_cost_matrices
from .belief import get_belief_mean
from .constraints import LinearConstraint, input_constraint, state_constraint
from .dynamics import LinearSystem
from .horizon import ConstrainedHorizonSolver, HorizonConfig
from .trajectory import ReferenceSpec, validate_output_matrix, validate_reference_trajectory

REGULATION_NUM_ARGS = 9
TRACKING_NUM_ARGS = 11


def _validate_sequence_length(sequence_length: Any, horizon_length: Optional[int] = None) -> int:
    if not is_positive_integer(sequence_length) \
            or (horizon_length is not None and sequence_length > horizon_length):
        raise InvalidSequenceLength(
            f"sequence length must be a positive integer not exceeding the horizon ({horizon_length})",
            "sequence_length")
    return int(sequence_length)


class PredictiveController:
    """
    Linearly constrained predictive controller.

    Solves at each planning cycle (regulation):

        minimize    sum_{k=1}^{N} x_k' Q x_k + sum_{k=0}^{N-1} u_k' R u_k + x_N' Q x_N
        subject to  x_{k+1} = A x_k + B u_k
                    w_x . x_k <= c_x
                    w_u . u_k <= c_u
                    x_0 = mean of the state belief

    and returns [u_0; ...; u_{sequence_length-1}]. In tracking mode,
    x_k is replaced by Z x_k - r_{t+k} and Q by Qref.

    Use the named constructors ``for_regulation`` and ``for_tracking``;
    ``from_args`` accepts the positional 9/11 argument form.

    Example:
        >>> controller = PredictiveController.for_regulation(
        ...     A, B, Q, R, sequence_length=10,
        ...     state_weightings=np.ones(2), state_bound=1e4,
        ...     input_weightings=np.ones(2), input_bound=1e4,
        ... )
        >>> belief = GaussianBelief(np.array([0.1, 0.0]))
        >>> sequence = controller.compute_control_sequence(belief, mode=0, timestep=1)
    """

    requires_external_state_estimate = True

    def __init__(
        self,
        system: LinearSystem,
        Q: Optional[np.ndarray],
        R: np.ndarray,
        config: HorizonConfig,
        state_constraint: LinearConstraint,
        input_constraint: LinearConstraint,
        reference: Optional[ReferenceSpec] = None,
        solver_params: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Assemble from validated parts; prefer the named constructors."""
        self.system = system
        self.Q = Q
        self.R = R
        self.reference = reference
        self._config = config
        self._state_constraint = state_constraint
        self._input_constraint = input_constraint
        self._solver = ConstrainedHorizonSolver(system, Q, R, reference, solver_params)

    @classmethod
    def for_regulation(
        cls,
        A: np.ndarray,
        B: np.ndarray,
        Q: np.ndarray,
        R: np.ndarray,
        sequence_length: int,
        state_weightings: np.ndarray,
        state_bound: float,
        input_weightings: np.ndarray,
        input_bound: float,
        solver_params: Optional[Dict[str, Any]] = None,
    ) -> "PredictiveController":
        """
        Controller that drives the state to the origin.

        The horizon length defaults to the sequence length.

        Raises:
            InvalidSystemMatrix, InvalidInputMatrix, InvalidQMatrix,
            InvalidQMatrixPSD, InvalidRMatrix, InvalidRMatrixPD,
            InvalidSequenceLength, InvalidStateWeightings,
            InvalidStateConstraints, InvalidInputWeightings,
            InvalidInputConstraints
        """
        system = LinearSystem(A, B)
        Q, R = validate_cost_matrices(Q, R, system.n_states, system.n_inputs)
        sequence_length = _validate_sequence_length(sequence_length)
        x_constraint = state_constraint(state_weightings, state_bound, system.n_states)
        u_constraint = input_constraint(input_weightings, input_bound, system.n_inputs)

        return cls(system, Q, R, HorizonConfig(sequence_length, sequence_length),
                   x_constraint, u_constraint, solver_params=solver_params)

    @classmethod
    def for_tracking(
        cls,
        A: np.ndarray,
        B: np.ndarray,
        Qref: np.ndarray,
        R: np.ndarray,
        sequence_length: int,
        state_weightings: np.ndarray,
        state_bound: float,
        input_weightings: np.ndarray,
        input_bound: float,
        Z: np.ndarray,
        ref_trajectory: np.ndarray,
        solver_params: Optional[Dict[str, Any]] = None,
    ) -> "PredictiveController":
        """
        Controller that drives Z @ x along a reference trajectory.

        Args:
            Qref: Output cost (p, p), p = rows of Z
            Z: Output selection matrix (p, n_x)
            ref_trajectory: References (p, T), T >= sequence_length + 1

        Raises:
            The errors of for_regulation, plus InvalidZMatrix and
            InvalidReferenceTrajectory
        """
        system = LinearSystem(A, B)
        Z = validate_output_matrix(Z, system.n_states)
        Qref, R = validate_cost_matrices(Qref, R, Z.shape[0], system.n_inputs)
        sequence_length = _validate_sequence_length(sequence_length)
        x_constraint = state_constraint(state_weightings, state_bound, system.n_states)
        u_constraint = input_constraint(input_weightings, input_bound, system.n_inputs)
        ref_trajectory = validate_reference_trajectory(ref_trajectory, Z.shape[0], sequence_length + 1)

        return cls(system, None, R, HorizonConfig(sequence_length, sequence_length),
                   x_constraint, u_constraint, ReferenceSpec(Z, Qref, ref_trajectory),
                   solver_params=solver_params)

    @classmethod
    def from_args(cls, *args: Any) -> "PredictiveController":
        """
        Positional construction.

        9 arguments: (A, B, Q, R, sequence_length, state_weightings,
        state_bound, input_weightings, input_bound). 11 arguments: the
        same with Qref in place of Q, followed by Z and ref_trajectory.

        Raises:
            InvalidNumberOfArguments: any other number of arguments
        """
        if len(args) == REGULATION_NUM_ARGS:
            return cls.for_regulation(*args)
        if len(args) == TRACKING_NUM_ARGS:
            return cls.for_tracking(*args)
        raise InvalidNumberOfArguments(
            f"expected {REGULATION_NUM_ARGS} or {TRACKING_NUM_ARGS} arguments, got {len(args)}")

    # ------------------------------------------------------------------
    # configuration

    @property
    def dim_x(self) -> int:
        return self.system.n_states

    @property
    def dim_u(self) -> int:
        return self.system.n_inputs

    @property
    def is_tracking(self) -> bool:
        return self.reference is not None

    @property
    def horizon_length(self) -> int:
        return self._config.horizon_length

    @property
    def sequence_length(self) -> int:
        return self._config.sequence_length

    @property
    def solver_params(self) -> Dict[str, Any]:
        return self._solver.params

    def get_state_constraints(self) -> Tuple[float, np.ndarray]:
        """(bound, weighting) of the state constraint."""
        return self._state_constraint.as_pair()

    def get_input_constraints(self) -> Tuple[float, np.ndarray]:
        """(bound, weighting) of the input constraint."""
        return self._input_constraint.as_pair()

    def change_state_constraints(self, weightings: np.ndarray, bound: float) -> None:
        self._state_constraint = state_constraint(weightings, bound, self.dim_x)

    def change_input_constraints(self, weightings: np.ndarray, bound: float) -> None:
        self._input_constraint = input_constraint(weightings, bound, self.dim_u)

    def change_sequence_length(self, sequence_length: int) -> None:
        """
        Set the number of moves returned per cycle.

        Raises:
            InvalidSequenceLength: not an integer in [1, horizon_length]
        """
        self._config.sequence_length = _validate_sequence_length(sequence_length, self.horizon_length)

    def change_horizon_length(self, horizon_length: int) -> None:
        """
        Set the prediction horizon.

        The sequence length is left unchanged. Cached prediction data is
        rebuilt on the next control sequence request.

        Raises:
            InvalidHorizonLength: not a positive integer, or (tracking)
                the reference trajectory covers fewer than
                horizon_length + 1 time steps
        """
        if not is_positive_integer(horizon_length):
            raise InvalidHorizonLength("horizon length must be a positive integer", "horizon_length")
        horizon_length = int(horizon_length)
        if self.reference is not None and self.reference.length < horizon_length + 1:
            raise InvalidHorizonLength(
                f"reference trajectory covers {self.reference.length} time steps, "
                f"horizon length {horizon_length} needs {horizon_length + 1}", "horizon_length")
        if horizon_length < self.sequence_length:
            raise InvalidHorizonLength(
                f"horizon length must not be shorter than the sequence length ({self.sequence_length})",
                "horizon_length")
        if horizon_length != self._config.horizon_length:
            self._config.horizon_length = horizon_length
            self._solver.invalidate()

    # ------------------------------------------------------------------
    # control

    def _check_timestep(self, timestep: Any, error_context: str) -> int:
        if not is_positive_integer(timestep):
            raise InvalidTimestep(f"{error_context}: timestep must be a positive integer", "timestep")
        return int(timestep)

    def compute_control_sequence_result(self, belief: Any, mode: int, timestep: int) -> SequenceResult:
        """
        Plan one cycle and return the result with its status.

        Args:
            belief: State belief (anything get_belief_mean accepts)
            mode: Active mode; unused by this controller
            timestep: Positive 1-based time step of the belief

        Raises:
            InvalidTimestep: timestep is not a positive integer
        """
        timestep = self._check_timestep(timestep, "compute_control_sequence")
        x0 = get_belief_mean(belief, self.dim_x)
        return self._solver.solve(x0, timestep, self._state_constraint, self._input_constraint,
                                  self._config)

    def compute_control_sequence(self, belief: Any, mode: int, timestep: int) -> np.ndarray:
        """
        Plan one cycle.

        Returns:
            Stacked inputs (dim_u * sequence_length,), ordered input block
            by stage. All zeros, with a ProblemInfeasibleWarning, if the
            problem is infeasible.
        """
        result = self.compute_control_sequence_result(belief, mode, timestep)
        if not result.is_feasible:
            warnings.warn(
                f"Problem infeasible at timestep {timestep}: {result.message}; applying zero inputs",
                ProblemInfeasibleWarning,
                stacklevel=2,
            )
        return result.sequence

    # ------------------------------------------------------------------
    # costs

    def _check_reference_timestep(self, timestep: Any, error_context: str) -> int:
        timestep = self._check_timestep(timestep, error_context)
        if self.reference is not None and timestep > self.reference.length:
            raise InvalidTimestep(
                f"{error_context}: timestep exceeds the reference trajectory "
                f"({self.reference.length} steps)", "timestep")
        return timestep

    def _performance(self, state: np.ndarray, timestep: int) -> np.ndarray:
        if self.reference is None:
            return state
        return self.reference.deviation(state, timestep)

    @property
    def _performance_cost(self) -> np.ndarray:
        return self.Q if self.reference is None else self.reference.Qref

    def compute_stage_costs(self, state: np.ndarray, input: np.ndarray, timestep: int) -> float:
        """
        x' Q x + u' R u, or the tracking analogue at the given time step.

        Raises:
            InvalidTimestep: not a positive integer, or beyond the
                reference trajectory
        """
        timestep = self._check_reference_timestep(timestep, "compute_stage_costs")
        e = self._performance(np.asarray(state, dtype=np.float64).ravel(), timestep)
        u = np.asarray(input, dtype=np.float64).ravel()
        return float(e @ self._performance_cost @ e + u @ self.R @ u)

    def compute_costs(self, state_trajectory: np.ndarray, input_trajectory: np.ndarray) -> float:
        """
        Accumulated costs of a trajectory.

        Args:
            state_trajectory: States (dim_x, T + 1), one column per step
            input_trajectory: Inputs (dim_u, T)

        Returns:
            Sum of stage costs over the first T states plus the terminal
            cost of the last state

        Raises:
            InvalidStateTrajectory: state trajectory does not have exactly
                one more column than the input trajectory, or has more
                columns than the reference trajectory
        """
        states = np.asarray(state_trajectory, dtype=np.float64)
        inputs = np.asarray(input_trajectory, dtype=np.float64)
        if states.ndim == 1:
            states = states.reshape(-1, 1)
        if inputs.ndim == 1:
            inputs = inputs.reshape(-1, 1)
        if states.shape[0] != self.dim_x or states.shape[1] != inputs.shape[1] + 1:
            raise InvalidStateTrajectory(
                f"state trajectory must be {self.dim_x} x {inputs.shape[1] + 1}, got {states.shape}",
                "state_trajectory")
        if self.reference is not None and states.shape[1] > self.reference.length:
            raise InvalidStateTrajectory(
                f"state trajectory has {states.shape[1]} steps but the reference trajectory "
                f"only {self.reference.length}", "state_trajectory")

        T = inputs.shape[1]
        costs = sum(self.compute_stage_costs(states[:, k], inputs[:, k], k + 1) for k in range(T))
        e = self._performance(states[:, T], T + 1)
        return float(costs + e @ self._performance_cost @ e)

    def get_deviation_from_ref_for_state(self, state: np.ndarray, timestep: int) -> np.ndarray:
        """
        Deviation of the state from the reference at the given time step.

        Raises:
            InvalidTimestep: not a positive integer, or beyond the
                reference trajectory
        """
        timestep = self._check_reference_timestep(timestep, "get_deviation_from_ref_for_state")
        return self._performance(np.asarray(state, dtype=np.float64).ravel(), timestep)
