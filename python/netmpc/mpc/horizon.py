"""
Constrained Horizon Solver
==========================

Finite-horizon optimal control with one linear state inequality and one
linear input inequality per stage.

With decision vector U = [u_0; ...; u_{N-1}] and predicted states
x_{k+1} = A x_k + B u_k from the current state x_0, the solver minimizes

    sum_{k=1}^{N} e_k' W e_k + sum_{k=0}^{N-1} u_k' R u_k + e_N' W e_N

with e_k = x_k, W = Q (regulation) or e_k = Z x_k - r_{t+k}, W = Qref
(tracking), subject to

    w_x . x_k <= c_x   (k = 1..N),    w_u . u_k <= c_u   (k = 0..N-1)

The current state x_0 is fixed; it only has to satisfy the state
constraint itself. The unconstrained optimum comes from the Riccati
recursion (terminal matrix 2W) and is returned directly whenever it
satisfies every inequality. Otherwise the condensed QP is solved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import numpy as np
from scipy.linalg import block_diag

from ..result import SequenceResult, Status
from ..solver import solve_qp, solver_params
from .constraints import LinearConstraint, stage_constraints
from .dynamics import LinearSystem
from .riccati import JumpModel, RecursionTables, riccati_recursion
from .trajectory import ReferenceSpec


@dataclass
class HorizonConfig:
    """
    Horizon configuration of a predictive controller.

    Args:
        horizon_length: Prediction horizon N
        sequence_length: Number of leading moves returned per cycle
    """
    horizon_length: int
    sequence_length: int


@dataclass
class _HorizonData:
    """Prediction matrices for one horizon length."""
    horizon_length: int
    Phi: np.ndarray          # (N n, n), block k = A^{k+1}
    Gamma: np.ndarray        # (N n, N m), block (k, j) = A^{k-j} B
    H: np.ndarray            # M' Wbar M + Rbar
    MW: np.ndarray           # M' Wbar
    ZPhi: np.ndarray         # Zbar Phi
    tables: Optional[RecursionTables] = None


class ConstrainedHorizonSolver:
    """
    Plans open-loop input sequences for a linear system.

    Prediction matrices are cached per horizon length and only rebuilt
    after ``invalidate()``.

    Args:
        system: LinearSystem dynamics
        Q: State cost (ignored when tracking)
        R: Input cost
        reference: Output reference; switches to tracking if given
        params: Solver params (see netmpc.solver.DEFAULT_PARAMS)

    Example:
        >>> solver = ConstrainedHorizonSolver(system, Q, R)
        >>> result = solver.solve(x0, 1, state_c, input_c, HorizonConfig(10, 10))
        >>> result.sequence
    """

    def __init__(
        self,
        system: LinearSystem,
        Q: Optional[np.ndarray],
        R: np.ndarray,
        reference: Optional[ReferenceSpec] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.system = system
        self.R = np.asarray(R, dtype=np.float64)
        self.reference = reference
        self.params = solver_params(params)

        if reference is None:
            self.Z = np.eye(system.n_states)
            self.W = np.asarray(Q, dtype=np.float64)
        else:
            self.Z = reference.Z
            self.W = reference.Qref
        self.state_cost = self.Z.T @ self.W @ self.Z

        self._data: Optional[_HorizonData] = None

    @property
    def n_x(self) -> int:
        return self.system.n_states

    @property
    def n_u(self) -> int:
        return self.system.n_inputs

    @property
    def is_dirty(self) -> bool:
        return self._data is None

    def invalidate(self) -> None:
        """Drop cached prediction data (horizon or costs changed)."""
        self._data = None

    def _prepare(self, N: int) -> _HorizonData:
        if self._data is not None and self._data.horizon_length == N:
            return self._data

        A, B = self.system.A, self.system.B
        n_x, n_u = self.n_x, self.n_u

        powers = [np.eye(n_x)]
        for _ in range(N):
            powers.append(A @ powers[-1])

        Phi = np.vstack(powers[1:])
        Gamma = np.zeros((N * n_x, N * n_u))
        for k in range(N):
            for j in range(k + 1):
                Gamma[k * n_x:(k + 1) * n_x, j * n_u:(j + 1) * n_u] = powers[k - j] @ B

        Zbar = block_diag(*([self.Z] * N))
        Wbar = block_diag(*([self.W] * (N - 1) + [2 * self.W]))
        Rbar = block_diag(*([self.R] * N))
        M = Zbar @ Gamma
        MW = M.T @ Wbar

        self._data = _HorizonData(
            horizon_length=N,
            Phi=Phi,
            Gamma=Gamma,
            H=0.5 * ((MW @ M + Rbar) + (MW @ M + Rbar).T),
            MW=MW,
            ZPhi=Zbar @ Phi,
        )
        return self._data

    def _reference_window(self, timestep: int, N: int) -> np.ndarray:
        """References for the current state and the N predicted states."""
        if self.reference is None:
            return np.zeros((self.n_x, N + 1))
        return self.reference.get_window(timestep, N + 1)

    def unconstrained_tables(self, timestep: int, N: int) -> RecursionTables:
        """
        Riccati tables of the unconstrained problem.

        Regulation tables do not depend on the time step and are cached.
        """
        data = self._prepare(N)
        if self.reference is None and data.tables is not None:
            return data.tables

        window = self._reference_window(timestep, N)
        ref_weightings = self.Z.T @ self.W @ window
        ref_weightings[:, N] *= 2
        model = JumpModel.single_mode(self.system.A, self.system.B, self.state_cost, self.R,
                                      terminal_cost=2 * self.state_cost,
                                      ref_weightings=ref_weightings)
        tables = riccati_recursion(model, N)
        if self.reference is None:
            data.tables = tables
        return tables

    def unconstrained_inputs(self, x0: np.ndarray, timestep: int, N: int) -> np.ndarray:
        """Roll out the Riccati control law from x0, returns (N, n_u)."""
        tables = self.unconstrained_tables(timestep, N)
        inputs = np.zeros((N, self.n_u))
        x = np.asarray(x0, dtype=np.float64)
        for k in range(N):
            inputs[k] = tables.control(k, 0, x)
            x = self.system.step(x, inputs[k])
        return inputs

    def _inequalities(
        self,
        x0: np.ndarray,
        data: _HorizonData,
        state_constraint: LinearConstraint,
        input_constraint: LinearConstraint,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Stack all active stage constraints as G U <= h."""
        N = data.horizon_length
        rows, rhs = [], []
        if state_constraint.is_active:
            Wx, cx = stage_constraints(state_constraint, N)
            rows.append(Wx @ data.Gamma)
            rhs.append(cx - Wx @ data.Phi @ x0)
        if input_constraint.is_active:
            Wu, cu = stage_constraints(input_constraint, N)
            rows.append(Wu)
            rhs.append(cu)
        if not rows:
            return np.zeros((0, N * self.n_u)), np.zeros(0)
        return np.vstack(rows), np.concatenate(rhs)

    def solve(
        self,
        x0: np.ndarray,
        timestep: int,
        state_constraint: LinearConstraint,
        input_constraint: LinearConstraint,
        config: HorizonConfig,
    ) -> SequenceResult:
        """
        Plan the next control sequence.

        Args:
            x0: Nominal current state (n_x,)
            timestep: 1-based time step of x0 (aligns the reference)
            state_constraint: Constraint on every predicted state
            input_constraint: Constraint on every input
            config: Horizon and sequence length

        Returns:
            SequenceResult; the infeasible variant if the current state
            violates the state constraint, the QP has no solution, or the
            QP solver does not converge
        """
        N, seq_len = config.horizon_length, config.sequence_length
        x0 = np.asarray(x0, dtype=np.float64)
        feas_tol = self.params["feasibility_tolerance"]

        if state_constraint.is_active \
                and not state_constraint.is_satisfied(x0, feas_tol * max(1.0, abs(state_constraint.bound))):
            return SequenceResult.infeasible(
                self.n_u, seq_len, message="current state violates the state constraint")

        data = self._prepare(N)
        inputs = self.unconstrained_inputs(x0, timestep, N)
        U = inputs.ravel()

        G, h = self._inequalities(x0, data, state_constraint, input_constraint)
        scale = max(1.0, float(np.abs(h).max())) if h.size else 1.0
        if h.size == 0 or np.all(G @ U - h <= feas_tol * scale):
            return SequenceResult(Status.OPTIMAL, U[:seq_len * self.n_u].copy(), inputs, used_shortcut=True)

        window = self._reference_window(timestep, N)
        d = data.ZPhi @ x0 - window[:, 1:].T.ravel()
        result = solve_qp(2 * data.H, 2 * data.MW @ d, G, h, x0=U, params=self.params)
        if result.status != Status.OPTIMAL:
            return SequenceResult.infeasible(
                self.n_u, seq_len, status=result.status,
                message=f"constrained problem could not be solved ({result.status})")

        inputs = result.x.reshape(N, self.n_u)
        return SequenceResult(Status.OPTIMAL, result.x[:seq_len * self.n_u].copy(), inputs)
