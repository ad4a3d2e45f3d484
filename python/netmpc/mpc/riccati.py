"""
Riccati Recursion
=================

Backward dynamic programming for finite-horizon linear-quadratic
tracking of Markov jump linear systems.

For every stage k and mode j the recursion yields the optimal
unconstrained control law

    u = L[k, j] @ x + feedforward[k, j]

for the criterion

    E[ sum_k x_k' Q x_k - 2 s_k' x_k + u_k' R u_k ] + x_N' K_N x_N - 2 s_N' x_N

where s_k is the reference weighting of stage k (Z' Qref r_k for output
tracking, zero for regulation). The mode of the next stage is drawn from
row j of the transition matrix.

Singular R + B' K B blocks are handled with a pseudoinverse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import numpy as np

from ..exceptions import DimensionError
from ..utils.validation import validate_transition_matrix


def _symmetrize(M: np.ndarray) -> np.ndarray:
    return 0.5 * (M + M.T)


@dataclass
class ModeData:
    """
    Dynamics and stage cost of one mode.

    Args:
        A: State matrix (n, n)
        B: Input matrix (n, m)
        Q: State cost (n, n)
        R: Input cost (m, m)
    """
    A: np.ndarray
    B: np.ndarray
    Q: np.ndarray
    R: np.ndarray

    def __post_init__(self):
        self.A = np.asarray(self.A, dtype=np.float64)
        self.B = np.asarray(self.B, dtype=np.float64)
        self.Q = np.asarray(self.Q, dtype=np.float64)
        self.R = np.asarray(self.R, dtype=np.float64)

        n, m = self.B.shape
        if self.A.shape != (n, n):
            raise DimensionError(f"A must be ({n}, {n}), got {self.A.shape}")
        if self.Q.shape != (n, n):
            raise DimensionError(f"Q must be ({n}, {n}), got {self.Q.shape}")
        if self.R.shape != (m, m):
            raise DimensionError(f"R must be ({m}, {m}), got {self.R.shape}")


@dataclass
class JumpModel:
    """
    Input of the backward recursion.

    Args:
        modes: One ModeData per mode, all of equal dimensions
        transition_matrix: Row-stochastic (num_modes, num_modes)
        terminal_cost: K_N shared by all modes (n, n)
        ref_weightings: Reference weightings (n, N + 1), column k for stage k

    Example:
        >>> model = JumpModel.single_mode(A, B, Q, R, terminal_cost=Q,
        ...                               ref_weightings=np.zeros((2, 11)))
        >>> tables = riccati_recursion(model, horizon_length=10)
    """
    modes: List[ModeData]
    transition_matrix: np.ndarray
    terminal_cost: np.ndarray
    ref_weightings: np.ndarray

    def __post_init__(self):
        if len(self.modes) == 0:
            raise DimensionError("at least one mode required")
        n, m = self.n_states, self.n_inputs
        if any(mode.B.shape != (n, m) for mode in self.modes):
            raise DimensionError("all modes must share state and input dimensions")

        self.transition_matrix = validate_transition_matrix(self.transition_matrix, self.num_modes)
        self.terminal_cost = np.asarray(self.terminal_cost, dtype=np.float64)
        if self.terminal_cost.shape != (n, n):
            raise DimensionError(f"terminal cost must be ({n}, {n}), got {self.terminal_cost.shape}")

        self.ref_weightings = np.asarray(self.ref_weightings, dtype=np.float64)
        if self.ref_weightings.ndim == 1:
            self.ref_weightings = self.ref_weightings.reshape(-1, 1)
        if self.ref_weightings.shape[0] != n:
            raise DimensionError(f"reference weightings must have {n} rows")

    @property
    def num_modes(self) -> int:
        return len(self.modes)

    @property
    def n_states(self) -> int:
        return self.modes[0].B.shape[0]

    @property
    def n_inputs(self) -> int:
        return self.modes[0].B.shape[1]

    @classmethod
    def from_tensors(
        cls,
        A: np.ndarray,
        B: np.ndarray,
        Q: np.ndarray,
        R: np.ndarray,
        transition_matrix: np.ndarray,
        terminal_cost: np.ndarray,
        ref_weightings: np.ndarray,
    ) -> "JumpModel":
        """
        Build from mode-stacked tensors.

        Args:
            A: (n, n, num_modes)
            B: (n, m, num_modes)
            Q: (n, n, num_modes)
            R: (m, m, num_modes)
        """
        A, B, Q, R = (np.asarray(T, dtype=np.float64) for T in (A, B, Q, R))
        if A.ndim == 2:
            A, B, Q, R = (T[:, :, np.newaxis] for T in (A, B, Q, R))
        num_modes = A.shape[2]
        if any(T.ndim != 3 or T.shape[2] != num_modes for T in (B, Q, R)):
            raise DimensionError("all tensors must have the same number of mode slices")
        modes = [ModeData(A[:, :, i], B[:, :, i], Q[:, :, i], R[:, :, i]) for i in range(num_modes)]
        return cls(modes, transition_matrix, terminal_cost, ref_weightings)

    @classmethod
    def single_mode(
        cls,
        A: np.ndarray,
        B: np.ndarray,
        Q: np.ndarray,
        R: np.ndarray,
        terminal_cost: np.ndarray,
        ref_weightings: np.ndarray,
    ) -> "JumpModel":
        """A plain LTI problem as a one-mode jump model."""
        return cls([ModeData(A, B, Q, R)], np.ones((1, 1)), terminal_cost, ref_weightings)


@dataclass
class _CostToGo:
    """Riccati matrix K and affine term sigma of one mode."""
    K: np.ndarray
    sigma: np.ndarray


@dataclass
class _Propagated:
    """Per-mode quantities of step k, before transition mixing."""
    QAKA: np.ndarray
    RBKB: np.ndarray
    BKA: np.ndarray
    Asigma: np.ndarray
    Bsigma: np.ndarray


@dataclass
class RecursionTables:
    """
    Gains and feed-forward terms of the whole horizon.

    Attributes:
        gains: (n_inputs, n_states, num_modes, horizon_length)
        feedforward: (n_inputs, num_modes, horizon_length)
        riccati: Riccati matrices K_0 per mode (num_modes, n, n)
    """
    gains: np.ndarray
    feedforward: np.ndarray
    riccati: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def horizon_length(self) -> int:
        return self.gains.shape[3]

    @property
    def num_modes(self) -> int:
        return self.gains.shape[2]

    def gain(self, stage: int, mode: int = 0) -> np.ndarray:
        return self.gains[:, :, mode, stage]

    def feedforward_term(self, stage: int, mode: int = 0) -> np.ndarray:
        return self.feedforward[:, mode, stage]

    def stage(self, stage: int) -> List[Tuple[np.ndarray, np.ndarray]]:
        """(gain, feedforward) of every mode at one stage."""
        return [(self.gain(stage, j), self.feedforward_term(stage, j)) for j in range(self.num_modes)]

    def control(self, stage: int, mode: int, state: np.ndarray) -> np.ndarray:
        """u = L[stage, mode] @ state + feedforward[stage, mode]."""
        return self.gain(stage, mode) @ state + self.feedforward_term(stage, mode)


def _propagate(mode: ModeData, cost_to_go: _CostToGo) -> _Propagated:
    K, sigma = cost_to_go.K, cost_to_go.sigma
    return _Propagated(
        QAKA=mode.Q + _symmetrize(mode.A.T @ K @ mode.A),
        RBKB=mode.R + _symmetrize(mode.B.T @ K @ mode.B),
        BKA=mode.B.T @ K @ mode.A,
        Asigma=mode.A.T @ sigma,
        Bsigma=mode.B.T @ sigma,
    )


def riccati_recursion(model: JumpModel, horizon_length: int) -> RecursionTables:
    """
    Run the backward pass over the horizon.

    Args:
        model: Dynamics, costs and reference weightings of all modes
        horizon_length: Number of stages N; model.ref_weightings must
            have exactly N + 1 columns

    Returns:
        RecursionTables covering stages 0 .. N - 1
    """
    N = int(horizon_length)
    if N < 1:
        raise DimensionError(f"horizon length must be positive, got {horizon_length}")
    if model.ref_weightings.shape[1] != N + 1:
        raise DimensionError(
            f"reference weightings must have {N + 1} columns, got {model.ref_weightings.shape[1]}")

    n, m, num_modes = model.n_states, model.n_inputs, model.num_modes
    transition = model.transition_matrix
    ref = model.ref_weightings

    gains = np.zeros((m, n, num_modes, N))
    feedforward = np.zeros((m, num_modes, N))

    slots = [_CostToGo(model.terminal_cost.copy(), ref[:, N].copy()) for _ in range(num_modes)]

    for k in range(N - 1, -1, -1):
        propagated = [_propagate(mode, slot) for mode, slot in zip(model.modes, slots)]

        new_slots = []
        for j in range(num_modes):
            P1 = np.zeros((n, n))
            P2 = np.zeros((m, n))
            P3 = np.zeros((m, m))
            s1 = np.zeros(n)
            s2 = np.zeros(m)
            for p, quantities in zip(transition[j], propagated):
                if p == 0:
                    continue
                P1 += p * quantities.QAKA
                P2 += p * quantities.BKA
                P3 += p * quantities.RBKB
                s1 += p * quantities.Asigma
                s2 += p * quantities.Bsigma

            P3_pinv = np.linalg.pinv(P3)
            gains[:, :, j, k] = -P3_pinv @ P2
            feedforward[:, j, k] = P3_pinv @ s2
            new_slots.append(_CostToGo(
                K=P1 - _symmetrize(P2.T @ P3_pinv @ P2),
                sigma=ref[:, k] + s1 - P2.T @ P3_pinv @ s2,
            ))
        slots = new_slots

    return RecursionTables(gains, feedforward, np.stack([slot.K for slot in slots]))
