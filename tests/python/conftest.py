"""
pytest configuration and fixtures for netmpc tests.
"""

import pytest
import numpy as np


# ============================================================================
# Helpers
# ============================================================================

def lqr_trajectories(A, B, Q, R, x0, horizon):
    """
    Optimal unconstrained trajectories of

        sum_{k=0}^{N-1} [z(k+1)' Q z(k+1) + u(k)' R u(k)] + x(N)' Q x(N)

    computed backward in time (Kwakernaak & Sivan, Theorem 6.28).

    Returns:
        (states (n, N+1), inputs (m, N)), one column per time step
    """
    n, m = B.shape
    P = Q
    L = np.zeros((m, n, horizon))
    for j in range(horizon - 1, -1, -1):
        L[:, :, j] = -np.linalg.inv(R + B.T @ (Q + P) @ B) @ B.T @ (Q + P) @ A
        P = A.T @ (Q + P) @ (A + B @ L[:, :, j])

    states = np.zeros((n, horizon + 1))
    inputs = np.zeros((m, horizon))
    states[:, 0] = x0
    for j in range(horizon):
        inputs[:, j] = L[:, :, j] @ states[:, j]
        states[:, j + 1] = A @ states[:, j] + B @ inputs[:, j]
    return states, inputs


def prediction_matrices(A, B, N):
    """Phi = [A; A^2; ...; A^N] and the block lower triangular Gamma."""
    n, m = B.shape
    Gamma = np.zeros((N * n, N * m))
    Phi = np.zeros((N * n, n))
    for k in range(N):
        Phi[k * n:(k + 1) * n] = np.linalg.matrix_power(A, k + 1)
        for j in range(k + 1):
            Gamma[k * n:(k + 1) * n, j * m:(j + 1) * m] = np.linalg.matrix_power(A, k - j) @ B
    return Phi, Gamma


def terminal_weighted(W, N):
    """blkdiag(W, ..., W, 2W) over N stages."""
    p = W.shape[0]
    Wbar = np.kron(np.eye(N), W)
    Wbar[(N - 1) * p:, (N - 1) * p:] *= 2
    return Wbar


def condensed_optimum(A, B, Z, W, R, x0, references):
    """
    Unconstrained optimum of the tracking criterion by direct least squares.

    references: (p, N) references for the predicted states x_1 .. x_N;
    the last state carries the weight 2W.
    """
    N = references.shape[1]
    Phi, Gamma = prediction_matrices(A, B, N)
    Zbar = np.kron(np.eye(N), Z)
    Wbar = terminal_weighted(W, N)
    Rbar = np.kron(np.eye(N), R)

    M = Zbar @ Gamma
    d = Zbar @ Phi @ x0 - references.T.ravel()
    return np.linalg.solve(M.T @ Wbar @ M + Rbar, -M.T @ Wbar @ d)


def regulation_qp(A, B, Q, R, N, x0, state_weightings, state_bound, input_weightings, input_bound):
    """
    Condensed regulation QP (1/2) U' P U + q' U subject to G U <= h.

    State rows constrain x_1 .. x_N, input rows u_0 .. u_{N-1}; a bound of
    +inf drops the rows.
    """
    Phi, Gamma = prediction_matrices(A, B, N)
    Wbar = terminal_weighted(Q, N)
    P = 2 * (Gamma.T @ Wbar @ Gamma + np.kron(np.eye(N), R))
    q = 2 * Gamma.T @ Wbar @ Phi @ x0

    rows, rhs = [], []
    if np.isfinite(state_bound):
        Sx = np.kron(np.eye(N), np.atleast_2d(state_weightings))
        rows.append(Sx @ Gamma)
        rhs.append(state_bound - Sx @ Phi @ x0)
    if np.isfinite(input_bound):
        rows.append(np.kron(np.eye(N), np.atleast_2d(input_weightings)))
        rhs.append(np.full(N, float(input_bound)))
    if not rows:
        return P, q, np.zeros((0, len(q))), np.zeros(0)
    return P, q, np.vstack(rows), np.concatenate(rhs)


def kkt_residuals(P, q, G, h, U, tol=1e-6):
    """
    Optimality certificate of U for the convex QP.

    Multipliers of the constraints active at U are fitted by nonnegative
    least squares.

    Returns:
        (max constraint violation, relative stationarity residual)
    """
    from scipy.optimize import nnls

    gradient = P @ U + q
    scale = max(1.0, float(np.abs(h).max())) if h.size else 1.0
    slack = G @ U - h
    violation = float(np.maximum(slack, 0).max()) if h.size else 0.0

    active = slack >= -tol * scale
    if active.any():
        _, residual = nnls(G[active].T, -gradient)
    else:
        residual = float(np.linalg.norm(gradient))
    return violation, residual / max(1.0, float(np.linalg.norm(q)))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def stirred_tank():
    """
    Noise-free stirred tank (Kwakernaak & Sivan, Example 6.15).

    The constraints are far from binding.
    """
    V = np.diag([0.01, 1])
    return {
        "A": np.diag([0.9512, 0.9048]),
        "B": np.array([[4.877, 4.877], [-1.1895, 3.569]]),
        "Q": V @ np.diag([50, 0.02]) @ V,
        "R": np.diag([1 / 3, 3]),
        "sequence_length": 10,
        "x0": np.array([0.1, 0.0]),
        "state_weightings": np.ones(2),
        "state_bound": 10000.0,
        "input_weightings": np.ones(2),
        "input_bound": 10000.0,
        # only the first state variable is driven to the origin
        "Z": np.array([[1.0, 0.0]]),
        "Qref": np.array([[0.005]]),
        "ref_trajectory": np.zeros((1, 20)),
    }


@pytest.fixture
def regulation_args(stirred_tank):
    """Positional arguments of a regulating controller."""
    p = stirred_tank
    return [p["A"], p["B"], p["Q"], p["R"], p["sequence_length"],
            p["state_weightings"], p["state_bound"], p["input_weightings"], p["input_bound"]]


@pytest.fixture
def tracking_args(stirred_tank):
    """Positional arguments of a tracking controller."""
    p = stirred_tank
    return [p["A"], p["B"], p["Qref"], p["R"], p["sequence_length"],
            p["state_weightings"], p["state_bound"], p["input_weightings"], p["input_bound"],
            p["Z"], p["ref_trajectory"]]


@pytest.fixture
def regulator(regulation_args):
    from netmpc.mpc import PredictiveController
    return PredictiveController.from_args(*regulation_args)


@pytest.fixture
def tracker(tracking_args):
    from netmpc.mpc import PredictiveController
    return PredictiveController.from_args(*tracking_args)


@pytest.fixture
def double_integrator():
    """Double integrator (position, velocity) with unit sampling time."""
    return {
        "A": np.array([[1.0, 1.0], [0.0, 1.0]]),
        "B": np.array([[0.5], [1.0]]),
        "Q": np.eye(2),
        "R": np.array([[1.0]]),
    }


@pytest.fixture
def lqr():
    return lqr_trajectories


@pytest.fixture
def condensed():
    return condensed_optimum


@pytest.fixture
def regulation_qp_data():
    return regulation_qp


@pytest.fixture
def kkt():
    return kkt_residuals


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
