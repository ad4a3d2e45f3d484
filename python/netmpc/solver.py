"""netmpc QP Interface.

Dense convex quadratic programs with generic linear inequalities:

    minimize    (1/2) x' P x + q' x
    subject to  G x <= h
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Tuple
import time
import numpy as np
from scipy.optimize import linprog, minimize
from .exceptions import DimensionError
from .result import SolveResult, Status

DEFAULT_PARAMS: Dict[str, Any] = {
    "max_iterations": 500,
    "tolerance": 1e-10,
    "feasibility_tolerance": 1e-9,
    "constraint_tolerance": 1e-6,
    "verbose": False,
}

_KKT_RESIDUAL = float(np.sqrt(np.finfo(np.float64).eps))


def solver_params(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Merge user params over the defaults, accepting the short aliases."""
    merged = dict(DEFAULT_PARAMS)
    params = params or {}
    if "max_iters" in params:
        merged["max_iterations"] = params["max_iters"]
    if "tol" in params:
        merged["tolerance"] = params["tol"]
    merged.update({k: v for k, v in params.items() if k in DEFAULT_PARAMS})
    return merged


def check_feasibility(
    G: np.ndarray,
    h: np.ndarray,
    verbose: bool = False,
) -> Tuple[Status, Optional[np.ndarray]]:
    """
    Phase-one feasibility check for G x <= h.

    Returns:
        (status, point) where point is a feasible x if status is OPTIMAL
    """
    n = G.shape[1]
    try:
        result = linprog(np.zeros(n), A_ub=G, b_ub=h, bounds=[(None, None)] * n, method="highs")
    except ValueError as e:
        if verbose: print(f"scipy feasibility LP failed: {e}")
        return Status.NUMERICAL_ERROR, None
    if result.status == 0:
        return Status.OPTIMAL, result.x
    if result.status == 2:
        return Status.PRIMAL_INFEASIBLE, None
    if result.status == 1:
        return Status.MAX_ITERATIONS, None
    return Status.NUMERICAL_ERROR, None


def polish_active_set(
    P: np.ndarray,
    q: np.ndarray,
    G: np.ndarray,
    h: np.ndarray,
    x: np.ndarray,
    tol: float = 1e-6,
    max_rounds: int = 500,
) -> Optional[np.ndarray]:
    """
    Refine an approximate QP solution by solving the KKT system of its active set.

    Starting from the constraints active at x, the equality-constrained
    subproblem

        [P  Ga'] [y]   [-q ]
        [Ga  0 ] [l] = [h_a]

    is solved repeatedly. Constraints with a negative multiplier leave the
    active set, violated constraints enter it. The returned point satisfies
    the KKT conditions of the full problem to within tol.

    Returns:
        The refined point, or None if no KKT point was reached
    """
    n = len(q)
    scale = max(1.0, float(np.abs(h).max()))
    active = [int(i) for i in np.flatnonzero(G @ x - h >= -tol * scale)]

    for _ in range(max_rounds):
        k = len(active)
        Ga = G[active]
        K = np.block([[P, Ga.T], [Ga, np.zeros((k, k))]])
        rhs = np.concatenate([-q, h[active]])
        sol = np.linalg.lstsq(K, rhs, rcond=None)[0]
        y, lam = sol[:n], sol[n:]

        if k and lam.min() < -tol * max(1.0, float(np.abs(lam).max())):
            del active[int(np.argmin(lam))]
            continue
        # inconsistent active rows leave a residual well above rounding level
        residual = np.linalg.norm(K @ sol - rhs)
        if residual > _KKT_RESIDUAL * (np.linalg.norm(K, 2) * np.linalg.norm(sol) + np.linalg.norm(rhs)):
            return None

        slack = G @ y - h
        worst = int(np.argmax(slack))
        if slack[worst] <= tol * scale:
            return y
        if worst in active:
            return None
        active.append(worst)
    return None


def solve_qp(
    P: np.ndarray,
    q: np.ndarray,
    G: Optional[np.ndarray] = None,
    h: Optional[np.ndarray] = None,
    x0: Optional[np.ndarray] = None,
    params: Optional[Dict[str, Any]] = None,
) -> SolveResult:
    """Solve a convex QP with linear inequality constraints.

    Infeasibility and non-convergence are reported through the status of
    the returned result, never raised.
    """
    start_time = time.perf_counter()
    params = solver_params(params)
    max_iters = params["max_iterations"]
    tol = params["tolerance"]
    feas_tol = params["feasibility_tolerance"]
    constr_tol = params["constraint_tolerance"]
    verbose = params["verbose"]

    q = np.asarray(q, dtype=np.float64).ravel()
    n = len(q)
    P = np.asarray(P, dtype=np.float64)
    if P.shape != (n, n):
        raise DimensionError(f"P must be ({n},{n}), got {P.shape}")

    if G is None or np.size(G) == 0:
        G = np.zeros((0, n))
        h = np.zeros(0)
    else:
        G = np.atleast_2d(np.asarray(G, dtype=np.float64))
        h = np.asarray(h, dtype=np.float64).ravel()
        if G.shape[1] != n:
            raise DimensionError(f"G columns {G.shape[1]} != n={n}")
        if G.shape[0] != len(h):
            raise DimensionError(f"G has {G.shape[0]} rows but h has {len(h)} elements")
    m = G.shape[0]

    if m == 0:
        x = -np.linalg.pinv(P) @ q
        result = SolveResult(status=Status.OPTIMAL, objective=0.5 * x @ P @ x + q @ x,
                             x=x, iterations=0, solve_time=0.0)
        result.solve_time = time.perf_counter() - start_time
        return result

    feasibility, point = check_feasibility(G, h, verbose)
    if feasibility != Status.OPTIMAL:
        return SolveResult(status=feasibility, objective=float("nan"), x=np.zeros(n),
                           iterations=0, solve_time=time.perf_counter() - start_time)

    # start from the caller's guess only if it is feasible
    if x0 is not None and np.all(G @ x0 - h <= feas_tol):
        start = np.asarray(x0, dtype=np.float64)
    else:
        start = point

    try:
        result = minimize(lambda x: 0.5 * x @ P @ x + q @ x, start, method="SLSQP",
                          jac=lambda x: P @ x + q,
                          constraints=[{"type": "ineq", "fun": lambda x: h - G @ x, "jac": lambda x: -G}],
                          options={"maxiter": max_iters, "ftol": tol})
    except (ValueError, np.linalg.LinAlgError) as e:
        if verbose: print(f"scipy QP failed: {e}")
        return SolveResult(status=Status.NUMERICAL_ERROR, objective=float("nan"), x=np.zeros(n),
                           iterations=0, solve_time=time.perf_counter() - start_time)

    # SLSQP may stop on a failed line search (status 8) at an optimal point
    x = result.x
    polished = polish_active_set(P, q, G, h, x, constr_tol, max_iters)
    if polished is not None:
        x = polished

    violation = float(np.maximum(G @ x - h, 0).max())
    if polished is not None:
        status = Status.OPTIMAL
    elif result.success and violation <= constr_tol * max(1.0, float(np.abs(h).max())):
        status = Status.OPTIMAL
    elif result.status == 9:
        status = Status.MAX_ITERATIONS
    else:
        status = Status.NUMERICAL_ERROR
    if verbose and status != Status.OPTIMAL:
        print(f"SLSQP finished with status {status}: {result.message}")

    return SolveResult(status=status, objective=float(0.5 * x @ P @ x + q @ x), x=x,
                       iterations=int(result.nit), solve_time=time.perf_counter() - start_time,
                       max_violation=violation,
                       problem_info={"slsqp_status": int(result.status), "polished": polished is not None})
