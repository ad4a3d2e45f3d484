#!/usr/bin/env python3
"""
netmpc Benchmark: planning cycle times

Compares the unconstrained Riccati shortcut against the constrained QP
path for growing horizons.
"""

import time
import numpy as np

import netmpc
from netmpc import GaussianBelief, PredictiveController

print(f"netmpc version: {netmpc.__version__}")
print()


def make_controller(horizon, input_bound):
    """Double integrator with a braking limit u >= -input_bound."""
    A = np.array([[1.0, 1.0], [0.0, 1.0]])
    B = np.array([[0.5], [1.0]])
    controller = PredictiveController.for_regulation(
        A, B, np.eye(2), np.array([[1.0]]), horizon,
        np.ones(2), 1e4, np.array([-1.0]), input_bound,
    )
    return controller


def time_cycle(controller, x0, repeats=5):
    """Best-of-n wall time of one planning cycle."""
    belief = GaussianBelief(x0)
    best = float('inf')
    result = None
    for _ in range(repeats):
        start = time.perf_counter()
        result = controller.compute_control_sequence_result(belief, 0, 1)
        best = min(best, time.perf_counter() - start)
    return best, result


def benchmark_horizons():
    print("=" * 70)
    print("Planning Cycle Benchmark")
    print("=" * 70)
    print(f"{'N':>6} {'shortcut (ms)':>15} {'QP (ms)':>12} {'QP status':>20}")
    print("-" * 70)

    x0 = np.array([5.0, 0.0])
    for horizon in [5, 10, 20, 40, 80]:
        t_fast, fast = time_cycle(make_controller(horizon, np.inf), x0)
        t_qp, qp = time_cycle(make_controller(horizon, 0.5), x0)
        assert fast.used_shortcut
        print(f"{horizon:>6} {t_fast * 1000:>15.2f} {t_qp * 1000:>12.2f} {str(qp.status):>20}")


if __name__ == "__main__":
    benchmark_horizons()
