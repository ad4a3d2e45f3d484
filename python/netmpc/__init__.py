"""
netmpc: Predictive Control for Networked Control Systems
========================================================

netmpc computes finite-horizon, quadratic-cost control sequences for
discrete-time linear and Markov jump linear systems under linear state
and input constraints.

Quick Start
-----------
>>> import numpy as np
>>> from netmpc import PredictiveController, GaussianBelief
>>>
>>> controller = PredictiveController.for_regulation(
...     A, B, Q, R, sequence_length=5,
...     state_weightings=np.ones(2), state_bound=10.0,
...     input_weightings=np.ones(1), input_bound=1.0,
... )
>>> sequence = controller.compute_control_sequence(GaussianBelief(x0), mode=0, timestep=1)

If no feasible sequence exists, ``compute_control_sequence`` issues a
``ProblemInfeasibleWarning`` and returns zeros instead of raising.

The QP layer is available directly:

>>> from netmpc import solve_qp
>>> result = solve_qp(P, q, G, h)
>>> print(result.status, result.objective)
"""

__version__ = "0.1.0"
__author__ = "netmpc Contributors"

# Import public API
from .solver import solve_qp, check_feasibility
from .result import SolveResult, SequenceResult, Status
from .exceptions import (
    NetmpcError,
    ValidationError,
    DimensionError,
    InfeasibleError,
    InvalidNumberOfArguments,
    InvalidSystemMatrix,
    InvalidInputMatrix,
    InvalidQMatrix,
    InvalidQMatrixPSD,
    InvalidRMatrix,
    InvalidRMatrixPD,
    InvalidStateWeightings,
    InvalidStateConstraints,
    InvalidInputWeightings,
    InvalidInputConstraints,
    InvalidSequenceLength,
    InvalidHorizonLength,
    InvalidTimestep,
    InvalidStateTrajectory,
    InvalidZMatrix,
    InvalidReferenceTrajectory,
    InvalidTransitionMatrix,
    InvalidNumModes,
    InvalidModeSystemModels,
    InvalidMode,
    InvalidSystemInput,
    ProblemInfeasibleWarning,
)
from .mpc import (
    PredictiveController,
    ConstrainedHorizonSolver,
    GaussianBelief,
    JumpLinearSystem,
    JumpModel,
    LinearSystem,
    RecursionTables,
    riccati_recursion,
)

__all__ = [
    # Version
    "__version__",

    # Solving
    "solve_qp",
    "check_feasibility",

    # Results
    "SolveResult",
    "SequenceResult",
    "Status",

    # Control
    "PredictiveController",
    "ConstrainedHorizonSolver",
    "GaussianBelief",
    "JumpLinearSystem",
    "JumpModel",
    "LinearSystem",
    "RecursionTables",
    "riccati_recursion",

    # Exceptions
    "NetmpcError",
    "ValidationError",
    "DimensionError",
    "InfeasibleError",
    "InvalidNumberOfArguments",
    "InvalidSystemMatrix",
    "InvalidInputMatrix",
    "InvalidQMatrix",
    "InvalidQMatrixPSD",
    "InvalidRMatrix",
    "InvalidRMatrixPD",
    "InvalidStateWeightings",
    "InvalidStateConstraints",
    "InvalidInputWeightings",
    "InvalidInputConstraints",
    "InvalidSequenceLength",
    "InvalidHorizonLength",
    "InvalidTimestep",
    "InvalidStateTrajectory",
    "InvalidZMatrix",
    "InvalidReferenceTrajectory",
    "InvalidTransitionMatrix",
    "InvalidNumModes",
    "InvalidModeSystemModels",
    "InvalidMode",
    "InvalidSystemInput",
    "ProblemInfeasibleWarning",
]


def info() -> str:
    """Return information about the netmpc installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"netmpc version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"NumPy version: {numpy.__version__}",
        f"SciPy version: {scipy.__version__}",
    ]
    return "\n".join(lines)
