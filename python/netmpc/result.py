"""
netmpc Result Classes
=====================

Data classes for solver results and control sequence results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

import numpy as np

from .exceptions import InfeasibleError


class Status(Enum):
    """
    Solver status codes.

    Attributes:
        OPTIMAL: Solution found within tolerance
        PRIMAL_INFEASIBLE: Problem has no feasible solution
        MAX_ITERATIONS: Maximum iteration limit reached
        NUMERICAL_ERROR: Numerical issues encountered
        UNSOLVED: Problem not yet solved
    """
    OPTIMAL = "optimal"
    PRIMAL_INFEASIBLE = "primal_infeasible"
    MAX_ITERATIONS = "max_iterations"
    NUMERICAL_ERROR = "numerical_error"
    UNSOLVED = "unsolved"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if an optimal solution was found."""
        return self == Status.OPTIMAL


@dataclass
class SolveResult:
    """
    Result of solving a QP.

    Attributes:
        status: Solver status
        objective: Optimal objective value (without constant terms)
        x: Primal solution vector
        iterations: Number of iterations performed
        solve_time: Wall clock time in seconds
        max_violation: Largest constraint violation at x
    """

    status: Status
    objective: float
    x: np.ndarray
    iterations: int
    solve_time: float

    max_violation: float = 0.0
    problem_info: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"SolveResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"time={self.solve_time:.4f}s)"
        )

    def summary(self) -> str:
        """Return a formatted summary of the solve result."""
        lines = [
            "=" * 50,
            "netmpc QP Summary",
            "=" * 50,
            f"Status:           {self.status}",
            f"Objective:        {self.objective:.10g}",
            f"Iterations:       {self.iterations}",
            f"Solve time:       {self.solve_time:.4f} s",
            f"Max violation:    {self.max_violation:.6e}",
            "=" * 50,
        ]
        return "\n".join(lines)


@dataclass
class SequenceResult:
    """
    Outcome of one planning cycle.

    Either a solved sequence or the infeasible variant. Both carry a
    ``sequence`` of the contractual length ``dim_u * sequence_length``;
    for the infeasible variant it is all zeros.

    Attributes:
        status: Status of the underlying solve
        sequence: Stacked inputs, input block by stage
        inputs: The full optimized horizon (N, dim_u), None if infeasible
        used_shortcut: True if the unconstrained optimum was feasible
        message: Diagnostic text for the infeasible variant
    """

    status: Status
    sequence: np.ndarray
    inputs: Optional[np.ndarray] = None
    used_shortcut: bool = False
    message: str = ""

    @property
    def is_feasible(self) -> bool:
        return self.status.is_successful

    @classmethod
    def infeasible(
        cls,
        dim_u: int,
        sequence_length: int,
        status: Status = Status.PRIMAL_INFEASIBLE,
        message: str = "",
    ) -> "SequenceResult":
        """Create the infeasible variant with its zero fallback."""
        return cls(
            status=status,
            sequence=np.zeros(dim_u * sequence_length),
            message=message,
        )

    def unwrap(self) -> np.ndarray:
        """Return the sequence, raising InfeasibleError for the fallback."""
        if not self.is_feasible:
            raise InfeasibleError(self.message or f"Problem is infeasible ({self.status})")
        return self.sequence
