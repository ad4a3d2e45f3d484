"""
netmpc Exception Classes
========================

Custom exceptions and warnings for netmpc error handling.

Configuration errors are raised synchronously by constructors and
mutators. Every validation error exposes ``kind``, the name of the
violated property, so callers can branch on it without string matching.
"""

from typing import Optional


class NetmpcError(Exception):
    """Base exception for all netmpc errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DimensionError(NetmpcError, ValueError):
    """
    Raised when matrix/vector dimensions are incompatible.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InfeasibleError(NetmpcError):
    """
    Raised when an infeasible control sequence result is unwrapped.

    The controller itself never raises this; it only reports
    infeasibility through ``ProblemInfeasibleWarning``.
    """

    def __init__(self, message: str = "Problem is infeasible") -> None:
        super().__init__(message)


class ValidationError(NetmpcError, ValueError):
    """
    Raised when a configuration argument is invalid.

    Subclasses name the offending argument and the violated property.
    """

    def __init__(self, message: str, argument: Optional[str] = None) -> None:
        self.argument = argument
        super().__init__(f"{type(self).__name__}: {message}")

    @property
    def kind(self) -> str:
        """Error kind (the class name)."""
        return type(self).__name__


class InvalidNumberOfArguments(ValidationError):
    """Positional construction with neither 9 nor 11 arguments."""


class InvalidSystemMatrix(ValidationError):
    """A is not square or has non-finite entries."""


class InvalidInputMatrix(ValidationError):
    """B has the wrong number of rows or non-finite entries."""


class InvalidQMatrix(ValidationError):
    """Q (or Qref) has the wrong shape or non-finite entries."""


class InvalidQMatrixPSD(ValidationError):
    """Q (or Qref) is not symmetric positive semi-definite."""


class InvalidRMatrix(ValidationError):
    """R has the wrong shape or non-finite entries."""


class InvalidRMatrixPD(ValidationError):
    """R is not symmetric positive definite."""


class InvalidStateWeightings(ValidationError):
    """State constraint weighting is not a vector of length dim_x."""


class InvalidStateConstraints(ValidationError):
    """State constraint bound is not a real scalar (+inf disables the constraint)."""


class InvalidInputWeightings(ValidationError):
    """Input constraint weighting is not a vector of length dim_u."""


class InvalidInputConstraints(ValidationError):
    """Input constraint bound is not a real scalar (+inf disables the constraint)."""


class InvalidSequenceLength(ValidationError):
    """Sequence length is not an integer in [1, horizon_length]."""


class InvalidHorizonLength(ValidationError):
    """Horizon length is not a positive integer or exceeds the reference."""


class InvalidTimestep(ValidationError):
    """Timestep is not a positive integer within the reference trajectory."""


class InvalidStateTrajectory(ValidationError):
    """State trajectory does not have exactly one more column than inputs."""


class InvalidZMatrix(ValidationError):
    """Output selection matrix Z is not a finite p x dim_x matrix."""


class InvalidReferenceTrajectory(ValidationError):
    """Reference trajectory has the wrong row count, length or entries."""


class InvalidTransitionMatrix(ValidationError):
    """Mode transition matrix is not a row-stochastic square matrix."""


class InvalidNumModes(ValidationError):
    """Number of modes is not a positive integer."""


class InvalidModeSystemModels(ValidationError):
    """Too few or invalid per-mode system models."""


class InvalidMode(ValidationError):
    """Mode index outside {0, ..., num_modes - 1}."""


class InvalidSystemInput(ValidationError):
    """System input is neither per-mode inputs, a single input vector nor empty."""


class ProblemInfeasibleWarning(UserWarning):
    """
    Issued when a planning cycle has no feasible control sequence.

    The controller falls back to an all-zero sequence so the surrounding
    simulation keeps running.
    """
