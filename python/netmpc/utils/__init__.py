"""Shared helpers."""

from .validation import (
    is_positive_integer,
    validate_cost_matrices,
    validate_input_matrix,
    validate_scalar,
    validate_system_matrix,
    validate_transition_matrix,
    validate_vector,
)
