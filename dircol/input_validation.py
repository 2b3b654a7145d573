import logging
from typing import Any

import numpy as np

from .exceptions import ConfigurationError, DataIntegrityError
from .dc_types import FloatArray, NumericArrayLike
from .utils.constants import MAX_POLYNOMIAL_DEGREE, MESH_ENDPOINT_TOLERANCE, MESH_TOLERANCE


logger = logging.getLogger(__name__)


# ============================================================================
# CORE VALIDATION PRIMITIVES
# ============================================================================


def validate_positive_integer(value: Any, name: str, min_value: int = 1) -> None:
    """Single source for positive integer validation."""
    if isinstance(value, bool) or not isinstance(value, int | np.integer):
        raise ConfigurationError(f"{name} must be integer, got {type(value)}")
    if value < min_value:
        raise ConfigurationError(f"{name} must be >= {min_value}, got {value}")


def validate_string_not_empty(value: Any, name: str) -> None:
    if not isinstance(value, str):
        raise ConfigurationError(f"{name} must be string, got {type(value)}")
    if not value.strip():
        raise ConfigurationError(f"{name} cannot be empty")


def validate_array_numerical_integrity(
    array: FloatArray, name: str, context: str = "validation"
) -> None:
    """Single source for NaN/Inf validation."""
    if np.any(np.isnan(array)) or np.any(np.isinf(array)):
        raise DataIntegrityError(
            f"{name} contains NaN or Inf values", f"Numerical corruption in {context}"
        )


def validate_array_shape(
    array: Any, expected_shape: tuple[int, ...], name: str, context: str = "validation"
) -> None:
    """Single source for shape validation of numpy and CasADi matrices."""
    shape = tuple(array.shape)
    if shape != expected_shape:
        raise DataIntegrityError(
            f"{name} has shape {shape}, expected {expected_shape}",
            f"Shape mismatch in {context}",
        )


# ============================================================================
# MESH VALIDATION
# ============================================================================


def validate_polynomial_degree(degree: int, context: str = "polynomial degree") -> None:
    """SINGLE SOURCE for polynomial degree validation."""
    validate_positive_integer(degree, context, min_value=1)
    if degree > MAX_POLYNOMIAL_DEGREE:
        raise ConfigurationError(f"{context} must be <= {MAX_POLYNOMIAL_DEGREE}, got {degree}")


def validate_mesh_fractions(mesh: NumericArrayLike) -> FloatArray:
    """Validate normalized mesh fractions and return them as a float array."""
    try:
        mesh_array = np.asarray(mesh, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Mesh must be a sequence of numbers: {e}") from e

    if mesh_array.ndim != 1:
        raise ConfigurationError(f"Mesh must be one-dimensional, got shape {mesh_array.shape}")
    if len(mesh_array) < 2:
        raise ConfigurationError(f"Mesh must contain at least 2 points, got {len(mesh_array)}")
    if np.any(~np.isfinite(mesh_array)):
        raise ConfigurationError("Mesh contains NaN or infinite values")

    # Boundary validation
    if abs(mesh_array[0]) > MESH_ENDPOINT_TOLERANCE:
        raise ConfigurationError(f"First mesh point must be 0.0, got {mesh_array[0]}")
    if abs(mesh_array[-1] - 1.0) > MESH_ENDPOINT_TOLERANCE:
        raise ConfigurationError(f"Last mesh point must be 1.0, got {mesh_array[-1]}")

    # Spacing validation
    mesh_diffs = np.diff(mesh_array)
    if not np.all(mesh_diffs > MESH_TOLERANCE):
        raise ConfigurationError(
            f"Mesh points must be strictly increasing with min spacing {MESH_TOLERANCE}"
        )

    return mesh_array
