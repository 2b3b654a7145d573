# dircol/transcription/integrals_transcription.py
"""
Quadrature of integrands over the transcription grid.
"""

import logging
from typing import Any

import casadi as ca
import numpy as np

from ..dc_types import FloatArray
from ..exceptions import DataIntegrityError
from ..utils.constants import ZERO_TOLERANCE
from .mesh_transcription import GridLayout


logger = logging.getLogger(__name__)


def restrict_quadrature_to_points(
    quadrature_coefficients: FloatArray, grid: GridLayout
) -> FloatArray:
    """
    Coefficients of the variable-carrying grid points.

    Integrands are only evaluated where decision variables exist, so every
    other grid point must carry a zero coefficient.
    """
    mask = np.ones(grid.num_grid_points, dtype=bool)
    mask[grid.point_grid_indices] = False
    if np.any(np.abs(quadrature_coefficients[mask]) > ZERO_TOLERANCE):
        raise DataIntegrityError(
            "Quadrature coefficients are non-zero at grid points without variables",
            "Quadrature construction",
        )
    return quadrature_coefficients[grid.point_grid_indices]


def integrate(
    point_coefficients: FloatArray, duration: Any, integrand_values: Any
) -> Any:
    """duration * sum_j q_j * integrand_j for a 1 x K row of integrand values."""
    return duration * ca.mtimes(integrand_values, ca.DM(point_coefficients.reshape(-1, 1)))


def evaluate_integral(
    integrand_function: ca.Function | None,
    point_arguments: list[Any],
    point_coefficients: FloatArray,
    duration: Any,
) -> ca.MX:
    """Integral of a point-signature integrand; zero when there is none."""
    if integrand_function is None:
        return ca.MX(1, 1)

    num_points = len(point_coefficients)
    integrand_values = integrand_function.map(num_points).call(point_arguments)[0]
    return integrate(point_coefficients, duration, integrand_values)
