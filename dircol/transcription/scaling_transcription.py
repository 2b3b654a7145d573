# dircol/transcription/scaling_transcription.py
"""
Affine variable scaling driven by variable bounds.

Transformation: scaled = (unscaled - shift) / dilate
Inverse:        unscaled = scaled * dilate + shift
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TypeVar

import casadi as ca
import numpy as np

from ..dc_types import FloatArray


logger = logging.getLogger(__name__)

T = TypeVar("T", FloatArray, ca.MX, ca.DM)


@dataclass(frozen=True)
class ScalingFactors:
    """Dilate and shift of one variable row."""

    dilate: float
    shift: float


def compute_scaling_factors(lower: float, upper: float, enabled: bool) -> ScalingFactors:
    """
    Derive scaling factors from a pair of bounds.

    Rules:
    - Scaling disabled: dilate 1, shift 0
    - Unbounded (infinite or NaN width): dilate 1, shift 0
    - Fixed (zero width): dilate 1, shift at the fixed value
    - Otherwise: dilate = upper - lower, shift = -(upper + lower) / 2
    """
    if not enabled:
        return ScalingFactors(dilate=1.0, shift=0.0)

    dilate = upper - lower
    if np.isinf(dilate) or np.isnan(dilate):
        return ScalingFactors(dilate=1.0, shift=0.0)
    if dilate == 0:
        return ScalingFactors(dilate=1.0, shift=float(upper))
    return ScalingFactors(dilate=float(dilate), shift=float(-0.5 * (upper + lower)))


def _broadcast_column(column: FloatArray, like: T) -> T:
    # Per-row factors are repeated across every column of the category
    num_columns = like.shape[1]
    if isinstance(like, ca.MX | ca.DM):
        return ca.repmat(ca.DM(column.reshape(-1, 1)), 1, num_columns)
    return np.repeat(column.reshape(-1, 1), num_columns, axis=1)


def scale_values(unscaled: T, dilate: FloatArray, shift: FloatArray) -> T:
    """Apply scaled = (unscaled - shift) / dilate row by row."""
    if unscaled.shape[0] == 0 or unscaled.shape[1] == 0:
        return unscaled
    return (unscaled - _broadcast_column(shift, unscaled)) / _broadcast_column(dilate, unscaled)


def unscale_values(scaled: T, dilate: FloatArray, shift: FloatArray) -> T:
    """Apply unscaled = scaled * dilate + shift row by row."""
    if scaled.shape[0] == 0 or scaled.shape[1] == 0:
        return scaled
    return scaled * _broadcast_column(dilate, scaled) + _broadcast_column(shift, scaled)
