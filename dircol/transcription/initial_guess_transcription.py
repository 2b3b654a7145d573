# dircol/transcription/initial_guess_transcription.py
"""
Initial iterates derived from variable bounds.
"""

import logging

import numpy as np

from ..dc_types import FloatArray
from ..utils.constants import UNBOUNDED_RANDOM_HALF_WIDTH


logger = logging.getLogger(__name__)


def guess_from_bounds(lower: FloatArray, upper: FloatArray) -> FloatArray:
    """
    Elementwise guess: the midpoint of finite bounds, the finite side of a
    half-bounded entry, and zero for an unbounded entry.
    """
    lower_finite = np.isfinite(lower)
    upper_finite = np.isfinite(upper)

    guess = np.zeros(np.shape(lower), dtype=np.float64)
    both = lower_finite & upper_finite
    guess[both] = 0.5 * (lower[both] + upper[both])
    only_lower = lower_finite & ~upper_finite
    guess[only_lower] = lower[only_lower]
    only_upper = upper_finite & ~lower_finite
    guess[only_upper] = upper[only_upper]
    return guess


def random_within_bounds(
    lower: FloatArray, upper: FloatArray, rng: np.random.Generator
) -> FloatArray:
    """
    Elementwise uniform sample inside the bounds.

    Half-bounded entries are sampled within UNBOUNDED_RANDOM_HALF_WIDTH of
    their finite side; unbounded entries within that width of zero.
    """
    width = UNBOUNDED_RANDOM_HALF_WIDTH
    low = np.where(np.isfinite(lower), lower, np.where(np.isfinite(upper), upper - 2 * width, -width))
    high = np.where(np.isfinite(upper), upper, np.where(np.isfinite(lower), lower + 2 * width, width))
    return rng.uniform(low, high).astype(np.float64)
