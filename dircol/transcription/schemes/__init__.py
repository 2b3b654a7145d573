"""
Closed set of collocation schemes, selected by name.
"""

import logging

from ...dc_types import ProblemProtocol, SolverProtocol
from ...exceptions import ConfigurationError
from ..core_transcription import Transcription
from .hermite_simpson import HermiteSimpsonTranscription
from .legendre_gauss import LegendreGaussTranscription
from .legendre_gauss_radau import LegendreGaussRadauTranscription
from .trapezoidal import TrapezoidalTranscription


logger = logging.getLogger(__name__)

TRANSCRIPTION_SCHEMES: dict[str, type[Transcription]] = {
    scheme.scheme_name: scheme
    for scheme in (
        TrapezoidalTranscription,
        HermiteSimpsonTranscription,
        LegendreGaussTranscription,
        LegendreGaussRadauTranscription,
    )
}


def create_transcription(solver: SolverProtocol, problem: ProblemProtocol) -> Transcription:
    """Instantiate the scheme named by `solver.transcription_scheme`."""
    try:
        scheme = TRANSCRIPTION_SCHEMES[solver.transcription_scheme]
    except KeyError:
        raise ConfigurationError(
            f"Unknown transcription scheme '{solver.transcription_scheme}'",
            f"Available schemes: {sorted(TRANSCRIPTION_SCHEMES)}",
        ) from None

    logger.debug("Creating %s transcription", solver.transcription_scheme)
    return scheme(solver, problem)


__all__ = [
    "TRANSCRIPTION_SCHEMES",
    "HermiteSimpsonTranscription",
    "LegendreGaussRadauTranscription",
    "LegendreGaussTranscription",
    "TrapezoidalTranscription",
    "create_transcription",
]
