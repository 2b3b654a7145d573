# dircol/__init__.py
"""
dircol: direct-collocation transcription of optimal control problems

This package converts a continuous-time optimal control problem into a
sparsity-structured nonlinear program solved with CasADi `nlpsol`, using one
of four schemes: trapezoidal, Hermite-Simpson, Legendre-Gauss and
Legendre-Gauss-Radau.

Logging:
By default, dircol produces no output. To enable logging::

    import logging
    logging.basicConfig()
    logging.getLogger('dircol').setLevel(logging.INFO)  # Major operations
    logging.getLogger('dircol').setLevel(logging.DEBUG)  # Detailed debugging
"""

import logging

from dircol.dc_types import Bounds, Iterate, Solution, Var
from dircol.exceptions import (
    ConfigurationError,
    DataIntegrityError,
    DircolBaseError,
    SolutionExtractionError,
)
from dircol.plot import plot_solution
from dircol.problem import Problem
from dircol.solver import Solver, solve
from dircol.summary import print_solution_summary
from dircol.transcription import Transcription, create_transcription


__all__ = [
    "Bounds",
    "ConfigurationError",
    "DataIntegrityError",
    "DircolBaseError",
    "Iterate",
    "Problem",
    "Solution",
    "SolutionExtractionError",
    "Solver",
    "Transcription",
    "Var",
    "create_transcription",
    "plot_solution",
    "print_solution_summary",
    "solve",
]

__version__ = "0.1.0"

# Library logger - no configuration, user controls output
logging.getLogger(__name__).addHandler(logging.NullHandler())
