"""
Problem definition package for single-phase optimal control problems.
"""

from .core_problem import Problem
from .variables_problem import BoundaryVariableImpl, TimeVariableImpl


__all__ = [
    "BoundaryVariableImpl",
    "Problem",
    "TimeVariableImpl",
]
