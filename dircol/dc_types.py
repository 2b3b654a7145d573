# dircol/dc_types.py
"""
Core type definitions for the dircol transcription engine.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, TypeAlias

import casadi as ca
import numpy as np
from numpy.typing import NDArray


# --- NUMERICAL TYPES ---
FloatArray: TypeAlias = NDArray[np.float64]
IntArray: TypeAlias = NDArray[np.int64]
NumericArrayLike: TypeAlias = (
    NDArray[np.floating[Any]]
    | NDArray[np.integer[Any]]
    | Sequence[float]
    | Sequence[int]
    | list[float]
    | list[int]
)

ConstraintInput: TypeAlias = float | int | tuple[float | int | None, float | int | None] | None
"""
Type alias for bound specification.

Supported input types:
- float/int: Fixed value (lower == upper)
- tuple(lower, upper): Range with None for unbounded sides
- None: No bound specified
"""


class Var(Enum):
    """Categories of decision variables in the transcribed NLP."""

    INITIAL_TIME = "initial_time"
    FINAL_TIME = "final_time"
    PARAMETERS = "parameters"
    STATES = "states"
    CONTROLS = "controls"
    MULTIPLIERS = "multipliers"
    DERIVATIVES = "derivatives"
    SLACKS = "slacks"
    PROJECTION_STATES = "projection_states"


# Categories with one column per grid point carrying per-point variables.
POINT_VARIABLES: tuple[Var, ...] = (
    Var.STATES,
    Var.CONTROLS,
    Var.MULTIPLIERS,
    Var.DERIVATIVES,
)

# Categories with one column per mesh point.
MESH_VARIABLES: tuple[Var, ...] = (Var.INITIAL_TIME, Var.FINAL_TIME, Var.PARAMETERS)


@dataclass(frozen=True)
class Bounds:
    """Lower and upper bound for a scalar variable; None means unbounded."""

    lower: float | None = None
    upper: float | None = None

    def __post_init__(self) -> None:
        for value in (self.lower, self.upper):
            if value is not None and math.isnan(value):
                raise ValueError("Bounds cannot be NaN; use None for an unbounded side")
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError(f"Lower bound ({self.lower}) > upper bound ({self.upper})")

    @classmethod
    def from_input(cls, value: ConstraintInput | Bounds) -> Bounds:
        """Create bounds from a fixed value, a (lower, upper) tuple or None."""
        if isinstance(value, Bounds):
            return value
        if value is None:
            return cls()
        if isinstance(value, tuple):
            lower, upper = value
            return cls(
                lower=None if lower is None else float(lower),
                upper=None if upper is None else float(upper),
            )
        return cls(lower=float(value), upper=float(value))

    def is_set(self) -> bool:
        return self.lower is not None or self.upper is not None

    def intersection(self, other: Bounds) -> Bounds:
        """
        Tightest bounds satisfying both; a side unset in one falls back to
        the other. Raises ValueError when the two do not overlap.
        """
        lowers = [value for value in (self.lower, other.lower) if value is not None]
        uppers = [value for value in (self.upper, other.upper) if value is not None]
        return Bounds(
            lower=max(lowers) if lowers else None,
            upper=min(uppers) if uppers else None,
        )

    @property
    def lower_or_inf(self) -> float:
        return -np.inf if self.lower is None else self.lower

    @property
    def upper_or_inf(self) -> float:
        return np.inf if self.upper is None else self.upper


@dataclass
class VariableInfo:
    """Name and bounds of one row of a variable category."""

    name: str
    bounds: Bounds = field(default_factory=Bounds)
    initial_bounds: Bounds = field(default_factory=Bounds)
    final_bounds: Bounds = field(default_factory=Bounds)


@dataclass
class EndpointConstraintInfo:
    """
    Constraint evaluated once on the whole trajectory.

    The endpoint function has inputs (t0, x0, u0, tf, xf, uf, p, integral) and a
    single output of length num_outputs. The optional integrand uses the point
    signature (t, x, u, multipliers, derivatives, p) and feeds `integral`.
    """

    name: str
    num_outputs: int
    lower: FloatArray
    upper: FloatArray
    endpoint_function: ca.Function
    integrand_function: ca.Function | None = None


@dataclass
class PathConstraintInfo:
    """Constraint evaluated at every mesh point (or every grid point)."""

    name: str
    size: int
    lower: FloatArray
    upper: FloatArray
    function: ca.Function


@dataclass
class CostInfo:
    """One named objective term: endpoint part plus optional integral part."""

    name: str
    endpoint_function: ca.Function
    integrand_function: ca.Function | None = None


class ProblemProtocol(Protocol):
    """Interface of the continuous problem consumed by the transcription."""

    @property
    def num_states(self) -> int: ...

    @property
    def num_controls(self) -> int: ...

    @property
    def num_parameters(self) -> int: ...

    @property
    def num_multipliers(self) -> int: ...

    @property
    def num_derivatives(self) -> int: ...

    @property
    def num_slacks(self) -> int: ...

    @property
    def num_multibody_residuals(self) -> int: ...

    @property
    def num_auxiliary_residuals(self) -> int: ...

    @property
    def num_kinematic_constraint_equations(self) -> int: ...

    @property
    def enforce_constraint_derivatives(self) -> bool: ...

    time_initial_bounds: Bounds
    time_final_bounds: Bounds
    state_infos: list[VariableInfo]
    control_infos: list[VariableInfo]
    parameter_infos: list[VariableInfo]
    multiplier_infos: list[VariableInfo]
    derivative_infos: list[VariableInfo]
    slack_infos: list[VariableInfo]

    def get_dynamics_function(self) -> ca.Function:
        """(t, x, u, multipliers, derivatives, p) -> (xdot, multibody, auxiliary)"""
        ...

    def get_kinematic_constraint_function(self) -> ca.Function | None: ...

    def get_velocity_correction_function(self) -> ca.Function | None: ...

    def get_endpoint_constraint_infos(self) -> list[EndpointConstraintInfo]: ...

    def get_path_constraint_infos(self) -> list[PathConstraintInfo]: ...

    def get_cost_infos(self) -> list[CostInfo]: ...


class SolverProtocol(Protocol):
    """Interface of the solver settings consumed by the transcription."""

    mesh: FloatArray
    transcription_scheme: str
    polynomial_degree: int
    scale_variables_using_bounds: bool
    interpolate_control_midpoints: bool
    enforce_path_constraint_midpoints: bool
    optim_solver: str
    solver_options: dict[str, Any]


# --- DATA CONTAINERS ---
@dataclass
class Iterate:
    """Unscaled values of every variable category, plus the absolute times."""

    variables: dict[Var, FloatArray] = field(default_factory=dict)
    times: FloatArray = field(default_factory=lambda: np.array([], dtype=np.float64))


@dataclass
class Solution(Iterate):
    """Expanded result of an NLP solve."""

    point_times: FloatArray = field(default_factory=lambda: np.array([], dtype=np.float64))
    mesh_times: FloatArray = field(default_factory=lambda: np.array([], dtype=np.float64))
    variable_names: dict[Var, list[str]] = field(default_factory=dict)
    success: bool = False
    message: str = "Solver not run yet."
    objective: float | None = None
    objective_breakdown: list[tuple[str, float]] = field(default_factory=list)
    constraints: Any = None
    stats: dict[str, Any] = field(default_factory=dict)
    num_iterations: int | None = None
