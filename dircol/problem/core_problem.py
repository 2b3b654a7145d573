import logging
from typing import Any

import casadi as ca
import numpy as np

from ..dc_types import (
    Bounds,
    ConstraintInput,
    CostInfo,
    EndpointConstraintInfo,
    PathConstraintInfo,
    VariableInfo,
)
from ..exceptions import ConfigurationError
from ..input_validation import validate_string_not_empty
from .casadi_build import (
    ENDPOINT_INPUT_NAMES,
    POINT_INPUT_NAMES,
    build_function,
    stack_expressions,
    stack_symbols,
)
from .variables_problem import (
    BoundaryVariableImpl,
    TimeVariableImpl,
    _extract_casadi_symbol,
    create_boundary_variable,
    create_time_variable,
)


logger = logging.getLogger(__name__)


def _to_bounds(value: ConstraintInput | Bounds, context: str) -> Bounds:
    try:
        return Bounds.from_input(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid bounds for {context}: {e}") from e


def _same_symbol(first: Any, second: Any) -> bool:
    return _extract_casadi_symbol(first) is _extract_casadi_symbol(second)


def _expression_size(expression: Any) -> int:
    expr = ca.MX(_extract_casadi_symbol(expression))
    if expr.shape[1] != 1:
        raise ConfigurationError(f"Constraint expressions must be column vectors, got {expr.shape}")
    return int(expr.shape[0])


class Problem:
    """
    Single-phase optimal control problem built from CasADi MX expressions.

    Point expressions (dynamics, residuals, path constraints, integrands) may
    use the time, state, control, multiplier, derivative and parameter
    symbols. Endpoint expressions (endpoint constraints and costs) use
    `t.initial`, `t.final`, `x.initial`, `x.final`, the controls' initial and
    final symbols, the parameters, and `problem.integral`.
    """

    def __init__(
        self, name: str = "Optimal Control Problem", enforce_constraint_derivatives: bool = False
    ) -> None:
        self.name = name
        self._enforce_constraint_derivatives = enforce_constraint_derivatives

        self._time = create_time_variable()
        self.time_initial_bounds = Bounds(0.0, 0.0)
        self.time_final_bounds = Bounds()

        self._states: list[BoundaryVariableImpl] = []
        self._controls: list[BoundaryVariableImpl] = []
        self._parameters: list[ca.MX] = []
        self._multipliers: list[ca.MX] = []
        self._derivatives: list[ca.MX] = []
        self._slacks: list[ca.MX] = []
        self._names: set[str] = set()

        self.state_infos: list[VariableInfo] = []
        self.control_infos: list[VariableInfo] = []
        self.parameter_infos: list[VariableInfo] = []
        self.multiplier_infos: list[VariableInfo] = []
        self.derivative_infos: list[VariableInfo] = []
        self.slack_infos: list[VariableInfo] = []

        self._dynamics: dict[Any, Any] = {}
        self._multibody_residuals: list[Any] = []
        self._auxiliary_residuals: list[Any] = []
        self._kinematic_constraints: list[Any] = []
        self._velocity_correction: dict[Any, Any] | None = None
        self._path_constraints: list[tuple[str, Any, Bounds]] = []
        self._endpoint_constraints: list[tuple[str, Any, Bounds, Any]] = []
        self._costs: list[tuple[str, Any, Any]] = []

        self._integral = ca.MX.sym("integral", 1)

        logger.debug("Created problem '%s'", name)

    # ------------------------------------------------------------------
    # variables
    # ------------------------------------------------------------------

    def _register_name(self, name: str, kind: str) -> None:
        validate_string_not_empty(name, f"{kind} name")
        if name in self._names:
            raise ConfigurationError(f"Variable name '{name}' is already used")
        self._names.add(name)

    def time(
        self, initial: ConstraintInput = 0.0, final: ConstraintInput = None
    ) -> TimeVariableImpl:
        self.time_initial_bounds = _to_bounds(initial, "initial time")
        self.time_final_bounds = _to_bounds(final, "final time")
        return self._time

    def state(
        self,
        name: str,
        initial: ConstraintInput = None,
        final: ConstraintInput = None,
        boundary: ConstraintInput = None,
    ) -> BoundaryVariableImpl:
        self._register_name(name, "State")
        variable = create_boundary_variable(name)
        self._states.append(variable)
        self.state_infos.append(
            VariableInfo(
                name=name,
                bounds=_to_bounds(boundary, f"state '{name}'"),
                initial_bounds=_to_bounds(initial, f"state '{name}' initial"),
                final_bounds=_to_bounds(final, f"state '{name}' final"),
            )
        )
        return variable

    def control(
        self,
        name: str,
        boundary: ConstraintInput = None,
        initial: ConstraintInput = None,
        final: ConstraintInput = None,
    ) -> BoundaryVariableImpl:
        self._register_name(name, "Control")
        variable = create_boundary_variable(name)
        self._controls.append(variable)
        self.control_infos.append(
            VariableInfo(
                name=name,
                bounds=_to_bounds(boundary, f"control '{name}'"),
                initial_bounds=_to_bounds(initial, f"control '{name}' initial"),
                final_bounds=_to_bounds(final, f"control '{name}' final"),
            )
        )
        return variable

    def _scalar_variable(
        self,
        kind: str,
        name: str,
        boundary: ConstraintInput,
        symbols: list[ca.MX],
        infos: list[VariableInfo],
    ) -> ca.MX:
        self._register_name(name, kind)
        symbol = ca.MX.sym(name, 1)
        symbols.append(symbol)
        infos.append(VariableInfo(name=name, bounds=_to_bounds(boundary, f"{kind} '{name}'")))
        return symbol

    def parameter(self, name: str, boundary: ConstraintInput = None) -> ca.MX:
        """Time-invariant decision variable."""
        return self._scalar_variable(
            "parameter", name, boundary, self._parameters, self.parameter_infos
        )

    def multiplier(self, name: str, boundary: ConstraintInput = None) -> ca.MX:
        return self._scalar_variable(
            "multiplier", name, boundary, self._multipliers, self.multiplier_infos
        )

    def derivative(self, name: str, boundary: ConstraintInput = None) -> ca.MX:
        return self._scalar_variable(
            "derivative", name, boundary, self._derivatives, self.derivative_infos
        )

    def slack(self, name: str, boundary: ConstraintInput = None) -> ca.MX:
        """Per-interval variable feeding the velocity correction."""
        return self._scalar_variable("slack", name, boundary, self._slacks, self.slack_infos)

    @property
    def integral(self) -> ca.MX:
        """Placeholder for the integral of an endpoint constraint's integrand."""
        return self._integral

    # ------------------------------------------------------------------
    # dynamics and constraints
    # ------------------------------------------------------------------

    def dynamics(self, dynamics_dict: dict[Any, Any]) -> None:
        for state in dynamics_dict:
            if not any(_same_symbol(state, known) for known in self._states):
                raise ConfigurationError("Dynamics keys must be state variables of this problem")
        self._dynamics = dict(dynamics_dict)
        logger.info("Dynamics defined with %d state variables", len(dynamics_dict))

    def multibody_residuals(self, *expressions: Any) -> None:
        """Implicit dynamics residuals enforced at every point."""
        self._multibody_residuals = list(expressions)

    def auxiliary_residuals(self, *expressions: Any) -> None:
        self._auxiliary_residuals = list(expressions)

    def kinematic_constraints(self, *expressions: Any) -> None:
        """Equality constraints enforced at every mesh point."""
        self._kinematic_constraints = list(expressions)

    def velocity_correction(self, correction_dict: dict[Any, Any]) -> None:
        """State derivative correction in terms of (t, x, slacks, p)."""
        self._velocity_correction = dict(correction_dict)

    def path_constraint(
        self, name: str, expression: Any, bounds: ConstraintInput = 0.0
    ) -> None:
        validate_string_not_empty(name, "Path constraint name")
        self._path_constraints.append(
            (name, expression, _to_bounds(bounds, f"path constraint '{name}'"))
        )
        logger.debug("Added path constraint '%s'", name)

    def endpoint_constraint(
        self,
        name: str,
        expression: Any,
        bounds: ConstraintInput = 0.0,
        integrand: Any = None,
    ) -> None:
        validate_string_not_empty(name, "Endpoint constraint name")
        self._endpoint_constraints.append(
            (name, expression, _to_bounds(bounds, f"endpoint constraint '{name}'"), integrand)
        )
        logger.debug("Added endpoint constraint '%s'", name)

    def add_cost(self, name: str, expression: Any = None, integrand: Any = None) -> None:
        """Objective term: the endpoint expression plus the integral of the integrand."""
        validate_string_not_empty(name, "Cost name")
        if expression is None and integrand is None:
            raise ConfigurationError(f"Cost '{name}' needs an expression or an integrand")
        self._costs.append((name, expression, integrand))

    def minimize(self, expression: Any = None, integrand: Any = None) -> None:
        self.add_cost("objective", expression, integrand)

    # ------------------------------------------------------------------
    # counts
    # ------------------------------------------------------------------

    @property
    def num_states(self) -> int:
        return len(self._states)

    @property
    def num_controls(self) -> int:
        return len(self._controls)

    @property
    def num_parameters(self) -> int:
        return len(self._parameters)

    @property
    def num_multipliers(self) -> int:
        return len(self._multipliers)

    @property
    def num_derivatives(self) -> int:
        return len(self._derivatives)

    @property
    def num_slacks(self) -> int:
        return len(self._slacks)

    @property
    def num_multibody_residuals(self) -> int:
        return len(self._multibody_residuals)

    @property
    def num_auxiliary_residuals(self) -> int:
        return len(self._auxiliary_residuals)

    @property
    def num_kinematic_constraint_equations(self) -> int:
        return len(self._kinematic_constraints)

    @property
    def enforce_constraint_derivatives(self) -> bool:
        return self._enforce_constraint_derivatives

    # ------------------------------------------------------------------
    # CasADi functions
    # ------------------------------------------------------------------

    def _point_inputs(self) -> list[ca.MX]:
        return [
            _extract_casadi_symbol(self._time),
            stack_symbols(self._states, "x"),
            stack_symbols(self._controls, "u"),
            stack_symbols(self._multipliers, "multipliers"),
            stack_symbols(self._derivatives, "derivatives"),
            stack_symbols(self._parameters, "p"),
        ]

    def _endpoint_inputs(self) -> list[ca.MX]:
        return [
            self._time.initial,
            stack_symbols([state.initial for state in self._states], "x0"),
            stack_symbols([control.initial for control in self._controls], "u0"),
            self._time.final,
            stack_symbols([state.final for state in self._states], "xf"),
            stack_symbols([control.final for control in self._controls], "uf"),
            stack_symbols(self._parameters, "p"),
            self._integral,
        ]

    def _integrand_function(self, name: str, integrand: Any) -> ca.Function | None:
        if integrand is None:
            return None
        return build_function(
            f"{name}_integrand",
            self._point_inputs(),
            [stack_expressions([integrand])],
            POINT_INPUT_NAMES,
            ["integrand"],
        )

    def _ordered_by_state(self, values: dict[Any, Any], default: Any) -> list[Any]:
        ordered = []
        for state in self._states:
            match = [value for key, value in values.items() if _same_symbol(key, state)]
            ordered.append(match[0] if match else default)
        return ordered

    def get_dynamics_function(self) -> ca.Function:
        """(t, x, u, multipliers, derivatives, p) -> (xdot, multibody, auxiliary)"""
        missing = [
            info.name
            for state, info in zip(self._states, self.state_infos, strict=True)
            if not any(_same_symbol(key, state) for key in self._dynamics)
        ]
        if missing:
            raise ConfigurationError(f"Missing dynamics for states: {missing}")

        return build_function(
            "dynamics",
            self._point_inputs(),
            [
                stack_expressions(self._ordered_by_state(self._dynamics, 0.0)),
                stack_expressions(self._multibody_residuals),
                stack_expressions(self._auxiliary_residuals),
            ],
            POINT_INPUT_NAMES,
            ["xdot", "multibody", "auxiliary"],
        )

    def get_kinematic_constraint_function(self) -> ca.Function | None:
        if not self._kinematic_constraints:
            return None
        return build_function(
            "kinematic_constraints",
            self._point_inputs(),
            [stack_expressions(self._kinematic_constraints)],
            POINT_INPUT_NAMES,
            ["residuals"],
        )

    def get_velocity_correction_function(self) -> ca.Function | None:
        if self._velocity_correction is None:
            return None
        return build_function(
            "velocity_correction",
            [
                _extract_casadi_symbol(self._time),
                stack_symbols(self._states, "x"),
                stack_symbols(self._slacks, "slacks"),
                stack_symbols(self._parameters, "p"),
            ],
            [stack_expressions(self._ordered_by_state(self._velocity_correction, 0.0))],
            ["t", "x", "slacks", "p"],
            ["correction"],
        )

    def get_path_constraint_infos(self) -> list[PathConstraintInfo]:
        infos = []
        for name, expression, bounds in self._path_constraints:
            size = _expression_size(expression)
            infos.append(
                PathConstraintInfo(
                    name=name,
                    size=size,
                    lower=np.full(size, bounds.lower_or_inf),
                    upper=np.full(size, bounds.upper_or_inf),
                    function=build_function(
                        name,
                        self._point_inputs(),
                        [stack_expressions([expression])],
                        POINT_INPUT_NAMES,
                        ["value"],
                    ),
                )
            )
        return infos

    def get_endpoint_constraint_infos(self) -> list[EndpointConstraintInfo]:
        infos = []
        for name, expression, bounds, integrand in self._endpoint_constraints:
            expr = ca.MX(_extract_casadi_symbol(expression))
            if integrand is None and ca.depends_on(expr, self._integral):
                raise ConfigurationError(
                    f"Endpoint constraint '{name}' uses the integral but has no integrand"
                )
            size = _expression_size(expr)
            infos.append(
                EndpointConstraintInfo(
                    name=name,
                    num_outputs=size,
                    lower=np.full(size, bounds.lower_or_inf),
                    upper=np.full(size, bounds.upper_or_inf),
                    endpoint_function=build_function(
                        name, self._endpoint_inputs(), [expr], ENDPOINT_INPUT_NAMES, ["value"]
                    ),
                    integrand_function=self._integrand_function(name, integrand),
                )
            )
        return infos

    def get_cost_infos(self) -> list[CostInfo]:
        infos = []
        for name, expression, integrand in self._costs:
            expr = ca.MX(0.0) if expression is None else ca.MX(_extract_casadi_symbol(expression))
            if integrand is not None:
                expr = expr + self._integral
            infos.append(
                CostInfo(
                    name=name,
                    endpoint_function=build_function(
                        f"{name}_cost", self._endpoint_inputs(), [expr], ENDPOINT_INPUT_NAMES, ["value"]
                    ),
                    integrand_function=self._integrand_function(name, integrand),
                )
            )
        return infos
