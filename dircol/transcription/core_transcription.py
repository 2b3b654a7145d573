# dircol/transcription/core_transcription.py
"""
Base class shared by every collocation scheme.

A Transcription turns one Problem into an NLP for CasADi `nlpsol`:

    construction -> transcribe() -> solve() -> Solution

Construction lays out the grid, the decision variables and the constraint
blocks; transcribe() builds every symbolic expression exactly once; solve()
calls the NLP solver and expands its output back into unscaled variables.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import casadi as ca
import numpy as np

from ..dc_types import (
    FloatArray,
    IntArray,
    Iterate,
    ProblemProtocol,
    Solution,
    SolverProtocol,
    Var,
    VariableInfo,
)
from ..exceptions import ConfigurationError, DataIntegrityError, SolutionExtractionError
from ..input_validation import validate_array_numerical_integrity, validate_array_shape
from ..utils.constants import DEFAULT_RANDOM_SEED, ZERO_TOLERANCE
from .constraints_transcription import expand_constraints, flatten_constraints
from .initial_guess_transcription import guess_from_bounds, random_within_bounds
from .integrals_transcription import evaluate_integral, restrict_quadrature_to_points
from .mesh_transcription import GridLayout, build_mesh
from .types_transcription import ConstraintLayout, Constraints
from .variables_transcription import VariableLayout, VariableOrder


logger = logging.getLogger(__name__)

_ALL = slice(None)


class Transcription(ABC):
    """
    Direct-collocation transcription of a single-phase optimal control problem.

    Subclasses supply the grid, quadrature, defects and the canonical
    variable order of one scheme.
    """

    scheme_name: ClassVar[str] = ""
    _interpolates_controls: ClassVar[bool] = False
    _supports_constraint_derivatives: ClassVar[bool] = True

    def __init__(self, solver: SolverProtocol, problem: ProblemProtocol) -> None:
        self.solver = solver
        self.problem = problem
        self._validate_configuration()

        self.mesh = build_mesh(solver.mesh)
        self.grid = self.create_grid(self.mesh)
        self.mesh_indices = self._validated_mesh_indices(self.create_mesh_indices())
        self.control_indices = self._validated_indicator(
            self.create_control_indices(), "control indices"
        )
        self.quadrature_coefficients = self._validated_quadrature(
            self.create_quadrature_coefficients()
        )
        self.point_quadrature_coefficients = restrict_quadrature_to_points(
            self.quadrature_coefficients, self.grid
        )
        self.interpolated_control_columns = self._find_interpolated_control_columns()

        self.variables = VariableLayout(solver.scale_variables_using_bounds)
        self.create_variables_and_set_bounds()
        self.variables.set_variable_order(self.get_variable_order())
        self.constraint_layout = self._create_constraint_layout()

        self._nlp: dict[str, ca.MX] | None = None
        self._lbg: FloatArray | None = None
        self._ubg: FloatArray | None = None
        self._cost_names: list[str] = []
        self._functions: dict[str, ca.Function] = {}

        logger.debug(
            "Created %s transcription: mesh_points=%d, grid_points=%d, variables=%d, constraints=%d",
            self.scheme_name,
            self.num_mesh_points,
            self.num_grid_points,
            self.variables.num_variables,
            self.constraint_layout.num_constraints,
        )

    # ------------------------------------------------------------------
    # sizes
    # ------------------------------------------------------------------

    @property
    def num_mesh_points(self) -> int:
        return self.grid.num_mesh_points

    @property
    def num_mesh_intervals(self) -> int:
        return self.grid.num_mesh_intervals

    @property
    def num_grid_points(self) -> int:
        return self.grid.num_grid_points

    @property
    def num_points(self) -> int:
        return self.grid.num_points

    @property
    def is_transcribed(self) -> bool:
        return self._nlp is not None

    # ------------------------------------------------------------------
    # scheme interface
    # ------------------------------------------------------------------

    @abstractmethod
    def create_grid(self, mesh: FloatArray) -> GridLayout:
        """Insert the scheme's points into every mesh interval."""

    @abstractmethod
    def create_quadrature_coefficients(self) -> FloatArray:
        """Length-N weights for a unit-duration integral; they sum to one."""

    @property
    @abstractmethod
    def num_state_defect_rows(self) -> int:
        """Rows of the scheme's state defects per mesh interval."""

    @abstractmethod
    def calc_defects(self, variables: dict[Var, ca.MX], state_derivatives: ca.MX) -> ca.MX:
        """State defects, one column per mesh interval."""

    def create_mesh_indices(self) -> FloatArray:
        indices = np.zeros(self.num_grid_points, dtype=np.float64)
        indices[self.grid.mesh_grid_indices] = 1.0
        return indices

    def create_control_indices(self) -> FloatArray:
        """Every grid point except the first."""
        indices = np.ones(self.num_grid_points, dtype=np.float64)
        indices[0] = 0.0
        return indices

    def calc_interpolating_controls(self, controls: ca.MX) -> ca.MX:
        """
        Residuals tying each interpolated control point to the straight line
        between the controls at the surrounding mesh points.
        """
        num_columns = sum(len(columns) for columns in self.interpolated_control_columns)
        if num_columns == 0:
            return ca.MX(self.problem.num_controls, 0)
        if not self._interpolates_controls:
            raise ConfigurationError(
                f"The {self.scheme_name} scheme cannot interpolate controls",
                "Control interpolation",
            )
        if self.problem.num_controls == 0:
            return ca.MX(0, num_columns)

        mesh_columns = self.grid.mesh_point_columns
        residuals = []
        for imesh, columns in enumerate(self.interpolated_control_columns):
            control_start = controls[:, int(mesh_columns[imesh])]
            control_end = controls[:, int(mesh_columns[imesh + 1])]
            for column in columns:
                tau = self.grid.interval_fraction(int(self.grid.point_grid_indices[column]))
                interpolated = (1.0 - tau) * control_start + tau * control_end
                residuals.append(controls[:, column] - interpolated)
        return ca.horzcat(*residuals)

    def get_variable_order(self) -> VariableOrder:
        """
        Per interval: the start state, the time and parameter columns, the
        remaining interval states, then controls, multipliers, derivatives
        and the interval's slacks. The final point closes the order.
        """
        order: VariableOrder = []
        for imesh, columns in enumerate(self.grid.interval_point_columns):
            order.append((Var.STATES, columns[0]))
            order += [(Var.INITIAL_TIME, imesh), (Var.FINAL_TIME, imesh), (Var.PARAMETERS, imesh)]
            order += [(Var.STATES, column) for column in columns[1:]]
            for var in (Var.CONTROLS, Var.MULTIPLIERS, Var.DERIVATIVES):
                order += [(var, column) for column in columns]
            order.append((Var.SLACKS, imesh))

        last_point = self.num_points - 1
        last_mesh = self.num_mesh_points - 1
        order += [
            (Var.STATES, last_point),
            (Var.INITIAL_TIME, last_mesh),
            (Var.FINAL_TIME, last_mesh),
            (Var.PARAMETERS, last_mesh),
            (Var.CONTROLS, last_point),
            (Var.MULTIPLIERS, last_point),
            (Var.DERIVATIVES, last_point),
        ]
        return order

    def _scheme_variable_rows(self) -> dict[Var, int]:
        return {}

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    def _validate_configuration(self) -> None:
        problem = self.problem
        if problem.enforce_constraint_derivatives and not self._supports_constraint_derivatives:
            raise ConfigurationError(
                f"The {self.scheme_name} scheme does not support enforcing constraint derivatives",
                "Transcription setup",
            )
        if problem.num_slacks > 0:
            if not problem.enforce_constraint_derivatives:
                raise ConfigurationError(
                    "Slack variables require enforce_constraint_derivatives", "Transcription setup"
                )
            if problem.get_velocity_correction_function() is None:
                raise ConfigurationError(
                    "Slack variables require a velocity correction", "Transcription setup"
                )
        if (
            problem.num_kinematic_constraint_equations > 0
            and problem.get_kinematic_constraint_function() is None
        ):
            raise ConfigurationError(
                "Kinematic constraint equations declared without a function",
                "Transcription setup",
            )

    def _validated_indicator(self, indices: FloatArray, name: str) -> FloatArray:
        indices = np.asarray(indices, dtype=np.float64).reshape(-1)
        if indices.size != self.num_grid_points:
            raise DataIntegrityError(
                f"{name} has {indices.size} columns, expected {self.num_grid_points}",
                f"{self.scheme_name} scheme",
            )
        if np.any((indices != 0.0) & (indices != 1.0)):
            raise DataIntegrityError(f"{name} must contain only 0 and 1", f"{self.scheme_name} scheme")
        return indices

    def _validated_mesh_indices(self, indices: FloatArray) -> FloatArray:
        indices = self._validated_indicator(indices, "mesh indices")
        if int(round(indices.sum())) != self.num_mesh_points:
            raise DataIntegrityError(
                f"mesh indices sum to {indices.sum()}, expected {self.num_mesh_points}",
                f"{self.scheme_name} scheme",
            )
        return indices

    def _validated_quadrature(self, coefficients: FloatArray) -> FloatArray:
        coefficients = np.asarray(coefficients, dtype=np.float64).reshape(-1)
        if coefficients.size != self.num_grid_points:
            raise DataIntegrityError(
                f"quadrature coefficients have {coefficients.size} columns, "
                f"expected {self.num_grid_points}",
                f"{self.scheme_name} scheme",
            )
        validate_array_numerical_integrity(coefficients, "quadrature coefficients", "transcription")
        if abs(coefficients.sum() - 1.0) > 1e3 * ZERO_TOLERANCE * self.num_grid_points:
            raise DataIntegrityError(
                f"quadrature coefficients sum to {coefficients.sum()}, expected 1",
                f"{self.scheme_name} scheme",
            )
        return coefficients

    def _find_interpolated_control_columns(self) -> tuple[tuple[int, ...], ...]:
        """Point columns, per interval, whose controls are interpolated."""
        if not self.solver.interpolate_control_midpoints:
            return tuple(() for _ in range(self.num_mesh_intervals))

        interpolated = (self.control_indices == 1.0) & (self.mesh_indices == 0.0)
        point_grid_indices = self.grid.point_grid_indices
        per_interval = tuple(
            tuple(
                column
                for column in columns
                if interpolated[point_grid_indices[column]]
            )
            for columns in self.grid.interval_point_columns
        )
        if any(per_interval) and not self._interpolates_controls:
            raise ConfigurationError(
                f"The {self.scheme_name} scheme has interpolated control points but no "
                "interpolation constraints",
                "Control interpolation",
            )
        return per_interval

    def _set_info_bounds(self, var: Var, infos: list[VariableInfo]) -> None:
        num_rows, num_columns = self.variables.shape(var)
        if len(infos) != num_rows:
            raise DataIntegrityError(
                f"'{var.value}' has {num_rows} rows but {len(infos)} descriptions",
                "Variable bounds",
            )
        for irow, info in enumerate(infos):
            self.variables.set_variable_bounds(var, irow, _ALL, info.bounds)
            self.variables.set_variable_scaling(var, irow, info.bounds)
            if num_columns == 0:
                continue
            # endpoint bounds tighten the row bounds at the first and last column
            for column, endpoint_bounds, side in (
                (0, info.initial_bounds, "initial"),
                (num_columns - 1, info.final_bounds, "final"),
            ):
                if not endpoint_bounds.is_set():
                    continue
                try:
                    column_bounds = info.bounds.intersection(endpoint_bounds)
                except ValueError as e:
                    raise ConfigurationError(
                        f"{side} bounds of '{info.name}' lie outside its bounds: {e}",
                        "Variable bounds",
                    ) from e
                self.variables.set_variable_bounds(var, irow, column, column_bounds)

    def create_variables_and_set_bounds(self) -> None:
        problem = self.problem
        rows = {
            Var.INITIAL_TIME: 1,
            Var.FINAL_TIME: 1,
            Var.PARAMETERS: problem.num_parameters,
            Var.STATES: problem.num_states,
            Var.CONTROLS: problem.num_controls,
            Var.MULTIPLIERS: problem.num_multipliers,
            Var.DERIVATIVES: problem.num_derivatives,
            Var.SLACKS: problem.num_slacks,
        }
        rows.update(self._scheme_variable_rows())
        self.variables.allocate(self.grid, rows)

        for var, bounds in (
            (Var.INITIAL_TIME, problem.time_initial_bounds),
            (Var.FINAL_TIME, problem.time_final_bounds),
        ):
            self.variables.set_variable_bounds(var, _ALL, _ALL, bounds)
            self.variables.set_variable_scaling(var, _ALL, bounds)

        self._set_info_bounds(Var.PARAMETERS, problem.parameter_infos)
        self._set_info_bounds(Var.STATES, problem.state_infos)
        self._set_info_bounds(Var.CONTROLS, problem.control_infos)
        self._set_info_bounds(Var.MULTIPLIERS, problem.multiplier_infos)
        self._set_info_bounds(Var.DERIVATIVES, problem.derivative_infos)
        self._set_info_bounds(Var.SLACKS, problem.slack_infos)

        if self.variables.has(Var.PROJECTION_STATES):
            for irow, info in enumerate(problem.state_infos):
                self.variables.set_variable_bounds(Var.PROJECTION_STATES, irow, _ALL, info.bounds)
                self.variables.set_variable_scaling(Var.PROJECTION_STATES, irow, info.bounds)

    def _create_constraint_layout(self) -> ConstraintLayout:
        interp_columns: list[tuple[int, ...]] = []
        offset = 0
        for columns in self.interpolated_control_columns:
            interp_columns.append(tuple(range(offset, offset + len(columns))))
            offset += len(columns)

        problem = self.problem
        return ConstraintLayout(
            endpoint_sizes=tuple(info.num_outputs for info in problem.get_endpoint_constraint_infos()),
            num_defect_rows=2 + problem.num_parameters + self.num_state_defect_rows,
            num_multibody_residuals=problem.num_multibody_residuals,
            num_auxiliary_residuals=problem.num_auxiliary_residuals,
            num_kinematic=problem.num_kinematic_constraint_equations,
            path_sizes=tuple(info.size for info in problem.get_path_constraint_infos()),
            num_interp_control_rows=problem.num_controls,
            num_mesh_points=self.num_mesh_points,
            num_points=self.num_points,
            interval_point_columns=self.grid.interval_point_columns,
            interp_control_columns=tuple(interp_columns),
            enforce_path_constraint_midpoints=self.solver.enforce_path_constraint_midpoints,
        )

    # ------------------------------------------------------------------
    # time
    # ------------------------------------------------------------------

    def _grid_mesh_columns(self) -> IntArray:
        """Mesh column whose time variables place each grid point."""
        owners = (
            np.searchsorted(
                self.grid.mesh_grid_indices, np.arange(self.num_grid_points), side="right"
            )
            - 1
        )
        owners = np.minimum(owners, self.num_mesh_intervals - 1)
        owners[-1] = self.num_mesh_points - 1
        return owners.astype(np.int64)

    def create_times(self, initial_time: Any, final_time: Any) -> Any:
        """Absolute time of every grid point (1 x N) from the 1 x M time variables."""
        owners = self._grid_mesh_columns()
        fractions = self.grid.grid.reshape(1, -1)
        if isinstance(initial_time, ca.MX):
            start = initial_time[:, owners.tolist()]
            end = final_time[:, owners.tolist()]
            return start + ca.DM(fractions) * (end - start)
        start = np.asarray(initial_time, dtype=np.float64)[:, owners]
        end = np.asarray(final_time, dtype=np.float64)[:, owners]
        return start + fractions * (end - start)

    def interval_durations(self, initial_time: ca.MX, final_time: ca.MX) -> list[ca.MX]:
        """Absolute duration h_k of every mesh interval."""
        return [
            (final_time[:, imesh] - initial_time[:, imesh]) * (self.mesh[imesh + 1] - self.mesh[imesh])
            for imesh in range(self.num_mesh_intervals)
        ]

    # ------------------------------------------------------------------
    # symbolic construction
    # ------------------------------------------------------------------

    def _point_arguments(
        self, variables: dict[Var, ca.MX], point_times: ca.MX, columns: list[int] | None = None
    ) -> list[ca.MX]:
        """Inputs (t, x, u, multipliers, derivatives, p) at the given point columns."""
        if columns is None:
            columns = list(range(self.num_points))
        mesh_columns = self.grid.point_mesh_index[columns].tolist()
        return [
            point_times[:, columns],
            variables[Var.STATES][:, columns],
            variables[Var.CONTROLS][:, columns],
            variables[Var.MULTIPLIERS][:, columns],
            variables[Var.DERIVATIVES][:, columns],
            variables[Var.PARAMETERS][:, mesh_columns],
        ]

    def _add_velocity_correction(
        self, state_derivatives: ca.MX, variables: dict[Var, ca.MX], point_times: ca.MX
    ) -> ca.MX:
        correction = self.problem.get_velocity_correction_function()
        if (
            correction is None
            or not self.problem.enforce_constraint_derivatives
            or self.problem.num_slacks == 0
        ):
            return state_derivatives

        states = variables[Var.STATES]
        slacks = variables[Var.SLACKS]
        parameters = variables[Var.PARAMETERS]
        columns = [state_derivatives[:, column] for column in range(self.num_points)]
        for imesh, interval_columns in enumerate(self.grid.interval_point_columns):
            for column in interval_columns[1:]:
                columns[column] = columns[column] + correction.call(
                    [
                        point_times[:, column],
                        states[:, column],
                        slacks[:, imesh],
                        parameters[:, imesh],
                    ]
                )[0]
        return ca.horzcat(*columns)

    def _create_defects(self, variables: dict[Var, ca.MX], state_derivatives: ca.MX) -> ca.MX:
        initial_time = variables[Var.INITIAL_TIME]
        final_time = variables[Var.FINAL_TIME]
        parameters = variables[Var.PARAMETERS]

        state_defects = self.calc_defects(variables, state_derivatives)
        validate_array_shape(
            state_defects,
            (self.num_state_defect_rows, self.num_mesh_intervals),
            "state defects",
            f"{self.scheme_name} scheme",
        )

        blocks = [
            initial_time[:, 1:] - initial_time[:, :-1],
            final_time[:, 1:] - final_time[:, :-1],
        ]
        if self.problem.num_parameters > 0:
            blocks.append(parameters[:, 1:] - parameters[:, :-1])
        if self.num_state_defect_rows > 0:
            blocks.append(state_defects)
        return ca.vertcat(*blocks)

    def _evaluate_at_points(
        self,
        function: ca.Function | None,
        num_outputs: int,
        variables: dict[Var, ca.MX],
        point_times: ca.MX,
        columns: list[int],
    ) -> ca.MX:
        if function is None or num_outputs == 0:
            return ca.MX(num_outputs, len(columns))
        arguments = self._point_arguments(variables, point_times, columns)
        return function.map(len(columns)).call(arguments)[0]

    def _endpoint_arguments(self, variables: dict[Var, ca.MX]) -> list[ca.MX]:
        last_point = self.num_points - 1
        return [
            variables[Var.INITIAL_TIME][:, 0],
            variables[Var.STATES][:, 0],
            variables[Var.CONTROLS][:, 0],
            variables[Var.FINAL_TIME][:, self.num_mesh_points - 1],
            variables[Var.STATES][:, last_point],
            variables[Var.CONTROLS][:, last_point],
            variables[Var.PARAMETERS][:, 0],
        ]

    def _duration(self, variables: dict[Var, ca.MX]) -> ca.MX:
        return (
            variables[Var.FINAL_TIME][:, self.num_mesh_points - 1]
            - variables[Var.INITIAL_TIME][:, 0]
        )

    def _create_constraint_bounds(self) -> tuple[Constraints, Constraints]:
        layout = self.constraint_layout
        bounds = []
        for side in ("lower", "upper"):
            bounds.append(
                Constraints(
                    endpoint=[
                        getattr(info, side).reshape(-1, 1)
                        for info in self.problem.get_endpoint_constraint_infos()
                    ],
                    defects=np.zeros(layout.defects_shape),
                    multibody_residuals=np.zeros(layout.multibody_shape),
                    auxiliary_residuals=np.zeros(layout.auxiliary_shape),
                    kinematic=np.zeros(layout.kinematic_shape),
                    path=[
                        np.tile(getattr(info, side).reshape(-1, 1), (1, layout.num_path_columns))
                        for info in self.problem.get_path_constraint_infos()
                    ],
                    interp_controls=np.zeros(layout.interp_controls_shape),
                )
            )
        return bounds[0], bounds[1]

    def transcribe(self) -> None:
        """
        Build the symbolic NLP.

        Raises:
            DataIntegrityError: If called more than once, or if any block of
                the NLP disagrees with the precomputed layout.
        """
        if self._nlp is not None:
            raise DataIntegrityError(
                "transcribe() may only be called once per transcription", "Transcription state"
            )

        logger.info(
            "Transcribing with %s scheme: %d mesh intervals, %d grid points",
            self.scheme_name,
            self.num_mesh_intervals,
            self.num_grid_points,
        )

        variables = self.variables.unscaled_symbols()
        times = self.create_times(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        point_times = times[:, self.grid.point_grid_indices.tolist()]
        point_arguments = self._point_arguments(variables, point_times)

        dynamics = self.problem.get_dynamics_function().map(self.num_points)
        state_derivatives, multibody, auxiliary = dynamics.call(point_arguments)
        state_derivatives = self._add_velocity_correction(state_derivatives, variables, point_times)

        endpoint_arguments = self._endpoint_arguments(variables)
        duration = self._duration(variables)

        def integral_of(integrand: ca.Function | None) -> ca.MX:
            return evaluate_integral(
                integrand, point_arguments, self.point_quadrature_coefficients, duration
            )

        mesh_columns = self.grid.mesh_point_columns.tolist()
        path_columns = (
            list(range(self.num_points))
            if self.solver.enforce_path_constraint_midpoints
            else mesh_columns
        )

        constraints = Constraints(
            endpoint=[
                info.endpoint_function.call(
                    [*endpoint_arguments, integral_of(info.integrand_function)]
                )[0]
                for info in self.problem.get_endpoint_constraint_infos()
            ],
            defects=self._create_defects(variables, state_derivatives),
            multibody_residuals=multibody,
            auxiliary_residuals=auxiliary,
            kinematic=self._evaluate_at_points(
                self.problem.get_kinematic_constraint_function(),
                self.problem.num_kinematic_constraint_equations,
                variables,
                point_times,
                mesh_columns,
            ),
            path=[
                self._evaluate_at_points(
                    info.function, info.size, variables, point_times, path_columns
                )
                for info in self.problem.get_path_constraint_infos()
            ],
            interp_controls=self.calc_interpolating_controls(variables[Var.CONTROLS]),
        )

        g = flatten_constraints(constraints, self.constraint_layout)
        lower, upper = self._create_constraint_bounds()
        self._lbg = flatten_constraints(lower, self.constraint_layout)
        self._ubg = flatten_constraints(upper, self.constraint_layout)

        cost_terms = []
        self._cost_names = []
        for info in self.problem.get_cost_infos():
            term = info.endpoint_function.call(
                [*endpoint_arguments, integral_of(info.integrand_function)]
            )[0]
            cost_terms.append(term)
            self._cost_names.append(info.name)
        objective = ca.sum1(ca.vertcat(*cost_terms)) if cost_terms else ca.MX(1, 1)

        x = self.variables.flatten_symbols()
        self._nlp = {"x": x, "f": objective, "g": g}
        self._functions = {
            "objective": ca.Function("objective", [x], [objective]),
            "constraints": ca.Function("constraints", [x], [g]),
            "times": ca.Function("times", [x], [times]),
            "cost_terms": ca.Function(
                "cost_terms", [x], [ca.vertcat(*cost_terms) if cost_terms else ca.MX(0, 1)]
            ),
        }

        logger.debug(
            "Transcribed NLP: %d variables, %d constraints, %d cost terms",
            x.shape[0],
            g.shape[0],
            len(cost_terms),
        )

    def _ensure_transcribed(self) -> None:
        if self._nlp is None:
            self.transcribe()

    # ------------------------------------------------------------------
    # iterates
    # ------------------------------------------------------------------

    def create_initial_guess_from_bounds(self) -> Iterate:
        """Midpoint of finite bounds, the finite side if half-bounded, else zero."""
        variables = {
            var: guess_from_bounds(self.variables.lower[var], self.variables.upper[var])
            for var in self.variables.categories
        }
        times = self.create_times(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        return Iterate(variables=variables, times=times.reshape(-1))

    def create_random_iterate_within_bounds(
        self, rng: np.random.Generator | int | None = None
    ) -> Iterate:
        generator = np.random.default_rng(DEFAULT_RANDOM_SEED if rng is None else rng)
        variables = {
            var: random_within_bounds(
                self.variables.lower[var], self.variables.upper[var], generator
            )
            for var in self.variables.categories
        }
        times = self.create_times(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        return Iterate(variables=variables, times=times.reshape(-1))

    def _flatten_iterate(self, iterate: Iterate) -> FloatArray:
        """Scaled decision vector of an iterate; missing categories come from the bounds."""
        values = self.create_initial_guess_from_bounds().variables
        for var, value in iterate.variables.items():
            if not self.variables.has(var):
                raise ConfigurationError(
                    f"Guess provides '{var.value}', which this transcription does not use"
                )
            matrix = np.asarray(value, dtype=np.float64)
            if matrix.ndim == 1 and self.variables.shape(var)[0] == 1:
                matrix = matrix.reshape(1, -1)
            try:
                validate_array_shape(matrix, self.variables.shape(var), var.value, "initial guess")
            except DataIntegrityError as e:
                raise ConfigurationError(e.message, "Initial guess") from e
            values[var] = matrix
        return self.variables.flatten_variables(self.variables.scale_variables(values))

    def evaluate_constraints(self, iterate: Iterate) -> Constraints:
        """Numeric constraint blocks at an iterate."""
        self._ensure_transcribed()
        flat = self._functions["constraints"](self._flatten_iterate(iterate)).full()
        return expand_constraints(np.asarray(flat).reshape(-1), self.constraint_layout)

    def evaluate_objective(self, iterate: Iterate) -> float:
        self._ensure_transcribed()
        return float(self._functions["objective"](self._flatten_iterate(iterate)))

    def _objective_breakdown(self, x: FloatArray) -> list[tuple[str, float]]:
        values = self._functions["cost_terms"](x).full().reshape(-1)
        return [(name, float(value)) for name, value in zip(self._cost_names, values, strict=True)]

    # ------------------------------------------------------------------
    # solve
    # ------------------------------------------------------------------

    def solve(self, guess: Iterate | None = None) -> Solution:
        """
        Solve the NLP, transcribing first if needed.

        A solver that raises while iterating yields an unsuccessful Solution;
        errors while building the NLP propagate.
        """
        self._ensure_transcribed()
        assert self._nlp is not None

        x0 = self._flatten_iterate(guess if guess is not None else Iterate())
        lbx = self.variables.flatten_variables(self.variables.scaled_lower_bounds())
        ubx = self.variables.flatten_variables(self.variables.scaled_upper_bounds())

        try:
            nlp_solver = ca.nlpsol(
                "dircol_nlp", self.solver.optim_solver, self._nlp, dict(self.solver.solver_options)
            )
        except RuntimeError as e:
            raise ConfigurationError(
                f"Could not create NLP solver '{self.solver.optim_solver}': {e}", "NLP setup"
            ) from e

        logger.info(
            "Solving NLP with %s: %d variables, %d constraints",
            self.solver.optim_solver,
            self.variables.num_variables,
            self.constraint_layout.num_constraints,
        )

        try:
            result = nlp_solver(x0=x0, lbx=lbx, ubx=ubx, lbg=self._lbg, ubg=self._ubg)
        except RuntimeError as e:
            logger.warning("NLP solver raised an error: %s", e)
            return Solution(success=False, message=f"NLP solver error: {e}")

        solution = self._create_solution(result, nlp_solver.stats())
        if solution.success:
            logger.debug("NLP solved: objective=%.6e", solution.objective)
        else:
            logger.warning("NLP did not converge: %s", solution.message)
        return solution

    def _variable_names(self) -> dict[Var, list[str]]:
        problem = self.problem
        return {
            Var.STATES: [info.name for info in problem.state_infos],
            Var.CONTROLS: [info.name for info in problem.control_infos],
            Var.PARAMETERS: [info.name for info in problem.parameter_infos],
            Var.MULTIPLIERS: [info.name for info in problem.multiplier_infos],
            Var.DERIVATIVES: [info.name for info in problem.derivative_infos],
            Var.SLACKS: [info.name for info in problem.slack_infos],
        }

    def _create_solution(self, result: dict[str, ca.DM], stats: dict[str, Any]) -> Solution:
        try:
            x = np.asarray(result["x"].full(), dtype=np.float64).reshape(-1)
            g = np.asarray(result["g"].full(), dtype=np.float64).reshape(-1)
            objective = float(result["f"])
        except (KeyError, AttributeError, TypeError, ValueError) as e:
            raise SolutionExtractionError(
                f"Failed to read NLP solver output: {e}", "Solution extraction"
            ) from e

        if x.size != self.variables.num_variables:
            raise SolutionExtractionError(
                f"NLP solution has {x.size} variables, expected {self.variables.num_variables}",
                "Solution extraction",
            )

        variables = self.variables.unscale_variables(self.variables.expand_variables(x))
        times = self._functions["times"](x).full().reshape(-1)

        return Solution(
            variables=variables,
            times=times,
            point_times=times[self.grid.point_grid_indices],
            mesh_times=times[self.grid.mesh_grid_indices],
            variable_names=self._variable_names(),
            success=bool(stats.get("success", False)),
            message=str(stats.get("return_status", "unknown")),
            objective=objective,
            objective_breakdown=self._objective_breakdown(x),
            constraints=expand_constraints(g, self.constraint_layout),
            stats=stats,
            num_iterations=stats.get("iter_count"),
        )


