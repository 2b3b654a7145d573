# dircol/transcription/schemes/legendre_gauss.py
import casadi as ca
import numpy as np

from ...collocation import compute_legendre_gauss_basis
from ...dc_types import FloatArray, Var
from ..core_transcription import Transcription
from ..mesh_transcription import GridLayout, build_grid
from ..variables_transcription import VariableOrder


class LegendreGaussTranscription(Transcription):
    """
    Legendre-Gauss collocation.

    No Gauss point coincides with a mesh point, so every interval ends in a
    grid point of its own. The state there is a projection state: it must
    equal the interval polynomial evaluated at tau = 1, and the next mesh
    state must equal it.
    """

    scheme_name = "legendre-gauss"
    _interpolates_controls = True

    def __init__(self, solver, problem) -> None:
        self.basis = compute_legendre_gauss_basis(solver.polynomial_degree)
        super().__init__(solver, problem)

    @property
    def degree(self) -> int:
        return len(self.basis.collocation_nodes)

    def create_grid(self, mesh: FloatArray) -> GridLayout:
        return build_grid(mesh, self.basis.collocation_nodes, detached_end_point=True)

    def create_quadrature_coefficients(self) -> FloatArray:
        coefficients = np.zeros(self.num_grid_points, dtype=np.float64)
        weights = self.basis.quadrature_weights
        mesh_grid = self.grid.mesh_grid_indices
        for imesh in range(self.num_mesh_intervals):
            duration = self.mesh[imesh + 1] - self.mesh[imesh]
            coefficients[mesh_grid[imesh] + 1 + np.arange(self.degree)] += weights * duration
        return coefficients

    def create_control_indices(self) -> FloatArray:
        """Only the Gauss points."""
        indices = np.zeros(self.num_grid_points, dtype=np.float64)
        mesh_grid = self.grid.mesh_grid_indices
        for imesh in range(self.num_mesh_intervals):
            indices[mesh_grid[imesh] + 1 + np.arange(self.degree)] = 1.0
        return indices

    def _scheme_variable_rows(self) -> dict[Var, int]:
        return {Var.PROJECTION_STATES: self.problem.num_states}

    @property
    def num_state_defect_rows(self) -> int:
        return self.problem.num_states * (self.degree + 2)

    def calc_defects(self, variables: dict[Var, ca.MX], state_derivatives: ca.MX) -> ca.MX:
        if self.problem.num_states == 0:
            return ca.MX(0, self.num_mesh_intervals)

        states = variables[Var.STATES]
        projection_states = variables[Var.PROJECTION_STATES]
        durations = self.interval_durations(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        differentiation_matrix = ca.DM(self.basis.differentiation_matrix)
        interpolation = ca.DM(self.basis.interpolation_coefficients.reshape(-1, 1))
        mesh_columns = self.grid.mesh_point_columns

        defects = []
        for imesh, columns in enumerate(self.grid.interval_point_columns):
            interval_states = states[:, list(columns)]
            collocation = durations[imesh] * state_derivatives[:, list(columns[1:])] - ca.mtimes(
                interval_states, differentiation_matrix
            )
            projection = projection_states[:, imesh]
            end_state = projection - ca.mtimes(interval_states, interpolation)
            continuity = states[:, int(mesh_columns[imesh + 1])] - projection
            defects.append(ca.vertcat(ca.vec(collocation), end_state, continuity))
        return ca.horzcat(*defects)

    def get_variable_order(self) -> VariableOrder:
        """
        Per interval: time and parameter columns, the previous interval's
        projection state and slacks, then the interval's states, controls,
        multipliers and derivatives.
        """
        order: VariableOrder = []
        for imesh, columns in enumerate(self.grid.interval_point_columns):
            order += [(Var.INITIAL_TIME, imesh), (Var.FINAL_TIME, imesh), (Var.PARAMETERS, imesh)]
            if imesh > 0:
                order += [(Var.PROJECTION_STATES, imesh - 1), (Var.SLACKS, imesh - 1)]
            for var in (Var.STATES, Var.CONTROLS, Var.MULTIPLIERS, Var.DERIVATIVES):
                order += [(var, column) for column in columns]

        last_point = self.num_points - 1
        last_mesh = self.num_mesh_points - 1
        order += [
            (Var.INITIAL_TIME, last_mesh),
            (Var.FINAL_TIME, last_mesh),
            (Var.PARAMETERS, last_mesh),
            (Var.PROJECTION_STATES, last_mesh - 1),
            (Var.SLACKS, last_mesh - 1),
            (Var.STATES, last_point),
            (Var.CONTROLS, last_point),
            (Var.MULTIPLIERS, last_point),
            (Var.DERIVATIVES, last_point),
        ]
        return order
