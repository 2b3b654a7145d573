# dircol/transcription/schemes/legendre_gauss_radau.py
import casadi as ca
import numpy as np

from ...collocation import compute_legendre_gauss_radau_basis
from ...dc_types import FloatArray, Var
from ..core_transcription import Transcription
from ..mesh_transcription import GridLayout, build_grid


class LegendreGaussRadauTranscription(Transcription):
    """
    Right-sided Legendre-Gauss-Radau collocation.

    Each interval holds its mesh point and `polynomial_degree` interior Radau
    points; the last Radau point is the next mesh point, which is therefore
    shared by neighbouring intervals and needs no separate continuity defect.
    """

    scheme_name = "legendre-gauss-radau"
    _interpolates_controls = True

    def __init__(self, solver, problem) -> None:
        self.basis = compute_legendre_gauss_radau_basis(solver.polynomial_degree)
        super().__init__(solver, problem)

    @property
    def degree(self) -> int:
        return len(self.basis.collocation_nodes) - 1

    def create_grid(self, mesh: FloatArray) -> GridLayout:
        return build_grid(mesh, self.basis.collocation_nodes[:-1])

    def create_quadrature_coefficients(self) -> FloatArray:
        coefficients = np.zeros(self.num_grid_points, dtype=np.float64)
        weights = self.basis.quadrature_weights
        mesh_grid = self.grid.mesh_grid_indices
        for imesh in range(self.num_mesh_intervals):
            duration = self.mesh[imesh + 1] - self.mesh[imesh]
            interior = mesh_grid[imesh] + 1 + np.arange(self.degree)
            coefficients[interior] += weights[:-1] * duration
            coefficients[mesh_grid[imesh + 1]] += weights[-1] * duration
        return coefficients

    @property
    def num_state_defect_rows(self) -> int:
        return self.problem.num_states * (self.degree + 1)

    def calc_defects(self, variables: dict[Var, ca.MX], state_derivatives: ca.MX) -> ca.MX:
        if self.problem.num_states == 0:
            return ca.MX(0, self.num_mesh_intervals)

        states = variables[Var.STATES]
        durations = self.interval_durations(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        differentiation_matrix = ca.DM(self.basis.differentiation_matrix)
        mesh_columns = self.grid.mesh_point_columns

        defects = []
        for imesh, columns in enumerate(self.grid.interval_point_columns):
            state_columns = [*columns, int(mesh_columns[imesh + 1])]
            residual = durations[imesh] * state_derivatives[:, state_columns[1:]] - ca.mtimes(
                states[:, state_columns], differentiation_matrix
            )
            defects.append(ca.vec(residual))
        return ca.horzcat(*defects)
