# dircol/transcription/schemes/hermite_simpson.py
import casadi as ca
import numpy as np

from ...dc_types import FloatArray, Var
from ..core_transcription import Transcription
from ..mesh_transcription import GridLayout, build_grid


class HermiteSimpsonTranscription(Transcription):
    """
    Separated Hermite-Simpson scheme with one midpoint per mesh interval.

    Per interval k with midpoint m the defects are

        Simpson:   x[k+1] - x[k] - h/6 (f[k] + 4 f[m] + f[k+1])
        Hermite:   x[m] - (x[k] + x[k+1]) / 2 - h/8 (f[k] - f[k+1])
    """

    scheme_name = "hermite-simpson"
    _interpolates_controls = True

    def create_grid(self, mesh: FloatArray) -> GridLayout:
        return build_grid(mesh, [0.5])

    def create_quadrature_coefficients(self) -> FloatArray:
        coefficients = np.zeros(self.num_grid_points, dtype=np.float64)
        mesh_grid = self.grid.mesh_grid_indices
        for imesh in range(self.num_mesh_intervals):
            duration = self.mesh[imesh + 1] - self.mesh[imesh]
            coefficients[mesh_grid[imesh]] += duration / 6.0
            coefficients[mesh_grid[imesh] + 1] += 4.0 * duration / 6.0
            coefficients[mesh_grid[imesh + 1]] += duration / 6.0
        return coefficients

    @property
    def num_state_defect_rows(self) -> int:
        return 2 * self.problem.num_states

    def calc_defects(self, variables: dict[Var, ca.MX], state_derivatives: ca.MX) -> ca.MX:
        if self.problem.num_states == 0:
            return ca.MX(0, self.num_mesh_intervals)

        states = variables[Var.STATES]
        durations = self.interval_durations(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        mesh_columns = self.grid.mesh_point_columns

        defects = []
        for imesh, (start, mid) in enumerate(self.grid.interval_point_columns):
            end = int(mesh_columns[imesh + 1])
            h = durations[imesh]
            x_start, x_mid, x_end = states[:, start], states[:, mid], states[:, end]
            f_start = state_derivatives[:, start]
            f_mid = state_derivatives[:, mid]
            f_end = state_derivatives[:, end]

            simpson = x_end - x_start - h / 6.0 * (f_start + 4.0 * f_mid + f_end)
            hermite = x_mid - 0.5 * (x_start + x_end) - h / 8.0 * (f_start - f_end)
            defects.append(ca.vertcat(simpson, hermite))
        return ca.horzcat(*defects)
