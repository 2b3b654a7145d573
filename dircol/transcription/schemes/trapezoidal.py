# dircol/transcription/schemes/trapezoidal.py
import casadi as ca
import numpy as np

from ...dc_types import FloatArray, Var
from ..core_transcription import Transcription
from ..mesh_transcription import GridLayout, build_grid


class TrapezoidalTranscription(Transcription):
    """
    Second-order two-point scheme: the grid is the mesh.

    Defect per interval k: x[k+1] - x[k] - h/2 (f[k] + f[k+1]).
    """

    scheme_name = "trapezoidal"
    _supports_constraint_derivatives = False

    def create_grid(self, mesh: FloatArray) -> GridLayout:
        return build_grid(mesh, [])

    def create_quadrature_coefficients(self) -> FloatArray:
        durations = np.diff(self.mesh)
        coefficients = np.zeros(self.num_grid_points, dtype=np.float64)
        coefficients[:-1] += 0.5 * durations
        coefficients[1:] += 0.5 * durations
        return coefficients

    @property
    def num_state_defect_rows(self) -> int:
        return self.problem.num_states

    def calc_defects(self, variables: dict[Var, ca.MX], state_derivatives: ca.MX) -> ca.MX:
        if self.problem.num_states == 0:
            return ca.MX(0, self.num_mesh_intervals)

        states = variables[Var.STATES]
        durations = self.interval_durations(variables[Var.INITIAL_TIME], variables[Var.FINAL_TIME])
        defects = [
            states[:, imesh + 1]
            - states[:, imesh]
            - 0.5 * durations[imesh] * (state_derivatives[:, imesh] + state_derivatives[:, imesh + 1])
            for imesh in range(self.num_mesh_intervals)
        ]
        return ca.horzcat(*defects)
