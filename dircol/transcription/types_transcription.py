# dircol/transcription/types_transcription.py
"""
Containers shared by the transcription modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Constraints:
    """
    Constraint blocks of one transcription.

    The same container holds symbolic residuals, lower bounds, upper bounds or
    expanded numeric values; each field is a matrix (CasADi or numpy) whose
    shape is fixed by the matching ConstraintLayout.
    """

    endpoint: list[Any] = field(default_factory=list)
    defects: Any = None
    multibody_residuals: Any = None
    auxiliary_residuals: Any = None
    kinematic: Any = None
    path: list[Any] = field(default_factory=list)
    interp_controls: Any = None


@dataclass(frozen=True)
class ConstraintLayout:
    """
    Shapes and per-interval column assignment of every constraint block.

    `interval_point_columns[k]` are the point columns whose residuals belong
    to mesh interval k; `interp_control_columns[k]` are the columns of the
    interpolated-control block belonging to interval k.
    """

    endpoint_sizes: tuple[int, ...]
    num_defect_rows: int
    num_multibody_residuals: int
    num_auxiliary_residuals: int
    num_kinematic: int
    path_sizes: tuple[int, ...]
    num_interp_control_rows: int
    num_mesh_points: int
    num_points: int
    interval_point_columns: tuple[tuple[int, ...], ...]
    interp_control_columns: tuple[tuple[int, ...], ...]
    enforce_path_constraint_midpoints: bool

    @property
    def num_mesh_intervals(self) -> int:
        return self.num_mesh_points - 1

    @property
    def num_path_columns(self) -> int:
        if self.enforce_path_constraint_midpoints:
            return self.num_points
        return self.num_mesh_points

    @property
    def num_interp_control_columns(self) -> int:
        return sum(len(columns) for columns in self.interp_control_columns)

    def endpoint_shape(self, index: int) -> tuple[int, int]:
        return (self.endpoint_sizes[index], 1)

    @property
    def defects_shape(self) -> tuple[int, int]:
        return (self.num_defect_rows, self.num_mesh_intervals)

    @property
    def multibody_shape(self) -> tuple[int, int]:
        return (self.num_multibody_residuals, self.num_points)

    @property
    def auxiliary_shape(self) -> tuple[int, int]:
        return (self.num_auxiliary_residuals, self.num_points)

    @property
    def kinematic_shape(self) -> tuple[int, int]:
        return (self.num_kinematic, self.num_mesh_points)

    def path_shape(self, index: int) -> tuple[int, int]:
        return (self.path_sizes[index], self.num_path_columns)

    @property
    def interp_controls_shape(self) -> tuple[int, int]:
        return (self.num_interp_control_rows, self.num_interp_control_columns)

    @property
    def num_constraints(self) -> int:
        """Length of the flattened constraint vector."""
        total = sum(self.endpoint_sizes)
        total += self.num_defect_rows * self.num_mesh_intervals
        total += (self.num_multibody_residuals + self.num_auxiliary_residuals) * self.num_points
        total += self.num_kinematic * self.num_mesh_points
        total += sum(self.path_sizes) * self.num_path_columns
        total += self.num_interp_control_rows * self.num_interp_control_columns
        return total
