# dircol/transcription/mesh_transcription.py
"""
Mesh and grid construction for the collocation schemes.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..exceptions import ConfigurationError, DataIntegrityError
from ..input_validation import validate_mesh_fractions
from ..dc_types import FloatArray, IntArray, NumericArrayLike


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridLayout:
    """
    Discretization grid of one transcription.

    `point_grid_indices` lists the grid indices that carry per-point decision
    variables (states, controls, multipliers, derivatives). Grid indices that
    are not listed exist only as evaluation times.
    """

    mesh: FloatArray
    grid: FloatArray
    mesh_grid_indices: IntArray
    point_grid_indices: IntArray
    grid_to_point: IntArray
    interval_point_columns: tuple[tuple[int, ...], ...]

    @property
    def num_mesh_points(self) -> int:
        return len(self.mesh)

    @property
    def num_mesh_intervals(self) -> int:
        return len(self.mesh) - 1

    @property
    def num_grid_points(self) -> int:
        return len(self.grid)

    @property
    def num_points(self) -> int:
        return len(self.point_grid_indices)

    @property
    def mesh_point_columns(self) -> IntArray:
        """Point columns of the mesh points."""
        return self.grid_to_point[self.mesh_grid_indices]

    @property
    def point_mesh_index(self) -> IntArray:
        """Mesh interval owning each point column; the last point maps to the last mesh point."""
        owners = np.empty(self.num_points, dtype=np.int64)
        for imesh, columns in enumerate(self.interval_point_columns):
            owners[list(columns)] = imesh
        owners[self.num_points - 1] = self.num_mesh_intervals
        return owners

    def interval_fraction(self, grid_index: int) -> float:
        """Position of a grid point within its mesh interval, in [0, 1]."""
        imesh = int(np.searchsorted(self.mesh_grid_indices, grid_index, side="right") - 1)
        imesh = min(imesh, self.num_mesh_intervals - 1)
        start = self.mesh[imesh]
        return float((self.grid[grid_index] - start) / (self.mesh[imesh + 1] - start))


def build_mesh(mesh: NumericArrayLike | int) -> FloatArray:
    """Validate mesh fractions; an integer requests that many uniform intervals."""
    if isinstance(mesh, int | np.integer) and not isinstance(mesh, bool):
        if mesh < 1:
            raise ConfigurationError(f"Number of mesh intervals must be >= 1, got {mesh}")
        return np.linspace(0.0, 1.0, int(mesh) + 1)
    return validate_mesh_fractions(mesh)


def build_grid(
    mesh: FloatArray,
    interior_fractions: Sequence[float],
    detached_end_point: bool = False,
) -> GridLayout:
    """
    Insert scheme-specific points into every mesh interval.

    Args:
        mesh: Validated mesh fractions.
        interior_fractions: Positions in (0, 1) of the points inserted strictly
            inside each interval, in increasing order.
        detached_end_point: Append one more point per interval at the interval
            end that is distinct from the next mesh point and carries no
            per-point variables.

    Returns:
        GridLayout with all index bookkeeping precomputed.
    """
    fractions = np.asarray(interior_fractions, dtype=np.float64)
    if np.any(fractions <= 0.0) or np.any(fractions >= 1.0):
        raise DataIntegrityError(
            "Interior grid fractions must lie strictly inside (0, 1)",
            "Scheme grid definition error",
        )

    num_intervals = len(mesh) - 1
    grid_values: list[float] = []
    mesh_grid_indices: list[int] = []
    point_grid_indices: list[int] = []
    interval_point_columns: list[tuple[int, ...]] = []

    for imesh in range(num_intervals):
        start = mesh[imesh]
        duration = mesh[imesh + 1] - start

        mesh_grid_indices.append(len(grid_values))
        columns = [len(point_grid_indices)]
        point_grid_indices.append(len(grid_values))
        grid_values.append(start)

        for tau in fractions:
            columns.append(len(point_grid_indices))
            point_grid_indices.append(len(grid_values))
            grid_values.append(start + tau * duration)

        if detached_end_point:
            grid_values.append(mesh[imesh + 1])

        interval_point_columns.append(tuple(columns))

    mesh_grid_indices.append(len(grid_values))
    point_grid_indices.append(len(grid_values))
    grid_values.append(mesh[-1])

    grid = np.array(grid_values, dtype=np.float64)
    points = np.array(point_grid_indices, dtype=np.int64)
    grid_to_point = np.full(len(grid), -1, dtype=np.int64)
    grid_to_point[points] = np.arange(len(points))

    layout = GridLayout(
        mesh=mesh,
        grid=grid,
        mesh_grid_indices=np.array(mesh_grid_indices, dtype=np.int64),
        point_grid_indices=points,
        grid_to_point=grid_to_point,
        interval_point_columns=tuple(interval_point_columns),
    )

    logger.debug(
        "Built grid: mesh_points=%d, grid_points=%d, variable_points=%d",
        layout.num_mesh_points,
        layout.num_grid_points,
        layout.num_points,
    )
    return layout
