"""
Plotting of expanded solutions.
"""

import logging

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes as MplAxes
from matplotlib.figure import Figure as MplFigure

from .dc_types import FloatArray, Solution, Var


logger = logging.getLogger(__name__)


def plot_solution(
    solution: Solution,
    variable_names: tuple[str, ...] = (),
    figsize: tuple[float, float] = (12.0, 8.0),
    show_mesh_points: bool = True,
    show: bool = True,
) -> list[MplFigure]:
    """
    Plot states and controls against time, one window per category.

    Args:
        solution: Expanded solution
        variable_names: Optional subset of state/control names to plot
        figsize: Figure size for each window
        show_mesh_points: Draw vertical lines at the mesh point times
        show: Call `plt.show()` once the figures are built

    Returns:
        The created figures.

    Examples:
        >>> plot_solution(solution)
        >>> plot_solution(solution, ("position", "velocity"), show=False)
    """
    if not solution.success:
        logger.warning("Cannot plot: Solution not successful")
        return []

    figures = []
    for var, title in ((Var.STATES, "States"), (Var.CONTROLS, "Controls")):
        names = solution.variable_names.get(var, [])
        rows = [
            (name, irow)
            for irow, name in enumerate(names)
            if not variable_names or name in variable_names
        ]
        if rows:
            figures.append(
                _create_category_plot(solution, var, title, rows, figsize, show_mesh_points)
            )

    if show and figures:
        plt.show()
    return figures


def _determine_subplot_layout(num_plots: int) -> tuple[int, int]:
    if num_plots <= 1:
        return 1, 1
    if num_plots <= 2:
        return 1, 2
    if num_plots <= 4:
        return 2, 2
    cols = int(np.ceil(np.sqrt(num_plots)))
    return int(np.ceil(num_plots / cols)), cols


def _create_category_plot(
    solution: Solution,
    var: Var,
    title: str,
    rows: list[tuple[str, int]],
    figsize: tuple[float, float],
    show_mesh_points: bool,
) -> MplFigure:
    num_rows, num_cols = _determine_subplot_layout(len(rows))
    fig, axes = plt.subplots(num_rows, num_cols, figsize=figsize, squeeze=False)
    fig.suptitle(title)
    flat_axes = axes.flatten()

    values = solution.variables[var]
    for ax, (name, irow) in zip(flat_axes, rows, strict=False):
        _plot_variable(ax, solution.point_times, values[irow], name)
        if show_mesh_points:
            _plot_mesh_lines(ax, solution.mesh_times)
        ax.set_ylabel(name)
        ax.set_xlabel("Time")
        ax.grid(True, alpha=0.3)

    # Hide unused subplots
    for ax in flat_axes[len(rows) :]:
        ax.set_visible(False)

    fig.tight_layout()
    return fig


def _plot_variable(ax: MplAxes, times: FloatArray, values: FloatArray, name: str) -> None:
    ax.plot(times, values, marker="o", markersize=3, linewidth=1.5, label=name)


def _plot_mesh_lines(ax: MplAxes, mesh_times: FloatArray) -> None:
    for mesh_time in mesh_times:
        ax.axvline(mesh_time, color="gray", linestyle=":", alpha=0.5, linewidth=1)
