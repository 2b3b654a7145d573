import matplotlib


matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

import dircol as dc
from dircol import Solution, Var
from dircol.plot import _determine_subplot_layout


def _solved_double_integrator():
    problem = dc.Problem("Double Integrator")
    problem.time(initial=0.0, final=1.0)
    x = problem.state("x", initial=0.0, final=1.0)
    v = problem.state("v", initial=0.0, final=0.0)
    F = problem.control("F", boundary=(-10.0, 10.0))
    problem.dynamics({x: v, v: F})
    problem.minimize(integrand=F * F)
    return dc.solve(problem, dc.Solver(mesh=4, transcription_scheme="hermite-simpson"))


class TestPlotSolution:
    def teardown_method(self):
        plt.close("all")

    def test_one_figure_per_category(self):
        solution = _solved_double_integrator()
        assert solution.success

        figures = dc.plot_solution(solution, show=False)

        assert len(figures) == 2
        state_axes = [ax for ax in figures[0].axes if ax.get_visible()]
        assert [ax.get_ylabel() for ax in state_axes] == ["x", "v"]
        line = state_axes[0].get_lines()[0]
        np.testing.assert_allclose(line.get_xdata(), solution.point_times)

    def test_selected_variables_only(self):
        solution = _solved_double_integrator()

        figures = dc.plot_solution(solution, variable_names=("v",), show=False)

        assert len(figures) == 1
        visible = [ax for ax in figures[0].axes if ax.get_visible()]
        assert [ax.get_ylabel() for ax in visible] == ["v"]

    def test_mesh_lines_optional(self):
        solution = _solved_double_integrator()

        with_mesh = dc.plot_solution(solution, variable_names=("x",), show=False)[0]
        without_mesh = dc.plot_solution(
            solution, variable_names=("x",), show_mesh_points=False, show=False
        )[0]

        assert len(with_mesh.axes[0].get_lines()) == 1 + len(solution.mesh_times)
        assert len(without_mesh.axes[0].get_lines()) == 1

    def test_unsuccessful_solution_is_not_plotted(self):
        solution = Solution(success=False, message="did not converge")
        assert dc.plot_solution(solution, show=False) == []

    @pytest.mark.parametrize(
        "num_plots, layout", [(1, (1, 1)), (2, (1, 2)), (3, (2, 2)), (4, (2, 2)), (5, (2, 3)), (9, (3, 3))]
    )
    def test_subplot_layout(self, num_plots, layout):
        assert _determine_subplot_layout(num_plots) == layout

    def test_state_values_are_plotted(self):
        solution = _solved_double_integrator()
        figure = dc.plot_solution(solution, variable_names=("x",), show=False)[0]
        np.testing.assert_allclose(
            figure.axes[0].get_lines()[0].get_ydata(), solution.variables[Var.STATES][0]
        )
