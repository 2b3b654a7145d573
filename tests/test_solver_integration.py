# test_solver_integration.py
"""
Integration tests for the full transcribe-and-solve path with known analytical solutions.
"""

import logging

import numpy as np
import pytest

import dircol as dc
from dircol import Var


def _minimum_effort_problem(final_state_as_constraint=False):
    """
    Double integrator x'' = F from rest at 0 to rest at 1 in unit time,
    minimizing the integral of F^2. Optimal F(t) = 6 - 12 t with cost 12.
    """
    problem = dc.Problem("Minimum Effort Double Integrator")
    problem.time(initial=0.0, final=1.0)
    if final_state_as_constraint:
        x = problem.state("x", initial=0.0)
    else:
        x = problem.state("x", initial=0.0, final=1.0)
    v = problem.state("v", initial=0.0, final=0.0)
    F = problem.control("F", boundary=(-10.0, 10.0))
    problem.dynamics({x: v, v: F})
    problem.minimize(integrand=F * F)
    if final_state_as_constraint:
        problem.endpoint_constraint("reach", x.final - 1.0)
    return problem, x, v, F


class TestSolverIntegration:
    """End-to-end solves for every scheme."""

    @pytest.mark.parametrize(
        "scheme, tolerance",
        [
            ("trapezoidal", 5e-2),
            ("hermite-simpson", 1e-4),
            ("legendre-gauss", 1e-4),
            ("legendre-gauss-radau", 1e-4),
        ],
    )
    def test_minimum_effort_double_integrator(self, scheme, tolerance):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(mesh=10, transcription_scheme=scheme, polynomial_degree=3)

        solution = dc.solve(problem, solver)

        assert solution.success, f"Solver failed: {solution.message}"
        states = solution.variables[Var.STATES]
        assert abs(states[0, 0]) < 1e-8, "Initial position wrong"
        assert abs(states[0, -1] - 1.0) < 1e-8, "Final position wrong"
        assert abs(states[1, -1]) < 1e-8, "Final velocity wrong"
        assert abs(solution.objective - 12.0) < tolerance * 12.0, (
            f"Objective wrong: {solution.objective}, expected 12.0"
        )
        assert solution.objective_breakdown[0][0] == "objective"
        assert solution.objective_breakdown[0][1] == pytest.approx(solution.objective)

    def test_optimal_control_matches_analytical_solution(self):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(mesh=8, transcription_scheme="legendre-gauss-radau", polynomial_degree=3)

        solution = dc.solve(problem, solver)

        assert solution.success, f"Solver failed: {solution.message}"
        times = solution.point_times
        controls = solution.variables[Var.CONTROLS][0]
        # The first point carries no control in the dynamics
        np.testing.assert_allclose(controls[1:], 6.0 - 12.0 * times[1:], atol=1e-4)
        np.testing.assert_allclose(
            solution.variables[Var.STATES][0], 3.0 * times**2 - 2.0 * times**3, atol=1e-6
        )

    def test_solution_layout(self):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(mesh=[0.0, 0.3, 1.0], transcription_scheme="legendre-gauss", polynomial_degree=2)

        solution = dc.solve(problem, solver)

        assert solution.success, f"Solver failed: {solution.message}"
        assert solution.times.shape == (9,)
        assert solution.point_times.shape == (7,)
        np.testing.assert_allclose(solution.mesh_times, [0.0, 0.3, 1.0], atol=1e-7)
        # time continuity rows hold even though the solver may move fixed times by round-off
        np.testing.assert_allclose(solution.constraints.defects[:2], 0.0, atol=1e-7)
        assert solution.variables[Var.STATES].shape == (2, 7)
        assert solution.variables[Var.PROJECTION_STATES].shape == (2, 2)
        assert solution.variable_names[Var.STATES] == ["x", "v"]
        assert solution.variable_names[Var.CONTROLS] == ["F"]
        assert solution.num_iterations is not None
        assert np.max(np.abs(solution.constraints.defects)) < 1e-6

    def test_minimum_time_with_bound_scaling(self):
        """Bang-bang double integrator: minimum final time is 2."""
        problem = dc.Problem("Minimum Time")
        t = problem.time(initial=0.0, final=(0.5, 5.0))
        x = problem.state("x", initial=0.0, final=1.0, boundary=(-1.0, 2.0))
        v = problem.state("v", initial=0.0, final=0.0, boundary=(-2.0, 2.0))
        u = problem.control("u", boundary=(-1.0, 1.0))
        problem.dynamics({x: v, v: u})
        problem.minimize(t.final)

        solver = dc.Solver(
            mesh=10,
            transcription_scheme="legendre-gauss-radau",
            polynomial_degree=3,
            scale_variables_using_bounds=True,
            interpolate_control_midpoints=False,
        )
        solution = dc.solve(problem, solver)

        assert solution.success, f"Solver failed: {solution.message}"
        assert abs(solution.times[-1] - 2.0) < 1e-3, f"Final time wrong: {solution.times[-1]}"
        final_times = solution.variables[Var.FINAL_TIME]
        np.testing.assert_allclose(final_times, final_times[0, 0], atol=1e-8)

    def test_parameter_is_constant_across_mesh(self):
        problem = dc.Problem("Constant Rate")
        problem.time(initial=0.0, final=1.0)
        x = problem.state("x", initial=0.0, final=2.0)
        rate = problem.parameter("rate", boundary=(-10.0, 10.0))
        problem.dynamics({x: rate})
        problem.minimize(rate * rate)

        solution = dc.solve(problem, dc.Solver(mesh=5, transcription_scheme="hermite-simpson"))

        assert solution.success, f"Solver failed: {solution.message}"
        np.testing.assert_allclose(solution.variables[Var.PARAMETERS], 2.0, atol=1e-6)
        assert solution.objective == pytest.approx(4.0, abs=1e-6)

    @pytest.mark.parametrize("midpoints", [False, True])
    def test_path_constraint_is_respected(self, midpoints):
        problem, _, v, _ = _minimum_effort_problem()
        problem.path_constraint("speed_limit", v, bounds=(None, 1.2))
        solver = dc.Solver(
            mesh=20,
            transcription_scheme="hermite-simpson",
            enforce_path_constraint_midpoints=midpoints,
        )

        solution = dc.solve(problem, solver)

        assert solution.success, f"Solver failed: {solution.message}"
        speeds = solution.variables[Var.STATES][1]
        if not midpoints:
            speeds = speeds[::2]
        assert np.all(speeds <= 1.2 + 1e-6), f"Speed limit violated: {speeds.max()}"
        # The unconstrained optimum peaks at 1.5, so the limit must cost effort
        assert solution.objective > 12.0
        assert solution.constraints.path[0].shape == (1, 41 if midpoints else 21)

    def test_endpoint_constraint_with_integral(self):
        problem, x, _, F = _minimum_effort_problem(final_state_as_constraint=True)
        problem.endpoint_constraint("effort", problem.integral, bounds=(None, 20.0), integrand=F * F)
        problem.add_cost("terminal", 0.0 * x.final)
        solver = dc.Solver(mesh=6, transcription_scheme="legendre-gauss-radau", polynomial_degree=3)

        solution = dc.solve(problem, solver)

        assert solution.success, f"Solver failed: {solution.message}"
        assert abs(solution.variables[Var.STATES][0, -1] - 1.0) < 1e-6
        assert abs(solution.constraints.endpoint[0][0, 0]) < 1e-6
        assert solution.constraints.endpoint[1][0, 0] == pytest.approx(12.0, rel=1e-4)
        names = [name for name, _ in solution.objective_breakdown]
        assert names == ["objective", "terminal"]

    def test_warm_start_from_previous_solution(self):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(mesh=10, transcription_scheme="hermite-simpson")

        first = dc.solve(problem, solver)
        second = dc.solve(problem, solver, guess=first)

        assert first.success and second.success
        assert second.objective == pytest.approx(first.objective, rel=1e-8)

    def test_transcription_can_be_driven_directly(self):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(mesh=4, transcription_scheme="legendre-gauss-radau", polynomial_degree=3)
        transcription = dc.create_transcription(solver, problem)

        transcription.transcribe()
        solution = transcription.solve()

        assert solution.success
        assert transcription.evaluate_objective(solution) == pytest.approx(solution.objective)

    def test_unknown_nlp_solver(self):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(mesh=4, optim_solver="no_such_solver")
        with pytest.raises(dc.ConfigurationError):
            dc.solve(problem, solver)

    def test_unconverged_solve_is_reported(self, caplog):
        problem, *_ = _minimum_effort_problem()
        solver = dc.Solver(
            mesh=4,
            transcription_scheme="hermite-simpson",
            solver_options={"ipopt.max_iter": 0, "ipopt.print_level": 0, "print_time": False},
        )
        transcription = dc.create_transcription(solver, problem)

        with caplog.at_level(logging.WARNING, logger="dircol"):
            solution = transcription.solve()

        assert not solution.success
        assert any(
            record.levelno == logging.WARNING and "did not converge" in record.getMessage()
            for record in caplog.records
        )

    def test_print_solution_summary(self, capsys):
        problem, *_ = _minimum_effort_problem()
        solution = dc.solve(problem, dc.Solver(mesh=4))

        dc.print_solution_summary(solution)

        output = capsys.readouterr().out
        assert "DIRCOL SOLUTION DATA" in output
        assert "states 'x'" in output
        assert "Defects" in output
