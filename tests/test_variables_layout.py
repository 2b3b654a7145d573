import numpy as np
import pytest
from numpy.testing import assert_allclose

import dircol as dc
from dircol.dc_types import Var
from dircol.exceptions import ConfigurationError, DataIntegrityError


SCHEMES = ["trapezoidal", "hermite-simpson", "legendre-gauss", "legendre-gauss-radau"]


def _double_integrator(with_parameter=False):
    problem = dc.Problem("Double Integrator")
    problem.time(initial=0.0, final=(0.5, 2.0))
    x = problem.state("x", initial=0.0, final=1.0, boundary=(-5.0, 5.0))
    v = problem.state("v", initial=0.0, final=0.0)
    F = problem.control("F", boundary=(-10.0, 10.0))
    if with_parameter:
        mass = problem.parameter("mass", boundary=(0.5, 2.0))
        problem.dynamics({x: v, v: F / mass})
    else:
        problem.dynamics({x: v, v: F})
    problem.minimize(integrand=F * F)
    return problem


def _transcription(scheme, mesh=(0.0, 0.5, 1.0), degree=2, **solver_kwargs):
    solver = dc.Solver(
        mesh=list(mesh), transcription_scheme=scheme, polynomial_degree=degree, **solver_kwargs
    )
    return dc.create_transcription(solver, _double_integrator(with_parameter=True))


class TestVariableLayout:
    @pytest.mark.parametrize(
        "scheme, num_grid_points, num_points",
        [
            ("trapezoidal", 3, 3),
            ("hermite-simpson", 5, 5),
            ("legendre-gauss-radau", 7, 7),
            ("legendre-gauss", 9, 7),
        ],
    )
    def test_category_shapes(self, scheme, num_grid_points, num_points):
        transcription = _transcription(scheme)
        variables = transcription.variables

        assert transcription.num_grid_points == num_grid_points
        assert transcription.num_points == num_points
        assert variables.shape(Var.INITIAL_TIME) == (1, 3)
        assert variables.shape(Var.FINAL_TIME) == (1, 3)
        assert variables.shape(Var.PARAMETERS) == (1, 3)
        assert variables.shape(Var.STATES) == (2, num_points)
        assert variables.shape(Var.CONTROLS) == (1, num_points)
        assert variables.shape(Var.SLACKS) == (0, 2)
        assert variables.has(Var.PROJECTION_STATES) == (scheme == "legendre-gauss")
        if scheme == "legendre-gauss":
            assert variables.shape(Var.PROJECTION_STATES) == (2, 2)

    @pytest.mark.parametrize("scheme", SCHEMES)
    def test_num_variables_matches_shapes(self, scheme):
        transcription = _transcription(scheme)
        variables = transcription.variables

        expected = sum(
            rows * columns for rows, columns in (variables.shape(var) for var in variables.categories)
        )
        assert variables.num_variables == expected
        assert variables.flatten_symbols().shape == (expected, 1)

    @pytest.mark.parametrize("scheme", SCHEMES)
    def test_flatten_expand_round_trip(self, scheme):
        transcription = _transcription(scheme)
        variables = transcription.variables
        iterate = transcription.create_random_iterate_within_bounds(rng=3)

        flat = variables.flatten_variables(iterate.variables)
        expanded = variables.expand_variables(flat)

        assert flat.shape == (variables.num_variables,)
        for var in variables.categories:
            assert_allclose(expanded[var], iterate.variables[var], err_msg=var.value)

    @pytest.mark.parametrize("scheme", SCHEMES)
    def test_order_visits_every_column_once(self, scheme):
        transcription = _transcription(scheme)
        order = transcription.variables.variable_order

        assert len(order) == len(set(order))
        for var in transcription.variables.categories:
            _, num_columns = transcription.variables.shape(var)
            columns = sorted(column for category, column in order if category == var)
            assert columns == list(range(num_columns)), var.value

    def test_radau_order_starts_with_initial_state(self):
        order = _transcription("legendre-gauss-radau").variables.variable_order
        assert order[:5] == [
            (Var.STATES, 0),
            (Var.INITIAL_TIME, 0),
            (Var.FINAL_TIME, 0),
            (Var.PARAMETERS, 0),
            (Var.STATES, 1),
        ]

    def test_gauss_order_places_projection_after_times(self):
        transcription = _transcription("legendre-gauss")
        order = transcription.variables.variable_order
        assert order[:4] == [
            (Var.INITIAL_TIME, 0),
            (Var.FINAL_TIME, 0),
            (Var.PARAMETERS, 0),
            (Var.STATES, 0),
        ]
        second_interval = order.index((Var.INITIAL_TIME, 1))
        assert order[second_interval + 3] == (Var.PROJECTION_STATES, 0)
        assert order[-1] == (Var.DERIVATIVES, transcription.num_points - 1)

    def test_missing_column_rejected(self):
        variables = _transcription("hermite-simpson").variables
        order = list(variables.variable_order)
        with pytest.raises(DataIntegrityError):
            variables.set_variable_order(order[:-1])

    def test_duplicate_column_rejected(self):
        variables = _transcription("hermite-simpson").variables
        order = list(variables.variable_order)
        with pytest.raises(DataIntegrityError):
            variables.set_variable_order([*order, order[0]])

    def test_out_of_range_column_rejected(self):
        variables = _transcription("trapezoidal").variables
        order = list(variables.variable_order)
        order[0] = (Var.STATES, 99)
        with pytest.raises(DataIntegrityError):
            variables.set_variable_order(order)

    def test_wrong_length_vector_rejected(self):
        variables = _transcription("trapezoidal").variables
        with pytest.raises(DataIntegrityError):
            variables.expand_variables(np.zeros(variables.num_variables + 1))

    def test_bounds_follow_problem(self):
        transcription = _transcription("hermite-simpson")
        lower = transcription.variables.lower
        upper = transcription.variables.upper

        # x: initial fixed at 0, final fixed at 1, path bound (-5, 5)
        assert lower[Var.STATES][0, 0] == 0.0 and upper[Var.STATES][0, 0] == 0.0
        assert lower[Var.STATES][0, -1] == 1.0 and upper[Var.STATES][0, -1] == 1.0
        assert_allclose(lower[Var.STATES][0, 1:-1], -5.0)
        assert_allclose(upper[Var.STATES][0, 1:-1], 5.0)
        # v has no path bound
        assert np.all(np.isinf(upper[Var.STATES][1, 1:-1]))
        assert_allclose(lower[Var.INITIAL_TIME], 0.0)
        assert_allclose(upper[Var.FINAL_TIME], 2.0)
        assert_allclose(lower[Var.PARAMETERS], 0.5)


def _partly_bounded_state(initial, final):
    problem = dc.Problem("Partly Bounded")
    problem.time(initial=0.0, final=1.0)
    x = problem.state("x", initial=initial, final=final, boundary=(0.0, 10.0))
    u = problem.control("u")
    problem.dynamics({x: u})
    solver = dc.Solver(mesh=[0.0, 0.5, 1.0], transcription_scheme="trapezoidal")
    return dc.create_transcription(solver, problem)


class TestEndpointBounds:
    def test_endpoint_bounds_tighten_row_bounds(self):
        transcription = _partly_bounded_state(initial=(None, 5.0), final=(2.0, None))
        lower = transcription.variables.lower[Var.STATES][0]
        upper = transcription.variables.upper[Var.STATES][0]

        assert_allclose(lower, [0.0, 0.0, 2.0])
        assert_allclose(upper, [5.0, 10.0, 10.0])

    def test_fixed_endpoint_inside_row_bounds(self):
        transcription = _partly_bounded_state(initial=3.0, final=None)
        assert transcription.variables.lower[Var.STATES][0, 0] == 3.0
        assert transcription.variables.upper[Var.STATES][0, 0] == 3.0

    @pytest.mark.parametrize("initial, final", [(12.0, None), (None, (-3.0, -1.0))])
    def test_endpoint_bounds_outside_row_bounds(self, initial, final):
        with pytest.raises(ConfigurationError):
            _partly_bounded_state(initial=initial, final=final)
