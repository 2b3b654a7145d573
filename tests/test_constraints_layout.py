import casadi as ca
import numpy as np
import pytest
from numpy.testing import assert_allclose

import dircol as dc
from dircol.exceptions import DataIntegrityError
from dircol.transcription import Constraints, expand_constraints, flatten_constraints


def _constrained_problem():
    problem = dc.Problem("Constrained Double Integrator")
    t = problem.time(initial=0.0, final=1.0)
    x = problem.state("x", initial=0.0)
    v = problem.state("v", initial=0.0)
    F = problem.control("F")
    problem.dynamics({x: v, v: F})
    problem.multibody_residuals(F - v)
    problem.path_constraint("speed", ca.vertcat(x + v, x - v), bounds=(None, 1.2))
    problem.path_constraint("clock", t, bounds=(0.0, None))
    problem.endpoint_constraint("reach", x.final - 1.0)
    problem.endpoint_constraint(
        "effort", problem.integral, bounds=(None, 20.0), integrand=F * F
    )
    problem.minimize(integrand=F * F)
    return problem


def _layout(scheme, enforce_path_constraint_midpoints=False):
    solver = dc.Solver(
        mesh=[0.0, 0.3, 0.7, 1.0],
        transcription_scheme=scheme,
        polynomial_degree=2,
        enforce_path_constraint_midpoints=enforce_path_constraint_midpoints,
    )
    return dc.create_transcription(solver, _constrained_problem()).constraint_layout


def _random_blocks(layout, rng):
    return Constraints(
        endpoint=[rng.normal(size=layout.endpoint_shape(i)) for i in range(len(layout.endpoint_sizes))],
        defects=rng.normal(size=layout.defects_shape),
        multibody_residuals=rng.normal(size=layout.multibody_shape),
        auxiliary_residuals=rng.normal(size=layout.auxiliary_shape),
        kinematic=rng.normal(size=layout.kinematic_shape),
        path=[rng.normal(size=layout.path_shape(i)) for i in range(len(layout.path_sizes))],
        interp_controls=rng.normal(size=layout.interp_controls_shape),
    )


class TestConstraintLayout:
    @pytest.mark.parametrize(
        "scheme", ["trapezoidal", "hermite-simpson", "legendre-gauss", "legendre-gauss-radau"]
    )
    @pytest.mark.parametrize("midpoints", [False, True])
    def test_flatten_expand_round_trip(self, scheme, midpoints):
        layout = _layout(scheme, midpoints)
        blocks = _random_blocks(layout, np.random.default_rng(7))

        flat = flatten_constraints(blocks, layout)
        assert flat.shape == (layout.num_constraints,)

        expanded = expand_constraints(flat, layout)
        assert_allclose(expanded.defects, blocks.defects)
        assert_allclose(expanded.multibody_residuals, blocks.multibody_residuals)
        assert_allclose(expanded.kinematic, blocks.kinematic)
        assert_allclose(expanded.interp_controls, blocks.interp_controls)
        for expanded_block, block in zip(expanded.endpoint, blocks.endpoint, strict=True):
            assert_allclose(expanded_block, block)
        for expanded_block, block in zip(expanded.path, blocks.path, strict=True):
            assert_allclose(expanded_block, block)

    def test_block_shapes(self):
        layout = _layout("hermite-simpson")

        assert layout.endpoint_sizes == (1, 1)
        assert layout.path_sizes == (2, 1)
        # time and final time continuity plus Simpson and Hermite rows for two states
        assert layout.defects_shape == (2 + 4, 3)
        assert layout.multibody_shape == (1, 7)
        assert layout.path_shape(0) == (2, 4)
        assert layout.interp_controls_shape == (1, 3)

    def test_path_constraints_at_every_point(self):
        layout = _layout("legendre-gauss-radau", enforce_path_constraint_midpoints=True)
        assert layout.path_shape(0) == (2, layout.num_points)
        assert layout.num_points == 10

    def test_ordering_is_time_local(self):
        layout = _layout("trapezoidal")
        blocks = Constraints(
            endpoint=[np.full((1, 1), -1.0), np.full((1, 1), -2.0)],
            defects=np.tile(np.arange(3, dtype=np.float64), (layout.num_defect_rows, 1)),
            multibody_residuals=10.0 + np.arange(4, dtype=np.float64).reshape(1, 4),
            auxiliary_residuals=np.zeros(layout.auxiliary_shape),
            kinematic=np.zeros(layout.kinematic_shape),
            path=[np.full((2, 4), 20.0), np.full((1, 4), 30.0)],
            interp_controls=np.zeros(layout.interp_controls_shape),
        )
        flat = flatten_constraints(blocks, layout)

        num_defect_rows = layout.num_defect_rows
        assert_allclose(flat[:2], [-1.0, -2.0])
        assert_allclose(flat[2 : 2 + num_defect_rows], 0.0)
        # multibody residual of the interval's first point follows its defects
        assert flat[2 + num_defect_rows] == 10.0
        assert_allclose(flat[3 + num_defect_rows : 6 + num_defect_rows], [20.0, 20.0, 30.0])
        assert flat[6 + num_defect_rows] == 1.0
        assert_allclose(flat[-4:], [13.0, 20.0, 20.0, 30.0])

    def test_wrong_block_shape_rejected(self):
        layout = _layout("hermite-simpson")
        blocks = _random_blocks(layout, np.random.default_rng(0))
        blocks.defects = np.zeros((layout.num_defect_rows + 1, layout.num_mesh_intervals))

        with pytest.raises(DataIntegrityError):
            flatten_constraints(blocks, layout)

    def test_missing_path_block_rejected(self):
        layout = _layout("hermite-simpson")
        blocks = _random_blocks(layout, np.random.default_rng(0))
        blocks.path = blocks.path[:1]

        with pytest.raises(DataIntegrityError):
            flatten_constraints(blocks, layout)

    def test_wrong_vector_length_rejected(self):
        layout = _layout("legendre-gauss")
        with pytest.raises(DataIntegrityError):
            expand_constraints(np.zeros(layout.num_constraints - 1), layout)

    def test_symbolic_blocks_produce_column(self):
        layout = _layout("trapezoidal")
        blocks = _random_blocks(layout, np.random.default_rng(1))
        blocks.defects = ca.MX.sym("defects", *layout.defects_shape)

        flat = flatten_constraints(blocks, layout)
        assert isinstance(flat, ca.MX)
        assert flat.shape == (layout.num_constraints, 1)
