import numpy as np
import pytest
from numpy.testing import assert_allclose

from dircol.collocation import (
    compute_legendre_gauss_basis,
    compute_legendre_gauss_nodes_and_weights,
    compute_legendre_gauss_radau_basis,
    compute_legendre_gauss_radau_nodes_and_weights,
)
from dircol.exceptions import ConfigurationError


def _monomial_integral(power):
    # Integral of tau**power over [0, 1]
    return 1.0 / (power + 1)


class TestCollocationBasis:
    @pytest.mark.parametrize("num_points", [1, 2, 3, 4, 6, 10])
    def test_gauss_quadrature_exactness(self, num_points):
        data = compute_legendre_gauss_nodes_and_weights(num_points)
        assert np.all(data.nodes > 0.0) and np.all(data.nodes < 1.0)
        assert np.all(np.diff(data.nodes) > 0.0)

        for power in range(2 * num_points):
            integral = np.sum(data.weights * data.nodes**power)
            assert abs(integral - _monomial_integral(power)) < 1e-12, (
                f"Gauss quadrature not exact for n={num_points}, power={power}: {integral}"
            )

    @pytest.mark.parametrize("num_points", [1, 2, 3, 4, 6, 10])
    def test_radau_quadrature_exactness(self, num_points):
        data = compute_legendre_gauss_radau_nodes_and_weights(num_points)
        assert data.nodes[-1] == pytest.approx(1.0)
        assert np.all(data.nodes[:-1] > 0.0)

        for power in range(2 * num_points - 1):
            integral = np.sum(data.weights * data.nodes**power)
            assert abs(integral - _monomial_integral(power)) < 1e-12, (
                f"Radau quadrature not exact for n={num_points}, power={power}: {integral}"
            )

    @pytest.mark.parametrize("degree", [1, 2, 3, 5, 8])
    def test_radau_basis_dimensions(self, degree):
        basis = compute_legendre_gauss_radau_basis(degree)

        assert len(basis.collocation_nodes) == degree + 1
        assert len(basis.state_nodes) == degree + 2
        assert basis.state_nodes[0] == 0.0
        assert basis.differentiation_matrix.shape == (degree + 2, degree + 1)
        assert basis.collocation_nodes[-1] == pytest.approx(1.0)

    @pytest.mark.parametrize("degree", [1, 2, 3, 5, 8])
    def test_gauss_basis_dimensions(self, degree):
        basis = compute_legendre_gauss_basis(degree)

        assert len(basis.collocation_nodes) == degree
        assert len(basis.state_nodes) == degree + 1
        assert basis.differentiation_matrix.shape == (degree + 1, degree)
        assert basis.interpolation_coefficients.shape == (degree + 1,)

    @pytest.mark.parametrize(
        "compute_basis", [compute_legendre_gauss_basis, compute_legendre_gauss_radau_basis]
    )
    @pytest.mark.parametrize("degree", [1, 2, 3, 4, 6])
    def test_differentiation_is_exact_for_interpolating_polynomials(self, compute_basis, degree):
        basis = compute_basis(degree)
        nodes = basis.state_nodes
        max_power = len(nodes) - 1

        for power in range(max_power + 1):
            values = (nodes**power).reshape(1, -1)
            derivative = values @ basis.differentiation_matrix
            expected = power * basis.collocation_nodes ** max(power - 1, 0) if power else 0.0
            assert_allclose(
                derivative.reshape(-1),
                np.broadcast_to(expected, basis.collocation_nodes.shape),
                atol=1e-9,
                err_msg=f"Differentiation failed for power {power}",
            )

    @pytest.mark.parametrize(
        "compute_basis", [compute_legendre_gauss_basis, compute_legendre_gauss_radau_basis]
    )
    @pytest.mark.parametrize("degree", [1, 2, 3, 4, 6])
    def test_interpolation_to_interval_end(self, compute_basis, degree):
        basis = compute_basis(degree)
        nodes = basis.state_nodes

        # Every polynomial the nodes determine is reproduced at tau = 1
        for power in range(len(nodes)):
            value = np.dot(nodes**power, basis.interpolation_coefficients)
            assert value == pytest.approx(1.0, abs=1e-10)

    def test_derivative_of_constant_vanishes(self):
        basis = compute_legendre_gauss_radau_basis(4)
        assert_allclose(basis.differentiation_matrix.sum(axis=0), 0.0, atol=1e-10)

    def test_basis_is_cached_and_read_only(self):
        first = compute_legendre_gauss_radau_basis(3)
        second = compute_legendre_gauss_radau_basis(3)

        assert first is second
        with pytest.raises(ValueError):
            first.differentiation_matrix[0, 0] = 1.0

    @pytest.mark.parametrize("degree", [0, -1, 51, 2.5])
    def test_invalid_degree_rejected(self, degree):
        with pytest.raises(ConfigurationError):
            compute_legendre_gauss_basis(degree)
