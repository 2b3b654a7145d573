import functools
from dataclasses import dataclass
from typing import Literal, cast, overload

import numpy as np
from scipy.special import roots_jacobi as _scipy_roots_jacobi

from .input_validation import validate_polynomial_degree
from .dc_types import FloatArray
from .utils.constants import DEFAULT_LRU_CACHE_SIZE, ZERO_TOLERANCE


@dataclass(frozen=True)
class CollocationBasis:
    """
    Interval basis for the interior-point collocation schemes on tau in [0, 1].

    The interpolating polynomial is defined on `state_nodes` = {0, collocation
    nodes}. With X the states at those nodes (one column per node), X @
    differentiation_matrix is the derivative with respect to tau at every
    collocation node, and X @ interpolation_coefficients is the polynomial value
    at tau = 1.
    """

    state_nodes: FloatArray
    collocation_nodes: FloatArray
    quadrature_weights: FloatArray
    differentiation_matrix: FloatArray
    interpolation_coefficients: FloatArray


@dataclass
class NodesAndWeights:
    nodes: FloatArray
    weights: FloatArray


@overload
def _roots_jacobi(
    n: int, alpha: float, beta: float, mu: Literal[False]
) -> tuple[FloatArray, FloatArray]: ...


@overload
def _roots_jacobi(
    n: int, alpha: float, beta: float, mu: Literal[True]
) -> tuple[FloatArray, FloatArray, float]: ...


def _roots_jacobi(
    n: int, alpha: float, beta: float, mu: bool = False
) -> tuple[FloatArray, FloatArray] | tuple[FloatArray, FloatArray, float]:
    if mu:
        result = _scipy_roots_jacobi(n, alpha, beta, mu=True)
        return (
            result[0].astype(np.float64),
            result[1].astype(np.float64),
            float(result[2]),
        )
    result = _scipy_roots_jacobi(n, alpha, beta, mu=False)
    return result[0].astype(np.float64), result[1].astype(np.float64)


def compute_legendre_gauss_nodes_and_weights(num_points: int) -> NodesAndWeights:
    """Legendre-Gauss roots and weights mapped from [-1, 1] to [0, 1]."""
    roots, weights = _roots_jacobi(num_points, 0.0, 0.0, mu=False)
    order = np.argsort(roots)
    return NodesAndWeights(
        nodes=0.5 * (roots[order] + 1.0),
        weights=0.5 * weights[order],
    )


def compute_legendre_gauss_radau_nodes_and_weights(num_points: int) -> NodesAndWeights:
    """Right-sided Legendre-Gauss-Radau roots (last node is 1) mapped to [0, 1]."""
    if num_points == 1:
        return NodesAndWeights(
            nodes=np.array([1.0], dtype=np.float64), weights=np.array([1.0], dtype=np.float64)
        )

    # Interior roots carry the (1 - x) Jacobi weight, so divide it back out
    interior_roots, jacobi_weights = _roots_jacobi(num_points - 1, 1.0, 0.0, mu=False)
    order = np.argsort(interior_roots)
    interior_roots = interior_roots[order]
    interior_weights = jacobi_weights[order] / (1.0 - interior_roots)
    right_endpoint_weight = 2.0 / (num_points**2)

    nodes = np.concatenate([interior_roots, [1.0]])
    weights = np.concatenate([interior_weights, [right_endpoint_weight]])
    return NodesAndWeights(nodes=0.5 * (nodes + 1.0), weights=0.5 * weights)


def _compute_barycentric_weights(nodes: FloatArray) -> FloatArray:
    num_nodes = len(nodes)
    if num_nodes == 1:
        return np.array([1.0], dtype=np.float64)

    differences_matrix = nodes[:, np.newaxis] - nodes[np.newaxis, :]
    np.fill_diagonal(differences_matrix, 1.0)
    products = np.prod(differences_matrix, axis=1, dtype=np.float64)
    return (1.0 / products).astype(np.float64)


def _evaluate_lagrange_polynomial_at_point(
    polynomial_definition_nodes: FloatArray,
    barycentric_weights: FloatArray,
    evaluation_point_tau: float,
) -> FloatArray:
    # Barycentric formula provides numerically stable polynomial evaluation
    num_nodes = len(polynomial_definition_nodes)
    diffs = evaluation_point_tau - polynomial_definition_nodes

    coincident_mask = np.abs(diffs) < ZERO_TOLERANCE
    if np.any(coincident_mask):
        lagrange_values = np.zeros(num_nodes, dtype=np.float64)
        lagrange_values[np.argmax(coincident_mask)] = 1.0
        return lagrange_values

    terms = barycentric_weights / diffs
    return cast(FloatArray, terms / np.sum(terms))


def _compute_lagrange_derivative_coefficients_at_node(
    polynomial_definition_nodes: FloatArray,
    barycentric_weights: FloatArray,
    node_index: int,
) -> FloatArray:
    # Derivative of every Lagrange basis polynomial, evaluated at one node
    num_nodes = len(polynomial_definition_nodes)
    node_diffs = polynomial_definition_nodes[node_index] - polynomial_definition_nodes
    non_diagonal_mask = np.arange(num_nodes) != node_index

    derivatives = np.zeros(num_nodes, dtype=np.float64)
    weight_ratios = barycentric_weights / barycentric_weights[node_index]
    derivatives[non_diagonal_mask] = (
        weight_ratios[non_diagonal_mask] / node_diffs[non_diagonal_mask]
    )
    # Rows of a differentiation matrix sum to zero
    derivatives[node_index] = -np.sum(derivatives[non_diagonal_mask])
    return derivatives


def _build_collocation_basis(
    collocation_nodes: FloatArray, quadrature_weights: FloatArray
) -> CollocationBasis:
    state_nodes = np.concatenate([[0.0], collocation_nodes]).astype(np.float64)
    bary_weights = _compute_barycentric_weights(state_nodes)

    num_state_nodes = len(state_nodes)
    num_colloc = len(collocation_nodes)
    diff_matrix = np.zeros((num_state_nodes, num_colloc), dtype=np.float64)
    for j in range(num_colloc):
        diff_matrix[:, j] = _compute_lagrange_derivative_coefficients_at_node(
            state_nodes, bary_weights, j + 1
        )

    interpolation_coefficients = _evaluate_lagrange_polynomial_at_point(
        state_nodes, bary_weights, 1.0
    )

    for array in (
        state_nodes,
        collocation_nodes,
        quadrature_weights,
        diff_matrix,
        interpolation_coefficients,
    ):
        array.flags.writeable = False

    return CollocationBasis(
        state_nodes=state_nodes,
        collocation_nodes=collocation_nodes,
        quadrature_weights=quadrature_weights,
        differentiation_matrix=diff_matrix,
        interpolation_coefficients=interpolation_coefficients,
    )


@functools.lru_cache(maxsize=DEFAULT_LRU_CACHE_SIZE)
def _compute_legendre_gauss_basis_cached(degree: int) -> CollocationBasis:
    data = compute_legendre_gauss_nodes_and_weights(degree)
    return _build_collocation_basis(data.nodes, data.weights)


@functools.lru_cache(maxsize=DEFAULT_LRU_CACHE_SIZE)
def _compute_legendre_gauss_radau_basis_cached(degree: int) -> CollocationBasis:
    data = compute_legendre_gauss_radau_nodes_and_weights(degree + 1)
    return _build_collocation_basis(data.nodes, data.weights)


def compute_legendre_gauss_basis(degree: int) -> CollocationBasis:
    """Basis with `degree` Gauss collocation points strictly inside the interval."""
    validate_polynomial_degree(degree, "Legendre-Gauss degree")
    return _compute_legendre_gauss_basis_cached(int(degree))


def compute_legendre_gauss_radau_basis(degree: int) -> CollocationBasis:
    """Basis with `degree` interior Radau points plus the collocated interval end."""
    validate_polynomial_degree(degree, "Legendre-Gauss-Radau degree")
    return _compute_legendre_gauss_radau_basis_cached(int(degree))
