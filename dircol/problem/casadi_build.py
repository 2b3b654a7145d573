import logging
from collections.abc import Sequence
from typing import Any

import casadi as ca

from ..exceptions import ConfigurationError
from .variables_problem import _extract_casadi_symbol


logger = logging.getLogger(__name__)

POINT_INPUT_NAMES = ["t", "x", "u", "multipliers", "derivatives", "p"]
ENDPOINT_INPUT_NAMES = ["t0", "x0", "u0", "tf", "xf", "uf", "p", "integral"]


def stack_symbols(symbols: Sequence[Any], name: str) -> ca.MX:
    """Column of scalar symbols; an empty column symbol when there are none."""
    if not symbols:
        return ca.MX.sym(name, 0)
    return ca.vertcat(*[_extract_casadi_symbol(symbol) for symbol in symbols])


def stack_expressions(expressions: Sequence[Any]) -> ca.MX:
    if not expressions:
        return ca.MX(0, 1)
    return ca.vertcat(*[ca.MX(_extract_casadi_symbol(expr)) for expr in expressions])


def build_function(
    name: str,
    inputs: list[ca.MX],
    outputs: list[ca.MX],
    input_names: list[str],
    output_names: list[str] | None = None,
) -> ca.Function:
    """
    Create a CasADi Function, reporting free symbols as a configuration error.
    """
    if output_names is None:
        output_names = [f"{name}_out{i}" for i in range(len(outputs))]
    try:
        function = ca.Function(name, inputs, outputs, input_names, output_names)
    except RuntimeError as e:
        raise ConfigurationError(
            f"Expression of '{name}' cannot be built from the problem variables: {e}",
            "Problem function construction",
        ) from e

    logger.debug("Built CasADi function '%s' with %d outputs", name, len(outputs))
    return function
