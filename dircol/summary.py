from __future__ import annotations

import logging

import numpy as np

from .dc_types import Solution, Var


logger = logging.getLogger(__name__)


def _max_abs(values: np.ndarray | None) -> float:
    if values is None or np.size(values) == 0:
        return 0.0
    return float(np.max(np.abs(values)))


def print_solution_summary(solution: Solution) -> None:
    """
    Present factual solution data without analysis or interpretation.

    Args:
        solution: Solution returned by `dircol.solve` or `Transcription.solve`
    """
    print("\n" + "=" * 80)
    print("DIRCOL SOLUTION DATA")
    print("=" * 80)

    _print_solution_status_section(solution)
    _print_objective_section(solution)
    _print_variables_section(solution)
    _print_constraint_section(solution)

    print("=" * 80 + "\n")


def _print_solution_status_section(solution: Solution) -> None:
    print("\n┌─ SOLUTION STATUS")
    print("│")
    print(f"│  Success: {solution.success}")
    print(f"│  Message: {solution.message}")
    if solution.num_iterations is not None:
        print(f"│  Iterations: {solution.num_iterations}")
    print("│")


def _print_objective_section(solution: Solution) -> None:
    print("┌─ OBJECTIVE")
    print("│")
    if solution.objective is None:
        print("│  Objective: Not available")
    else:
        print(f"│  Objective: {solution.objective:.12e}")
        for name, value in solution.objective_breakdown:
            print(f"│    {name}: {value:.12e}")
    print("│")


def _print_variables_section(solution: Solution) -> None:
    print("┌─ VARIABLES")
    print("│")
    if solution.times.size > 0:
        print(f"│  Time span: [{solution.times[0]:.6f}, {solution.times[-1]:.6f}]")
        print(f"│  Grid points: {solution.times.size}")

    for var in (Var.STATES, Var.CONTROLS):
        values = solution.variables.get(var)
        names = solution.variable_names.get(var, [])
        if values is None:
            continue
        for name, row in zip(names, values, strict=False):
            print(f"│  {var.value} '{name}': initial={row[0]:.6e}, final={row[-1]:.6e}")

    parameters = solution.variables.get(Var.PARAMETERS)
    if parameters is not None and parameters.size > 0:
        for name, row in zip(solution.variable_names.get(Var.PARAMETERS, []), parameters, strict=False):
            print(f"│  parameter '{name}': {row[0]:.6e}")
    print("│")


def _print_constraint_section(solution: Solution) -> None:
    print("┌─ CONSTRAINT VALUES (max |value|)")
    print("│")
    constraints = solution.constraints
    if constraints is None:
        print("│  Not available")
        print("│")
        return

    print(f"│  Defects: {_max_abs(constraints.defects):.6e}")
    print(f"│  Multibody residuals: {_max_abs(constraints.multibody_residuals):.6e}")
    print(f"│  Auxiliary residuals: {_max_abs(constraints.auxiliary_residuals):.6e}")
    print(f"│  Kinematic: {_max_abs(constraints.kinematic):.6e}")
    print(f"│  Interpolated controls: {_max_abs(constraints.interp_controls):.6e}")
    for index, block in enumerate(constraints.endpoint):
        print(f"│  Endpoint[{index}]: {_max_abs(block):.6e}")
    for index, block in enumerate(constraints.path):
        print(f"│  Path[{index}]: {_max_abs(block):.6e}")
    print("│")
