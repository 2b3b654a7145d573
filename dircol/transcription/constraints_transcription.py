# dircol/transcription/constraints_transcription.py
"""
Flattening of constraint blocks into the NLP constraint vector and back.

Blocks are visited time-locally so that constraints sharing decision
variables sit in neighbouring rows of the Jacobian:

1. endpoint constraints
2. for every mesh interval k:
   defects[:, k], multibody and auxiliary residuals at the interval points,
   kinematic constraints at mesh point k, path constraints (at the interval
   points when midpoints are enforced, otherwise at mesh point k), then the
   interpolated controls of the interval
3. residuals, kinematic and path constraints at the final point
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import casadi as ca
import numpy as np

from ..exceptions import DataIntegrityError
from ..input_validation import validate_array_shape
from ..dc_types import FloatArray
from .types_transcription import ConstraintLayout, Constraints


logger = logging.getLogger(__name__)

# (field name, block index or None, column) for every flattened column slice
_Slot = tuple[str, int | None, int]


def _iterate_slots(layout: ConstraintLayout) -> Iterator[_Slot]:
    for index in range(len(layout.endpoint_sizes)):
        yield ("endpoint", index, 0)

    mesh_path = not layout.enforce_path_constraint_midpoints
    for imesh in range(layout.num_mesh_intervals):
        yield ("defects", None, imesh)
        for column in layout.interval_point_columns[imesh]:
            yield ("multibody_residuals", None, column)
            yield ("auxiliary_residuals", None, column)
        yield ("kinematic", None, imesh)
        path_columns = (imesh,) if mesh_path else layout.interval_point_columns[imesh]
        for column in path_columns:
            for index in range(len(layout.path_sizes)):
                yield ("path", index, column)
        for column in layout.interp_control_columns[imesh]:
            yield ("interp_controls", None, column)

    last_point = layout.num_points - 1
    yield ("multibody_residuals", None, last_point)
    yield ("auxiliary_residuals", None, last_point)
    yield ("kinematic", None, layout.num_mesh_points - 1)
    last_path_column = layout.num_path_columns - 1
    for index in range(len(layout.path_sizes)):
        yield ("path", index, last_path_column)


def _block(constraints: Constraints, name: str, index: int | None) -> Any:
    value = getattr(constraints, name)
    return value if index is None else value[index]


def _expected_shape(layout: ConstraintLayout, name: str, index: int | None) -> tuple[int, int]:
    shapes: dict[str, Callable[[], tuple[int, int]]] = {
        "endpoint": lambda: layout.endpoint_shape(index or 0),
        "defects": lambda: layout.defects_shape,
        "multibody_residuals": lambda: layout.multibody_shape,
        "auxiliary_residuals": lambda: layout.auxiliary_shape,
        "kinematic": lambda: layout.kinematic_shape,
        "path": lambda: layout.path_shape(index or 0),
        "interp_controls": lambda: layout.interp_controls_shape,
    }
    return shapes[name]()


def _validate_block_shapes(constraints: Constraints, layout: ConstraintLayout) -> None:
    if len(constraints.endpoint) != len(layout.endpoint_sizes):
        raise DataIntegrityError(
            f"Expected {len(layout.endpoint_sizes)} endpoint blocks, got {len(constraints.endpoint)}",
            "Constraint flattening",
        )
    if len(constraints.path) != len(layout.path_sizes):
        raise DataIntegrityError(
            f"Expected {len(layout.path_sizes)} path blocks, got {len(constraints.path)}",
            "Constraint flattening",
        )

    for index, block in enumerate(constraints.endpoint):
        validate_array_shape(
            block, layout.endpoint_shape(index), f"endpoint[{index}]", "constraint flattening"
        )
    for index, block in enumerate(constraints.path):
        validate_array_shape(
            block, layout.path_shape(index), f"path[{index}]", "constraint flattening"
        )
    for name in (
        "defects",
        "multibody_residuals",
        "auxiliary_residuals",
        "kinematic",
        "interp_controls",
    ):
        validate_array_shape(
            getattr(constraints, name),
            _expected_shape(layout, name, None),
            name,
            "constraint flattening",
        )


def flatten_constraints(constraints: Constraints, layout: ConstraintLayout) -> Any:
    """
    Serialize constraint blocks into one column vector.

    Symbolic blocks produce a CasADi column; numeric blocks a 1-D numpy array.

    Raises:
        DataIntegrityError: If any block shape disagrees with the layout, or
            the flattened length differs from the layout total.
    """
    _validate_block_shapes(constraints, layout)

    symbolic = any(
        isinstance(block, ca.MX | ca.SX)
        for block in [
            *constraints.endpoint,
            *constraints.path,
            constraints.defects,
            constraints.multibody_residuals,
            constraints.auxiliary_residuals,
            constraints.kinematic,
            constraints.interp_controls,
        ]
    )

    pieces: list[Any] = []
    offset = 0
    for name, index, column in _iterate_slots(layout):
        block = _block(constraints, name, index)
        num_rows = block.shape[0]
        if num_rows == 0:
            continue
        if isinstance(block, ca.MX):
            pieces.append(block[:, column])
        elif symbolic:
            pieces.append(ca.MX(ca.DM(block[:, column])))
        else:
            pieces.append(np.asarray(block, dtype=np.float64)[:, column])
        offset += num_rows

    if offset != layout.num_constraints:
        raise DataIntegrityError(
            f"Flattened {offset} constraints, expected {layout.num_constraints}",
            "Constraint flattening",
        )

    if symbolic:
        return ca.vertcat(*pieces) if pieces else ca.MX(0, 1)
    if not pieces:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate(pieces)


def _allocate_blocks(layout: ConstraintLayout) -> Constraints:
    return Constraints(
        endpoint=[
            np.zeros(layout.endpoint_shape(i), dtype=np.float64)
            for i in range(len(layout.endpoint_sizes))
        ],
        defects=np.zeros(layout.defects_shape, dtype=np.float64),
        multibody_residuals=np.zeros(layout.multibody_shape, dtype=np.float64),
        auxiliary_residuals=np.zeros(layout.auxiliary_shape, dtype=np.float64),
        kinematic=np.zeros(layout.kinematic_shape, dtype=np.float64),
        path=[
            np.zeros(layout.path_shape(i), dtype=np.float64)
            for i in range(len(layout.path_sizes))
        ],
        interp_controls=np.zeros(layout.interp_controls_shape, dtype=np.float64),
    )


def expand_constraints(flat: FloatArray, layout: ConstraintLayout) -> Constraints:
    """
    Rebuild numeric constraint blocks from a flattened vector.

    Raises:
        DataIntegrityError: If the vector length differs from the layout total.
    """
    values = np.asarray(flat, dtype=np.float64).reshape(-1)
    if values.size != layout.num_constraints:
        raise DataIntegrityError(
            f"Constraint vector has {values.size} entries, expected {layout.num_constraints}",
            "Constraint expansion",
        )

    constraints = _allocate_blocks(layout)
    offset = 0
    for name, index, column in _iterate_slots(layout):
        block = _block(constraints, name, index)
        num_rows = block.shape[0]
        block[:, column] = values[offset : offset + num_rows]
        offset += num_rows

    logger.debug("Expanded %d constraint values", offset)
    return constraints
