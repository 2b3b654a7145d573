# dircol/transcription/variables_transcription.py
"""
Decision variable bookkeeping: shapes, bounds, scaling and the canonical
ordering used to serialize every category into the NLP decision vector.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import casadi as ca
import numpy as np

from ..dc_types import MESH_VARIABLES, POINT_VARIABLES, Bounds, FloatArray, IntArray, Var
from ..exceptions import DataIntegrityError
from ..input_validation import validate_array_shape
from .mesh_transcription import GridLayout
from .scaling_transcription import compute_scaling_factors, scale_values, unscale_values


logger = logging.getLogger(__name__)

VariableOrder = list[tuple[Var, int]]
Index = int | slice | Sequence[int] | IntArray


def _as_index_array(index: Index, size: int) -> IntArray:
    return np.arange(size, dtype=np.int64)[index].reshape(-1)


class VariableLayout:
    """
    Owner of all decision variable categories of one transcription.

    Each category is a (rows x columns) matrix. The scaled symbolic values are
    built from one MX symbol per column so that the flattened decision vector
    is a concatenation of pure symbols. Bounds are stored unscaled; dilate and
    shift are stored per row.
    """

    def __init__(self, scale_variables_using_bounds: bool) -> None:
        self.scale_variables_using_bounds = scale_variables_using_bounds
        self._shapes: dict[Var, tuple[int, int]] = {}
        self._column_symbols: dict[Var, list[ca.MX]] = {}
        self.lower: dict[Var, FloatArray] = {}
        self.upper: dict[Var, FloatArray] = {}
        self.dilate: dict[Var, FloatArray] = {}
        self.shift: dict[Var, FloatArray] = {}
        self._order: VariableOrder | None = None

    # ------------------------------------------------------------------
    # allocation
    # ------------------------------------------------------------------

    def allocate(self, grid: GridLayout, rows: dict[Var, int]) -> None:
        """
        Create every category listed in `rows` with its grid-defined shape.

        Time and parameter categories get one column per mesh point, point
        categories one column per variable-carrying grid point, slacks and
        projection states one column per mesh interval.
        """
        for var, num_rows in rows.items():
            if var in MESH_VARIABLES:
                num_columns = grid.num_mesh_points
            elif var in POINT_VARIABLES:
                num_columns = grid.num_points
            else:
                num_columns = grid.num_mesh_intervals

            self._shapes[var] = (num_rows, num_columns)
            self._column_symbols[var] = [
                ca.MX.sym(f"{var.value}_{icol}", num_rows) for icol in range(num_columns)
            ]
            self.lower[var] = np.full((num_rows, num_columns), -np.inf, dtype=np.float64)
            self.upper[var] = np.full((num_rows, num_columns), np.inf, dtype=np.float64)
            self.dilate[var] = np.ones(num_rows, dtype=np.float64)
            self.shift[var] = np.zeros(num_rows, dtype=np.float64)

            logger.debug("Allocated %s with shape %s", var.value, self._shapes[var])

    def _require(self, var: Var) -> tuple[int, int]:
        if var not in self._shapes:
            raise DataIntegrityError(
                f"Variable category '{var.value}' was not allocated", "Variable layout"
            )
        return self._shapes[var]

    @property
    def categories(self) -> list[Var]:
        return list(self._shapes)

    def shape(self, var: Var) -> tuple[int, int]:
        return self._require(var)

    def has(self, var: Var) -> bool:
        return var in self._shapes

    # ------------------------------------------------------------------
    # bounds and scaling
    # ------------------------------------------------------------------

    def set_variable_bounds(self, var: Var, rows: Index, columns: Index, bounds: Bounds) -> None:
        """Write a bound sub-block; an unset side is stored as +/-inf."""
        num_rows, num_columns = self._require(var)
        index = np.ix_(_as_index_array(rows, num_rows), _as_index_array(columns, num_columns))
        self.lower[var][index] = bounds.lower_or_inf
        self.upper[var][index] = bounds.upper_or_inf

    def set_variable_scaling(self, var: Var, rows: Index, bounds: Bounds) -> None:
        num_rows, _ = self._require(var)
        factors = compute_scaling_factors(
            bounds.lower_or_inf, bounds.upper_or_inf, self.scale_variables_using_bounds
        )
        selected = _as_index_array(rows, num_rows)
        self.dilate[var][selected] = factors.dilate
        self.shift[var][selected] = factors.shift

    def scale_variables(self, unscaled: dict[Var, Any]) -> dict[Var, Any]:
        return {
            var: scale_values(value, self.dilate[var], self.shift[var])
            for var, value in unscaled.items()
        }

    def unscale_variables(self, scaled: dict[Var, Any]) -> dict[Var, Any]:
        return {
            var: unscale_values(value, self.dilate[var], self.shift[var])
            for var, value in scaled.items()
        }

    def scaled_symbols(self) -> dict[Var, ca.MX]:
        """Scaled symbolic matrix of every category."""
        symbols: dict[Var, ca.MX] = {}
        for var, (num_rows, num_columns) in self._shapes.items():
            if num_rows == 0 or num_columns == 0:
                symbols[var] = ca.MX(num_rows, num_columns)
            else:
                symbols[var] = ca.horzcat(*self._column_symbols[var])
        return symbols

    def unscaled_symbols(self) -> dict[Var, ca.MX]:
        return self.unscale_variables(self.scaled_symbols())

    def scaled_lower_bounds(self) -> dict[Var, FloatArray]:
        return self.scale_variables(self.lower)

    def scaled_upper_bounds(self) -> dict[Var, FloatArray]:
        return self.scale_variables(self.upper)

    # ------------------------------------------------------------------
    # ordering, flatten and expand
    # ------------------------------------------------------------------

    def set_variable_order(self, order: VariableOrder) -> None:
        """
        Install the canonical serialization order.

        Raises:
            DataIntegrityError: If the order references an unallocated
                category or does not visit every column exactly once.
        """
        visited: dict[Var, IntArray] = {
            var: np.zeros(num_columns, dtype=np.int64)
            for var, (_, num_columns) in self._shapes.items()
        }
        for var, column in order:
            _, num_columns = self._require(var)
            if not 0 <= column < num_columns:
                raise DataIntegrityError(
                    f"Variable order references column {column} of '{var.value}' "
                    f"with {num_columns} columns",
                    "Variable ordering",
                )
            visited[var][column] += 1

        for var, counts in visited.items():
            if np.any(counts != 1):
                raise DataIntegrityError(
                    f"Variable order must visit every column of '{var.value}' exactly once",
                    "Variable ordering",
                )

        self._order = list(order)

    @property
    def variable_order(self) -> VariableOrder:
        if self._order is None:
            raise DataIntegrityError("Variable order has not been set", "Variable layout")
        return self._order

    @property
    def num_variables(self) -> int:
        return sum(rows * columns for rows, columns in self._shapes.values())

    def flatten_symbols(self) -> ca.MX:
        """Scaled decision vector: the column symbols concatenated in canonical order."""
        pieces = [
            self._column_symbols[var][column]
            for var, column in self.variable_order
            if self._shapes[var][0] > 0
        ]
        return ca.vertcat(*pieces) if pieces else ca.MX(0, 1)

    def flatten_variables(self, values: dict[Var, FloatArray]) -> FloatArray:
        """Serialize numeric category matrices into one vector in canonical order."""
        flat = np.zeros(self.num_variables, dtype=np.float64)
        offset = 0
        for var, column in self.variable_order:
            if var not in values:
                raise DataIntegrityError(
                    f"Missing values for variable category '{var.value}'", "Variable flattening"
                )
            matrix = np.asarray(values[var], dtype=np.float64)
            validate_array_shape(matrix, self._shapes[var], var.value, "variable flattening")
            num_rows = self._shapes[var][0]
            flat[offset : offset + num_rows] = matrix[:, column]
            offset += num_rows

        if offset != self.num_variables:
            raise DataIntegrityError(
                f"Flattened {offset} variables, expected {self.num_variables}",
                "Variable flattening",
            )
        return flat

    def expand_variables(self, flat: FloatArray) -> dict[Var, FloatArray]:
        """Rebuild numeric category matrices from a canonical-order vector."""
        values = np.asarray(flat, dtype=np.float64).reshape(-1)
        if values.size != self.num_variables:
            raise DataIntegrityError(
                f"Decision vector has {values.size} entries, expected {self.num_variables}",
                "Variable expansion",
            )

        expanded = {
            var: np.zeros(shape, dtype=np.float64) for var, shape in self._shapes.items()
        }
        offset = 0
        for var, column in self.variable_order:
            num_rows = self._shapes[var][0]
            expanded[var][:, column] = values[offset : offset + num_rows]
            offset += num_rows
        return expanded
