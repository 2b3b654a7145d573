"""
Symbol wrappers returned by the Problem builder.

A wrapper behaves like its CasADi symbol in expressions and additionally
exposes the symbols of its value at the initial and final time, which
endpoint constraints and costs are written in.
"""

from __future__ import annotations

from typing import Any, cast

import casadi as ca


def _extract_casadi_symbol(expr: Any) -> Any:
    """Extract CasADi symbol from wrapper objects, otherwise return as-is."""
    if isinstance(expr, _SymbolicVariableBase):
        return expr._symbolic_var
    return expr


class _SymbolicVariableBase:
    """
    CasADi symbol wrapper.

    Equality and hashing follow symbol identity so wrappers can key the
    dynamics dictionary; every other operator builds an MX expression.
    """

    def __init__(self, symbolic_var: ca.MX) -> None:
        self._symbolic_var = symbolic_var

    def __casadi_MX__(self) -> ca.MX:  # noqa: N802
        return self._symbolic_var

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
        return getattr(self._symbolic_var, name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._symbolic_var.name()})"

    def __hash__(self) -> int:
        return hash(self._symbolic_var)

    def __eq__(self, other: Any) -> bool:
        return self._symbolic_var is _extract_casadi_symbol(other)

    # Arithmetic operators
    def __add__(self, other: Any) -> ca.MX:
        return self._symbolic_var + _extract_casadi_symbol(other)

    def __radd__(self, other: Any) -> ca.MX:
        return other + self._symbolic_var

    def __sub__(self, other: Any) -> ca.MX:
        return self._symbolic_var - _extract_casadi_symbol(other)

    def __rsub__(self, other: Any) -> ca.MX:
        return other - self._symbolic_var

    def __mul__(self, other: Any) -> ca.MX:
        return self._symbolic_var * _extract_casadi_symbol(other)

    def __rmul__(self, other: Any) -> ca.MX:
        return other * self._symbolic_var

    def __truediv__(self, other: Any) -> ca.MX:
        return self._symbolic_var / _extract_casadi_symbol(other)

    def __rtruediv__(self, other: Any) -> ca.MX:
        return other / self._symbolic_var

    def __pow__(self, other: Any) -> ca.MX:
        return self._symbolic_var ** _extract_casadi_symbol(other)

    def __neg__(self) -> ca.MX:
        return cast(ca.MX, -self._symbolic_var)

    # Comparison operators; `!=` is left to identity like `==`
    def __lt__(self, other: Any) -> ca.MX:
        return self._symbolic_var < _extract_casadi_symbol(other)

    def __le__(self, other: Any) -> ca.MX:
        return self._symbolic_var <= _extract_casadi_symbol(other)

    def __gt__(self, other: Any) -> ca.MX:
        return self._symbolic_var > _extract_casadi_symbol(other)

    def __ge__(self, other: Any) -> ca.MX:
        return self._symbolic_var >= _extract_casadi_symbol(other)


class _EndpointVariable(_SymbolicVariableBase):
    def __init__(self, name: str, initial_name: str, final_name: str) -> None:
        super().__init__(ca.MX.sym(name, 1))
        self._sym_initial = ca.MX.sym(initial_name, 1)
        self._sym_final = ca.MX.sym(final_name, 1)

    @property
    def initial(self) -> ca.MX:
        return self._sym_initial

    @property
    def final(self) -> ca.MX:
        return self._sym_final


class TimeVariableImpl(_EndpointVariable):
    """Time along the trajectory; `initial` and `final` are t0 and tf."""


class BoundaryVariableImpl(_EndpointVariable):
    """State or control; `initial` and `final` are its values at t0 and tf."""


def create_boundary_variable(name: str) -> BoundaryVariableImpl:
    return BoundaryVariableImpl(name, f"{name}_initial", f"{name}_final")


def create_time_variable() -> TimeVariableImpl:
    return TimeVariableImpl("t", "t0", "tf")
