import casadi as ca
import pytest

import dircol as dc
from dircol.problem.variables_problem import _extract_casadi_symbol as _symbol


def _evaluate(expression, symbol, value):
    return float(ca.Function("f", [symbol], [ca.MX(expression)])(value))


class TestSymbolWrappers:
    def setup_method(self):
        self.problem = dc.Problem("Wrappers")
        self.t = self.problem.time(initial=0.0, final=1.0)
        self.x = self.problem.state("x")

    def test_arithmetic_builds_expressions(self):
        x = self.x
        expression = 2.0 * x + x**2 - x / 4.0 - 1.0
        assert isinstance(expression, ca.MX)
        assert _evaluate(expression, _symbol(x), 2.0) == pytest.approx(4.0 + 4.0 - 0.5 - 1.0)

    @pytest.mark.parametrize(
        "build, value, expected",
        [
            (lambda x: x > 0.5, 1.0, 1.0),
            (lambda x: x > 0.5, 0.0, 0.0),
            (lambda x: x >= 1.0, 1.0, 1.0),
            (lambda x: x < 0.5, 1.0, 0.0),
            (lambda x: x <= 0.0, 0.0, 1.0),
        ],
    )
    def test_comparisons_build_expressions(self, build, value, expected):
        expression = build(self.x)
        assert isinstance(expression, ca.MX)
        assert _evaluate(expression, _symbol(self.x), value) == expected

    def test_comparison_between_wrappers(self):
        y = self.problem.state("y")
        expression = ca.MX(self.x > y)
        function = ca.Function("f", [_symbol(self.x), _symbol(y)], [expression])
        assert float(function(2.0, 1.0)) == 1.0
        assert float(function(1.0, 2.0)) == 0.0

    def test_equality_is_symbol_identity(self):
        y = self.problem.state("y")
        assert self.x == self.x
        assert not (self.x == y)
        assert self.x == _symbol(self.x)
        assert {self.x: 1}[self.x] == 1

    def test_endpoint_symbols_are_distinct(self):
        for variable in (self.t, self.x):
            symbols = [_symbol(variable), variable.initial, variable.final]
            assert all(symbol.is_symbolic() for symbol in symbols)
            assert len({symbol.name() for symbol in symbols}) == 3

    def test_symbol_names(self):
        assert _symbol(self.x).name() == "x"
        assert self.x.initial.name() == "x_initial"
        assert self.t.final.name() == "tf"
