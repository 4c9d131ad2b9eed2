"""Parsing and evaluation of single-variable complex expressions.

Text is parsed once with SymPy and compiled into a tree of closures that
evaluate against a private mpmath context. Rational powers are multi-valued:
``w**(p/q)`` yields ``q`` candidates ordered by branch index, so the first
candidate of any result is always the principal branch.
"""

from __future__ import annotations

import cmath
import operator
from itertools import islice, product
from typing import Callable

import mpmath
import sympy
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

DOUBLE_PRECISION = 53
MAX_CANDIDATES = 64

_TRANSFORMATIONS = standard_transformations + (implicit_multiplication_application, convert_xor)

# SymPy function class name -> mpmath context attribute.
_FUNCTIONS = {
    "sin": "sin",
    "cos": "cos",
    "tan": "tan",
    "cot": "cot",
    "sec": "sec",
    "csc": "csc",
    "asin": "asin",
    "acos": "acos",
    "atan": "atan",
    "acot": "acot",
    "sinh": "sinh",
    "cosh": "cosh",
    "tanh": "tanh",
    "coth": "coth",
    "asinh": "asinh",
    "acosh": "acosh",
    "atanh": "atanh",
    "exp": "exp",
    "log": "log",
    "gamma": "gamma",
    "zeta": "zeta",
    "erf": "erf",
    "Abs": "fabs",
    "re": "re",
    "im": "im",
    "arg": "arg",
    "conjugate": "conj",
    "floor": "floor",
    "ceiling": "ceil",
}

_CONSTANTS = {
    "Pi": "pi",
    "Exp1": "e",
    "EulerGamma": "euler",
    "Catalan": "catalan",
    "GoldenRatio": "phi",
}

Evaluator = Callable[[mpmath.mpc], list]


class ExpressionError(Exception):
    """Base class for expression failures."""


class ExpressionParseError(ExpressionError):
    """Raised when the expression text cannot be turned into an evaluable tree."""


class ExpressionEvaluationError(ExpressionError):
    """Raised when an expression has no finite value at a sample."""


def _combine(left: list, right: list, op: Callable) -> list:
    return [op(a, b) for a, b in islice(product(left, right), MAX_CANDIDATES)]


class Expression:
    """A parsed expression bound to one free variable."""

    def __init__(self, text: str, tree: sympy.Expr, variable: str, precision: int) -> None:
        self.text = text
        self.tree = tree
        self.variable = variable
        self.precision = precision
        self._symbol = sympy.Symbol(variable)
        self._ctx = mpmath.MPContext()
        self._ctx.prec = precision
        self._evaluate = self._compile(tree)

    def fork(self) -> "Expression":
        """Return an evaluator over the same tree with its own mpmath context.

        mpmath functions raise and restore the context precision while they
        run, so a context must not be shared between threads.
        """

        return Expression(self.text, self.tree, self.variable, self.precision)

    @property
    def context_precision(self) -> int:
        return self._ctx.prec

    def __repr__(self) -> str:
        return f"Expression({self.text!r}, variable={self.variable!r}, precision={self.precision})"

    def evaluate(self, value: complex) -> list[complex]:
        """Evaluate at ``value`` and return every candidate, principal branch first."""

        ctx = self._ctx
        z = ctx.mpc(value.real, value.imag)
        try:
            results = [complex(candidate) for candidate in self._evaluate(z)]
        except ZeroDivisionError as exc:
            raise ExpressionEvaluationError(f"division by zero at {value}") from exc
        except (ArithmeticError, ValueError, mpmath.NoConvergence) as exc:
            raise ExpressionEvaluationError(f"{exc} at {value}") from exc

        for result in results:
            if not cmath.isfinite(result):
                raise ExpressionEvaluationError(f"non-finite result {result} at {value}")
        return results

    def evaluate_first(self, value: complex) -> complex:
        return self.evaluate(value)[0]

    def _compile(self, node: sympy.Basic) -> Evaluator:
        if node == self._symbol:
            return lambda z: [z]
        if node.is_Number or node.is_NumberSymbol or node is sympy.I:
            constant = self._constant(node)
            return lambda z: [constant]
        if node.is_Add:
            return self._fold(node.args, operator.add)
        if node.is_Mul:
            return self._fold(node.args, operator.mul)
        if node.is_Pow:
            return self._compile_pow(*node.args)
        if node.is_Function and type(node).__name__ in _FUNCTIONS:
            return self._compile_function(getattr(self._ctx, _FUNCTIONS[type(node).__name__]), node.args)
        raise ExpressionParseError(f"unsupported term {node}")

    def _constant(self, node: sympy.Basic):
        ctx = self._ctx
        if node is sympy.I:
            return ctx.mpc(0, 1)
        if node.is_Integer:
            return ctx.mpf(int(node))
        if node.is_Rational:
            return ctx.mpf(int(node.p)) / int(node.q)
        if node.is_Float:
            return ctx.mpf(str(node))
        name = type(node).__name__
        if name in _CONSTANTS:
            return +getattr(ctx, _CONSTANTS[name])
        raise ExpressionParseError(f"unsupported constant {node}")

    def _fold(self, args, op: Callable) -> Evaluator:
        parts = [self._compile(arg) for arg in args]
        first, rest = parts[0], parts[1:]

        def evaluate(z):
            result = first(z)
            for part in rest:
                result = _combine(result, part(z), op)
            return result

        return evaluate

    def _compile_pow(self, base_node: sympy.Basic, exponent_node: sympy.Basic) -> Evaluator:
        ctx = self._ctx
        base = self._compile(base_node)

        if exponent_node.is_Integer:
            n = int(exponent_node)

            def integer_power(z):
                values = []
                for b in base(z):
                    if n < 0 and b == 0:
                        raise ZeroDivisionError("zero raised to a negative power")
                    values.append(b ** n)
                return values

            return integer_power

        if exponent_node.is_Rational:
            p, q = int(exponent_node.p), int(exponent_node.q)

            def rational_power(z):
                values = []
                for b in base(z):
                    if b == 0:
                        if p < 0:
                            raise ZeroDivisionError("zero raised to a negative power")
                        values.append(ctx.mpc(0))
                        continue
                    values.extend(ctx.root(b, q, k) ** p for k in range(q))
                return values[:MAX_CANDIDATES]

            return rational_power

        exponent = self._compile(exponent_node)
        return lambda z: _combine(base(z), exponent(z), ctx.power)

    def _compile_function(self, fn: Callable, args) -> Evaluator:
        parts = [self._compile(arg) for arg in args]

        def evaluate(z):
            arguments = [part(z) for part in parts]
            return [fn(*combo) for combo in islice(product(*arguments), MAX_CANDIDATES)]

        return evaluate


def _validate(tree: sympy.Basic, symbol: sympy.Symbol) -> None:
    for node in sympy.preorder_traversal(tree):
        if isinstance(node, AppliedUndef):
            raise ExpressionParseError(f"unknown function {type(node).__name__}")
        if node.is_Symbol and node != symbol:
            raise ExpressionParseError(f"unknown symbol {node}; only {symbol} may vary")
        if node.is_Atom and node.is_number and node.is_finite is not True:
            raise ExpressionParseError(f"expression contains undefined value {node}")


def parse_expression(text: str, variable: str = "z", precision: int = DOUBLE_PRECISION) -> Expression:
    """Parse ``text`` into an :class:`Expression` of the free ``variable``."""

    if precision < DOUBLE_PRECISION:
        raise ValueError(f"precision must be at least {DOUBLE_PRECISION} bits, got {precision}")
    if not variable.isidentifier():
        raise ValueError(f"invalid variable name {variable!r}")
    if not text or not text.strip():
        raise ExpressionParseError("expression is empty")

    symbol = sympy.Symbol(variable)
    local_dict = {"i": sympy.I, "e": sympy.E}
    local_dict[variable] = symbol

    try:
        tree = parse_expr(text, local_dict=local_dict, transformations=_TRANSFORMATIONS)
    except Exception as exc:
        raise ExpressionParseError(f"could not parse {text!r}: {exc}") from exc

    if not isinstance(tree, sympy.Expr):
        raise ExpressionParseError(f"{text!r} is not an arithmetic expression")

    _validate(tree, symbol)
    return Expression(text, tree, variable, precision)
