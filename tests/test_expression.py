import math
import threading
from concurrent.futures import ThreadPoolExecutor

import mpmath
import pytest

from domaincolor import ExpressionEvaluationError, ExpressionParseError, parse_expression
from domaincolor.expression import MAX_CANDIDATES


def test_polynomial():
    assert parse_expression("z*z").evaluate(2 + 1j) == [3 + 4j]
    assert parse_expression("z^2").evaluate(2 + 1j) == [3 + 4j]


def test_implicit_multiplication():
    assert parse_expression("2z").evaluate(1.5) == [3 + 0j]


def test_named_constants():
    assert parse_expression("i*z").evaluate(2) == [2j]
    assert parse_expression("pi").evaluate(0)[0] == pytest.approx(math.pi)
    assert parse_expression("e").evaluate(0)[0] == pytest.approx(math.e)
    assert parse_expression("exp(i*pi)").evaluate(0)[0] == pytest.approx(-1)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("pi*z", mpmath.pi),
        ("exp(1)*z", mpmath.e),
        ("E*z", mpmath.e),
        ("EulerGamma*z", mpmath.euler),
        ("Catalan*z", mpmath.catalan),
        ("GoldenRatio*z", mpmath.phi),
    ],
)
def test_constants_evaluate_to_their_exact_value(text, expected):
    assert parse_expression(text).evaluate(1) == [complex(float(expected))]
    assert parse_expression(text, precision=128).evaluate(2) == [complex(2 * float(expected))]


def test_fork_has_its_own_context():
    expression = parse_expression("gamma(z) + erf(z)", precision=96)
    forked = expression.fork()
    assert forked is not expression
    assert forked._ctx is not expression._ctx
    assert forked.context_precision == 96
    assert forked.evaluate(0.5 + 0.25j) == expression.evaluate(0.5 + 0.25j)


def test_forks_keep_their_precision_across_threads():
    expression = parse_expression("cot(z) + erf(z) + gamma(z)")
    points = [complex(0.1 * k + 0.3, 0.05 * k - 0.7) for k in range(40)]
    expected = [expression.evaluate(z) for z in points]
    local = threading.local()

    def evaluate_all(_):
        if not hasattr(local, "expression"):
            local.expression = expression.fork()
        results = [local.expression.evaluate(z) for z in points]
        return results, local.expression.context_precision

    with ThreadPoolExecutor(max_workers=8) as executor:
        for results, precision in executor.map(evaluate_all, range(32)):
            assert results == expected
            assert precision == 53
    assert expression.context_precision == 53


def test_functions():
    value = parse_expression("sin(z)/z").evaluate(0.5)[0]
    assert value == pytest.approx(math.sin(0.5) / 0.5)
    assert parse_expression("abs(z)").evaluate(3 + 4j)[0] == pytest.approx(5)
    assert parse_expression("re(z) + im(z)").evaluate(3 + 4j)[0] == pytest.approx(7)


def test_square_root_candidates_principal_first():
    candidates = parse_expression("sqrt(z)").evaluate(4)
    assert len(candidates) == 2
    assert candidates[0] == pytest.approx(2)
    assert candidates[1] == pytest.approx(-2)

    assert parse_expression("sqrt(z)").evaluate_first(-4) == pytest.approx(2j)


def test_rational_power_candidates():
    candidates = parse_expression("z^(1/3)").evaluate(8)
    assert len(candidates) == 3
    assert candidates[0] == pytest.approx(2)
    for candidate in candidates:
        assert candidate ** 3 == pytest.approx(8)


def test_candidates_combine_in_product_order():
    candidates = parse_expression("sqrt(z) + z^(1/3)").evaluate(1)
    assert len(candidates) == 6
    assert candidates[0] == pytest.approx(2)


def test_candidates_are_capped():
    assert len(parse_expression("z^(1/70)").evaluate(2)) == MAX_CANDIDATES


def test_precision_changes_result():
    text = "(1 + z)^2 - 1 - 2z"
    high = parse_expression(text, precision=256).evaluate(1e-20)[0]
    low = parse_expression(text, precision=53).evaluate(1e-20)[0]
    assert high.real == pytest.approx(1e-40, rel=1e-6, abs=0)
    assert low.real != pytest.approx(1e-40, rel=1e-3, abs=0)


def test_custom_variable():
    assert parse_expression("w^2", variable="w").evaluate(3) == [9 + 0j]
    with pytest.raises(ExpressionParseError):
        parse_expression("z^2", variable="w")


@pytest.mark.parametrize("text", ["", "   ", "z +", "(z", "x + z", "1/0", "sinc(z)", "z > 1"])
def test_parse_errors(text):
    with pytest.raises(ExpressionParseError):
        parse_expression(text)


def test_precision_below_double_is_rejected():
    with pytest.raises(ValueError):
        parse_expression("z", precision=24)


@pytest.mark.parametrize("text,value", [("1/z", 0), ("log(z)", 0), ("z^(-1/2)", 0)])
def test_evaluation_errors(text, value):
    expression = parse_expression(text)
    with pytest.raises(ExpressionEvaluationError):
        expression.evaluate(value)
