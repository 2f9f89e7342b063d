import math

import pytest

from graphplane.errors import ExpressionError
from graphplane.expression import (
    compile_expression,
    compile_safe,
    latex_to_expression,
    normalize_expression,
)


@pytest.mark.parametrize(
    'text, x, expected',
    [
        ('x^2', 3.0, 9.0),
        ('x**3', 2.0, 8.0),
        ('2x + 1', 2.0, 5.0),
        ('-x^2', 2.0, -4.0),
        ('sin(pi/2)', 0.0, 1.0),
        ('|x - 3|', 1.0, 2.0),
        ('pow(2, x)', 3.0, 8.0),
        ('2(x + 1)', 1.0, 4.0),
        ('exp(0) + ln(e)', 0.0, 2.0),
        ('1e-1 * x', 5.0, 0.5),
        ('log(100) + ceil(x)', 0.2, 3.0),
        ('||x| - 4|', -1.0, 3.0),
        ('3|x|', -2.0, 6.0),
    ],
)
def test_compile_expression_evaluates(text, x, expected):
    assert compile_expression(text)(x) == pytest.approx(expected)


def test_power_binds_tighter_than_unary_minus_and_is_right_associative():
    assert compile_expression('2^3^2')(0.0) == pytest.approx(512.0)
    assert compile_expression('-2^2')(0.0) == pytest.approx(-4.0)


@pytest.mark.parametrize('text', ['', '   ', 'x +', 'foo(x)', 'sin(x, 2)', 'x $ 2', '(x', 'x + y', '|x'])
def test_compile_expression_rejects_bad_input(text):
    with pytest.raises(ExpressionError):
        compile_expression(text)


def test_latex_fraction_and_root():
    assert latex_to_expression(r'\frac{1}{x}') == '(1)/(x)'
    assert compile_expression(r'\frac{1}{x}')(2.0) == pytest.approx(0.5)
    assert compile_expression(r'\sqrt{x}')(4.0) == pytest.approx(2.0)


def test_latex_braced_exponent_and_operators():
    assert compile_expression('x^{2}')(3.0) == pytest.approx(9.0)
    assert compile_expression(r'2\cdot x')(4.0) == pytest.approx(8.0)
    assert compile_expression(r'\left(x+1\right)\times 2')(1.0) == pytest.approx(4.0)
    assert compile_expression(r'\sin{x}')(math.pi / 2) == pytest.approx(1.0)


def test_plain_text_is_not_rewritten():
    assert normalize_expression('  x^2 + 1 ') == 'x^2 + 1'


@pytest.mark.parametrize('text, x', [('1/x', 0.0), ('sqrt(x)', -1.0), ('ln(x)', 0.0), ('exp(x)', 1000.0)])
def test_compile_safe_reports_missing_values_as_none(text, x):
    evaluate = compile_safe(text)

    assert evaluate is not None
    assert evaluate(x) is None


def test_compile_safe_returns_none_for_uncompilable_text():
    assert compile_safe('sin(') is None


def test_compile_safe_uses_host_compiler():
    calls = []

    def compiler(text):
        calls.append(text)
        return lambda x: float('inf') if x > 1 else 2 * x

    evaluate = compile_safe('anything', compiler)

    assert calls == ['anything']
    assert evaluate(0.5) == pytest.approx(1.0)
    assert evaluate(2.0) is None


def test_compile_safe_swallows_host_compiler_errors():
    def compiler(text):
        raise RuntimeError('no parser')

    assert compile_safe('x', compiler) is None
