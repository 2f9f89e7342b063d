"""Default expression evaluator: compiles ``x``-expressions into callables.

Plain text is parsed with sympy (implicit multiplication, ``^`` as power,
``|a|`` as absolute value) and lambdified against :mod:`math`. Host
applications may supply their own compiler with the same contract:
``compiler(text)`` returns a one-argument callable or raises. Evaluation
failures (exceptions, non-finite values) are reported as ``None`` by
:func:`compile_safe` so geometry code can skip the sample.
"""

from __future__ import annotations

import functools
import logging
import math
from tokenize import TokenError
from typing import Callable, List, Optional, Tuple

import sympy as sp
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

from .errors import ExpressionError

logger = logging.getLogger(__name__)

Evaluator = Callable[[float], float]
ExpressionCompiler = Callable[[str], Evaluator]
SafeEvaluator = Callable[[float], Optional[float]]

WS = ' \t\r\n'

X = sp.Symbol('x')

_TRANSFORMATIONS = standard_transformations + (implicit_multiplication_application, convert_xor)

# names sympy spells differently, or would split into single-letter symbols
_LOCALS = {
    'x': X,
    'e': sp.E,
    'pi': sp.pi,
    'ln': sp.log,
    'log': lambda arg: sp.log(arg, 10),
    'abs': sp.Abs,
    'pow': sp.Pow,
    'ceil': sp.ceiling,
}

_BAR_OPENERS = '+-*/^(,'


# --- LaTeX normalisation ---------------------------------------------------

_LATEX_PASSTHROUGH = {'sin', 'cos', 'tan', 'asin', 'acos', 'atan', 'abs', 'exp', 'ln', 'log', 'sqrt', 'pi'}
_LATEX_TIMES = {'cdot', 'times'}


def _brace_group(text: str, start: int) -> Optional[Tuple[str, int]]:
    if start >= len(text) or text[start] != '{':
        return None
    depth = 0
    for idx in range(start, len(text)):
        ch = text[idx]
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return text[start + 1:idx], idx
    return None


def _skip_spaces(text: str, idx: int) -> int:
    while idx < len(text) and text[idx] == ' ':
        idx += 1
    return idx


def latex_to_expression(text: str) -> str:
    """Convert the LaTeX subset produced by math editors into plain syntax.

    Handles ``\\frac{a}{b}``, ``\\sqrt{a}``, ``^{...}``, ``\\left``/``\\right``,
    ``\\cdot``/``\\times``, ``\\mathrm{...}`` and the named functions.
    """

    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        if text.startswith('\\frac', i):
            i = _skip_spaces(text, i + 5)
            num = _brace_group(text, i)
            if num is None:
                break
            i = _skip_spaces(text, num[1] + 1)
            den = _brace_group(text, i)
            if den is None:
                break
            i = den[1] + 1
            out.append(f'({latex_to_expression(num[0])})/({latex_to_expression(den[0])})')
            continue
        if text.startswith('\\sqrt', i):
            i = _skip_spaces(text, i + 5)
            radicand = _brace_group(text, i)
            if radicand is None:
                break
            i = radicand[1] + 1
            out.append(f'sqrt({latex_to_expression(radicand[0])})')
            continue
        if text.startswith('\\left', i):
            i += 5
            continue
        if text.startswith('\\right', i):
            i += 6
            continue
        ch = text[i]
        if ch == '^' and i + 1 < n and text[i + 1] == '{':
            group = _brace_group(text, i + 1)
            if group is None:
                break
            out.append(f'^({latex_to_expression(group[0])})')
            i = group[1] + 1
            continue
        if ch == '{':
            group = _brace_group(text, i)
            if group is None:
                break
            out.append(f'({latex_to_expression(group[0])})')
            i = group[1] + 1
            continue
        if ch == '\\':
            j = i + 1
            while j < n and text[j].isalpha():
                j += 1
            command = text[i + 1:j]
            if command in _LATEX_TIMES:
                out.append('*')
            elif command in _LATEX_PASSTHROUGH:
                out.append(command)
            elif command == 'mathrm':
                j = _skip_spaces(text, j)
                group = _brace_group(text, j)
                if group is not None:
                    out.append(latex_to_expression(group[0]))
                    i = group[1] + 1
                    continue
            i = j
            continue
        if ch in WS:
            i += 1
            continue
        out.append(ch)
        i += 1
    return ''.join(out)


def normalize_expression(expression: str) -> str:
    trimmed = expression.strip()
    if not trimmed:
        return ''
    if not any(ch in trimmed for ch in '\\{}'):
        return trimmed
    return latex_to_expression(trimmed)


def _replace_abs_bars(text: str) -> str:
    """Rewrite ``|a|`` as ``Abs(a)``; a bar after an operand closes the innermost pair."""

    out: List[str] = []
    depth = 0
    for ch in text:
        if ch != '|':
            out.append(ch)
            continue
        prev = ''.join(out).rstrip()[-1:]
        if depth and prev and prev not in _BAR_OPENERS:
            out.append(')')
            depth -= 1
        else:
            out.append(' Abs(')
            depth += 1
    if depth:
        raise ExpressionError(f'unbalanced |...| in {text!r}')
    return ''.join(out)


def _unknown_names(expr: sp.Expr) -> List[str]:
    names = {str(s) for s in expr.free_symbols if s != X}
    names.update(str(f.func) for f in expr.atoms(AppliedUndef))
    return sorted(names)


@functools.lru_cache(maxsize=256)
def compile_expression(expression: str) -> Evaluator:
    """Compile ``expression`` into a callable of ``x``.

    Raises :class:`ExpressionError` when the text is empty, unparseable, or
    mentions anything other than ``x``, constants and known functions.
    """

    raw = normalize_expression(expression)
    if not raw:
        raise ExpressionError('empty expression')
    source = _replace_abs_bars(raw)
    try:
        expr = parse_expr(source, local_dict=dict(_LOCALS), transformations=_TRANSFORMATIONS)
    except (sp.SympifyError, SyntaxError, TokenError, TypeError, ValueError, AttributeError) as exc:
        raise ExpressionError(f'cannot parse {raw!r}: {exc}') from exc
    if not isinstance(expr, sp.Expr):
        raise ExpressionError(f'{raw!r} is not an expression of x')
    unknown = _unknown_names(expr)
    if unknown:
        raise ExpressionError(f'unknown name(s) in {raw!r}: {", ".join(unknown)}')
    logger.debug("Compiled %r as %s", expression, expr)
    return sp.lambdify(X, expr, 'math')


def compile_safe(
    expression: str, compiler: Optional[ExpressionCompiler] = None
) -> Optional[SafeEvaluator]:
    """Compile ``expression`` and wrap it so failures yield ``None``.

    Returns ``None`` when the expression does not compile.
    """

    compile_fn = compiler or compile_expression
    try:
        evaluator = compile_fn(expression)
    except Exception as exc:
        logger.debug("Expression %r did not compile: %s", expression, exc)
        return None

    def safe(x: float) -> Optional[float]:
        try:
            y = float(evaluator(x))
        except Exception:
            return None
        return y if math.isfinite(y) else None

    return safe
