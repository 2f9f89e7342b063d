"""Intersections between functions and lines.

Function roots are located by sign changes over a fixed sample grid and then
refined with :func:`scipy.optimize.brentq`. Lines are given by two resolved
points and their kind; the segment/ray bounds are honoured with a small slack.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from .elements import Coord
from .expression import SafeEvaluator

logger = logging.getLogger(__name__)

VERTICAL_TOLERANCE = 1e-4
BOUNDS_SLACK = 1e-3
PARALLEL_TOLERANCE = 1e-4
_MAX_ROOT_ITERATIONS = 50


class LineGeometry(NamedTuple):
    start: Coord
    end: Coord
    kind: str = "segment"


@dataclass(frozen=True)
class LineEquation:
    """``y = slope * x + intercept``, or ``x = x`` for a vertical line."""

    vertical: bool
    slope: float = 0.0
    intercept: float = 0.0
    x: float = 0.0

    def __call__(self, x: float) -> Optional[float]:
        if self.vertical:
            return None
        return self.slope * x + self.intercept


def line_equation(line: LineGeometry) -> LineEquation:
    (x1, y1), (x2, y2) = line.start, line.end
    dx = x2 - x1
    if abs(dx) < VERTICAL_TOLERANCE:
        return LineEquation(vertical=True, x=x1)
    slope = (y2 - y1) / dx
    return LineEquation(vertical=False, slope=slope, intercept=y1 - slope * x1)


def line_x_extent(line: LineGeometry) -> Tuple[float, float]:
    """Range of x covered by ``line`` given its kind."""

    (x1, _), (x2, _) = line.start, line.end
    if line.kind == "segment":
        return min(x1, x2), max(x1, x2)
    if line.kind == "ray":
        return (x1, math.inf) if x2 >= x1 else (-math.inf, x1)
    return -math.inf, math.inf


def point_within_line(point: Coord, line: LineGeometry) -> bool:
    """Whether ``point`` (known to lie on the carrier line) is inside the kind's bounds."""

    if line.kind == "line":
        return True
    (x1, y1), (x2, y2) = line.start, line.end
    x, y = point
    if line.kind == "segment":
        return (
            min(x1, x2) - BOUNDS_SLACK <= x <= max(x1, x2) + BOUNDS_SLACK
            and min(y1, y2) - BOUNDS_SLACK <= y <= max(y1, y2) + BOUNDS_SLACK
        )
    dx = x2 - x1
    dy = y2 - y1
    if dx == 0 and dy == 0:
        return False
    t = (x - x1) / dx if abs(dx) > abs(dy) else (y - y1) / dy
    return t >= -BOUNDS_SLACK


def find_roots(
    h: Callable[[float], float],
    x_min: float,
    x_max: float,
    *,
    tolerance: float = 1e-4,
    samples: int = 200,
) -> List[float]:
    """Sorted roots of ``h`` on ``[x_min, x_max]``.

    ``h`` returns NaN where it has no value; such sample intervals are skipped.
    Sign changes are refined with Brent's method. Samples already within
    ``tolerance`` of zero are recorded directly. Roots closer than
    ``tolerance`` to the previous one are dropped.
    """

    if not (math.isfinite(x_min) and math.isfinite(x_max)) or x_max <= x_min:
        return []
    xs = np.linspace(x_min, x_max, max(1, samples) + 1)
    values = [h(float(x)) for x in xs]
    roots: List[float] = []

    def record(root: float) -> None:
        if not roots or abs(root - roots[-1]) > tolerance:
            roots.append(root)

    for i in range(len(xs) - 1):
        a, b = float(xs[i]), float(xs[i + 1])
        ya, yb = values[i], values[i + 1]
        if not (math.isfinite(ya) and math.isfinite(yb)):
            continue
        if ya * yb < 0:
            try:
                root = brentq(h, a, b, xtol=tolerance, maxiter=_MAX_ROOT_ITERATIONS)
            except (ValueError, RuntimeError) as exc:
                logger.debug("Root refinement failed on [%.6g, %.6g]: %s", a, b, exc)
                continue
            if math.isfinite(h(root)):
                record(float(root))
        elif abs(ya) < tolerance:
            record(a)
    last = values[-1]
    if math.isfinite(last) and abs(last) < tolerance:
        record(float(xs[-1]))
    return sorted(roots)


def _difference(f1: SafeEvaluator, f2: Callable[[float], Optional[float]]) -> Callable[[float], float]:
    def h(x: float) -> float:
        y1 = f1(x)
        y2 = f2(x)
        if y1 is None or y2 is None:
            return math.nan
        return y1 - y2

    return h


def find_function_intersections(
    f1: SafeEvaluator,
    f2: SafeEvaluator,
    x_min: float,
    x_max: float,
    *,
    tolerance: float = 1e-4,
    samples: int = 200,
) -> List[float]:
    """x values in ``[x_min, x_max]`` where the two graphs meet."""

    return find_roots(_difference(f1, f2), x_min, x_max, tolerance=tolerance, samples=samples)


def find_line_function_intersections(
    line: LineGeometry,
    evaluate: SafeEvaluator,
    x_min: float,
    x_max: float,
    *,
    tolerance: float = 1e-4,
    samples: int = 200,
) -> List[Coord]:
    eq = line_equation(line)
    if eq.vertical:
        if not x_min <= eq.x <= x_max:
            return []
        y = evaluate(eq.x)
        if y is None or not point_within_line((eq.x, y), line):
            return []
        return [(eq.x, y)]

    points: List[Coord] = []
    for x in find_roots(_difference(evaluate, eq), x_min, x_max, tolerance=tolerance, samples=samples):
        y = evaluate(x)
        if y is not None and point_within_line((x, y), line):
            points.append((x, y))
    return points


def find_line_line_intersection(first: LineGeometry, second: LineGeometry) -> Optional[Coord]:
    """Crossing point of two lines within both kinds' bounds; ``None`` when parallel."""

    (x1, y1), (x2, y2) = first.start, first.end
    (x3, y3), (x4, y4) = second.start, second.end
    dx1, dy1 = x2 - x1, y2 - y1
    dx2, dy2 = x4 - x3, y4 - y3
    denom = dx1 * dy2 - dy1 * dx2
    if abs(denom) < PARALLEL_TOLERANCE:
        return None
    t = ((x3 - x1) * dy2 - (y3 - y1) * dx2) / denom
    u = ((x3 - x1) * dy1 - (y3 - y1) * dx1) / denom
    if not (_within_kind(t, first.kind) and _within_kind(u, second.kind)):
        return None
    return (x1 + t * dx1, y1 + t * dy1)


def _within_kind(t: float, kind: str) -> bool:
    if kind == "segment":
        return -BOUNDS_SLACK <= t <= 1.0 + BOUNDS_SLACK
    if kind == "ray":
        return t >= -BOUNDS_SLACK
    return True
