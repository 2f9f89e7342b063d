"""Closest-point projections onto lines, quadratic curves and functions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Tuple

import numpy as np

from .config import EngineConfig, resolve_config
from .elements import Coord, Curve, Element, Function, Line, Point
from .expression import ExpressionCompiler, SafeEvaluator
from .logging_utils import debug_log_call
from .resolve import (
    bezier_derivative,
    bezier_point,
    clamp_line_parameter,
    function_domain,
    function_evaluator,
    resolve_curve_geometry,
    resolve_line_endpoints,
    resolve_point_position,
)

if TYPE_CHECKING:  # pragma: no cover
    from .scene import Scene

logger = logging.getLogger(__name__)

_DEGENERATE_LEN_SQ = 1e-10
_FLAT_GRADIENT = 1e-10
_RESPHI = 2.0 - (1.0 + math.sqrt(5.0)) / 2.0


@dataclass(frozen=True)
class Projection:
    """Closest point on an element.

    ``parameter`` is ``t`` for lines and curves and the argument ``x`` for
    functions.
    """

    coord: Coord
    parameter: float
    distance: float


def _dist_sq(a: Coord, b: Coord) -> float:
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2


def closest_point_on_line(point: Coord, start: Coord, end: Coord, kind: str = "segment") -> Projection:
    """Project ``point`` onto ``start + t * (end - start)``.

    ``t`` is clamped to ``[0, 1]`` for segments and ``[0, inf)`` for rays; a
    zero-length line projects everything onto ``start`` with ``t = 0``.
    """

    anchor = np.asarray(start, dtype=float)
    direction = np.asarray(end, dtype=float) - anchor
    p = np.asarray(point, dtype=float)
    denom = float(np.dot(direction, direction))
    if denom < _DEGENERATE_LEN_SQ:
        coord = (float(anchor[0]), float(anchor[1]))
        return Projection(coord=coord, parameter=0.0, distance=float(np.linalg.norm(p - anchor)))
    t = float(np.dot(p - anchor, direction) / denom)
    t = clamp_line_parameter(t, kind)
    closest = anchor + direction * t
    return Projection(
        coord=(float(closest[0]), float(closest[1])),
        parameter=t,
        distance=float(np.linalg.norm(p - closest)),
    )


def refine_curve_parameter(
    objective: Callable[[float], float],
    gradient: Callable[[float], float],
    t0: float,
    *,
    steps: int,
    step_factor: float,
) -> Tuple[float, float]:
    """Fixed-step gradient descent on ``objective`` over ``t`` in ``[0, 1]``.

    Runs at most ``steps`` iterations. A step is taken only when it lowers
    the objective; the loop stops on a flat gradient or a rejected step.
    Returns ``(t, objective(t))``.
    """

    best_t = t0
    best_value = objective(t0)
    for _ in range(max(0, steps)):
        grad = gradient(best_t)
        if abs(grad) < _FLAT_GRADIENT:
            break
        candidate = min(max(best_t - grad * step_factor, 0.0), 1.0)
        value = objective(candidate)
        if value >= best_value:
            break
        best_t, best_value = candidate, value
    return best_t, best_value


def closest_point_on_curve(
    point: Coord,
    start: Coord,
    control: Coord,
    end: Coord,
    *,
    seed_samples: int = 20,
    refine_steps: int = 5,
    step_factor: float = 0.1,
) -> Projection:
    """Approximate closest point on a quadratic Bézier.

    The curve is sampled at ``seed_samples + 1`` parameters and the best
    sample refined with :func:`refine_curve_parameter`. This is bounded work,
    not an exact projection: strongly bent curves may stop short of the true
    minimum.
    """

    def objective(t: float) -> float:
        return _dist_sq(point, bezier_point(start, control, end, t))

    def gradient(t: float) -> float:
        c = bezier_point(start, control, end, t)
        dc = bezier_derivative(start, control, end, t)
        return 2.0 * ((c[0] - point[0]) * dc[0] + (c[1] - point[1]) * dc[1])

    samples = max(1, seed_samples)
    best_t = 0.0
    best_value = math.inf
    for i in range(samples + 1):
        t = i / samples
        value = objective(t)
        if value < best_value:
            best_t, best_value = t, value

    t, value = refine_curve_parameter(
        objective, gradient, best_t, steps=refine_steps, step_factor=step_factor
    )
    return Projection(coord=bezier_point(start, control, end, t), parameter=t, distance=math.sqrt(value))


def golden_section_minimize(
    objective: Callable[[float], float], left: float, right: float, *, iterations: int
) -> float:
    """Golden-section search for a minimum of ``objective`` on ``[left, right]``.

    Performs exactly ``iterations`` shrink steps and returns the midpoint of
    the final probe pair.
    """

    x1 = left + _RESPHI * (right - left)
    x2 = right - _RESPHI * (right - left)
    f1 = objective(x1)
    f2 = objective(x2)
    for _ in range(max(0, iterations)):
        if f1 < f2:
            right = x2
            x2, f2 = x1, f1
            x1 = left + _RESPHI * (right - left)
            f1 = objective(x1)
        else:
            left = x1
            x1, f1 = x2, f2
            x2 = right - _RESPHI * (right - left)
            f2 = objective(x2)
    return (x1 + x2) * 0.5


def closest_point_on_function(
    point: Coord,
    evaluate: SafeEvaluator,
    domain: Tuple[float, float],
    *,
    seed_samples: int = 50,
    iterations: int = 15,
) -> Optional[Projection]:
    """Approximate closest point on the graph of ``evaluate`` over ``domain``.

    Non-finite samples are skipped. Returns ``None`` when no sample in the
    domain has a value.
    """

    lo, hi = float(domain[0]), float(domain[1])
    if not (math.isfinite(lo) and math.isfinite(hi)) or hi < lo:
        return None
    samples = max(1, seed_samples)
    step = (hi - lo) / samples

    best_x: Optional[float] = None
    best_value = math.inf
    for x in np.linspace(lo, hi, samples + 1):
        y = evaluate(float(x))
        if y is None:
            continue
        value = _dist_sq(point, (float(x), y))
        if value < best_value:
            best_x, best_value = float(x), value
    if best_x is None:
        return None

    def objective(x: float) -> float:
        y = evaluate(x)
        if y is None:
            return math.inf
        return _dist_sq(point, (x, y))

    left = max(lo, best_x - step)
    right = min(hi, best_x + step)
    refined = golden_section_minimize(objective, left, right, iterations=iterations)
    refined_value = objective(refined)
    if refined_value > best_value:
        refined, refined_value = best_x, best_value
    y = evaluate(refined)
    if y is None:
        return None
    return Projection(coord=(refined, y), parameter=refined, distance=math.sqrt(refined_value))


def project_onto_function(
    point: Coord,
    fn: Function,
    scene: "Scene",
    *,
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> Optional[Projection]:
    cfg = resolve_config(config)
    evaluate = function_evaluator(fn, compiler)
    if evaluate is None:
        return None
    return closest_point_on_function(
        point,
        evaluate,
        function_domain(fn, scene.axes),
        seed_samples=cfg.function_seed_samples,
        iterations=cfg.golden_section_iterations,
    )


@debug_log_call(logger)
def project(
    point: Coord,
    element: Element,
    scene: "Scene",
    *,
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> Optional[Projection]:
    """Closest point on ``element`` to ``point``, resolving anchors in ``scene``.

    Areas and texts have no projection and yield ``None``.
    """

    cfg = resolve_config(config)
    if isinstance(element, Line):
        start, end = resolve_line_endpoints(element, scene, compiler=compiler)
        return closest_point_on_line(point, start, end, element.kind)
    if isinstance(element, Curve):
        start, control, end = resolve_curve_geometry(element, scene, compiler=compiler)
        return closest_point_on_curve(
            point,
            start,
            control,
            end,
            seed_samples=cfg.curve_seed_samples,
            refine_steps=cfg.curve_refine_steps,
            step_factor=cfg.curve_step_factor,
        )
    if isinstance(element, Function):
        return project_onto_function(point, element, scene, config=cfg, compiler=compiler)
    if isinstance(element, Point):
        coord = resolve_point_position(element, scene, compiler=compiler)
        return Projection(coord=coord, parameter=0.0, distance=math.sqrt(_dist_sq(point, coord)))
    return None
