"""Resolution of anchors and derived geometry against the live scene.

References are looked up by id on every call; nothing here caches a
resolved position. A reference whose target is gone resolves to the
caller's fallback instead of raising.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, List, Optional, Set, Tuple

from .elements import (
    Anchor,
    Area,
    Axes,
    Coord,
    CoordAnchor,
    Curve,
    CurveParam,
    Function,
    FunctionParam,
    Line,
    LineParam,
    Point,
    PointRef,
)
from .expression import ExpressionCompiler, SafeEvaluator, compile_safe

if TYPE_CHECKING:  # pragma: no cover
    from .scene import Scene

ORIGIN: Coord = (0.0, 0.0)


def _finite_or(value: float, fallback: float) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return fallback
    return num if math.isfinite(num) else fallback


def clamp_line_parameter(t: float, kind: str) -> float:
    if kind == "segment":
        return min(max(t, 0.0), 1.0)
    if kind == "ray":
        return max(t, 0.0)
    return t


def curve_control_point(start: Coord, end: Coord, curvature: float) -> Coord:
    mid_x = (start[0] + end[0]) * 0.5
    mid_y = (start[1] + end[1]) * 0.5
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy) or 1.0
    normal = (-dy / length, dx / length)
    return (mid_x + normal[0] * curvature, mid_y + normal[1] * curvature)


def bezier_point(start: Coord, control: Coord, end: Coord, t: float) -> Coord:
    u = 1.0 - t
    return (
        u * u * start[0] + 2.0 * u * t * control[0] + t * t * end[0],
        u * u * start[1] + 2.0 * u * t * control[1] + t * t * end[1],
    )


def bezier_derivative(start: Coord, control: Coord, end: Coord, t: float) -> Coord:
    return (
        2.0 * (t - 1.0) * start[0] + 2.0 * (1.0 - 2.0 * t) * control[0] + 2.0 * t * end[0],
        2.0 * (t - 1.0) * start[1] + 2.0 * (1.0 - 2.0 * t) * control[1] + 2.0 * t * end[1],
    )


def function_evaluator(
    fn: Function, compiler: Optional[ExpressionCompiler] = None
) -> Optional[SafeEvaluator]:
    """Return ``x -> scale_y * f(x - offset_x) + offset_y`` or ``None``.

    The returned callable yields ``None`` wherever ``f`` has no finite value.
    """

    base = compile_safe(fn.expression, compiler)
    if base is None:
        return None
    offset_x = _finite_or(fn.offset_x, 0.0)
    offset_y = _finite_or(fn.offset_y, 0.0)
    scale_y = _finite_or(fn.scale_y, 1.0)

    def evaluate(x: float) -> Optional[float]:
        y = base(x - offset_x)
        if y is None:
            return None
        value = scale_y * y + offset_y
        return value if math.isfinite(value) else None

    return evaluate


def function_domain(fn: Function, axes: Axes) -> Tuple[float, float]:
    """Return the function's x-domain, falling back to the visible range."""

    lo = axes.x_min
    hi = axes.x_max
    if fn.domain is not None:
        if fn.domain.min is not None and math.isfinite(fn.domain.min):
            lo = fn.domain.min
        if fn.domain.max is not None and math.isfinite(fn.domain.max):
            hi = fn.domain.max
    return lo, hi


def resolve_anchor(
    anchor: Optional[Anchor],
    scene: "Scene",
    *,
    fallback: Coord = ORIGIN,
    compiler: Optional[ExpressionCompiler] = None,
    seen: Optional[Set[str]] = None,
) -> Coord:
    """Resolve ``anchor`` to a coordinate using the current ``scene``."""

    if anchor is None:
        return fallback
    if isinstance(anchor, CoordAnchor):
        return (_finite_or(anchor.x, fallback[0]), _finite_or(anchor.y, fallback[1]))
    seen = seen if seen is not None else set()
    if isinstance(anchor, PointRef):
        point = scene.find_point(anchor.point_id)
        if point is None:
            return fallback
        return resolve_point_position(point, scene, compiler=compiler, seen=seen)
    if isinstance(anchor, LineParam):
        line = scene.find_line(anchor.line_id)
        if line is None:
            return fallback
        start, end = resolve_line_endpoints(line, scene, compiler=compiler, seen=seen)
        t = clamp_line_parameter(_finite_or(anchor.t, 0.0), line.kind)
        return (start[0] + (end[0] - start[0]) * t, start[1] + (end[1] - start[1]) * t)
    if isinstance(anchor, CurveParam):
        curve = scene.find_curve(anchor.curve_id)
        if curve is None:
            return fallback
        start, control, end = resolve_curve_geometry(curve, scene, compiler=compiler, seen=seen)
        t = min(max(_finite_or(anchor.t, 0.0), 0.0), 1.0)
        return bezier_point(start, control, end, t)
    if isinstance(anchor, FunctionParam):
        fn = scene.find_function(anchor.function_id)
        if fn is None:
            return fallback
        evaluate = function_evaluator(fn, compiler)
        if evaluate is None:
            return fallback
        x = _finite_or(anchor.x, fallback[0])
        y = evaluate(x)
        if y is None:
            return fallback
        return (x, y)
    raise TypeError(f"unknown anchor {anchor!r}")


def resolve_point_position(
    point: Point,
    scene: "Scene",
    *,
    compiler: Optional[ExpressionCompiler] = None,
    seen: Optional[Set[str]] = None,
) -> Coord:
    """Displayed position of ``point``: its resolved anchor or stored ``(x, y)``."""

    stored = (_finite_or(point.x, 0.0), _finite_or(point.y, 0.0))
    seen = seen if seen is not None else set()
    if point.id in seen:
        return stored
    seen.add(point.id)
    if point.anchor is None or isinstance(point.anchor, CoordAnchor):
        return stored
    return resolve_anchor(point.anchor, scene, fallback=stored, compiler=compiler, seen=seen)


def resolve_line_endpoints(
    line: Line,
    scene: "Scene",
    *,
    compiler: Optional[ExpressionCompiler] = None,
    seen: Optional[Set[str]] = None,
) -> Tuple[Coord, Coord]:
    # Each endpoint gets its own visited set so a shared point resolves twice.
    start = resolve_anchor(line.start, scene, compiler=compiler, seen=set(seen or ()))
    end = resolve_anchor(line.end, scene, compiler=compiler, seen=set(seen or ()))
    return start, end


def resolve_curve_geometry(
    curve: Curve,
    scene: "Scene",
    *,
    compiler: Optional[ExpressionCompiler] = None,
    seen: Optional[Set[str]] = None,
) -> Tuple[Coord, Coord, Coord]:
    """Return ``(start, control, end)`` for ``curve``."""

    start = resolve_anchor(curve.start, scene, compiler=compiler, seen=set(seen or ()))
    end = resolve_anchor(curve.end, scene, compiler=compiler, seen=set(seen or ()))
    control = curve_control_point(start, end, _finite_or(curve.curvature, 0.0))
    return start, control, end


def area_outline(
    area: Area, scene: "Scene", *, compiler: Optional[ExpressionCompiler] = None
) -> List[Coord]:
    """Resolved polygon of ``area``; fewer than three points means unbounded."""

    outline = [resolve_anchor(anchor, scene, compiler=compiler) for anchor in area.points]
    return outline if len(outline) >= 3 else []


def area_anchor_point(area: Area, scene: "Scene") -> Coord:
    """Position of the area's control point.

    The stored ``label_pos`` wins; otherwise the centroid of the outline, then
    the middle of the domain at ``y = 1``.
    """

    if area.label_pos is not None:
        return area.label_pos
    outline = area_outline(area, scene)
    if outline:
        xs = [p[0] for p in outline]
        ys = [p[1] for p in outline]
        return (sum(xs) / len(xs), sum(ys) / len(ys))
    lo = area.domain.min if area.domain and area.domain.min is not None else -2.0
    hi = area.domain.max if area.domain and area.domain.max is not None else 2.0
    return ((lo + hi) * 0.5, 1.0)
