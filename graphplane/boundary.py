"""Area construction from nearby functions, lines and axes.

When an area's control point is dropped, :func:`resolve_boundary` collects
every boundary near the drop point and tries, in order:

* two functions (the region between them, bracketed by their intersections),
* one function plus a line or axis,
* one function alone (the region under it, against ``y = 0``),

falling back to only moving the control point.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, List, Literal, NamedTuple, Optional, Sequence, Set, Tuple, Union

from .config import EngineConfig, resolve_config
from .elements import X_AXIS_ID, Y_AXIS_ID, Area, Axes, Coord, CoordAnchor, Domain, Function, Line
from .expression import ExpressionCompiler, SafeEvaluator
from .intersections import (
    LineGeometry,
    find_function_intersections,
    find_roots,
    line_equation,
    line_x_extent,
)
from .logging_utils import debug_log_call
from .projections import closest_point_on_line, project_onto_function
from .resolve import function_domain, function_evaluator, resolve_line_endpoints
from .sampling import sample_function
from .transform import visible_axes

if TYPE_CHECKING:  # pragma: no cover
    from .scene import Scene

logger = logging.getLogger(__name__)

BoundaryKind = Literal["function", "line", "axis"]
Rule = Literal["between-functions", "function-and-boundary", "under-function", "bounded-region", "none"]

_MIN_WIDTH = 1e-9


@dataclass(frozen=True)
class BoundaryCandidate:
    """A function, line or visible axis together with its distance to the drop point."""

    kind: BoundaryKind
    boundary_id: str
    distance: float
    element: Optional[Union[Function, Line]] = None


@dataclass
class BoundaryResult:
    area: Area
    rule: Rule
    candidates: List[BoundaryCandidate]

    @property
    def bounded(self) -> bool:
        return self.rule != "none"


class BoundedPolygon(NamedTuple):
    points: List[Coord]
    domain: Tuple[float, float]
    on_x_axis: bool = False


# --- candidates ------------------------------------------------------------


def collect_candidates(
    drop_point: Coord,
    scene: "Scene",
    *,
    ignore: Iterable[str] = (),
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> List[BoundaryCandidate]:
    """Every boundary not in ``ignore``, nearest first.

    Functions with no value anywhere near the drop point are left out.
    """

    cfg = resolve_config(config)
    skip = set(ignore)
    candidates: List[BoundaryCandidate] = []
    for fn in scene.functions:
        if fn.id in skip:
            continue
        projection = project_onto_function(drop_point, fn, scene, config=cfg, compiler=compiler)
        if projection is None:
            logger.debug("Skipping function %r: no finite samples", fn.id)
            continue
        candidates.append(BoundaryCandidate("function", fn.id, projection.distance, fn))
    for line in scene.lines:
        if line.id in skip:
            continue
        start, end = resolve_line_endpoints(line, scene, compiler=compiler)
        projection = closest_point_on_line(drop_point, start, end, line.kind)
        candidates.append(BoundaryCandidate("line", line.id, projection.distance, line))
    for axis, _ in visible_axes(scene.axes):
        axis_id = X_AXIS_ID if axis == "x" else Y_AXIS_ID
        if axis_id in skip:
            continue
        distance = abs(drop_point[1]) if axis == "x" else abs(drop_point[0])
        candidates.append(BoundaryCandidate("axis", axis_id, distance))
    candidates.sort(key=lambda c: c.distance)
    return candidates


# --- polygon generation ----------------------------------------------------


def generate_polygon_between_curves(
    f1: SafeEvaluator, f2: SafeEvaluator, x_min: float, x_max: float, samples: int = 60
) -> List[Coord]:
    """Closed outline walking ``f1`` forward then ``f2`` backward."""

    if not x_max - x_min > _MIN_WIDTH:
        return []
    upper = sample_function(f1, x_min, x_max, samples)
    lower = sample_function(f2, x_min, x_max, samples)
    if not upper or not lower:
        return []
    polygon = upper + lower[::-1]
    return polygon if len(polygon) >= 3 else []


def generate_polygon_under_function(
    evaluate: SafeEvaluator, x_min: float, x_max: float, samples: int = 60
) -> List[Coord]:
    """Outline between the graph and ``y = 0`` over ``[x_min, x_max]``."""

    curve = sample_function(evaluate, x_min, x_max, samples)
    if not curve:
        return []
    return [(x_min, 0.0)] + curve + [(x_max, 0.0)]


def _bracket(
    roots: Sequence[float], x: float, lo: float, hi: float, tolerance: float
) -> Tuple[float, float]:
    """Consecutive roots around ``x``, with ``lo``/``hi`` acting as outer roots.

    A root at ``x`` opens the bracket to its right; at ``hi`` it closes the
    bracket to its left.
    """

    left = max(lo, max((r for r in roots if r <= x), default=lo))
    right = min(hi, min((r for r in roots if r > left + tolerance), default=hi))
    if right - left <= _MIN_WIDTH:
        left = max(lo, max((r for r in roots if r < right - tolerance), default=lo))
    return left, right


def _level(value: float) -> Callable[[float], Optional[float]]:
    return lambda x: value


def _clamp_by_verticals(lo: float, hi: float, x: float, verticals: Iterable[float]) -> Tuple[float, float]:
    for vx in verticals:
        if lo < vx < x:
            lo = vx
        elif x < vx < hi:
            hi = vx
    return lo, hi


def generate_polygon_bounded_by_elements(
    evaluate: SafeEvaluator,
    drop_point: Coord,
    axes: Axes,
    *,
    domain: Optional[Tuple[float, float]] = None,
    lines: Sequence[LineGeometry] = (),
    axis_ids: Sequence[str] = (),
    implicit_x_axis: bool = True,
    samples: int = 60,
    intersection_samples: int = 200,
    tolerance: float = 1e-4,
) -> Optional[BoundedPolygon]:
    """Region between a function and the line or axis on the other side of the drop point.

    Vertical lines and the y-axis only clamp the x-range from their side of
    the drop point. The first non-vertical line is the opposite edge; without
    one the visible x-axis is used (unless ``implicit_x_axis`` is false), or
    the view edge on the drop point's side. The x-range is then bracketed by the
    crossings of the two edges around the drop point.
    """

    lo, hi = domain if domain is not None else (axes.x_min, axes.x_max)
    lo, hi = max(lo, axes.x_min), min(hi, axes.x_max)
    x_drop = drop_point[0]
    shown = {name for name, _ in visible_axes(axes)}

    verticals: List[float] = []
    partner: Optional[LineGeometry] = None
    for line in lines:
        eq = line_equation(line)
        if eq.vertical:
            verticals.append(eq.x)
        elif partner is None:
            partner = line
    if Y_AXIS_ID in axis_ids and "y" in shown:
        verticals.append(0.0)
    lo, hi = _clamp_by_verticals(lo, hi, x_drop, verticals)

    on_x_axis = False
    other: Callable[[float], Optional[float]]
    if partner is not None:
        other = line_equation(partner)
        line_lo, line_hi = line_x_extent(partner)
        lo, hi = max(lo, line_lo), min(hi, line_hi)
    elif implicit_x_axis and "x" in shown:
        other = _level(0.0)
        on_x_axis = True
    else:
        y_at_drop = evaluate(x_drop)
        other = _level(axes.y_min if y_at_drop is None or drop_point[1] < y_at_drop else axes.y_max)

    if not hi - lo > _MIN_WIDTH or not lo <= x_drop <= hi:
        return None

    def gap(x: float) -> float:
        y1 = evaluate(x)
        y2 = other(x)
        if y1 is None or y2 is None:
            return math.nan
        return y1 - y2

    roots = find_roots(gap, lo, hi, tolerance=tolerance, samples=intersection_samples)
    left, right = _bracket(roots, x_drop, lo, hi, tolerance)
    polygon = generate_polygon_between_curves(evaluate, other, left, right, samples)
    if not polygon:
        return None
    return BoundedPolygon(polygon, (left, right), on_x_axis)


# --- resolver --------------------------------------------------------------


def _bounded_area(
    area: Area,
    drop_point: Coord,
    *,
    mode: str,
    polygon: Sequence[Coord],
    domain: Tuple[float, float],
    boundary_ids: List[str],
    function_id: Optional[str],
    function_id2: Optional[str] = None,
    line_id: Optional[str] = None,
) -> Area:
    return dataclasses.replace(
        area,
        mode=mode,
        points=[CoordAnchor(x, y) for x, y in polygon],
        domain=Domain(min=domain[0], max=domain[1]),
        boundary_ids=boundary_ids,
        ignored_boundaries=list(area.ignored_boundaries),
        function_id=function_id,
        function_id2=function_id2,
        line_id=line_id,
        label_pos=drop_point,
    )


def _between_functions(
    drop_point: Coord,
    area: Area,
    scene: "Scene",
    close: List[BoundaryCandidate],
    cfg: EngineConfig,
    compiler: Optional[ExpressionCompiler],
) -> Optional[Area]:
    first, second = [c for c in close if c.kind == "function"][:2]
    fn1, fn2 = first.element, second.element
    assert isinstance(fn1, Function) and isinstance(fn2, Function)
    f1 = function_evaluator(fn1, compiler)
    f2 = function_evaluator(fn2, compiler)
    if f1 is None or f2 is None:
        return None

    axes = scene.axes
    d1, d2 = function_domain(fn1, axes), function_domain(fn2, axes)
    lo = max(axes.x_min, d1[0], d2[0])
    hi = min(axes.x_max, d1[1], d2[1])
    roots = find_function_intersections(
        f1, f2, lo, hi, tolerance=cfg.intersection_tolerance, samples=cfg.intersection_samples
    )
    logger.debug("Intersections of %r and %r: %s", fn1.id, fn2.id, roots)

    clamp_ids: List[str] = []
    verticals: List[float] = []
    for candidate in close:
        if candidate.kind == "line":
            line = candidate.element
            assert isinstance(line, Line)
            start, end = resolve_line_endpoints(line, scene, compiler=compiler)
            eq = line_equation(LineGeometry(start, end, line.kind))
            if eq.vertical:
                verticals.append(eq.x)
                clamp_ids.append(line.id)
    y_axis = any(c.boundary_id == Y_AXIS_ID for c in close)
    if y_axis:
        verticals.append(0.0)

    lo, hi = _clamp_by_verticals(lo, hi, drop_point[0], verticals)
    lo, hi = _bracket(roots, drop_point[0], lo, hi, cfg.intersection_tolerance)
    polygon = generate_polygon_between_curves(f1, f2, lo, hi, cfg.polygon_samples)
    if not polygon:
        return None
    boundary_ids = [fn1.id, fn2.id] + clamp_ids + ([Y_AXIS_ID] if y_axis else [])
    return _bounded_area(
        area,
        drop_point,
        mode="between-functions",
        polygon=polygon,
        domain=(lo, hi),
        boundary_ids=boundary_ids,
        function_id=fn1.id,
        function_id2=fn2.id,
    )


def _function_and_boundary(
    drop_point: Coord,
    area: Area,
    scene: "Scene",
    close: List[BoundaryCandidate],
    skip: Set[str],
    cfg: EngineConfig,
    compiler: Optional[ExpressionCompiler],
) -> Optional[Area]:
    fn_candidate = next(c for c in close if c.kind == "function")
    line_candidate = next((c for c in close if c.kind == "line"), None)
    axis_candidate = next((c for c in close if c.kind == "axis"), None)
    if line_candidate is None and axis_candidate is None:
        return None
    fn = fn_candidate.element
    assert isinstance(fn, Function)
    evaluate = function_evaluator(fn, compiler)
    if evaluate is None:
        return None

    lines: List[LineGeometry] = []
    if line_candidate is not None:
        line = line_candidate.element
        assert isinstance(line, Line)
        start, end = resolve_line_endpoints(line, scene, compiler=compiler)
        lines.append(LineGeometry(start, end, line.kind))
    axis_ids = [axis_candidate.boundary_id] if axis_candidate is not None else []

    bounded = generate_polygon_bounded_by_elements(
        evaluate,
        drop_point,
        scene.axes,
        domain=function_domain(fn, scene.axes),
        lines=lines,
        axis_ids=axis_ids,
        implicit_x_axis=X_AXIS_ID not in skip,
        samples=cfg.polygon_samples,
        intersection_samples=cfg.intersection_samples,
        tolerance=cfg.intersection_tolerance,
    )
    if bounded is None:
        return None
    boundary_ids = [fn.id]
    if line_candidate is not None:
        boundary_ids.append(line_candidate.boundary_id)
    boundary_ids.extend(axis_ids)
    if bounded.on_x_axis and X_AXIS_ID not in boundary_ids:
        boundary_ids.append(X_AXIS_ID)
    return _bounded_area(
        area,
        drop_point,
        mode="between-line-and-function" if line_candidate is not None else "under-function",
        polygon=bounded.points,
        domain=bounded.domain,
        boundary_ids=boundary_ids,
        function_id=fn.id,
        line_id=line_candidate.boundary_id if line_candidate is not None else None,
    )


def _under_function(
    drop_point: Coord,
    area: Area,
    close: List[BoundaryCandidate],
    cfg: EngineConfig,
    compiler: Optional[ExpressionCompiler],
) -> Optional[Area]:
    fn = next(c for c in close if c.kind == "function").element
    assert isinstance(fn, Function)
    evaluate = function_evaluator(fn, compiler)
    if evaluate is None:
        return None
    lo = drop_point[0] - cfg.under_function_half_width
    hi = drop_point[0] + cfg.under_function_half_width
    polygon = generate_polygon_under_function(evaluate, lo, hi, cfg.polygon_samples)
    if len(polygon) < 3:
        return None
    return _bounded_area(
        area,
        drop_point,
        mode="under-function",
        polygon=polygon,
        domain=(lo, hi),
        boundary_ids=[fn.id, X_AXIS_ID],
        function_id=fn.id,
    )


@debug_log_call(logger)
def resolve_boundary(
    drop_point: Coord,
    area: Area,
    scene: "Scene",
    ignore: Iterable[str] = (),
    *,
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> BoundaryResult:
    """Reshape ``area`` around ``drop_point``.

    Returns a new :class:`Area`; the input area and the scene are not
    modified. Boundaries listed in the area's ``ignored_boundaries`` or in
    ``ignore`` are not considered.
    """

    cfg = resolve_config(config)
    skip = set(area.ignored_boundaries) | set(ignore)
    candidates = collect_candidates(drop_point, scene, ignore=skip, config=cfg, compiler=compiler)
    close = [c for c in candidates if c.distance < cfg.boundary_threshold]
    n_functions = sum(1 for c in close if c.kind == "function")
    logger.debug(
        "Area %r: %d candidate(s), %d within %.3g",
        area.id,
        len(candidates),
        len(close),
        cfg.boundary_threshold,
    )

    updated: Optional[Area] = None
    rule: Rule = "none"
    if n_functions >= 2:
        updated = _between_functions(drop_point, area, scene, close, cfg, compiler)
        rule = "between-functions"
    if updated is None and n_functions >= 1:
        updated = _function_and_boundary(drop_point, area, scene, close, skip, cfg, compiler)
        rule = "function-and-boundary"
    if updated is None and n_functions >= 1:
        updated = _under_function(drop_point, area, close, cfg, compiler)
        rule = "under-function"
    if updated is None:
        logger.info("Area %r: no boundary near (%.4g, %.4g)", area.id, drop_point[0], drop_point[1])
        return BoundaryResult(dataclasses.replace(area, label_pos=drop_point), "none", candidates)

    logger.info(
        "Area %r reshaped as %s bounded by %s (%d points)",
        area.id,
        updated.mode,
        ", ".join(updated.boundary_ids),
        len(updated.points),
    )
    return BoundaryResult(updated, rule, candidates)
