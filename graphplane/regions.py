"""Enclosing-region detection by radial ray casting.

Every function, line and curve is sampled into a polyline and the view
rectangle is added as a fallback boundary. Rays are cast from the drop point
in all directions; the nearest hits, refined where the owning boundary
changes, form a visibility polygon that follows the sampled curves between
consecutive hits on the same element.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

from .config import EngineConfig, resolve_config
from .elements import Area, Axes, Coord, CoordAnchor, Domain
from .expression import ExpressionCompiler, SafeEvaluator
from .logging_utils import debug_log_call
from .resolve import (
    function_domain,
    function_evaluator,
    resolve_curve_geometry,
    resolve_line_endpoints,
)
from .sampling import clip_line_to_axes, sample_curve

if TYPE_CHECKING:  # pragma: no cover
    from .scene import Scene

logger = logging.getLogger(__name__)

VIEW_ID = "__view__"
RAY_EPSILON = 1e-9
SEGMENT_TOLERANCE = 1e-4
MIN_ANGLE_STEP = 1e-3
DEDUP_DISTANCE = 1e-3


@dataclass(frozen=True)
class RegionResult:
    polygon: List[Coord]
    boundary_ids: List[str]
    domain: Tuple[float, float]


@dataclass
class _Polyline:
    owner: str
    points: List[Coord]
    # index i present: no edge between points[i] and points[i + 1]
    gaps: Set[int] = field(default_factory=set)


@dataclass(frozen=True)
class _Hit:
    point: Coord
    distance: float
    owner: str


def _view_corners(axes: Axes) -> List[Coord]:
    return [
        (axes.x_min, axes.y_min),
        (axes.x_max, axes.y_min),
        (axes.x_max, axes.y_max),
        (axes.x_min, axes.y_max),
    ]


class _Segments:
    """Flat arrays of boundary segments for vectorised ray casting."""

    def __init__(self, polylines: Iterable[_Polyline], axes: Axes):
        starts: List[Coord] = []
        ends: List[Coord] = []
        owners: List[str] = []
        for pl in polylines:
            for i in range(len(pl.points) - 1):
                if i in pl.gaps:
                    continue
                p1, p2 = pl.points[i], pl.points[i + 1]
                if (p2[0] - p1[0]) ** 2 + (p2[1] - p1[1]) ** 2 < SEGMENT_TOLERANCE ** 2:
                    continue
                starts.append(p1)
                ends.append(p2)
                owners.append(pl.owner)
        corners = _view_corners(axes)
        for i in range(4):
            starts.append(corners[i])
            ends.append(corners[(i + 1) % 4])
            owners.append(VIEW_ID)
        self.p1 = np.asarray(starts, dtype=float)
        self.delta = np.asarray(ends, dtype=float) - self.p1
        self.owners = owners

    def cast(self, origin: Coord, angle: float) -> Optional[_Hit]:
        dx, dy = math.cos(angle), math.sin(angle)
        sx, sy = self.delta[:, 0], self.delta[:, 1]
        diff_x = self.p1[:, 0] - origin[0]
        diff_y = self.p1[:, 1] - origin[1]
        denom = dx * sy - dy * sx
        with np.errstate(divide="ignore", invalid="ignore"):
            t = (diff_x * sy - diff_y * sx) / denom
            u = (diff_x * dy - diff_y * dx) / denom
        valid = (
            (np.abs(denom) >= RAY_EPSILON)
            & (t >= RAY_EPSILON)
            & (u >= -SEGMENT_TOLERANCE)
            & (u <= 1.0 + SEGMENT_TOLERANCE)
        )
        if not valid.any():
            return None
        t = np.where(valid, t, np.inf)
        idx = int(np.argmin(t))
        dist = float(t[idx])
        return _Hit((origin[0] + dist * dx, origin[1] + dist * dy), dist, self.owners[idx])


# --- sampling --------------------------------------------------------------


def _function_polyline(owner: str, evaluate: SafeEvaluator, lo: float, hi: float, samples: int) -> _Polyline:
    points: List[Coord] = []
    gaps: Set[int] = set()
    broken = False
    for x in np.linspace(lo, hi, max(1, samples) + 1):
        y = evaluate(float(x))
        if y is None:
            broken = bool(points)
            continue
        if broken:
            gaps.add(len(points) - 1)
            broken = False
        points.append((float(x), y))
    return _Polyline(owner, points, gaps)


def _scene_polylines(
    scene: "Scene",
    ignored: Set[str],
    cfg: EngineConfig,
    compiler: Optional[ExpressionCompiler],
) -> List[_Polyline]:
    axes = scene.axes
    polylines: List[_Polyline] = []
    for fn in scene.functions:
        if fn.id in ignored:
            continue
        evaluate = function_evaluator(fn, compiler)
        if evaluate is None:
            continue
        lo, hi = function_domain(fn, axes)
        polylines.append(_function_polyline(fn.id, evaluate, lo, hi, cfg.region_samples))
    for line in scene.lines:
        if line.id in ignored:
            continue
        start, end = resolve_line_endpoints(line, scene, compiler=compiler)
        visible = clip_line_to_axes(start, end, line.kind, axes)
        if visible is not None:
            polylines.append(_Polyline(line.id, list(visible)))
    for curve in scene.curves:
        if curve.id in ignored:
            continue
        start, control, end = resolve_curve_geometry(curve, scene, compiler=compiler)
        polylines.append(_Polyline(curve.id, sample_curve(start, control, end, cfg.polygon_samples)))
    return [pl for pl in polylines if len(pl.points) >= 2]


# --- polygon assembly ------------------------------------------------------


def _refine(
    segments: _Segments,
    origin: Coord,
    a1: float,
    a2: float,
    h1: _Hit,
    h2: _Hit,
    depth: int,
    max_depth: int,
) -> List[_Hit]:
    """Hits between two rays whose owners differ, bisecting toward the transition."""

    if depth >= max_depth or abs(a2 - a1) < MIN_ANGLE_STEP:
        return []
    mid = (a1 + a2) * 0.5
    hit = segments.cast(origin, mid)
    if hit is None:
        return []
    result: List[_Hit] = []
    if hit.owner != h1.owner:
        result.extend(_refine(segments, origin, a1, mid, h1, hit, depth + 1, max_depth))
    result.append(hit)
    if hit.owner != h2.owner:
        result.extend(_refine(segments, origin, mid, a2, hit, h2, depth + 1, max_depth))
    return result


def _nearest_index(points: List[Coord], target: Coord) -> int:
    arr = np.asarray(points, dtype=float)
    d = (arr[:, 0] - target[0]) ** 2 + (arr[:, 1] - target[1]) ** 2
    return int(np.argmin(d))


def _follow(polyline: _Polyline, a: Coord, b: Coord, max_points: int) -> List[Coord]:
    """Polyline vertices strictly between the vertices nearest ``a`` and ``b``."""

    i, j = _nearest_index(polyline.points, a), _nearest_index(polyline.points, b)
    if i == j:
        return []
    if i < j:
        arc = polyline.points[i + 1:j]
    else:
        arc = polyline.points[j + 1:i][::-1]
    if len(arc) > max_points:
        step = len(arc) / max_points
        arc = [arc[int(k * step)] for k in range(max_points)]
    return arc


def _dedupe(polygon: List[Coord]) -> List[Coord]:
    if len(polygon) < 2:
        return polygon
    limit = DEDUP_DISTANCE ** 2
    result = [polygon[0]]
    for p in polygon[1:]:
        q = result[-1]
        if (p[0] - q[0]) ** 2 + (p[1] - q[1]) ** 2 > limit:
            result.append(p)
    if len(result) > 2:
        first, last = result[0], result[-1]
        if (first[0] - last[0]) ** 2 + (first[1] - last[1]) ** 2 < limit:
            result.pop()
    return result


def _inside_view(point: Coord, axes: Axes) -> bool:
    return axes.x_min < point[0] < axes.x_max and axes.y_min < point[1] < axes.y_max


@debug_log_call(logger)
def find_enclosing_region(
    drop_point: Coord,
    scene: "Scene",
    ignored: Iterable[str] = (),
    *,
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> Optional[RegionResult]:
    """Smallest region around ``drop_point`` enclosed by scene elements and the view.

    Returns the whole view when nothing is left to bound it, and ``None``
    when the drop point is not strictly inside the view or too few rays hit.
    """

    cfg = resolve_config(config)
    axes = scene.axes
    if not _inside_view(drop_point, axes):
        return None
    polylines = _scene_polylines(scene, set(ignored), cfg, compiler)
    if not polylines:
        return RegionResult(_view_corners(axes), [], (axes.x_min, axes.x_max))

    segments = _Segments(polylines, axes)
    by_owner: Dict[str, _Polyline] = {pl.owner: pl for pl in polylines}

    rays = max(3, cfg.region_rays)
    base: List[Tuple[float, _Hit]] = []
    for k in range(rays):
        angle = 2.0 * math.pi * k / rays
        hit = segments.cast(drop_point, angle)
        if hit is not None:
            base.append((angle, hit))
    if len(base) < 3:
        return None

    hits: List[_Hit] = []
    for k, (angle, hit) in enumerate(base):
        next_angle, next_hit = base[(k + 1) % len(base)]
        hits.append(hit)
        if hit.owner != next_hit.owner:
            if k == len(base) - 1:
                next_angle += 2.0 * math.pi
            hits.extend(
                _refine(segments, drop_point, angle, next_angle, hit, next_hit, 0, cfg.region_refine_depth)
            )

    raw: List[Coord] = []
    for k, hit in enumerate(hits):
        following = hits[(k + 1) % len(hits)]
        raw.append(hit.point)
        if hit.owner == following.owner and hit.owner != VIEW_ID:
            raw.extend(_follow(by_owner[hit.owner], hit.point, following.point, cfg.region_max_arc_points))
    polygon = _dedupe(raw)
    if len(polygon) < 3:
        return None

    boundary_ids: List[str] = []
    for hit in hits:
        if hit.owner != VIEW_ID and hit.owner not in boundary_ids:
            boundary_ids.append(hit.owner)
    xs = [p[0] for p in polygon]
    return RegionResult(polygon, boundary_ids, (min(xs), max(xs)))


def resolve_region(
    drop_point: Coord,
    area: Area,
    scene: "Scene",
    *,
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> Optional[Area]:
    """Area filling the region around ``drop_point``, or ``None`` when there is none."""

    region = find_enclosing_region(
        drop_point, scene, area.ignored_boundaries, config=config, compiler=compiler
    )
    if region is None:
        return None
    logger.info("Area %r fills region bounded by %s", area.id, region.boundary_ids or "the view")
    return dataclasses.replace(
        area,
        mode="bounded-region",
        points=[CoordAnchor(x, y) for x, y in region.polygon],
        domain=Domain(min=region.domain[0], max=region.domain[1]),
        boundary_ids=list(region.boundary_ids),
        ignored_boundaries=list(area.ignored_boundaries),
        function_id=None,
        function_id2=None,
        line_id=None,
        label_pos=drop_point,
    )
