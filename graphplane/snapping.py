"""Snap-target resolution for dragged points and line endpoints."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Literal, Optional

from .config import EngineConfig, SnapThresholds, resolve_config
from .elements import (
    Anchor,
    Coord,
    CurveParam,
    FunctionParam,
    LineParam,
    Point,
    anchor_target,
)
from .expression import ExpressionCompiler
from .logging_utils import debug_log_call
from .projections import closest_point_on_line, closest_point_on_curve, project_onto_function
from .resolve import resolve_curve_geometry, resolve_line_endpoints

if TYPE_CHECKING:  # pragma: no cover
    from .scene import Scene

logger = logging.getLogger(__name__)

SnapKind = Literal["line", "curve", "function"]


@dataclass(frozen=True)
class SnapTarget:
    kind: SnapKind
    element_id: str
    coord: Coord
    distance: float
    anchor: Anchor


@debug_log_call(logger)
def find_nearest_snap_target(
    point: Coord,
    scene: "Scene",
    thresholds: Optional[SnapThresholds] = None,
    *,
    exclude: Iterable[str] = (),
    config: Optional[EngineConfig] = None,
    compiler: Optional[ExpressionCompiler] = None,
) -> Optional[SnapTarget]:
    """Return the single closest line, curve or function within its threshold.

    A candidate qualifies when its distance is below the threshold of its kind
    and strictly below the best distance seen so far across all kinds, so ties
    keep the earlier candidate (lines, then curves, then functions). Elements
    named in ``exclude`` are skipped, e.g. the line whose endpoint is dragged.
    """

    cfg = resolve_config(config)
    limits = thresholds or cfg.snap
    skip = set(exclude)
    best: Optional[SnapTarget] = None
    best_distance = math.inf

    for line in scene.lines:
        if line.id in skip:
            continue
        start, end = resolve_line_endpoints(line, scene, compiler=compiler)
        result = closest_point_on_line(point, start, end, line.kind)
        if result.distance < limits.line and result.distance < best_distance:
            best_distance = result.distance
            best = SnapTarget("line", line.id, result.coord, result.distance, LineParam(line.id, result.parameter))

    for curve in scene.curves:
        if curve.id in skip:
            continue
        start, control, end = resolve_curve_geometry(curve, scene, compiler=compiler)
        result = closest_point_on_curve(
            point,
            start,
            control,
            end,
            seed_samples=cfg.curve_seed_samples,
            refine_steps=cfg.curve_refine_steps,
            step_factor=cfg.curve_step_factor,
        )
        if result.distance < limits.curve and result.distance < best_distance:
            best_distance = result.distance
            best = SnapTarget("curve", curve.id, result.coord, result.distance, CurveParam(curve.id, result.parameter))

    for fn in scene.functions:
        if fn.id in skip:
            continue
        result = project_onto_function(point, fn, scene, config=cfg, compiler=compiler)
        if result is None:
            logger.debug("Function %r has no value near (%.4g, %.4g)", fn.id, point[0], point[1])
            continue
        if result.distance < limits.function and result.distance < best_distance:
            best_distance = result.distance
            best = SnapTarget(
                "function", fn.id, result.coord, result.distance, FunctionParam(fn.id, result.parameter)
            )

    return best


resolve_snap = find_nearest_snap_target


def apply_snap(point: Point, target: Optional[SnapTarget]) -> Point:
    """Anchor ``point`` to ``target`` and store the snapped coordinate.

    ``None`` leaves the point untouched.
    """

    if target is None:
        return point
    point.anchor = target.anchor
    point.x, point.y = target.coord
    logger.info("Snapped point %r to %s %r", point.id, target.kind, target.element_id)
    return point


def is_anchored_to(anchor: Optional[Anchor], element_id: str) -> bool:
    return anchor_target(anchor) == element_id
