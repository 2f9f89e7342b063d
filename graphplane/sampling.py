"""Fixed-density sampling of functions and curves, and clipping to the view."""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

import numpy as np

from .elements import Axes, Coord
from .expression import SafeEvaluator
from .resolve import bezier_point

_CLIP_EPS = 1e-12


def sample_function(evaluate: SafeEvaluator, x_min: float, x_max: float, samples: int) -> List[Coord]:
    """Evaluate at ``samples + 1`` evenly spaced x values, dropping those without a value."""

    if not (math.isfinite(x_min) and math.isfinite(x_max)):
        return []
    points: List[Coord] = []
    for x in np.linspace(x_min, x_max, max(1, samples) + 1):
        y = evaluate(float(x))
        if y is not None:
            points.append((float(x), y))
    return points


def sample_curve(start: Coord, control: Coord, end: Coord, samples: int) -> List[Coord]:
    return [bezier_point(start, control, end, float(t)) for t in np.linspace(0.0, 1.0, max(1, samples) + 1)]


def clip_point_to_axes(point: Coord, axes: Axes) -> Coord:
    return (
        min(max(point[0], axes.x_min), axes.x_max),
        min(max(point[1], axes.y_min), axes.y_max),
    )


def _parameter_range(kind: str) -> Tuple[float, float]:
    if kind == "segment":
        return 0.0, 1.0
    if kind == "ray":
        return 0.0, math.inf
    return -math.inf, math.inf


def clip_line_to_axes(start: Coord, end: Coord, kind: str, axes: Axes) -> Optional[Tuple[Coord, Coord]]:
    """Visible part of a segment, ray or line as an ``(entry, exit)`` pair.

    Liang-Barsky clipping against the axes rectangle; ``None`` when nothing of
    the element is visible or the element has zero length.
    """

    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx * dx + dy * dy < 1e-20:
        return None
    t_lo, t_hi = _parameter_range(kind)
    edges = (
        (-dx, start[0] - axes.x_min),
        (dx, axes.x_max - start[0]),
        (-dy, start[1] - axes.y_min),
        (dy, axes.y_max - start[1]),
    )
    for p, q in edges:
        if abs(p) < _CLIP_EPS:
            if q < 0:
                return None
            continue
        r = q / p
        if p < 0:
            t_lo = max(t_lo, r)
        else:
            t_hi = min(t_hi, r)
        if t_lo > t_hi:
            return None
    entry = (start[0] + dx * t_lo, start[1] + dy * t_lo)
    exit_ = (start[0] + dx * t_hi, start[1] + dy * t_hi)
    return clip_point_to_axes(entry, axes), clip_point_to_axes(exit_, axes)
