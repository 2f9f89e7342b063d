"""Graph-space <-> pixel-space transforms and grid snapping."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import List, Tuple

from .elements import Axes, Coord

logger = logging.getLogger(__name__)

DEFAULT_RANGE = (-5.0, 5.0)


def to_pixel(point: Coord, axes: Axes, width: float, height: float) -> Coord:
    """Map a graph-space point to pixel space (y grows downward)."""

    x_range = axes.x_max - axes.x_min
    y_range = axes.y_max - axes.y_min
    px = (point[0] - axes.x_min) / x_range * width
    py = height - (point[1] - axes.y_min) / y_range * height
    return (px, py)


def to_graph(pixel: Coord, axes: Axes, width: float, height: float) -> Coord:
    """Inverse of :func:`to_pixel`."""

    x_range = axes.x_max - axes.x_min
    y_range = axes.y_max - axes.y_min
    x = axes.x_min + pixel[0] / width * x_range
    y = axes.y_min + (height - pixel[1]) / height * y_range
    return (x, y)


def snap_to_grid(value: float, step: float) -> float:
    if step <= 0:
        return value
    return round(value / step) * step


def snap_point_to_grid(point: Coord, axes: Axes) -> Coord:
    x_step = axes.x_step if axes.x_step is not None else axes.grid_step
    y_step = axes.y_step if axes.y_step is not None else axes.grid_step
    return (snap_to_grid(point[0], x_step), snap_to_grid(point[1], y_step))


def _valid_range(lo: float, hi: float) -> bool:
    return math.isfinite(lo) and math.isfinite(hi) and hi > lo


def repair_axes(axes: Axes) -> Axes:
    """Return ``axes`` with any non-positive or non-finite range reset to ±5.

    Each axis is repaired independently; a valid axes object is returned as is.
    """

    repaired = axes
    if not _valid_range(axes.x_min, axes.x_max):
        logger.warning("Resetting invalid x range [%s, %s] to default", axes.x_min, axes.x_max)
        repaired = replace(repaired, x_min=DEFAULT_RANGE[0], x_max=DEFAULT_RANGE[1])
    if not _valid_range(axes.y_min, axes.y_max):
        logger.warning("Resetting invalid y range [%s, %s] to default", axes.y_min, axes.y_max)
        repaired = replace(repaired, y_min=DEFAULT_RANGE[0], y_max=DEFAULT_RANGE[1])
    return repaired


def visible_axes(axes: Axes) -> List[Tuple[str, float]]:
    """Return ``(axis_name, value)`` for each coordinate axis inside the view.

    The x-axis (``y = 0``) is visible when ``y_min <= 0 <= y_max``; the y-axis
    (``x = 0``) when ``x_min <= 0 <= x_max``.
    """

    result: List[Tuple[str, float]] = []
    if axes.y_min <= 0 <= axes.y_max:
        result.append(("x", 0.0))
    if axes.x_min <= 0 <= axes.x_max:
        result.append(("y", 0.0))
    return result
