import math

import pytest

from graphplane.elements import Axes
from graphplane.transform import (
    repair_axes,
    snap_point_to_grid,
    snap_to_grid,
    to_graph,
    to_pixel,
    visible_axes,
)


def test_origin_maps_to_canvas_centre():
    assert to_pixel((0.0, 0.0), Axes(), 480, 280) == pytest.approx((240.0, 140.0))


def test_top_left_corner_is_pixel_origin():
    assert to_pixel((-5.0, 5.0), Axes(), 480, 280) == pytest.approx((0.0, 0.0))
    assert to_pixel((5.0, -5.0), Axes(), 480, 280) == pytest.approx((480.0, 280.0))


@pytest.mark.parametrize(
    'axes, point',
    [
        (Axes(), (1.25, -3.5)),
        (Axes(x_min=-0.5, x_max=2.0, y_min=10.0, y_max=40.0), (1.9, 12.5)),
        (Axes(x_min=-1000.0, x_max=1000.0, y_min=-1e-3, y_max=1e-3), (-999.0, 5e-4)),
    ],
)
def test_pixel_graph_round_trip(axes, point):
    back = to_graph(to_pixel(point, axes, 640, 360), axes, 640, 360)

    assert math.isclose(back[0], point[0], rel_tol=1e-9, abs_tol=1e-12)
    assert math.isclose(back[1], point[1], rel_tol=1e-9, abs_tol=1e-12)


def test_snap_to_grid_rounds_to_nearest_step():
    assert snap_to_grid(1.26, 0.5) == pytest.approx(1.5)
    assert snap_to_grid(-0.74, 0.5) == pytest.approx(-0.5)


@pytest.mark.parametrize('value', [-7.3, -0.01, 0.0, 0.49, 3.14159, 12.75])
@pytest.mark.parametrize('step', [0.25, 1.0, 2.5])
def test_snap_to_grid_is_idempotent(value, step):
    once = snap_to_grid(value, step)

    assert snap_to_grid(once, step) == once


@pytest.mark.parametrize('step', [0.0, -1.0])
def test_snap_to_grid_without_positive_step_is_identity(step):
    assert snap_to_grid(1.234, step) == 1.234


def test_snap_point_prefers_axis_steps_over_grid_step():
    axes = Axes(x_step=0.5, grid_step=2.0)

    assert snap_point_to_grid((1.3, 1.3), axes) == pytest.approx((1.5, 2.0))


def test_repair_axes_resets_only_the_broken_axis():
    repaired = repair_axes(Axes(x_min=3.0, x_max=3.0, y_min=-1.0, y_max=2.0))

    assert (repaired.x_min, repaired.x_max) == (-5.0, 5.0)
    assert (repaired.y_min, repaired.y_max) == (-1.0, 2.0)


def test_repair_axes_handles_non_finite_ranges():
    repaired = repair_axes(Axes(y_min=float('nan'), y_max=1.0))

    assert (repaired.y_min, repaired.y_max) == (-5.0, 5.0)


def test_repair_axes_keeps_valid_axes():
    axes = Axes(x_min=-2.0, x_max=8.0)

    assert repair_axes(axes) is axes


def test_visible_axes_follow_view_range():
    assert visible_axes(Axes()) == [('x', 0.0), ('y', 0.0)]
    assert visible_axes(Axes(y_min=1.0, y_max=5.0)) == [('y', 0.0)]
    assert visible_axes(Axes(x_min=1.0, x_max=5.0, y_min=1.0, y_max=5.0)) == []
