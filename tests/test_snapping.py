import pytest

from graphplane.config import SnapThresholds
from graphplane.elements import (
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
from graphplane.scene import Scene
from graphplane.snapping import apply_snap, find_nearest_snap_target, is_anchored_to, resolve_snap


def _line_and_curve_scene():
    scene = Scene()
    scene.add(Line('L', start=CoordAnchor(-5.0, 0.0), end=CoordAnchor(5.0, 0.0)))
    # straight curve along y = 0.44
    scene.add(Curve('C', start=CoordAnchor(-5.0, 0.44), end=CoordAnchor(5.0, 0.44)))
    return scene


def test_snap_picks_globally_closest_target():
    scene = _line_and_curve_scene()

    target = find_nearest_snap_target((0.0, 0.2), scene)

    assert target.kind == 'line'
    assert target.element_id == 'L'
    assert target.distance == pytest.approx(0.20)
    assert target.anchor == LineParam('L', pytest.approx(0.5))


def test_snap_falls_back_to_curve_when_line_excluded():
    scene = _line_and_curve_scene()

    target = find_nearest_snap_target((0.0, 0.2), scene, exclude=['L'])

    assert target.kind == 'curve'
    assert target.distance == pytest.approx(0.24)
    assert isinstance(target.anchor, CurveParam)
    assert target.coord == pytest.approx((0.0, 0.44))


def test_snap_skips_line_beyond_its_threshold():
    scene = _line_and_curve_scene()

    target = find_nearest_snap_target((0.0, 0.35), scene)

    assert target.kind == 'curve'
    assert target.distance == pytest.approx(0.09)


def test_snap_uses_per_kind_thresholds():
    scene = _line_and_curve_scene()

    assert find_nearest_snap_target((0.0, -0.3), scene) is None
    target = find_nearest_snap_target((0.0, -0.3), scene, SnapThresholds(line=0.5, curve=0.3, function=0.3))
    assert target.element_id == 'L'


def test_snap_to_function():
    scene = Scene()
    scene.add(Function('f', '1'))

    target = resolve_snap((0.5, 1.1), scene)

    assert target.kind == 'function'
    assert target.distance == pytest.approx(0.1, abs=1e-6)
    assert isinstance(target.anchor, FunctionParam)
    assert target.anchor.function_id == 'f'
    assert target.coord[1] == pytest.approx(1.0)


def test_snap_ignores_functions_without_values():
    scene = Scene()
    scene.add(Function('f', 'sqrt(x)'))
    scene.add(Function('g', 'sin('))

    assert find_nearest_snap_target((-3.0, 0.0), scene) is None


def test_apply_snap_anchors_point():
    scene = _line_and_curve_scene()
    point = Point('P', x=0.0, y=0.2)
    scene.add(point)

    apply_snap(point, find_nearest_snap_target((0.0, 0.2), scene))

    assert point.anchor == LineParam('L', pytest.approx(0.5))
    assert (point.x, point.y) == pytest.approx((0.0, 0.0))
    assert is_anchored_to(point.anchor, 'L')
    assert not is_anchored_to(point.anchor, 'C')


def test_apply_snap_without_target_leaves_point():
    point = Point('P', x=1.0, y=2.0, anchor=PointRef('Q'))

    assert apply_snap(point, None) is point
    assert point.anchor == PointRef('Q')
    assert (point.x, point.y) == (1.0, 2.0)
