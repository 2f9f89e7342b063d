import math

import pytest

from graphplane.elements import Area, Axes, CoordAnchor, Curve, Function, Line
from graphplane.regions import find_enclosing_region, resolve_region
from graphplane.scene import Scene


def _scene(*elements, axes=None):
    scene = Scene(axes=axes or Axes())
    for element in elements:
        scene.add(element)
    return scene


def test_region_between_parabola_and_diagonal():
    scene = _scene(Function('f', 'x'), Function('g', 'x^2'))

    region = find_enclosing_region((0.5, 0.35), scene)

    assert set(region.boundary_ids) == {'f', 'g'}
    assert region.domain[0] == pytest.approx(0.0, abs=0.05)
    assert region.domain[1] == pytest.approx(1.0, abs=0.05)
    assert len(region.polygon) >= 3
    for x, y in region.polygon:
        assert x * x - 0.05 <= y <= x + 0.05


def test_region_under_sine_arch():
    scene = _scene(Function('s', 'sin(x)'), Function('z', '0'))

    region = find_enclosing_region((math.pi / 2, 0.5), scene)

    assert set(region.boundary_ids) == {'s', 'z'}
    assert region.domain[0] == pytest.approx(0.0, abs=0.05)
    assert region.domain[1] == pytest.approx(math.pi, abs=0.05)


def test_vertical_segment_and_view_edge():
    scene = _scene(Line('L', start=CoordAnchor(1.0, -10.0), end=CoordAnchor(1.0, 10.0)))

    region = find_enclosing_region((3.0, 0.0), scene)

    assert region.boundary_ids == ['L']
    assert region.domain[0] == pytest.approx(1.0, abs=1e-6)
    assert region.domain[1] == pytest.approx(5.0, abs=1e-6)


def test_curve_bounds_region():
    # arch from (-4, 0) to (4, 0) bulging up to y = 2, closed by a segment
    scene = _scene(
        Curve('C', start=CoordAnchor(-4.0, 0.0), end=CoordAnchor(4.0, 0.0), curvature=4.0),
        Line('L', start=CoordAnchor(-4.0, 0.0), end=CoordAnchor(4.0, 0.0)),
    )

    region = find_enclosing_region((0.0, 1.0), scene)

    assert set(region.boundary_ids) == {'C', 'L'}
    assert max(y for _, y in region.polygon) == pytest.approx(2.0, abs=0.05)


def test_ignored_elements_are_not_boundaries():
    scene = _scene(Line('L', start=CoordAnchor(1.0, -10.0), end=CoordAnchor(1.0, 10.0)))

    region = find_enclosing_region((3.0, 0.0), scene, ignored=['L'])

    assert region.boundary_ids == []
    assert region.polygon == [(-5.0, -5.0), (5.0, -5.0), (5.0, 5.0), (-5.0, 5.0)]


def test_empty_scene_yields_whole_view():
    region = find_enclosing_region((0.0, 0.0), Scene())

    assert region.polygon == [(-5.0, -5.0), (5.0, -5.0), (5.0, 5.0), (-5.0, 5.0)]
    assert region.domain == (-5.0, 5.0)


@pytest.mark.parametrize('drop', [(5.0, 0.0), (0.0, -5.0), (7.0, 1.0)])
def test_drop_on_or_outside_view_edge_has_no_region(drop):
    scene = _scene(Function('f', 'x'))

    assert find_enclosing_region(drop, scene) is None


def test_function_gaps_are_not_bridged():
    scene = _scene(Function('h', '1/x'))

    region = find_enclosing_region((-1.0, 3.0), scene)

    # the horizontal ray passes x = 0 and meets the right branch near x = 1/3
    assert region.boundary_ids == ['h']
    assert max(x for x, _ in region.polygon) > 0.3


def test_resolve_region_updates_area():
    scene = _scene(Function('f', 'x'), Function('g', 'x^2'))
    area = Area('a', function_id='f', ignored_boundaries=['z'])

    updated = resolve_region((0.5, 0.35), area, scene)

    assert updated.mode == 'bounded-region'
    assert updated.function_id is None
    assert updated.label_pos == (0.5, 0.35)
    assert updated.ignored_boundaries == ['z']
    assert len(updated.points) >= 3
    assert area.mode == 'polygon'


def test_resolve_region_without_region_returns_none():
    assert resolve_region((9.0, 9.0), Area('a'), Scene()) is None
