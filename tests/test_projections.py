import math

import pytest

from graphplane.elements import Area, CoordAnchor, Curve, Domain, Function, Line, Point, Text
from graphplane.expression import compile_safe
from graphplane.projections import (
    closest_point_on_curve,
    closest_point_on_function,
    closest_point_on_line,
    golden_section_minimize,
    project,
    refine_curve_parameter,
)
from graphplane.scene import Scene


def test_segment_projection_clamps_to_end():
    result = closest_point_on_line((15.0, 5.0), (0.0, 0.0), (10.0, 0.0), 'segment')

    assert result.coord == pytest.approx((10.0, 0.0))
    assert result.parameter == 1.0
    assert result.distance == pytest.approx(math.sqrt(50.0))


@pytest.mark.parametrize('kind', ['ray', 'line'])
def test_ray_and_line_extend_past_end(kind):
    result = closest_point_on_line((15.0, 5.0), (0.0, 0.0), (10.0, 0.0), kind)

    assert result.coord == pytest.approx((15.0, 0.0))
    assert result.parameter == pytest.approx(1.5)
    assert result.distance == pytest.approx(5.0)


def test_ray_clamps_behind_start_but_line_does_not():
    ray = closest_point_on_line((-3.0, 4.0), (0.0, 0.0), (10.0, 0.0), 'ray')
    line = closest_point_on_line((-3.0, 4.0), (0.0, 0.0), (10.0, 0.0), 'line')

    assert ray.coord == pytest.approx((0.0, 0.0))
    assert ray.parameter == 0.0
    assert ray.distance == pytest.approx(5.0)
    assert line.coord == pytest.approx((-3.0, 0.0))
    assert line.parameter == pytest.approx(-0.3)
    assert line.distance == pytest.approx(4.0)


@pytest.mark.parametrize('kind', ['segment', 'ray', 'line'])
def test_degenerate_line_projects_onto_start(kind):
    result = closest_point_on_line((5.0, 7.0), (2.0, 3.0), (2.0, 3.0), kind)

    assert result.coord == (2.0, 3.0)
    assert result.parameter == 0.0
    assert result.distance == pytest.approx(5.0)


def test_curve_projection_finds_apex():
    # control point (1, 1): apex of the arc is (1, 0.5)
    result = closest_point_on_curve((1.0, 2.0), (0.0, 0.0), (1.0, 1.0), (2.0, 0.0))

    assert result.parameter == pytest.approx(0.5)
    assert result.coord == pytest.approx((1.0, 0.5))
    assert result.distance == pytest.approx(1.5)


def test_curve_projection_refines_between_samples():
    # straight curve from (0, 0) to (1, 0); the nearest parameter 0.52 is not a seed
    result = closest_point_on_curve((0.52, 1.0), (0.0, 0.0), (0.5, 0.0), (1.0, 0.0))

    assert result.coord[0] == pytest.approx(0.52, abs=0.02)
    assert result.distance == pytest.approx(1.0, abs=1e-3)


def test_curve_projection_clamps_to_endpoints():
    result = closest_point_on_curve((-2.0, 0.0), (0.0, 0.0), (1.0, 1.0), (2.0, 0.0))

    assert result.parameter == 0.0
    assert result.coord == pytest.approx((0.0, 0.0))
    assert result.distance == pytest.approx(2.0)


def test_golden_section_minimize_converges():
    x = golden_section_minimize(lambda v: (v - 1.0) ** 2, -3.0, 4.0, iterations=40)

    assert x == pytest.approx(1.0, abs=1e-6)


def test_function_projection_below_parabola_reaches_vertex():
    evaluate = compile_safe('x^2')

    result = closest_point_on_function((0.0, -4.0), evaluate, (-5.0, 5.0))

    assert result.parameter == pytest.approx(0.0, abs=1e-3)
    assert result.distance == pytest.approx(4.0, rel=1e-6)


def test_function_projection_inside_parabola_finds_nearest_arm():
    # nearest points of y = x^2 to (0, 4) are at x = +/- sqrt(3.5)
    evaluate = compile_safe('x^2')

    result = closest_point_on_function((0.0, 4.0), evaluate, (-5.0, 5.0))

    assert abs(result.parameter) == pytest.approx(math.sqrt(3.5), abs=1e-2)
    assert result.distance == pytest.approx(math.sqrt(3.75), abs=1e-3)
    assert result.coord[1] == pytest.approx(result.parameter ** 2)


def test_function_projection_skips_missing_samples():
    evaluate = compile_safe('sqrt(x)')

    result = closest_point_on_function((-3.0, 0.0), evaluate, (-5.0, 5.0))

    assert result.parameter == pytest.approx(0.0, abs=0.05)
    assert result.distance == pytest.approx(3.0, abs=0.05)


def test_function_projection_without_values_fails():
    assert closest_point_on_function((0.0, 0.0), lambda x: None, (-5.0, 5.0)) is None
    assert closest_point_on_function((0.0, 0.0), compile_safe('x'), (2.0, 1.0)) is None


def _scene():
    scene = Scene()
    scene.add(Point('P', x=3.0, y=4.0))
    scene.add(Line('L', start=CoordAnchor(0.0, 0.0), end=CoordAnchor(10.0, 0.0)))
    scene.add(Curve('C', start=CoordAnchor(0.0, 0.0), end=CoordAnchor(2.0, 0.0), curvature=1.0))
    scene.add(Function('f', 'x^2', domain=Domain(-1.0, 1.0)))
    scene.add(Function('bad', 'sin('))
    scene.add(Area('a'))
    scene.add(Text('t'))
    return scene


def test_project_dispatches_on_element_kind():
    scene = _scene()

    assert project((5.0, 2.0), scene.get('L'), scene).coord == pytest.approx((5.0, 0.0))
    assert project((1.0, 2.0), scene.get('C'), scene).coord == pytest.approx((1.0, 0.5))
    assert project((0.0, 0.0), scene.get('P'), scene).distance == pytest.approx(5.0)


def test_project_respects_function_domain():
    scene = _scene()

    result = project((3.0, 1.0), scene.get('f'), scene)

    assert result.parameter == pytest.approx(1.0, abs=1e-3)
    assert result.coord == pytest.approx((1.0, 1.0), abs=1e-3)


def test_project_fails_for_uncompilable_and_unprojectable_elements():
    scene = _scene()

    assert project((0.0, 0.0), scene.get('bad'), scene) is None
    assert project((0.0, 0.0), scene.get('a'), scene) is None
    assert project((0.0, 0.0), scene.get('t'), scene) is None


def test_refine_curve_parameter_descends_within_step_bound():
    t, value = refine_curve_parameter(
        lambda t: (t - 0.3) ** 2,
        lambda t: 2.0 * (t - 0.3),
        1.0,
        steps=5,
        step_factor=0.1,
    )

    # each step shrinks the gap to the minimum by a factor 0.8
    assert t == pytest.approx(0.3 + 0.7 * 0.8 ** 5)
    assert value < 0.49


def test_refine_curve_parameter_clamps_and_stops():
    t, value = refine_curve_parameter(
        lambda t: (t + 1.0) ** 2,
        lambda t: 2.0 * (t + 1.0),
        0.5,
        steps=10,
        step_factor=0.1,
    )

    assert t == 0.0
    assert value == pytest.approx(1.0)

    t, value = refine_curve_parameter(lambda t: t, lambda t: 1.0, 0.4, steps=0, step_factor=0.1)
    assert (t, value) == (0.4, 0.4)
