import pytest

from graphplane.elements import (
    Area,
    Axes,
    CoordAnchor,
    Curve,
    CurveParam,
    Domain,
    Function,
    Line,
    Point,
    PointRef,
)
from graphplane.errors import ValidationError
from graphplane.scene import Scene
from graphplane.validate import validate_scene


def _valid_scene():
    scene = Scene()
    scene.add(Point('A', x=1.0, y=1.0))
    scene.add(Line('L', start=PointRef('A'), end=CoordAnchor(3.0, 1.0), kind='ray'))
    scene.add(Curve('C', start=CoordAnchor(0.0, 0.0), end=PointRef('A'), curvature=0.5))
    scene.add(Function('f', r'\frac{1}{2}x^2', domain=Domain(-3.0, 3.0)))
    scene.add(Point('P', anchor=CurveParam('C', 0.25)))
    scene.add(Area('a', mode='under-function', function_id='f', boundary_ids=['f', 'x-axis']))
    return scene


def test_validate_accepts_valid_scene():
    validate_scene(_valid_scene())


@pytest.mark.parametrize(
    'mutate, message_part',
    [
        (lambda s: setattr(s, 'axes', Axes(x_min=1.0, x_max=1.0)), 'axes x range'),
        (lambda s: setattr(s, 'height', 0), 'canvas size'),
        (lambda s: s.points.append(Point('A')), 'duplicate element id "A"'),
        (lambda s: s.points.append(Point('x-axis')), 'reserved'),
        (lambda s: s.points.append(Point('Q', anchor=PointRef('Q'))), 'anchored to itself'),
        (lambda s: s.points.append(Point('Q', anchor=PointRef('ghost'))), 'unknown point "ghost"'),
        (lambda s: s.points.append(Point('Q', anchor=CurveParam('C', 1.5))), 'curve parameter'),
        (lambda s: setattr(s.lines[0], 'kind', 'arc'), 'line kind'),
        (lambda s: setattr(s.functions[0], 'expression', 'sin('), 'f:'),
        (lambda s: setattr(s.functions[0], 'domain', Domain(2.0, -2.0)), 'domain must be increasing'),
        (lambda s: setattr(s.areas[0], 'mode', 'donut'), 'unknown area mode'),
        (lambda s: setattr(s.areas[0], 'function_id2', 'g'), 'unknown function "g"'),
        (lambda s: setattr(s.areas[0], 'line_id', 'M'), 'unknown line "M"'),
        (lambda s: s.areas[0].boundary_ids.append('ghost'), 'unknown boundary "ghost"'),
    ],
)
def test_validate_reports_problem(mutate, message_part):
    scene = _valid_scene()
    mutate(scene)

    with pytest.raises(ValidationError) as exc:
        validate_scene(scene)

    assert message_part in str(exc.value)


def test_validate_uses_host_compiler():
    scene = _valid_scene()

    def compiler(text):
        raise ValueError(f'cannot compile {text}')

    with pytest.raises(ValidationError) as exc:
        validate_scene(scene, compiler=compiler)

    assert 'cannot compile' in str(exc.value)
