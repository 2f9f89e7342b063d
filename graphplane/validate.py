import math
from typing import Optional, Set

from .elements import (
    AREA_MODES,
    LINE_KINDS,
    X_AXIS_ID,
    Y_AXIS_ID,
    Anchor,
    CoordAnchor,
    CurveParam,
    FunctionParam,
    LineParam,
    PointRef,
)
from .errors import ExpressionError, ValidationError
from .expression import ExpressionCompiler, compile_expression
from .scene import Scene

__all__ = ['validate_scene', 'ValidationError']


def _check_range(name: str, lo: float, hi: float) -> None:
    if not (math.isfinite(lo) and math.isfinite(hi)):
        raise ValidationError(f'axes {name} range must be finite, got [{lo}, {hi}]')
    if hi <= lo:
        raise ValidationError(f'axes {name} range must be increasing, got [{lo}, {hi}]')


def _check_anchor(owner: str, anchor: Optional[Anchor], scene: Scene) -> None:
    if anchor is None or isinstance(anchor, CoordAnchor):
        return
    if isinstance(anchor, PointRef):
        if anchor.point_id == owner:
            raise ValidationError(f'{owner}: point cannot be anchored to itself')
        if scene.find_point(anchor.point_id) is None:
            raise ValidationError(f'{owner}: unknown point "{anchor.point_id}"')
    elif isinstance(anchor, LineParam):
        if scene.find_line(anchor.line_id) is None:
            raise ValidationError(f'{owner}: unknown line "{anchor.line_id}"')
    elif isinstance(anchor, CurveParam):
        if scene.find_curve(anchor.curve_id) is None:
            raise ValidationError(f'{owner}: unknown curve "{anchor.curve_id}"')
        if not 0.0 <= anchor.t <= 1.0:
            raise ValidationError(f'{owner}: curve parameter must be in [0, 1], got {anchor.t}')
    elif isinstance(anchor, FunctionParam):
        if scene.find_function(anchor.function_id) is None:
            raise ValidationError(f'{owner}: unknown function "{anchor.function_id}"')
    else:
        raise TypeError(f'unknown anchor {anchor!r}')


def validate_scene(scene: Scene, compiler: Optional[ExpressionCompiler] = None) -> None:
    """Raise :class:`ValidationError` on the first structural problem in ``scene``."""

    _check_range('x', scene.axes.x_min, scene.axes.x_max)
    _check_range('y', scene.axes.y_min, scene.axes.y_max)
    if not (scene.width > 0 and scene.height > 0):
        raise ValidationError(f'canvas size must be positive, got {scene.width}x{scene.height}')

    seen: Set[str] = set()
    for element in scene.elements():
        if not element.id:
            raise ValidationError(f'{element.element_type} without an id')
        if element.id in (X_AXIS_ID, Y_AXIS_ID):
            raise ValidationError(f'id "{element.id}" is reserved for the axes')
        if element.id in seen:
            raise ValidationError(f'duplicate element id "{element.id}"')
        seen.add(element.id)

    for p in scene.points:
        _check_anchor(p.id, p.anchor, scene)
    for ln in scene.lines:
        if ln.kind not in LINE_KINDS:
            raise ValidationError(f'{ln.id}: line kind must be segment|ray|line (got {ln.kind})')
        _check_anchor(ln.id, ln.start, scene)
        _check_anchor(ln.id, ln.end, scene)
    for c in scene.curves:
        _check_anchor(c.id, c.start, scene)
        _check_anchor(c.id, c.end, scene)

    compile_fn = compiler or compile_expression
    for fn in scene.functions:
        if fn.domain is not None and fn.domain.min is not None and fn.domain.max is not None:
            if fn.domain.max <= fn.domain.min:
                raise ValidationError(f'{fn.id}: domain must be increasing')
        try:
            compile_fn(fn.expression)
        except (ExpressionError, ValueError, SyntaxError) as exc:
            raise ValidationError(f'{fn.id}: {exc}') from exc

    for a in scene.areas:
        if a.mode not in AREA_MODES:
            raise ValidationError(f'{a.id}: unknown area mode "{a.mode}"')
        for anchor in a.points:
            _check_anchor(a.id, anchor, scene)
        for key in (a.function_id, a.function_id2):
            if key is not None and scene.find_function(key) is None:
                raise ValidationError(f'{a.id}: unknown function "{key}"')
        if a.line_id is not None and scene.find_line(a.line_id) is None:
            raise ValidationError(f'{a.id}: unknown line "{a.line_id}"')
        for bid in a.boundary_ids:
            if bid not in (X_AXIS_ID, Y_AXIS_ID) and bid not in seen:
                raise ValidationError(f'{a.id}: unknown boundary "{bid}"')
