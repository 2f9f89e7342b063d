from .errors import GraphplaneError, ExpressionError, PayloadError, ValidationError
from .config import EngineConfig, SnapThresholds, get_engine_config, set_engine_config
from .elements import (
    Axes,
    Anchor,
    CoordAnchor,
    PointRef,
    LineParam,
    CurveParam,
    FunctionParam,
    Point,
    Line,
    Curve,
    Function,
    Area,
    Text,
    Domain,
    StrokeStyle,
    FillStyle,
    Element,
    X_AXIS_ID,
    Y_AXIS_ID,
)
from .transform import to_pixel, to_graph, snap_to_grid, snap_point_to_grid, repair_axes, visible_axes
from .expression import compile_expression, compile_safe, latex_to_expression, normalize_expression
from .resolve import resolve_anchor, resolve_point_position, function_evaluator, area_outline
from .scene import Scene
from .projections import (
    Projection,
    project,
    closest_point_on_line,
    closest_point_on_curve,
    closest_point_on_function,
    refine_curve_parameter,
    golden_section_minimize,
)
from .snapping import SnapTarget, find_nearest_snap_target, resolve_snap, apply_snap, is_anchored_to
from .intersections import (
    LineGeometry,
    find_function_intersections,
    find_line_function_intersections,
    find_line_line_intersection,
)
from .boundary import (
    BoundaryCandidate,
    BoundaryResult,
    collect_candidates,
    generate_polygon_between_curves,
    generate_polygon_bounded_by_elements,
    generate_polygon_under_function,
    resolve_boundary,
)
from .regions import RegionResult, find_enclosing_region, resolve_region
from .validate import validate_scene

__all__ = [
    'GraphplaneError',
    'ExpressionError',
    'PayloadError',
    'ValidationError',
    'EngineConfig',
    'SnapThresholds',
    'get_engine_config',
    'set_engine_config',
    'Axes',
    'Anchor',
    'CoordAnchor',
    'PointRef',
    'LineParam',
    'CurveParam',
    'FunctionParam',
    'Point',
    'Line',
    'Curve',
    'Function',
    'Area',
    'Text',
    'Domain',
    'StrokeStyle',
    'FillStyle',
    'Element',
    'X_AXIS_ID',
    'Y_AXIS_ID',
    'to_pixel',
    'to_graph',
    'snap_to_grid',
    'snap_point_to_grid',
    'repair_axes',
    'visible_axes',
    'compile_expression',
    'compile_safe',
    'latex_to_expression',
    'normalize_expression',
    'resolve_anchor',
    'resolve_point_position',
    'function_evaluator',
    'area_outline',
    'Scene',
    'Projection',
    'project',
    'closest_point_on_line',
    'closest_point_on_curve',
    'closest_point_on_function',
    'refine_curve_parameter',
    'golden_section_minimize',
    'SnapTarget',
    'find_nearest_snap_target',
    'resolve_snap',
    'apply_snap',
    'is_anchored_to',
    'LineGeometry',
    'find_function_intersections',
    'find_line_function_intersections',
    'find_line_line_intersection',
    'BoundaryCandidate',
    'BoundaryResult',
    'collect_candidates',
    'generate_polygon_between_curves',
    'generate_polygon_bounded_by_elements',
    'generate_polygon_under_function',
    'resolve_boundary',
    'RegionResult',
    'find_enclosing_region',
    'resolve_region',
    'validate_scene',
]
