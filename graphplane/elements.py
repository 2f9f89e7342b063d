"""Element model: axes, anchors and the six drawable element kinds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Literal, Optional, Tuple, Union

Coord = Tuple[float, float]

LineKind = Literal["segment", "ray", "line"]
AreaMode = Literal[
    "polygon",
    "under-function",
    "between-functions",
    "between-line-and-function",
    "bounded-region",
]

LINE_KINDS = ("segment", "ray", "line")
AREA_MODES = (
    "polygon",
    "under-function",
    "between-functions",
    "between-line-and-function",
    "bounded-region",
)

X_AXIS_ID = "x-axis"
Y_AXIS_ID = "y-axis"


@dataclass
class Axes:
    x_min: float = -5.0
    x_max: float = 5.0
    y_min: float = -5.0
    y_max: float = 5.0
    show_grid: bool = True
    x_step: Optional[float] = None
    y_step: Optional[float] = None
    grid_step: float = 1.0
    x_label: Optional[str] = None
    y_label: Optional[str] = None


# --- anchors ---------------------------------------------------------------


@dataclass(frozen=True)
class CoordAnchor:
    x: float
    y: float
    type: Literal["coord"] = field(default="coord", init=False)


@dataclass(frozen=True)
class PointRef:
    point_id: str
    type: Literal["point"] = field(default="point", init=False)


@dataclass(frozen=True)
class LineParam:
    line_id: str
    t: float
    type: Literal["line"] = field(default="line", init=False)


@dataclass(frozen=True)
class CurveParam:
    curve_id: str
    t: float
    type: Literal["curve"] = field(default="curve", init=False)


@dataclass(frozen=True)
class FunctionParam:
    function_id: str
    x: float
    type: Literal["function"] = field(default="function", init=False)


Anchor = Union[CoordAnchor, PointRef, LineParam, CurveParam, FunctionParam]


def anchor_target(anchor: Optional[Anchor]) -> Optional[str]:
    """Return the id of the element ``anchor`` refers to, if any."""

    if anchor is None or isinstance(anchor, CoordAnchor):
        return None
    if isinstance(anchor, PointRef):
        return anchor.point_id
    if isinstance(anchor, LineParam):
        return anchor.line_id
    if isinstance(anchor, CurveParam):
        return anchor.curve_id
    if isinstance(anchor, FunctionParam):
        return anchor.function_id
    raise TypeError(f"unknown anchor {anchor!r}")


# --- styles ----------------------------------------------------------------


@dataclass
class StrokeStyle:
    color: Optional[str] = None
    width: Optional[float] = None
    dashed: bool = False
    opacity: Optional[float] = None


@dataclass
class FillStyle:
    color: Optional[str] = None
    opacity: Optional[float] = None


@dataclass
class Domain:
    min: Optional[float] = None
    max: Optional[float] = None


# --- elements --------------------------------------------------------------


@dataclass
class Point:
    element_type: ClassVar[str] = "point"

    id: str
    x: float = 0.0
    y: float = 0.0
    label: Optional[str] = None
    label_is_math: bool = False
    show_label: bool = True
    label_pos: Optional[Coord] = None
    color: Optional[str] = None
    size: Optional[float] = None
    filled: bool = True
    anchor: Optional[Anchor] = None


@dataclass
class Line:
    element_type: ClassVar[str] = "line"

    id: str
    start: Anchor
    end: Anchor
    kind: LineKind = "segment"
    style: StrokeStyle = field(default_factory=StrokeStyle)
    label: Optional[str] = None
    label_is_math: bool = False
    show_label: bool = True
    label_pos: Optional[Coord] = None


@dataclass
class Curve:
    """Quadratic Bézier whose control point sits ``curvature`` off the chord midpoint."""

    element_type: ClassVar[str] = "curve"

    id: str
    start: Anchor
    end: Anchor
    curvature: float = 0.0
    style: StrokeStyle = field(default_factory=StrokeStyle)
    label: Optional[str] = None
    label_is_math: bool = False
    show_label: bool = True
    label_pos: Optional[Coord] = None


@dataclass
class Function:
    """``y = scale_y * f(x - offset_x) + offset_y`` for the textual ``f``."""

    element_type: ClassVar[str] = "function"

    id: str
    expression: str
    domain: Optional[Domain] = None
    offset_x: float = 0.0
    offset_y: float = 0.0
    scale_y: float = 1.0
    style: StrokeStyle = field(default_factory=StrokeStyle)
    label: Optional[str] = None
    label_is_math: bool = False
    show_label: bool = True
    label_pos: Optional[Coord] = None


@dataclass
class Area:
    element_type: ClassVar[str] = "area"

    id: str
    mode: AreaMode = "polygon"
    points: List[Anchor] = field(default_factory=list)
    function_id: Optional[str] = None
    function_id2: Optional[str] = None
    line_id: Optional[str] = None
    domain: Optional[Domain] = None
    boundary_ids: List[str] = field(default_factory=list)
    ignored_boundaries: List[str] = field(default_factory=list)
    fill: FillStyle = field(default_factory=FillStyle)
    label: Optional[str] = None
    label_is_math: bool = False
    show_label: bool = True
    label_pos: Optional[Coord] = None


@dataclass
class Text:
    element_type: ClassVar[str] = "text"

    id: str
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    is_math: bool = False


Element = Union[Point, Line, Curve, Function, Area, Text]

ELEMENT_TYPES = (Point, Line, Curve, Function, Area, Text)
