"""Scene collection: element storage, reference cleanup and payload I/O."""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .elements import (
    AREA_MODES,
    LINE_KINDS,
    Anchor,
    Area,
    Axes,
    Coord,
    CoordAnchor,
    Curve,
    CurveParam,
    Domain,
    Element,
    FillStyle,
    Function,
    FunctionParam,
    Line,
    LineParam,
    Point,
    PointRef,
    StrokeStyle,
    Text,
    anchor_target,
)
from .boundary import BoundaryResult, resolve_boundary
from .config import EngineConfig
from .errors import PayloadError
from .expression import ExpressionCompiler
from .regions import resolve_region
from .resolve import area_anchor_point, resolve_anchor, resolve_point_position
from .transform import repair_axes

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 480
DEFAULT_HEIGHT = 280


@dataclass
class Scene:
    """All elements of one graph plus its axes and pixel size."""

    axes: Axes = field(default_factory=Axes)
    points: List[Point] = field(default_factory=list)
    lines: List[Line] = field(default_factory=list)
    curves: List[Curve] = field(default_factory=list)
    functions: List[Function] = field(default_factory=list)
    areas: List[Area] = field(default_factory=list)
    texts: List[Text] = field(default_factory=list)
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT
    background: Optional[str] = None

    # --- lookup ------------------------------------------------------------

    def elements(self) -> Iterator[Element]:
        yield from self.points
        yield from self.lines
        yield from self.curves
        yield from self.functions
        yield from self.areas
        yield from self.texts

    def find(self, element_id: str) -> Optional[Element]:
        for element in self.elements():
            if element.id == element_id:
                return element
        return None

    def get(self, element_id: str) -> Element:
        element = self.find(element_id)
        if element is None:
            raise KeyError(element_id)
        return element

    def find_point(self, point_id: str) -> Optional[Point]:
        return next((p for p in self.points if p.id == point_id), None)

    def find_line(self, line_id: str) -> Optional[Line]:
        return next((ln for ln in self.lines if ln.id == line_id), None)

    def find_curve(self, curve_id: str) -> Optional[Curve]:
        return next((c for c in self.curves if c.id == curve_id), None)

    def find_function(self, function_id: str) -> Optional[Function]:
        return next((fn for fn in self.functions if fn.id == function_id), None)

    def find_area(self, area_id: str) -> Optional[Area]:
        return next((a for a in self.areas if a.id == area_id), None)

    # --- mutation ----------------------------------------------------------

    def _collection_for(self, element: Element) -> List[Any]:
        if isinstance(element, Point):
            return self.points
        if isinstance(element, Line):
            return self.lines
        if isinstance(element, Curve):
            return self.curves
        if isinstance(element, Function):
            return self.functions
        if isinstance(element, Area):
            return self.areas
        if isinstance(element, Text):
            return self.texts
        raise TypeError(f"unknown element {element!r}")

    def add(self, element: Element) -> Element:
        if self.find(element.id) is not None:
            raise ValueError(f"duplicate element id {element.id!r}")
        self._collection_for(element).append(element)
        return element

    def replace(self, element: Element) -> Element:
        """Swap the element with the same id (and kind) for ``element``."""

        collection = self._collection_for(element)
        for idx, existing in enumerate(collection):
            if existing.id == element.id:
                collection[idx] = element
                return element
        raise KeyError(element.id)

    def remove(self, element_id: str) -> Element:
        """Remove an element and detach everything that referenced it."""

        element = self.get(element_id)
        self._freeze_references(element_id)
        if isinstance(element, (Line, Curve, Function)):
            self._drop_area_boundary(element_id)
        self._collection_for(element).remove(element)
        logger.info("Removed %s %r", element.element_type, element_id)
        return element

    def _freeze_references(self, element_id: str) -> None:
        """Replace every anchor naming ``element_id`` by its current coordinate.

        Must run before the element leaves the scene so the coordinates still
        resolve through it.
        """

        def freeze(anchor: Anchor) -> Anchor:
            if anchor_target(anchor) != element_id:
                return anchor
            x, y = resolve_anchor(anchor, self)
            return CoordAnchor(x, y)

        for line in self.lines:
            line.start = freeze(line.start)
            line.end = freeze(line.end)
        for curve in self.curves:
            curve.start = freeze(curve.start)
            curve.end = freeze(curve.end)
        for area in self.areas:
            area.points = [freeze(anchor) for anchor in area.points]
        for point in self.points:
            if point.id == element_id or anchor_target(point.anchor) != element_id:
                continue
            x, y = resolve_point_position(point, self)
            point.x, point.y = x, y
            point.anchor = None
            logger.debug("Detached point %r from %r at (%.4g, %.4g)", point.id, element_id, x, y)

    def _drop_area_boundary(self, element_id: str) -> None:
        for area in self.areas:
            area.boundary_ids = [bid for bid in area.boundary_ids if bid != element_id]
            area.ignored_boundaries = [bid for bid in area.ignored_boundaries if bid != element_id]
            if area.function_id == element_id:
                area.function_id = None
            if area.function_id2 == element_id:
                area.function_id2 = None
            if area.line_id == element_id:
                area.line_id = None

    def position_of(self, point_id: str) -> Coord:
        """Displayed position of a point; the origin when it does not exist."""

        return resolve_anchor(PointRef(point_id), self)

    # --- area gestures -----------------------------------------------------

    def reshape_area(
        self,
        area_id: str,
        drop_point: Coord,
        *,
        ignore: Iterable[str] = (),
        config: Optional[EngineConfig] = None,
        compiler: Optional[ExpressionCompiler] = None,
    ) -> BoundaryResult:
        """Drop the control point of an area and store the rebuilt area."""

        area = self.find_area(area_id)
        if area is None:
            raise KeyError(area_id)
        result = resolve_boundary(drop_point, area, self, ignore, config=config, compiler=compiler)
        self.replace(result.area)
        return result

    def ignore_boundary(
        self,
        area_id: str,
        boundary_id: str,
        *,
        config: Optional[EngineConfig] = None,
        compiler: Optional[ExpressionCompiler] = None,
    ) -> BoundaryResult:
        """Stop treating ``boundary_id`` as an edge of the area and rebuild it in place.

        A bounded-region area grows across the ignored element into the
        neighbouring region; any other area is re-run through the boundary rules.
        """

        area = self.find_area(area_id)
        if area is None:
            raise KeyError(area_id)
        if boundary_id not in area.ignored_boundaries:
            area.ignored_boundaries.append(boundary_id)
        drop_point = area_anchor_point(area, self)
        if area.mode == "bounded-region":
            return self.fill_region(area_id, drop_point, config=config, compiler=compiler)
        return self.reshape_area(area_id, drop_point, config=config, compiler=compiler)

    def fill_region(
        self,
        area_id: str,
        drop_point: Coord,
        *,
        config: Optional[EngineConfig] = None,
        compiler: Optional[ExpressionCompiler] = None,
    ) -> BoundaryResult:
        """Fill the region enclosing ``drop_point`` and store it as a bounded-region area."""

        area = self.find_area(area_id)
        if area is None:
            raise KeyError(area_id)
        updated = resolve_region(drop_point, area, self, config=config, compiler=compiler)
        if updated is None:
            result = BoundaryResult(dataclasses.replace(area, label_pos=drop_point), "none", [])
        else:
            result = BoundaryResult(updated, "bounded-region", [])
        self.replace(result.area)
        return result

    # --- payload I/O -------------------------------------------------------

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Scene":
        if not isinstance(payload, Mapping):
            raise PayloadError("scene payload must be an object")
        axes = repair_axes(_axes_from_dict(payload.get("axes") or {}))
        scene = cls(
            axes=axes,
            width=_size(payload.get("width"), DEFAULT_WIDTH),
            height=_size(payload.get("height"), DEFAULT_HEIGHT),
            background=payload.get("background"),
        )
        for raw in _items(payload, "points"):
            scene.add(_point_from_dict(raw))
        for raw in _items(payload, "lines"):
            scene.add(_line_from_dict(raw))
        for raw in _items(payload, "curves"):
            scene.add(_curve_from_dict(raw))
        for raw in _items(payload, "functions"):
            scene.add(_function_from_dict(raw))
        for raw in _items(payload, "areas"):
            scene.add(_area_from_dict(raw))
        for raw in _items(payload, "texts"):
            scene.add(_text_from_dict(raw))
        return scene

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "axes": _axes_to_dict(self.axes),
            "points": [_point_to_dict(p) for p in self.points],
            "lines": [_line_to_dict(ln) for ln in self.lines],
            "curves": [_curve_to_dict(c) for c in self.curves],
            "functions": [_function_to_dict(fn) for fn in self.functions],
            "areas": [_area_to_dict(a) for a in self.areas],
            "texts": [_text_to_dict(t) for t in self.texts],
            "width": self.width,
            "height": self.height,
        }
        if self.background is not None:
            payload["background"] = self.background
        return payload

    def copy(self) -> "Scene":
        return Scene.from_dict(self.to_dict())


# --- decoding helpers ------------------------------------------------------


def _number(value: Any, fallback: float) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return fallback
    return num if math.isfinite(num) else fallback


def _size(value: Any, fallback: float) -> float:
    num = _number(value, fallback)
    return num if num > 0 else fallback


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    num = _number(value, math.nan)
    return None if math.isnan(num) else num


def _items(payload: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    items = payload.get(key) or []
    if not isinstance(items, list):
        raise PayloadError(f"'{key}' must be a list")
    for item in items:
        if not isinstance(item, Mapping):
            raise PayloadError(f"'{key}' entries must be objects")
        if not isinstance(item.get("id"), str) or not item["id"]:
            raise PayloadError(f"'{key}' entry without an id: {dict(item)!r}")
    return items


def _coord(value: Any) -> Optional[Coord]:
    if not isinstance(value, Mapping):
        return None
    return (_number(value.get("x"), 0.0), _number(value.get("y"), 0.0))


def _anchor_from_dict(raw: Any, *, allow_bare_coord: bool = False) -> Optional[Anchor]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise PayloadError(f"anchor must be an object, got {raw!r}")
    kind = raw.get("type")
    if kind == "coord":
        if allow_bare_coord and "x" not in raw and "y" not in raw:
            return None
        return CoordAnchor(_number(raw.get("x"), 0.0), _number(raw.get("y"), 0.0))
    if kind == "point":
        return PointRef(str(raw.get("pointId", "")))
    if kind == "line":
        return LineParam(str(raw.get("lineId", "")), _number(raw.get("t"), 0.0))
    if kind == "curve":
        return CurveParam(str(raw.get("curveId", "")), _number(raw.get("t"), 0.0))
    if kind == "function":
        return FunctionParam(str(raw.get("functionId", "")), _number(raw.get("x"), 0.0))
    raise PayloadError(f"unknown anchor type {kind!r}")


def _required_anchor(raw: Mapping[str, Any], key: str) -> Anchor:
    anchor = _anchor_from_dict(raw.get(key))
    if anchor is None:
        raise PayloadError(f"element {raw.get('id')!r} is missing '{key}'")
    return anchor


def _stroke(raw: Any) -> StrokeStyle:
    if not isinstance(raw, Mapping):
        return StrokeStyle()
    return StrokeStyle(
        color=raw.get("color"),
        width=_optional_number(raw.get("width")),
        dashed=bool(raw.get("dashed", False)),
        opacity=_optional_number(raw.get("opacity")),
    )


def _fill(raw: Any) -> FillStyle:
    if not isinstance(raw, Mapping):
        return FillStyle()
    return FillStyle(color=raw.get("color"), opacity=_optional_number(raw.get("opacity")))


def _domain(raw: Any) -> Optional[Domain]:
    if not isinstance(raw, Mapping):
        return None
    return Domain(min=_optional_number(raw.get("min")), max=_optional_number(raw.get("max")))


def _label_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "label": raw.get("label"),
        "label_is_math": bool(raw.get("labelIsMath", False)),
        "show_label": raw.get("showLabel", True) is not False,
        "label_pos": _coord(raw.get("labelPos")),
    }


def _axes_from_dict(raw: Mapping[str, Any]) -> Axes:
    return Axes(
        x_min=_number(raw.get("xMin"), -5.0),
        x_max=_number(raw.get("xMax"), 5.0),
        y_min=_number(raw.get("yMin"), -5.0),
        y_max=_number(raw.get("yMax"), 5.0),
        show_grid=raw.get("showGrid", True) is not False,
        x_step=_optional_number(raw.get("xStep")),
        y_step=_optional_number(raw.get("yStep")),
        grid_step=_number(raw.get("gridStep"), 1.0),
        x_label=raw.get("xLabel"),
        y_label=raw.get("yLabel"),
    )


def _point_from_dict(raw: Mapping[str, Any]) -> Point:
    return Point(
        id=raw["id"],
        x=_number(raw.get("x"), 0.0),
        y=_number(raw.get("y"), 0.0),
        color=raw.get("color"),
        size=_optional_number(raw.get("size")),
        filled=raw.get("filled", True) is not False,
        anchor=_anchor_from_dict(raw.get("anchor"), allow_bare_coord=True),
        **_label_fields(raw),
    )


def _line_kind(raw: Mapping[str, Any]) -> str:
    kind = raw.get("kind", "segment")
    if kind not in LINE_KINDS:
        raise PayloadError(f"line {raw.get('id')!r} has unknown kind {kind!r}")
    return kind


def _line_from_dict(raw: Mapping[str, Any]) -> Line:
    return Line(
        id=raw["id"],
        start=_required_anchor(raw, "start"),
        end=_required_anchor(raw, "end"),
        kind=_line_kind(raw),  # type: ignore[arg-type]
        style=_stroke(raw.get("style")),
        **_label_fields(raw),
    )


def _curve_from_dict(raw: Mapping[str, Any]) -> Curve:
    return Curve(
        id=raw["id"],
        start=_required_anchor(raw, "start"),
        end=_required_anchor(raw, "end"),
        curvature=_number(raw.get("curvature"), 0.0),
        style=_stroke(raw.get("style")),
        **_label_fields(raw),
    )


def _function_from_dict(raw: Mapping[str, Any]) -> Function:
    return Function(
        id=raw["id"],
        expression=str(raw.get("expression", "")),
        domain=_domain(raw.get("domain")),
        offset_x=_number(raw.get("offsetX"), 0.0),
        offset_y=_number(raw.get("offsetY"), 0.0),
        scale_y=_number(raw.get("scaleY"), 1.0),
        style=_stroke(raw.get("style")),
        **_label_fields(raw),
    )


def _area_from_dict(raw: Mapping[str, Any]) -> Area:
    mode = raw.get("mode", "polygon")
    if mode not in AREA_MODES:
        raise PayloadError(f"area {raw.get('id')!r} has unknown mode {mode!r}")
    points = [_anchor_from_dict(p) for p in raw.get("points") or []]
    return Area(
        id=raw["id"],
        mode=mode,
        points=[p for p in points if p is not None],
        function_id=raw.get("functionId"),
        function_id2=raw.get("functionId2"),
        line_id=raw.get("lineId"),
        domain=_domain(raw.get("domain")),
        boundary_ids=list(raw.get("boundaryIds") or []),
        ignored_boundaries=list(raw.get("ignoredBoundaries") or []),
        fill=_fill(raw.get("fill")),
        **_label_fields(raw),
    )


def _text_from_dict(raw: Mapping[str, Any]) -> Text:
    return Text(
        id=raw["id"],
        x=_number(raw.get("x"), 0.0),
        y=_number(raw.get("y"), 0.0),
        text=str(raw.get("text", "")),
        is_math=bool(raw.get("isMath", False)),
    )


# --- encoding helpers ------------------------------------------------------


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def anchor_to_dict(anchor: Anchor) -> Dict[str, Any]:
    if isinstance(anchor, CoordAnchor):
        return {"type": "coord", "x": anchor.x, "y": anchor.y}
    if isinstance(anchor, PointRef):
        return {"type": "point", "pointId": anchor.point_id}
    if isinstance(anchor, LineParam):
        return {"type": "line", "lineId": anchor.line_id, "t": anchor.t}
    if isinstance(anchor, CurveParam):
        return {"type": "curve", "curveId": anchor.curve_id, "t": anchor.t}
    if isinstance(anchor, FunctionParam):
        return {"type": "function", "functionId": anchor.function_id, "x": anchor.x}
    raise TypeError(f"unknown anchor {anchor!r}")


def _coord_to_dict(coord: Optional[Coord]) -> Optional[Dict[str, float]]:
    return None if coord is None else {"x": coord[0], "y": coord[1]}


def _label_to_dict(element: Any) -> Dict[str, Any]:
    return _compact(
        {
            "label": element.label,
            "labelIsMath": element.label_is_math or None,
            "showLabel": None if element.show_label else False,
            "labelPos": _coord_to_dict(element.label_pos),
        }
    )


def _stroke_to_dict(style: StrokeStyle) -> Dict[str, Any]:
    return _compact(
        {"color": style.color, "width": style.width, "dashed": style.dashed or None, "opacity": style.opacity}
    )


def _domain_to_dict(domain: Optional[Domain]) -> Optional[Dict[str, float]]:
    if domain is None:
        return None
    return _compact({"min": domain.min, "max": domain.max})


def _axes_to_dict(axes: Axes) -> Dict[str, Any]:
    return _compact(
        {
            "xMin": axes.x_min,
            "xMax": axes.x_max,
            "yMin": axes.y_min,
            "yMax": axes.y_max,
            "showGrid": axes.show_grid,
            "xStep": axes.x_step,
            "yStep": axes.y_step,
            "gridStep": axes.grid_step,
            "xLabel": axes.x_label,
            "yLabel": axes.y_label,
        }
    )


def _point_to_dict(point: Point) -> Dict[str, Any]:
    data = _compact(
        {
            "id": point.id,
            "x": point.x,
            "y": point.y,
            "color": point.color,
            "size": point.size,
            "filled": None if point.filled else False,
            "anchor": anchor_to_dict(point.anchor) if point.anchor is not None else None,
        }
    )
    data.update(_label_to_dict(point))
    return data


def _line_to_dict(line: Line) -> Dict[str, Any]:
    data = {
        "id": line.id,
        "kind": line.kind,
        "start": anchor_to_dict(line.start),
        "end": anchor_to_dict(line.end),
        "style": _stroke_to_dict(line.style),
    }
    data.update(_label_to_dict(line))
    return data


def _curve_to_dict(curve: Curve) -> Dict[str, Any]:
    data = {
        "id": curve.id,
        "start": anchor_to_dict(curve.start),
        "end": anchor_to_dict(curve.end),
        "curvature": curve.curvature,
        "style": _stroke_to_dict(curve.style),
    }
    data.update(_label_to_dict(curve))
    return data


def _function_to_dict(fn: Function) -> Dict[str, Any]:
    data = _compact(
        {
            "id": fn.id,
            "expression": fn.expression,
            "domain": _domain_to_dict(fn.domain),
            "offsetX": fn.offset_x,
            "offsetY": fn.offset_y,
            "scaleY": fn.scale_y,
            "style": _stroke_to_dict(fn.style),
        }
    )
    data.update(_label_to_dict(fn))
    return data


def _area_to_dict(area: Area) -> Dict[str, Any]:
    data = _compact(
        {
            "id": area.id,
            "mode": area.mode,
            "points": [anchor_to_dict(p) for p in area.points],
            "functionId": area.function_id,
            "functionId2": area.function_id2,
            "lineId": area.line_id,
            "domain": _domain_to_dict(area.domain),
            "boundaryIds": list(area.boundary_ids),
            "ignoredBoundaries": list(area.ignored_boundaries) or None,
            "fill": _compact({"color": area.fill.color, "opacity": area.fill.opacity}),
        }
    )
    data.update(_label_to_dict(area))
    return data


def _text_to_dict(text: Text) -> Dict[str, Any]:
    return {"id": text.id, "x": text.x, "y": text.y, "text": text.text, "isMath": text.is_math}


__all__ = ["Scene", "anchor_to_dict", "DEFAULT_WIDTH", "DEFAULT_HEIGHT"]
