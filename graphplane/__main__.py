import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from graphplane import (
    GraphplaneError,
    Scene,
    find_nearest_snap_target,
    project,
    to_graph,
    to_pixel,
    validate_scene,
)
from graphplane.logging_utils import configure_logging
from graphplane.scene import anchor_to_dict

logger = logging.getLogger(__name__)


def _load_scene(path: str) -> Scene:
    text = Path(path).read_text(encoding="utf-8")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GraphplaneError(f"{path}: invalid JSON ({exc})") from exc
    scene = Scene.from_dict(payload)
    logger.info(
        "Loaded scene from %s: %d point(s), %d line(s), %d curve(s), %d function(s), %d area(s)",
        path,
        len(scene.points),
        len(scene.lines),
        len(scene.curves),
        len(scene.functions),
        len(scene.areas),
    )
    return scene


def _coord_payload(coord) -> Dict[str, float]:
    return {"x": coord[0], "y": coord[1]}


def _cmd_validate(scene: Scene, args: argparse.Namespace) -> None:
    validate_scene(scene)
    print("ok")


def _cmd_pixel(scene: Scene, args: argparse.Namespace) -> None:
    px, py = to_pixel((args.x, args.y), scene.axes, scene.width, scene.height)
    print(f"{px:.6f} {py:.6f}")


def _cmd_graph(scene: Scene, args: argparse.Namespace) -> None:
    x, y = to_graph((args.px, args.py), scene.axes, scene.width, scene.height)
    print(f"{x:.6f} {y:.6f}")


def _cmd_project(scene: Scene, args: argparse.Namespace) -> None:
    element = scene.get(args.element_id)
    result = project((args.x, args.y), element, scene)
    if result is None:
        print("null")
        return
    payload = {
        "coord": _coord_payload(result.coord),
        "parameter": result.parameter,
        "distance": result.distance,
    }
    print(json.dumps(payload))


def _cmd_snap(scene: Scene, args: argparse.Namespace) -> None:
    target = find_nearest_snap_target((args.x, args.y), scene)
    if target is None:
        print("null")
        return
    payload: Dict[str, Any] = {
        "kind": target.kind,
        "elementId": target.element_id,
        "coord": _coord_payload(target.coord),
        "distance": target.distance,
        "anchor": anchor_to_dict(target.anchor),
    }
    print(json.dumps(payload))


def _cmd_area(scene: Scene, args: argparse.Namespace) -> None:
    if args.region:
        result = scene.fill_region(args.area_id, (args.x, args.y))
    else:
        result = scene.reshape_area(args.area_id, (args.x, args.y))
    print(f"Rule: {result.rule}")
    print(f"Mode: {result.area.mode}")
    print(f"Boundaries: {', '.join(result.area.boundary_ids) or '(none)'}")
    if result.area.domain is not None:
        print(f"Domain: [{result.area.domain.min:.6f}, {result.area.domain.max:.6f}]")
    print(f"Polygon points: {len(result.area.points)}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Writing scene to %s", output_path)
        output_path.write_text(json.dumps(scene.to_dict(), indent=2), encoding="utf-8")
        print(f"Scene written to {output_path}")


_COMMANDS = {
    "validate": _cmd_validate,
    "pixel": _cmd_pixel,
    "graph": _cmd_graph,
    "project": _cmd_project,
    "snap": _cmd_snap,
    "area": _cmd_area,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query and edit graph scenes")
    parser.add_argument("path", help="Path to the scene JSON file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("validate", help="Check the scene for structural problems")

    pixel = commands.add_parser("pixel", help="Convert graph coordinates to pixels")
    pixel.add_argument("x", type=float)
    pixel.add_argument("y", type=float)

    graph = commands.add_parser("graph", help="Convert pixel coordinates to graph units")
    graph.add_argument("px", type=float)
    graph.add_argument("py", type=float)

    proj = commands.add_parser("project", help="Closest point on an element")
    proj.add_argument("element_id")
    proj.add_argument("x", type=float)
    proj.add_argument("y", type=float)

    snap = commands.add_parser("snap", help="Nearest snap target for a point")
    snap.add_argument("x", type=float)
    snap.add_argument("y", type=float)

    area = commands.add_parser("area", help="Re-run boundary detection for an area")
    area.add_argument("area_id")
    area.add_argument("x", type=float)
    area.add_argument("y", type=float)
    area.add_argument(
        "--region",
        action="store_true",
        help="Fill the enclosing region instead of applying the boundary rules",
    )
    area.add_argument(
        "--output",
        help="Optional path where the updated scene will be written",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        scene = _load_scene(args.path)
        _COMMANDS[args.command](scene, args)
    except (GraphplaneError, KeyError, ValueError, OSError) as exc:
        logger.error("Command %s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
