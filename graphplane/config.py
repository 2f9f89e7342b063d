"""Configuration helpers for engine thresholds and iteration bounds."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SnapThresholds:
    """Maximum snap distance per element kind, in graph units."""

    line: float = 0.25
    curve: float = 0.30
    function: float = 0.30


@dataclass
class EngineConfig:
    """Sample counts, iteration bounds and thresholds used by every operation."""

    snap: SnapThresholds = field(default_factory=SnapThresholds)

    # projection
    curve_seed_samples: int = 20
    curve_refine_steps: int = 5
    curve_step_factor: float = 0.1
    function_seed_samples: int = 50
    golden_section_iterations: int = 15

    # boundary resolution
    boundary_threshold: float = 3.0
    polygon_samples: int = 60
    under_function_half_width: float = 2.5
    intersection_samples: int = 200
    intersection_tolerance: float = 1e-4

    # enclosing regions
    region_samples: int = 200
    region_rays: int = 120
    region_refine_depth: int = 6
    region_max_arc_points: int = 30


_ENGINE_CONFIG = EngineConfig()


def get_engine_config() -> EngineConfig:
    return copy.deepcopy(_ENGINE_CONFIG)


def set_engine_config(config: EngineConfig) -> None:
    global _ENGINE_CONFIG
    _ENGINE_CONFIG = copy.deepcopy(config)


def resolve_config(config: Optional[EngineConfig]) -> EngineConfig:
    """Return ``config`` or the installed global configuration."""

    return config if config is not None else _ENGINE_CONFIG
