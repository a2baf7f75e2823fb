"""Engine configuration loaded from docmap.toml."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .models import LayoutAlgorithm

CONFIG_FILENAME = "docmap.toml"


@dataclass
class ForceConfig:
    iterations: int = 300
    charge_strength: float = -400.0
    distance_max: float = 800.0
    theta: float = 0.9  # Barnes-Hut opening angle
    link_distance: float = 300.0
    link_strength: float = 0.5
    collide_padding: float = 30.0
    center_strength: float = 0.05
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    convergence_threshold: float = 0.5  # total displacement per tick
    seed: int = 0


@dataclass
class HierarchicalConfig:
    rank_direction: str = "TB"  # TB or LR
    node_separation: float = 60.0
    rank_separation: float = 120.0
    crossing_passes: int = 4


@dataclass
class FocusedConfig:
    """Mind map and radial layout settings."""

    max_depth: int = 3
    horizontal_spacing: float = 340.0
    vertical_gap: float = 30.0
    radial_base_radius: float = 280.0
    radial_ring_spacing: float = 240.0
    radial_external_offset: float = 180.0
    external_cluster_offset: float = 160.0
    preview_char_limit: int = 100


@dataclass
class AnimationConfig:
    entering_frames: int = 15
    exiting_frames: int = 10
    transition_frames: int = 20
    fps: int = 60


@dataclass
class PlacementConfig:
    """Neighbour-proximity placement of newly added nodes."""

    node_separation: float = 60.0
    viewport_x: float = 0.0
    viewport_y: float = 0.0
    seed: int | None = None


@dataclass
class EngineConfig:
    default_algorithm: str = LayoutAlgorithm.FORCE.value
    component_gap: float = 120.0
    force: ForceConfig = field(default_factory=ForceConfig)
    hierarchical: HierarchicalConfig = field(default_factory=HierarchicalConfig)
    focused: FocusedConfig = field(default_factory=FocusedConfig)
    animation: AnimationConfig = field(default_factory=AnimationConfig)
    placement: PlacementConfig = field(default_factory=PlacementConfig)

    @property
    def algorithm(self) -> LayoutAlgorithm:
        return LayoutAlgorithm(self.default_algorithm)

    def validate(self) -> None:
        """Raise ValueError on settings the engine cannot run with."""
        try:
            LayoutAlgorithm(self.default_algorithm)
        except ValueError:
            choices = ", ".join(a.value for a in LayoutAlgorithm)
            raise ValueError(f"layout.algorithm must be one of: {choices}") from None

        if self.force.iterations <= 0:
            raise ValueError("force.iterations must be a positive integer")
        if not 0.0 < self.force.theta <= 2.0:
            raise ValueError("force.theta must be in (0, 2]")
        if not 0.0 <= self.force.velocity_decay < 1.0:
            raise ValueError("force.velocity_decay must be in [0, 1)")
        if not 0.0 < self.force.alpha_min < 1.0:
            raise ValueError("force.alpha_min must be in (0, 1)")
        if self.force.link_distance <= 0:
            raise ValueError("force.link_distance must be positive")
        if self.hierarchical.node_separation <= 0:
            raise ValueError("hierarchical.node_separation must be positive")
        if self.placement.node_separation <= 0:
            raise ValueError("placement.node_separation must be positive")
        if self.hierarchical.rank_direction not in ("TB", "LR"):
            raise ValueError("hierarchical.rank_direction must be TB or LR")
        if self.hierarchical.crossing_passes < 0:
            raise ValueError("hierarchical.crossing_passes must not be negative")
        if self.focused.max_depth <= 0:
            raise ValueError("focused.max_depth must be a positive integer")
        for name in ("entering_frames", "exiting_frames", "transition_frames", "fps"):
            if getattr(self.animation, name) <= 0:
                raise ValueError(f"animation.{name} must be a positive integer")


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _coerce_value(raw: Any, default: Any, key: str) -> Any:
    if isinstance(default, bool):
        if not isinstance(raw, bool):
            raise ValueError(f"{key} must be true or false")
        return raw
    if isinstance(default, int) and not isinstance(raw, bool):
        if isinstance(raw, int):
            return raw
        raise ValueError(f"{key} must be an integer")
    if isinstance(default, float):
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)
        raise ValueError(f"{key} must be a number")
    if isinstance(default, str):
        return str(raw).strip()
    if default is None:
        if raw is None or (isinstance(raw, int) and not isinstance(raw, bool)):
            return raw
        raise ValueError(f"{key} must be an integer")
    return raw


def _load_section(cls: type, raw: dict[str, Any], section: str) -> Any:
    defaults = cls()
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        if f.name in raw:
            kwargs[f.name] = _coerce_value(raw[f.name], getattr(defaults, f.name), f"{section}.{f.name}")
    return cls(**kwargs)


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    """Build and validate an EngineConfig from parsed TOML data."""
    layout = _coerce_dict(data.get("layout"))

    config = EngineConfig(
        default_algorithm=str(layout.get("algorithm", LayoutAlgorithm.FORCE.value)).strip().lower(),
        component_gap=_coerce_value(layout.get("component_gap", 120.0), 120.0, "layout.component_gap"),
        force=_load_section(ForceConfig, _coerce_dict(data.get("force")), "force"),
        hierarchical=_load_section(HierarchicalConfig, _coerce_dict(data.get("hierarchical")), "hierarchical"),
        focused=_load_section(FocusedConfig, _coerce_dict(data.get("focused")), "focused"),
        animation=_load_section(AnimationConfig, _coerce_dict(data.get("animation")), "animation"),
        placement=_load_section(PlacementConfig, _coerce_dict(data.get("placement")), "placement"),
    )
    config.hierarchical.rank_direction = config.hierarchical.rank_direction.upper()
    config.validate()
    return config


def load_config(path: Path) -> EngineConfig:
    """
    Load engine settings from TOML.

    Missing sections and keys fall back to defaults; unknown keys are ignored.
    """
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Failed to parse {path.name}: {e}") from e

    return config_from_dict(data)


def find_config(start: Path) -> Path | None:
    """Find docmap.toml by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
