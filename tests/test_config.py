from __future__ import annotations

from pathlib import Path

import pytest

from docmap.config import CONFIG_FILENAME, EngineConfig, config_from_dict, find_config, load_config
from docmap.models import LayoutAlgorithm


def test_defaults_are_valid() -> None:
    config = EngineConfig()
    config.validate()

    assert config.algorithm == LayoutAlgorithm.FORCE
    assert config.force.theta == 0.9
    assert config.animation.entering_frames == 15
    assert config.animation.exiting_frames == 10
    assert config.animation.transition_frames == 20


def test_load_config_reads_sections(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text(
        "\n".join(
            [
                "[layout]",
                'algorithm = "Hierarchical"',
                "component_gap = 200",
                "",
                "[force]",
                "iterations = 50",
                "charge_strength = -250",
                "",
                "[hierarchical]",
                'rank_direction = "lr"',
                "",
                "[placement]",
                "seed = 4",
                "",
                "[unknown]",
                "whatever = true",
                "",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.algorithm == LayoutAlgorithm.HIERARCHICAL
    assert config.component_gap == 200.0
    assert config.force.iterations == 50
    assert config.force.charge_strength == -250.0
    assert config.force.theta == 0.9
    assert config.hierarchical.rank_direction == "LR"
    assert config.placement.seed == 4


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"layout": {"algorithm": "spiral"}}, "layout.algorithm"),
        ({"force": {"iterations": "many"}}, "force.iterations"),
        ({"force": {"iterations": 0}}, "force.iterations"),
        ({"force": {"theta": 3}}, "force.theta"),
        ({"force": {"alpha_min": -0.5}}, "force.alpha_min"),
        ({"force": {"alpha_min": 1}}, "force.alpha_min"),
        ({"force": {"link_distance": 0}}, "force.link_distance"),
        ({"hierarchical": {"node_separation": -10}}, "hierarchical.node_separation"),
        ({"placement": {"node_separation": 0}}, "placement.node_separation"),
        ({"hierarchical": {"rank_direction": "BT"}}, "rank_direction"),
        ({"animation": {"fps": 0}}, "animation.fps"),
        ({"placement": {"seed": 1.5}}, "placement.seed"),
    ],
)
def test_invalid_values_raise(data: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        config_from_dict(data)


def test_malformed_toml_raises_value_error(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text("[force\niterations = ", encoding="utf-8")

    with pytest.raises(ValueError, match="Failed to parse"):
        load_config(path)


def test_find_config_walks_up(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config(nested) == (tmp_path / CONFIG_FILENAME).resolve()
