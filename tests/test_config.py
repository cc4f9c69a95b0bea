from __future__ import annotations

from pathlib import Path

import pytest

from quakestream.config import QuakeStreamConfig, config_from_mapping, load_config
from quakestream.errors import ConfigError


def test_defaults() -> None:
    cfg = QuakeStreamConfig().sanitized()
    assert cfg.sample_rate_hz == 100.0
    assert cfg.calibration_factor == pytest.approx(980.665)
    assert cfg.highpass_cutoff_hz == 0.1
    assert cfg.lpgm_breakpoints == (5.0, 15.0, 50.0, 100.0)
    assert cfg.event_threshold == 0.5
    assert cfg.history_capacity == 200
    assert cfg.display_capacity == 50
    assert cfg.publish_interval_s == pytest.approx(1 / 30)
    assert cfg.status_interval_s == pytest.approx(0.1)


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "absent.yaml") == QuakeStreamConfig()
    assert load_config(None) == QuakeStreamConfig()


def test_yaml_values_and_nested_block(tmp_path: Path) -> None:
    path = tmp_path / "quake.yaml"
    path.write_text(
        "quakestream:\n"
        "  sample_rate_hz: 200\n"
        "  lpgm_breakpoints: [1, 2, 3]\n"
        "  history_path: ~/events.json\n"
        "event_threshold: 1.5\n"
        "plot_colour: red\n",
        encoding="utf-8",
    )
    cfg = load_config(path)

    assert cfg.sample_rate_hz == 200.0
    assert cfg.lpgm_breakpoints == (1.0, 2.0, 3.0)
    assert cfg.event_threshold == 1.5
    assert cfg.history_path == str(Path("~/events.json").expanduser())


def test_out_of_range_timing_values_are_clamped() -> None:
    cfg = config_from_mapping(
        {"publish_hz": 0, "status_hz": -1, "display_capacity": 0, "alert_cooldown_s": -3}
    )
    assert cfg.publish_hz == 1.0
    assert cfg.status_hz == 0.5
    assert cfg.display_capacity == 1
    assert cfg.alert_cooldown_s == 0.0


@pytest.mark.parametrize(
    "mapping",
    [
        {"sample_rate_hz": 0},
        {"highpass_cutoff_hz": 60.0},
        {"highpass_cutoff_hz": 0.0},
        {"lpgm_breakpoints": [15, 5]},
        {"lpgm_breakpoints": []},
        {"lpgm_breakpoints": "5,15"},
        {"history_capacity": "many"},
    ],
)
def test_unusable_values_raise_config_error(mapping) -> None:
    with pytest.raises(ConfigError):
        config_from_mapping(mapping)


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_config_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        config_from_mapping({"sample_rate_hz": -5})
