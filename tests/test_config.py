"""Tests for TOML config loading and validation."""
from __future__ import annotations

import pytest

from scanoverlay.config import DEFAULTS, load_config, validate_config


def test_defaults_without_path():
    config = load_config(None)
    assert config == DEFAULTS
    config["session"]["clear_delay_ms"] = 1
    assert DEFAULTS["session"]["clear_delay_ms"] == 300


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.toml")


def test_file_overrides_are_merged(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[scanner]\nbackend = "zxingcpp"\n\n[display]\npixel_ratio = 3.0\n',
        encoding="utf-8",
    )
    config = load_config(path)
    assert config["scanner"]["backend"] == "zxingcpp"
    assert config["scanner"]["code_types"] == ["qr", "ean-13"]
    assert config["display"]["pixel_ratio"] == 3.0
    assert config["display"]["width_dips"] == 360
    validate_config(config)


@pytest.mark.parametrize(
    "section,key,value",
    [
        ("display", "pixel_ratio", 0),
        ("display", "width_dips", -1),
        ("session", "clear_delay_ms", -5),
        ("scanner", "code_types", []),
    ],
)
def test_validation_rejects(section, key, value):
    config = load_config(None)
    config[section][key] = value
    with pytest.raises(ValueError):
        validate_config(config)
