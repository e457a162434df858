import copy
import tomllib
from pathlib import Path
from typing import Any, Optional

DEFAULTS: dict[str, dict[str, Any]] = {
    "camera": {
        "index": 0,
        "preferred_width": 0,
        "preferred_height": 0,
        "fps": 30,
        "mirror": False,
    },
    "scanner": {
        "backend": "opencv",
        "code_types": ["qr", "ean-13"],
    },
    "display": {
        "width_dips": 360,
        "height_dips": 640,
        "pixel_ratio": 2.0,
    },
    "session": {
        "clear_delay_ms": 300,
        "autostart": False,
    },
    "ui": {
        "show": True,
    },
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str | Path]) -> dict:
    """Load a TOML config on top of DEFAULTS. ``None`` returns the defaults."""
    if path is None:
        return copy.deepcopy(DEFAULTS)
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    with config_path.open("rb") as f:
        return _merge(DEFAULTS, tomllib.load(f))


def validate_config(config: dict) -> None:
    """Reject values the pipeline cannot work with."""
    display = config["display"]
    for key in ("width_dips", "height_dips", "pixel_ratio"):
        if not isinstance(display[key], (int, float)) or display[key] <= 0:
            raise ValueError(f"display.{key} must be a positive number")
    delay = config["session"]["clear_delay_ms"]
    if not isinstance(delay, (int, float)) or delay < 0:
        raise ValueError("session.clear_delay_ms must be >= 0")
    if not config["scanner"]["code_types"]:
        raise ValueError("scanner.code_types must not be empty")
