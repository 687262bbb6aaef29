from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml


# --- desired accuracy hints (meters; negative values are symbolic) ---
ACCURACY_BEST_FOR_NAVIGATION = -2.0
ACCURACY_BEST = -1.0
ACCURACY_NEAREST_TEN_METERS = 10.0
ACCURACY_HUNDRED_METERS = 100.0
ACCURACY_KILOMETER = 1000.0
ACCURACY_THREE_KILOMETERS = 3000.0

DISTANCE_FILTER_NONE = -1.0
HEADING_FILTER_NONE = -1.0

ACCURACY_HINTS: Dict[str, float] = {
    "best_for_navigation": ACCURACY_BEST_FOR_NAVIGATION,
    "best": ACCURACY_BEST,
    "nearest_ten_meters": ACCURACY_NEAREST_TEN_METERS,
    "hundred_meters": ACCURACY_HUNDRED_METERS,
    "kilometer": ACCURACY_KILOMETER,
    "three_kilometers": ACCURACY_THREE_KILOMETERS,
}

DEFAULT_CONFIG_PATH = "config/params.yaml"

_DEFAULTS: Dict[str, Any] = {
    "location": {
        "desired_accuracy": "best",
        "distance_filter_m": DISTANCE_FILTER_NONE,
        "heading_filter_deg": 1.0,
        "strict_mode": True,
        "reject_repeated_locations": False,
    },
    "geocoding": {
        "provider": "none",
        "strategy": "auto",
        "nominatim": {
            "base_url": "https://nominatim.openstreetmap.org/reverse",
            "user_agent": "location-controller/0.1 (reverse-geocode; set your own UA)",
            "accept_language": "en",
            "zoom": 18,
            "timeout_s": 10.0,
            "min_interval_s": 1.0,
        },
    },
    "sensor": {
        "start_lat": 38.8895,
        "start_lon": -77.0352,
        "rate_hz": 1.0,
        "realtime": True,
    },
    "logging": {"level": "INFO"},
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the YAML parameter file merged over built-in defaults.

    Path precedence: explicit `path`, env LOCATION_CONFIG, config/params.yaml.
    A missing file yields the defaults; a malformed one raises yaml.YAMLError.
    """
    p = Path(path or os.environ.get("LOCATION_CONFIG") or DEFAULT_CONFIG_PATH)
    if not p.exists():
        return copy.deepcopy(_DEFAULTS)
    with p.open("r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{p}: top level must be a mapping")
    return _merge(_DEFAULTS, loaded)


# -------------------------
# Value coercion
# -------------------------
def coerce_accuracy(value: Union[str, float, int]) -> float:
    """Accept a hint name ("best", "hundred_meters", ...) or a number of meters."""
    if isinstance(value, str):
        key = value.strip().lower()
        if key in ACCURACY_HINTS:
            return ACCURACY_HINTS[key]
        try:
            value = float(key)
        except ValueError:
            raise ValueError(f"unknown accuracy hint: {value!r}") from None
    acc = float(value)
    if acc < 0 and acc not in (ACCURACY_BEST, ACCURACY_BEST_FOR_NAVIGATION):
        raise ValueError(f"desired accuracy must be >= 0 or a symbolic hint, got {acc}")
    return acc


def coerce_filter(value: Union[str, float, int, None], name: str) -> float:
    """Filters are >= 0, or the -1 "none" sentinel (also spelled None / "none")."""
    if value is None or (isinstance(value, str) and value.strip().lower() == "none"):
        return -1.0
    f = float(value)
    if f < 0 and f != -1.0:
        raise ValueError(f"{name} must be >= 0 or -1 (none), got {f}")
    return f


@dataclass
class LocationConfig:
    """
    Live controller configuration. Mutable; the controller reads the filtering
    flags on every fix and forwards the sensor settings verbatim.
    """
    desired_accuracy: float = ACCURACY_BEST
    distance_filter_m: float = DISTANCE_FILTER_NONE
    heading_filter_deg: float = 1.0
    strict_mode: bool = True
    reject_repeated_locations: bool = False

    def __post_init__(self) -> None:
        self.desired_accuracy = coerce_accuracy(self.desired_accuracy)
        self.distance_filter_m = coerce_filter(self.distance_filter_m, "distance_filter_m")
        self.heading_filter_deg = coerce_filter(self.heading_filter_deg, "heading_filter_deg")
        self.strict_mode = bool(self.strict_mode)
        self.reject_repeated_locations = bool(self.reject_repeated_locations)

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> "LocationConfig":
        """Build from the `location:` YAML section; unknown keys are ignored."""
        s = section or {}
        d = _DEFAULTS["location"]
        return cls(
            desired_accuracy=s.get("desired_accuracy", d["desired_accuracy"]),
            distance_filter_m=s.get("distance_filter_m", d["distance_filter_m"]),
            heading_filter_deg=s.get("heading_filter_deg", d["heading_filter_deg"]),
            strict_mode=s.get("strict_mode", d["strict_mode"]),
            reject_repeated_locations=s.get("reject_repeated_locations", d["reject_repeated_locations"]),
        )

    def sensor_settings(self) -> Tuple[float, float, float]:
        """(desired_accuracy, distance_filter_m, heading_filter_deg) for sensor.configure()."""
        return (self.desired_accuracy, self.distance_filter_m, self.heading_filter_deg)
