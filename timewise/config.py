# timewise/config.py
"""
Track-building settings, activity presets and the caller-side sanitising
that keeps them inside the ranges the UI allows.

The core pipeline trusts whatever Settings it is given; everything that
comes from a user (form fields, saved plans, environment) goes through
sanitize_settings / settings_from_mapping first.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from timewise.utils.numbers import clamp, to_non_neg_num, to_pos_num

logger = logging.getLogger(__name__)


class Activity(str, Enum):
    HIKE = "hike"
    SNOWSHOE = "snowshoe"

    @classmethod
    def parse(cls, value: Any) -> "Activity":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug("Unknown activity %r, using %s", value, cls.HIKE.value)
            return cls.HIKE


@dataclass(frozen=True)
class Settings:
    spacing_m: float = 5.0
    smooth_win_m: float = 15.0
    elev_deadband_m: float = 2.0
    speed_flat_kmh: float = 4.0
    speed_vert_mh: float = 300.0
    downhill_factor: float = 0.6667
    activity: Activity = Activity.HIKE


DEFAULT_SETTINGS = Settings()

# allowed UI ranges
SPACING_RANGE_M = (1.0, 100.0)
SMOOTH_WIN_RANGE_M = (5.0, 500.0)
DEADBAND_RANGE_M = (0.0, 20.0)

ACTIVITY_PRESETS: Dict[Activity, Dict[str, float]] = {
    Activity.HIKE: {"spacing": 3, "smooth": 15, "speed_flat": 4, "speed_vert": 300, "dhf": 0.6667},
    Activity.SNOWSHOE: {"spacing": 3, "smooth": 15, "speed_flat": 4, "speed_vert": 300, "dhf": 0.6667},
}


def settings_for_activity(activity: Any, base: Optional[Settings] = None) -> Settings:
    """Apply an activity preset on top of base (defaults if omitted)."""
    kind = Activity.parse(activity)
    p = ACTIVITY_PRESETS[kind]
    return replace(
        base or DEFAULT_SETTINGS,
        spacing_m=float(p["spacing"]),
        smooth_win_m=float(p["smooth"]),
        speed_flat_kmh=float(p["speed_flat"]),
        speed_vert_mh=float(p["speed_vert"]),
        downhill_factor=float(p["dhf"]),
        activity=kind,
    )


def sanitize_settings(s: Settings) -> Settings:
    """Clamp distances to the UI ranges and replace non-positive speeds with defaults."""
    d = DEFAULT_SETTINGS
    return Settings(
        spacing_m=clamp(to_pos_num(s.spacing_m, d.spacing_m), *SPACING_RANGE_M),
        smooth_win_m=clamp(to_pos_num(s.smooth_win_m, d.smooth_win_m), *SMOOTH_WIN_RANGE_M),
        elev_deadband_m=clamp(to_non_neg_num(s.elev_deadband_m, d.elev_deadband_m), *DEADBAND_RANGE_M),
        speed_flat_kmh=to_pos_num(s.speed_flat_kmh, d.speed_flat_kmh),
        speed_vert_mh=to_pos_num(s.speed_vert_mh, d.speed_vert_mh),
        downhill_factor=to_pos_num(s.downhill_factor, d.downhill_factor),
        activity=Activity.parse(s.activity),
    )


def settings_from_mapping(data: Optional[Mapping[str, Any]]) -> Settings:
    """
    Build sanitised Settings from loose key/value input.

    Accepts the keys used in saved plan files (spacingM, smoothWinM,
    elevDeadbandM, speedFlatKmh, speedVertMh, downhillFactor, activity) as
    well as the dataclass field names.
    """
    data = data or {}
    d = DEFAULT_SETTINGS

    def pick(*keys: str) -> Any:
        for k in keys:
            if k in data and data[k] is not None:
                return data[k]
        return None

    raw = Settings(
        spacing_m=to_pos_num(pick("spacingM", "spacing_m"), d.spacing_m),
        smooth_win_m=to_pos_num(pick("smoothWinM", "smooth_win_m"), d.smooth_win_m),
        elev_deadband_m=to_non_neg_num(pick("elevDeadbandM", "elev_deadband_m"), d.elev_deadband_m),
        speed_flat_kmh=to_pos_num(pick("speedFlatKmh", "speed_flat_kmh"), d.speed_flat_kmh),
        speed_vert_mh=to_pos_num(pick("speedVertMh", "speed_vert_mh"), d.speed_vert_mh),
        downhill_factor=to_pos_num(pick("downhillFactor", "downhill_factor"), d.downhill_factor),
        activity=Activity.parse(pick("activity") or d.activity),
    )
    return sanitize_settings(raw)


def settings_to_mapping(s: Settings) -> Dict[str, Any]:
    """Inverse of settings_from_mapping, using the plan file key names."""
    return {
        "speedFlatKmh": s.speed_flat_kmh,
        "speedVertMh": s.speed_vert_mh,
        "downhillFactor": s.downhill_factor,
        "spacingM": s.spacing_m,
        "smoothWinM": s.smooth_win_m,
        "elevDeadbandM": s.elev_deadband_m,
        "activity": Activity.parse(s.activity).value,
    }


ENV_KEYS = {
    "spacing_m": "TIMEWISE_SPACING_M",
    "smooth_win_m": "TIMEWISE_SMOOTH_WIN_M",
    "elev_deadband_m": "TIMEWISE_ELEV_DEADBAND_M",
    "speed_flat_kmh": "TIMEWISE_SPEED_FLAT_KMH",
    "speed_vert_mh": "TIMEWISE_SPEED_VERT_MH",
    "downhill_factor": "TIMEWISE_DOWNHILL_FACTOR",
    "activity": "TIMEWISE_ACTIVITY",
}


def load_settings_from_env() -> Settings:
    """Default settings, overridden by TIMEWISE_* variables (.env supported)."""
    load_dotenv()
    data = {field: os.environ[var] for field, var in ENV_KEYS.items() if var in os.environ}
    if data:
        logger.info("Settings overrides from environment: %s", sorted(data))
    return settings_from_mapping(data)
