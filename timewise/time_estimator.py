# timewise/time_estimator.py
"""
Travel-time model for track steps and itinerary legs.
Step times come from flat speed, vertical speed and a downhill factor;
leg times add the per-leg conditions percentage and stop minutes on top.
"""

from __future__ import annotations

from timewise.config import Activity, Settings
from timewise.utils.numbers import round_half_up


def step_time_hours(
    distance_km: float,
    ascent_m: float,
    descent_m: float,
    settings: Settings,
) -> float:
    """
    Estimated duration of one point-to-point step.

    Args:
        distance_km: Horizontal step length in km
        ascent_m: Elevation gained on the step (0 if descending)
        descent_m: Elevation lost on the step (0 if climbing)
        settings: Speeds, downhill factor and activity

    Returns:
        Step duration in hours

    Horizontal time is distance / flat speed, vertical time is the elevation
    change / vertical speed. Hiking overlaps the two axes (the slower one
    plus half of the faster one); snowshoeing adds them. Net descents are
    scaled by the downhill factor.
    """
    h = distance_km / settings.speed_flat_kmh

    v_mag = ascent_m if ascent_m > 0 else descent_m
    v = v_mag / settings.speed_vert_mh if v_mag > 0 else 0.0

    if Activity.parse(settings.activity) is Activity.SNOWSHOE:
        t = h + v
    else:
        t = max(h, v) + 0.5 * min(h, v)

    if descent_m > 0 and descent_m >= ascent_m:
        t *= settings.downhill_factor

    return t


def adjusted_leg_hours(base_h: float, cond_pct: float = 0, stops_min: float = 0) -> float:
    """Leg time with a conditions percentage and stop minutes applied."""
    return base_h * (1 + cond_pct / 100.0) + stops_min / 60.0


def format_time_hhmm(hours: float) -> str:
    """
    Format a duration in hours as "H:MM" (rounded to the minute).

    Examples: 0.5 -> "0:30", 12.75 -> "12:45"
    """
    total_minutes = round_half_up(hours * 60)
    h, m = divmod(total_minutes, 60)
    return f"{h}:{m:02d}"
