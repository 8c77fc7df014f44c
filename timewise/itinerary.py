from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from timewise.course_model import Track
from timewise.roadbook import Roadbook
from timewise.time_estimator import adjusted_leg_hours

LEG_COLUMNS = [
    "idx",
    "start",
    "end",
    "key",
    "name",
    "critical",
    "dist_km",
    "ascent_m",
    "descent_m",
    "cum_dist_km",
    "cum_ascent_m",
    "cum_descent_m",
    "base_h",
    "stops_min",
    "cond_pct",
    "total_h",
    "cum_time_h",
    "remaining_h",
    "observations",
]


def leg_metrics(track: Track, a: int, b: int) -> Dict[str, float]:
    """
    Distance / ascent / descent / base time between two track indices.

    Computed by subtracting cumulative values, so it does not matter how the
    track was accumulated. Indices are clamped into the track.
    """
    last = max(0, track.last_index)
    a = max(0, min(a, last))
    b = max(0, min(b, last))

    def diff(cum: List[float]) -> float:
        va = cum[a] if a < len(cum) else 0.0
        vb = cum[b] if b < len(cum) else va
        return vb - va

    return {
        "dist_km": diff(track.cum_dist_km),
        "ascent_m": diff(track.cum_ascent_m),
        "descent_m": diff(track.cum_descent_m),
        "base_h": diff(track.cum_time_h),
    }


def compute_legs(track: Track, roadbook: Roadbook) -> pd.DataFrame:
    """
    Itinerary table: one row per consecutive pair of waypoints.

    Returns:
        DataFrame with LEG_COLUMNS. Leg values come from leg_metrics, the
        running columns (cum_*) accumulate the legs shown, total_h applies the
        leg's conditions percentage and stop minutes, and remaining_h is what
        is left of the adjusted total after the leg.
    """
    if track.is_empty or len(roadbook.indices) < 2:
        return pd.DataFrame(columns=LEG_COLUMNS)

    rows: List[Dict[str, Any]] = []
    for k, key in enumerate(roadbook.leg_keys(len(track)), start=1):
        m = leg_metrics(track, key.start, key.end)
        stops_min = int(roadbook.leg_stops_min.get(key, 0))
        cond_pct = int(roadbook.leg_cond_pct.get(key, 0))

        rows.append(
            {
                "idx": k,
                "start": key.start,
                "end": key.end,
                "key": key,
                "name": roadbook.leg_name(key),
                "critical": bool(roadbook.leg_critical.get(key, False)),
                "dist_km": m["dist_km"],
                "ascent_m": m["ascent_m"],
                "descent_m": m["descent_m"],
                "base_h": m["base_h"],
                "stops_min": stops_min,
                "cond_pct": cond_pct,
                "total_h": adjusted_leg_hours(m["base_h"], cond_pct, stops_min),
                "observations": roadbook.leg_observations.get(key, ""),
            }
        )

    legs = pd.DataFrame(rows)
    legs["cum_dist_km"] = legs["dist_km"].cumsum()
    legs["cum_ascent_m"] = legs["ascent_m"].cumsum()
    legs["cum_descent_m"] = legs["descent_m"].cumsum()
    legs["cum_time_h"] = legs["total_h"].cumsum()
    legs["remaining_h"] = legs["total_h"].sum() - legs["cum_time_h"]

    return legs[LEG_COLUMNS]


def time_rollups(track: Track, roadbook: Roadbook) -> Dict[str, float]:
    """
    Summary times for the whole plan.

    activity_with_cond_h applies each leg's conditions percentage but no
    stops; total_h adds the stops on top. Without at least two waypoints
    everything falls back to the track's own total time.
    """
    if track.is_empty or len(roadbook.indices) < 2:
        base = track.totals.time_h
        return {"base_h": base, "activity_with_cond_h": base, "stops_h": 0.0, "total_h": base}

    base_sum = 0.0
    with_cond = 0.0
    stops_h = 0.0
    for key in roadbook.leg_keys(len(track)):
        base = leg_metrics(track, key.start, key.end)["base_h"]
        cond_pct = roadbook.leg_cond_pct.get(key, 0)
        base_sum += base
        with_cond += adjusted_leg_hours(base, cond_pct)
        stops_h += roadbook.leg_stops_min.get(key, 0) / 60.0

    return {
        "base_h": base_sum,
        "activity_with_cond_h": with_cond,
        "stops_h": stops_h,
        "total_h": with_cond + stops_h,
    }
