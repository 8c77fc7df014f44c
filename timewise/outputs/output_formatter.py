# timewise/outputs/output_formatter.py

from __future__ import annotations

from typing import Dict

import pandas as pd

from timewise.course_model import Track
from timewise.time_estimator import format_time_hhmm
from timewise.utils.numbers import round_half_up


# -----------------------------
# Value formatting
# -----------------------------

def fmt_km(km: float) -> str:
    return f"{round_half_up(km * 1000)} m" if km < 1 else f"{km:.2f} km"


def fmt_hrs(hours: float) -> str:
    return f"{format_time_hhmm(hours)} h"


def fmt_m(m: float) -> str:
    return f"{round_half_up(m)} m"


def minutes_to_text(minutes: int) -> str:
    return f"{minutes} min"


def percent_to_text(p: float) -> str:
    try:
        n = round_half_up(float(p))
    except (TypeError, ValueError, OverflowError):
        n = 0
    return f"{n} %"


# -----------------------------
# Summary
# -----------------------------

def make_summary_table(track: Track, rollups: Dict[str, float]) -> pd.DataFrame:
    totals = track.totals
    return pd.DataFrame(
        [
            {"metric": "Distance", "value": fmt_km(totals.dist_km)},
            {"metric": "Ascent", "value": fmt_m(totals.ascent_m)},
            {"metric": "Descent", "value": fmt_m(totals.descent_m)},
            {"metric": "Estimated Activity Time", "value": fmt_hrs(rollups["activity_with_cond_h"])},
            {"metric": "Estimated Total Time", "value": fmt_hrs(rollups["total_h"])},
        ]
    )


# -----------------------------
# Roadbook
# -----------------------------

ROADBOOK_HEADERS = {
    "idx": "#",
    "name": "Name",
    "critical": "Critical",
    "dist_km": "Leg – d",
    "ascent_m": "Leg – ↑",
    "descent_m": "Leg – ↓",
    "cum_dist_km": "Accumulated (Σ) – Σd",
    "cum_ascent_m": "Accumulated (Σ) – Σ↑",
    "cum_descent_m": "Accumulated (Σ) – Σ↓",
    "base_h": "Time – t",
    "stops_min": "Time – Stops",
    "cond_pct": "Time – Cond",
    "total_h": "Time – Total",
    "cum_time_h": "Time – Σt",
    "remaining_h": "Time – Rem",
    "observations": "Observations",
}


def make_roadbook_table(legs: pd.DataFrame) -> pd.DataFrame:
    """Display version of the itinerary: formatted strings, human headers."""
    if legs.empty:
        return pd.DataFrame(columns=list(ROADBOOK_HEADERS.values()))

    out = pd.DataFrame(
        {
            "idx": legs["idx"].astype(int),
            "name": legs["name"].astype(str),
            "critical": legs["critical"].map(lambda c: "Yes" if c else ""),
            "dist_km": legs["dist_km"].map(fmt_km),
            "ascent_m": legs["ascent_m"].map(fmt_m),
            "descent_m": legs["descent_m"].map(fmt_m),
            "cum_dist_km": legs["cum_dist_km"].map(fmt_km),
            "cum_ascent_m": legs["cum_ascent_m"].map(fmt_m),
            "cum_descent_m": legs["cum_descent_m"].map(fmt_m),
            "base_h": legs["base_h"].map(fmt_hrs),
            "stops_min": legs["stops_min"].map(minutes_to_text),
            "cond_pct": legs["cond_pct"].map(percent_to_text),
            "total_h": legs["total_h"].map(fmt_hrs),
            "cum_time_h": legs["cum_time_h"].map(fmt_hrs),
            "remaining_h": legs["remaining_h"].map(fmt_hrs),
            "observations": legs["observations"].fillna("").astype(str),
        }
    )
    return out.rename(columns=ROADBOOK_HEADERS)


def export_roadbook_csv(legs: pd.DataFrame) -> str:
    """Roadbook table as CSV text (quoted only where needed)."""
    return make_roadbook_table(legs).to_csv(index=False, lineterminator="\n")
