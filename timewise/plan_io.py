# timewise/plan_io.py
"""
Save / load of roadbook plans as JSON.

A plan embeds the original GPX text and the settings it was built with, so
it can be reopened without the GPX file. Leg maps are written with "a|b"
string keys; inside the program they are LegKey tuples.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from timewise.config import Settings, settings_from_mapping, settings_to_mapping
from timewise.pipeline import PipelineConfig, PipelineResult, refresh, run_pipeline
from timewise.roadbook import LegKey, Roadbook
from timewise.utils.numbers import parse_cond_percent, sanitize_int

logger = logging.getLogger(__name__)

PLAN_VERSION = 2


class PlanError(ValueError):
    """A plan file that cannot be read or applied."""


def plan_file_stem(name: Optional[str]) -> str:
    """File-name friendly stem: non-word characters become '_'."""
    stem = re.sub(r"[^\w\-]+", "_", (name or "").strip())
    return stem or "route"


def _signature(result: PipelineResult) -> Optional[Dict[str, Any]]:
    track = result.track
    if track.is_empty:
        return None
    return {
        "n": len(track),
        "first": list(track.lat_lngs[0]),
        "last": list(track.lat_lngs[-1]),
        "spacingM": result.settings.spacing_m,
        "smoothWinM": result.settings.smooth_win_m,
        "elevDeadbandM": result.settings.elev_deadband_m,
    }


def _leg_map(d: Mapping[LegKey, Any]) -> Dict[str, Any]:
    return {k.to_str(): v for k, v in d.items()}


def serialize_plan(result: PipelineResult, gpx_text: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Snapshot of the current plan (settings, waypoints, leg overrides, legs).

    Returns None for an empty track, there is nothing worth saving then.
    """
    if result.track.is_empty:
        return None

    rb = result.roadbook
    legs = []
    for _, row in result.legs.iterrows():
        legs.append(
            {
                "idx": int(row["idx"]),
                "a": int(row["start"]),
                "b": int(row["end"]),
                "key": row["key"].to_str(),
                "name": str(row["name"]),
                "distKm": float(row["dist_km"]),
                "ascM": float(row["ascent_m"]),
                "desM": float(row["descent_m"]),
                "baseH": float(row["base_h"]),
                "stopsMin": int(row["stops_min"]),
                "condPct": int(row["cond_pct"]),
                "totalH": float(row["total_h"]),
                "cumDistKm": float(row["cum_dist_km"]),
                "cumAscM": float(row["cum_ascent_m"]),
                "cumDesM": float(row["cum_descent_m"]),
                "cumTimeAdjH": float(row["cum_time_h"]),
                "critical": bool(row["critical"]),
                "observations": str(row["observations"]),
            }
        )

    return {
        "version": PLAN_VERSION,
        "createdAt": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "gpxText": gpx_text or None,
        "signature": _signature(result),
        "settings": settings_to_mapping(result.settings),
        "meta": {"gpxName": result.gpx_name or None},
        "roadbookIdx": list(rb.indices),
        "roadbookLabels": {str(k): v for k, v in rb.labels.items()},
        "legLabels": _leg_map(rb.leg_labels),
        "legStopsMin": _leg_map(rb.leg_stops_min),
        "legCondPct": _leg_map(rb.leg_cond_pct),
        "legCritical": _leg_map(rb.leg_critical),
        "legObservations": _leg_map(rb.leg_observations),
        "legs": legs,
    }


def plan_to_json(plan: Mapping[str, Any]) -> str:
    return json.dumps(plan, indent=2, ensure_ascii=False)


def parse_plan_text(text: str) -> Dict[str, Any]:
    """JSON text (BOM tolerated) -> plan dict. Raises PlanError."""
    clean = str(text or "").lstrip("\ufeff")
    try:
        plan = json.loads(clean)
    except json.JSONDecodeError as e:
        logger.error("Plan JSON parse failed: %s", e)
        raise PlanError(f"Could not parse plan file: {e}") from e
    if not isinstance(plan, dict):
        raise PlanError("Plan file must contain a JSON object")
    return plan


def _restore_leg_map(raw: Any, convert: Callable[[Any], Any]) -> Dict[LegKey, Any]:
    out: Dict[LegKey, Any] = {}
    if not isinstance(raw, dict):
        return out
    for k, v in raw.items():
        try:
            key = LegKey.from_str(k)
        except ValueError:
            logger.debug("Ignoring malformed leg key %r", k)
            continue
        out[key] = convert(v)
    return out


def restore_plan(plan: Mapping[str, Any], current: Optional[PipelineResult] = None) -> PipelineResult:
    """
    Rebuild a PipelineResult from a saved plan.

    The track is rebuilt from the embedded GPX with the saved settings (GPX
    waypoints are not imported, the plan brings its own). Without embedded
    GPX the plan is applied to `current`.
    """
    gpx_text = plan.get("gpxText")
    meta = plan.get("meta") or {}
    gpx_name = str(meta.get("gpxName") or "")

    if gpx_text:
        base = run_pipeline(
            PipelineConfig(
                gpx_text=str(gpx_text),
                settings=settings_from_mapping(plan.get("settings")),
                import_waypoints=False,
                gpx_name=gpx_name,
            )
        )
    elif current is not None and not current.track.is_empty:
        base = current
    else:
        raise PlanError("Saved plan is missing the embedded GPX and no track is loaded.")

    track = base.track
    sig = plan.get("signature")
    if isinstance(sig, dict) and sig.get("n") != len(track):
        logger.warning(
            "Saved plan may belong to a different GPX/settings (%s points saved, %d built). "
            "Legs may not align perfectly.",
            sig.get("n"),
            len(track),
        )

    saved_labels: Dict[int, str] = {}
    for k, v in (plan.get("roadbookLabels") or {}).items():
        try:
            saved_labels[int(k)] = str(v)
        except (TypeError, ValueError):
            continue

    roadbook = Roadbook(
        leg_labels=_restore_leg_map(plan.get("legLabels"), str),
        leg_stops_min=_restore_leg_map(plan.get("legStopsMin"), sanitize_int),
        leg_cond_pct=_restore_leg_map(plan.get("legCondPct"), parse_cond_percent),
        leg_critical=_restore_leg_map(plan.get("legCritical"), bool),
        leg_observations=_restore_leg_map(plan.get("legObservations"), str),
    )

    for i in plan.get("roadbookIdx") or []:
        try:
            i = int(i)
        except (TypeError, ValueError):
            continue
        locked = i == 0 or i == track.last_index
        roadbook.add_index(i, len(track), label=saved_labels.get(i, ""), locked=locked)

    return refresh(
        PipelineResult(
            segments=base.segments,
            track=track,
            roadbook=roadbook,
            settings=base.settings,
            legs=base.legs,
            rollups=base.rollups,
            gpx_name=gpx_name or base.gpx_name,
        )
    )


def open_plan_or_gpx(
    text: str,
    settings: Settings,
    gpx_name: str = "",
    current: Optional[PipelineResult] = None,
) -> PipelineResult:
    """
    Load whatever the user picked: GPX text (starts with '<') is processed as
    a fresh upload with waypoint import, anything else is read as a plan.
    """
    trimmed = str(text or "").lstrip("\ufeff").strip()
    if trimmed.startswith("<"):
        return run_pipeline(PipelineConfig(gpx_text=trimmed, settings=settings, gpx_name=gpx_name))
    return restore_plan(parse_plan_text(trimmed), current=current)
