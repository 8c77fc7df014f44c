from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List

import pandas as pd

from timewise.config import Settings, sanitize_settings
from timewise.course_model import Track, build_track, nearest_index_on_track
from timewise.itinerary import compute_legs, time_rollups
from timewise.loaders.gpx_loader import Segment, parse_gpx_segments, parse_gpx_waypoints
from timewise.roadbook import Roadbook

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    gpx_text: str
    settings: Settings = field(default_factory=Settings)

    # snap <wpt>/<rtept>/named <trkpt> onto the track as roadbook waypoints
    import_waypoints: bool = True

    # display / file naming only
    gpx_name: str = ""


@dataclass
class PipelineResult:
    segments: List[Segment]
    track: Track
    roadbook: Roadbook
    settings: Settings

    legs: pd.DataFrame
    rollups: Dict[str, float]

    gpx_name: str = ""


def run_pipeline(cfg: PipelineConfig) -> PipelineResult:
    """
    One canonical end-to-end runner.
    This is what the Streamlit app and plan loading call.
    """
    settings = sanitize_settings(cfg.settings)

    # 1) GPX -> raw segments
    segments = parse_gpx_segments(cfg.gpx_text)
    if not segments:
        raise ValueError("No track segments found in GPX.")

    # 2) Track + cumulative metrics (pure)
    track = build_track(segments, settings)
    if track.is_empty:
        raise ValueError("No track segments found in GPX.")

    # 3) Roadbook: imported waypoints first, then locked Start/Finish
    roadbook = Roadbook()
    if cfg.import_waypoints:
        roadbook.import_waypoints(parse_gpx_waypoints(cfg.gpx_text), track)
    roadbook.ensure_endpoints(len(track))

    # 4) Itinerary
    legs = compute_legs(track, roadbook)
    rollups = time_rollups(track, roadbook)

    logger.info(
        "Track built: %.2f km, +%.0f/-%.0f m, %d waypoint(s)",
        track.totals.dist_km,
        track.totals.ascent_m,
        track.totals.descent_m,
        len(roadbook.indices),
    )

    return PipelineResult(
        segments=segments,
        track=track,
        roadbook=roadbook,
        settings=settings,
        legs=legs,
        rollups=rollups,
        gpx_name=cfg.gpx_name,
    )


def refresh(result: PipelineResult) -> PipelineResult:
    """Recompute legs and rollups after the roadbook was edited."""
    return replace(
        result,
        legs=compute_legs(result.track, result.roadbook),
        rollups=time_rollups(result.track, result.roadbook),
    )


def rebuild_with_settings(result: PipelineResult, settings: Settings) -> PipelineResult:
    """
    Re-run the core with new settings and carry the waypoints over.

    Waypoints are re-snapped by coordinate because indices change whenever
    spacing does. Leg overrides are dropped (their keys no longer exist),
    waypoint labels are kept.
    """
    settings = sanitize_settings(settings)
    track = build_track(result.segments, settings)

    roadbook = Roadbook()
    if not track.is_empty:
        old = result.track
        for i in result.roadbook.indices:
            label = result.roadbook.labels.get(i, "")
            if i == 0:
                roadbook.add_index(0, len(track), label=label, locked=True)
            elif i == old.last_index:
                roadbook.add_index(track.last_index, len(track), label=label, locked=True)
            else:
                idx = nearest_index_on_track(old.lat_lngs[i], track.lat_lngs)
                roadbook.add_index(idx, len(track), label=label)
        roadbook.ensure_endpoints(len(track))

    return PipelineResult(
        segments=result.segments,
        track=track,
        roadbook=roadbook,
        settings=settings,
        legs=compute_legs(track, roadbook),
        rollups=time_rollups(track, roadbook),
        gpx_name=result.gpx_name,
    )
