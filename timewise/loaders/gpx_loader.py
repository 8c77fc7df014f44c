from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import gpxpy
import gpxpy.gpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawPoint:
    lat: float
    lon: float
    ele: Optional[float] = None


@dataclass(frozen=True)
class GpxWaypoint:
    lat: float
    lon: float
    name: str = ""


Segment = List[RawPoint]


def _parse(gpx_text: str) -> gpxpy.gpx.GPX:
    try:
        return gpxpy.parse(gpx_text)
    except gpxpy.gpx.GPXException as e:
        logger.error("Failed to parse GPX: %s", e)
        raise ValueError(f"Invalid GPX file: {e}") from e


def _raw_point(p) -> RawPoint:
    ele = float(p.elevation) if p.elevation is not None else None
    return RawPoint(lat=float(p.latitude), lon=float(p.longitude), ele=ele)


def _point_name(p) -> str:
    for attr in ("name", "comment", "symbol"):
        v = getattr(p, attr, None)
        if v and str(v).strip():
            return str(v).strip()
    return ""


def read_gpx_text(gpx_file_path: Union[str, Path]) -> str:
    """Read a GPX file as text (a UTF-8 BOM is dropped)."""
    return Path(gpx_file_path).read_text(encoding="utf-8-sig")


def parse_gpx_segments(gpx_text: str) -> List[Segment]:
    """
    Parse GPX text into track segments.

    - one segment per <trkseg>, in file order (no sorting)
    - segments with fewer than 2 points are dropped
    - if the file has no <trkseg> at all, every <rtept> becomes a single
      fallback segment (again only if it has at least 2 points)
    """
    gpx = _parse(gpx_text)

    seg_nodes = [seg for track in gpx.tracks for seg in track.segments]
    segments: List[Segment] = []

    if seg_nodes:
        for seg in seg_nodes:
            pts = [_raw_point(p) for p in seg.points]
            if len(pts) >= 2:
                segments.append(pts)
    else:
        rtepts = [_raw_point(p) for route in gpx.routes for p in route.points]
        if len(rtepts) >= 2:
            segments.append(rtepts)

    logger.info(
        "Parsed %d usable segment(s), %d point(s)",
        len(segments),
        sum(len(s) for s in segments),
    )
    return segments


def parse_gpx_waypoints(gpx_text: str) -> List[GpxWaypoint]:
    """
    Named points worth turning into roadbook waypoints.

    Collects <wpt>, <rtept>, and <trkpt> that carry a name/cmt/sym (some
    planning tools annotate track points). The name is the first non-empty of
    name, comment, symbol.
    """
    gpx = _parse(gpx_text)
    out: List[GpxWaypoint] = []

    for w in gpx.waypoints:
        out.append(GpxWaypoint(lat=float(w.latitude), lon=float(w.longitude), name=_point_name(w)))

    for route in gpx.routes:
        for r in route.points:
            out.append(GpxWaypoint(lat=float(r.latitude), lon=float(r.longitude), name=_point_name(r)))

    for track in gpx.tracks:
        for seg in track.segments:
            for t in seg.points:
                name = _point_name(t)
                if not name:
                    continue
                out.append(GpxWaypoint(lat=float(t.latitude), lon=float(t.longitude), name=name))

    return out
