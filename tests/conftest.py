# tests/conftest.py

import math
from pathlib import Path

import pytest

from timewise.utils.geo import EARTH_RADIUS_KM

DATA_DIR = Path(__file__).parent / "data"


def lon_offset_deg(meters: float) -> float:
    """Longitude step that spans `meters` along the equator."""
    return math.degrees(meters / 1000.0 / EARTH_RADIUS_KM)


def make_gpx(segments, waypoints=()) -> str:
    """
    Minimal GPX 1.1 text.

    segments: list of lists of (lat, lon, ele_or_None)
    waypoints: list of (lat, lon, name)
    """
    parts = ['<?xml version="1.0" encoding="UTF-8"?>', '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">']
    for lat, lon, name in waypoints:
        parts.append(f'<wpt lat="{lat}" lon="{lon}"><name>{name}</name></wpt>')
    parts.append("<trk>")
    for seg in segments:
        parts.append("<trkseg>")
        for lat, lon, ele in seg:
            ele_xml = f"<ele>{ele}</ele>" if ele is not None else ""
            parts.append(f'<trkpt lat="{lat}" lon="{lon}">{ele_xml}</trkpt>')
        parts.append("</trkseg>")
    parts.append("</trk>")
    parts.append("</gpx>")
    return "\n".join(parts)


@pytest.fixture
def sample_gpx_text() -> str:
    path = DATA_DIR / "sample_route.gpx"
    assert path.exists(), "Sample GPX missing"
    return path.read_text(encoding="utf-8")
