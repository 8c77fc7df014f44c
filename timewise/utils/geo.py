# timewise/utils/geo.py

from __future__ import annotations

from math import radians, sin, cos, sqrt, atan2
from typing import Sequence, Tuple

import numpy as np

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two lat/lon points in kilometres."""
    phi1, phi2 = radians(lat1), radians(lat2)
    dphi = radians(lat2 - lat1)
    dlambda = radians(lon2 - lon1)

    a = sin(dphi / 2.0) ** 2 + cos(phi1) * cos(phi2) * sin(dlambda / 2.0) ** 2
    return EARTH_RADIUS_KM * 2.0 * atan2(sqrt(a), sqrt(1.0 - a))


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two lat/lon points in meters."""
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def haversine_km_many(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Vectorised haversine from one point to many points (km)."""
    phi1 = np.radians(lat)
    phi2 = np.radians(lats)
    dphi = np.radians(lats - lat)
    dlambda = np.radians(lons - lon)

    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2.0) ** 2
    return EARTH_RADIUS_KM * 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def cumulative_distance_m(coords: Sequence[Tuple[float, float]]) -> np.ndarray:
    """
    Cumulative along-path distance in meters, starting at 0.

    coords is a sequence of (lat, lon) pairs.
    """
    cum = np.zeros(len(coords), dtype=float)
    for i in range(1, len(coords)):
        (lat0, lon0), (lat1, lon1) = coords[i - 1], coords[i]
        cum[i] = cum[i - 1] + haversine_m(lat0, lon0, lat1, lon1)
    return cum
