# timewise/course_model.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from timewise.config import Settings
from timewise.elevation import (
    deadband_filter,
    fill_elevation_gaps,
    median_smooth,
    smoothing_window_samples,
)
from timewise.loaders.gpx_loader import RawPoint, Segment
from timewise.time_estimator import step_time_hours
from timewise.utils.geo import cumulative_distance_m, haversine_km, haversine_km_many

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]


# -------------------------
# Track value types
# -------------------------
@dataclass(frozen=True)
class Totals:
    dist_km: float = 0.0
    ascent_m: float = 0.0
    descent_m: float = 0.0
    time_h: float = 0.0


@dataclass(frozen=True)
class Track:
    """
    Resampled, filtered track with cumulative metrics.

    The cumulative lists hold one value per track point (the leading zero
    belongs to point 0) and never decrease. At every break index the values
    repeat the previous point's: the jump between two recorded segments is
    free. An empty track keeps the single leading zero.
    """

    lat_lngs: List[LatLng] = field(default_factory=list)
    elevation_m: List[float] = field(default_factory=list)
    break_idx: List[int] = field(default_factory=list)
    cum_dist_km: List[float] = field(default_factory=lambda: [0.0])
    cum_ascent_m: List[float] = field(default_factory=lambda: [0.0])
    cum_descent_m: List[float] = field(default_factory=lambda: [0.0])
    cum_time_h: List[float] = field(default_factory=lambda: [0.0])

    def __len__(self) -> int:
        return len(self.lat_lngs)

    @property
    def is_empty(self) -> bool:
        return not self.lat_lngs

    @property
    def last_index(self) -> int:
        return len(self.lat_lngs) - 1

    @property
    def totals(self) -> Totals:
        return Totals(
            dist_km=self.cum_dist_km[-1] if self.cum_dist_km else 0.0,
            ascent_m=self.cum_ascent_m[-1] if self.cum_ascent_m else 0.0,
            descent_m=self.cum_descent_m[-1] if self.cum_descent_m else 0.0,
            time_h=self.cum_time_h[-1] if self.cum_time_h else 0.0,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """One row per track point; empty frame for an empty track."""
        cols = ["lat", "lon", "elev_m", "cum_dist_km", "cum_ascent_m", "cum_descent_m", "cum_time_h"]
        if self.is_empty:
            return pd.DataFrame(columns=cols)
        lat, lon = zip(*self.lat_lngs)
        df = pd.DataFrame(
            {
                "lat": lat,
                "lon": lon,
                "elev_m": self.elevation_m,
                "cum_dist_km": self.cum_dist_km,
                "cum_ascent_m": self.cum_ascent_m,
                "cum_descent_m": self.cum_descent_m,
                "cum_time_h": self.cum_time_h,
            }
        )
        df["segment"] = np.searchsorted(np.asarray(self.break_idx), np.arange(len(df)), side="right") - 1
        return df


# -------------------------
# Resampling
# -------------------------
def resample_by_distance(points: Sequence[RawPoint], spacing_m: float) -> List[RawPoint]:
    """
    Rebuild a segment at uniform arc-length spacing.

    Targets are 0, spacing, 2*spacing, ... up to the total length, plus the
    total itself when it is not hit exactly, so the true endpoint is always
    kept. lat/lon are interpolated linearly between the bracketing original
    points; elevation only when both bounds have one, otherwise the known
    bound is used.

    A zero-length (or non-finite) segment comes back as its first two points.
    """
    cum = cumulative_distance_m([(p.lat, p.lon) for p in points])
    total = float(cum[-1]) if cum.size else 0.0
    if not np.isfinite(total) or total == 0:
        logger.debug("Degenerate segment (length %r m, %d points)", total, len(points))
        return list(points[:2])

    targets = np.arange(int(np.floor(total / spacing_m)) + 1, dtype=float) * spacing_m
    targets = targets[targets <= total]
    if targets[-1] < total:
        targets = np.append(targets, total)

    lat = np.array([p.lat for p in points], dtype=float)
    lon = np.array([p.lon for p in points], dtype=float)
    ele = np.array([np.nan if p.ele is None else p.ele for p in points], dtype=float)

    j = np.clip(np.searchsorted(cum, targets, side="left"), 1, len(cum) - 1)
    t0, t1 = cum[j - 1], cum[j]
    denom = np.where(t1 - t0 == 0, 1.0, t1 - t0)
    a = np.clip((targets - t0) / denom, 0.0, 1.0)

    lat_u = (1.0 - a) * lat[j - 1] + a * lat[j]
    lon_u = (1.0 - a) * lon[j - 1] + a * lon[j]

    e0, e1 = ele[j - 1], ele[j]
    both = np.isfinite(e0) & np.isfinite(e1)
    ele_u = np.where(both, (1.0 - a) * e0 + a * e1, np.where(np.isfinite(e0), e0, e1))

    out = [
        RawPoint(lat=float(la), lon=float(lo), ele=float(e) if np.isfinite(e) else None)
        for la, lo, e in zip(lat_u, lon_u, ele_u)
    ]
    # the last target is the total length: keep the original endpoint verbatim
    out[-1] = points[-1]
    return out


# -------------------------
# Accumulation
# -------------------------
def build_track(segments: Sequence[Segment], settings: Settings) -> Track:
    """
    Build the full track and its cumulative arrays from raw segments.

    Per segment: gap-fill elevation, resample, median-smooth, deadband-filter,
    then walk consecutive points adding distance, ascent/descent and step
    time. Segments with fewer than 2 points (raw or resampled) are skipped.

    Pure function of its inputs; nothing is cached or shared between calls.
    """
    lat_lngs: List[LatLng] = []
    elevation: List[float] = []
    break_idx: List[int] = []
    cum_dist = [0.0]
    cum_asc = [0.0]
    cum_des = [0.0]
    cum_time = [0.0]

    win = smoothing_window_samples(settings.smooth_win_m, settings.spacing_m)

    for seg_no, pts in enumerate(segments):
        if len(pts) < 2:
            logger.debug("Skipping segment %d: %d point(s)", seg_no, len(pts))
            continue

        resampled = resample_by_distance(fill_elevation_gaps(pts), settings.spacing_m)
        if len(resampled) < 2:
            logger.debug("Skipping segment %d: resampled to %d point(s)", seg_no, len(resampled))
            continue

        elev_smooth = median_smooth([p.ele for p in resampled], win)
        elev_f = deadband_filter(elev_smooth, settings.elev_deadband_m)

        break_idx.append(len(lat_lngs))

        # free gap: carry the totals across the break
        if lat_lngs:
            cum_dist.append(cum_dist[-1])
            cum_asc.append(cum_asc[-1])
            cum_des.append(cum_des[-1])
            cum_time.append(cum_time[-1])

        lat_lngs.extend((p.lat, p.lon) for p in resampled)
        elevation.extend(float(v) if np.isfinite(v) else 0.0 for v in elev_f)

        for i in range(1, len(resampled)):
            p1, p2 = resampled[i - 1], resampled[i]
            dist_km = haversine_km(p1.lat, p1.lon, p2.lat, p2.lon)

            cur = elev_f[i] if np.isfinite(elev_f[i]) else elev_f[i - 1]
            prev = elev_f[i - 1] if np.isfinite(elev_f[i - 1]) else elev_f[i]
            d_ele = cur - prev
            ascent_m = float(d_ele) if d_ele > 0 else 0.0
            descent_m = float(-d_ele) if d_ele < 0 else 0.0

            seg_time_h = step_time_hours(dist_km, ascent_m, descent_m, settings)

            cum_dist.append(cum_dist[-1] + dist_km)
            cum_asc.append(cum_asc[-1] + ascent_m)
            cum_des.append(cum_des[-1] + descent_m)
            cum_time.append(cum_time[-1] + seg_time_h)

    logger.debug(
        "Built track: %d point(s) in %d segment(s), %.3f km",
        len(lat_lngs),
        len(break_idx),
        cum_dist[-1],
    )

    return Track(
        lat_lngs=lat_lngs,
        elevation_m=elevation,
        break_idx=break_idx,
        cum_dist_km=cum_dist,
        cum_ascent_m=cum_asc,
        cum_descent_m=cum_des,
        cum_time_h=cum_time,
    )


# -------------------------
# Nearest point
# -------------------------
def nearest_index_on_track(latlng: LatLng, lat_lngs: Sequence[LatLng]) -> int:
    """
    Index of the track point closest (haversine) to latlng.

    Exhaustive scan; ties resolve to the lowest index. The track must not be
    empty.
    """
    if len(lat_lngs) == 0:
        raise ValueError("nearest_index_on_track needs a non-empty track")
    arr = np.asarray(lat_lngs, dtype=float)
    d = haversine_km_many(float(latlng[0]), float(latlng[1]), arr[:, 0], arr[:, 1])
    return int(np.argmin(d))
