# timewise/roadbook.py
"""
Roadbook state: the waypoints a user placed on the track and the
per-leg overrides (name, stops, conditions, critical flag, notes).

The track itself is never touched here. A Roadbook only stores indices into
a Track, so the caller owns it and rebuilds or re-snaps it whenever the track
is rebuilt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Optional, Set

from timewise.course_model import Track, nearest_index_on_track
from timewise.loaders.gpx_loader import GpxWaypoint
from timewise.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

START_LABEL = "Start"
FINISH_LABEL = "Finish"


class LegKey(NamedTuple):
    start: int
    end: int

    def to_str(self) -> str:
        return f"{self.start}|{self.end}"

    @classmethod
    def from_str(cls, s: str) -> "LegKey":
        a, b = str(s).split("|", 1)
        return cls(int(a), int(b))


@dataclass
class Roadbook:
    indices: List[int] = field(default_factory=list)
    labels: Dict[int, str] = field(default_factory=dict)
    locked: Set[int] = field(default_factory=set)

    leg_labels: Dict[LegKey, str] = field(default_factory=dict)
    leg_stops_min: Dict[LegKey, int] = field(default_factory=dict)
    leg_cond_pct: Dict[LegKey, int] = field(default_factory=dict)
    leg_critical: Dict[LegKey, bool] = field(default_factory=dict)
    leg_observations: Dict[LegKey, str] = field(default_factory=dict)

    # -------------------------
    # Waypoints
    # -------------------------
    def add_index(self, i: float, track_len: int, label: str = "", locked: bool = False) -> int:
        """
        Add a waypoint at track index i (rounded and clamped into the track).

        An index that already exists only takes the new label when its current
        label is empty or the "#i" placeholder. Returns the stored index.
        """
        i = max(0, min(track_len - 1, round_half_up(i)))
        new_label = (label or "").strip()

        if i in self.indices:
            current = self.labels.get(i)
            if new_label and (not current or current == f"#{i}"):
                self.set_label(i, new_label)
            if locked:
                self.locked.add(i)
            return i

        self.indices.append(i)
        self.indices.sort()

        if new_label:
            initial = new_label
        elif self.labels.get(i):
            initial = self.labels[i]
        elif i == 0:
            initial = START_LABEL
        elif i == track_len - 1:
            initial = FINISH_LABEL
        else:
            initial = f"WP {self.indices.index(i) + 1}"
        self.labels[i] = initial

        if locked:
            self.locked.add(i)
        return i

    def set_label(self, i: int, label: str) -> None:
        if i not in self.indices:
            return
        self.labels[i] = (label or "").strip() or f"#{i}"

    def remove_index(self, i: int) -> bool:
        """Remove an unlocked waypoint. Start/Finish style locked points stay."""
        if i in self.locked or i not in self.indices:
            return False
        self.indices.remove(i)
        self.labels.pop(i, None)
        return True

    def waypoint_name(self, i: int) -> str:
        if self.labels.get(i):
            return self.labels[i]
        if i in self.indices:
            return f"WP {self.indices.index(i) + 1}"
        return f"WP {i}"

    def reset(self, track_len: int) -> None:
        """Drop all waypoints and leg overrides, then re-add Start/Finish."""
        self.indices.clear()
        self.labels.clear()
        self.locked.clear()
        self.leg_labels.clear()
        self.leg_stops_min.clear()
        self.leg_cond_pct.clear()
        self.leg_critical.clear()
        self.leg_observations.clear()
        self.ensure_endpoints(track_len)

    def ensure_endpoints(self, track_len: int) -> None:
        if track_len <= 0:
            return
        self.add_index(0, track_len, label=START_LABEL, locked=True)
        self.add_index(track_len - 1, track_len, label=FINISH_LABEL, locked=True)

    def import_waypoints(self, waypoints: Iterable[GpxWaypoint], track: Track) -> int:
        """
        Snap GPX waypoints to their nearest track index.

        Two waypoints landing on the same index keep only the first. Returns
        the number of waypoints added.
        """
        if track.is_empty:
            return 0
        seen: Set[int] = set()
        added = 0
        for w in waypoints:
            idx = nearest_index_on_track((w.lat, w.lon), track.lat_lngs)
            if idx in seen:
                continue
            seen.add(idx)
            self.add_index(idx, len(track), label=w.name)
            added += 1
        logger.debug("Imported %d waypoint(s)", added)
        return added

    # -------------------------
    # Legs
    # -------------------------
    def leg_keys(self, track_len: Optional[int] = None) -> List[LegKey]:
        """Consecutive waypoint pairs, clamped into the track when its length is given."""
        keys = []
        for a, b in zip(self.indices, self.indices[1:]):
            if track_len is not None:
                last = track_len - 1
                a, b = max(0, min(a, last)), max(0, min(b, last))
            keys.append(LegKey(a, b))
        return keys

    def default_leg_label(self, key: LegKey) -> str:
        return f"{self.waypoint_name(key.start)} → {self.waypoint_name(key.end)}"

    def leg_name(self, key: LegKey) -> str:
        return self.leg_labels.get(key) or self.default_leg_label(key)

    def set_leg_label(self, key: LegKey, label: str) -> None:
        txt = (label or "").strip()
        if txt:
            self.leg_labels[key] = txt
        else:
            self.leg_labels.pop(key, None)

    def set_leg_observation(self, key: LegKey, text: str) -> None:
        txt = (text or "").strip()
        if txt:
            self.leg_observations[key] = txt
        else:
            self.leg_observations.pop(key, None)
