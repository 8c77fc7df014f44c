from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from timewise.loaders.gpx_loader import RawPoint
from timewise.utils.numbers import clamp_to_odd, round_half_up

MIN_WINDOW_SAMPLES = 3
MAX_WINDOW_SAMPLES = 999


def _as_float_array(values: Sequence[Optional[float]]) -> np.ndarray:
    """None -> NaN, everything else -> float."""
    return np.array([np.nan if v is None else float(v) for v in values], dtype=float)


def fill_elevation_gaps(points: Sequence[RawPoint]) -> List[RawPoint]:
    """
    Fill missing elevations with the nearest known neighbour.

    Two passes:
    - forward: carry the last known elevation into following gaps
    - backward: fill the leading gap from the first known elevation

    No interpolation across a gap, it is a plain step fill. If no point has an
    elevation the output keeps them all missing. Input points are not mutated.
    """
    out = list(points)

    last: Optional[float] = None
    for i, p in enumerate(out):
        if p.ele is None:
            out[i] = replace(p, ele=last)
        else:
            last = p.ele

    nxt: Optional[float] = None
    for i in range(len(out) - 1, -1, -1):
        if out[i].ele is None:
            out[i] = replace(out[i], ele=nxt)
        else:
            nxt = out[i].ele

    return out


def smoothing_window_samples(
    desired_m: float,
    spacing_m: float,
    min_samples: int = MIN_WINDOW_SAMPLES,
    max_samples: int = MAX_WINDOW_SAMPLES,
) -> int:
    """
    Median window size in samples for a window given in meters.

    Rounds desired_m / spacing_m half-up, keeps it >= min_samples, clamps to
    [min_samples, max_samples] and forces it odd (stepping down only when the
    value sits on the upper clamp).
    """
    n = max(min_samples, round_half_up(desired_m / spacing_m))
    return clamp_to_odd(n, min_samples, max_samples)


def median_smooth(values: Sequence[Optional[float]], window: int) -> np.ndarray:
    """
    Centered rolling median over `window` samples.

    Near the ends the window is truncated to the samples that exist. Missing
    values (None / NaN) are ignored; a window with nothing left yields NaN.
    An even number of remaining values gives the mean of the middle two.
    """
    x = _as_float_array(values)
    if x.size == 0:
        return x
    return (
        pd.Series(x)
        .rolling(int(window), center=True, min_periods=1)
        .median()
        .to_numpy(dtype=float)
    )


def deadband_filter(values: Sequence[Optional[float]], deadband_m: float) -> np.ndarray:
    """
    Hysteresis filter that swallows elevation wiggles up to `deadband_m`.

    The running error accumulates raw-input deltas. Once it exceeds the
    deadband the output moves by the excess and the error is reset to
    +/- deadband, so the residual stays owed instead of being dropped.

    Returns a float array of the same length. Positions before the first
    known value take that value; an all-missing input is returned as is.
    """
    x = _as_float_array(values)
    n = x.size
    if n == 0:
        return x

    finite = np.isfinite(x)
    if not finite.any():
        return x.copy()

    i0 = int(np.argmax(finite))
    out = np.full(n, np.nan, dtype=float)
    out[i0] = x[i0]
    cum_err = 0.0

    for i in range(i0 + 1, n):
        if finite[i - 1]:
            prev = x[i - 1]
        elif finite[i]:
            prev = x[i]
        else:
            prev = out[i - 1]
        cur = x[i] if finite[i] else prev

        cum_err += cur - prev
        if abs(cum_err) > deadband_m:
            sign = float(np.sign(cum_err))
            out[i] = out[i - 1] + (cum_err - sign * deadband_m)
            cum_err = sign * deadband_m
        else:
            out[i] = out[i - 1]

    out[:i0] = out[i0]
    return out
