# timewise/utils/numbers.py
"""
Small numeric helpers shared by the settings layer and the roadbook editors.
"""

from __future__ import annotations

import math
import re
from typing import Any

MIN_COND_PCT = -90
MAX_COND_PCT = 300

_COND_RE = re.compile(r"^([+-]?\d{1,4})\s*%?$")
_DIGITS_RE = re.compile(r"\d+")


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def clamp_to_odd(val: int, min_odd: int, max_odd: int) -> int:
    """
    Clamp into [min_odd, max_odd] and force the result odd.

    An even value is bumped up by one, except on the upper bound where it
    steps down instead.
    """
    val = int(clamp(val, min_odd, max_odd))
    if val % 2 == 0:
        val += -1 if val >= max_odd else 1
    return val


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _to_float(v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return math.nan


def to_pos_num(v: Any, default: float) -> float:
    """Parse v as a strictly positive number, else return default."""
    n = _to_float(v)
    return n if n > 0 else default


def to_non_neg_num(v: Any, default: float) -> float:
    """Parse v as a number >= 0, else return default."""
    n = _to_float(v)
    return n if n >= 0 else default


def sanitize_int(text: Any, default: int = 0) -> int:
    """First run of digits in text as a non-negative int ("15 min" -> 15)."""
    m = _DIGITS_RE.search(str(text if text is not None else ""))
    if not m:
        return default
    return int(m.group(0))


def parse_cond_percent(text: Any) -> int:
    """
    Parse a conditions percentage such as "-10", "+15" or "15%".

    Out-of-range values are clamped to [MIN_COND_PCT, MAX_COND_PCT];
    anything unparseable is 0.
    """
    if text is None:
        return 0
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        if not math.isfinite(text):
            return 0
        raw = int(text)
    else:
        m = _COND_RE.match(str(text).strip())
        raw = int(m.group(1)) if m else 0
    return int(clamp(raw, MIN_COND_PCT, MAX_COND_PCT))
