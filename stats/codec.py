"""Statistics codec — confidence intervals, season ordinals, point weights.

Usage
-----
    from stats.codec import wilson_interval, season_to_ordinal, ordinal_to_season

    lower, upper = wilson_interval(0.42, 120)
    season_to_ordinal("Spring 2015")      # 8061
    ordinal_to_season(8061)               # "Spring 2015"

All functions are pure.  Season ordinals are ``year * 4 + season_index`` so
integer order is chronological order; ``-1`` marks an unrecognised label.
"""

from __future__ import annotations

import math
import re

import numpy as np
import pandas as pd

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# 95% two-sided normal quantile
Z_95 = 1.96

SEASONS: tuple[str, ...] = ("Winter", "Spring", "Summer", "Fall")

UNKNOWN_ORDINAL = -1
UNKNOWN_SEASON = "Unknown"

_YEAR_RE = re.compile(r"[0-9]+")


# ---------------------------------------------------------------------------
# Wilson score interval
# ---------------------------------------------------------------------------

def wilson_interval(p: float, n: float, z: float = Z_95) -> tuple[float, float]:
    """Return the Wilson score interval ``(lower, upper)`` for rate *p* over *n* trials.

    The caller guarantees ``n > 0``.  With ``n == 0`` the result is non-finite
    and must not be plotted.
    """
    z2 = z * z
    with np.errstate(divide="ignore", invalid="ignore"):
        # numpy scalars give nan/inf on n == 0 instead of raising
        n_f = np.float64(n)
        a = p + z2 / (2.0 * n_f)
        b = z * np.sqrt((p * (1.0 - p) + z2 / (4.0 * n_f)) / n_f)
        c = 1.0 + z2 / n_f
        return float((a - b) / c), float((a + b) / c)


def wilson_bands(
    rates: pd.Series | np.ndarray,
    counts: pd.Series | np.ndarray,
    z: float = Z_95,
) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised wilson_interval over aligned rate/count arrays.

    Entries with a null rate or a non-positive count come back as NaN.
    """
    p = pd.to_numeric(pd.Series(rates), errors="coerce").to_numpy(dtype=float)
    n = pd.to_numeric(pd.Series(counts), errors="coerce").to_numpy(dtype=float)

    lower = np.full(p.shape, np.nan, dtype=float)
    upper = np.full(p.shape, np.nan, dtype=float)

    valid = np.isfinite(p) & np.isfinite(n) & (n > 0.0)
    if not np.any(valid):
        return lower, upper

    p_valid = p[valid]
    n_valid = n[valid]
    z2 = z * z
    a = p_valid + z2 / (2.0 * n_valid)
    b = z * np.sqrt((p_valid * (1.0 - p_valid) + z2 / (4.0 * n_valid)) / n_valid)
    c = 1.0 + z2 / n_valid

    lower[valid] = (a - b) / c
    upper[valid] = (a + b) / c
    return lower, upper


# ---------------------------------------------------------------------------
# Season ordinals
# ---------------------------------------------------------------------------

def season_to_ordinal(label: str) -> int:
    """Encode ``"<Season> <Year>"`` as ``year * 4 + season_index``.

    Season names are case-sensitive.  Returns -1 for an unknown season name,
    a non-numeric year, or a label that is not exactly two words.
    """
    if not isinstance(label, str):
        return UNKNOWN_ORDINAL
    parts = label.split(" ")
    if len(parts) != 2:
        return UNKNOWN_ORDINAL
    season, year = parts
    if season not in SEASONS:
        return UNKNOWN_ORDINAL
    # plain ASCII digits only; int() would also take "2_019", "+2019" and "２０１９"
    if not _YEAR_RE.fullmatch(year):
        return UNKNOWN_ORDINAL
    return int(year) * 4 + SEASONS.index(season)


def ordinal_to_season(ordinal: int) -> str:
    """Decode a season ordinal back to its label; negative ordinals are "Unknown"."""
    if ordinal < 0:
        return UNKNOWN_SEASON
    year, index = divmod(int(ordinal), 4)
    return f"{SEASONS[index]} {year}"


def season_labels(first: int, last: int) -> list[str]:
    """Return every season label from ordinal *first* to *last* inclusive."""
    return [ordinal_to_season(o) for o in range(int(first), int(last) + 1)]


# ---------------------------------------------------------------------------
# Point weights
# ---------------------------------------------------------------------------

def point_weight(sample_count: float) -> float:
    """Marker radius scale for a point backed by *sample_count* songs.

    Undefined for ``sample_count <= 0``; callers never pass zero.
    """
    return math.log10(sample_count) + 1.0
