"""Recentering of large absolute coordinates into a numerically safe local range."""
from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np

DEFAULT_MAX_ABS_COORD = 1.0e5
DEFAULT_SHIFT_ROUND = 100.0
SHIFT_MODES = ("auto", "always", "never")


def needs_shift(point: np.ndarray, max_abs_coord: float = DEFAULT_MAX_ABS_COORD) -> bool:
    P = np.asarray(point, dtype=np.float64).reshape(3)
    return bool(np.any(np.abs(P) >= max_abs_coord))


def best_shift(
    point: np.ndarray,
    max_abs_coord: float = DEFAULT_MAX_ABS_COORD,
    rounding: float = DEFAULT_SHIFT_ROUND,
    force: bool = False,
) -> np.ndarray:
    """
    Translation bringing ``point`` near the origin, rounded to ``rounding``.

    Only oversized components are shifted unless ``force`` is set. The result is
    meant to be *added* to global coordinates: local = global + shift.
    """
    P = np.asarray(point, dtype=np.float64).reshape(3)
    mask = np.ones(3, dtype=bool) if force else np.abs(P) >= max_abs_coord
    if rounding > 0:
        base = np.trunc(P / rounding) * rounding
    else:
        base = P.copy()
    shift = np.where(mask, -base, 0.0)
    return shift + 0.0


def maybe_compute_shift(point: np.ndarray, params: Optional[Dict[str, Any]] = None) -> Optional[np.ndarray]:
    """
    Decide the load-wide global shift from the first vertex read.

    params:
      shift_mode (str):     "auto" (default), "always" or "never"
      shift (3-vector):     preset translation used whenever a shift is applied
      max_abs_coord (float): magnitude above which "auto" recenters (default 1e5)
      shift_round (float):  granularity of computed shifts (default 100)

    Returns None when the coordinates are kept as they are.
    """
    if params is None:
        params = {}
    mode = str(params.get("shift_mode", "auto")).strip().lower()
    if mode not in SHIFT_MODES:
        raise ValueError(f"Unknown shift_mode '{mode}' (expected one of {SHIFT_MODES}).")
    if mode == "never":
        return None

    max_abs = float(params.get("max_abs_coord", DEFAULT_MAX_ABS_COORD))
    rounding = float(params.get("shift_round", DEFAULT_SHIFT_ROUND))
    preset = params.get("shift", None)

    if mode == "auto" and not needs_shift(point, max_abs):
        return None

    if preset is not None:
        shift = np.asarray(preset, dtype=np.float64).reshape(-1)
        if shift.shape != (3,):
            raise ValueError("Preset shift must be a 3-vector.")
        return shift.copy()

    shift = best_shift(point, max_abs, rounding, force=(mode == "always"))
    if not np.any(shift):
        return None
    return shift
