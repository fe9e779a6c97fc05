"""Tokens, base-plane codes and numeric helpers shared by the SinusX reader and writer."""
from __future__ import annotations

import math
import re
from typing import Optional

import numpy as np

from ..models import UpAxis

COMMENT_MARKER = "C"
BLOCK_MARKER = "B"
NAME_MARKER = "CN"
DESCRIPTOR_MARKER = "CP"
POINT_KEY = "A"
PRECISION = 12
CIRCLE_HEADER_VALUES = 16

# base plane: 0 = (XY), 1 = (YZ), 2 = (ZX)
_UP_AXIS_BY_CODE = {"0": UpAxis.Z, "1": UpAxis.X, "2": UpAxis.Y}
_CODE_BY_UP_AXIS = {UpAxis.Z: 0, UpAxis.X: 1, UpAxis.Y: 2}

_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eEdD][+-]?\d+)?$")
_INT_RE = re.compile(r"^[+-]?\d+$")


def tokenize(line: str) -> list[str]:
    return line.split()


def sinusx_name(name: str) -> str:
    """Names cannot be quoted in SinusX, so spaces become underscores."""
    return str(name).replace(" ", "_")


def base_plane_code(up_axis: UpAxis) -> int:
    return _CODE_BY_UP_AXIS[UpAxis(up_axis)]


def up_axis_from_code(token: str) -> Optional[UpAxis]:
    """Map a base-plane token to its up axis; only the first character counts."""
    if not token:
        return None
    return _UP_AXIS_BY_CODE.get(token[0])


def parse_float(token: str) -> Optional[float]:
    """
    Parse a decimal number as written in SinusX files.
    Fortran-style 'D' exponents are accepted; NaN/inf and other Python-only
    spellings (underscores, 'nan', 'infinity') are rejected.
    """
    if not _FLOAT_RE.match(token):
        return None
    value = float(token.replace("D", "E").replace("d", "e"))
    if not math.isfinite(value):
        return None
    return value


def parse_int(token: str) -> Optional[int]:
    if not _INT_RE.match(token):
        return None
    return int(token)


def format_coordinate(value: float) -> str:
    value = float(value) + 0.0  # folds -0.0 into +0.0
    return f"{value:+.{PRECISION}f}"


def format_vertex(point: np.ndarray) -> str:
    x, y, z = (format_coordinate(v) for v in np.asarray(point, dtype=np.float64).reshape(3))
    return f" {x} {y} {z} {POINT_KEY}"
