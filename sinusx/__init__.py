"""
sinusx: reader and writer for the SinusX ASCII curve-exchange format.

This package exposes:
- Core dataclasses and enums (Polyline, CurveType, UpAxis, Status, LoadResult, SaveResult)
- Stream-level codec functions (read_sinusx, write_sinusx)
- File-level helpers live in :mod:`sinusx.io` (load_sinusx, save_sinusx, shapely bridge)
"""

from .models import (
    CurveType,
    Diagnostic,
    LoadResult,
    Polyline,
    SaveResult,
    SinusxError,
    SinusxWarning,
    Status,
    UpAxis,
    VertexBuffer,
)
from .encoding.reader import read_sinusx
from .encoding.writer import write_sinusx

__all__ = [
    "CurveType",
    "Diagnostic",
    "LoadResult",
    "Polyline",
    "SaveResult",
    "SinusxError",
    "SinusxWarning",
    "Status",
    "UpAxis",
    "VertexBuffer",
    "read_sinusx",
    "write_sinusx",
]

__version__ = "0.1.0"
