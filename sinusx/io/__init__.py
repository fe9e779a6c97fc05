from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from shapely.geometry import LinearRing, LineString, Polygon
from shapely.geometry.base import BaseGeometry

from ..models import LoadResult, Polyline, SaveResult, Status
from ..encoding.diagnostics import DiagnosticLog
from ..encoding.reader import read_sinusx
from ..encoding.writer import DEFAULT_HEADER, write_sinusx

SINUSX_EXTENSIONS = (".sx", ".sinusx")


# ---------- shapely bridge ----------

def _coords3d(geom: BaseGeometry) -> np.ndarray:
    C = np.asarray(geom.coords, dtype=np.float64)
    if C.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if C.shape[1] == 2:
        C = np.column_stack([C, np.zeros(C.shape[0])])
    return C


def to_shapely(polylines: List[Polyline], use_global: bool = True) -> List[LineString]:
    """
    Convert polylines to 3D shapely lines: LinearRing for closed curves with at
    least 3 vertices, LineString otherwise. Curves with fewer than 2 vertices are
    left out.
    """
    out: List[LineString] = []
    for poly in polylines:
        V = poly.to_global() if use_global else poly.vertices
        if V.shape[0] < 2:
            continue
        if poly.closed and V.shape[0] >= 3:
            out.append(LinearRing(V))
        else:
            out.append(LineString(V))
    return out


def from_shapely(geometry: Any) -> List[Polyline]:
    """
    Convert shapely line geometries into polylines.
    - LinearRing and polygon rings become closed curves
    - LineString becomes an open curve
    - multi-part geometries and collections are flattened; other types are ignored
    2D geometries get z = 0.
    """
    out: List[Polyline] = []

    def _visit(geom: Any) -> None:
        if isinstance(geom, LinearRing):
            C = _coords3d(geom)
            out.append(Polyline(vertices=C[:-1], name=f"Polyline {len(out) + 1}", closed=True))
        elif isinstance(geom, LineString):
            out.append(Polyline(vertices=_coords3d(geom), name=f"Polyline {len(out) + 1}"))
        elif isinstance(geom, Polygon):
            _visit(geom.exterior)
            for ring in geom.interiors:
                _visit(ring)
        elif hasattr(geom, "geoms"):
            for part in geom.geoms:
                _visit(part)
        elif isinstance(geom, (list, tuple)):
            for part in geom:
                _visit(part)

    _visit(geometry)
    return out


# ---------- entity collection ----------

def collect_polylines(entity: Any) -> List[Polyline]:
    """
    Gather the polylines to save from a Polyline, a shapely geometry, or an
    iterable of those. Anything else is ignored.
    """
    if isinstance(entity, Polyline):
        return [entity]
    if isinstance(entity, BaseGeometry):
        return from_shapely(entity)
    if isinstance(entity, (str, bytes)) or not hasattr(entity, "__iter__"):
        return []
    out: List[Polyline] = []
    for item in entity:
        if isinstance(item, Polyline):
            out.append(item)
        elif isinstance(item, BaseGeometry):
            out.extend(from_shapely(item))
    return out


def is_sinusx_path(path: str | os.PathLike[str]) -> bool:
    return Path(path).suffix.lower() in SINUSX_EXTENSIONS


# ---------- Public API ----------

def load_sinusx(
    path: str | os.PathLike[str],
    params: Optional[Dict[str, Any]] = None,
    *,
    sink: Optional[DiagnosticLog] = None,
) -> LoadResult:
    """
    Load every valid curve of a SinusX file.
    Never raises for file contents; see LoadResult.status for the outcome.
    """
    if path is None or str(path) == "":
        return LoadResult(status=Status.BAD_ARGUMENT)
    params = dict(params or {})
    encoding = str(params.get("encoding", "utf-8"))
    sink = sink if sink is not None else DiagnosticLog()
    first_record = len(sink.records)
    try:
        with Path(path).open("r", encoding=encoding, errors="replace") as handle:
            return read_sinusx(handle, params, sink=sink)
    except OSError as exc:
        sink.report_error(f"Cannot read '{path}': {exc}")
        return LoadResult(status=Status.IO_FAILURE, diagnostics=list(sink.records[first_record:]))


def save_sinusx(
    entity: Any,
    path: str | os.PathLike[str],
    *,
    header: Optional[str] = DEFAULT_HEADER,
    sink: Optional[DiagnosticLog] = None,
) -> SaveResult:
    """
    Save polylines (see :func:`collect_polylines`) as a SinusX file.
    The file is not created when there is nothing to save.
    """
    if entity is None or path is None or str(path) == "":
        return SaveResult(status=Status.BAD_ARGUMENT)
    try:
        polylines = collect_polylines(entity)
    except MemoryError:
        return SaveResult(status=Status.OUT_OF_MEMORY)
    if not polylines:
        return SaveResult(status=Status.EMPTY)

    path = Path(path)
    sink = sink if sink is not None else DiagnosticLog()
    first_record = len(sink.records)
    try:
        if path.parent != Path("."):
            path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="\n") as handle:
            return write_sinusx(polylines, handle, header=header, sink=sink)
    except OSError as exc:
        sink.report_error(f"Cannot write '{path}': {exc}")
        return SaveResult(status=Status.IO_FAILURE, diagnostics=list(sink.records[first_record:]))


__all__ = [
    "SINUSX_EXTENSIONS",
    "collect_polylines",
    "from_shapely",
    "is_sinusx_path",
    "load_sinusx",
    "save_sinusx",
    "to_shapely",
]
