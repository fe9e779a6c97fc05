from __future__ import annotations

from typing import Iterable, Optional, TextIO

from ..models import Polyline, SaveResult, Status
from .diagnostics import DiagnosticLog
from .formatting import (
    BLOCK_MARKER,
    COMMENT_MARKER,
    DESCRIPTOR_MARKER,
    NAME_MARKER,
    base_plane_code,
    format_vertex,
    sinusx_name,
)

DEFAULT_HEADER = "Generated by sinusx"


def write_polyline(poly: Polyline, stream: TextIO) -> None:
    """Emit one polyline as a generic 'S' block with absolute coordinates."""
    plane = base_plane_code(poly.up_axis) if poly.is_2d else 0
    stream.write(f"{BLOCK_MARKER} S\n")
    stream.write(f"{NAME_MARKER} {sinusx_name(poly.name)}\n")
    stream.write(f"{DESCRIPTOR_MARKER} 1 {1 if poly.closed else 0}\n")
    stream.write(f"{DESCRIPTOR_MARKER} {plane}\n")
    for P in poly.to_global():
        stream.write(format_vertex(P) + "\n")


def write_sinusx(
    polylines: Iterable[Polyline],
    stream: TextIO,
    *,
    header: Optional[str] = DEFAULT_HEADER,
    sink: Optional[DiagnosticLog] = None,
) -> SaveResult:
    """
    Serialize polylines to SinusX text.

    Curves with fewer than 2 vertices are skipped with a warning; the result is
    Status.OK as soon as one curve was written, Status.EMPTY otherwise.
    """
    sink = sink if sink is not None else DiagnosticLog()
    first_record = len(sink.records)
    written = 0
    skipped = 0

    if header:
        stream.write(f"{COMMENT_MARKER} {header}\n")

    for poly in polylines:
        if len(poly) < 2:
            sink.report_warning(f"Polyline '{poly.name}' does not have enough vertices")
            skipped += 1
            continue
        write_polyline(poly, stream)
        written += 1

    return SaveResult(
        status=Status.OK if written else Status.EMPTY,
        written=written,
        skipped=skipped,
        diagnostics=list(sink.records[first_record:]),
    )


__all__ = ["DEFAULT_HEADER", "write_polyline", "write_sinusx"]
