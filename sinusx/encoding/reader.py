"""
SinusX reader:
- Line-driven state machine over a text stream
- Per-type header handling (S/P/N/C) through explicit header stages
- Vertex streaming with a single load-wide global shift
- Malformed lines are reported and skipped; valid curves are always kept
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional
import numpy as np

from ..models import CurveType, LoadResult, Polyline, Status, UpAxis, VertexBuffer
from ..geom.shift import SHIFT_MODES, maybe_compute_shift
from .diagnostics import DiagnosticLog
from .formatting import (
    BLOCK_MARKER,
    CIRCLE_HEADER_VALUES,
    COMMENT_MARKER,
    DESCRIPTOR_MARKER,
    NAME_MARKER,
    parse_float,
    parse_int,
    tokenize,
    up_axis_from_code,
)

VERTEX_CAPACITY_HINT = 16


class Stage(Enum):
    """Which 'CP' descriptor line the current block expects next."""
    CONNECTIVITY = 0
    TYPE_HEADER = 1
    BASE_PLANE = 2
    VERTICES = 3


@dataclass
class _Block:
    curve_type: CurveType
    ordinal: int
    header_line: int
    buffer: VertexBuffer = field(default_factory=lambda: VertexBuffer(VERTEX_CAPACITY_HINT))
    name: Optional[str] = None
    closed: bool = False
    visible: bool = True
    vertices_visible: bool = False
    up_axis: UpAxis = UpAxis.Z
    const_altitude: Optional[float] = None
    stage: Stage = Stage.CONNECTIVITY
    circle_pending: int = 0


class SinusxReader:
    """
    Incremental parser: call :meth:`feed` once per line, then :meth:`finish`.

    The global shift is decided on the first vertex parsed by this reader and
    applied to every later vertex, whatever block it belongs to.
    """

    def __init__(self, params: Optional[Dict[str, Any]] = None, sink: Optional[DiagnosticLog] = None) -> None:
        self.params: Dict[str, Any] = dict(params or {})
        mode = str(self.params.get("shift_mode", "auto")).strip().lower()
        if mode not in SHIFT_MODES:
            raise ValueError(f"Unknown shift_mode '{mode}' (expected one of {SHIFT_MODES}).")
        self.sink = sink if sink is not None else DiagnosticLog()
        self.polylines: List[Polyline] = []
        self.shift: Optional[np.ndarray] = None
        self.malformed = False
        self._shift_decided = False
        self._block: Optional[_Block] = None
        self._block_count = 0
        self._descriptor_handlers: Dict[Stage, Callable[[_Block, List[str], int], None]] = {
            Stage.CONNECTIVITY: self._cp_connectivity,
            Stage.TYPE_HEADER: self._cp_type_header,
            Stage.BASE_PLANE: self._cp_base_plane,
            Stage.VERTICES: self._cp_ignored,
        }

    # ---------- diagnostics ----------

    def _malformed(self, line_number: int, message: str) -> None:
        self.malformed = True
        self.sink.report_malformed_line(line_number, message)

    # ---------- line dispatch ----------

    def feed(self, line_number: int, line: str) -> None:
        line = line.rstrip("\r\n")
        tokens = tokenize(line)
        if not tokens:
            return
        if line.startswith(COMMENT_MARKER) and tokens[0] == COMMENT_MARKER:
            return
        if line.startswith(BLOCK_MARKER):
            self._close_block()
            self._open_block(tokens, line_number)
            return

        block = self._block
        if block is None:
            return
        if block.circle_pending > 0:
            self._consume_circle_values(block, len(tokens))
        elif line.startswith(NAME_MARKER):
            if len(line) > len(NAME_MARKER) + 1:
                name = line[len(NAME_MARKER) + 1:]
                if name.strip():
                    block.name = name
        elif line.startswith(DESCRIPTOR_MARKER):
            self._descriptor_handlers[block.stage](block, tokens, line_number)
        else:
            self._on_vertex(block, tokens, line_number)

    def finish(self) -> None:
        self._close_block()

    # ---------- blocks ----------

    def _open_block(self, tokens: List[str], line_number: int) -> None:
        if len(tokens) < 2 or len(tokens[1]) != 1:
            self._malformed(line_number, "Block header is corrupted (expected: 'B curve_type')")
            return
        curve_type = CurveType.from_tag(tokens[1])
        if curve_type is None:
            self._malformed(line_number, f"Unhandled curve type '{tokens[1]}'")
            return
        # extra header values (local frame, scale) are not used
        self._block_count += 1
        self._block = _Block(curve_type=curve_type, ordinal=self._block_count, header_line=line_number)

    def _close_block(self) -> None:
        """Finalize the open block if it holds a usable curve, discard it otherwise."""
        block = self._block
        if block is None:
            return
        self._block = None
        name = block.name if block.name is not None else f"Polyline {block.ordinal}"
        count = len(block.buffer)
        if count < 2:
            self.sink.report_warning(
                f"Curve '{name}' discarded: not enough vertices ({count})", line_number=block.header_line
            )
            return
        self.polylines.append(
            Polyline(
                vertices=block.buffer.freeze(),
                name=name,
                closed=block.closed,
                visible=block.visible,
                vertices_visible=block.vertices_visible,
                up_axis=block.up_axis,
                const_altitude=block.const_altitude,
                curve_type=block.curve_type,
                global_shift=None if self.shift is None else self.shift.copy(),
            )
        )

    # ---------- 'CP' descriptor stages ----------

    def _cp_connectivity(self, block: _Block, tokens: List[str], line_number: int) -> None:
        flags = [parse_int(t) for t in tokens[1:]] if len(tokens) == 3 else [None]
        if None in flags:
            self._malformed(line_number, "Line is corrupted (expected: 'CP connected_flag closed_flag')")
        else:
            connected, closed = flags
            if connected == 0:
                # unconnected points: hide the curve, show its vertices
                block.visible = False
                block.vertices_visible = True
            block.closed = closed != 0
        block.stage = Stage.TYPE_HEADER

    def _cp_type_header(self, block: _Block, tokens: List[str], line_number: int) -> None:
        curve_type = block.curve_type
        if curve_type is CurveType.SET:
            # S curves have no type-specific line: this one is already the base plane
            block.stage = Stage.BASE_PLANE
            self._cp_base_plane(block, tokens, line_number)
            return
        if curve_type is CurveType.PLANE_AT_ALTITUDE:
            altitude = parse_float(tokens[1]) if len(tokens) == 2 else None
            if altitude is None:
                self._malformed(line_number, "Line is corrupted (expected: 'CP const_altitude')")
            else:
                block.const_altitude = altitude
        elif curve_type is CurveType.CIRCLE:
            block.circle_pending = CIRCLE_HEADER_VALUES
            self._consume_circle_values(block, len(tokens) - 1)
            return
        block.stage = Stage.BASE_PLANE

    def _consume_circle_values(self, block: _Block, count: int) -> None:
        block.circle_pending -= count
        if block.circle_pending <= 0:
            block.circle_pending = 0
            block.stage = Stage.BASE_PLANE

    def _cp_base_plane(self, block: _Block, tokens: List[str], line_number: int) -> None:
        up_axis = up_axis_from_code(tokens[1]) if len(tokens) == 2 else None
        if up_axis is None:
            self._malformed(line_number, "Line is corrupted (expected: 'CP base_plane')")
        else:
            block.up_axis = up_axis
        block.stage = Stage.VERTICES

    def _cp_ignored(self, block: _Block, tokens: List[str], line_number: int) -> None:
        pass

    # ---------- vertices ----------

    def _on_vertex(self, block: _Block, tokens: List[str], line_number: int) -> None:
        coords = [parse_float(t) for t in tokens[:3]] if len(tokens) == 4 else [None]
        if None in coords:
            self._malformed(line_number, "Line is corrupted (expected: 'X Y Z Key ...')")
            return
        P = np.asarray(coords, dtype=np.float64)
        if not self._shift_decided:
            self._shift_decided = True
            self.shift = maybe_compute_shift(P, self.params)
            if self.shift is not None:
                sx, sy, sz = self.shift
                self.sink.report_warning(
                    f"Polyline has been recentered! Translation: ({sx:.2f},{sy:.2f},{sz:.2f})",
                    line_number=line_number,
                )
        if self.shift is not None:
            P = P + self.shift
        block.buffer.append(P)


def _resolve_status(reader: SinusxReader) -> Status:
    if not reader.polylines:
        return Status.EMPTY
    if reader.malformed:
        return Status.MALFORMED
    return Status.OK


def read_sinusx(
    lines: Iterable[str] | str,
    params: Optional[Dict[str, Any]] = None,
    *,
    sink: Optional[DiagnosticLog] = None,
) -> LoadResult:
    """
    Parse SinusX text into polylines.

    Args:
        lines:  iterable of text lines (e.g. an open file) or a whole document as str
        params: load options, see :func:`sinusx.geom.shift.maybe_compute_shift`
        sink:   diagnostic sink; a fresh warning-emitting DiagnosticLog by default

    Returns:
        LoadResult with the finalized polylines (in file order), the diagnostics
        recorded during this call and the overall status.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()
    reader = SinusxReader(params, sink)
    first_record = len(reader.sink.records)

    try:
        for line_number, line in enumerate(lines, start=1):
            reader.feed(line_number, line)
        reader.finish()
    except MemoryError:
        # the in-flight curve is lost, curves finalized so far are kept
        reader._block = None
        reader.sink.report_warning("Not enough memory to load the SinusX data")
        status = Status.OUT_OF_MEMORY
    else:
        status = _resolve_status(reader)

    return LoadResult(
        status=status,
        polylines=reader.polylines,
        diagnostics=list(reader.sink.records[first_record:]),
        global_shift=None if reader.shift is None else reader.shift.copy(),
    )


__all__ = ["SinusxReader", "Stage", "read_sinusx"]
