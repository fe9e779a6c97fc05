from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional
import numpy as np


class CurveType(Enum):
    """
    SinusX curve families, keyed by their one-character block tag.
        S: set of 3D points
        P: profile
        N: planar curve at constant altitude
        C: circle (local frame + scale in the header)
    """
    SET = "S"
    PROFILE = "P"
    PLANE_AT_ALTITUDE = "N"
    CIRCLE = "C"

    @classmethod
    def from_tag(cls, tag: str) -> Optional["CurveType"]:
        for member in cls:
            if member.value == tag:
                return member
        return None


class UpAxis(IntEnum):
    X = 0
    Y = 1
    Z = 2


class Status(Enum):
    """Overall outcome of a load or save operation."""
    OK = "ok"
    BAD_ARGUMENT = "bad_argument"
    IO_FAILURE = "io_failure"
    MALFORMED = "malformed"
    EMPTY = "empty"
    OUT_OF_MEMORY = "out_of_memory"


class SinusxWarning(UserWarning):
    """Category used for every diagnostic emitted through :mod:`warnings`."""


class SinusxError(Exception):
    """Raised by :meth:`LoadResult.raise_for_status` for unusable results."""

    def __init__(self, status: Status, message: str = "") -> None:
        super().__init__(message or status.value)
        self.status = status


@dataclass(frozen=True)
class Diagnostic:
    message: str
    line_number: Optional[int] = None
    severity: str = "error"  # "error" or "warning"

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"line {self.line_number}: {self.message}"


@dataclass
class Polyline:
    """
    3D polyline as exchanged through SinusX files.
    - vertices: (N,3) float64 array in local coordinates
    - global_shift: optional (3,) translation with local = global + shift
    - up_axis is only meaningful when is_2d is set
    """
    vertices: np.ndarray
    name: str = "Polyline"
    closed: bool = False
    visible: bool = True
    vertices_visible: bool = False
    is_2d: bool = False
    up_axis: UpAxis = UpAxis.Z
    const_altitude: Optional[float] = None
    curve_type: Optional[CurveType] = None
    global_shift: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        V = np.asarray(self.vertices, dtype=np.float64)
        if V.size == 0:
            V = V.reshape(0, 3)
        if V.ndim != 2 or V.shape[1] != 3:
            raise ValueError("Polyline expects vertices of shape (N,3).")
        self.vertices = V
        if self.global_shift is not None:
            shift = np.asarray(self.global_shift, dtype=np.float64).reshape(-1)
            if shift.shape != (3,):
                raise ValueError("global_shift must be a 3-vector.")
            self.global_shift = shift
        self.up_axis = UpAxis(self.up_axis)

    def __len__(self) -> int:
        return int(self.vertices.shape[0])

    def is_valid(self) -> bool:
        return len(self) >= 2

    def to_global(self) -> np.ndarray:
        """Absolute coordinates, undoing the recentering shift if any."""
        if self.global_shift is None:
            return self.vertices.copy()
        return self.vertices - self.global_shift[None, :]


class VertexBuffer:
    """
    Growable (capacity,3) float64 storage for vertices streamed from a file.

    Capacity grows by max(capacity, chunk) rows at a time, so appending N points
    costs O(N) amortized. A failed allocation surfaces as MemoryError.
    """

    def __init__(self, capacity: int = 0, chunk: int = 64) -> None:
        self._chunk = max(int(chunk), 1)
        self._data = np.empty((max(int(capacity), 0), 3), dtype=np.float64)
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return int(self._data.shape[0])

    def reserve(self, capacity: int) -> None:
        if capacity <= self.capacity:
            return
        grown = np.empty((capacity, 3), dtype=np.float64)
        grown[: self._size] = self._data[: self._size]
        self._data = grown

    def append(self, point: np.ndarray) -> None:
        if self._size == self.capacity:
            self.reserve(self.capacity + max(self.capacity, self._chunk))
        self._data[self._size] = point
        self._size += 1

    def freeze(self) -> np.ndarray:
        """Exact-size copy of the accumulated points."""
        return self._data[: self._size].copy()


@dataclass
class LoadResult:
    status: Status
    polylines: List[Polyline] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    global_shift: Optional[np.ndarray] = None

    @property
    def ok(self) -> bool:
        return self.status in (Status.OK, Status.MALFORMED)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "error"]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "warning"]

    def raise_for_status(self) -> "LoadResult":
        if not self.ok:
            raise SinusxError(self.status, f"SinusX load failed: {self.status.value}")
        return self


@dataclass
class SaveResult:
    status: Status
    written: int = 0
    skipped: int = 0
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "error"]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "warning"]

    def raise_for_status(self) -> "SaveResult":
        if not self.ok:
            raise SinusxError(self.status, f"SinusX save failed: {self.status.value}")
        return self
