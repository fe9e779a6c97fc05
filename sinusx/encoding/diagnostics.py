from __future__ import annotations

import inspect
import os
import warnings
from typing import List, Optional

from ..models import Diagnostic, SinusxWarning

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _caller_stacklevel() -> int:
    """Stack level of the first frame outside the sinusx package, seen from DiagnosticLog._push."""
    frame = inspect.currentframe()
    level = 0
    try:
        frame = frame.f_back if frame is not None else None  # _push
        level = 1
        while frame is not None and os.path.abspath(frame.f_code.co_filename).startswith(_PACKAGE_DIR + os.sep):
            frame = frame.f_back
            level += 1
    finally:
        del frame
    return max(level, 1)


class DiagnosticLog:
    """
    Fire-and-forget sink for codec diagnostics.

    Every report is kept as a :class:`Diagnostic`; with ``emit=True`` it is also
    issued through :func:`warnings.warn` under :class:`SinusxWarning`, attributed
    to the first calling frame outside this package.
    """

    def __init__(self, emit: bool = True) -> None:
        self.emit = emit
        self.records: List[Diagnostic] = []

    def _push(self, diag: Diagnostic) -> None:
        self.records.append(diag)
        if self.emit:
            warnings.warn(f"[SinusX] {diag}", SinusxWarning, stacklevel=_caller_stacklevel())

    def report_malformed_line(self, line_number: Optional[int], message: str) -> None:
        self._push(Diagnostic(message=message, line_number=line_number, severity="error"))

    def report_error(self, message: str) -> None:
        """File-level failure (open/write), not tied to a line."""
        self._push(Diagnostic(message=message, severity="error"))

    def report_warning(self, message: str, line_number: Optional[int] = None) -> None:
        self._push(Diagnostic(message=message, line_number=line_number, severity="warning"))

    @property
    def has_errors(self) -> bool:
        return any(d.severity == "error" for d in self.records)
