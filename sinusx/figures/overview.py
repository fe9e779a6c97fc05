from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg", force=True)
matplotlib.rcParams["figure.facecolor"] = "white"
matplotlib.rcParams["savefig.facecolor"] = "white"
matplotlib.rcParams["pdf.fonttype"] = 42
matplotlib.rcParams["svg.fonttype"] = "none"

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (required for 3D projection)

from ..models import Polyline


def _set_equal_aspect(ax, pts: np.ndarray) -> None:
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    center = 0.5 * (lo + hi)
    half = 0.5 * float(np.max(hi - lo))
    if half <= 0.0:
        half = 1.0
    ax.set_xlim(center[0] - half, center[0] + half)
    ax.set_ylim(center[1] - half, center[1] + half)
    ax.set_zlim(center[2] - half, center[2] + half)


def make_curves_overview(
    polylines: Sequence[Polyline],
    out_path: str | os.PathLike[str],
    *,
    dpi: int = 200,
    use_global: bool = True,
    title: str | None = None,
) -> Path:
    """
    Render all curves into a single 3D figure.

    Closed curves are drawn closed; curves flagged invisible (unconnected points)
    are drawn as markers only. Coordinates are absolute unless use_global=False.
    """
    if not polylines:
        raise ValueError("make_curves_overview needs at least one polyline.")

    fig = plt.figure(figsize=(8.0, 6.6), dpi=dpi)
    ax = fig.add_subplot(111, projection="3d")
    cmap = plt.get_cmap("tab10")

    all_pts = []
    for i, poly in enumerate(polylines):
        P = poly.to_global() if use_global else poly.vertices
        if poly.closed and P.shape[0] > 2:
            P = np.vstack([P, P[:1]])
        color = cmap(i % 10)
        if poly.visible:
            ax.plot(P[:, 0], P[:, 1], P[:, 2], color=color, linewidth=1.2, label=poly.name)
        else:
            ax.scatter(P[:, 0], P[:, 1], P[:, 2], color=color, s=6, label=poly.name)
        all_pts.append(P)

    _set_equal_aspect(ax, np.vstack(all_pts))
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")
    if title:
        ax.set_title(title)
    if len(polylines) <= 12:
        ax.legend(loc="upper left", fontsize=7, frameon=False)

    out_path = Path(out_path)
    if out_path.parent != Path("."):
        out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=dpi, facecolor="white", bbox_inches="tight")
    plt.close(fig)
    return out_path
