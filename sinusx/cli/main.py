#!/usr/bin/env python
from __future__ import annotations

import argparse
import os
import warnings
from pathlib import Path
from typing import Any, Dict

from sinusx.models import LoadResult, SinusxError, SinusxWarning, Status
from sinusx.io import load_sinusx, save_sinusx
from sinusx.encoding.diagnostics import DiagnosticLog
from sinusx.encoding.writer import DEFAULT_HEADER


def _ensure_parent(path: str | os.PathLike[str]) -> None:
    parent = Path(path).expanduser().parent
    if parent != Path('.'):
        parent.mkdir(parents=True, exist_ok=True)


def _shift_vector(value: str) -> list[float]:
    parts = value.replace(",", " ").split()
    if len(parts) != 3:
        raise argparse.ArgumentTypeError("shift expects three numbers, e.g. '-500000,-4000000,0'")
    return [float(p) for p in parts]


def _add_load_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--sx", required=True, help="Input SinusX file path.")
    sub.add_argument("--shift-mode", default="auto", choices=["auto", "always", "never"], help="Global shift policy for large coordinates.")
    sub.add_argument("--shift", type=_shift_vector, default=None, help="Preset global shift 'x,y,z' (added to file coordinates).")
    sub.add_argument("--max-abs-coord", type=float, default=1.0e5, help="Coordinate magnitude that triggers automatic recentering.")
    sub.add_argument("--shift-round", type=float, default=100.0, help="Granularity of computed shifts.")
    sub.add_argument("--encoding", default="utf-8", help="Text encoding of the input file.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sinusx", description="SinusX curve file inspect/rewrite/figure CLI")
    parser.add_argument("--quiet", action="store_true", help="Do not echo diagnostics as warnings.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Summarize curves and diagnostics of a SinusX file.")
    _add_load_arguments(inspect_parser)

    rewrite_parser = subparsers.add_parser("rewrite", help="Load a SinusX file and write it back as S blocks.")
    _add_load_arguments(rewrite_parser)
    rewrite_parser.add_argument("--out", required=True, help="Output SinusX file path.")
    rewrite_parser.add_argument("--header", default=DEFAULT_HEADER, help="Comment written on the first line.")

    figure_parser = subparsers.add_parser("figure", help="Render the curves of a SinusX file.")
    _add_load_arguments(figure_parser)
    figure_parser.add_argument("--out", required=True, help="Output figure path.")
    figure_parser.add_argument("--dpi", type=int, default=200, help="Figure DPI for raster outputs.")

    return parser


def _load_params(args: argparse.Namespace) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "shift_mode": args.shift_mode,
        "max_abs_coord": float(args.max_abs_coord),
        "shift_round": float(args.shift_round),
        "encoding": args.encoding,
    }
    if args.shift is not None:
        params["shift"] = args.shift
    return params


def _load(args: argparse.Namespace) -> LoadResult:
    # diagnostics are printed below, not re-issued as warnings
    result = load_sinusx(args.sx, params=_load_params(args), sink=DiagnosticLog(emit=False))
    for diag in result.diagnostics:
        print(f"[{args.command}] {diag.severity}: {diag}")
    return result


def _run_inspect(args: argparse.Namespace) -> int:
    result = _load(args)
    print(f"[inspect] {args.sx}: status={result.status.value} curves={len(result.polylines)}")
    if result.global_shift is not None:
        sx, sy, sz = result.global_shift
        print(f"[inspect] global shift: ({sx:.2f}, {sy:.2f}, {sz:.2f})")
    for poly in result.polylines:
        tag = poly.curve_type.value if poly.curve_type is not None else "?"
        extra = f" altitude={poly.const_altitude:g}" if poly.const_altitude is not None else ""
        print(
            f"  [{tag}] {poly.name}: vertices={len(poly)} closed={int(poly.closed)} "
            f"up={poly.up_axis.name} visible={int(poly.visible)}{extra}"
        )
    return 0 if result.ok else 1


def _run_rewrite(args: argparse.Namespace) -> int:
    result = _load(args).raise_for_status()
    _ensure_parent(args.out)
    saved = save_sinusx(result.polylines, args.out, header=args.header).raise_for_status()
    print(f"[rewrite] wrote {args.out} ({saved.written} curves)")
    return 0


def _run_figure(args: argparse.Namespace) -> int:
    from sinusx.figures.overview import make_curves_overview

    result = _load(args).raise_for_status()
    _ensure_parent(args.out)
    make_curves_overview(result.polylines, args.out, dpi=int(args.dpi), title=Path(args.sx).name)
    print(f"[figure] wrote {args.out}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.quiet:
        warnings.simplefilter("ignore", SinusxWarning)

    try:
        if args.command == "inspect":
            return _run_inspect(args)
        elif args.command == "rewrite":
            return _run_rewrite(args)
        elif args.command == "figure":
            return _run_figure(args)
        else:
            parser.error(f"Unknown command: {args.command}")
    except SinusxError as exc:
        print(f"[{args.command}] failed: {exc}")
        return 1 if exc.status is not Status.BAD_ARGUMENT else 2
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
