import io

import numpy as np

from sinusx.encoding.diagnostics import DiagnosticLog
from sinusx.encoding.formatting import format_coordinate, parse_float, sinusx_name, up_axis_from_code
from sinusx.encoding.writer import write_sinusx
from sinusx.models import Polyline, Status, UpAxis


def _write(polylines, **kwargs):
    stream = io.StringIO()
    res = write_sinusx(polylines, stream, sink=DiagnosticLog(emit=False), **kwargs)
    return res, stream.getvalue()


def test_block_layout_and_number_format():
    poly = Polyline(vertices=[[1.0, -2.5, 0.0], [3.0, 4.0, -0.0]], name="my curve", closed=True)
    res, text = _write([poly])
    assert res.status is Status.OK and res.written == 1 and res.skipped == 0
    assert text == (
        "C Generated by sinusx\n"
        "B S\n"
        "CN my_curve\n"
        "CP 1 1\n"
        "CP 0\n"
        " +1.000000000000 -2.500000000000 +0.000000000000 A\n"
        " +3.000000000000 +4.000000000000 +0.000000000000 A\n"
    )


def test_base_plane_follows_up_axis_only_in_2d():
    V = [[0, 0, 0], [1, 1, 1]]
    polys = [
        Polyline(vertices=V, is_2d=True, up_axis=UpAxis.Z),
        Polyline(vertices=V, is_2d=True, up_axis=UpAxis.Y),
        Polyline(vertices=V, is_2d=True, up_axis=UpAxis.X),
        Polyline(vertices=V, is_2d=False, up_axis=UpAxis.X),
    ]
    _, text = _write(polys, header=None)
    planes = [line for line in text.splitlines() if line.startswith("CP ") and len(line.split()) == 2]
    assert planes == ["CP 0", "CP 2", "CP 1", "CP 0"]


def test_writes_absolute_coordinates():
    poly = Polyline(vertices=[[0.5, 0.25, 12.0], [1.5, 1.25, 13.0]], global_shift=[-500000.0, -4000000.0, 0.0])
    _, text = _write([poly], header=None)
    rows = [line.split() for line in text.splitlines()[4:]]
    assert rows[0] == ["+500000.500000000000", "+4000000.250000000000", "+12.000000000000", "A"]
    assert rows[1][:3] == ["+500001.500000000000", "+4000001.250000000000", "+13.000000000000"]


def test_short_curves_are_skipped_with_warning():
    good = Polyline(vertices=[[0, 0, 0], [1, 0, 0]], name="good")
    short = Polyline(vertices=[[0, 0, 0]], name="short")
    empty = Polyline(vertices=np.empty((0, 3)), name="empty")
    res, text = _write([short, good, empty])
    assert res.status is Status.OK
    assert res.written == 1 and res.skipped == 2
    assert len(res.warnings) == 2
    assert "short" in res.warnings[0].message
    assert text.count("B S") == 1


def test_nothing_to_save_when_all_curves_are_short():
    res, text = _write([Polyline(vertices=[[0, 0, 0]])])
    assert res.status is Status.EMPTY
    assert res.written == 0
    assert "B S" not in text


def test_formatting_helpers():
    assert format_coordinate(-0.0) == "+0.000000000000"
    assert format_coordinate(-1e-13) == "-0.000000000000"
    assert format_coordinate(123.456) == "+123.456000000000"
    assert sinusx_name("a b  c") == "a_b__c"
    assert parse_float("+1.5") == 1.5
    assert parse_float(".5") == 0.5
    assert parse_float("1.") == 1.0
    assert parse_float("1e400") is None
    assert parse_float("abc") is None
    assert up_axis_from_code("0") is UpAxis.Z
    assert up_axis_from_code("1") is UpAxis.X
    assert up_axis_from_code("2") is UpAxis.Y
    assert up_axis_from_code("3") is None
