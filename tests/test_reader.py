import numpy as np
import pytest

import sinusx.encoding.reader as reader_mod
from sinusx.encoding.diagnostics import DiagnosticLog
from sinusx.encoding.reader import SinusxReader, Stage, read_sinusx
from sinusx.models import CurveType, SinusxWarning, Status, UpAxis, VertexBuffer


def _read(text, params=None):
    return read_sinusx(text, params, sink=DiagnosticLog(emit=False))


SET_BLOCK = """\
C a comment line
B S
CN river bank
CP 0 1
CP 2
 +1.0 +2.0 +3.0 A
 +4.0 +5.0 +6.0 A
 +7.0 +8.0 +9.0 A
"""


def test_set_block_uses_second_descriptor_as_base_plane():
    res = _read(SET_BLOCK)
    assert res.status is Status.OK
    assert len(res.polylines) == 1
    poly = res.polylines[0]
    assert poly.name == "river bank"
    assert poly.curve_type is CurveType.SET
    assert poly.closed is True
    assert poly.visible is False and poly.vertices_visible is True
    assert poly.up_axis is UpAxis.Y
    np.testing.assert_allclose(poly.vertices, [[1, 2, 3], [4, 5, 6], [7, 8, 9]])
    assert poly.global_shift is None
    assert res.diagnostics == []


def test_profile_skips_its_type_line():
    text = "B P\nCP 1 0\nCP 3 2 1\nCP 1\n0 0 0 A\n1 0 0 A\n"
    res = _read(text)
    assert res.status is Status.OK
    poly = res.polylines[0]
    assert poly.curve_type is CurveType.PROFILE
    assert poly.up_axis is UpAxis.X
    assert poly.visible is True and poly.closed is False
    assert poly.const_altitude is None


def test_plane_at_altitude_reads_constant_altitude():
    text = "B N\nCN contour 12\nCP 1 0\nCP 12.5\nCP 0\n0 0 12.5 A\n1 0 12.5 A\n"
    res = _read(text)
    assert res.status is Status.OK
    poly = res.polylines[0]
    assert poly.curve_type is CurveType.PLANE_AT_ALTITUDE
    assert poly.const_altitude == 12.5
    assert poly.up_axis is UpAxis.Z
    assert poly.name == "contour 12"


def test_plane_at_altitude_bad_value_is_reported_and_header_continues():
    text = "B N\nCP 1 0\nCP high\nCP 2\n0 0 0 A\n1 0 0 A\n"
    res = _read(text)
    assert res.status is Status.MALFORMED
    assert [d.line_number for d in res.errors] == [3]
    assert res.polylines[0].const_altitude is None
    assert res.polylines[0].up_axis is UpAxis.Y


def test_circle_header_values_span_several_lines():
    text = (
        "B C\n"
        "CN ring\n"
        "CP 1 1\n"
        "CP 1 0 0 0 1 0 0 0 1\n"
        "CP 0 0 0 1 1 1 1\n"
        "CP 1\n"
        "0 0 0 A\n1 0 0 A\n0 1 0 A\n"
    )
    res = _read(text)
    assert res.status is Status.OK
    poly = res.polylines[0]
    assert poly.curve_type is CurveType.CIRCLE
    assert poly.closed is True
    assert poly.up_axis is UpAxis.X
    assert len(poly) == 3


def test_circle_with_too_few_values_does_not_hang():
    res = _read("B C\nCP 1 0\nCP 1 2 3\n")
    assert res.status is Status.EMPTY
    assert res.polylines == []
    assert len(res.warnings) == 1


def test_block_header_interrupts_circle_value_skip():
    text = "B C\nCP 1 0\nCP 1 2 3\nB S\nCN next\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1 A\n"
    res = _read(text)
    assert res.status is Status.OK
    assert [p.name for p in res.polylines] == ["next"]


def test_circle_continuation_lines_count_their_descriptor_marker():
    text = (
        "B C\n"
        "CP 1 0\n"
        "CP 1 0 0 0 1 0 0 0 1\n"
        "CP 0 0 0 1 1 1\n"
        "CP 1\n"
        "0 0 0 A\n1 0 0 A\n"
    )
    res = _read(text)
    assert res.status is Status.OK
    assert res.polylines[0].up_axis is UpAxis.X
    assert len(res.polylines[0]) == 2


def test_unknown_curve_type_is_skipped_and_flags_file():
    text = (
        "B S\nCN good\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1 A\n"
        "B X\nCN bad\nCP 1 0\nCP 0\n2 2 2 A\n3 3 3 A\n"
    )
    res = _read(text)
    assert res.status is Status.MALFORMED
    assert [p.name for p in res.polylines] == ["good"]
    assert len(res.errors) == 1
    assert res.errors[0].line_number == 7
    assert "X" in res.errors[0].message


def test_corrupted_block_header():
    res = _read("B\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1 A\nB SS\n")
    assert res.status is Status.EMPTY
    assert [d.line_number for d in res.errors] == [1, 6]


def test_three_token_vertex_is_rejected_but_block_continues():
    text = "B S\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1\n2 2 2 A\n"
    res = _read(text)
    assert res.status is Status.MALFORMED
    assert len(res.errors) == 1 and res.errors[0].line_number == 5
    np.testing.assert_allclose(res.polylines[0].vertices, [[0, 0, 0], [2, 2, 2]])


def test_unparseable_coordinates_are_rejected():
    text = "B S\nCP 1 0\nCP 0\n0 0 0 A\n1 x 1 A\n1_0 1 1 A\nnan 0 0 A\n3 3 3 A\n"
    res = _read(text)
    assert res.status is Status.MALFORMED
    assert [d.line_number for d in res.errors] == [5, 6, 7]
    assert len(res.polylines[0]) == 2


def test_fortran_exponents_are_accepted():
    res = _read("B S\nCP 1 0\nCP 0\n1.5D+02 -2.0d-01 +3E1 A\n0 0 0 A\n")
    assert res.status is Status.OK
    np.testing.assert_allclose(res.polylines[0].vertices[0], [150.0, -0.2, 30.0])


def test_bad_connectivity_line_still_advances_header():
    text = "B S\nCP yes no\nCP 2\n0 0 0 A\n1 1 1 A\n"
    res = _read(text)
    assert res.status is Status.MALFORMED
    poly = res.polylines[0]
    assert poly.up_axis is UpAxis.Y
    assert poly.visible is True and poly.closed is False


def test_invalid_base_plane_is_reported():
    res = _read("B P\nCP 1 0\nCP\nCP 7\n0 0 0 A\n1 1 1 A\n")
    assert res.status is Status.MALFORMED
    assert [d.line_number for d in res.errors] == [4]
    assert res.polylines[0].up_axis is UpAxis.Z


def test_extra_descriptor_lines_are_ignored():
    res = _read("B S\nCP 1 0\nCP 1\nCP 2\nCP whatever\n0 0 0 A\n1 1 1 A\n")
    assert res.status is Status.OK
    assert res.polylines[0].up_axis is UpAxis.X


def test_short_blocks_are_discarded_with_warning():
    text = "B S\nCN lonely\nCP 1 0\nCP 0\n0 0 0 A\nB S\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1 A\n"
    res = _read(text)
    assert res.status is Status.OK
    assert len(res.polylines) == 1
    assert res.polylines[0].name == "Polyline 2"
    assert len(res.warnings) == 1
    assert "lonely" in res.warnings[0].message
    assert res.errors == []


def test_lines_outside_blocks_and_blank_lines_are_ignored():
    text = "0 0 0 A\nCN orphan\nCP 1 0\n\n   \nB S\n\nCP 1 0\n\nCP 0\n0 0 0 A\n\n1 1 1 A\n"
    res = _read(text)
    assert res.status is Status.OK
    assert res.diagnostics == []
    assert len(res.polylines[0]) == 2


def test_extra_header_values_and_crlf_line_endings():
    text = "B S 0 0 0 1 0 0 0 1 1\r\nCN a b\r\nCP 1 1\r\nCP 0\r\n0 0 0 A\r\n1 1 1 A\r\n"
    res = _read(text)
    assert res.status is Status.OK
    assert res.polylines[0].name == "a b"
    assert res.polylines[0].closed is True


def test_empty_input_is_nothing_to_load():
    assert _read("").status is Status.EMPTY
    assert _read("C only a comment\n").status is Status.EMPTY


def test_global_shift_is_decided_once_for_all_curves():
    text = (
        "B S\nCP 1 0\nCP 0\n500000.5 4000000.25 12.0 A\n500001.5 4000001.25 13.0 A\n"
        "B S\nCP 1 0\nCP 0\n500010.0 4000010.0 0.0 A\n10.0 20.0 30.0 A\n"
    )
    res = _read(text)
    assert res.status is Status.OK
    np.testing.assert_allclose(res.global_shift, [-500000.0, -4000000.0, 0.0])
    for poly in res.polylines:
        np.testing.assert_allclose(poly.global_shift, res.global_shift)
    np.testing.assert_allclose(res.polylines[0].vertices[0], [0.5, 0.25, 12.0])
    np.testing.assert_allclose(res.polylines[1].vertices[1], [-499990.0, -3999980.0, 30.0])
    np.testing.assert_allclose(res.polylines[1].to_global()[1], [10.0, 20.0, 30.0])
    assert len(res.warnings) == 1 and "recentered" in res.warnings[0].message


def test_small_first_vertex_disables_shift_for_the_whole_load():
    text = "B S\nCP 1 0\nCP 0\n1 2 3 A\n500000 4000000 0 A\n"
    res = _read(text)
    assert res.global_shift is None
    np.testing.assert_allclose(res.polylines[0].vertices[1], [500000, 4000000, 0])


def test_shift_mode_never():
    res = _read("B S\nCP 1 0\nCP 0\n500000 0 0 A\n500001 0 0 A\n", params={"shift_mode": "never"})
    assert res.global_shift is None
    assert res.polylines[0].global_shift is None


def test_invalid_shift_mode_raises():
    with pytest.raises(ValueError):
        SinusxReader({"shift_mode": "sometimes"})


def test_default_sink_emits_warnings():
    with pytest.warns(SinusxWarning, match="corrupted"):
        res = read_sinusx("B S\nCP 1 0\nCP 0\n0 0 A\n0 0 0 A\n1 1 1 A\n")
    assert res.status is Status.MALFORMED


def test_reader_stages_progress_line_by_line():
    reader = SinusxReader(sink=DiagnosticLog(emit=False))
    reader.feed(1, "B N")
    assert reader._block.stage is Stage.CONNECTIVITY
    reader.feed(2, "CP 1 0")
    assert reader._block.stage is Stage.TYPE_HEADER
    reader.feed(3, "CP 4.0")
    assert reader._block.stage is Stage.BASE_PLANE
    reader.feed(4, "CP 0")
    assert reader._block.stage is Stage.VERTICES
    reader.feed(5, "0 0 4 A")
    reader.feed(6, "1 0 4 A")
    reader.finish()
    assert reader._block is None
    assert len(reader.polylines) == 1 and reader.polylines[0].const_altitude == 4.0


class _TinyBuffer(VertexBuffer):
    def append(self, point):
        if len(self) >= 3:
            raise MemoryError
        super().append(point)


def test_out_of_memory_keeps_finished_curves(monkeypatch):
    monkeypatch.setattr(reader_mod, "VertexBuffer", _TinyBuffer)
    text = (
        "B S\nCN first\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1 A\n"
        "B S\nCN second\nCP 1 0\nCP 0\n0 0 0 A\n1 1 1 A\n2 2 2 A\n3 3 3 A\n"
    )
    res = _read(text)
    assert res.status is Status.OUT_OF_MEMORY
    assert [p.name for p in res.polylines] == ["first"]


def test_warnings_point_at_the_calling_code():
    with pytest.warns(SinusxWarning) as record:
        read_sinusx("B S\nCP 1 0\nCP 0\n0 0 A\n0 0 0 A\n1 1 1 A\n")
    assert record[0].filename == __file__
