"""Tests for LutDocument parsing rules and status reporting."""

from __future__ import annotations

import io

import pytest

from cubelut.core.table import Table1D, Table3D, identity_table
from cubelut.core.types import ColorTriple, LutStatus, TableDim
from cubelut.errors import ExportError, ValidationError
from cubelut.io.cube import LutDocument


def _load(text: str) -> LutDocument:
    return LutDocument.loads(text)


class TestLifecycle:

    def test_new_document_not_initialized(self):
        """A fresh document has no table until something is loaded."""
        doc = LutDocument()
        assert doc.status == LutStatus.NOT_INITIALIZED
        assert not doc.ok
        with pytest.raises(ValidationError):
            doc.table

    def test_save_refuses_uninitialized(self):
        """Saving an empty document writes nothing and reports why."""
        buf = io.StringIO()
        assert LutDocument().save(buf) == LutStatus.NOT_INITIALIZED
        assert buf.getvalue() == ""

    def test_save_refuses_failed_load(self, make_cube, corner_rows):
        """A failed load is not serialized; save returns the load error."""
        doc = _load(make_cube(corner_rows, header=("LUT_3D_SIZE 1",)))
        buf = io.StringIO()
        assert doc.save(buf) == LutStatus.LUT_SIZE_OUT_OF_RANGE
        assert buf.getvalue() == ""
        with pytest.raises(ExportError):
            doc.dumps()

    def test_failed_reload_drops_table(self, corner_cube):
        """A bad reload replaces the previous good content with nothing."""
        doc = _load(corner_cube)
        assert doc.ok
        assert doc.load(io.StringIO("LUT_3D_SIZE 2\n0 0 0\n")) == LutStatus.PREMATURE_END_OF_FILE
        with pytest.raises(ValidationError):
            doc.table
        assert doc.title == ""

    def test_reload_replaces_document(self, corner_cube, make_cube):
        """Loading again resets title and dimension from the new input."""
        doc = _load(make_cube([(0, 0, 0)] * 4, header=('TITLE "one"', "LUT_1D_SIZE 4")))
        assert doc.dim == TableDim.ONE_D
        assert doc.load(io.StringIO(corner_cube)) == LutStatus.OK
        assert doc.dim == TableDim.THREE_D
        assert doc.title == ""

    def test_save_to_closed_stream(self, corner_cube):
        """Stream failures are reported without touching the document status."""
        doc = _load(corner_cube)
        buf = io.StringIO()
        buf.close()
        assert doc.save(buf) == LutStatus.WRITE_ERROR
        assert doc.status == LutStatus.OK

    def test_binary_streams(self, corner_cube):
        """Bytes in, bytes out."""
        doc = LutDocument()
        assert doc.load(io.BytesIO(corner_cube.encode())) == LutStatus.OK
        out = io.BytesIO()
        assert doc.save(out) == LutStatus.OK
        assert b"LUT_3D_SIZE 2\n" in out.getvalue()

    def test_from_table(self):
        """In-memory tables wrap into OK documents; bad domains and types are refused."""
        doc = LutDocument.from_table(identity_table(2), title="Made")
        assert doc.ok
        assert doc.size == 2
        with pytest.raises(ValidationError):
            LutDocument.from_table(identity_table(2), domain_min=(0, 2, 0))
        with pytest.raises(TypeError):
            LutDocument.from_table("not a table")

    def test_save_refuses_unwritable_title(self, corner_cube):
        """A title holding a quote or line break cannot be written back."""
        doc = _load(corner_cube)
        doc.title = 'a "quoted" word'
        buf = io.StringIO()
        assert doc.save(buf) == LutStatus.WRITE_ERROR
        assert buf.getvalue() == ""
        with pytest.raises(ExportError):
            doc.dumps()

    @pytest.mark.parametrize("title", ['x"y', "x\ny", "x\ry"])
    def test_from_table_rejects_unwritable_title(self, title):
        with pytest.raises(ValidationError):
            LutDocument.from_table(identity_table(2), title=title)


class TestKeywords:

    def test_defaults(self, corner_cube):
        """Without keywords the title is empty and the domain is the unit cube."""
        doc = _load(corner_cube)
        assert doc.status == LutStatus.OK
        assert doc.title == ""
        assert doc.domain_min == ColorTriple(0.0, 0.0, 0.0)
        assert doc.domain_max == ColorTriple(1.0, 1.0, 1.0)
        assert isinstance(doc.table, Table3D)
        assert doc.size == 2

    def test_title_verbatim(self, make_cube, corner_rows):
        """Title text is kept byte for byte, including spaces and #."""
        doc = _load(make_cube(corner_rows, header=('TITLE "  My # LUT  "', "LUT_3D_SIZE 2")))
        assert doc.title == "  My # LUT  "

    def test_title_missing_quote(self, make_cube, corner_rows):
        """A title must open with a double quote."""
        doc = _load(make_cube(corner_rows, header=("TITLE MyLut", "LUT_3D_SIZE 2")))
        assert doc.status == LutStatus.TITLE_MISSING_QUOTE

    def test_repeated_title(self, make_cube, corner_rows):
        """Each keyword may appear once."""
        doc = _load(make_cube(corner_rows, header=('TITLE "a"', 'TITLE "b"', "LUT_3D_SIZE 2")))
        assert doc.status == LutStatus.UNKNOWN_OR_REPEATED_KEYWORD

    def test_repeated_size(self, make_cube, corner_rows):
        doc = _load(make_cube(corner_rows, header=("LUT_3D_SIZE 4", "LUT_3D_SIZE 4")))
        assert doc.status == LutStatus.UNKNOWN_OR_REPEATED_KEYWORD

    def test_1d_and_3d_size_exclusive(self, make_cube, corner_rows):
        """The two size keywords share a single allowance."""
        doc = _load(make_cube(corner_rows, header=("LUT_1D_SIZE 8", "LUT_3D_SIZE 2")))
        assert doc.status == LutStatus.UNKNOWN_OR_REPEATED_KEYWORD

    def test_repeated_domain(self, make_cube, corner_rows):
        doc = _load(make_cube(
            corner_rows, header=("DOMAIN_MIN 0 0 0", "DOMAIN_MIN 0 0 0", "LUT_3D_SIZE 2"),
        ))
        assert doc.status == LutStatus.UNKNOWN_OR_REPEATED_KEYWORD

    def test_unknown_keyword(self, make_cube, corner_rows):
        """Unrecognized keywords stop the load."""
        doc = _load(make_cube(corner_rows, header=("LUT_3D_INPUT_RANGE 0 1", "LUT_3D_SIZE 2")))
        assert doc.status == LutStatus.UNKNOWN_OR_REPEATED_KEYWORD

    def test_domain_values(self, make_cube, corner_rows):
        doc = _load(make_cube(
            corner_rows, header=("DOMAIN_MIN -0.5 0 0.25", "DOMAIN_MAX 2 4 8", "LUT_3D_SIZE 2"),
        ))
        assert doc.ok
        assert doc.domain_min == ColorTriple(-0.5, 0.0, 0.25)
        assert doc.domain_max == ColorTriple(2.0, 4.0, 8.0)

    def test_domain_reversed(self, make_cube, corner_rows):
        doc = _load(make_cube(
            corner_rows, header=("DOMAIN_MIN 1 0 0", "DOMAIN_MAX 0 1 1", "LUT_3D_SIZE 2"),
        ))
        assert doc.status == LutStatus.DOMAIN_BOUNDS_REVERSED

    def test_domain_equal_is_reversed(self, make_cube, corner_rows):
        """Equal bounds on any channel count as reversed."""
        doc = _load(make_cube(
            corner_rows, header=("DOMAIN_MIN 0 0 1", "LUT_3D_SIZE 2"),
        ))
        assert doc.status == LutStatus.DOMAIN_BOUNDS_REVERSED

    def test_malformed_domain_number(self, make_cube, corner_rows):
        """Bad keyword numbers are read errors, not table errors."""
        doc = _load(make_cube(corner_rows, header=("DOMAIN_MIN 0 zero 0", "LUT_3D_SIZE 2")))
        assert doc.status == LutStatus.READ_ERROR

    def test_short_domain(self, make_cube, corner_rows):
        doc = _load(make_cube(corner_rows, header=("DOMAIN_MAX 1 1", "LUT_3D_SIZE 2")))
        assert doc.status == LutStatus.READ_ERROR

    def test_malformed_size(self, make_cube, corner_rows):
        """A size with no leading integer is a read error."""
        doc = _load(make_cube(corner_rows, header=("LUT_3D_SIZE two",)))
        assert doc.status == LutStatus.READ_ERROR

    @pytest.mark.parametrize("size, status", [
        (1, LutStatus.LUT_SIZE_OUT_OF_RANGE),
        (2, LutStatus.OK),
        (257, LutStatus.LUT_SIZE_OUT_OF_RANGE),
    ])
    def test_3d_size_bounds(self, make_cube, size, status):
        rows = [(0, 0, 0)] * 8 if size == 2 else []
        doc = _load(make_cube(rows, header=(f"LUT_3D_SIZE {size}",)))
        assert doc.status == status

    @pytest.mark.parametrize("keyword, size", [
        ("LUT_3D_SIZE", 256),
        ("LUT_1D_SIZE", 65536),
    ])
    def test_largest_size_accepted(self, keyword, size):
        """The size passes validation; parsing moves on to the (missing) rows."""
        doc = _load(f"{keyword} {size}\n")
        assert doc.status == LutStatus.PREMATURE_END_OF_FILE

    @pytest.mark.parametrize("token", ["2.0", "2x", "+2", "02"])
    def test_size_reads_leading_integer(self, make_cube, corner_rows, token):
        """Only the leading integer of the size token is read."""
        doc = _load(make_cube(corner_rows, header=(f"LUT_3D_SIZE {token}",)))
        assert doc.ok
        assert doc.size == 2

    def test_3d_size_256_loads(self):
        """The largest 3D table loads in full."""
        doc = _load("LUT_3D_SIZE 256\n" + "0.5 0.25 0.125\n" * 256 ** 3)
        assert doc.ok
        assert doc.size == 256
        assert doc.table.at(255, 0, 128) == ColorTriple(0.5, 0.25, 0.125)

    def test_1d_size_65536_loads(self):
        """The largest 1D table loads in full."""
        doc = _load("LUT_1D_SIZE 65536\n" + "0.5 0.5 0.5\n" * 65536)
        assert doc.ok
        assert doc.size == 65536

    @pytest.mark.parametrize("size, status", [
        (1, LutStatus.LUT_SIZE_OUT_OF_RANGE),
        (65537, LutStatus.LUT_SIZE_OUT_OF_RANGE),
    ])
    def test_1d_size_bounds(self, make_cube, size, status):
        doc = _load(make_cube([], header=(f"LUT_1D_SIZE {size}",)))
        assert doc.status == status

    def test_missing_size_declaration(self):
        """Keywords without a size give LUT_SIZE_OUT_OF_RANGE."""
        doc = _load("DOMAIN_MIN 0 0 0\nDOMAIN_MAX 1 1 1\n")
        assert doc.status == LutStatus.LUT_SIZE_OUT_OF_RANGE


class TestLines:

    def test_comments_and_blank_lines_skipped(self, corner_rows, make_cube):
        """Comments and blank lines are ignored in both sections."""
        header = ("# leading comment", "", "   ", 'TITLE "c"', "  # indented", "LUT_3D_SIZE 2", "")
        rows = corner_rows[:4] + [("#", "mid", "table")] + corner_rows[4:]
        text = make_cube(rows, header=header).replace("# mid table", "# mid-table comment")
        doc = _load(text)
        assert doc.ok
        assert doc.table.at(1, 1, 1) == ColorTriple(1.0, 1.0, 1.0)

    def test_crlf(self, corner_rows, make_cube):
        """CRLF input reads like LF input."""
        doc = _load(make_cube(corner_rows, header=('TITLE "dos"', "LUT_3D_SIZE 2"), sep="\r\n"))
        assert doc.ok
        assert doc.title == "dos"

    def test_legacy_cr(self, corner_rows, make_cube):
        """A lone CR is accepted as the line separator."""
        doc = _load(make_cube(corner_rows, header=('TITLE "mac"', "LUT_3D_SIZE 2"), sep="\r"))
        assert doc.ok
        assert doc.title == "mac"
        assert doc.table.at(1, 0, 0) == ColorTriple(1.0, 0.0, 0.0)

    def test_no_line_separator(self):
        """Input with no line break near the start is refused."""
        doc = _load("LUT_3D_SIZE 2 " + "x" * 300)
        assert doc.status == LutStatus.LINE_ERROR

    def test_empty_input(self):
        assert _load("").status == LutStatus.LINE_ERROR

    def test_separator_beyond_window(self):
        """The first line break must fall within the sniff window."""
        doc = _load("#" + " " * 300 + "\nLUT_3D_SIZE 2\n")
        assert doc.status == LutStatus.LINE_ERROR

    def test_data_token_heuristic(self, make_cube):
        """Rows may start with a sign or a dot."""
        rows = [("+0.5", "-0", ".25")] + [(0, 0, 0)] * 7
        doc = _load(make_cube(rows))
        assert doc.ok
        assert doc.table.at(0, 0, 0) == ColorTriple(0.5, 0.0, 0.25)


class TestTableData:

    def test_1d_rows(self, make_cube):
        """1D rows load in file order."""
        rows = [(i / 3, 0, 1 - i / 3) for i in range(4)]
        doc = _load(make_cube(rows, header=("LUT_1D_SIZE 4",)))
        assert doc.ok
        assert isinstance(doc.table, Table1D)
        assert doc.dim == TableDim.ONE_D
        assert doc.table.at(3).r == pytest.approx(1.0)

    def test_traversal_order(self, make_cube, tagged_rows_3):
        """File row b*N*N + g*N + r lands at table[r, g, b]."""
        doc = _load(make_cube(tagged_rows_3, header=("LUT_3D_SIZE 3",)))
        N = 3
        for r in range(N):
            for g in range(N):
                for b in range(N):
                    assert doc.table.at(r, g, b) == ColorTriple(*tagged_rows_3[b * N * N + g * N + r])

    def test_two_values_in_row(self, make_cube, corner_rows):
        """A row with too few values is a table error."""
        text = make_cube(corner_rows).replace("1.0 1.0 1.0", "1.0 1.0")
        assert _load(text).status == LutStatus.COULD_NOT_PARSE_TABLE_DATA

    def test_four_values_in_row(self, make_cube, corner_rows):
        text = make_cube(corner_rows).replace("1.0 1.0 1.0", "1.0 1.0 1.0 1.0")
        assert _load(text).status == LutStatus.COULD_NOT_PARSE_TABLE_DATA

    def test_bad_number_in_row(self, make_cube, corner_rows):
        """A non-numeric value in a row is a table error."""
        text = make_cube(corner_rows).replace("1.0 1.0 1.0", "1.0 one 1.0")
        assert _load(text).status == LutStatus.COULD_NOT_PARSE_TABLE_DATA

    def test_keyword_after_data(self, make_cube, corner_rows):
        """Keywords are not allowed once the table has started."""
        rows = corner_rows[:2] + [("LUT_3D_SIZE", "2", "")] + corner_rows[2:]
        assert _load(make_cube(rows)).status == LutStatus.COULD_NOT_PARSE_TABLE_DATA

    def test_premature_end(self, make_cube, corner_rows):
        """Running out of rows is reported as PREMATURE_END_OF_FILE."""
        assert _load(make_cube(corner_rows[:7])).status == LutStatus.PREMATURE_END_OF_FILE

    def test_trailing_content_ignored(self, make_cube, corner_rows):
        """Content after the last expected row is ignored."""
        assert _load(make_cube(corner_rows + [(9, 9, 9)])).ok

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e39"])
    def test_non_finite_row(self, make_cube, corner_rows, value):
        """Values that are not finite as float32 are table errors."""
        text = make_cube(corner_rows).replace("1.0 1.0 1.0", f"1.0 {value} 1.0")
        assert _load(text).status == LutStatus.COULD_NOT_PARSE_TABLE_DATA

    def test_bad_row_reported_before_missing_rows(self, make_cube, corner_rows):
        rows = corner_rows[:3] + [("0.5", "half", "0.5")]
        assert _load(make_cube(rows)).status == LutStatus.COULD_NOT_PARSE_TABLE_DATA
