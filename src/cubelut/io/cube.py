""".cube LUT document: parsing and serialization.

The text format::

    [TITLE "<text>"]
    [DOMAIN_MIN <r> <g> <b>]
    [DOMAIN_MAX <r> <g> <b>]
    (LUT_1D_SIZE <n> | LUT_3D_SIZE <n>)
    <n or n^3 rows of "r g b">

3D rows are written with R varying fastest (blue outermost, red innermost).
Lines end with LF, CRLF, or a lone CR; the separator is sniffed from the
start of the input.

Parsing never raises for file defects: ``LutDocument.load`` returns a
``LutStatus`` and the first error encountered is terminal.
"""

from __future__ import annotations

import io
import logging
import math
import re
from pathlib import Path
from typing import IO, Iterator, Optional, Sequence, Union

import numpy as np

from cubelut import __version__
from cubelut.config import (
    COMMENT_MARKER,
    CREATED_BY,
    DEFAULT_DOMAIN_MAX,
    DEFAULT_DOMAIN_MIN,
    KW_DOMAIN_MAX,
    KW_DOMAIN_MIN,
    KW_LUT_1D_SIZE,
    KW_LUT_3D_SIZE,
    KW_TITLE,
    LINE_SNIFF_WINDOW,
    LUT_EXTENSIONS,
    MAX_1D_SIZE,
    MAX_3D_SIZE,
    MIN_LUT_SIZE,
    QUOTE,
    TEXT_ENCODING,
)
from cubelut.core.table import Table, Table1D, Table3D
from cubelut.core.types import ColorTriple, LutStatus, TableDim
from cubelut.errors import ExportError, LUTFormatError, ValidationError

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"[+-]?[0-9]+")
_TITLE_FORBIDDEN = (QUOTE, "\r", "\n")
# Rows formatted per write call
_SAVE_CHUNK_ROWS = 65536


class _ParseFailure(Exception):
    """Internal: stops a parse with a terminal status."""

    def __init__(self, status: LutStatus):
        super().__init__(status.name)
        self.status = status


def _sniff_line_separator(text: str) -> Optional[str]:
    """Find the record separator within the first LINE_SNIFF_WINDOW chars.

    Returns "\\n" for LF and CRLF input, "\\r" for a lone CR, None if no
    line terminator appears in the window.
    """
    window = text[:LINE_SNIFF_WINDOW]
    for i, ch in enumerate(window):
        if ch == "\n":
            return "\n"
        if ch == "\r":
            if text[i + 1:i + 2] == "\n":
                return "\n"
            return "\r"
    return None


class _LineReader:
    """Record reader with one line of lookahead.

    Records are cut from the text as they are read. Blank lines and comment
    lines are skipped and never returned.
    """

    def __init__(self, text: str, separator: str):
        self._text = text
        self._sep = separator
        self._pos = 0
        self._last = 0

    def _next_record(self) -> Optional[str]:
        if self._pos > len(self._text):
            return None
        end = self._text.find(self._sep, self._pos)
        if end < 0:
            end = len(self._text)
        record = self._text[self._pos:end]
        self._pos = end + len(self._sep)
        return record

    def next_line(self) -> Optional[str]:
        """Next content line, stripped, or None at end of input."""
        while True:
            start = self._pos
            record = self._next_record()
            if record is None:
                return None
            line = record.strip()
            if line and not line.startswith(COMMENT_MARKER):
                self._last = start
                return line

    def push_back(self) -> None:
        """Un-read the line last returned by next_line."""
        self._pos = self._last

    def lines(self) -> Iterator[str]:
        """Remaining content lines."""
        while True:
            line = self.next_line()
            if line is None:
                return
            yield line


def _is_data_token(token: str) -> bool:
    # Tokens sorting between "+" and ":" start a data row (digit, "+", ",",
    # "-", "."). Also true for e.g. ".TITLE"; kept for compatibility.
    return "+" < token < ":"


def _parse_float32(token: str) -> float:
    with np.errstate(over="ignore"):
        value = float(np.float32(float(token)))
    if not math.isfinite(value):
        raise ValueError(f"Non-finite value: {token!r}")
    return value


def _parse_keyword_triple(tokens: Sequence[str]) -> ColorTriple:
    if len(tokens) < 4:
        raise _ParseFailure(LutStatus.READ_ERROR)
    try:
        return ColorTriple(*(_parse_float32(t) for t in tokens[1:4]))
    except ValueError:
        raise _ParseFailure(LutStatus.READ_ERROR)


def _parse_keyword_size(tokens: Sequence[str], limit: int) -> int:
    # Leading integer only: "2.0" reads as 2, "x2" is a read error
    match = _LEADING_INT.match(tokens[1]) if len(tokens) >= 2 else None
    if match is None:
        raise _ParseFailure(LutStatus.READ_ERROR)
    size = int(match.group())
    if not MIN_LUT_SIZE <= size <= limit:
        raise _ParseFailure(LutStatus.LUT_SIZE_OUT_OF_RANGE)
    return size


def _parse_title(line: str) -> str:
    rest = line[len(KW_TITLE):].lstrip()
    if not rest.startswith(QUOTE):
        raise _ParseFailure(LutStatus.TITLE_MISSING_QUOTE)
    # Verbatim up to the closing quote, or to end of line if it is missing
    return rest[1:].split(QUOTE, 1)[0]


def _read_rows(reader: _LineReader, count: int) -> np.ndarray:
    """Read ``count`` rows of exactly three finite numbers as float32.

    Raises _ParseFailure with COULD_NOT_PARSE_TABLE_DATA for a malformed or
    non-finite row, PREMATURE_END_OF_FILE if the input runs out first.
    """
    if reader.next_line() is None:
        raise _ParseFailure(LutStatus.PREMATURE_END_OF_FILE)
    reader.push_back()

    try:
        rows = np.loadtxt(
            reader.lines(), dtype=np.float64, comments=None,
            ndmin=2, max_rows=count,
        )
    except ValueError as e:
        logger.debug("Bad table row: %s", e)
        raise _ParseFailure(LutStatus.COULD_NOT_PARSE_TABLE_DATA)
    if rows.shape[1] != 3:
        raise _ParseFailure(LutStatus.COULD_NOT_PARSE_TABLE_DATA)

    with np.errstate(over="ignore"):
        rows = rows.astype(np.float32)
    if not np.all(np.isfinite(rows)):
        raise _ParseFailure(LutStatus.COULD_NOT_PARSE_TABLE_DATA)
    if rows.shape[0] < count:
        raise _ParseFailure(LutStatus.PREMATURE_END_OF_FILE)
    return rows


def _format_rows(rows: np.ndarray, precision: Optional[int]) -> str:
    """(M, 3) values as newline-terminated "r g b" lines.

    With no precision each value is the shortest text that reproduces its
    float32 exactly; otherwise fixed decimals.
    """
    if precision is None:
        text = np.asarray(rows, dtype=np.float32).astype(str)
    else:
        text = np.char.mod(f"%.{precision}f", np.asarray(rows, dtype=np.float32))
    lines = np.char.add(
        np.char.add(np.char.add(text[:, 0], " "), np.char.add(text[:, 1], " ")),
        text[:, 2],
    )
    return "\n".join(lines.tolist()) + "\n"


def _title_error(title: str) -> Optional[str]:
    """Why ``title`` cannot be written on a TITLE line, or None."""
    for ch in _TITLE_FORBIDDEN:
        if ch in title:
            return f"Title may not contain {ch!r}: {title!r}"
    return None


class LutDocument:
    """A .cube LUT: title, domain bounds, and one 1D or 3D table.

    A new document is NOT_INITIALIZED. ``load`` replaces the whole document;
    on failure the table is dropped and ``status`` holds the first error.
    """

    def __init__(self):
        self.title: str = ""
        self.domain_min = ColorTriple(*DEFAULT_DOMAIN_MIN)
        self.domain_max = ColorTriple(*DEFAULT_DOMAIN_MAX)
        self._table: Optional[Table] = None
        self._status = LutStatus.NOT_INITIALIZED

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_cube_file(cls, filepath: Union[str, Path]) -> "LutDocument":
        """Load a .cube file.

        Raises:
            FileNotFoundError: If the file does not exist.
            LUTFormatError: If the file cannot be read or parsed.
        """
        path = Path(filepath)
        if not path.is_file():
            raise FileNotFoundError(f"LUT file not found: {path}")
        if path.suffix.lower() not in LUT_EXTENSIONS:
            logger.debug("Unexpected LUT extension %r for %s", path.suffix, path)

        doc = cls()
        # Binary mode: text mode would translate lone CR separators
        with open(path, "rb") as f:
            status = doc.load(f)
        if status != LutStatus.OK:
            logger.warning("Failed to parse %s: %s", path, status.name)
            raise LUTFormatError(
                f"Could not parse {path}: {status.name}", status=status
            )
        return doc

    @classmethod
    def loads(cls, text: str) -> "LutDocument":
        """Parse a document from a string; check ``status`` for the result."""
        doc = cls()
        doc.load(io.StringIO(text, newline=""))
        return doc

    @classmethod
    def from_table(
        cls,
        table: Table,
        title: str = "",
        domain_min: Sequence[float] = DEFAULT_DOMAIN_MIN,
        domain_max: Sequence[float] = DEFAULT_DOMAIN_MAX,
    ) -> "LutDocument":
        """Wrap an in-memory table in an OK document.

        Raises:
            ValidationError: If the domain is reversed on any channel, or
                the title holds a double quote or line break.
            TypeError: If ``table`` is not a Table1D or Table3D.
        """
        if not isinstance(table, (Table1D, Table3D)):
            raise TypeError(f"Unsupported table type: {type(table).__name__}")
        problem = _title_error(title)
        if problem:
            raise ValidationError(problem)
        dmin = ColorTriple.from_sequence([float(np.float32(v)) for v in domain_min])
        dmax = ColorTriple.from_sequence([float(np.float32(v)) for v in domain_max])
        if not _domain_ordered(dmin, dmax):
            raise ValidationError(f"Domain bounds reversed: {dmin} >= {dmax}")
        doc = cls()
        doc.title = title
        doc.domain_min = dmin
        doc.domain_max = dmax
        doc._table = table
        doc._status = LutStatus.OK
        return doc

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def status(self) -> LutStatus:
        return self._status

    @property
    def ok(self) -> bool:
        return self._status == LutStatus.OK

    @property
    def table(self) -> Table:
        if self._table is None:
            raise ValidationError(f"Document holds no table ({self._status.name})")
        return self._table

    @property
    def dim(self) -> TableDim:
        table = self.table
        if isinstance(table, Table1D):
            return TableDim.ONE_D
        if isinstance(table, Table3D):
            return TableDim.THREE_D
        raise TypeError(f"Unsupported table type: {type(table).__name__}")

    @property
    def size(self) -> int:
        """Edge length of a 3D table, row count of a 1D table."""
        return self.table.size

    def __repr__(self) -> str:
        if self._table is None:
            return f"LutDocument(status={self._status.name})"
        return (
            f"LutDocument(title={self.title!r}, dim={self.dim.value}, "
            f"size={self.size}, status={self._status.name})"
        )

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self, stream: IO) -> LutStatus:
        """Parse a .cube document from a text or binary stream.

        The whole document is replaced. Returns the resulting status; any
        value other than OK leaves the document without a table.
        """
        self.title = ""
        self.domain_min = ColorTriple(*DEFAULT_DOMAIN_MIN)
        self.domain_max = ColorTriple(*DEFAULT_DOMAIN_MAX)
        self._table = None
        self._status = LutStatus.OK

        try:
            data = stream.read()
            # utf-8-sig drops a leading byte order mark
            text = data.decode("utf-8-sig") if isinstance(data, bytes) else data
            self._parse(text)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Read failed: %s", e)
            self._status = LutStatus.READ_ERROR
        except _ParseFailure as e:
            self._status = e.status

        # _parse commits fields only on success
        if self._status != LutStatus.OK:
            logger.debug("Load stopped: %s", self._status.name)
        else:
            logger.info(
                "Loaded %s LUT (size %d)%s",
                self.dim.value, self.size,
                f" {self.title!r}" if self.title else "",
            )
        return self._status

    def _parse(self, text: str) -> None:
        separator = _sniff_line_separator(text)
        if separator is None:
            raise _ParseFailure(LutStatus.LINE_ERROR)
        if separator == "\r":
            logger.debug("Input uses legacy CR line separator")
        reader = _LineReader(text, separator)

        title = ""
        domain_min = ColorTriple(*DEFAULT_DOMAIN_MIN)
        domain_max = ColorTriple(*DEFAULT_DOMAIN_MAX)
        table: Optional[Table] = None
        seen = set()

        while True:
            line = reader.next_line()
            if line is None:
                break
            tokens = line.split()
            keyword = tokens[0]

            if _is_data_token(keyword):
                reader.push_back()
                break

            # 1D and 3D sizes share one allowance
            slot = "SIZE" if keyword in (KW_LUT_1D_SIZE, KW_LUT_3D_SIZE) else keyword
            if slot in seen:
                raise _ParseFailure(LutStatus.UNKNOWN_OR_REPEATED_KEYWORD)

            if keyword == KW_TITLE:
                title = _parse_title(line)
            elif keyword == KW_DOMAIN_MIN:
                domain_min = _parse_keyword_triple(tokens)
            elif keyword == KW_DOMAIN_MAX:
                domain_max = _parse_keyword_triple(tokens)
            elif keyword == KW_LUT_1D_SIZE:
                table = Table1D(_parse_keyword_size(tokens, MAX_1D_SIZE))
            elif keyword == KW_LUT_3D_SIZE:
                table = Table3D(_parse_keyword_size(tokens, MAX_3D_SIZE))
            else:
                raise _ParseFailure(LutStatus.UNKNOWN_OR_REPEATED_KEYWORD)
            seen.add(slot)

        if table is None:
            raise _ParseFailure(LutStatus.LUT_SIZE_OUT_OF_RANGE)
        if not _domain_ordered(domain_min, domain_max):
            raise _ParseFailure(LutStatus.DOMAIN_BOUNDS_REVERSED)

        if isinstance(table, Table1D):
            count = table.size
        elif isinstance(table, Table3D):
            count = table.size ** 3
        else:
            raise TypeError(f"Unsupported table type: {type(table).__name__}")

        rows = _read_rows(reader, count)

        if isinstance(table, Table1D):
            table = Table1D.from_array(rows)
        else:
            table = Table3D.from_rows(rows, table.size)

        self.title = title
        self.domain_min = domain_min
        self.domain_max = domain_max
        self._table = table

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, stream: IO, precision: Optional[int] = None) -> LutStatus:
        """Serialize to a text or binary stream.

        A document that is not OK is not written; its status is returned
        unchanged. Returns WRITE_ERROR if the stream fails or the title
        cannot be written back as one quoted line, else OK.

        Args:
            stream: Writable stream.
            precision: Fixed decimal places for values. None writes the
                shortest text that reproduces each float32 exactly.
        """
        if self._status != LutStatus.OK:
            return self._status
        problem = _title_error(self.title)
        if problem:
            logger.warning("Not writing LUT: %s", problem)
            return LutStatus.WRITE_ERROR

        if isinstance(stream, (io.RawIOBase, io.BufferedIOBase)):
            write = lambda s: stream.write(s.encode(TEXT_ENCODING))
        else:
            write = stream.write

        table = self.table
        if isinstance(table, Table1D):
            header = f"{KW_LUT_1D_SIZE} {table.size}\n"
            rows = table.array
        elif isinstance(table, Table3D):
            header = f"{KW_LUT_3D_SIZE} {table.size}\n"
            rows = table.flat_rows()
        else:
            raise TypeError(f"Unsupported table type: {type(table).__name__}")

        try:
            if self.title:
                write(f"{KW_TITLE} {QUOTE}{self.title}{QUOTE}\n")
            write(f"{COMMENT_MARKER} {CREATED_BY} {__version__}\n")
            write(f"{KW_DOMAIN_MIN} " + _format_rows([list(self.domain_min)], precision))
            write(f"{KW_DOMAIN_MAX} " + _format_rows([list(self.domain_max)], precision))
            write(header)
            for start in range(0, len(rows), _SAVE_CHUNK_ROWS):
                write(_format_rows(rows[start:start + _SAVE_CHUNK_ROWS], precision))
            stream.flush()
        except (OSError, ValueError) as e:
            logger.warning("Failed to write LUT: %s", e)
            return LutStatus.WRITE_ERROR
        return LutStatus.OK

    def dumps(self, precision: Optional[int] = None) -> str:
        """Serialize to a string.

        Raises:
            ExportError: If the document is not OK.
        """
        buf = io.StringIO()
        status = self.save(buf, precision=precision)
        if status != LutStatus.OK:
            raise ExportError(f"Cannot serialize document: {status.name}")
        return buf.getvalue()

    def to_cube_file(self, filepath: Union[str, Path], precision: Optional[int] = None) -> Path:
        """Write the document to a .cube file.

        Raises:
            ExportError: If the document is not OK, its title cannot be
                written, or the write fails.
        """
        path = Path(filepath)
        if self._status != LutStatus.OK:
            raise ExportError(f"Cannot save document: {self._status.name}")
        problem = _title_error(self.title)
        if problem:
            raise ExportError(problem)
        try:
            f = open(path, "w", encoding=TEXT_ENCODING, newline="\n")
        except OSError as e:
            raise ExportError(f"Cannot open {path} for writing: {e}") from e
        with f:
            status = self.save(f, precision=precision)
        if status != LutStatus.OK:
            raise ExportError(f"Failed to write {path}: {status.name}")
        logger.info("Saved %s LUT (size %d) to %s", self.dim.value, self.size, path)
        return path


def _domain_ordered(dmin: ColorTriple, dmax: ColorTriple) -> bool:
    return dmin.r < dmax.r and dmin.g < dmax.g and dmin.b < dmax.b


# ---------------------------------------------------------------------------
# Array-level convenience
# ---------------------------------------------------------------------------

def read_cube(filepath: Union[str, Path]) -> tuple[np.ndarray, dict]:
    """Read a .cube file into an array.

    Returns:
        (array, meta): array is (N, N, N, 3) indexed [r, g, b, ch] for 3D
        tables or (N, 3) for 1D tables. meta holds size, dim, title,
        domain_min and domain_max.

    Raises:
        FileNotFoundError: If the file does not exist.
        LUTFormatError: If the file cannot be parsed.
    """
    doc = LutDocument.from_cube_file(filepath)
    meta = {
        "size": doc.size,
        "dim": doc.dim,
        "title": doc.title,
        "domain_min": list(doc.domain_min),
        "domain_max": list(doc.domain_max),
    }
    return np.array(doc.table.array), meta


def write_cube(
    filepath: Union[str, Path],
    lut: np.ndarray,
    title: str = "",
    domain_min: Sequence[float] = DEFAULT_DOMAIN_MIN,
    domain_max: Sequence[float] = DEFAULT_DOMAIN_MAX,
    precision: Optional[int] = None,
) -> Path:
    """Write an (N, 3) or (N, N, N, 3) array as a .cube file.

    Raises:
        ExportError: If the array shape, size, or domain is invalid, or
            the write fails.
    """
    lut = np.asarray(lut)
    try:
        if lut.ndim == 2:
            table = Table1D.from_array(lut)
        elif lut.ndim == 4:
            table = Table3D.from_array(lut)
        else:
            raise ValueError(f"Expected (N, 3) or (N, N, N, 3) array, got {lut.shape}")
        if not np.all(np.isfinite(table.array)):
            raise ValueError("Non-finite values in LUT")
        doc = LutDocument.from_table(table, title, domain_min, domain_max)
    except (ValueError, ValidationError) as e:
        raise ExportError(str(e)) from e
    return doc.to_cube_file(filepath, precision=precision)
