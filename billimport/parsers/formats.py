"""Container routing: turn csv/xlsx/xls/docx bytes into comma-separated text.

Routing is by file extension first, then MIME type. Spreadsheet and Word
tables are flattened to one line per row with CSV quoting, so the
extractors only ever see delimited text.

Legacy Word (.doc) is rejected with conversion guidance.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path

import docx
import openpyxl
import xlrd
from docx.opc.exceptions import PackageNotFoundError
from openpyxl.utils.exceptions import InvalidFileException

from .base import EmptyFileError, UnreadableFileError, UnsupportedFormatError
from .decoding import MAX_INPUT_BYTES, decode_bytes

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 10000

SUPPORTED_EXTENSIONS = {"csv", "txt", "xlsx", "xls", "docx"}

SUPPORTED_MIME_TYPES = (
    "text/csv",
    "text/comma-separated-values",
    "application/csv",
    "text/plain",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

LEGACY_DOC_MESSAGE = (
    "Legacy Word (.doc) files are not supported; "
    "open the file and save it as .docx, then import again"
)


class ContainerKind(str, Enum):
    DELIMITED_TEXT = "text"
    XLSX = "xlsx"
    XLS = "xls"
    DOCX = "docx"
    LEGACY_DOC = "doc"


_EXTENSION_KINDS = {
    "csv": ContainerKind.DELIMITED_TEXT,
    "txt": ContainerKind.DELIMITED_TEXT,
    "xlsx": ContainerKind.XLSX,
    "xls": ContainerKind.XLS,
    "docx": ContainerKind.DOCX,
    "doc": ContainerKind.LEGACY_DOC,
}


@dataclass(frozen=True)
class RawDocument:
    """Bytes of one selected file plus what the picker told us about it."""
    data: bytes
    filename: str
    mime_type: str | None = None

    @classmethod
    def from_path(
        cls,
        path: Path | str,
        mime_type: str | None = None,
        max_bytes: int = MAX_INPUT_BYTES,
    ) -> RawDocument:
        """Read a file from disk; the handle is closed before returning.

        Delimited text is read only up to max_bytes (+1 so the decoder can
        tell it was truncated). Binary containers are read whole.

        Raises:
            UnreadableFileError: If the file cannot be opened or read.
        """
        path = Path(path)
        kind = resolve_container(path.name, mime_type)
        try:
            with open(path, "rb") as f:
                if kind is ContainerKind.DELIMITED_TEXT:
                    data = f.read(max_bytes + 1)
                else:
                    data = f.read()
        except OSError as e:
            raise UnreadableFileError(f"Could not open file {path.name}: {e}") from e
        return cls(data=data, filename=path.name, mime_type=mime_type)

    @property
    def extension(self) -> str:
        name = self.filename.rsplit("/", 1)[-1]
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[-1].lower()


@dataclass(frozen=True)
class NormalizedText:
    text: str
    container: ContainerKind
    encoding: str | None = None  # set for delimited text only


def resolve_container(filename: str, mime_type: str | None = None) -> ContainerKind:
    """Pick the container kind: extension first, then MIME, else text."""
    name = filename.rsplit("/", 1)[-1]
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext in _EXTENSION_KINDS:
        return _EXTENSION_KINDS[ext]

    mime = (mime_type or "").lower()
    if "csv" in mime or "comma-separated" in mime or mime == "text/plain":
        return ContainerKind.DELIMITED_TEXT
    if "spreadsheet" in mime or "excel" in mime:
        return ContainerKind.XLSX if "openxml" in mime else ContainerKind.XLS
    if "word" in mime:
        return ContainerKind.DOCX if "openxml" in mime else ContainerKind.LEGACY_DOC

    logger.debug("Unknown container for %s (%s); trying delimited text", filename, mime_type)
    return ContainerKind.DELIMITED_TEXT


def normalize_document(
    document: RawDocument,
    max_bytes: int = MAX_INPUT_BYTES,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> NormalizedText:
    """Route a document to its adapter and return comma-separated text.

    Raises:
        UnsupportedFormatError: Legacy .doc input.
        UnreadableFileError: Corrupt or unreadable container.
        EmptyFileError: The container holds no text.
    """
    kind = resolve_container(document.filename, document.mime_type)
    logger.info("Reading %s as %s", document.filename, kind.value)

    if kind is ContainerKind.LEGACY_DOC:
        raise UnsupportedFormatError(LEGACY_DOC_MESSAGE)

    encoding = None
    if kind is ContainerKind.DELIMITED_TEXT:
        decoded = decode_bytes(document.data, max_bytes=max_bytes)
        text, encoding = decoded.text, decoded.encoding
    elif kind is ContainerKind.XLSX:
        text = xlsx_to_text(document.data, max_rows=max_rows)
    elif kind is ContainerKind.XLS:
        text = xls_to_text(document.data, max_rows=max_rows)
    else:
        text = docx_to_text(document.data)

    if not text.strip():
        raise EmptyFileError(f"The {kind.value} file is empty")
    return NormalizedText(text=text, container=kind, encoding=encoding)


# ── Cell formatting ──────────────────────────────────────


def format_cell(value) -> str:
    """Render a spreadsheet cell the way it reads in the sheet."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def quote_cell(text: str) -> str:
    """CSV-quote a cell containing a comma or quote."""
    if "," in text or '"' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def _join_row(cells: list[str]) -> str | None:
    """Comma-join a row onto one line, or None when every cell is blank."""
    if not any(c.strip() for c in cells):
        return None
    return ",".join(quote_cell(" ".join(c.splitlines())) for c in cells)


# ── Adapters ─────────────────────────────────────────────


def xlsx_to_text(data: bytes, max_rows: int = DEFAULT_MAX_ROWS) -> str:
    """Flatten the first worksheet of an .xlsx workbook."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise UnreadableFileError(f"Could not read Excel workbook: {e}") from e

    lines: list[str] = []
    try:
        if not workbook.worksheets:
            return ""
        sheet = workbook.worksheets[0]
        for row_count, row in enumerate(sheet.iter_rows()):
            if row_count >= max_rows:
                logger.warning("Excel sheet exceeds %d rows; remaining rows ignored", max_rows)
                break
            cells = []
            for cell in row:
                try:
                    cells.append(format_cell(cell.value))
                except Exception:
                    logger.debug("Unreadable cell in row %d; using blank", row_count + 1)
                    cells.append("")
            line = _join_row(cells)
            if line is not None:
                lines.append(line)
    finally:
        workbook.close()
    return "\n".join(lines)


def xls_to_text(data: bytes, max_rows: int = DEFAULT_MAX_ROWS) -> str:
    """Flatten the first sheet of a legacy .xls workbook."""
    try:
        book = xlrd.open_workbook(file_contents=data)
    except (xlrd.XLRDError, OSError, ValueError) as e:
        raise UnreadableFileError(f"Could not read Excel workbook: {e}") from e

    lines: list[str] = []
    try:
        if book.nsheets == 0:
            return ""
        sheet = book.sheet_by_index(0)
        if sheet.nrows > max_rows:
            logger.warning("Excel sheet exceeds %d rows; remaining rows ignored", max_rows)
        for r in range(min(sheet.nrows, max_rows)):
            cells = []
            for c in range(sheet.ncols):
                try:
                    cells.append(_xls_cell_text(sheet.cell(r, c), book.datemode))
                except Exception:
                    logger.debug("Unreadable cell at (%d, %d); using blank", r + 1, c + 1)
                    cells.append("")
            line = _join_row(cells)
            if line is not None:
                lines.append(line)
    finally:
        book.release_resources()
    return "\n".join(lines)


def _xls_cell_text(cell, datemode: int) -> str:
    if cell.ctype == xlrd.XL_CELL_DATE:
        return format_cell(xlrd.xldate.xldate_as_datetime(cell.value, datemode))
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return ""
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return format_cell(bool(cell.value))
    return format_cell(cell.value)


def docx_to_text(data: bytes) -> str:
    """Paragraph text first, then every table row as a CSV line."""
    try:
        document = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise UnreadableFileError(f"Could not read Word document: {e}") from e

    lines: list[str] = []
    for paragraph in document.paragraphs:
        text = paragraph.text.strip()
        if text:
            lines.append(text)

    # Bills are usually laid out as a table
    for table in document.tables:
        for row in table.rows:
            cells = []
            previous = None
            for cell in row.cells:
                # A horizontally merged cell repeats once per grid column it spans
                if cell._tc is previous:
                    continue
                previous = cell._tc
                try:
                    cells.append(cell.text.strip())
                except Exception:
                    cells.append("")
            line = _join_row(cells)
            if line is not None:
                lines.append(line)
    return "\n".join(lines)
