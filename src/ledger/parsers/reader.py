"""Tabular reader for CSV and Excel exports.

Files are turned into a ``Grid``: rows of typed cells. Cell typing happens
once, here, so parsers and column inference never re-guess whether a value
was a spreadsheet date, a number or free text.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ledger.core.exceptions import StructuralError

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
CSV_EXTENSIONS = {".csv", ".txt", ".tsv"}

_PLAIN_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?$")


@dataclass(frozen=True)
class EmptyCell:
    is_empty = True

    @property
    def text(self) -> str:
        return ""


@dataclass(frozen=True)
class TextCell:
    value: str
    is_empty = False

    @property
    def text(self) -> str:
        return self.value


@dataclass(frozen=True)
class NumberCell:
    value: Decimal
    raw: str = ""
    is_empty = False

    @property
    def text(self) -> str:
        return self.raw or format(self.value, "f")


@dataclass(frozen=True)
class DateCell:
    value: date
    is_empty = False

    @property
    def text(self) -> str:
        return self.value.isoformat()


Cell = EmptyCell | TextCell | NumberCell | DateCell

EMPTY = EmptyCell()


def to_cell(value: Any) -> Cell:
    """Classify a raw value from csv or openpyxl into a cell."""
    if value is None:
        return EMPTY
    if isinstance(value, datetime):
        return DateCell(value.date())
    if isinstance(value, date):
        return DateCell(value)
    if isinstance(value, bool):
        return TextCell(str(value))
    if isinstance(value, (int, float, Decimal)):
        return NumberCell(Decimal(str(value)), raw=str(value))

    text = str(value).strip()
    if not text:
        return EMPTY
    if _PLAIN_NUMBER.match(text):
        try:
            return NumberCell(Decimal(text), raw=text)
        except InvalidOperation:
            pass
    return TextCell(text)


@dataclass
class Grid:
    """Rows of cells read from one file.

    ``kind`` is "csv" or "xlsx"; some bank formats only exist as one of them.
    """

    rows: list[list[Cell]]
    file_name: str | None = None
    kind: str = "csv"
    _width: int | None = field(default=None, repr=False)

    @classmethod
    def from_values(
        cls, rows: list[list[Any]], file_name: str | None = None, kind: str = "csv"
    ) -> "Grid":
        return cls([[to_cell(v) for v in row] for row in rows], file_name=file_name, kind=kind)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_excel(self) -> bool:
        return self.kind == "xlsx"

    @property
    def width(self) -> int:
        if self._width is None:
            self._width = max((len(row) for row in self.rows), default=0)
        return self._width

    def cell(self, row_index: int, column: int) -> Cell:
        if row_index >= len(self.rows) or column < 0:
            return EMPTY
        row = self.rows[row_index]
        return row[column] if column < len(row) else EMPTY

    def text(self, row_index: int, column: int) -> str:
        return self.cell(row_index, column).text.strip()


def is_empty_row(row: list[Cell]) -> bool:
    return all(cell.is_empty for cell in row)


def read_tabular(content: bytes, file_name: str) -> Grid:
    """Read CSV or Excel bytes into a Grid.

    Args:
        content: Raw file bytes
        file_name: Original file name; the extension selects the reader

    Returns:
        Grid with at least one row

    Raises:
        StructuralError: If the file cannot be read or contains no rows
    """
    suffix = Path(file_name or "").suffix.lower()

    if suffix == ".xls":
        raise StructuralError(
            "IMPORT_001",
            {"file_name": file_name},
            http_status=422,
            message="Legacy .xls files are not supported; save the file as .xlsx or CSV",
        )

    if suffix in EXCEL_EXTENSIONS:
        grid = _read_excel(content, file_name)
    else:
        grid = _read_csv(content, file_name)

    if not grid.rows:
        raise StructuralError(
            "IMPORT_001",
            {"file_name": file_name},
            http_status=422,
            message="File is empty or contains no data",
        )

    logger.info(
        "Read tabular file",
        extra={"kind": grid.kind, "rows": len(grid.rows), "columns": grid.width},
    )
    return grid


def _decode(content: bytes) -> str:
    # Bank exports are usually UTF-8 (sometimes with a BOM) or Windows-1252.
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")


def _read_csv(content: bytes, file_name: str) -> Grid:
    text = _decode(content)
    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
    except csv.Error:
        dialect = csv.excel

    rows: list[list[Cell]] = []
    try:
        for raw_row in csv.reader(io.StringIO(text), dialect):
            row = [to_cell(value) for value in raw_row]
            # Blank lines carry no data in CSV exports.
            if row and not is_empty_row(row):
                rows.append(row)
    except csv.Error as e:
        raise StructuralError(
            "IMPORT_001",
            {"file_name": file_name, "error_type": type(e).__name__},
            http_status=422,
            message="File could not be read as CSV",
        ) from e

    return Grid(rows, file_name=file_name, kind="csv")


def _read_excel(content: bytes, file_name: str) -> Grid:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        raise StructuralError(
            "IMPORT_001",
            {"file_name": file_name, "error_type": type(e).__name__},
            http_status=422,
            message="File could not be read as an Excel workbook",
        ) from e

    try:
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            return Grid([], file_name=file_name, kind="xlsx")

        rows: list[list[Cell]] = []
        for values in sheet.iter_rows(values_only=True):
            row = [to_cell(value) for value in values]
            while row and row[-1].is_empty:
                row.pop()
            # Spreadsheet row positions matter (fixed preambles), so blank
            # rows are kept as empty lists.
            rows.append(row)
    finally:
        workbook.close()

    while rows and not rows[-1]:
        rows.pop()
    return Grid(rows, file_name=file_name, kind="xlsx")
