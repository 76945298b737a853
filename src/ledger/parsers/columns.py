"""Column inference for files no dedicated parser recognizes.

Guesses whether the first row is a header, what kind of values each
column holds, which columns play the date / description / amount roles,
and which date grammar the date column uses. The result seeds the manual
column-mapping step; it is a suggestion, never applied silently.
"""

import re

from ledger.parsers.reader import Cell, Grid, TextCell
from ledger.parsers.values import detect_date_format, looks_like_amount, looks_like_date
from ledger.schemas.internal import (
    ColumnDetectionResult,
    ColumnMapping,
    ColumnType,
    Confidence,
    DetectedColumn,
)

SAMPLE_CELLS = 20

HEADER_KEYWORDS = (
    "date", "time", "desc", "description", "amount", "credit", "debit",
    "balance", "transaction", "memo", "category", "name", "type",
    "reference", "payee",
)

_DATE_HEADER = re.compile(r"date|time|posted", re.IGNORECASE)
_DESCRIPTION_HEADER = re.compile(
    r"desc|memo|detail|transaction|payee|merchant|name|particulars", re.IGNORECASE
)
_OUT_HEADER = re.compile(r"debit|withdraw|payment|\bout\b|spent|charge", re.IGNORECASE)
_OUT_EXCLUDE = re.compile(r"\bin\b|credit|deposit", re.IGNORECASE)
_IN_HEADER = re.compile(r"credit|deposit|income|\bin\b|received", re.IGNORECASE)
_IN_EXCLUDE = re.compile(r"\bout\b|debit|withdraw", re.IGNORECASE)
_AMOUNT_HEADER = re.compile(r"amount|value|sum", re.IGNORECASE)
# Running balances look like amounts but are never a transaction amount.
_IGNORED_HEADER = re.compile(r"balance|total", re.IGNORECASE)

_TYPE_THRESHOLDS = ((0.8, Confidence.HIGH), (0.5, Confidence.MEDIUM))


def detect_headers(grid: Grid) -> bool:
    """Decide whether row 1 is a header by comparing it with row 2.

    Header keywords in row 1 raise the score; row-1 cells that look like
    dates or amounts lower it. The header is assumed present only when the
    score is positive.
    """
    if len(grid.rows) < 2:
        return False

    first, second = grid.rows[0], grid.rows[1]
    score = 0
    for column in range(min(len(first), len(second))):
        cell = first[column]
        if cell.is_empty:
            continue
        if looks_like_date(cell) or looks_like_amount(cell):
            score -= 1
        elif any(keyword in cell.text.lower() for keyword in HEADER_KEYWORDS):
            score += 1
    return score > 0


def _looks_like_text(cell: Cell) -> bool:
    return (
        isinstance(cell, TextCell)
        and re.search(r"[^\W\d_]", cell.text) is not None
        and not looks_like_date(cell)
    )


def column_samples(grid: Grid, column: int, start_row: int = 0) -> list[Cell]:
    """First non-empty cells of a column, up to SAMPLE_CELLS."""
    samples = []
    for index in range(start_row, len(grid.rows)):
        cell = grid.cell(index, column)
        if cell.is_empty:
            continue
        samples.append(cell)
        if len(samples) >= SAMPLE_CELLS:
            break
    return samples


def analyze_column(grid: Grid, column: int, start_row: int = 0) -> DetectedColumn:
    samples = column_samples(grid, column, start_row)
    header = grid.text(0, column) if start_row > 0 else None
    detected = DetectedColumn(
        index=column,
        header=header or None,
        samples=[cell.text for cell in samples[:5]],
    )
    if not samples:
        return detected

    checks = (
        (ColumnType.DATE, looks_like_date),
        (ColumnType.AMOUNT, looks_like_amount),
        (ColumnType.TEXT, _looks_like_text),
    )
    for column_type, check in checks:
        ratio = sum(1 for cell in samples if check(cell)) / len(samples)
        for threshold, confidence in _TYPE_THRESHOLDS:
            if ratio >= threshold:
                detected.column_type = column_type
                detected.confidence = confidence
                return detected
    return detected


def _roles_from_headers(columns: list[DetectedColumn]) -> dict[str, int]:
    roles: dict[str, int] = {}
    used: set[int] = set()

    def claim(role: str, matches) -> None:
        for column in columns:
            if column.index in used or not column.header:
                continue
            if matches(column.header):
                roles[role] = column.index
                used.add(column.index)
                return

    claim("date", lambda h: _DATE_HEADER.search(h))
    claim("out", lambda h: _OUT_HEADER.search(h) and not _OUT_EXCLUDE.search(h))
    claim("in", lambda h: _IN_HEADER.search(h) and not _IN_EXCLUDE.search(h))
    if "out" not in roles and "in" not in roles:
        claim("amount", lambda h: _AMOUNT_HEADER.search(h) and not _IGNORED_HEADER.search(h))
    claim("description", lambda h: _DESCRIPTION_HEADER.search(h))
    return roles


def infer_columns(grid: Grid) -> ColumnDetectionResult:
    """Infer the layout of ``grid``.

    Roles come from header text first. Only roles the headers leave open
    fall back to column types and positions: the first date column, the
    first text column, and for amounts either one shared signed column or
    the first two amount columns as money out then money in.
    """
    has_headers = detect_headers(grid)
    start_row = 1 if has_headers else 0
    columns = [analyze_column(grid, column, start_row) for column in range(grid.width)]

    roles = _roles_from_headers(columns) if has_headers else {}
    used = set(roles.values())
    header_roles = set(roles)

    def first_of(column_type: ColumnType) -> int | None:
        for column in columns:
            if column.index in used or column.column_type is not column_type:
                continue
            if column.header and _IGNORED_HEADER.search(column.header):
                continue
            used.add(column.index)
            return column.index
        return None

    date_column = roles.get("date")
    if date_column is None:
        date_column = first_of(ColumnType.DATE)
    description_column = roles.get("description")
    if description_column is None:
        description_column = first_of(ColumnType.TEXT)

    signed = False
    amount_out = roles.get("out")
    amount_in = roles.get("in")
    positional = False
    if "amount" in roles:
        amount_out = amount_in = roles["amount"]
        signed = True
    elif amount_out is None and amount_in is None:
        first = first_of(ColumnType.AMOUNT)
        second = first_of(ColumnType.AMOUNT) if first is not None else None
        if first is not None and second is None:
            amount_out = amount_in = first
            signed = True
        elif first is not None:
            amount_out, amount_in = first, second
            positional = True
    elif amount_out is None:
        amount_out = first_of(ColumnType.AMOUNT)
    elif amount_in is None:
        amount_in = first_of(ColumnType.AMOUNT)

    date_format = None
    if date_column is not None:
        date_format = detect_date_format(column_samples(grid, date_column, start_row))

    if None in (date_column, description_column, amount_out, amount_in):
        confidence = Confidence.NONE
    elif positional:
        confidence = Confidence.LOW
    elif {"date", "description"} <= header_roles and not (signed and "amount" not in roles):
        confidence = Confidence.HIGH
    else:
        confidence = Confidence.MEDIUM

    return ColumnDetectionResult(
        has_headers=has_headers,
        columns=columns,
        date_column=date_column,
        description_column=description_column,
        amount_out_column=amount_out,
        amount_in_column=amount_in,
        date_format=date_format,
        signed_amount=signed,
        confidence=confidence,
    )


def suggest_mapping(result: ColumnDetectionResult) -> ColumnMapping | None:
    """Column mapping proposed from inference, or None if a role is missing."""
    required = (
        result.date_column,
        result.description_column,
        result.amount_out_column,
        result.amount_in_column,
    )
    if any(column is None for column in required):
        return None
    return ColumnMapping(
        date_column=result.date_column,
        description_column=result.description_column,
        amount_out_column=result.amount_out_column,
        amount_in_column=result.amount_in_column,
        has_headers=result.has_headers,
        date_format=result.date_format,
        use_negative_for_out=result.signed_amount,
    )
