"""CIBC export parser.

CIBC account exports have no header row and four columns:
Date, Description, Money Out, Money In. Dates are MM/DD/YYYY (older
exports) or YYYY-MM-DD. Amounts are plain numbers without a currency sign,
each in its own column, and a row fills at most one of them. A file with a
header row or signed amounts belongs to the column-mapping path instead.
"""

from datetime import date
from decimal import Decimal

from ledger.parsers.base import BankParser
from ledger.parsers.columns import detect_headers
from ledger.parsers.reader import Cell, DateCell, Grid, is_empty_row
from ledger.parsers.values import parse_date_any
from ledger.schemas.internal import DateFormat, DetectionResult, ParseResult, ValidationResult


HEADER_REASON = "File has a header row; CIBC exports have none"


class CIBCParser(BankParser):
    """Parser for CIBC chequing and credit card CSV exports."""

    format_id = "CIBC"
    name = "CIBC"
    description = "CIBC export without headers: Date, Description, Money Out, Money In"
    file_types = ("csv", "xlsx")

    DATE_FORMATS = (DateFormat.MDY, DateFormat.ISO)
    MIN_COLUMNS = 4
    MAX_COLUMNS = 6

    DATE_COLUMN = 0
    DESCRIPTION_COLUMN = 1
    MONEY_OUT_COLUMN = 2
    MONEY_IN_COLUMN = 3

    def _parse_date(self, cell: Cell) -> date:
        """Parse CIBC dates (MM/DD/YYYY or YYYY-MM-DD)."""
        if isinstance(cell, DateCell):
            return cell.value
        parsed = parse_date_any(cell.text, self.DATE_FORMATS)
        if parsed is None:
            raise ValueError(f"Could not parse date: {cell.text}")
        return parsed

    def _amount_pair(self, row: list[Cell]) -> tuple[Decimal, Decimal] | None:
        """Money out and money in, or None when the cells break the CIBC layout.

        Each column is blank or an unsigned amount, and at most one of the two
        is non-zero. A signed amount next to a running balance fails here.
        """
        cells = (row[self.MONEY_OUT_COLUMN], row[self.MONEY_IN_COLUMN])
        # CIBC never prints a currency sign in the amount columns.
        if any("$" in cell.text for cell in cells):
            return None
        try:
            amount_out, amount_in = (self._parse_amount(cell) for cell in cells)
        except ValueError:
            return None
        if amount_out < 0 or amount_in < 0 or (amount_out and amount_in):
            return None
        return amount_out, amount_in

    def _looks_like_row(self, row: list[Cell]) -> bool:
        if not (self.MIN_COLUMNS <= len(row) <= self.MAX_COLUMNS):
            return False
        if self._try_date(row[self.DATE_COLUMN]) is None:
            return False
        if not row[self.DESCRIPTION_COLUMN].text.strip():
            return False
        return self._amount_pair(row) is not None

    def detect(self, grid: Grid) -> DetectionResult:
        if detect_headers(grid):
            return DetectionResult(detected=False, reason=HEADER_REASON)
        rows = [row for row in grid.rows if not is_empty_row(row)]
        matched = sum(1 for row in rows if self._looks_like_row(row))
        return self._ratio_verdict(matched, len(rows))

    def validate(self, grid: Grid) -> ValidationResult:
        sample = self._sample_rows(grid)
        if not sample:
            return ValidationResult(is_valid=False, errors=["No data rows found"])

        column_issues = invalid_dates = missing_descriptions = invalid_amounts = 0
        for index in sample:
            row = grid.rows[index]
            if len(row) < self.MIN_COLUMNS:
                column_issues += 1
            if self._try_date(grid.cell(index, self.DATE_COLUMN)) is None:
                invalid_dates += 1
            if not grid.text(index, self.DESCRIPTION_COLUMN):
                missing_descriptions += 1
            if len(row) >= self.MIN_COLUMNS and self._amount_pair(row) is None:
                invalid_amounts += 1

        errors = self._sample_errors(
            len(sample),
            column_issues=column_issues,
            invalid_dates=invalid_dates,
            missing_descriptions=missing_descriptions,
            min_columns=self.MIN_COLUMNS,
            date_hint="MM/DD/YYYY or YYYY-MM-DD",
        )
        if invalid_amounts > len(sample) / 2:
            errors.append(
                "Amount columns don't match CIBC format "
                "(expected one unsigned amount in Money Out or Money In)"
            )
        if detect_headers(grid):
            errors.append(HEADER_REASON)
        warnings = []
        if 0 < missing_descriptions <= len(sample) / 2:
            warnings.append(f"{missing_descriptions} sampled rows have no description")
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def parse(self, grid: Grid) -> ParseResult:
        transactions = []
        errors = []

        for index, row in enumerate(grid.rows):
            if is_empty_row(row):
                continue
            row_number = index + 1

            if len(row) < self.MIN_COLUMNS:
                errors.append(
                    self._row_error(row_number, f"Expected {self.MIN_COLUMNS} columns, found {len(row)}")
                )
                continue

            date_cell = row[self.DATE_COLUMN]
            description = row[self.DESCRIPTION_COLUMN].text.strip()
            if date_cell.is_empty or not description:
                errors.append(self._row_error(row_number, "Missing date or description"))
                continue

            txn_date = self._try_date(date_cell)
            if txn_date is None:
                errors.append(self._row_error(row_number, f'Invalid date format "{date_cell.text}"'))
                continue

            try:
                amount_out = abs(self._parse_amount(row[self.MONEY_OUT_COLUMN]))
                amount_in = abs(self._parse_amount(row[self.MONEY_IN_COLUMN]))
            except ValueError:
                errors.append(self._row_error(row_number, "Invalid amount"))
                continue

            transactions.append(self._build(txn_date, description, amount_out, amount_in))

        return self._finish(transactions, errors)
