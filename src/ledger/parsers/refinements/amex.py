"""American Express (Canada) Excel export parser.

Layout:
- Rows 1-12 are an account preamble; transactions start on row 13.
- Column A: date as "DD Mon. YYYY" (e.g., "16 Dec. 2025").
- Column C: description; column D: signed amount with "$".
- Column J: "Additional Information", a better match text when present.
- Payment rows leave column D empty: the (negative) amount moves to
  column C and the description to column I.

Sign convention: positive amounts are charges (money out), negative
amounts are payments and refunds (money in).
"""

import re
from datetime import date
from decimal import Decimal

from ledger.parsers.base import BankParser
from ledger.parsers.reader import Cell, DateCell, Grid, is_empty_row
from ledger.parsers.values import parse_date
from ledger.schemas.internal import DateFormat, DetectionResult, ParseResult, ValidationResult


class AmexParser(BankParser):
    """Parser for American Express statement workbooks."""

    format_id = "AMEX"
    name = "American Express"
    description = "AMEX Excel statement (transactions from row 13, dates like 16 Dec. 2025)"
    file_types = ("xlsx",)

    DATA_START_ROW = 12  # zero-based index of spreadsheet row 13
    MIN_COLUMNS = 4
    DATE_PATTERN = re.compile(r"^\d{1,2}\s+[A-Za-z]{3,4}\.?\s+\d{4}$")

    DATE_COLUMN = 0
    DESCRIPTION_COLUMN = 2
    AMOUNT_COLUMN = 3
    PAYMENT_DESCRIPTION_COLUMN = 8
    ADDITIONAL_INFO_COLUMN = 9

    def _parse_date(self, cell: Cell) -> date:
        """Parse AMEX dates ("16 Dec. 2025")."""
        if isinstance(cell, DateCell):
            return cell.value
        text = cell.text.strip()
        parsed = parse_date(text, DateFormat.DMON_Y) if self.DATE_PATTERN.match(text) else None
        if parsed is None:
            raise ValueError(f"Could not parse date: {text}")
        return parsed

    def _data_rows(self, grid: Grid) -> list[list[Cell]]:
        return [row for row in grid.rows[self.DATA_START_ROW:] if not is_empty_row(row)]

    def detect(self, grid: Grid) -> DetectionResult:
        if len(grid.rows) <= self.DATA_START_ROW:
            return DetectionResult(detected=False, reason="Too few rows for the AMEX layout")

        rows = self._data_rows(grid)
        matched = 0
        for row in rows:
            if self._try_date(row[0]) is None:
                continue
            if any("$" in cell.text for cell in row) or len(row) > 6:
                matched += 1
        return self._ratio_verdict(matched, len(rows))

    def validate(self, grid: Grid) -> ValidationResult:
        errors = []
        warnings = []

        if not grid.is_excel:
            errors.append("AMEX files must be in Excel format (.xlsx)")
        if len(grid.rows) <= self.DATA_START_ROW:
            errors.append(
                "File has too few rows for AMEX format (expected transactions from row 13)"
            )
            return ValidationResult(is_valid=False, errors=errors)

        sample = self._sample_rows(grid, start=self.DATA_START_ROW)
        if not sample:
            errors.append("No data rows found")
            return ValidationResult(is_valid=False, errors=errors)

        if len(grid.rows[sample[0]]) < self.MIN_COLUMNS:
            errors.append(
                f"Row {sample[0] + 1} has fewer than {self.MIN_COLUMNS} columns; "
                "expected Date, Date Processed, Description, Amount"
            )

        invalid_dates = missing_descriptions = missing_amounts = 0
        for index in sample:
            if self._try_date(grid.cell(index, self.DATE_COLUMN)) is None:
                invalid_dates += 1
            is_payment = grid.cell(index, self.AMOUNT_COLUMN).is_empty
            description_column = (
                self.PAYMENT_DESCRIPTION_COLUMN if is_payment else self.DESCRIPTION_COLUMN
            )
            if not grid.text(index, description_column):
                missing_descriptions += 1
            if is_payment and grid.cell(index, self.DESCRIPTION_COLUMN).is_empty:
                missing_amounts += 1

        errors.extend(
            self._sample_errors(
                len(sample),
                column_issues=0,
                invalid_dates=invalid_dates,
                missing_descriptions=missing_descriptions,
                min_columns=self.MIN_COLUMNS,
                date_hint="DD Mon. YYYY",
            )
        )
        if missing_amounts:
            warnings.append(f"{missing_amounts} sampled rows have no amount")
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def parse(self, grid: Grid) -> ParseResult:
        transactions = []
        errors = []

        for index in range(self.DATA_START_ROW, len(grid.rows)):
            if is_empty_row(grid.rows[index]):
                continue
            row_number = index + 1

            date_cell = grid.cell(index, self.DATE_COLUMN)
            if grid.cell(index, self.AMOUNT_COLUMN).is_empty:
                amount_cell = grid.cell(index, self.DESCRIPTION_COLUMN)
                description = grid.text(index, self.PAYMENT_DESCRIPTION_COLUMN)
                match_field = description
            else:
                amount_cell = grid.cell(index, self.AMOUNT_COLUMN)
                description = grid.text(index, self.DESCRIPTION_COLUMN)
                match_field = grid.text(index, self.ADDITIONAL_INFO_COLUMN) or description

            if date_cell.is_empty or not description:
                errors.append(self._row_error(row_number, "Missing date or description"))
                continue

            txn_date = self._try_date(date_cell)
            if txn_date is None:
                errors.append(self._row_error(row_number, f'Invalid date format "{date_cell.text}"'))
                continue

            try:
                amount = self._parse_amount(amount_cell)
            except ValueError:
                errors.append(self._row_error(row_number, f'Invalid amount "{amount_cell.text}"'))
                continue

            amount_out = amount if amount > 0 else Decimal("0")
            amount_in = -amount if amount < 0 else Decimal("0")
            transactions.append(
                self._build(txn_date, description, amount_out, amount_in, match_field=match_field)
            )

        return self._finish(transactions, errors)
