"""Mapping-driven parser for exports from banks without a dedicated parser.

The user (or column inference) supplies a ``ColumnMapping`` naming which
columns hold the date, description and amounts.
"""

from decimal import Decimal

from ledger.parsers.base import BankParser
from ledger.parsers.reader import Cell, Grid, is_empty_row
from ledger.parsers.values import cell_date
from ledger.schemas.internal import (
    ColumnMapping,
    Confidence,
    DetectionResult,
    ParseResult,
    ValidationResult,
)

MAPPING_REQUIRED_ERROR = "Column mapping is required for custom imports"


class MappingParser(BankParser):
    """Parser driven entirely by a ColumnMapping.

    Sign conventions:
        - Separate in/out columns: both are read as absolute values.
        - One shared amount column: only accepted with
          ``use_negative_for_out``; negative values are money out and
          positive values are money in.
    """

    format_id = "CUSTOM"
    name = "Custom mapping"
    description = "Any CSV or Excel export, read through a user-defined column mapping"
    file_types = ("csv", "xlsx")
    detects_content = False

    def __init__(self, mapping: ColumnMapping | None = None):
        self.mapping = mapping

    def _parse_date(self, cell: Cell):
        parsed = cell_date(cell, self.mapping.date_format if self.mapping else None)
        if parsed is None:
            raise ValueError(f"Could not parse date: {cell.text}")
        return parsed

    def _first_data_row(self) -> int:
        return 1 if self.mapping and self.mapping.has_headers else 0

    def detect(self, grid: Grid) -> DetectionResult:
        if not any(not is_empty_row(row) for row in grid.rows):
            return DetectionResult(detected=False, reason="File has no rows")
        return DetectionResult(
            detected=True,
            confidence=Confidence.LOW,
            reason="Any tabular file can be imported with a column mapping",
        )

    def validate(self, grid: Grid) -> ValidationResult:
        mapping = self.mapping
        if mapping is None:
            return ValidationResult(is_valid=False, errors=[MAPPING_REQUIRED_ERROR])

        if mapping.shared_amount_column and not mapping.use_negative_for_out:
            return ValidationResult(
                is_valid=False,
                errors=[
                    "Money in and money out use the same column; mark the amount "
                    "as signed (negative for money out) to import it"
                ],
            )

        start = self._first_data_row()
        sample = self._sample_rows(grid, start=start)
        if not sample:
            if mapping.has_headers and grid.rows:
                message = "No data rows found (file only contains headers)"
            else:
                message = "No valid data rows found"
            return ValidationResult(is_valid=False, errors=[message])

        required = mapping.required_columns
        column_issues = invalid_dates = missing_descriptions = 0
        for index in sample:
            if len(grid.rows[index]) < required:
                column_issues += 1
            if self._try_date(grid.cell(index, mapping.date_column)) is None:
                invalid_dates += 1
            if not grid.text(index, mapping.description_column):
                missing_descriptions += 1

        errors = []
        warnings = []
        half = len(sample) / 2
        if column_issues > half:
            errors.append(
                f"File has fewer columns than expected. Need at least {required} "
                "columns for this mapping"
            )
        if invalid_dates > half:
            errors.append(
                f"Date column ({mapping.date_column + 1}) contains invalid dates; "
                "check the date column and date format"
            )
        if missing_descriptions > half:
            errors.append(
                f"Description column ({mapping.description_column + 1}) is empty on most rows"
            )
        elif missing_descriptions:
            warnings.append(f"{missing_descriptions} sampled rows have no description")
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def _amounts(self, grid: Grid, index: int) -> tuple[Decimal, Decimal]:
        mapping = self.mapping
        if mapping.shared_amount_column and mapping.use_negative_for_out:
            value = self._parse_amount(grid.cell(index, mapping.amount_out_column))
            if value < 0:
                return -value, Decimal("0")
            return Decimal("0"), value

        amount_out = abs(self._parse_amount(grid.cell(index, mapping.amount_out_column)))
        amount_in = abs(self._parse_amount(grid.cell(index, mapping.amount_in_column)))
        return amount_out, amount_in

    def _match_field(self, grid: Grid, index: int, description: str) -> str:
        parts = [grid.text(index, column) for column in self.mapping.match_field_columns]
        joined = " ".join(part for part in parts if part)
        return joined or description

    def parse(self, grid: Grid) -> ParseResult:
        if self.mapping is None:
            return ParseResult(errors=[MAPPING_REQUIRED_ERROR])

        mapping = self.mapping
        transactions = []
        errors = []

        for index in range(self._first_data_row(), len(grid.rows)):
            if is_empty_row(grid.rows[index]):
                continue
            row_number = index + 1

            date_cell = grid.cell(index, mapping.date_column)
            description = grid.text(index, mapping.description_column)
            if date_cell.is_empty or not description:
                errors.append(self._row_error(row_number, "Missing date or description"))
                continue

            txn_date = self._try_date(date_cell)
            if txn_date is None:
                errors.append(self._row_error(row_number, f'Invalid date format "{date_cell.text}"'))
                continue

            try:
                amount_out, amount_in = self._amounts(grid, index)
            except ValueError:
                errors.append(self._row_error(row_number, "Invalid amount"))
                continue

            transactions.append(
                self._build(
                    txn_date,
                    description,
                    amount_out,
                    amount_in,
                    match_field=self._match_field(grid, index, description),
                )
            )

        return self._finish(transactions, errors)
