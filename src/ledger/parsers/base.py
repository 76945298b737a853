"""Base class for bank export parsers.

Every supported format is one ``BankParser`` subclass. Subclasses provide
detection, validation and row parsing, and override only the small hooks
(``_parse_date``, ``_parse_amount``) where a bank writes values differently.
"""

from datetime import date
from decimal import Decimal

from ledger.parsers.reader import Cell, Grid, is_empty_row
from ledger.parsers.values import cell_amount, cell_date, to_cents
from ledger.schemas.internal import (
    CanonicalTransaction,
    Confidence,
    DetectionResult,
    FormatMeta,
    ParseResult,
    ValidationResult,
)

NO_TRANSACTIONS_ERROR = "No valid transactions found in file"


class BankParser:
    """Common behavior for statement export parsers.

    Contract:
        - ``detect`` never raises; it returns a verdict with a confidence.
        - ``validate`` inspects a small sample and decides whether the
          file can be parsed as this format at all.
        - ``parse`` only runs after ``validate`` passed. A malformed row
          contributes one "Row N: ..." error and is skipped.

    Example:
        >>> parser = CIBCParser()
        >>> if parser.validate(grid).is_valid:
        ...     result = parser.parse(grid)
    """

    format_id: str = ""
    name: str = ""
    description: str = ""
    file_types: tuple[str, ...] = ("csv", "xlsx")
    # Formats that can only be read with outside help (a column mapping)
    # do not take part in content detection.
    detects_content: bool = True

    # Validation looks at this many data rows
    VALIDATION_SAMPLE_ROWS = 10

    # Share of rows that must look right for each detection confidence
    HIGH_RATIO = 0.8
    MEDIUM_RATIO = 0.5
    LOW_RATIO = 0.2

    @classmethod
    def meta(cls) -> FormatMeta:
        return FormatMeta(
            id=cls.format_id,
            name=cls.name,
            description=cls.description,
            file_types=list(cls.file_types),
        )

    def detect(self, grid: Grid) -> DetectionResult:
        raise NotImplementedError

    def validate(self, grid: Grid) -> ValidationResult:
        raise NotImplementedError

    def parse(self, grid: Grid) -> ParseResult:
        raise NotImplementedError

    def _parse_date(self, cell: Cell) -> date:
        """Parse a date cell.

        Override in subclasses for bank-specific date formats.

        Raises:
            ValueError: If the cell is not a date in this format
        """
        parsed = cell_date(cell)
        if parsed is None:
            raise ValueError(f"Could not parse date: {cell.text}")
        return parsed

    def _parse_amount(self, cell: Cell) -> Decimal:
        """Parse an amount cell (blank is zero).

        Raises:
            ValueError: If the cell holds text that is not an amount
        """
        return cell_amount(cell)

    def _try_date(self, cell: Cell) -> date | None:
        try:
            return self._parse_date(cell)
        except ValueError:
            return None

    def _ratio_verdict(self, matched: int, total: int) -> DetectionResult:
        """Turn the share of rows that fit this format into a verdict."""
        if total == 0:
            return DetectionResult(detected=False, reason="No data rows to inspect")

        ratio = matched / total
        if ratio >= self.HIGH_RATIO:
            confidence = Confidence.HIGH
        elif ratio >= self.MEDIUM_RATIO:
            confidence = Confidence.MEDIUM
        elif ratio >= self.LOW_RATIO:
            confidence = Confidence.LOW
        else:
            return DetectionResult(
                detected=False,
                reason=f"Only {matched} of {total} rows match the {self.name} layout",
            )
        return DetectionResult(
            detected=True,
            confidence=confidence,
            reason=f"{matched} of {total} rows match the {self.name} layout",
        )

    def _sample_rows(self, grid: Grid, start: int = 0) -> list[int]:
        """Indexes of the first non-empty data rows, up to the sample size."""
        indexes = []
        for index in range(start, len(grid.rows)):
            if is_empty_row(grid.rows[index]):
                continue
            indexes.append(index)
            if len(indexes) >= self.VALIDATION_SAMPLE_ROWS:
                break
        return indexes

    def _sample_errors(
        self,
        sampled: int,
        *,
        column_issues: int,
        invalid_dates: int,
        missing_descriptions: int,
        min_columns: int,
        date_hint: str,
    ) -> list[str]:
        """Errors for a sample where more than half the rows are wrong."""
        errors = []
        half = sampled / 2
        if column_issues > half:
            errors.append(
                f"File has fewer columns than expected. Need at least {min_columns} "
                f"columns for {self.name} files"
            )
        if invalid_dates > half:
            errors.append(f"Date format doesn't match {self.name} format (expected: {date_hint})")
        if missing_descriptions > half:
            errors.append("Description column is empty on most rows")
        return errors

    @staticmethod
    def _row_error(row_number: int, message: str) -> str:
        return f"Row {row_number}: {message}"

    def _build(
        self,
        txn_date: date,
        description: str,
        amount_out: Decimal,
        amount_in: Decimal,
        match_field: str = "",
    ) -> CanonicalTransaction:
        return CanonicalTransaction(
            txn_date=txn_date,
            description=description,
            match_field=match_field,
            amount_out_cents=to_cents(amount_out),
            amount_in_cents=to_cents(amount_in),
            source_format=self.format_id,
        )

    @staticmethod
    def _finish(transactions: list[CanonicalTransaction], errors: list[str]) -> ParseResult:
        if not transactions and not errors:
            errors = [NO_TRANSACTIONS_ERROR]
        return ParseResult(transactions=transactions, errors=errors)
