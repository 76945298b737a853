"""Parser factory: the registry of statement formats.

This module ties the pieces together:
1. Detect the format of a grid using FormatDetector
2. Look up the parser class for a format id
3. Validate the grid against that format
4. Parse, only when validation passed
"""

import logging

from ledger.core.exceptions import UnknownFormatError
from ledger.parsers.base import BankParser
from ledger.parsers.custom import MAPPING_REQUIRED_ERROR, MappingParser
from ledger.parsers.detector import FormatDetector
from ledger.parsers.reader import Grid
from ledger.parsers.refinements import AmexParser, CIBCParser
from ledger.schemas.internal import ColumnMapping, FormatDetection, FormatMeta, ParseOutcome

logger = logging.getLogger(__name__)

# Registration order is detection tie-break order.
DEFAULT_PARSERS: dict[str, type[BankParser]] = {
    CIBCParser.format_id: CIBCParser,
    AmexParser.format_id: AmexParser,
    MappingParser.format_id: MappingParser,
}


class ParserFactory:
    """Registry of statement formats and their parsers.

    Example:
        >>> factory = ParserFactory()
        >>> detection = factory.detect(grid, "statement.csv")
        >>> outcome = factory.parse(grid, detection.format_id)
        >>> print(len(outcome.transactions), outcome.errors)
    """

    def __init__(self, detector: FormatDetector | None = None):
        self._parsers: dict[str, type[BankParser]] = dict(DEFAULT_PARSERS)
        self._owns_detector = detector is None
        self.detector = detector or FormatDetector(self._content_parsers())

    def _content_parsers(self) -> list[BankParser]:
        return [cls() for cls in self._parsers.values() if cls.detects_content]

    def register_parser(self, format_id: str, parser_class: type[BankParser]) -> None:
        """Register (or replace) the parser for a format id.

        Args:
            format_id: Format id (e.g., "CIBC")
            parser_class: Parser class (must inherit from BankParser)
        """
        if not isinstance(parser_class, type) or not issubclass(parser_class, BankParser):
            raise ValueError(f"Parser class must inherit from BankParser, got {parser_class}")

        self._parsers[format_id] = parser_class
        if self._owns_detector:
            self.detector.parsers = self._content_parsers()

    def unregister_parser(self, format_id: str) -> None:
        self._parsers.pop(format_id, None)
        if self._owns_detector:
            self.detector.parsers = self._content_parsers()

    def get_registered_formats(self) -> list[str]:
        return list(self._parsers.keys())

    def get_format_meta(self) -> list[FormatMeta]:
        return [cls.meta() for cls in self._parsers.values()]

    def create_parser(self, format_id: str, mapping: ColumnMapping | None = None) -> BankParser:
        """Instantiate the parser for ``format_id``.

        Raises:
            UnknownFormatError: If the format is not registered, or a
                mapping-driven format is requested without a mapping
        """
        parser_class = self._parsers.get(format_id)
        if parser_class is None:
            raise UnknownFormatError(
                "IMPORT_003",
                {"format_id": format_id},
                http_status=400,
                message=f"Unknown bank type: {format_id}",
            )
        if issubclass(parser_class, MappingParser):
            if mapping is None:
                raise UnknownFormatError(
                    "IMPORT_004", {"format_id": format_id}, http_status=400,
                    message=MAPPING_REQUIRED_ERROR,
                )
            return parser_class(mapping)
        return parser_class()

    def detect(self, grid: Grid, file_name: str | None = None) -> FormatDetection:
        return self.detector.detect(grid, file_name)

    def parse(
        self, grid: Grid, format_id: str, mapping: ColumnMapping | None = None
    ) -> ParseOutcome:
        """Validate ``grid`` as ``format_id`` and parse it if validation passes.

        A failed validation is returned (``is_valid=False``) rather than
        raised, so callers can fall back to another format or a mapping.
        """
        parser = self.create_parser(format_id, mapping)

        validation = parser.validate(grid)
        if not validation.is_valid:
            logger.info(
                "Format validation failed",
                extra={"format_id": format_id, "errors_count": len(validation.errors)},
            )
            return ParseOutcome(
                format_id=format_id,
                is_valid=False,
                errors=validation.errors,
                warnings=validation.warnings,
            )

        result = parser.parse(grid)
        logger.info(
            "Parse complete",
            extra={
                "format_id": format_id,
                "transactions_count": len(result.transactions),
                "errors_count": len(result.errors),
            },
        )
        return ParseOutcome(
            format_id=format_id,
            is_valid=True,
            transactions=result.transactions,
            errors=result.errors,
            warnings=validation.warnings,
        )


# Singleton factory instance for global use
_factory_instance: ParserFactory | None = None


def get_parser_factory() -> ParserFactory:
    """Get or create the global ParserFactory instance."""
    global _factory_instance
    if _factory_instance is None:
        _factory_instance = ParserFactory()
    return _factory_instance


def detect_format(grid: Grid, file_name: str | None = None) -> FormatDetection:
    """Convenience function to detect a format using the global factory."""
    return get_parser_factory().detect(grid, file_name)


def parse_grid(grid: Grid, format_id: str, mapping: ColumnMapping | None = None) -> ParseOutcome:
    """Convenience function to parse a grid using the global factory."""
    return get_parser_factory().parse(grid, format_id, mapping)
