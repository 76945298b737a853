"""Statement format detection.

Every content-detecting parser looks at the grid independently; the most
confident positive verdict wins. When no parser claims the file, the file
name is checked against known export names, and failing that the file is
routed to manual column mapping.
"""

import logging
import re
from pathlib import Path

from ledger.parsers.base import BankParser
from ledger.parsers.reader import Grid
from ledger.parsers.refinements import AmexParser, CIBCParser
from ledger.schemas.internal import Confidence, FormatCandidate, FormatDetection

logger = logging.getLogger(__name__)

NO_FORMAT_REASON = "Could not determine bank type from file contents or filename"


class FormatDetector:
    """Picks the statement format of a grid.

    Ties between equally confident parsers go to the one registered first.

    Example:
        >>> detector = FormatDetector()
        >>> detection = detector.detect(grid, "cibc-january.csv")
        >>> if detection.requires_mapping:
        ...     print("Ask the user to map columns")
    """

    # File name patterns (case-insensitive), checked only when no parser
    # recognizes the contents.
    FILENAME_PATTERNS = {
        "CIBC": [r"cibc"],
        "AMEX": [r"^summary", r"amex"],
    }

    def __init__(self, parsers: list[BankParser] | None = None):
        self.parsers = parsers if parsers is not None else [CIBCParser(), AmexParser()]
        self._compiled_patterns: dict[str, list[re.Pattern]] = {}
        for format_id, patterns in self.FILENAME_PATTERNS.items():
            self._compiled_patterns[format_id] = [
                re.compile(pattern, re.IGNORECASE) for pattern in patterns
            ]

    def detect(self, grid: Grid, file_name: str | None = None) -> FormatDetection:
        results = []
        best_format: str | None = None
        best_confidence = Confidence.NONE
        best_reason = ""

        for parser in self.parsers:
            verdict = parser.detect(grid)
            confidence = verdict.confidence if verdict.detected else Confidence.NONE
            results.append(
                FormatCandidate(
                    format_id=parser.format_id, confidence=confidence, reason=verdict.reason
                )
            )
            # Strictly greater: earlier registrations keep ties.
            if verdict.detected and confidence.rank > best_confidence.rank:
                best_format = parser.format_id
                best_confidence = confidence
                best_reason = verdict.reason

        if best_format is not None:
            logger.info(
                "Format detected from contents",
                extra={"format_id": best_format, "confidence": best_confidence.value},
            )
            return FormatDetection(
                format_id=best_format,
                confidence=best_confidence,
                reason=best_reason,
                results=results,
            )

        format_id = self.detect_from_filename(file_name or grid.file_name)
        if format_id is not None:
            logger.info("Format guessed from file name", extra={"format_id": format_id})
            return FormatDetection(
                format_id=format_id,
                confidence=Confidence.LOW,
                reason=f"Filename suggests {format_id} format",
                results=results,
            )

        logger.info("No format recognized; column mapping required")
        return FormatDetection(
            confidence=Confidence.NONE,
            reason=NO_FORMAT_REASON,
            requires_mapping=True,
            results=results,
        )

    def detect_from_filename(self, file_name: str | None) -> str | None:
        if not file_name:
            return None
        base_name = Path(file_name).name
        for format_id, patterns in self._compiled_patterns.items():
            if any(pattern.search(base_name) for pattern in patterns):
                return format_id
        return None

    def get_supported_formats(self) -> list[str]:
        return [parser.format_id for parser in self.parsers]

    def add_pattern(self, format_id: str, pattern: str) -> None:
        """Add a file name pattern for a format."""
        self._compiled_patterns.setdefault(format_id, []).append(
            re.compile(pattern, re.IGNORECASE)
        )
