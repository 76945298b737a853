"""Custom exception classes for ledger ingestion.

This module defines the exceptions raised by the import pipeline and the
category service. Each exception maps to an error code defined in
errors.py. Expected, per-row problems (bad dates, conflicts, duplicates)
are never raised; they are reported through result objects.
"""

from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "IMPORT_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
        message: Specific human-readable message, when the catalog
            message is too generic (e.g., which category owns a keyword)
    """

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        http_status: int = 500,
        message: str | None = None,
    ):
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status
        self.message = message
        super().__init__(message or error_code)


class StructuralError(LedgerError):
    """Raised when a file is unreadable or has no rows at all.

    Aborts the import before any parsing. Maps to IMPORT_001.
    """

    pass


class FormatValidationError(LedgerError):
    """Raised when a caller insists on using a parse that failed validation.

    Validation failures are normally returned as results so the caller can
    fall back to another format or a manual mapping. Maps to IMPORT_002.
    """

    pass


class UnknownFormatError(LedgerError):
    """Raised for an unregistered format id (IMPORT_003) or a custom
    import without a column mapping (IMPORT_004)."""

    pass


class ImportSessionBlockedError(LedgerError):
    """Raised when committing a session that still has blocking rows."""

    pass


class CategoryNotFoundError(LedgerError):
    pass


class SystemCategoryError(LedgerError):
    """Raised when renaming or deleting a system category, or editing the
    keywords of Uncategorized."""

    pass


class KeywordConflictError(LedgerError):
    """Raised when a keyword is already owned by another category.

    The message names the owning category, e.g.
    'Keyword "STARBUCKS" already exists in "Retail"'.
    """

    pass


class InvalidCategoryError(LedgerError):
    pass


class ImportBatchNotFoundError(LedgerError):
    pass


class TemplateNotFoundError(LedgerError):
    pass


class InvalidTemplateError(LedgerError):
    """Raised for a template with an empty or duplicate name, or a mapping
    that shares one amount column without marking it signed."""

    pass
