"""Internal data schemas for the import pipeline.

These models carry parsed rows, detection verdicts and the results of
categorization, deduplication and recategorization between components.
All amounts are in the smallest currency unit (cents).
"""

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


class Confidence(str, Enum):
    """Detection confidence, strongest first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1, "none": 0}[self.value]


class DateFormat(str, Enum):
    """Date grammars understood by the mapping-driven parser."""

    ISO = "ISO"  # 2024-01-15
    MDY = "MDY"  # 01/15/2024
    DMY = "DMY"  # 15/01/2024
    DMON_Y = "DMonY"  # 15 Jan 2024, 16 Dec. 2025
    MON_DY = "MonDY"  # Jan 15, 2024


class CanonicalTransaction(BaseModel):
    """A single parsed row in the common shape every parser produces.

    ``match_field`` is the text keywords are matched against; it defaults
    to the description when a parser has nothing better.
    """

    model_config = ConfigDict(frozen=True)

    txn_date: date = Field(..., description="Transaction date")
    description: str = Field(..., description="Description as printed by the bank")
    match_field: str = Field(default="", description="Text used for keyword matching")
    amount_out_cents: int = Field(default=0, ge=0, description="Money out (cents)")
    amount_in_cents: int = Field(default=0, ge=0, description="Money in (cents)")
    source_format: str = Field(..., description="Format id of the parser that produced the row")

    @field_validator("description")
    @classmethod
    def description_not_empty(cls, v: str) -> str:
        """Ensure description is not empty."""
        if not v or not v.strip():
            raise ValueError("Description cannot be empty")
        return v.strip()

    @model_validator(mode="before")
    @classmethod
    def default_match_field(cls, data):
        if isinstance(data, dict) and not (data.get("match_field") or "").strip():
            data = {**data, "match_field": (data.get("description") or "").strip()}
        return data

    @computed_field
    @property
    def net_amount_cents(self) -> int:
        return self.amount_in_cents - self.amount_out_cents


class ColumnMapping(BaseModel):
    """User-supplied (or inferred) column positions for a custom import.

    Column indexes are zero-based. When ``amount_in_column`` and
    ``amount_out_column`` are the same column the amount is signed, which is
    only accepted when ``use_negative_for_out`` says so explicitly.
    """

    date_column: int = Field(..., ge=0)
    description_column: int = Field(..., ge=0)
    amount_out_column: int = Field(..., ge=0)
    amount_in_column: int = Field(..., ge=0)
    match_field_columns: list[int] = Field(default_factory=list)
    has_headers: bool = True
    date_format: DateFormat | None = None
    use_negative_for_out: bool = False

    @field_validator("match_field_columns")
    @classmethod
    def columns_not_negative(cls, v: list[int]) -> list[int]:
        if any(index < 0 for index in v):
            raise ValueError("Column indexes must be zero or positive")
        return v

    @property
    def shared_amount_column(self) -> bool:
        return self.amount_in_column == self.amount_out_column

    @property
    def required_columns(self) -> int:
        """Minimum number of columns a row needs for this mapping."""
        indexes = [
            self.date_column,
            self.description_column,
            self.amount_out_column,
            self.amount_in_column,
            *self.match_field_columns,
        ]
        return max(indexes) + 1


class DetectionResult(BaseModel):
    """One parser's verdict on whether a grid is in its format."""

    detected: bool
    confidence: Confidence = Confidence.NONE
    reason: str = ""


class FormatCandidate(BaseModel):
    format_id: str
    confidence: Confidence
    reason: str


class FormatDetection(BaseModel):
    """Outcome of running every registered parser's detection over a file."""

    format_id: str | None = None
    confidence: Confidence = Confidence.NONE
    reason: str = ""
    requires_mapping: bool = False
    results: list[FormatCandidate] = Field(default_factory=list)


class FormatMeta(BaseModel):
    id: str
    name: str
    description: str
    file_types: list[str]


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ParseResult(BaseModel):
    transactions: list[CanonicalTransaction] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ParseOutcome(BaseModel):
    """Validation plus parse for one file against one format."""

    format_id: str
    is_valid: bool
    transactions: list[CanonicalTransaction] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ColumnType(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    TEXT = "text"
    UNKNOWN = "unknown"


class DetectedColumn(BaseModel):
    index: int
    header: str | None = None
    column_type: ColumnType = ColumnType.UNKNOWN
    confidence: Confidence = Confidence.NONE
    samples: list[str] = Field(default_factory=list)


class ColumnDetectionResult(BaseModel):
    """Best guess at the layout of an unknown file."""

    has_headers: bool
    columns: list[DetectedColumn] = Field(default_factory=list)
    date_column: int | None = None
    description_column: int | None = None
    amount_out_column: int | None = None
    amount_in_column: int | None = None
    date_format: DateFormat | None = None
    signed_amount: bool = False
    confidence: Confidence = Confidence.NONE


class CategorizedTransaction(BaseModel):
    """A canonical transaction plus its keyword-matching outcome.

    ``category_id`` is None both for "no match" and for conflicts; a
    conflict keeps every matching category in ``conflict_category_ids``.
    """

    transaction: CanonicalTransaction
    category_id: UUID | None = None
    is_conflict: bool = False
    conflict_category_ids: list[UUID] = Field(default_factory=list)


class BulkInsertResult(BaseModel):
    added: int = 0
    skipped: int = 0
    total_amount_out_cents: int = Field(default=0, description="Money out of the added rows")


class RecategorizeResult(BaseModel):
    """Counts from re-running keyword matching after a keyword change."""

    assigned: int = 0
    uncategorized: int = 0
    conflicts: int = 0


class BulkRecategorizeResult(BaseModel):
    processed: int = 0
    updated: int = 0
    uncategorized: int = 0
    conflicts: int = 0


class SessionSummary(BaseModel):
    categorized: int = 0
    conflicts: int = 0
    uncategorized: int = 0
    duplicates: int = 0
    total: int = 0


class CommitResult(BaseModel):
    batch_id: UUID | None = None
    added: int = 0
    skipped: int = 0
