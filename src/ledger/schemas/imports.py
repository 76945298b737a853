"""Pydantic schemas for import API responses."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger.schemas.internal import (
    ColumnDetectionResult,
    ColumnMapping,
    FormatDetection,
    FormatMeta,
    SessionSummary,
)


class DetectResponse(BaseModel):
    """Format detection and column inference for an uploaded file."""

    file_name: str
    row_count: int
    detection: FormatDetection
    columns: ColumnDetectionResult
    suggested_mapping: ColumnMapping | None = Field(
        None, description="Only set when no known format claimed the file"
    )
    formats: list[FormatMeta] = Field(default_factory=list)


class PreviewTransaction(BaseModel):
    index: int
    txn_date: date
    description: str
    match_field: str
    amount_out_cents: int
    amount_in_cents: int
    net_amount_cents: int
    category_id: UUID | None = None
    is_conflict: bool = False
    conflict_category_ids: list[UUID] = Field(default_factory=list)
    is_duplicate: bool = False
    skip_duplicate: bool = False
    status: str


class PreviewResponse(BaseModel):
    """Parsed, categorized and duplicate-checked rows. Nothing is stored."""

    file_name: str
    format_id: str
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: SessionSummary | None = None
    blocking_message: str = ""
    transactions: list[PreviewTransaction] = Field(default_factory=list)


class ImportBatchResponse(BaseModel):
    id: UUID
    file_name: str
    source_format: str
    transaction_count: int
    total_amount_out_cents: int
    imported_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ImportBatchListResult(BaseModel):
    batches: list[ImportBatchResponse]
    total: int


class ImportBatchDeleteResult(BaseModel):
    batch_id: UUID
    transactions_deleted: int
