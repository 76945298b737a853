"""Pydantic schemas for saved column mapping templates."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger.schemas.internal import ColumnMapping


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    mapping: ColumnMapping


class TemplateUpdate(BaseModel):
    """Fields left out keep their stored value."""

    name: str | None = Field(None, min_length=1, max_length=100)
    mapping: ColumnMapping | None = None


class TemplateResponse(BaseModel):
    id: UUID
    name: str
    mapping: ColumnMapping
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplateListResult(BaseModel):
    templates: list[TemplateResponse]
    total: int
