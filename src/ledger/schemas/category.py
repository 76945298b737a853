"""Pydantic schemas for category API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger.categorization.recategorize import RecategorizeMode
from ledger.schemas.internal import RecategorizeResult


class CategoryResponse(BaseModel):
    """Category data for API responses."""

    id: UUID
    name: str
    keywords: list[str] = Field(default_factory=list, description="Keywords in stored order")
    display_order: int
    is_system: bool = Field(description="Built-in category that cannot be renamed or deleted")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryListResult(BaseModel):
    categories: list[CategoryResponse]
    total: int


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    keywords: list[str] = Field(default_factory=list)


class CategoryCreateResult(BaseModel):
    category: CategoryResponse
    recategorization: RecategorizeResult


class CategoryRename(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class KeywordsUpdate(BaseModel):
    """Complete replacement keyword list."""

    keywords: list[str]


class ReorderRequest(BaseModel):
    """Move ``active_id`` to the position currently held by ``over_id``."""

    active_id: UUID
    over_id: UUID


class RecategorizeRequest(BaseModel):
    mode: RecategorizeMode = RecategorizeMode.UNCATEGORIZED
