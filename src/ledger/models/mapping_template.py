"""Saved column mappings for files no bank parser recognizes."""
from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.models.base import BaseModel


class ColumnMappingTemplate(BaseModel):
    """A named ColumnMapping, stored as its JSON form so it can be reused
    for the next export from the same bank."""

    __tablename__ = "column_mapping_templates"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    mapping: Mapped[dict] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<ColumnMappingTemplate(id={self.id}, name={self.name})>"
