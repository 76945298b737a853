"""Category model: a named bucket with the keywords that route transactions into it."""
from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.models.base import BaseModel

UNCATEGORIZED = "Uncategorized"
EXCLUDED = "Excluded"
INCOME = "Income"

SYSTEM_CATEGORY_NAMES = (UNCATEGORIZED, EXCLUDED, INCOME)


class Category(BaseModel):
    """Category with an ordered list of case-preserved keywords.

    A keyword (compared case-insensitively) belongs to at most one category.
    """

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    keywords: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def is_uncategorized(self) -> bool:
        return self.is_system and self.name == UNCATEGORIZED

    @property
    def is_excluded(self) -> bool:
        return self.is_system and self.name == EXCLUDED

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name}, keywords={len(self.keywords or [])})>"
