"""Column mapping template repository."""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.mapping_template import ColumnMappingTemplate
from ledger.repositories.base import BaseRepository


class MappingTemplateRepository(BaseRepository[ColumnMappingTemplate]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, ColumnMappingTemplate)

    async def list_recent(self) -> list[ColumnMappingTemplate]:
        """All templates, newest first."""
        result = await self.db.execute(
            select(ColumnMappingTemplate).order_by(
                ColumnMappingTemplate.created_at.desc(), ColumnMappingTemplate.name
            )
        )
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> ColumnMappingTemplate | None:
        """Case-insensitive lookup by name."""
        result = await self.db.execute(
            select(ColumnMappingTemplate).where(
                func.lower(ColumnMappingTemplate.name) == name.strip().lower()
            )
        )
        return result.scalar_one_or_none()
