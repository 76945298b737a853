"""Category repository."""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.category import Category
from ledger.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Category)

    async def list_ordered(self) -> list[Category]:
        """All categories in display order."""
        result = await self.db.execute(
            select(Category).order_by(Category.display_order, Category.name)
        )
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> Category | None:
        """Case-insensitive lookup by name."""
        result = await self.db.execute(
            select(Category).where(func.lower(Category.name) == name.strip().lower())
        )
        return result.scalar_one_or_none()

    async def next_display_order(self) -> int:
        result = await self.db.execute(select(func.max(Category.display_order)))
        current = result.scalar_one_or_none()
        return (current or 0) + 1
