"""FastAPI dependency injection for database-backed services."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.db.session import get_db
from ledger.services.category import CategoryService
from ledger.services.imports import ImportService
from ledger.services.mapping_template import MappingTemplateService


async def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    """
    Get category service instance.

    Args:
        db: Database session

    Returns:
        CategoryService instance
    """
    return CategoryService(db)


async def get_import_service(db: AsyncSession = Depends(get_db)) -> ImportService:
    return ImportService(db)


async def get_template_service(db: AsyncSession = Depends(get_db)) -> MappingTemplateService:
    return MappingTemplateService(db)
