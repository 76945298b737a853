"""Saved column mappings.

A template is a named ColumnMapping. Choosing one on the mapping step
fills in the date, description and amount columns for a bank whose export
no built-in parser reads.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.exceptions import InvalidTemplateError, TemplateNotFoundError
from ledger.models.mapping_template import ColumnMappingTemplate
from ledger.repositories.mapping_template import MappingTemplateRepository
from ledger.schemas.internal import ColumnMapping

logger = logging.getLogger(__name__)


class MappingTemplateService:
    """Service layer for column mapping templates."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.template_repo = MappingTemplateRepository(db)

    async def list_templates(self) -> list[ColumnMappingTemplate]:
        return await self.template_repo.list_recent()

    async def get_template(self, template_id: UUID) -> ColumnMappingTemplate:
        """Get a template by ID.

        Raises:
            TemplateNotFoundError: If no template has this ID
        """
        template = await self.template_repo.get_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(
                "TPL_001", {"template_id": str(template_id)}, http_status=404, message="Template not found"
            )
        return template

    async def get_mapping(self, template_id: UUID) -> ColumnMapping:
        template = await self.get_template(template_id)
        return ColumnMapping.model_validate(template.mapping)

    async def create_template(self, name: str, mapping: ColumnMapping) -> ColumnMappingTemplate:
        """Save a mapping under a new name.

        Raises:
            InvalidTemplateError: If the name is empty or taken, or the mapping
                shares one amount column without marking it signed
        """
        name = await self._check_name(name)
        self._check_mapping(mapping)
        template = await self.template_repo.create(
            ColumnMappingTemplate(name=name, mapping=mapping.model_dump(mode="json"))
        )
        logger.info("Mapping template created", extra={"template_id": str(template.id)})
        return template

    async def update_template(
        self, template_id: UUID, name: str | None = None, mapping: ColumnMapping | None = None
    ) -> ColumnMappingTemplate:
        template = await self.get_template(template_id)
        changes: dict = {}
        if name is not None:
            changes["name"] = await self._check_name(name, template_id)
        if mapping is not None:
            self._check_mapping(mapping)
            changes["mapping"] = mapping.model_dump(mode="json")
        if not changes:
            return template
        return await self.template_repo.update(template.id, changes)

    async def delete_template(self, template_id: UUID) -> None:
        template = await self.get_template(template_id)
        await self.template_repo.delete(template.id)
        logger.info("Mapping template deleted", extra={"template_id": str(template_id)})

    async def _check_name(self, name: str, template_id: UUID | None = None) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidTemplateError("TPL_002", {"name": name}, http_status=422, message="Template name is required")
        clash = await self.template_repo.get_by_name(name)
        if clash is not None and clash.id != template_id:
            raise InvalidTemplateError(
                "TPL_002", {"name": name}, http_status=409, message=f'Template "{name}" already exists'
            )
        return name

    @staticmethod
    def _check_mapping(mapping: ColumnMapping) -> None:
        if mapping.shared_amount_column and not mapping.use_negative_for_out:
            raise InvalidTemplateError(
                "TPL_002",
                {"amount_column": mapping.amount_out_column},
                http_status=422,
                message="Money in and money out use the same column; mark the amount as signed",
            )
