"""Integration tests for saved column mapping templates."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.exceptions import InvalidTemplateError, TemplateNotFoundError
from ledger.schemas.internal import ColumnMapping, DateFormat
from ledger.services.mapping_template import MappingTemplateService

SIGNED_MAPPING = {
    "date_column": 0,
    "description_column": 1,
    "amount_out_column": 2,
    "amount_in_column": 2,
    "use_negative_for_out": True,
    "date_format": "DMY",
}
BANK_FILE = b"Date,Description,Amount\n15/01/2024,STARBUCKS,-5.25\n16/01/2024,PAYROLL,1500.00\n"


@pytest.fixture
def service(db_session: AsyncSession) -> MappingTemplateService:
    return MappingTemplateService(db_session)


class TestMappingTemplateService:
    """Test suite for MappingTemplateService."""

    @pytest.mark.asyncio
    async def test_create_and_get_mapping(self, service):
        template = await service.create_template(" Tangerine ", ColumnMapping(**SIGNED_MAPPING))

        assert template.name == "Tangerine"
        mapping = await service.get_mapping(template.id)
        assert mapping.use_negative_for_out
        assert mapping.date_format is DateFormat.DMY
        assert [t.id for t in await service.list_templates()] == [template.id]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, service):
        await service.create_template("Tangerine", ColumnMapping(**SIGNED_MAPPING))

        with pytest.raises(InvalidTemplateError) as exc_info:
            await service.create_template("tangerine", ColumnMapping(**SIGNED_MAPPING))
        assert exc_info.value.http_status == 409
        assert exc_info.value.message == 'Template "tangerine" already exists'

    @pytest.mark.asyncio
    async def test_shared_column_must_be_signed(self, service):
        mapping = ColumnMapping(**{**SIGNED_MAPPING, "use_negative_for_out": False})

        with pytest.raises(InvalidTemplateError) as exc_info:
            await service.create_template("Tangerine", mapping)
        assert exc_info.value.error_code == "TPL_002"
        assert await service.list_templates() == []

    @pytest.mark.asyncio
    async def test_update_and_delete(self, service):
        template = await service.create_template("Tangerine", ColumnMapping(**SIGNED_MAPPING))
        separate = ColumnMapping(
            date_column=0, description_column=1, amount_out_column=3, amount_in_column=4
        )

        updated = await service.update_template(template.id, name="Tangerine Chequing", mapping=separate)
        assert updated.name == "Tangerine Chequing"
        assert (await service.get_mapping(template.id)).amount_in_column == 4

        # Renaming to its own name is not a clash
        await service.update_template(template.id, name="Tangerine Chequing")

        await service.delete_template(template.id)
        with pytest.raises(TemplateNotFoundError):
            await service.get_template(template.id)


@pytest.mark.asyncio
async def test_template_routes(client: AsyncClient):
    response = await client.post(
        "/api/v1/import-templates", json={"name": "Tangerine", "mapping": SIGNED_MAPPING}
    )
    assert response.status_code == 201
    template = response.json()
    assert template["mapping"]["amount_out_column"] == 2

    response = await client.get("/api/v1/import-templates")
    assert response.json()["total"] == 1

    response = await client.put(
        f"/api/v1/import-templates/{template['id']}", json={"name": "Tangerine Chequing"}
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Tangerine Chequing"
    assert response.json()["mapping"] == template["mapping"]

    response = await client.delete(f"/api/v1/import-templates/{template['id']}")
    assert response.status_code == 204

    response = await client.get(f"/api/v1/import-templates/{template['id']}")
    assert response.status_code == 404
    assert response.json()["error_code"] == "TPL_001"


@pytest.mark.asyncio
async def test_template_requires_amount_columns(client: AsyncClient):
    mapping = {"date_column": 0, "description_column": 1, "amount_out_column": 2}
    response = await client.post(
        "/api/v1/import-templates", json={"name": "Broken", "mapping": mapping}
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "VAL_001"


@pytest.mark.asyncio
async def test_preview_with_template(client: AsyncClient, system_categories):
    """Test a saved template stands in for an explicit mapping."""
    created = await client.post(
        "/api/v1/import-templates", json={"name": "Tangerine", "mapping": SIGNED_MAPPING}
    )

    response = await client.post(
        "/api/v1/imports/preview",
        params={"file_name": "bank.csv", "format_id": "CUSTOM", "template_id": created.json()["id"]},
        content=BANK_FILE,
    )

    data = response.json()
    assert data["is_valid"] is True
    assert [t["amount_out_cents"] for t in data["transactions"]] == [525, 0]


@pytest.mark.asyncio
async def test_preview_unknown_template(client: AsyncClient):
    response = await client.post(
        "/api/v1/imports/preview",
        params={"file_name": "bank.csv", "format_id": "CUSTOM", "template_id": str(uuid4())},
        content=BANK_FILE,
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "TPL_001"
