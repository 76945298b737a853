"""Saved column mapping endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ledger.api.deps import get_template_service
from ledger.schemas.mapping_template import (
    TemplateCreate,
    TemplateListResult,
    TemplateResponse,
    TemplateUpdate,
)
from ledger.services.mapping_template import MappingTemplateService

router = APIRouter(prefix="/import-templates", tags=["import-templates"])


@router.get("", response_model=TemplateListResult, summary="List saved column mappings, newest first")
async def list_templates(
    service: MappingTemplateService = Depends(get_template_service),
) -> TemplateListResult:
    templates = await service.list_templates()
    return TemplateListResult(
        templates=[TemplateResponse.model_validate(t) for t in templates],
        total=len(templates),
    )


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a column mapping",
    description="""
    The mapping must name the date, description, money out and money in
    columns. A single signed amount column needs `use_negative_for_out`.

    ## Error Codes
    - TPL_002: Name is empty or taken, or the amount column is ambiguous
    - VAL_001: A required column is missing or not a number
    """,
)
async def create_template(
    payload: TemplateCreate,
    service: MappingTemplateService = Depends(get_template_service),
) -> TemplateResponse:
    template = await service.create_template(payload.name, payload.mapping)
    return TemplateResponse.model_validate(template)


@router.get("/{template_id}", response_model=TemplateResponse, summary="Get a saved column mapping")
async def get_template(
    template_id: UUID,
    service: MappingTemplateService = Depends(get_template_service),
) -> TemplateResponse:
    return TemplateResponse.model_validate(await service.get_template(template_id))


@router.put("/{template_id}", response_model=TemplateResponse, summary="Rename or remap a saved column mapping")
async def update_template(
    template_id: UUID,
    payload: TemplateUpdate,
    service: MappingTemplateService = Depends(get_template_service),
) -> TemplateResponse:
    template = await service.update_template(template_id, payload.name, payload.mapping)
    return TemplateResponse.model_validate(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a saved column mapping")
async def delete_template(
    template_id: UUID,
    service: MappingTemplateService = Depends(get_template_service),
) -> Response:
    await service.delete_template(template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
