"""Import endpoints: format detection, preview, batch history and undo.

Uploads are raw request bodies (no multipart); the file name travels in
the ``file_name`` query parameter so the reader can pick CSV or Excel.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError

from ledger.api.deps import get_import_service, get_template_service
from ledger.config import settings
from ledger.core.errors import get_error
from ledger.parsers.factory import get_parser_factory
from ledger.schemas.imports import (
    DetectResponse,
    ImportBatchDeleteResult,
    ImportBatchListResult,
    ImportBatchResponse,
    PreviewResponse,
    PreviewTransaction,
)
from ledger.schemas.internal import ColumnMapping, FormatMeta
from ledger.services.import_session import ImportSession
from ledger.services.imports import ImportService
from ledger.services.mapping_template import MappingTemplateService

router = APIRouter(prefix="/imports", tags=["imports"])

ALLOWED_EXTENSIONS = (".csv", ".txt", ".xlsx", ".xlsm")
ALLOWED_LIMITS = [10, 20, 50, 100]


def _reject(error_code: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> HTTPException:
    error_def = get_error(error_code)
    return HTTPException(
        status_code=status_code,
        detail={
            "error_code": error_code,
            "user_message": error_def["user_message"],
            "suggestion": error_def["suggestion"],
        },
    )


async def _read_upload(request: Request, file_name: str) -> bytes:
    """Read the request body with a strict size cap (no disk spooling)."""
    if not file_name.lower().endswith(ALLOWED_EXTENSIONS):
        raise _reject("API_001")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    buf = bytearray()
    async for chunk in request.stream():
        if not chunk:
            continue
        if len(buf) + len(chunk) > max_bytes:
            raise _reject("API_002", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
        buf.extend(chunk)
    return bytes(buf)


def _parse_mapping(mapping: str | None) -> ColumnMapping | None:
    if not mapping:
        return None
    try:
        return ColumnMapping.model_validate_json(mapping)
    except ValidationError:
        raise _reject("VAL_001")


def _preview_rows(session: ImportSession) -> list[PreviewTransaction]:
    return [
        PreviewTransaction(
            index=row.index,
            txn_date=row.transaction.txn_date,
            description=row.transaction.description,
            match_field=row.transaction.match_field,
            amount_out_cents=row.transaction.amount_out_cents,
            amount_in_cents=row.transaction.amount_in_cents,
            net_amount_cents=row.transaction.net_amount_cents,
            category_id=row.category_id,
            is_conflict=row.is_conflict,
            conflict_category_ids=row.conflict_category_ids,
            is_duplicate=row.is_duplicate,
            skip_duplicate=row.skip_duplicate,
            status=row.status.value,
        )
        for row in session.rows
    ]


@router.get("/formats", response_model=list[FormatMeta], summary="List supported formats")
async def list_formats() -> list[FormatMeta]:
    return get_parser_factory().get_format_meta()


@router.post(
    "/detect",
    response_model=DetectResponse,
    summary="Detect the format of a statement export",
    description="""
    Send the file as the raw request body. Known bank formats are detected
    from content first and from the file name second. When nothing claims
    the file, `detection.requires_mapping` is true and `suggested_mapping`
    holds the inferred column layout.

    ## Error Codes
    - API_001: Unsupported file type
    - API_002: File too large
    - IMPORT_001: File is empty or unreadable
    """,
)
async def detect_format(
    request: Request,
    file_name: Annotated[str, Query(min_length=1, description="Original file name")],
    service: ImportService = Depends(get_import_service),
) -> DetectResponse:
    content = await _read_upload(request, file_name)
    grid = await service.read_file(content, file_name)
    detection, columns, mapping = service.detect(grid)
    return DetectResponse(
        file_name=file_name,
        row_count=len(grid),
        detection=detection,
        columns=columns,
        suggested_mapping=mapping,
        formats=get_parser_factory().get_format_meta(),
    )


@router.post(
    "/preview",
    response_model=PreviewResponse,
    summary="Parse, categorize and duplicate-check a file without storing it",
    description="""
    Send the file as the raw request body. For CUSTOM imports pass either
    `mapping`, a JSON-encoded column mapping, or `template_id`, the id of a
    saved column mapping.

    A file that fails validation for the chosen format is returned with
    `is_valid` false and the validation errors, so a different format or a
    manual mapping can be tried.
    """,
)
async def preview_import(
    request: Request,
    file_name: Annotated[str, Query(min_length=1)],
    format_id: Annotated[str, Query(min_length=1)],
    mapping: Annotated[str | None, Query(description="JSON column mapping")] = None,
    template_id: Annotated[UUID | None, Query(description="Saved column mapping")] = None,
    service: ImportService = Depends(get_import_service),
    templates: MappingTemplateService = Depends(get_template_service),
) -> PreviewResponse:
    column_mapping = _parse_mapping(mapping)
    if column_mapping is None and template_id is not None:
        column_mapping = await templates.get_mapping(template_id)
    content = await _read_upload(request, file_name)
    outcome = await service.parse_file(content, file_name, format_id, column_mapping)

    if not outcome.is_valid:
        return PreviewResponse(
            file_name=file_name,
            format_id=outcome.format_id,
            is_valid=False,
            errors=outcome.errors,
            warnings=outcome.warnings,
        )

    session = await service.start_session(outcome, file_name)
    return PreviewResponse(
        file_name=file_name,
        format_id=outcome.format_id,
        is_valid=True,
        errors=session.errors,
        warnings=session.warnings,
        summary=session.summary(),
        blocking_message=session.blocking_message,
        transactions=_preview_rows(session),
    )


@router.get("", response_model=ImportBatchListResult, summary="List import batches, newest first")
async def list_batches(
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query()] = 20,
    service: ImportService = Depends(get_import_service),
) -> ImportBatchListResult:
    if limit not in ALLOWED_LIMITS:
        raise _reject("VAL_001")
    batches = await service.list_batches(skip, limit)
    return ImportBatchListResult(
        batches=[ImportBatchResponse.model_validate(b) for b in batches],
        total=len(batches),
    )


@router.delete(
    "/{batch_id}",
    response_model=ImportBatchDeleteResult,
    summary="Delete an import and the transactions it added",
    description="""
    ## Error Codes
    - IMPORT_006: Import batch not found
    """,
)
async def delete_batch(
    batch_id: UUID,
    service: ImportService = Depends(get_import_service),
) -> ImportBatchDeleteResult:
    deleted = await service.delete_batch(batch_id)
    return ImportBatchDeleteResult(batch_id=batch_id, transactions_deleted=deleted)
