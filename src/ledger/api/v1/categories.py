"""Category endpoints: list, create, rename, keywords, delete and reorder."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ledger.api.deps import get_category_service
from ledger.schemas.category import (
    CategoryCreate,
    CategoryCreateResult,
    CategoryListResult,
    CategoryRename,
    CategoryResponse,
    KeywordsUpdate,
    ReorderRequest,
)
from ledger.schemas.internal import RecategorizeResult
from ledger.services.category import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryListResult, summary="List categories in display order")
async def list_categories(
    service: CategoryService = Depends(get_category_service),
) -> CategoryListResult:
    categories = await service.list_categories()
    return CategoryListResult(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        total=len(categories),
    )


@router.post(
    "",
    response_model=CategoryCreateResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
    description="""
    Create a user category. Stored uncategorized transactions that only the
    new keywords match are assigned to it.

    ## Error Codes
    - CAT_001: A keyword already belongs to another category
    - CAT_004: Name is empty or already taken
    """,
)
async def create_category(
    payload: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
) -> CategoryCreateResult:
    category, result = await service.create_category(payload.name, payload.keywords)
    return CategoryCreateResult(
        category=CategoryResponse.model_validate(category), recategorization=result
    )


@router.patch("/{category_id}", response_model=CategoryResponse, summary="Rename a category")
async def rename_category(
    category_id: UUID,
    payload: CategoryRename,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.rename_category(category_id, payload.name)
    return CategoryResponse.model_validate(category)


@router.put(
    "/{category_id}/keywords",
    response_model=RecategorizeResult,
    summary="Replace a category's keywords",
    description="""
    Replace the keyword list and recategorize stored transactions in the
    same database transaction.

    ## Response
    - assigned: transactions moved into a category
    - uncategorized: transactions left without a category
    - conflicts: uncategorized transactions now matched by several categories
    """,
)
async def update_keywords(
    category_id: UUID,
    payload: KeywordsUpdate,
    service: CategoryService = Depends(get_category_service),
) -> RecategorizeResult:
    return await service.update_category_keywords(category_id, payload.keywords)


@router.delete("/{category_id}", response_model=RecategorizeResult, summary="Delete a category")
async def delete_category(
    category_id: UUID,
    service: CategoryService = Depends(get_category_service),
) -> RecategorizeResult:
    return await service.delete_category(category_id)


@router.post("/reorder", response_model=CategoryListResult, summary="Move a category")
async def reorder_categories(
    payload: ReorderRequest,
    service: CategoryService = Depends(get_category_service),
) -> CategoryListResult:
    categories = await service.reorder(payload.active_id, payload.over_id)
    return CategoryListResult(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        total=len(categories),
    )
