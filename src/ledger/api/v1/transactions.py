"""Transaction endpoints."""

from fastapi import APIRouter, Depends

from ledger.api.deps import get_category_service
from ledger.schemas.category import RecategorizeRequest
from ledger.schemas.internal import BulkRecategorizeResult
from ledger.services.category import CategoryService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post(
    "/recategorize",
    response_model=BulkRecategorizeResult,
    summary="Re-run keyword matching over stored transactions",
    description="""
    ## Modes
    - uncategorized: only transactions without a category
    - all: every transaction except those in Excluded

    A transaction matched by several categories keeps its current category
    when that category is one of the matches.
    """,
)
async def recategorize(
    payload: RecategorizeRequest,
    service: CategoryService = Depends(get_category_service),
) -> BulkRecategorizeResult:
    return await service.recategorize_transactions(payload.mode)
