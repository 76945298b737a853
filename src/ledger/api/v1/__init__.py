"""API version 1 routes."""

from fastapi import APIRouter

from ledger.api.v1 import categories, imports, templates, transactions

router = APIRouter(prefix="/api/v1")

router.include_router(categories.router)
router.include_router(transactions.router)
router.include_router(imports.router)
router.include_router(templates.router)
