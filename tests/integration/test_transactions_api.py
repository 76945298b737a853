"""Integration tests for transaction API endpoints."""

import pytest
from httpx import AsyncClient

from ledger.repositories.transaction import TransactionRepository


@pytest.fixture
async def stored(db_session, system_categories, make_transaction):
    rows = [
        make_transaction("PAYROLL ACME", amount_in_cents=150000, amount_out_cents=0),
        make_transaction("SHELL 55", amount_out_cents=4000),
        make_transaction("PAYROLL ACME", category_id=system_categories["Excluded"].id, amount_out_cents=1),
    ]
    await TransactionRepository(db_session).bulk_insert(rows)
    await db_session.commit()
    return rows


@pytest.mark.asyncio
async def test_recategorize_default_mode(client: AsyncClient, stored, system_categories):
    """Test the default pass only touches uncategorized transactions."""
    response = await client.post("/api/v1/transactions/recategorize", json={})

    assert response.status_code == 200
    assert response.json() == {"processed": 2, "updated": 1, "uncategorized": 0, "conflicts": 0}
    assert stored[0].category_id == system_categories["Income"].id


@pytest.mark.asyncio
async def test_recategorize_all_is_idempotent(client: AsyncClient, stored):
    first = await client.post("/api/v1/transactions/recategorize", json={"mode": "all"})
    second = await client.post("/api/v1/transactions/recategorize", json={"mode": "all"})

    assert first.json()["updated"] == 1
    assert second.json() == {"processed": 2, "updated": 0, "uncategorized": 0, "conflicts": 0}


@pytest.mark.asyncio
async def test_recategorize_bad_mode(client: AsyncClient):
    response = await client.post("/api/v1/transactions/recategorize", json={"mode": "some"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "VAL_001"
