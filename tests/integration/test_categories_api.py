"""Integration tests for category API endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from ledger.repositories.transaction import TransactionRepository


@pytest.mark.asyncio
async def test_list_categories(client: AsyncClient, system_categories):
    """Test categories come back in display order."""
    response = await client.get("/api/v1/categories")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [c["name"] for c in data["categories"]] == ["Uncategorized", "Excluded", "Income"]
    assert data["categories"][2]["keywords"][0] == "SALARY"


@pytest.mark.asyncio
async def test_create_category(client: AsyncClient, db_session, system_categories, make_transaction):
    """Test creation assigns matching uncategorized transactions."""
    await TransactionRepository(db_session).bulk_insert([make_transaction("STARBUCKS #4410")])
    await db_session.commit()

    response = await client.post(
        "/api/v1/categories", json={"name": "Coffee", "keywords": ["STARBUCKS"]}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["category"]["name"] == "Coffee"
    assert data["category"]["is_system"] is False
    assert data["recategorization"] == {"assigned": 1, "uncategorized": 0, "conflicts": 0}


@pytest.mark.asyncio
async def test_create_missing_name(client: AsyncClient):
    response = await client.post("/api/v1/categories", json={"keywords": []})

    assert response.status_code == 400
    assert response.json()["error_code"] == "VAL_001"


@pytest.mark.asyncio
async def test_keyword_conflict_names_owner(client: AsyncClient, system_categories):
    response = await client.post(
        "/api/v1/categories", json={"name": "Pay", "keywords": ["SALARY"]}
    )

    assert response.status_code == 409
    data = response.json()
    assert data["error_code"] == "CAT_001"
    assert data["message"] == 'Keyword "SALARY" already exists in "Income"'
    assert data["retry_allowed"] is False


@pytest.mark.asyncio
async def test_update_keywords(client: AsyncClient, system_categories):
    created = await client.post("/api/v1/categories", json={"name": "Coffee"})
    category_id = created.json()["category"]["id"]

    response = await client.put(
        f"/api/v1/categories/{category_id}/keywords", json={"keywords": ["STARBUCKS", "TIMS"]}
    )
    assert response.status_code == 200
    assert response.json() == {"assigned": 0, "uncategorized": 0, "conflicts": 0}

    listed = (await client.get("/api/v1/categories")).json()["categories"]
    coffee = next(c for c in listed if c["id"] == category_id)
    assert coffee["keywords"] == ["STARBUCKS", "TIMS"]


@pytest.mark.asyncio
async def test_rename_and_delete(client: AsyncClient, system_categories):
    created = await client.post("/api/v1/categories", json={"name": "Coffee"})
    category_id = created.json()["category"]["id"]

    response = await client.patch(f"/api/v1/categories/{category_id}", json={"name": "Cafes"})
    assert response.status_code == 200
    assert response.json()["name"] == "Cafes"

    response = await client.delete(f"/api/v1/categories/{category_id}")
    assert response.status_code == 200
    assert (await client.get("/api/v1/categories")).json()["total"] == 3


@pytest.mark.asyncio
async def test_system_category_protected(client: AsyncClient, system_categories):
    income_id = str(system_categories["Income"].id)

    response = await client.delete(f"/api/v1/categories/{income_id}")
    assert response.status_code == 403
    assert response.json()["error_code"] == "CAT_002"

    uncategorized_id = str(system_categories["Uncategorized"].id)
    response = await client.put(
        f"/api/v1/categories/{uncategorized_id}/keywords", json={"keywords": ["X"]}
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Uncategorized cannot have keywords"


@pytest.mark.asyncio
async def test_unknown_category(client: AsyncClient):
    response = await client.delete(f"/api/v1/categories/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["error_code"] == "CAT_003"


@pytest.mark.asyncio
async def test_reorder(client: AsyncClient, system_categories):
    response = await client.post(
        "/api/v1/categories/reorder",
        json={
            "active_id": str(system_categories["Income"].id),
            "over_id": str(system_categories["Uncategorized"].id),
        },
    )

    assert response.status_code == 200
    categories = response.json()["categories"]
    assert [c["name"] for c in categories] == ["Income", "Uncategorized", "Excluded"]
    assert [c["display_order"] for c in categories] == [0, 1, 2]
