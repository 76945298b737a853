"""Integration tests for category management and store recategorization."""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.exceptions import (
    CategoryNotFoundError,
    InvalidCategoryError,
    KeywordConflictError,
    SystemCategoryError,
)
from ledger.repositories.transaction import TransactionRepository
from ledger.services.category import DEFAULT_CATEGORIES, SYSTEM_CATEGORIES, CategoryService


@pytest.fixture
def service(db_session: AsyncSession) -> CategoryService:
    return CategoryService(db_session)


async def _store(db_session, make_transaction, *descriptions, category_id=None):
    rows = [
        make_transaction(text, amount_out_cents=100 + i, category_id=category_id)
        for i, text in enumerate(descriptions)
    ]
    await TransactionRepository(db_session).bulk_insert(rows)
    await db_session.commit()
    return rows


class TestSeeding:
    """Test system and default category seeding."""

    @pytest.mark.asyncio
    async def test_system_categories_only(self, service):
        created = await service.ensure_system_categories()
        categories = await service.list_categories()

        assert created == 3
        assert [c.name for c in categories] == list(SYSTEM_CATEGORIES)
        assert all(c.is_system for c in categories)

    @pytest.mark.asyncio
    async def test_defaults_seeded_into_empty_store(self, service):
        created = await service.ensure_system_categories(seed_defaults=True)
        assert created == len(SYSTEM_CATEGORIES) + len(DEFAULT_CATEGORIES)

        by_name = {c.name: c for c in await service.list_categories()}
        assert not by_name["Groceries"].is_system
        assert [c.display_order for c in by_name.values()] == list(range(created))

    @pytest.mark.asyncio
    async def test_idempotent(self, service, system_categories):
        """Test a second run creates nothing and never adds defaults."""
        assert await service.ensure_system_categories(seed_defaults=True) == 0
        assert len(await service.list_categories()) == 3


class TestCreateCategory:
    @pytest.mark.asyncio
    async def test_create_claims_uncategorized(self, service, db_session, system_categories, make_transaction):
        """Test stored uncategorized rows matched only by the new keywords are assigned."""
        await _store(db_session, make_transaction, "STARBUCKS #4410", "SHELL 55")

        category, result = await service.create_category("Coffee", ["Starbucks "])

        assert category.keywords == ["Starbucks"]
        assert category.display_order == 3
        assert result.assigned == 1
        assigned = await TransactionRepository(db_session).list_by_category(category.id)
        assert [t.description for t in assigned] == ["STARBUCKS #4410"]

    @pytest.mark.asyncio
    async def test_create_leaves_conflicts(self, service, db_session, system_categories, make_transaction):
        await service.create_category("Coffee", ["STARBUCKS"])
        await _store(db_session, make_transaction, "STARBUCKS AMAZON")

        _, result = await service.create_category("Retail", ["AMAZON"])
        assert result.conflicts == 1
        assert result.assigned == 0

    @pytest.mark.asyncio
    async def test_duplicate_name(self, service, system_categories):
        await service.create_category("Coffee")
        with pytest.raises(InvalidCategoryError) as exc_info:
            await service.create_category("coffee")
        assert exc_info.value.http_status == 409
        assert exc_info.value.message == 'Category "coffee" already exists'

    @pytest.mark.asyncio
    async def test_empty_name(self, service):
        with pytest.raises(InvalidCategoryError) as exc_info:
            await service.create_category("   ")
        assert exc_info.value.error_code == "CAT_004"

    @pytest.mark.asyncio
    async def test_keyword_owned_elsewhere(self, service, system_categories):
        with pytest.raises(KeywordConflictError) as exc_info:
            await service.create_category("Pay", ["payroll"])
        assert exc_info.value.message == 'Keyword "payroll" already exists in "Income"'


class TestUpdateKeywords:
    """Test keyword replacement and the recategorization it triggers."""

    @pytest.mark.asyncio
    async def test_remove_then_readd(self, service, db_session, system_categories, make_transaction):
        """Test removing the only keyword uncategorizes and re-adding restores."""
        coffee, _ = await service.create_category("Coffee", ["STARBUCKS"])
        (row,) = await _store(db_session, make_transaction, "STARBUCKS #4410", category_id=coffee.id)

        result = await service.remove_keyword(coffee.id, "starbucks")
        assert (result.assigned, result.uncategorized, result.conflicts) == (0, 1, 0)
        assert coffee.keywords == []
        assert row.category_id is None

        result = await service.add_keyword(coffee.id, "STARBUCKS")
        assert result.assigned == 1
        assert row.category_id == coffee.id

    @pytest.mark.asyncio
    async def test_demotes_to_other_category(self, service, db_session, system_categories, make_transaction):
        """Test a row that stops matching moves to the single other match."""
        coffee, _ = await service.create_category("Coffee", ["STARBUCKS"])
        dining, _ = await service.create_category("Dining", ["RESTAURANT"])
        (row,) = await _store(
            db_session, make_transaction, "STARBUCKS RESTAURANT", category_id=coffee.id
        )

        result = await service.update_category_keywords(coffee.id, ["TIMS"])

        assert result.assigned == 1
        assert row.category_id == dining.id

    @pytest.mark.asyncio
    async def test_add_existing_keyword_is_noop(self, service, system_categories):
        coffee, _ = await service.create_category("Coffee", ["STARBUCKS"])
        result = await service.add_keyword(coffee.id, "starbucks")
        assert result.model_dump() == {"assigned": 0, "uncategorized": 0, "conflicts": 0}

    @pytest.mark.asyncio
    async def test_conflict_rolls_back(self, service, db_session, system_categories, make_transaction):
        """Test a rejected keyword list leaves keywords and transactions untouched."""
        coffee, _ = await service.create_category("Coffee", ["STARBUCKS"])
        (row,) = await _store(db_session, make_transaction, "STARBUCKS", category_id=coffee.id)

        with pytest.raises(KeywordConflictError):
            await service.update_category_keywords(coffee.id, ["SALARY"])

        assert (await service.get_category(coffee.id)).keywords == ["STARBUCKS"]
        assert row.category_id == coffee.id

    @pytest.mark.asyncio
    async def test_uncategorized_cannot_have_keywords(self, service, system_categories):
        with pytest.raises(SystemCategoryError) as exc_info:
            await service.update_category_keywords(system_categories["Uncategorized"].id, ["X"])
        assert exc_info.value.http_status == 403

    @pytest.mark.asyncio
    async def test_excluded_keywords_allowed(self, service, db_session, system_categories, make_transaction):
        excluded = system_categories["Excluded"]
        await _store(db_session, make_transaction, "TRANSFER TO SAVINGS")
        result = await service.update_category_keywords(excluded.id, ["TRANSFER TO"])
        assert result.assigned == 1


class TestDeleteRenameReorder:
    @pytest.mark.asyncio
    async def test_delete_moves_rows(self, service, db_session, system_categories, make_transaction):
        coffee, _ = await service.create_category("Coffee", ["STARBUCKS"])
        (row,) = await _store(db_session, make_transaction, "STARBUCKS PAYROLL", category_id=coffee.id)

        result = await service.delete_category(coffee.id)

        assert result.assigned == 1
        assert row.category_id == system_categories["Income"].id
        with pytest.raises(CategoryNotFoundError):
            await service.get_category(coffee.id)

    @pytest.mark.asyncio
    async def test_system_categories_protected(self, service, system_categories):
        income = system_categories["Income"]
        with pytest.raises(SystemCategoryError) as exc_info:
            await service.delete_category(income.id)
        assert exc_info.value.message == "Cannot delete system categories"

        with pytest.raises(SystemCategoryError) as exc_info:
            await service.rename_category(income.id, "Wages")
        assert exc_info.value.message == "Cannot rename system categories"

    @pytest.mark.asyncio
    async def test_rename(self, service, system_categories):
        coffee, _ = await service.create_category("Coffee")
        await service.create_category("Dining")

        renamed = await service.rename_category(coffee.id, " Cafes ")
        assert renamed.name == "Cafes"
        with pytest.raises(InvalidCategoryError):
            await service.rename_category(coffee.id, "dining")

    @pytest.mark.asyncio
    async def test_reorder(self, service, system_categories):
        coffee, _ = await service.create_category("Coffee")
        uncategorized = system_categories["Uncategorized"]

        categories = await service.reorder(coffee.id, uncategorized.id)
        assert [c.name for c in categories] == ["Coffee", "Uncategorized", "Excluded", "Income"]
        assert [c.display_order for c in await service.list_categories()] == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_reorder_unknown(self, service, system_categories):
        with pytest.raises(CategoryNotFoundError):
            await service.reorder(uuid4(), system_categories["Income"].id)


class TestBulkRecategorize:
    @pytest.mark.asyncio
    async def test_uncategorized_then_idempotent(self, service, db_session, system_categories, make_transaction):
        """Test a second run right after the first changes nothing."""
        await service.create_category("Coffee", ["STARBUCKS"])
        await _store(db_session, make_transaction, "STARBUCKS", "PAYROLL ACME", "SHELL")

        first = await service.recategorize_transactions("uncategorized")
        assert (first.processed, first.updated) == (3, 2)

        second = await service.recategorize_transactions("all")
        assert second.updated == 0
        assert second.processed == 3

    @pytest.mark.asyncio
    async def test_all_skips_excluded(self, service, db_session, system_categories, make_transaction):
        excluded = system_categories["Excluded"]
        (row,) = await _store(db_session, make_transaction, "PAYROLL", category_id=excluded.id)

        result = await service.recategorize_transactions("all")
        assert result.processed == 0
        assert row.category_id == excluded.id
