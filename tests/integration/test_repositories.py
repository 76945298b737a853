"""Integration tests for repository layer."""
from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.category import Category
from ledger.repositories.category import CategoryRepository
from ledger.repositories.import_batch import ImportBatchRepository
from ledger.repositories.transaction import TransactionRepository
from ledger.services.duplicates import DuplicateDetector, signature


@pytest.fixture
async def coffee(db_session: AsyncSession) -> Category:
    return await CategoryRepository(db_session).create(
        Category(name="Coffee", keywords=["STARBUCKS"], display_order=3)
    )


class TestTransactionRepository:
    """Test TransactionRepository operations."""

    @pytest.mark.asyncio
    async def test_bulk_insert_skips_stored_signatures(self, db_session, make_transaction):
        """Test rows already stored are skipped and the rest are added."""
        repo = TransactionRepository(db_session)
        first = await repo.bulk_insert([make_transaction("STARBUCKS", amount_out_cents=525)])
        assert (first.added, first.skipped) == (1, 0)

        second = await repo.bulk_insert(
            [
                make_transaction("STARBUCKS", amount_out_cents=525),
                make_transaction("LOBLAWS", amount_out_cents=8210),
            ]
        )
        assert (second.added, second.skipped) == (1, 1)
        assert second.total_amount_out_cents == 8210
        assert len(await repo.list_all()) == 2

    @pytest.mark.asyncio
    async def test_bulk_insert_forced(self, db_session, make_transaction):
        """Test duplicates are inserted when the check is skipped."""
        repo = TransactionRepository(db_session)
        await repo.bulk_insert([make_transaction("STARBUCKS")])
        result = await repo.bulk_insert([make_transaction("STARBUCKS")], skip_duplicate_check=True)

        assert result.added == 1
        assert len(await repo.list_all()) == 2

    @pytest.mark.asyncio
    async def test_bulk_insert_empty(self, db_session):
        result = await TransactionRepository(db_session).bulk_insert([])
        assert (result.added, result.skipped) == (0, 0)

    @pytest.mark.asyncio
    async def test_signatures_between(self, db_session, make_transaction):
        repo = TransactionRepository(db_session)
        await repo.bulk_insert(
            [
                make_transaction("IN RANGE", txn_date=date(2024, 1, 10), amount_in_cents=200, amount_out_cents=0),
                make_transaction("OUT OF RANGE", txn_date=date(2024, 3, 1)),
            ]
        )
        signatures = await repo.signatures_between(date(2024, 1, 1), date(2024, 1, 31))
        assert signatures == {signature(date(2024, 1, 10), "IN RANGE", 0, 200)}

    @pytest.mark.asyncio
    async def test_assign_category(self, db_session, make_transaction, coffee):
        """Test bulk category assignment and the category queries."""
        repo = TransactionRepository(db_session)
        rows = [make_transaction("STARBUCKS 1"), make_transaction("STARBUCKS 2", amount_out_cents=5)]
        await repo.bulk_insert(rows)

        updated = await repo.assign_category([r.id for r in rows], coffee.id)
        assert updated == 2
        assert {t.id for t in await repo.list_by_category(coffee.id)} == {r.id for r in rows}
        assert await repo.list_uncategorized() == []

        assert await repo.update_category(rows[0].id, None)
        assert [t.id for t in await repo.list_uncategorized()] == [rows[0].id]

    @pytest.mark.asyncio
    async def test_assign_category_no_ids(self, db_session, coffee):
        assert await TransactionRepository(db_session).assign_category([], coffee.id) == 0

    @pytest.mark.asyncio
    async def test_get_by_date_range(self, db_session, make_transaction):
        repo = TransactionRepository(db_session)
        await repo.bulk_insert(
            [
                make_transaction("A", txn_date=date(2024, 1, 5)),
                make_transaction("B", txn_date=date(2024, 1, 20)),
                make_transaction("C", txn_date=date(2024, 2, 5)),
            ]
        )
        found = await repo.get_by_date_range(date(2024, 1, 1), date(2024, 1, 31))
        assert [t.description for t in found] == ["B", "A"]


class TestDuplicateDetector:
    """Test duplicate detection against stored rows."""

    @pytest.mark.asyncio
    async def test_exact_match_only(self, db_session, make_transaction):
        """Test description case and spacing make a row distinct."""
        repo = TransactionRepository(db_session)
        await repo.bulk_insert([make_transaction("Starbucks #4410", amount_out_cents=525)])

        candidates = [
            make_transaction("Starbucks #4410", amount_out_cents=525),
            make_transaction("STARBUCKS #4410", amount_out_cents=525),
            make_transaction("Starbucks  #4410", amount_out_cents=525),
            make_transaction("Starbucks #4410", amount_out_cents=526),
        ]
        duplicates = await DuplicateDetector(repo).find_duplicate_signatures(candidates)

        assert duplicates == {signature(date(2024, 1, 15), "Starbucks #4410", 525, 0)}

    @pytest.mark.asyncio
    async def test_no_candidates(self, db_session):
        detector = DuplicateDetector(TransactionRepository(db_session))
        assert await detector.find_duplicate_signatures([]) == set()


class TestCategoryRepository:
    @pytest.mark.asyncio
    async def test_lookup_and_ordering(self, db_session, coffee):
        repo = CategoryRepository(db_session)
        await repo.create(Category(name="Groceries", keywords=[], display_order=1))

        assert (await repo.get_by_name("  coffee ")).id == coffee.id
        assert await repo.get_by_name("Rent") is None
        assert [c.name for c in await repo.list_ordered()] == ["Groceries", "Coffee"]
        assert await repo.next_display_order() == 4

    @pytest.mark.asyncio
    async def test_next_display_order_empty(self, db_session):
        assert await CategoryRepository(db_session).next_display_order() == 1

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db_session, coffee):
        repo = CategoryRepository(db_session)
        renamed = await repo.update(coffee.id, {"name": "Cafes"})
        assert renamed.name == "Cafes"

        assert await repo.delete(coffee.id)
        assert await repo.get_by_id(coffee.id) is None
        assert not await repo.delete(coffee.id)


class TestImportBatchRepository:
    @pytest.mark.asyncio
    async def test_record_and_list(self, db_session):
        repo = ImportBatchRepository(db_session)
        batch = await repo.record("cibc.csv", "CIBC", transaction_count=3, total_amount_out_cents=1234)
        await db_session.commit()

        assert batch.id is not None
        batches = await repo.list_recent()
        assert [b.id for b in batches] == [batch.id]
        assert batches[0].total_amount_out_cents == 1234
