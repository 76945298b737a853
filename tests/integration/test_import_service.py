"""Integration tests for the import pipeline, from file bytes to committed rows."""

import json
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.exceptions import (
    FormatValidationError,
    ImportBatchNotFoundError,
    ImportSessionBlockedError,
    StructuralError,
    UnknownFormatError,
)
from ledger.repositories.transaction import TransactionRepository
from ledger.schemas.internal import ColumnMapping
from ledger.services.import_session import RowStatus
from ledger.services.imports import ImportService

CIBC_FILE = (
    b"01/15/2024,STARBUCKS #4410,5.25,\n"
    b"01/16/2024,PAYROLL ACME,,1500.00\n"
    b"01/17/2024,LOBLAWS 1001,82.10,\n"
    b"01/18/2024,SHELL 55,40.00,\n"
    b"01/19/2024,AMAZON MKTP,19.99,\n"
)


@pytest.fixture
async def service(db_session: AsyncSession, system_categories) -> ImportService:
    service = ImportService(db_session)
    await service.category_service.create_category("Coffee", ["STARBUCKS"])
    await service.category_service.create_category("Groceries", ["LOBLAWS"])
    return service


async def _session(service: ImportService, content: bytes = CIBC_FILE, file_name: str = "cibc.csv"):
    outcome = await service.parse_file(content, file_name, "CIBC")
    return await service.start_session(outcome, file_name)


class TestDetect:
    @pytest.mark.asyncio
    async def test_known_format(self, service):
        grid = await service.read_file(CIBC_FILE, "export.csv")
        detection, columns, mapping = service.detect(grid)

        assert detection.format_id == "CIBC"
        assert mapping is None
        assert columns.date_column == 0

    @pytest.mark.asyncio
    async def test_unknown_format_suggests_mapping(self, service):
        content = b"Date,Description,Amount\n15/01/2024,STARBUCKS,-5.25\n16/01/2024,PAYROLL,1500.00\n"
        grid = await service.read_file(content, "bank.csv")
        detection, _, mapping = service.detect(grid)

        assert detection.requires_mapping
        assert mapping is not None
        assert (mapping.date_column, mapping.description_column) == (0, 1)
        assert mapping.use_negative_for_out

    @pytest.mark.asyncio
    async def test_empty_file(self, service):
        with pytest.raises(StructuralError):
            await service.read_file(b"", "empty.csv")


class TestParseAndSession:
    """Test parsing into a review session."""

    @pytest.mark.asyncio
    async def test_first_pass(self, service):
        session = await _session(service)
        summary = session.summary()

        assert summary.total == 5
        # Coffee, Income, Groceries
        assert summary.categorized == 3
        assert summary.uncategorized == 2
        assert not session.is_blocking

    @pytest.mark.asyncio
    async def test_invalid_outcome_cannot_start_session(self, service):
        outcome = await service.parse_file(b"15/01/2024,STARBUCKS,5.25,\n" * 3, "x.csv", "CIBC")
        assert not outcome.is_valid

        with pytest.raises(FormatValidationError) as exc_info:
            await service.start_session(outcome, "x.csv")
        assert exc_info.value.error_code == "IMPORT_002"
        assert exc_info.value.http_status == 422

    @pytest.mark.asyncio
    async def test_custom_mapping(self, service):
        content = b"Date,Description,Amount\n15/01/2024,STARBUCKS,-5.25\n16/01/2024,PAYROLL,1500.00\n"
        mapping = ColumnMapping.model_validate_json(
            json.dumps(
                {
                    "date_column": 0,
                    "description_column": 1,
                    "amount_out_column": 2,
                    "amount_in_column": 2,
                    "use_negative_for_out": True,
                    "date_format": "DMY",
                }
            )
        )
        outcome = await service.parse_file(content, "bank.csv", "CUSTOM", mapping)
        session = await service.start_session(outcome, "bank.csv")

        assert session.source_format == "CUSTOM"
        assert session.summary().categorized == 2

    @pytest.mark.asyncio
    async def test_custom_without_mapping(self, service):
        with pytest.raises(UnknownFormatError):
            await service.parse_file(CIBC_FILE, "bank.csv", "CUSTOM")

    @pytest.mark.asyncio
    async def test_keyword_added_during_review(self, service):
        """Test a keyword added mid-review applies after reprocessing."""
        session = await _session(service)
        fuel = await service.create_category(session, "Fuel")
        assert session.dirty

        await service.add_keyword(session, fuel.id, "SHELL")
        await service.reprocess(session)

        row = session.row(3)
        assert row.category_id == fuel.id
        assert row.was_uncategorized
        assert not session.dirty


class TestCommit:
    """Test committing reviewed sessions."""

    @pytest.mark.asyncio
    async def test_commit_records_batch(self, service, db_session):
        session = await _session(service)
        result = await service.commit(session)

        assert result.added == 5
        assert result.skipped == 0
        batches = await service.list_batches()
        assert [b.id for b in batches] == [result.batch_id]
        assert batches[0].transaction_count == 5
        assert batches[0].total_amount_out_cents == 525 + 8210 + 4000 + 1999

        stored = await TransactionRepository(db_session).list_all()
        assert {t.import_batch_id for t in stored} == {result.batch_id}

    @pytest.mark.asyncio
    async def test_stored_duplicates_skipped(self, service, db_session):
        """Test a five-row file with two stored rows adds three and skips two."""
        first = await _session(service, CIBC_FILE.split(b"\n", 2)[2])
        assert (await service.commit(first)).added == 3

        session = await _session(service)
        assert [row.status for row in session.duplicates()] == [RowStatus.SKIPPED, RowStatus.SKIPPED]
        result = await service.commit(session)

        assert (result.added, result.skipped) == (2, 3)
        assert len(await TransactionRepository(db_session).list_all()) == 5

    @pytest.mark.asyncio
    async def test_nothing_added_records_no_batch(self, service):
        await service.commit(await _session(service))
        result = await service.commit(await _session(service))

        assert result.added == 0
        assert result.batch_id is None
        assert len(await service.list_batches()) == 1

    @pytest.mark.asyncio
    async def test_forced_duplicate(self, service, db_session):
        await service.commit(await _session(service))
        session = await _session(service)
        session.import_duplicate(0)

        result = await service.commit(session)
        assert (result.added, result.skipped) == (1, 4)
        assert len(await TransactionRepository(db_session).list_all()) == 6

    @pytest.mark.asyncio
    async def test_blocked_commit(self, service, db_session):
        """Test unresolved conflicts block the commit and store nothing."""
        await service.category_service.create_category("Shopping", ["AMAZON", "SHELL"])
        await service.category_service.create_category("Fuel", ["SHELL 55"])
        session = await _session(service)
        assert session.row(3).status is RowStatus.CONFLICT

        with pytest.raises(ImportSessionBlockedError) as exc_info:
            await service.commit(session)
        assert exc_info.value.error_code == "IMPORT_005"
        assert exc_info.value.message == "1 conflict need attention before importing"
        assert await TransactionRepository(db_session).list_all() == []

        fuel_id = next(c.id for c in session.categories if c.name == "Fuel")
        session.resolve_conflict(3, fuel_id)
        assert (await service.commit(session)).added == 5


class TestDeleteBatch:
    """Test undoing a committed import."""

    @pytest.mark.asyncio
    async def test_delete_removes_only_that_batch(self, service, db_session):
        first = await service.commit(await _session(service, CIBC_FILE.split(b"\n", 2)[2]))
        second = await service.commit(await _session(service))
        assert (first.added, second.added) == (3, 2)

        assert await service.delete_batch(first.batch_id) == 3

        stored = await TransactionRepository(db_session).list_all()
        assert [t.description for t in stored] == ["STARBUCKS #4410", "PAYROLL ACME"]
        assert {t.import_batch_id for t in stored} == {second.batch_id}
        assert [b.id for b in await service.list_batches()] == [second.batch_id]

    @pytest.mark.asyncio
    async def test_reimport_after_delete(self, service):
        """Test deleted rows no longer count as duplicates."""
        result = await service.commit(await _session(service))
        await service.delete_batch(result.batch_id)

        session = await _session(service)
        assert session.duplicates() == []
        assert (await service.commit(session)).added == 5

    @pytest.mark.asyncio
    async def test_missing_batch(self, service):
        with pytest.raises(ImportBatchNotFoundError) as exc_info:
            await service.delete_batch(uuid4())
        assert exc_info.value.error_code == "IMPORT_006"
        assert exc_info.value.http_status == 404
