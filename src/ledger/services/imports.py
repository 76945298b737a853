"""Import orchestration service.

This module drives a statement file through the ingestion pipeline:
1. Read the file into a grid
2. Detect the format (or infer columns for a manual mapping)
3. Validate and parse with the selected parser
4. Categorize rows and flag stored duplicates (ImportSession)
5. Commit the session in one database transaction
"""

import asyncio
import logging
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.exceptions import (
    FormatValidationError,
    ImportBatchNotFoundError,
    ImportSessionBlockedError,
)
from ledger.models.category import Category
from ledger.models.import_batch import ImportBatch
from ledger.models.transaction import Transaction
from ledger.parsers.columns import infer_columns, suggest_mapping
from ledger.parsers.factory import get_parser_factory
from ledger.parsers.reader import Grid, read_tabular
from ledger.repositories.import_batch import ImportBatchRepository
from ledger.repositories.transaction import TransactionRepository
from ledger.schemas.internal import (
    ColumnDetectionResult,
    ColumnMapping,
    CommitResult,
    FormatDetection,
    ParseOutcome,
    RecategorizeResult,
)
from ledger.services.category import CategoryService
from ledger.services.duplicates import DuplicateDetector
from ledger.services.import_session import ImportSession, SessionTransaction

logger = logging.getLogger(__name__)


class ImportService:
    """Service for importing bank statement exports.

    Parsing and categorization never touch the store except to look up
    categories and duplicates; only ``commit`` writes.
    """

    def __init__(self, db: AsyncSession):
        """Initialize the service.

        Args:
            db: Database session for lookups and persistence
        """
        self.db = db
        self.parser_factory = get_parser_factory()
        self.category_service = CategoryService(db)
        self.transaction_repo = TransactionRepository(db)
        self.batch_repo = ImportBatchRepository(db)
        self.duplicate_detector = DuplicateDetector(self.transaction_repo)

    async def read_file(self, content: bytes, file_name: str) -> Grid:
        """Read an upload into a grid off the event loop.

        Raises:
            StructuralError: If the file is unreadable or has no rows
        """
        return await asyncio.to_thread(read_tabular, content, file_name)

    def detect(self, grid: Grid) -> tuple[FormatDetection, ColumnDetectionResult, ColumnMapping | None]:
        """Detect the format and, for the mapping route, suggest columns."""
        detection = self.parser_factory.detect(grid, grid.file_name)
        columns = infer_columns(grid)
        mapping = suggest_mapping(columns) if detection.requires_mapping else None
        logger.info(
            "Format detection complete",
            extra={
                "format_id": detection.format_id,
                "confidence": detection.confidence.value,
                "requires_mapping": detection.requires_mapping,
            },
        )
        return detection, columns, mapping

    async def parse_file(
        self,
        content: bytes,
        file_name: str,
        format_id: str,
        mapping: ColumnMapping | None = None,
    ) -> ParseOutcome:
        """Read, validate and parse a file with one format.

        A failed validation is returned (``is_valid`` False) so the caller
        can choose another format or a manual mapping.

        Raises:
            StructuralError: If the file is unreadable or has no rows
            UnknownFormatError: For an unknown format, or CUSTOM without a mapping
        """
        grid = await self.read_file(content, file_name)
        outcome = self.parser_factory.parse(grid, format_id, mapping)
        logger.info(
            "File parsed",
            extra={
                "format_id": outcome.format_id,
                "is_valid": outcome.is_valid,
                "transactions_count": len(outcome.transactions),
                "errors_count": len(outcome.errors),
            },
        )
        return outcome

    async def start_session(self, outcome: ParseOutcome, file_name: str) -> ImportSession:
        """Categorize parsed rows and flag the ones already stored.

        Raises:
            FormatValidationError: If the parse failed validation
        """
        if not outcome.is_valid:
            raise FormatValidationError(
                "IMPORT_002",
                {"format_id": outcome.format_id, "errors": outcome.errors},
                http_status=422,
                message="; ".join(outcome.errors) or None,
            )

        rules = await self.category_service.get_rules()
        duplicates = await self.duplicate_detector.find_duplicate_signatures(outcome.transactions)
        session = ImportSession(
            file_name,
            outcome.format_id,
            outcome.transactions,
            rules,
            duplicates,
            errors=outcome.errors,
            warnings=outcome.warnings,
        )
        logger.info("Import session started", extra=session.summary().model_dump())
        return session

    async def add_keyword(self, session: ImportSession, category_id: UUID, keyword: str) -> RecategorizeResult:
        """Persist a keyword picked during review; the session needs reprocessing."""
        result = await self.category_service.add_keyword(category_id, keyword)
        session.mark_dirty()
        return result

    async def create_category(
        self, session: ImportSession, name: str, keywords: Iterable[str] = ()
    ) -> Category:
        category, _ = await self.category_service.create_category(name, keywords)
        session.mark_dirty()
        return category

    async def reprocess(self, session: ImportSession) -> ImportSession:
        session.reprocess(await self.category_service.get_rules())
        return session

    async def commit(self, session: ImportSession) -> CommitResult:
        """Persist a reviewed session.

        Skipped duplicates are dropped, normal rows are inserted with a
        duplicate check against the store, and duplicates the user chose to
        import are inserted unconditionally. One import batch is recorded
        when anything was added.

        Raises:
            ImportSessionBlockedError: If conflicts or duplicates are unresolved
        """
        if session.is_blocking:
            raise ImportSessionBlockedError(
                "IMPORT_005",
                session.summary().model_dump(),
                http_status=409,
                message=session.blocking_message,
            )

        normal, forced, skipped = session.rows_to_commit()
        normal_records = self._to_records(normal, session.source_format)
        forced_records = self._to_records(forced, session.source_format)

        try:
            inserted = await self.transaction_repo.bulk_insert(normal_records)
            forced_inserted = await self.transaction_repo.bulk_insert(
                forced_records, skip_duplicate_check=True
            )
            added = inserted.added + forced_inserted.added

            batch: ImportBatch | None = None
            if added:
                batch = await self.batch_repo.record(
                    session.file_name,
                    session.source_format,
                    transaction_count=added,
                    total_amount_out_cents=(
                        inserted.total_amount_out_cents + forced_inserted.total_amount_out_cents
                    ),
                )
                # Records skipped by the store check were never added to the
                # session, so tagging them is harmless.
                for record in normal_records + forced_records:
                    record.import_batch_id = batch.id

            await self.db.commit()

        except Exception:
            await self.db.rollback()
            raise

        result = CommitResult(
            batch_id=batch.id if batch else None,
            added=added,
            skipped=skipped + inserted.skipped,
        )
        logger.info(
            "Import committed",
            extra={
                "batch_id": str(result.batch_id) if result.batch_id else None,
                "added": result.added,
                "skipped": result.skipped,
                "format_id": session.source_format,
            },
        )
        return result

    async def list_batches(self, skip: int = 0, limit: int = 50) -> list[ImportBatch]:
        return await self.batch_repo.list_recent(skip, limit)

    async def delete_batch(self, batch_id: UUID) -> int:
        """Undo an import: delete the batch and every transaction it added.

        Both deletes run in one database transaction.

        Returns:
            Number of transactions deleted

        Raises:
            ImportBatchNotFoundError: If no batch has this ID
        """
        batch = await self.batch_repo.get_by_id(batch_id)
        if batch is None:
            raise ImportBatchNotFoundError(
                "IMPORT_006", {"batch_id": str(batch_id)}, http_status=404, message="Import not found"
            )

        try:
            deleted = await self.transaction_repo.delete_by_batch(batch.id)
            await self.db.delete(batch)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Import batch deleted",
            extra={"batch_id": str(batch_id), "transactions_deleted": deleted},
        )
        return deleted

    @staticmethod
    def _to_records(rows: Sequence[SessionTransaction], source_format: str) -> list[Transaction]:
        return [
            Transaction(
                txn_date=row.transaction.txn_date,
                description=row.transaction.description,
                match_field=row.transaction.match_field,
                amount_out_cents=row.transaction.amount_out_cents,
                amount_in_cents=row.transaction.amount_in_cents,
                net_amount_cents=row.transaction.net_amount_cents,
                source_format=source_format,
                category_id=row.category_id,
            )
            for row in rows
        ]
