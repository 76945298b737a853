"""Transaction repository: date-window queries, bulk insert and category updates."""
from datetime import date, datetime, timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.transaction import Transaction
from ledger.repositories.base import BaseRepository
from ledger.schemas.internal import BulkInsertResult
from ledger.services.duplicates import signature, transaction_signature


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model.

    Write methods flush but do not commit; the calling service decides the
    transaction boundary.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def get_by_date_range(self, start_date: date, end_date: date) -> list[Transaction]:
        """Get transactions within a date range (inclusive)."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.txn_date >= start_date, Transaction.txn_date <= end_date)
            .order_by(Transaction.txn_date.desc())
        )
        return list(result.scalars().all())

    async def signatures_between(self, start_date: date, end_date: date) -> set[str]:
        """Duplicate signatures of stored transactions within a date range."""
        result = await self.db.execute(
            select(
                Transaction.txn_date,
                Transaction.description,
                Transaction.amount_out_cents,
                Transaction.amount_in_cents,
            ).where(Transaction.txn_date >= start_date, Transaction.txn_date <= end_date)
        )
        return {signature(*row) for row in result.all()}

    async def list_by_category(self, category_id: UUID) -> list[Transaction]:
        result = await self.db.execute(
            select(Transaction).where(Transaction.category_id == category_id)
        )
        return list(result.scalars().all())

    async def list_uncategorized(self) -> list[Transaction]:
        result = await self.db.execute(
            select(Transaction).where(Transaction.category_id.is_(None))
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Transaction]:
        result = await self.db.execute(select(Transaction).order_by(Transaction.txn_date))
        return list(result.scalars().all())

    async def bulk_insert(
        self, records: Sequence[Transaction], skip_duplicate_check: bool = False
    ) -> BulkInsertResult:
        """Insert transactions, skipping ones whose signature is already stored.

        With ``skip_duplicate_check`` every record is inserted (used for
        duplicates the user chose to import anyway).
        """
        records = list(records)
        if not records:
            return BulkInsertResult()

        to_add = records
        if not skip_duplicate_check:
            dates = [r.txn_date for r in records]
            existing = await self.signatures_between(min(dates), max(dates))
            to_add = [r for r in records if transaction_signature(r) not in existing]

        self.db.add_all(to_add)
        await self.db.flush()
        return BulkInsertResult(
            added=len(to_add),
            skipped=len(records) - len(to_add),
            total_amount_out_cents=sum(r.amount_out_cents for r in to_add),
        )

    async def delete_by_batch(self, batch_id: UUID) -> int:
        """Delete every transaction recorded under an import batch; returns rows deleted."""
        result = await self.db.execute(
            delete(Transaction).where(Transaction.import_batch_id == batch_id)
        )
        return result.rowcount or 0

    async def update_category(self, transaction_id: UUID, category_id: UUID | None) -> bool:
        """Set one transaction's category (None = uncategorized)."""
        return await self.assign_category([transaction_id], category_id) > 0

    async def assign_category(self, transaction_ids: Sequence[UUID], category_id: UUID | None) -> int:
        """Set the category of many transactions at once; returns rows updated."""
        if not transaction_ids:
            return 0
        result = await self.db.execute(
            update(Transaction)
            .where(Transaction.id.in_(list(transaction_ids)))
            .values(category_id=category_id, updated_at=datetime.now(timezone.utc))
        )
        return result.rowcount or 0
