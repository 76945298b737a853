"""Import batch repository."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.import_batch import ImportBatch
from ledger.repositories.base import BaseRepository


class ImportBatchRepository(BaseRepository[ImportBatch]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, ImportBatch)

    async def record(
        self,
        file_name: str,
        source_format: str,
        transaction_count: int = 0,
        total_amount_out_cents: int = 0,
    ) -> ImportBatch:
        """Add an import batch row and flush it so its id is usable.

        The caller owns the commit.
        """
        batch = ImportBatch(
            file_name=file_name,
            source_format=source_format,
            transaction_count=transaction_count,
            total_amount_out_cents=total_amount_out_cents,
        )
        self.db.add(batch)
        await self.db.flush()
        return batch

    async def list_recent(self, skip: int = 0, limit: int = 50) -> list[ImportBatch]:
        result = await self.db.execute(
            select(ImportBatch)
            .order_by(ImportBatch.imported_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
