"""Import batch model: one row per committed file import."""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.models.base import BaseModel


class ImportBatch(BaseModel):
    __tablename__ = "import_batches"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_format: Mapped[str] = mapped_column(String(50), nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_amount_out_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ImportBatch(id={self.id}, file={self.file_name}, count={self.transaction_count})>"
