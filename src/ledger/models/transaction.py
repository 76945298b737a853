"""Transaction model for persisted ledger rows."""
from datetime import date
from uuid import UUID

from sqlalchemy import BigInteger, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger.models.base import BaseModel


class Transaction(BaseModel):
    """A canonical transaction that has been committed from an import.

    Amounts are in minor units (cents). ``category_id`` NULL means the
    transaction is uncategorized.
    """

    __tablename__ = "transactions"

    txn_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    match_field: Mapped[str] = mapped_column(Text, nullable=False)
    amount_out_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    amount_in_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    net_amount_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    source_format: Mapped[str] = mapped_column(String(50), nullable=False)
    category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    import_batch_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("import_batches.id", ondelete="SET NULL"), nullable=True, index=True
    )

    __table_args__ = (
        Index("ix_transactions_txn_date_description", "txn_date", "description"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, date={self.txn_date}, "
            f"out={self.amount_out_cents}, in={self.amount_in_cents})>"
        )
