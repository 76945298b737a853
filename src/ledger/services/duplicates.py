"""Signature-based duplicate detection against stored transactions.

A transaction's signature is date, raw description, money out and money
in. Two rows are duplicates only when all four match exactly; description
casing and whitespace differences are different transactions.
"""

import logging
from datetime import date
from typing import Iterable

logger = logging.getLogger(__name__)


def signature(txn_date: date, description: str, amount_out_cents: int, amount_in_cents: int) -> str:
    return f"{txn_date.isoformat()}|{description}|{amount_out_cents}|{amount_in_cents}"


def transaction_signature(transaction) -> str:
    """Signature of any object with canonical transaction fields."""
    return signature(
        transaction.txn_date,
        transaction.description,
        transaction.amount_out_cents,
        transaction.amount_in_cents,
    )


class DuplicateDetector:
    """Finds which candidate transactions already exist in the store.

    Args:
        transaction_repo: TransactionRepository used to query stored rows
    """

    def __init__(self, transaction_repo):
        self.transaction_repo = transaction_repo

    async def find_duplicate_signatures(self, candidates: Iterable) -> set[str]:
        """Return the candidate signatures already present in the store.

        Only stored transactions inside the candidates' date window
        (earliest to latest candidate date) are consulted.
        """
        candidates = list(candidates)
        if not candidates:
            return set()

        dates = [c.txn_date for c in candidates]
        existing = await self.transaction_repo.signatures_between(min(dates), max(dates))
        wanted = {transaction_signature(c) for c in candidates}
        duplicates = wanted & existing

        logger.info(
            "Duplicate check complete",
            extra={"candidates_count": len(candidates), "duplicates_count": len(duplicates)},
        )
        return duplicates
