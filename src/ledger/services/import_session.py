"""In-memory state of one file import, between parsing and commit.

Each row carries its canonical transaction plus the decisions the user
makes before committing. Row status is always derived from those fields,
never stored:

- conflict (blocks commit): several categories matched and none chosen yet
- duplicate (blocks commit): already stored and neither imported nor skipped
- uncategorized (informational): no category matched at some pass and the
  row still has no category

Nothing here touches the database; ImportService persists the result.
"""

import logging
from enum import Enum
from typing import Sequence
from uuid import UUID

from ledger.categorization.rules import CategorizationOutcome, CategoryRule, evaluate
from ledger.schemas.internal import CanonicalTransaction, SessionSummary
from ledger.services.duplicates import transaction_signature

logger = logging.getLogger(__name__)


class RowStatus(str, Enum):
    READY = "ready"
    CONFLICT = "conflict"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    UNCATEGORIZED = "uncategorized"


class SessionTransaction:
    """One parsed row and the user's decisions about it.

    ``passes`` is the append-only history of categorization outcomes; the
    first entry is the snapshot taken when the file was parsed.
    """

    def __init__(
        self,
        index: int,
        transaction: CanonicalTransaction,
        first_pass: CategorizationOutcome,
        is_duplicate: bool = False,
    ):
        self.index = index
        self.transaction = transaction
        self.is_duplicate = is_duplicate
        self.passes: tuple[CategorizationOutcome, ...] = ()
        self.category_id: UUID | None = None
        self.is_conflict = False
        self.conflict_category_ids: list[UUID] = []
        # Duplicates are skipped unless the user says otherwise.
        self.import_duplicate = False
        self.skip_duplicate = is_duplicate
        self.apply(first_pass)

    def apply(self, outcome: CategorizationOutcome) -> None:
        """Take a categorization result, replacing any manual choice."""
        self.passes = self.passes + (outcome,)
        self.category_id = outcome.category_id
        self.is_conflict = outcome.is_conflict
        self.conflict_category_ids = list(outcome.candidate_ids)

    @property
    def first_pass(self) -> CategorizationOutcome:
        return self.passes[0]

    @property
    def was_uncategorized(self) -> bool:
        return any(outcome.is_unmatched for outcome in self.passes)

    @property
    def is_conflict_unresolved(self) -> bool:
        return self.is_conflict and self.category_id is None

    @property
    def is_duplicate_unresolved(self) -> bool:
        return self.is_duplicate and not self.import_duplicate and not self.skip_duplicate

    @property
    def is_uncategorized(self) -> bool:
        return self.was_uncategorized and self.category_id is None

    @property
    def is_blocking(self) -> bool:
        return self.is_conflict_unresolved or self.is_duplicate_unresolved

    @property
    def status(self) -> RowStatus:
        if self.is_conflict_unresolved:
            return RowStatus.CONFLICT
        if self.is_duplicate_unresolved:
            return RowStatus.DUPLICATE
        if self.is_duplicate and self.skip_duplicate:
            return RowStatus.SKIPPED
        if self.is_uncategorized:
            return RowStatus.UNCATEGORIZED
        return RowStatus.READY


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


class ImportSession:
    """Rows of one import and the operations the review step performs on them.

    Example:
        >>> session = ImportSession("cibc.csv", "CIBC", transactions, rules, duplicates)
        >>> for row in session.conflicts():
        ...     session.resolve_conflict(row.index, row.conflict_category_ids[0])
        >>> session.is_blocking
        False
    """

    def __init__(
        self,
        file_name: str,
        source_format: str,
        transactions: Sequence[CanonicalTransaction],
        categories: Sequence[CategoryRule],
        duplicate_signatures: set[str] | frozenset[str] = frozenset(),
        errors: Sequence[str] = (),
        warnings: Sequence[str] = (),
    ):
        self.file_name = file_name
        self.source_format = source_format
        self.categories = list(categories)
        self.errors = list(errors)
        self.warnings = list(warnings)
        self.dirty = False
        self.rows = [
            SessionTransaction(
                index,
                transaction,
                evaluate(transaction.match_field, self.categories),
                transaction_signature(transaction) in duplicate_signatures,
            )
            for index, transaction in enumerate(transactions)
        ]

    def __len__(self) -> int:
        return len(self.rows)

    def row(self, index: int) -> SessionTransaction:
        if not 0 <= index < len(self.rows):
            raise ValueError(f"No transaction at position {index}")
        return self.rows[index]

    def _category(self, category_id: UUID) -> CategoryRule:
        for category in self.categories:
            if category.id == category_id:
                return category
        raise ValueError(f"Unknown category: {category_id}")

    def _excluded_category(self) -> CategoryRule:
        for category in self.categories:
            if category.is_excluded:
                return category
        raise ValueError("Excluded category is missing")

    # Views

    def conflicts(self) -> list[SessionTransaction]:
        return [row for row in self.rows if row.is_conflict_unresolved]

    def duplicates(self) -> list[SessionTransaction]:
        return [row for row in self.rows if row.is_duplicate]

    def uncategorized(self) -> list[SessionTransaction]:
        return [row for row in self.rows if row.is_uncategorized]

    @property
    def is_blocking(self) -> bool:
        return any(row.is_blocking for row in self.rows)

    @property
    def blocking_message(self) -> str:
        conflicts = len(self.conflicts())
        duplicates = sum(1 for row in self.rows if row.is_duplicate_unresolved)
        parts = []
        if conflicts:
            parts.append(_plural(conflicts, "conflict"))
        if duplicates:
            parts.append(_plural(duplicates, "duplicate"))
        if not parts:
            return ""
        return " and ".join(parts) + " need attention before importing"

    def summary(self) -> SessionSummary:
        return SessionSummary(
            categorized=sum(1 for row in self.rows if row.category_id is not None),
            conflicts=len(self.conflicts()),
            uncategorized=sum(
                1 for row in self.rows if row.category_id is None and not row.is_conflict
            ),
            duplicates=sum(1 for row in self.rows if row.is_duplicate_unresolved),
            total=len(self.rows),
        )

    # Conflicts

    def resolve_conflict(self, index: int, category_id: UUID) -> None:
        row = self.row(index)
        if not row.is_conflict:
            raise ValueError(f"Transaction {index} is not a conflict")
        self._category(category_id)
        row.category_id = category_id

    def undo_conflict(self, index: int) -> None:
        row = self.row(index)
        if not row.is_conflict:
            raise ValueError(f"Transaction {index} is not a conflict")
        row.category_id = None

    # Uncategorized rows

    def assign_category(self, index: int, category_id: UUID | None) -> None:
        row = self.row(index)
        if category_id is not None:
            self._category(category_id)
        row.category_id = category_id

    def exclude(self, index: int) -> None:
        self.assign_category(index, self._excluded_category().id)

    def undo_exclude(self, index: int) -> None:
        row = self.row(index)
        if row.category_id == self._excluded_category().id:
            row.category_id = None

    def exclude_all_uncategorized(self) -> int:
        """Move every row with no category to Excluded, leaving conflicts for review."""
        excluded_id = self._excluded_category().id
        rows = [row for row in self.uncategorized() if not row.is_conflict_unresolved]
        for row in rows:
            row.category_id = excluded_id
        return len(rows)

    # Duplicates

    def _duplicate_row(self, index: int) -> SessionTransaction:
        row = self.row(index)
        if not row.is_duplicate:
            raise ValueError(f"Transaction {index} is not a duplicate")
        return row

    def import_duplicate(self, index: int) -> None:
        row = self._duplicate_row(index)
        row.import_duplicate, row.skip_duplicate = True, False

    def skip_duplicate(self, index: int) -> None:
        row = self._duplicate_row(index)
        row.import_duplicate, row.skip_duplicate = False, True

    def reset_duplicate(self, index: int) -> None:
        """Clear the decision on a duplicate so it needs review again."""
        row = self._duplicate_row(index)
        row.import_duplicate = row.skip_duplicate = False

    def import_all_duplicates(self) -> int:
        rows = self.duplicates()
        for row in rows:
            row.import_duplicate, row.skip_duplicate = True, False
        return len(rows)

    def skip_all_duplicates(self) -> int:
        rows = self.duplicates()
        for row in rows:
            row.import_duplicate, row.skip_duplicate = False, True
        return len(rows)

    # Keyword changes

    def mark_dirty(self) -> None:
        """Record that categories changed since the rows were categorized."""
        self.dirty = True

    def reprocess(self, categories: Sequence[CategoryRule]) -> None:
        """Re-run categorization over every row with the current categories."""
        self.categories = list(categories)
        for row in self.rows:
            row.apply(evaluate(row.transaction.match_field, self.categories))
        self.dirty = False
        logger.info("Import session reprocessed", extra={"rows": len(self.rows)})

    # Commit

    def rows_to_commit(self) -> tuple[list[SessionTransaction], list[SessionTransaction], int]:
        """Split rows into (normal rows, duplicates to force-import, skipped count)."""
        normal = []
        forced = []
        skipped = 0
        for row in self.rows:
            if row.is_duplicate and row.skip_duplicate:
                skipped += 1
            elif row.is_duplicate:
                forced.append(row)
            else:
                normal.append(row)
        return normal, forced, skipped
