"""Planning for recategorization of stored transactions.

These functions decide which stored transactions move where after a
keyword change, a category deletion or an explicit bulk run. They are pure;
the category service applies the resulting plan inside one database
transaction.

Transactions are any objects with ``id``, ``match_field`` and
``category_id`` attributes (ORM rows in production).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence
from uuid import UUID

from ledger.categorization.rules import (
    CategoryRule,
    find_matching_categories,
    keyword_sets_equal,
    matchable_categories,
)
from ledger.schemas.internal import BulkRecategorizeResult, RecategorizeResult


class RecategorizeMode(str, Enum):
    UNCATEGORIZED = "uncategorized"
    ALL = "all"


@dataclass
class RecategorizationPlan:
    """Category changes to apply, keyed by transaction id (None = uncategorize)."""

    changes: dict[UUID, UUID | None] = field(default_factory=dict)
    processed: int = 0
    assigned: int = 0
    uncategorized: int = 0
    conflicts: int = 0

    def result(self) -> RecategorizeResult:
        return RecategorizeResult(
            assigned=self.assigned, uncategorized=self.uncategorized, conflicts=self.conflicts
        )

    def bulk_result(self) -> BulkRecategorizeResult:
        return BulkRecategorizeResult(
            processed=self.processed,
            updated=len(self.changes),
            uncategorized=self.uncategorized,
            conflicts=self.conflicts,
        )


def _demote(plan: RecategorizationPlan, transactions: Iterable, others: Sequence[CategoryRule]) -> None:
    # Exactly one other category: move there. Zero or several: uncategorize.
    # This path never raises a conflict.
    for transaction in transactions:
        matches = [category for category in others if category.matches(transaction.match_field)]
        if len(matches) == 1:
            plan.changes[transaction.id] = matches[0].id
            plan.assigned += 1
        else:
            plan.changes[transaction.id] = None
            plan.uncategorized += 1


def plan_keyword_change(
    category: CategoryRule,
    old_keywords: Iterable[str],
    categories: Sequence[CategoryRule],
    in_category: Iterable,
    uncategorized: Iterable,
) -> RecategorizationPlan:
    """Plan the effects of replacing ``category``'s keywords.

    Args:
        category: The category with its new keywords
        old_keywords: Keywords before the change
        categories: All categories, with ``category`` already at its new keywords
        in_category: Stored transactions currently assigned to ``category``
        uncategorized: Stored transactions with no category

    Returns:
        Plan with assigned / uncategorized / conflict counts. Empty when
        the keyword sets are equal ignoring case and order.
    """
    plan = RecategorizationPlan()
    if keyword_sets_equal(old_keywords, category.keywords):
        return plan

    others = [c for c in matchable_categories(categories) if c.id != category.id]

    # Excluded membership is a manual choice, not a keyword result.
    if not category.is_excluded:
        _demote(
            plan,
            [t for t in in_category if not category.matches(t.match_field)],
            others,
        )

    for transaction in uncategorized:
        if not category.matches(transaction.match_field):
            continue
        if any(other.matches(transaction.match_field) for other in others):
            plan.conflicts += 1
            continue
        plan.changes[transaction.id] = category.id
        plan.assigned += 1

    return plan


def plan_category_removal(
    removed_id: UUID, categories: Sequence[CategoryRule], in_category: Iterable
) -> RecategorizationPlan:
    """Plan where a deleted category's transactions go."""
    plan = RecategorizationPlan()
    others = [c for c in matchable_categories(categories) if c.id != removed_id]
    _demote(plan, in_category, others)
    return plan


def plan_bulk(
    mode: RecategorizeMode, categories: Sequence[CategoryRule], transactions: Iterable
) -> RecategorizationPlan:
    """Plan an explicit recategorization pass.

    ``uncategorized`` mode only looks at transactions without a category;
    ``all`` mode looks at everything except manually excluded transactions.
    A conflicted transaction keeps its category when that category is one
    of the matches, so running the pass twice changes nothing the second
    time.
    """
    mode = RecategorizeMode(mode)
    excluded_ids = {c.id for c in categories if c.is_excluded}
    plan = RecategorizationPlan()

    for transaction in transactions:
        current = transaction.category_id
        if mode is RecategorizeMode.UNCATEGORIZED and current is not None:
            continue
        if mode is RecategorizeMode.ALL and current in excluded_ids:
            continue
        plan.processed += 1

        matches = find_matching_categories(transaction.match_field, categories)
        if len(matches) == 1:
            target = matches[0].id
        elif matches:
            plan.conflicts += 1
            target = current if current in {m.id for m in matches} else None
        else:
            target = None

        if target == current:
            continue
        plan.changes[transaction.id] = target
        if target is None:
            plan.uncategorized += 1
        else:
            plan.assigned += 1

    return plan
