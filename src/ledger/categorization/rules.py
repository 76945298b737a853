"""Deterministic keyword categorization.

A transaction belongs to a category when one of the category's keywords
is a case-insensitive substring of the transaction's match text. Matching
is set-based rather than first-match-wins:

- no category matches: uncategorized
- exactly one matches: that category
- several match: a conflict, resolved by the user, with every candidate kept

This keeps results independent of category order and explainable from the
current keyword sets alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence
from uuid import UUID

from ledger.core.exceptions import KeywordConflictError
from ledger.models.category import EXCLUDED, UNCATEGORIZED
from ledger.schemas.internal import CanonicalTransaction, CategorizedTransaction


def normalize_keyword(keyword: str) -> str:
    """Comparison key for a keyword (case-insensitive, trimmed)."""
    return (keyword or "").strip().lower()


@dataclass(frozen=True)
class CategoryRule:
    """Read-only view of a category used for matching."""

    id: UUID
    name: str
    keywords: tuple[str, ...] = ()
    is_system: bool = False
    _lowered: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lowered = tuple(k for k in (normalize_keyword(k) for k in self.keywords) if k)
        object.__setattr__(self, "_lowered", lowered)

    @classmethod
    def from_model(cls, category) -> CategoryRule:
        return cls(
            id=category.id,
            name=category.name,
            keywords=tuple(category.keywords or ()),
            is_system=category.is_system,
        )

    @property
    def is_uncategorized(self) -> bool:
        return self.is_system and self.name == UNCATEGORIZED

    @property
    def is_excluded(self) -> bool:
        return self.is_system and self.name == EXCLUDED

    def matches(self, text: str) -> bool:
        lowered = (text or "").lower()
        return any(keyword in lowered for keyword in self._lowered)

    def with_keywords(self, keywords: Iterable[str]) -> CategoryRule:
        return CategoryRule(id=self.id, name=self.name, keywords=tuple(keywords), is_system=self.is_system)


@dataclass(frozen=True)
class CategorizationOutcome:
    category_id: UUID | None = None
    is_conflict: bool = False
    candidate_ids: tuple[UUID, ...] = ()

    @property
    def is_unmatched(self) -> bool:
        return self.category_id is None and not self.is_conflict


def matchable_categories(categories: Iterable[CategoryRule]) -> list[CategoryRule]:
    """Every category keyword matching may route into (all but Uncategorized)."""
    return [category for category in categories if not category.is_uncategorized]


def find_matching_categories(
    match_field: str, categories: Iterable[CategoryRule]
) -> list[CategoryRule]:
    return [category for category in matchable_categories(categories) if category.matches(match_field)]


def evaluate(match_field: str, categories: Sequence[CategoryRule]) -> CategorizationOutcome:
    matches = find_matching_categories(match_field, categories)
    if not matches:
        return CategorizationOutcome()
    if len(matches) == 1:
        return CategorizationOutcome(category_id=matches[0].id)
    return CategorizationOutcome(
        is_conflict=True, candidate_ids=tuple(category.id for category in matches)
    )


def categorize(
    transactions: Sequence[CanonicalTransaction], categories: Sequence[CategoryRule]
) -> list[CategorizedTransaction]:
    """Categorize transactions against the given categories.

    Pure: the same transactions and categories always give the same result.
    """
    categorized = []
    for transaction in transactions:
        outcome = evaluate(transaction.match_field, categories)
        categorized.append(
            CategorizedTransaction(
                transaction=transaction,
                category_id=outcome.category_id,
                is_conflict=outcome.is_conflict,
                conflict_category_ids=list(outcome.candidate_ids),
            )
        )
    return categorized


def keyword_sets_equal(old: Iterable[str], new: Iterable[str]) -> bool:
    """Compare keyword lists ignoring order, case and blanks."""
    return {normalize_keyword(k) for k in old if normalize_keyword(k)} == {
        normalize_keyword(k) for k in new if normalize_keyword(k)
    }


def find_keyword_owner(
    keyword: str, categories: Iterable[CategoryRule], exclude_id: UUID | None = None
) -> CategoryRule | None:
    wanted = normalize_keyword(keyword)
    for category in categories:
        if category.id == exclude_id:
            continue
        if any(normalize_keyword(existing) == wanted for existing in category.keywords):
            return category
    return None


def clean_keywords(
    category_id: UUID | None, keywords: Iterable[str], categories: Iterable[CategoryRule]
) -> list[str]:
    """Trim and check a keyword list before it is stored.

    Blank keywords are dropped; case is preserved.

    Raises:
        KeywordConflictError: If the list repeats a keyword, or a keyword is
            already owned by another category
    """
    categories = list(categories)
    cleaned: list[str] = []
    seen: set[str] = set()
    for keyword in keywords:
        text = (keyword or "").strip()
        key = text.lower()
        if not key:
            continue
        if key in seen:
            raise KeywordConflictError(
                "CAT_001",
                {"keyword": text},
                http_status=409,
                message="This keyword already exists",
            )
        owner = find_keyword_owner(text, categories, exclude_id=category_id)
        if owner is not None:
            raise KeywordConflictError(
                "CAT_001",
                {"keyword": text, "category_id": str(owner.id), "category_name": owner.name},
                http_status=409,
                message=f'Keyword "{text}" already exists in "{owner.name}"',
            )
        seen.add(key)
        cleaned.append(text)
    return cleaned
