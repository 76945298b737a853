"""Category management and store recategorization.

Every operation that changes keywords or removes a category applies the
resulting recategorization in the same database transaction as the
category write: both commit or both roll back.
"""

import logging
from collections import defaultdict
from typing import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.categorization.recategorize import (
    RecategorizationPlan,
    RecategorizeMode,
    plan_bulk,
    plan_category_removal,
    plan_keyword_change,
)
from ledger.categorization.rules import (
    CategoryRule,
    clean_keywords,
    find_keyword_owner,
    normalize_keyword,
)
from ledger.core.exceptions import (
    CategoryNotFoundError,
    InvalidCategoryError,
    SystemCategoryError,
)
from ledger.models.category import EXCLUDED, INCOME, UNCATEGORIZED, Category
from ledger.repositories.category import CategoryRepository
from ledger.repositories.transaction import TransactionRepository
from ledger.schemas.internal import BulkRecategorizeResult, RecategorizeResult

logger = logging.getLogger(__name__)


SYSTEM_CATEGORIES: dict[str, list[str]] = {
    UNCATEGORIZED: [],
    EXCLUDED: [],
    INCOME: ["SALARY", "PAYROLL", "DEPOSIT", "DIRECT DEP", "E-TRANSFER IN"],
}

DEFAULT_CATEGORIES: dict[str, list[str]] = {
    "Groceries": ["LOBLAWS", "METRO", "SOBEYS", "FARM BOY", "WALMART", "COSTCO"],
    "Dining & Restaurants": ["RESTAURANT", "MCDONALD", "TIM HORTONS", "STARBUCKS", "SUBWAY", "PIZZA"],
    "Gas & Transportation": ["SHELL", "ESSO", "PETRO", "CANADIAN TIRE GAS", "UBER", "LYFT", "PRESTO"],
    "Subscriptions": ["NETFLIX", "SPOTIFY", "DISNEY", "AMAZON PRIME", "APPLE.COM", "GOOGLE"],
    "Shopping": ["AMAZON", "AMZN MKTP", "BEST BUY", "HOME DEPOT", "IKEA"],
    "Utilities & Bills": ["ROGERS", "BELL", "TELUS", "HYDRO", "ENBRIDGE", "INSURANCE"],
    "Healthcare": ["PHARMACY", "SHOPPERS", "REXALL", "MEDICAL", "DENTAL", "CLINIC"],
}


def _not_found(category_id: UUID) -> CategoryNotFoundError:
    return CategoryNotFoundError(
        "CAT_003", {"category_id": str(category_id)}, http_status=404, message="Category not found"
    )


class CategoryService:
    """Service layer for categories and their keyword rules."""

    def __init__(self, db: AsyncSession):
        """Initialize category service with database session.

        Args:
            db: Database session
        """
        self.db = db
        self.category_repo = CategoryRepository(db)
        self.transaction_repo = TransactionRepository(db)

    async def list_categories(self) -> list[Category]:
        return await self.category_repo.list_ordered()

    async def get_rules(self) -> list[CategoryRule]:
        """Current categories as immutable matching rules."""
        return [CategoryRule.from_model(c) for c in await self.category_repo.list_ordered()]

    async def get_category(self, category_id: UUID) -> Category:
        """Get a category by ID.

        Raises:
            CategoryNotFoundError: If no category has this ID
        """
        category = await self.category_repo.get_by_id(category_id)
        if category is None:
            raise _not_found(category_id)
        return category

    async def ensure_system_categories(self, seed_defaults: bool = False) -> int:
        """Create missing system categories and, optionally, the default set.

        Default categories are only seeded into an empty store, and any
        default keyword already owned elsewhere is left out.

        Returns:
            Number of categories created
        """
        try:
            existing = await self.category_repo.list_ordered()
            names = {c.name.lower() for c in existing}
            to_create = {
                name: keywords
                for name, keywords in SYSTEM_CATEGORIES.items()
                if name.lower() not in names
            }
            defaults = seed_defaults and not existing
            if defaults:
                to_create.update(DEFAULT_CATEGORIES)

            if not to_create:
                return 0

            rules = [CategoryRule.from_model(c) for c in existing]
            order = await self.category_repo.next_display_order() if existing else 0
            for name, keywords in to_create.items():
                kept = [k for k in keywords if find_keyword_owner(k, rules) is None]
                category = Category(
                    name=name,
                    keywords=kept,
                    display_order=order,
                    is_system=name in SYSTEM_CATEGORIES,
                )
                self.db.add(category)
                await self.db.flush()
                rules.append(CategoryRule.from_model(category))
                order += 1

            await self.db.commit()
            logger.info(
                "Categories seeded",
                extra={"categories_created": len(to_create), "defaults": defaults},
            )
            return len(to_create)

        except Exception:
            await self.db.rollback()
            raise

    async def create_category(self, name: str, keywords: Iterable[str] = ()) -> tuple[Category, RecategorizeResult]:
        """Create a user category; uncategorized transactions it claims are assigned.

        Raises:
            InvalidCategoryError: If the name is empty or already taken
            KeywordConflictError: If a keyword is owned by another category
        """
        name = (name or "").strip()
        if not name:
            raise InvalidCategoryError("CAT_004", {"name": name}, http_status=422, message="Category name is required")
        if await self.category_repo.get_by_name(name) is not None:
            raise InvalidCategoryError(
                "CAT_004", {"name": name}, http_status=409, message=f'Category "{name}" already exists'
            )

        rules = await self.get_rules()
        cleaned = clean_keywords(None, keywords, rules)

        try:
            category = Category(
                name=name,
                keywords=cleaned,
                display_order=await self.category_repo.next_display_order(),
                is_system=False,
            )
            self.db.add(category)
            await self.db.flush()

            rule = CategoryRule.from_model(category)
            plan = plan_keyword_change(
                rule,
                [],
                rules + [rule],
                in_category=[],
                uncategorized=await self.transaction_repo.list_uncategorized(),
            )
            await self._apply(plan)
            await self.db.commit()
            await self.db.refresh(category)

        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Category created",
            extra={"category_id": str(category.id), "keywords": len(cleaned), "assigned": plan.assigned},
        )
        return category, plan.result()

    async def rename_category(self, category_id: UUID, name: str) -> Category:
        category = await self.get_category(category_id)
        name = (name or "").strip()
        if category.is_system:
            raise SystemCategoryError(
                "CAT_002", {"category_id": str(category_id)}, http_status=403, message="Cannot rename system categories"
            )
        if not name:
            raise InvalidCategoryError("CAT_004", {"name": name}, http_status=422, message="Category name is required")
        clash = await self.category_repo.get_by_name(name)
        if clash is not None and clash.id != category.id:
            raise InvalidCategoryError(
                "CAT_004", {"name": name}, http_status=409, message=f'Category "{name}" already exists'
            )
        return await self.category_repo.update(category.id, {"name": name})

    async def update_category_keywords(self, category_id: UUID, keywords: Iterable[str]) -> RecategorizeResult:
        """Replace a category's keywords and recategorize stored transactions.

        Transactions in the category that no longer match move to the single
        other category they match, or become uncategorized. Uncategorized
        transactions the new keywords claim are assigned, unless another
        category also matches (counted as a conflict and left alone).

        Args:
            category_id: Category to update
            keywords: Complete new keyword list

        Returns:
            RecategorizeResult with assigned / uncategorized / conflict counts

        Raises:
            CategoryNotFoundError: If the category does not exist
            SystemCategoryError: If the category is Uncategorized
            KeywordConflictError: If a keyword is owned by another category
        """
        category = await self.get_category(category_id)
        if category.is_uncategorized:
            raise SystemCategoryError(
                "CAT_002",
                {"category_id": str(category_id)},
                http_status=403,
                message="Uncategorized cannot have keywords",
            )

        rules = await self.get_rules()
        cleaned = clean_keywords(category.id, keywords, rules)
        old_keywords = list(category.keywords or [])

        current = CategoryRule.from_model(category).with_keywords(cleaned)
        updated_rules = [current if r.id == current.id else r for r in rules]

        try:
            plan = plan_keyword_change(
                current,
                old_keywords,
                updated_rules,
                in_category=await self.transaction_repo.list_by_category(category.id),
                uncategorized=await self.transaction_repo.list_uncategorized(),
            )
            category.keywords = cleaned
            await self._apply(plan)
            await self.db.commit()

        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Category keywords updated",
            extra={
                "category_id": str(category_id),
                "keywords": len(cleaned),
                "assigned": plan.assigned,
                "uncategorized": plan.uncategorized,
                "conflicts": plan.conflicts,
            },
        )
        return plan.result()

    async def add_keyword(self, category_id: UUID, keyword: str) -> RecategorizeResult:
        """Append one keyword; adding one the category already has is a no-op."""
        category = await self.get_category(category_id)
        keywords = list(category.keywords or [])
        if any(normalize_keyword(k) == normalize_keyword(keyword) for k in keywords):
            return RecategorizeResult()
        return await self.update_category_keywords(category_id, keywords + [keyword])

    async def remove_keyword(self, category_id: UUID, keyword: str) -> RecategorizeResult:
        category = await self.get_category(category_id)
        wanted = normalize_keyword(keyword)
        keywords = [k for k in category.keywords or [] if normalize_keyword(k) != wanted]
        return await self.update_category_keywords(category_id, keywords)

    async def delete_category(self, category_id: UUID) -> RecategorizeResult:
        """Delete a user category, moving its transactions where the keywords point.

        Raises:
            CategoryNotFoundError: If the category does not exist
            SystemCategoryError: If the category is a system category
        """
        category = await self.get_category(category_id)
        if category.is_system:
            raise SystemCategoryError(
                "CAT_002", {"category_id": str(category_id)}, http_status=403, message="Cannot delete system categories"
            )

        try:
            plan = plan_category_removal(
                category.id,
                await self.get_rules(),
                await self.transaction_repo.list_by_category(category.id),
            )
            await self._apply(plan)
            await self.db.delete(category)
            await self.db.commit()

        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Category deleted",
            extra={"category_id": str(category_id), "moved": plan.assigned, "uncategorized": plan.uncategorized},
        )
        return plan.result()

    async def reorder(self, active_id: UUID, over_id: UUID) -> list[Category]:
        """Move ``active_id`` to the position of ``over_id`` and renumber."""
        categories = await self.category_repo.list_ordered()
        ids = [c.id for c in categories]
        if active_id not in ids:
            raise _not_found(active_id)
        if over_id not in ids:
            raise _not_found(over_id)

        moved = categories.pop(ids.index(active_id))
        categories.insert(ids.index(over_id), moved)

        try:
            for position, category in enumerate(categories):
                category.display_order = position
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return categories

    async def recategorize_transactions(self, mode: RecategorizeMode | str = RecategorizeMode.UNCATEGORIZED) -> BulkRecategorizeResult:
        """Re-run keyword matching over stored transactions.

        Args:
            mode: "uncategorized" for rows without a category, or "all" for
                every row outside Excluded

        Returns:
            BulkRecategorizeResult; a second run right after reports zero updates
        """
        mode = RecategorizeMode(mode)
        if mode is RecategorizeMode.UNCATEGORIZED:
            transactions = await self.transaction_repo.list_uncategorized()
        else:
            transactions = await self.transaction_repo.list_all()

        try:
            plan = plan_bulk(mode, await self.get_rules(), transactions)
            await self._apply(plan)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        result = plan.bulk_result()
        logger.info("Transactions recategorized", extra={"mode": mode.value, **result.model_dump()})
        return result

    async def _apply(self, plan: RecategorizationPlan) -> None:
        by_target: dict[UUID | None, list[UUID]] = defaultdict(list)
        for transaction_id, target in plan.changes.items():
            by_target[target].append(transaction_id)
        for target, transaction_ids in by_target.items():
            await self.transaction_repo.assign_category(transaction_ids, target)
