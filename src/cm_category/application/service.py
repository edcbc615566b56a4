"""CategoryApplicationService — the category catalogue listings are filed under.

Anyone can read the active categories; only admins write. A category is
referenced by slug from listings, so the slug never changes and a category
cannot be deleted while listings still use it (hide it instead).
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_category.application.schemas import (
    CategoryAdminList,
    CategoryItem,
    CreateCategoryRequest,
    UpdateCategoryRequest,
)
from src.cm_category.domain.repository import CategoryRepositoryProtocol
from src.cm_category.infrastructure.persistence import CategoryRepository
from src.cm_common.errors import (
    CategoryExistsError,
    CategoryInUseError,
    CategoryNotFoundError,
)

logger = logging.getLogger(__name__)


class CategoryApplicationService:
    def __init__(self, repo: CategoryRepositoryProtocol | None = None) -> None:
        self._repo: CategoryRepositoryProtocol = repo or CategoryRepository()

    async def list_active(self, db: AsyncSession) -> list[CategoryItem]:
        return [
            CategoryItem.from_domain(c)
            for c in await self._repo.list_categories(db, active_only=True)
        ]

    async def list_all(self, db: AsyncSession) -> CategoryAdminList:
        items = [
            CategoryItem.from_domain(c)
            for c in await self._repo.list_categories(db, active_only=False)
        ]
        active = sum(1 for c in items if c.is_active)
        return CategoryAdminList(
            items=items, total=len(items), active=active, inactive=len(items) - active
        )

    async def create(self, db: AsyncSession, req: CreateCategoryRequest) -> CategoryItem:
        try:
            if await self._repo.get_by_slug(db, req.slug) is not None:
                raise CategoryExistsError("slug", req.slug)
            if await self._repo.get_by_name(db, req.name) is not None:
                raise CategoryExistsError("name", req.name)
            # the unique indexes are the final guard against a concurrent create
            created = await self._repo.create_category(
                db, req.name, req.slug, req.description, req.icon
            )
            if created is None:
                raise CategoryExistsError("slug", req.slug)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Category %s created", created.slug)
        return CategoryItem.from_domain(created)

    async def update(
        self, db: AsyncSession, category_id: int, req: UpdateCategoryRequest
    ) -> CategoryItem:
        patch = req.model_dump(exclude_none=True)
        try:
            current = await self._repo.get_category(db, category_id, for_update=True)
            if current is None:
                raise CategoryNotFoundError(category_id)
            if "name" in patch and patch["name"].lower() != current.name.lower():
                clash = await self._repo.get_by_name(db, patch["name"])
                if clash is not None and clash.id != category_id:
                    raise CategoryExistsError("name", patch["name"])
            updated = await self._repo.update_category(db, category_id, patch)
            if updated is None:
                raise CategoryNotFoundError(category_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return CategoryItem.from_domain(updated)

    async def set_active(
        self, db: AsyncSession, category_id: int, is_active: bool
    ) -> CategoryItem:
        return await self.update(db, category_id, UpdateCategoryRequest(is_active=is_active))

    async def delete(self, db: AsyncSession, category_id: int) -> None:
        try:
            category = await self._repo.get_category(db, category_id, for_update=True)
            if category is None:
                raise CategoryNotFoundError(category_id)
            in_use = await self._repo.count_listings(db, category.slug)
            if in_use > 0:
                raise CategoryInUseError(category.slug, in_use)
            await self._repo.delete_category(db, category_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Category %s deleted", category.slug)
