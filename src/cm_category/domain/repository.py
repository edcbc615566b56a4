"""Repository Protocol for listing categories."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_category.domain.models import Category


class CategoryRepositoryProtocol(Protocol):
    async def create_category(
        self, db: AsyncSession, name: str, slug: str, description: str, icon: str
    ) -> Category | None:
        """Returns None when the name or slug is already taken."""
        ...

    async def get_category(
        self, db: AsyncSession, category_id: int, for_update: bool = False
    ) -> Category | None: ...

    async def get_by_slug(
        self, db: AsyncSession, slug: str, for_share: bool = False
    ) -> Category | None:
        """`for_share` keeps the row from being deleted or edited until commit."""
        ...

    async def get_by_name(self, db: AsyncSession, name: str) -> Category | None: ...

    async def list_categories(self, db: AsyncSession, active_only: bool) -> list[Category]: ...

    async def update_category(
        self, db: AsyncSession, category_id: int, patch: dict[str, Any]
    ) -> Category | None: ...

    async def delete_category(self, db: AsyncSession, category_id: int) -> bool: ...

    async def count_listings(self, db: AsyncSession, slug: str) -> int: ...
