"""Pydantic schemas for cm_category API."""

from pydantic import BaseModel, Field, field_validator

from src.cm_category.domain.models import Category

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=64)
    slug: str = Field(..., max_length=64, pattern=SLUG_PATTERN)
    description: str = Field(..., min_length=1, max_length=500)
    icon: str = Field(..., min_length=1, max_length=16)

    @field_validator("name", "description", "icon")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _not_blank(v)


class UpdateCategoryRequest(BaseModel):
    """Partial update. The slug is fixed because listings store it."""

    name: str | None = Field(None, min_length=2, max_length=64)
    description: str | None = Field(None, min_length=1, max_length=500)
    icon: str | None = Field(None, min_length=1, max_length=16)
    is_active: bool | None = None

    @field_validator("name", "description", "icon")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return _not_blank(v) if v is not None else None


class CategoryItem(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    icon: str
    is_active: bool
    listing_count: int
    created_at: str

    @classmethod
    def from_domain(cls, c: Category) -> "CategoryItem":
        return cls(
            id=c.id,
            name=c.name,
            slug=c.slug,
            description=c.description,
            icon=c.icon,
            is_active=c.is_active,
            listing_count=c.listing_count,
            created_at=c.created_at.isoformat() if c.created_at else "",
        )


class CategoryAdminList(BaseModel):
    items: list[CategoryItem]
    total: int
    active: int
    inactive: int
