"""Domain models for cm_category."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Category:
    id: int
    name: str
    slug: str                 # stored in listings.category; immutable once created
    description: str
    icon: str
    is_active: bool = True
    listing_count: int = 0    # filled only by list queries
    created_at: datetime | None = None
    updated_at: datetime | None = None
