"""ListingRepository search SQL: user text is bound as a literal ILIKE pattern."""

from unittest.mock import AsyncMock, MagicMock

from src.cm_listing.domain.models import ListingQuery
from src.cm_listing.infrastructure.persistence import ListingRepository


def _db() -> AsyncMock:
    rows = MagicMock()
    rows.fetchall.return_value = []
    count = MagicMock()
    count.scalar_one.return_value = 0
    db = AsyncMock()
    db.execute.side_effect = [rows, count]
    return db


class TestSearchListings:
    async def test_wildcards_in_search_are_escaped(self) -> None:
        db = _db()

        items, total = await ListingRepository().search_listings(
            db, ListingQuery(search=" 100%_done "), "newest", 0, 12
        )

        assert (items, total) == ([], 0)
        sql, params = db.execute.await_args_list[0].args
        assert params["pattern"] == "%100\\%\\_done%"
        assert params["search"] == "100%_done"
        assert "ESCAPE '\\'" in str(sql)
        assert db.execute.await_args_list[1].args[1]["pattern"] == params["pattern"]

    async def test_no_search_binds_null_pattern(self) -> None:
        db = _db()

        await ListingRepository().search_listings(db, ListingQuery(category="web"), "newest", 0, 12)

        params = db.execute.await_args_list[0].args[1]
        assert params["pattern"] is None
        assert params["category"] == "web"
