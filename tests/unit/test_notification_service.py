"""Unit tests for NotificationApplicationService — inbox filters, cursors, ownership."""

import pytest

from src.cm_common.errors import NotificationNotFoundError
from src.cm_common.pagination import cursor_decode
from src.cm_notification.application.service import NotificationApplicationService
from tests.fakes import FakeSession, InMemoryNotificationRepository


async def _seed(repo: InMemoryNotificationRepository, user_id: str, n: int) -> None:
    for i in range(n):
        await repo.create_notification(
            FakeSession(), user_id, "system", f"title {i}", f"message {i}", None
        )


class TestList:
    async def test_newest_first_with_cursor(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 5)
        svc = NotificationApplicationService(repo)

        first = await svc.list_notifications(FakeSession(), "u1", "all", None, 3)

        assert [i.id for i in first.items] == [5, 4, 3]
        assert first.has_more is True
        assert first.unread_count == 5
        assert cursor_decode(first.next_cursor) == 3

        second = await svc.list_notifications(FakeSession(), "u1", "all", first.next_cursor, 3)
        assert [i.id for i in second.items] == [2, 1]
        assert second.has_more is False
        assert second.next_cursor is None

    async def test_filters_by_read_state(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 3)
        svc = NotificationApplicationService(repo)
        await svc.set_read(FakeSession(), "u1", 2, True)

        unread = await svc.list_notifications(FakeSession(), "u1", "unread", None, 10)
        read = await svc.list_notifications(FakeSession(), "u1", "read", None, 10)

        assert [i.id for i in unread.items] == [3, 1]
        assert [i.id for i in read.items] == [2]
        assert unread.unread_count == 2

    async def test_only_own_notifications(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 2)
        await _seed(repo, "u2", 1)
        svc = NotificationApplicationService(repo)

        page = await svc.list_notifications(FakeSession(), "u2", "all", None, 10)

        assert [i.id for i in page.items] == [3]


class TestMutations:
    async def test_mark_read_then_unread(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 1)
        svc = NotificationApplicationService(repo)
        db = FakeSession()

        item = await svc.set_read(db, "u1", 1, True)
        assert item.is_read is True
        item = await svc.set_read(db, "u1", 1, False)
        assert item.is_read is False
        assert db.commits == 2

    async def test_other_users_notification_is_not_found(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 1)
        svc = NotificationApplicationService(repo)
        db = FakeSession()

        with pytest.raises(NotificationNotFoundError):
            await svc.set_read(db, "intruder", 1, True)
        with pytest.raises(NotificationNotFoundError):
            await svc.delete(db, "intruder", 1)

        assert db.rollbacks == 2
        assert 1 in repo.notifications

    async def test_mark_all_read_and_count(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 4)
        svc = NotificationApplicationService(repo)

        result = await svc.mark_all_read(FakeSession(), "u1")

        assert result.affected == 4
        assert (await svc.unread_count(FakeSession(), "u1")).unread_count == 0

    async def test_delete_read_keeps_unread(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 3)
        svc = NotificationApplicationService(repo)
        await svc.set_read(FakeSession(), "u1", 1, True)

        result = await svc.delete_read(FakeSession(), "u1")

        assert result.affected == 1
        assert sorted(repo.notifications) == [2, 3]

    async def test_delete_one(self) -> None:
        repo = InMemoryNotificationRepository()
        await _seed(repo, "u1", 2)
        svc = NotificationApplicationService(repo)

        await svc.delete(FakeSession(), "u1", 2)

        assert list(repo.notifications) == [1]
