"""
Unit tests for the SQL persistence backend.

Runs against SQLite through aiosqlite; every test gets a fresh database file.
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from app.persistence.errors import DataAccessError, DuplicateRecordError
from app.persistence.sql import SqlPersistence
from models import Activity, Notification, utcnow


async def _user(persistence, name="alice"):
    return await persistence.insert_user(name, f"{name}@example.com", "hash")


class TestUsers:
    @pytest.mark.asyncio
    async def test_insert_and_find_user(self, persistence):
        user_id = await _user(persistence)

        by_email = await persistence.find_user_by_email("alice@example.com")
        by_name = await persistence.find_user_by_username("alice")
        by_id = await persistence.find_user_by_id(user_id)

        assert by_email.id == by_name.id == by_id.id == user_id
        assert by_id.password_hash == "hash"
        assert "password_hash" not in by_id.model_dump()

    @pytest.mark.asyncio
    async def test_missing_user_returns_none(self, persistence):
        assert await persistence.find_user_by_email("nobody@example.com") is None
        assert await persistence.find_user_by_id(999) is None

    @pytest.mark.asyncio
    async def test_duplicate_email_raises_duplicate_record(self, persistence):
        await _user(persistence)
        with pytest.raises(DuplicateRecordError):
            await persistence.insert_user("other", "alice@example.com", "hash")


class TestStorageQuota:
    @pytest.mark.asyncio
    async def test_increment_within_quota(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_storage(user_id, 100, 40)

        assert await persistence.increment_storage_used(user_id, 60) == 1
        storage = await persistence.find_storage_by_user_id(user_id)
        assert storage.used_space == 100
        assert storage.available_space == 0

    @pytest.mark.asyncio
    async def test_increment_past_quota_changes_nothing(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_storage(user_id, 100, 40)

        assert await persistence.increment_storage_used(user_id, 61) == 0
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 40

    @pytest.mark.asyncio
    async def test_decrement_floors_at_zero(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_storage(user_id, 100, 30)

        assert await persistence.decrement_storage_used(user_id, 10) == 1
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 20

        assert await persistence.decrement_storage_used(user_id, 500) == 1
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 0

    @pytest.mark.asyncio
    async def test_update_storage_used_absolute(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_storage(user_id, 100, 30)

        assert await persistence.update_storage_used(user_id, 75) == 1
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 75
        assert await persistence.update_storage_used(12345, 1) == 0

    @pytest.mark.asyncio
    async def test_duplicate_allocation_rejected(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_storage(user_id, 100)
        with pytest.raises(DuplicateRecordError):
            await persistence.insert_storage(user_id, 100)


class TestFiles:
    @pytest.mark.asyncio
    async def test_files_are_scoped_to_owner(self, persistence):
        alice = await _user(persistence, "alice")
        bob = await _user(persistence, "bob")
        file_id = await persistence.insert_file(alice, "a.txt", "notes.txt", 5, "text/plain", "/cloud/user_1/a.txt")

        assert (await persistence.find_file_by_id(file_id, alice)).original_name == "notes.txt"
        assert await persistence.find_file_by_id(file_id, bob) is None
        assert await persistence.find_file_by_filename("a.txt", bob) is None
        assert await persistence.delete_file(file_id, bob) == 0
        assert await persistence.delete_file(file_id, alice) == 1
        assert await persistence.find_files_by_user_id(alice) == []

    @pytest.mark.asyncio
    async def test_files_listed_newest_first(self, persistence):
        user_id = await _user(persistence)
        first = await persistence.insert_file(user_id, "1.txt", "1.txt", 1, "text/plain", "/p/1")
        second = await persistence.insert_file(user_id, "2.txt", "2.txt", 2, "text/plain", "/p/2")

        files = await persistence.find_files_by_user_id(user_id)
        assert [f.id for f in files] == [second, first]

    @pytest.mark.asyncio
    async def test_file_type_stats(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_file(user_id, "1.png", "1.png", 10, "image/png", "/p/1")
        await persistence.insert_file(user_id, "2.png", "2.png", 30, "image/png", "/p/2")
        await persistence.insert_file(user_id, "3.pdf", "3.pdf", 7, "application/pdf", "/p/3")

        stats = await persistence.get_file_type_stats(user_id)
        assert stats[0].type == "image/png"
        assert stats[0].count == 2
        assert stats[0].total_size == 40
        assert stats[0].avg_size == 20
        assert stats[1].type == "application/pdf"


class TestNotifications:
    @pytest.mark.asyncio
    async def test_mark_all_read_is_idempotent(self, persistence):
        user_id = await _user(persistence)
        for i in range(3):
            await persistence.insert_notification(user_id, f"n{i}")

        assert await persistence.count_unread_notifications(user_id) == 3
        assert await persistence.mark_all_notifications_as_read(user_id) == 3
        assert await persistence.mark_all_notifications_as_read(user_id) == 0
        assert await persistence.count_unread_notifications(user_id) == 0

    @pytest.mark.asyncio
    async def test_unread_filter_limit_and_offset(self, persistence):
        user_id = await _user(persistence)
        ids = [await persistence.insert_notification(user_id, f"n{i}") for i in range(5)]
        await persistence.mark_notification_as_read(ids[0], user_id)

        unread = await persistence.find_notifications_by_user_id(user_id, unread_only=True)
        assert len(unread) == 4
        page = await persistence.find_notifications_by_user_id(user_id, limit=2, offset=1)
        assert [n.id for n in page] == [ids[3], ids[2]]

    @pytest.mark.asyncio
    async def test_bulk_delete_ignores_foreign_ids(self, persistence):
        alice = await _user(persistence, "alice")
        bob = await _user(persistence, "bob")
        mine = await persistence.insert_notification(alice, "mine")
        theirs = await persistence.insert_notification(bob, "theirs")

        assert await persistence.delete_notifications([mine, theirs], alice) == 1
        assert await persistence.delete_notifications([], alice) == 0
        assert len(await persistence.find_notifications_by_user_id(bob)) == 1

    @pytest.mark.asyncio
    async def test_cleanup_removes_only_old_read_notifications(self, persistence):
        user_id = await _user(persistence)
        old_read = await persistence.insert_notification(user_id, "old read")
        old_unread = await persistence.insert_notification(user_id, "old unread")
        await persistence.insert_notification(user_id, "fresh")
        await persistence.mark_notification_as_read(old_read, user_id)

        async with persistence.engine.begin() as conn:
            await conn.execute(
                update(Notification)
                .where(Notification.id.in_([old_read, old_unread]))
                .values(created_at=utcnow() - timedelta(days=45))
            )

        assert await persistence.cleanup_old_notifications(30) == 1
        remaining = {n.message for n in await persistence.find_notifications_by_user_id(user_id)}
        assert remaining == {"old unread", "fresh"}


class TestActivities:
    @pytest.mark.asyncio
    async def test_activity_metadata_round_trip_and_daily_counts(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_activity(user_id, "Uploaded file: a.txt", {"file_id": 1})
        await persistence.insert_activity(user_id, "Logged in")

        activities = await persistence.find_activities_by_user_id(user_id, limit=10)
        assert activities[0].action == "Logged in"
        assert activities[1].metadata == {"file_id": 1}

        days = await persistence.get_recent_activity(user_id, 7)
        assert len(days) == 1
        assert days[0].activity_count == 2
        assert days[0].date == utcnow().date()

    @pytest.mark.asyncio
    async def test_cleanup_old_activities(self, persistence):
        user_id = await _user(persistence)
        old = await persistence.insert_activity(user_id, "old")
        await persistence.insert_activity(user_id, "new")
        async with persistence.engine.begin() as conn:
            await conn.execute(
                update(Activity).where(Activity.id == old).values(created_at=utcnow() - timedelta(days=120))
            )

        assert await persistence.cleanup_old_activities(90) == 1
        assert [a.action for a in await persistence.find_activities_by_user_id(user_id)] == ["new"]


class TestTeams:
    @pytest.mark.asyncio
    async def test_create_team_with_admin(self, persistence):
        owner = await _user(persistence)
        team_id = await persistence.create_team_with_admin("Core", "desc", owner)

        assert await persistence.find_team_member(team_id, owner) == "admin"
        assert await persistence.check_team_admin(team_id, owner)
        assert await persistence.check_team_owner(team_id, owner)

        teams = await persistence.find_teams_by_user_id(owner)
        assert len(teams) == 1
        assert teams[0].member_count == 1
        assert teams[0].creator_name == "alice"

    @pytest.mark.asyncio
    async def test_members_across_teams(self, persistence):
        owner = await _user(persistence, "alice")
        bob = await _user(persistence, "bob")
        team_id = await persistence.create_team_with_admin("Core", None, owner)
        await persistence.insert_team_member(team_id, bob)

        members = await persistence.find_team_members_by_user_id(bob)
        assert {(m.username, m.role) for m in members} == {("alice", "admin"), ("bob", "member")}
        assert all(m.team_name == "Core" for m in members)

        with pytest.raises(DuplicateRecordError):
            await persistence.insert_team_member(team_id, bob)

    @pytest.mark.asyncio
    async def test_delete_team_removes_memberships(self, persistence):
        owner = await _user(persistence)
        team_id = await persistence.create_team_with_admin("Core", None, owner)

        assert await persistence.delete_team(team_id) == 1
        assert await persistence.find_team_by_id(team_id) is None
        assert await persistence.find_team_member(team_id, owner) is None
        assert await persistence.delete_team(team_id) == 0


class TestUserStats:
    @pytest.mark.asyncio
    async def test_stats_combine_storage_and_files(self, persistence):
        user_id = await _user(persistence)
        await persistence.insert_storage(user_id, 1000, 300)
        await persistence.insert_file(user_id, "1.txt", "1.txt", 100, "text/plain", "/p/1")
        await persistence.insert_file(user_id, "2.txt", "2.txt", 200, "text/plain", "/p/2")

        stats = await persistence.get_user_stats(user_id)
        assert stats.available_space == 700
        assert stats.usage_percentage == 30.0
        assert stats.file_count == 2
        assert stats.avg_file_size == 150
        assert stats.last_upload is not None

    @pytest.mark.asyncio
    async def test_stats_for_unknown_user(self, persistence):
        assert await persistence.get_user_stats(42) is None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_connection_info_hides_credentials(self, persistence):
        assert await persistence.test_connection() is True
        info = persistence.connection_info()
        assert info["type"] == "sql"
        assert info["dialect"] == "sqlite"

    @pytest.mark.asyncio
    async def test_query_failure_raises_data_access_error(self, tmp_path):
        adapter = SqlPersistence(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}", create_schema=False)
        try:
            with pytest.raises(DataAccessError):
                await adapter.find_user_by_id(1)
        finally:
            await adapter.close()
