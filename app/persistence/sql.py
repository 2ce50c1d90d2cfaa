"""Relational persistence backend (MySQL/MariaDB, SQLite) on async SQLAlchemy."""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

from sqlalchemy import case, delete, func, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from app.database import build_engine, build_sessionmaker
from app.persistence.base import PersistenceAdapter
from app.persistence.errors import DataAccessError, DuplicateRecordError
from app.persistence.records import (
    ActivityDay,
    ActivityRecord,
    FileRecord,
    FileTypeStat,
    NotificationRecord,
    StorageRecord,
    TeamMemberRecord,
    TeamRecord,
    UserRecord,
    UserStats,
)
from models import (
    Activity,
    Base,
    File,
    Notification,
    StorageAllocation,
    Team,
    TeamMember,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)


class SqlPersistence(PersistenceAdapter):
    """Persistence over a pooled SQLAlchemy async engine."""

    type = "sql"

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        echo: bool = False,
        create_schema: bool = True,
        default_quota: int = 1024 * 1024 * 1024,
    ):
        self.engine = build_engine(database_url, pool_size=pool_size, echo=echo)
        self._sessions = build_sessionmaker(self.engine)
        self._create_schema = create_schema
        self._default_quota = default_quota

    # ----- plumbing -----

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateRecordError(
                    f"Duplicate record in {operation}", operation=operation
                ) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("Database operation %s failed", operation)
                raise DataAccessError(f"Database error in {operation}", operation=operation) from exc

    async def transaction(self, statements: Sequence[Executable]) -> list[int]:
        """Execute statements in one transaction; return their row counts."""
        try:
            async with self.engine.begin() as conn:
                counts = []
                for stmt in statements:
                    result = await conn.execute(stmt)
                    counts.append(result.rowcount)
                return counts
        except IntegrityError as exc:
            raise DuplicateRecordError("Duplicate record in transaction", operation="transaction") from exc
        except SQLAlchemyError as exc:
            logger.exception("Transaction of %d statements failed", len(statements))
            raise DataAccessError("Transaction failed", operation="transaction") from exc

    async def _add(self, obj: Any, operation: str) -> int:
        async with self._session(operation) as session:
            session.add(obj)
            await session.flush()
            return obj.id

    async def _rowcount(self, stmt: Executable, operation: str) -> int:
        async with self._session(operation) as session:
            result = await session.execute(stmt.execution_options(synchronize_session=False))
            return result.rowcount

    # ----- lifecycle -----

    async def initialize(self) -> None:
        if not self._create_schema:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            logger.exception("Schema creation failed")
            raise DataAccessError("Schema creation failed", operation="initialize") from exc

    async def test_connection(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            logger.warning("Database connection check failed: %s", exc)
            return False

    def connection_info(self) -> dict[str, Any]:
        url = self.engine.url
        return {
            "type": self.type,
            "dialect": url.get_backend_name(),
            "host": url.host,
            "database": url.database,
        }

    async def close(self) -> None:
        await self.engine.dispose()

    # ----- users -----

    async def insert_user(self, username: str, email: str, password_hash: str) -> int:
        user = User(username=username, email=email, password_hash=password_hash)
        return await self._add(user, "insert_user")

    async def _find_user(self, criterion, operation: str) -> UserRecord | None:
        async with self._session(operation) as session:
            user = (await session.execute(select(User).where(criterion))).scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    async def find_user_by_email(self, email: str) -> UserRecord | None:
        return await self._find_user(User.email == email, "find_user_by_email")

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        return await self._find_user(User.username == username, "find_user_by_username")

    async def find_user_by_id(self, user_id: int) -> UserRecord | None:
        return await self._find_user(User.id == user_id, "find_user_by_id")

    # ----- files -----

    async def insert_file(self, user_id, filename, original_name, size, type, path) -> int:
        row = File(
            user_id=user_id,
            filename=filename,
            original_name=original_name,
            size=size,
            type=type,
            path=path,
        )
        return await self._add(row, "insert_file")

    async def find_files_by_user_id(self, user_id: int) -> list[FileRecord]:
        stmt = (
            select(File)
            .where(File.user_id == user_id)
            .order_by(File.created_at.desc(), File.id.desc())
        )
        async with self._session("find_files_by_user_id") as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [FileRecord.model_validate(row) for row in rows]

    async def _find_file(self, criterion, user_id: int, operation: str) -> FileRecord | None:
        stmt = select(File).where(criterion, File.user_id == user_id)
        async with self._session(operation) as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return FileRecord.model_validate(row) if row else None

    async def find_file_by_id(self, file_id: int, user_id: int) -> FileRecord | None:
        return await self._find_file(File.id == file_id, user_id, "find_file_by_id")

    async def find_file_by_filename(self, filename: str, user_id: int) -> FileRecord | None:
        return await self._find_file(File.filename == filename, user_id, "find_file_by_filename")

    async def delete_file(self, file_id: int, user_id: int) -> int:
        stmt = delete(File).where(File.id == file_id, File.user_id == user_id)
        return await self._rowcount(stmt, "delete_file")

    # ----- storage allocation -----

    async def find_storage_by_user_id(self, user_id: int) -> StorageRecord | None:
        stmt = select(StorageAllocation).where(StorageAllocation.user_id == user_id)
        async with self._session("find_storage_by_user_id") as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return StorageRecord.model_validate(row) if row else None

    async def insert_storage(self, user_id: int, total_space: int, used_space: int = 0) -> int:
        row = StorageAllocation(user_id=user_id, total_space=total_space, used_space=used_space)
        return await self._add(row, "insert_storage")

    async def update_storage_used(self, user_id: int, used_space: int) -> int:
        stmt = (
            update(StorageAllocation)
            .where(StorageAllocation.user_id == user_id)
            .values(used_space=used_space)
        )
        return await self._rowcount(stmt, "update_storage_used")

    async def increment_storage_used(self, user_id: int, amount: int) -> int:
        stmt = (
            update(StorageAllocation)
            .where(
                StorageAllocation.user_id == user_id,
                StorageAllocation.used_space + amount <= StorageAllocation.total_space,
            )
            .values(used_space=StorageAllocation.used_space + amount)
        )
        return await self._rowcount(stmt, "increment_storage_used")

    async def decrement_storage_used(self, user_id: int, amount: int) -> int:
        stmt = (
            update(StorageAllocation)
            .where(StorageAllocation.user_id == user_id)
            .values(
                used_space=case(
                    (StorageAllocation.used_space > amount, StorageAllocation.used_space - amount),
                    else_=0,
                )
            )
        )
        return await self._rowcount(stmt, "decrement_storage_used")

    # ----- activities -----

    async def insert_activity(self, user_id, action, metadata=None) -> int:
        return await self._add(
            Activity(user_id=user_id, action=action, details=metadata), "insert_activity"
        )

    async def find_activities_by_user_id(self, user_id: int, limit: int = 20) -> list[ActivityRecord]:
        stmt = (
            select(Activity)
            .where(Activity.user_id == user_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
        )
        async with self._session("find_activities_by_user_id") as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [ActivityRecord.model_validate(row) for row in rows]

    # ----- notifications -----

    async def insert_notification(self, user_id, message, type="info", category="general") -> int:
        row = Notification(user_id=user_id, message=message, type=type, category=category, read=False)
        return await self._add(row, "insert_notification")

    async def find_notifications_by_user_id(
        self, user_id, unread_only=False, limit=50, offset=0
    ) -> list[NotificationRecord]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = (
            stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self._session("find_notifications_by_user_id") as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [NotificationRecord.model_validate(row) for row in rows]

    async def mark_notification_as_read(self, notification_id: int, user_id: int) -> int:
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True)
        )
        return await self._rowcount(stmt, "mark_notification_as_read")

    async def mark_all_notifications_as_read(self, user_id: int) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        return await self._rowcount(stmt, "mark_all_notifications_as_read")

    async def delete_notification(self, notification_id: int, user_id: int) -> int:
        stmt = delete(Notification).where(
            Notification.id == notification_id, Notification.user_id == user_id
        )
        return await self._rowcount(stmt, "delete_notification")

    async def delete_notifications(self, notification_ids: Sequence[int], user_id: int) -> int:
        if not notification_ids:
            return 0
        stmt = delete(Notification).where(
            Notification.id.in_(list(notification_ids)), Notification.user_id == user_id
        )
        return await self._rowcount(stmt, "delete_notifications")

    async def delete_all_notifications(self, user_id: int) -> int:
        stmt = delete(Notification).where(Notification.user_id == user_id)
        return await self._rowcount(stmt, "delete_all_notifications")

    async def count_unread_notifications(self, user_id: int) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id, Notification.read.is_(False)
        )
        async with self._session("count_unread_notifications") as session:
            return (await session.execute(stmt)).scalar_one()

    # ----- teams -----

    @staticmethod
    def _team_query():
        member_count = (
            select(func.count(TeamMember.id))
            .where(TeamMember.team_id == Team.id)
            .correlate(Team)
            .scalar_subquery()
        )
        return select(
            Team.id,
            Team.name,
            Team.description,
            Team.created_by,
            Team.created_at,
            Team.updated_at,
            member_count.label("member_count"),
            User.username.label("creator_name"),
        ).outerjoin(User, User.id == Team.created_by)

    async def _find_teams(self, stmt, operation: str) -> list[TeamRecord]:
        async with self._session(operation) as session:
            rows = (await session.execute(stmt)).mappings().all()
            return [TeamRecord.model_validate(dict(row)) for row in rows]

    async def insert_team(self, name, description, created_by) -> int:
        return await self._add(
            Team(name=name, description=description, created_by=created_by), "insert_team"
        )

    async def create_team_with_admin(self, name, description, created_by) -> int:
        async with self._session("create_team_with_admin") as session:
            team = Team(name=name, description=description, created_by=created_by)
            session.add(team)
            await session.flush()
            session.add(TeamMember(team_id=team.id, user_id=created_by, role="admin"))
            await session.flush()
            return team.id

    async def find_team_by_id(self, team_id: int) -> TeamRecord | None:
        teams = await self._find_teams(self._team_query().where(Team.id == team_id), "find_team_by_id")
        return teams[0] if teams else None

    async def find_teams_by_user_id(self, user_id: int) -> list[TeamRecord]:
        memberships = select(TeamMember.team_id).where(TeamMember.user_id == user_id)
        stmt = (
            self._team_query()
            .where(Team.id.in_(memberships))
            .order_by(Team.created_at.desc(), Team.id.desc())
        )
        return await self._find_teams(stmt, "find_teams_by_user_id")

    async def find_teams_created_by(self, user_id: int) -> list[TeamRecord]:
        stmt = self._team_query().where(Team.created_by == user_id).order_by(Team.id)
        return await self._find_teams(stmt, "find_teams_created_by")

    async def insert_team_member(self, team_id: int, user_id: int, role: str = "member") -> int:
        return await self._add(
            TeamMember(team_id=team_id, user_id=user_id, role=role), "insert_team_member"
        )

    async def find_team_member(self, team_id: int, user_id: int) -> str | None:
        stmt = select(TeamMember.role).where(
            TeamMember.team_id == team_id, TeamMember.user_id == user_id
        )
        async with self._session("find_team_member") as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    async def find_team_members_by_user_id(self, user_id: int) -> list[TeamMemberRecord]:
        my_teams = select(TeamMember.team_id).where(TeamMember.user_id == user_id)
        stmt = (
            select(
                User.id,
                User.username,
                User.email,
                User.created_at,
                TeamMember.role,
                TeamMember.created_at.label("joined_at"),
                Team.id.label("team_id"),
                Team.name.label("team_name"),
            )
            .join(TeamMember, TeamMember.user_id == User.id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(TeamMember.team_id.in_(my_teams))
            .order_by(Team.name, TeamMember.created_at)
        )
        async with self._session("find_team_members_by_user_id") as session:
            rows = (await session.execute(stmt)).mappings().all()
            return [TeamMemberRecord.model_validate(dict(row)) for row in rows]

    async def check_team_admin(self, team_id: int, user_id: int) -> bool:
        return await self.find_team_member(team_id, user_id) == "admin"

    async def check_team_owner(self, team_id: int, user_id: int) -> bool:
        stmt = select(Team.id).where(Team.id == team_id, Team.created_by == user_id)
        async with self._session("check_team_owner") as session:
            return (await session.execute(stmt)).first() is not None

    async def delete_team(self, team_id: int) -> int:
        counts = await self.transaction(
            [
                delete(TeamMember).where(TeamMember.team_id == team_id),
                delete(Team).where(Team.id == team_id),
            ]
        )
        return counts[-1]

    async def remove_team_member(self, team_id: int, user_id: int) -> int:
        stmt = delete(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        return await self._rowcount(stmt, "remove_team_member")

    # ----- aggregates -----

    async def get_user_stats(self, user_id: int) -> UserStats | None:
        file_stats = (
            select(
                func.count(File.id).label("file_count"),
                func.coalesce(func.avg(File.size), 0).label("avg_file_size"),
                func.max(File.created_at).label("last_upload"),
            )
            .where(File.user_id == user_id)
        )
        async with self._session("get_user_stats") as session:
            user = (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
            if user is None:
                return None
            storage = (
                await session.execute(
                    select(StorageAllocation).where(StorageAllocation.user_id == user_id)
                )
            ).scalar_one_or_none()
            files = (await session.execute(file_stats)).one()

        total = storage.total_space if storage else self._default_quota
        used = storage.used_space if storage else 0
        return UserStats(
            id=user.id,
            username=user.username,
            email=user.email,
            created_at=user.created_at,
            total_space=total,
            used_space=used,
            available_space=max(total - used, 0),
            usage_percentage=round(used / total * 100, 2) if total else 0.0,
            file_count=files.file_count,
            avg_file_size=float(files.avg_file_size or 0),
            last_upload=files.last_upload,
        )

    async def get_file_type_stats(self, user_id: int) -> list[FileTypeStat]:
        count = func.count(File.id)
        stmt = (
            select(
                File.type,
                count.label("count"),
                func.coalesce(func.sum(File.size), 0).label("total_size"),
                func.coalesce(func.avg(File.size), 0).label("avg_size"),
            )
            .where(File.user_id == user_id)
            .group_by(File.type)
            .order_by(count.desc())
        )
        async with self._session("get_file_type_stats") as session:
            rows = (await session.execute(stmt)).mappings().all()
            return [FileTypeStat.model_validate(dict(row)) for row in rows]

    async def get_recent_activity(self, user_id: int, days: int = 7) -> list[ActivityDay]:
        day = func.date(Activity.created_at)
        stmt = (
            select(day.label("date"), func.count(Activity.id).label("activity_count"))
            .where(Activity.user_id == user_id, Activity.created_at >= utcnow() - timedelta(days=days))
            .group_by(day)
            .order_by(day.desc())
        )
        async with self._session("get_recent_activity") as session:
            rows = (await session.execute(stmt)).mappings().all()
            return [ActivityDay.model_validate(dict(row)) for row in rows]

    # ----- maintenance -----

    async def cleanup_old_notifications(self, days: int = 30) -> int:
        stmt = delete(Notification).where(
            Notification.read.is_(True), Notification.created_at < utcnow() - timedelta(days=days)
        )
        return await self._rowcount(stmt, "cleanup_old_notifications")

    async def cleanup_old_activities(self, days: int = 90) -> int:
        stmt = delete(Activity).where(Activity.created_at < utcnow() - timedelta(days=days))
        return await self._rowcount(stmt, "cleanup_old_activities")
