"""REST document-store backend speaking the PostgREST dialect (Supabase).

Each operation is one or more filtered HTTP requests against
``{supabase_url}/rest/v1/<table>``. Joins and aggregates are composed on the
client from several reads.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

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
    build_file_type_stats,
    build_user_stats,
)

logger = logging.getLogger(__name__)

Params = list[tuple[str, Any]]

RETURN_REPRESENTATION = "return=representation"

# Compare-and-set retries when another writer changed used_space in between.
_CAS_ATTEMPTS = 3


def eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"is.{str(value).lower()}"
    return f"eq.{value}"


def in_(values: Iterable[Any]) -> str:
    return "in.(" + ",".join(str(v) for v in values) + ")"


def _cutoff(days: int) -> str:
    return (datetime.now(UTC) - timedelta(days=days)).isoformat()


class RestPersistence(PersistenceAdapter):
    """Persistence over the PostgREST HTTP interface."""

    type = "rest"

    def __init__(
        self,
        url: str | None,
        service_role_key: str | None,
        timeout: float = 30,
        default_quota: int = 1024 * 1024 * 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not url or not service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the REST backend")
        self.url = url.rstrip("/")
        self._default_quota = default_quota
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1/",
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )
        # user_id -> (lock, number of tasks holding or waiting on it)
        self._quota_locks: dict[int, tuple[asyncio.Lock, int]] = {}

    # ----- plumbing -----

    async def _request(
        self,
        method: str,
        table: str,
        operation: str,
        params: Params | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(method, table, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.exception("REST request %s %s failed", method, table)
            raise DataAccessError(f"Request failed in {operation}: {exc}", operation=operation) from exc

        if response.status_code == 409:
            raise DuplicateRecordError(f"Duplicate record in {operation}", operation=operation)
        if response.is_error:
            logger.error(
                "REST %s %s returned %s: %s", method, table, response.status_code, response.text
            )
            raise DataAccessError(
                f"Backend returned {response.status_code} in {operation}", operation=operation
            )
        return response

    async def _select(self, table: str, params: Params, operation: str, columns: str = "*") -> list[dict]:
        response = await self._request("GET", table, operation, params=[("select", columns), *params])
        return response.json()

    async def _first(self, table: str, params: Params, operation: str) -> dict | None:
        rows = await self._select(table, [*params, ("limit", 1)], operation)
        return rows[0] if rows else None

    async def _insert(self, table: str, row: dict, operation: str, params: Params | None = None,
                      prefer: str = RETURN_REPRESENTATION) -> dict | None:
        response = await self._request("POST", table, operation, params=params, json=row, prefer=prefer)
        rows = response.json() if response.content else []
        return rows[0] if rows else None

    async def _insert_id(self, table: str, row: dict, operation: str) -> int:
        created = await self._insert(table, row, operation)
        if created is None:
            raise DataAccessError(f"Insert returned no row in {operation}", operation=operation)
        return created["id"]

    async def _update(self, table: str, params: Params, values: dict, operation: str) -> int:
        response = await self._request(
            "PATCH", table, operation,
            params=[("select", "id"), *params], json=values, prefer=RETURN_REPRESENTATION,
        )
        return len(response.json())

    async def _delete(self, table: str, params: Params, operation: str) -> int:
        response = await self._request(
            "DELETE", table, operation, params=[("select", "id"), *params], prefer=RETURN_REPRESENTATION
        )
        return len(response.json())

    async def _count(self, table: str, params: Params, operation: str) -> int:
        response = await self._request(
            "HEAD", table, operation, params=[("select", "id"), *params], prefer="count=exact"
        )
        content_range = response.headers.get("content-range", "*/0")
        total = content_range.rsplit("/", 1)[-1]
        return int(total) if total.isdigit() else 0

    async def transaction(self, operations: Sequence[Callable[[], Awaitable[Any]]]) -> list[Any]:
        """Run operations in order, stopping at the first failure.

        PostgREST offers no multi-request transaction, so operations that
        already completed are not undone.
        """
        results = []
        for index, operation in enumerate(operations, start=1):
            try:
                results.append(await operation())
            except DataAccessError as exc:
                raise DataAccessError(
                    f"Transaction failed at operation {index}: {exc.message}", operation="transaction"
                ) from exc
        return results

    # ----- lifecycle -----

    async def test_connection(self) -> bool:
        try:
            await self._select("users", [("limit", 1)], "test_connection", columns="id")
            return True
        except Exception as exc:
            logger.warning("REST connection check failed: %s", exc)
            return False

    def connection_info(self) -> dict[str, Any]:
        return {"type": self.type, "url": self.url}

    async def close(self) -> None:
        await self._client.aclose()

    # ----- users -----

    async def insert_user(self, username: str, email: str, password_hash: str) -> int:
        row = {"username": username, "email": email, "password": password_hash}
        return await self._insert_id("users", row, "insert_user")

    async def _find_user(self, column: str, value: Any, operation: str) -> UserRecord | None:
        row = await self._first("users", [(column, eq(value))], operation)
        return UserRecord.model_validate(row) if row else None

    async def find_user_by_email(self, email: str) -> UserRecord | None:
        return await self._find_user("email", email, "find_user_by_email")

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        return await self._find_user("username", username, "find_user_by_username")

    async def find_user_by_id(self, user_id: int) -> UserRecord | None:
        return await self._find_user("id", user_id, "find_user_by_id")

    # ----- files -----

    async def insert_file(self, user_id, filename, original_name, size, type, path) -> int:
        row = {
            "user_id": user_id,
            "filename": filename,
            "original_name": original_name,
            "size": size,
            "type": type,
            "path": path,
        }
        return await self._insert_id("files", row, "insert_file")

    async def find_files_by_user_id(self, user_id: int) -> list[FileRecord]:
        rows = await self._select(
            "files", [("user_id", eq(user_id)), ("order", "created_at.desc,id.desc")], "find_files_by_user_id"
        )
        return [FileRecord.model_validate(row) for row in rows]

    async def find_file_by_id(self, file_id: int, user_id: int) -> FileRecord | None:
        row = await self._first(
            "files", [("id", eq(file_id)), ("user_id", eq(user_id))], "find_file_by_id"
        )
        return FileRecord.model_validate(row) if row else None

    async def find_file_by_filename(self, filename: str, user_id: int) -> FileRecord | None:
        row = await self._first(
            "files", [("filename", eq(filename)), ("user_id", eq(user_id))], "find_file_by_filename"
        )
        return FileRecord.model_validate(row) if row else None

    async def delete_file(self, file_id: int, user_id: int) -> int:
        return await self._delete("files", [("id", eq(file_id)), ("user_id", eq(user_id))], "delete_file")

    # ----- storage allocation -----

    async def find_storage_by_user_id(self, user_id: int) -> StorageRecord | None:
        row = await self._first("storage_allocation", [("user_id", eq(user_id))], "find_storage_by_user_id")
        return StorageRecord.model_validate(row) if row else None

    async def insert_storage(self, user_id: int, total_space: int, used_space: int = 0) -> int:
        row = {"user_id": user_id, "total_space": total_space, "used_space": used_space}
        return await self._insert_id("storage_allocation", row, "insert_storage")

    @asynccontextmanager
    async def _quota_lock(self, user_id: int) -> AsyncIterator[None]:
        """Serialise quota writes for one user; the entry is dropped once idle."""
        lock, users = self._quota_locks.get(user_id, (asyncio.Lock(), 0))
        self._quota_locks[user_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._quota_locks[user_id]
            if users <= 1:
                del self._quota_locks[user_id]
            else:
                self._quota_locks[user_id] = (lock, users - 1)

    async def update_storage_used(self, user_id: int, used_space: int) -> int:
        async with self._quota_lock(user_id):
            return await self._update(
                "storage_allocation", [("user_id", eq(user_id))], {"used_space": used_space},
                "update_storage_used",
            )

    async def _compare_and_set(
        self, user_id: int, compute: Callable[[StorageRecord], int | None], operation: str
    ) -> int:
        async with self._quota_lock(user_id):
            for _ in range(_CAS_ATTEMPTS):
                storage = await self.find_storage_by_user_id(user_id)
                if storage is None:
                    return 0
                new_used = compute(storage)
                if new_used is None:
                    return 0
                updated = await self._update(
                    "storage_allocation",
                    [("user_id", eq(user_id)), ("used_space", eq(storage.used_space))],
                    {"used_space": new_used},
                    operation,
                )
                if updated:
                    return updated
                logger.info("used_space for user %s changed concurrently, retrying %s", user_id, operation)
            return 0

    async def increment_storage_used(self, user_id: int, amount: int) -> int:
        def compute(storage: StorageRecord) -> int | None:
            new_used = storage.used_space + amount
            return new_used if new_used <= storage.total_space else None

        return await self._compare_and_set(user_id, compute, "increment_storage_used")

    async def decrement_storage_used(self, user_id: int, amount: int) -> int:
        return await self._compare_and_set(
            user_id, lambda storage: max(storage.used_space - amount, 0), "decrement_storage_used"
        )

    # ----- activities -----

    async def insert_activity(self, user_id, action, metadata=None) -> int:
        row = {"user_id": user_id, "action": action, "metadata": metadata}
        return await self._insert_id("activities", row, "insert_activity")

    async def find_activities_by_user_id(self, user_id: int, limit: int = 20) -> list[ActivityRecord]:
        rows = await self._select(
            "activities",
            [("user_id", eq(user_id)), ("order", "created_at.desc,id.desc"), ("limit", limit)],
            "find_activities_by_user_id",
        )
        return [ActivityRecord.model_validate(row) for row in rows]

    # ----- notifications -----

    async def insert_notification(self, user_id, message, type="info", category="general") -> int:
        row = {"user_id": user_id, "message": message, "type": type, "category": category, "read": False}
        return await self._insert_id("notifications", row, "insert_notification")

    async def find_notifications_by_user_id(
        self, user_id, unread_only=False, limit=50, offset=0
    ) -> list[NotificationRecord]:
        params: Params = [("user_id", eq(user_id))]
        if unread_only:
            params.append(("read", eq(False)))
        params += [("order", "created_at.desc,id.desc"), ("limit", limit), ("offset", offset)]
        rows = await self._select("notifications", params, "find_notifications_by_user_id")
        return [NotificationRecord.model_validate(row) for row in rows]

    async def mark_notification_as_read(self, notification_id: int, user_id: int) -> int:
        return await self._update(
            "notifications",
            [("id", eq(notification_id)), ("user_id", eq(user_id))],
            {"read": True},
            "mark_notification_as_read",
        )

    async def mark_all_notifications_as_read(self, user_id: int) -> int:
        return await self._update(
            "notifications",
            [("user_id", eq(user_id)), ("read", eq(False))],
            {"read": True},
            "mark_all_notifications_as_read",
        )

    async def delete_notification(self, notification_id: int, user_id: int) -> int:
        return await self._delete(
            "notifications", [("id", eq(notification_id)), ("user_id", eq(user_id))], "delete_notification"
        )

    async def delete_notifications(self, notification_ids: Sequence[int], user_id: int) -> int:
        if not notification_ids:
            return 0
        return await self._delete(
            "notifications", [("id", in_(notification_ids)), ("user_id", eq(user_id))], "delete_notifications"
        )

    async def delete_all_notifications(self, user_id: int) -> int:
        return await self._delete("notifications", [("user_id", eq(user_id))], "delete_all_notifications")

    async def count_unread_notifications(self, user_id: int) -> int:
        return await self._count(
            "notifications", [("user_id", eq(user_id)), ("read", eq(False))], "count_unread_notifications"
        )

    # ----- teams -----

    async def _decorate_teams(self, rows: list[dict], operation: str) -> list[TeamRecord]:
        if not rows:
            return []
        team_ids = [row["id"] for row in rows]
        creator_ids = {row["created_by"] for row in rows}
        members = await self._select("team_members", [("team_id", in_(team_ids))], operation, columns="team_id")
        creators = await self._select("users", [("id", in_(creator_ids))], operation, columns="id,username")
        counts = Counter(member["team_id"] for member in members)
        names = {user["id"]: user["username"] for user in creators}
        return [
            TeamRecord.model_validate(
                {**row, "member_count": counts[row["id"]], "creator_name": names.get(row["created_by"])}
            )
            for row in rows
        ]

    async def _team_ids_for(self, user_id: int, operation: str) -> list[int]:
        rows = await self._select("team_members", [("user_id", eq(user_id))], operation, columns="team_id")
        return sorted({row["team_id"] for row in rows})

    async def insert_team(self, name, description, created_by) -> int:
        row = {"name": name, "description": description, "created_by": created_by}
        return await self._insert_id("teams", row, "insert_team")

    async def create_team_with_admin(self, name, description, created_by) -> int:
        team_id = await self.insert_team(name, description, created_by)
        try:
            await self._insert(
                "team_members",
                {"team_id": team_id, "user_id": created_by, "role": "admin"},
                "create_team_with_admin",
                params=[("on_conflict", "team_id,user_id")],
                prefer="resolution=ignore-duplicates," + RETURN_REPRESENTATION,
            )
        except DataAccessError:
            logger.error("Team %s created without admin membership for user %s", team_id, created_by)
            raise
        return team_id

    async def find_team_by_id(self, team_id: int) -> TeamRecord | None:
        row = await self._first("teams", [("id", eq(team_id))], "find_team_by_id")
        if row is None:
            return None
        return (await self._decorate_teams([row], "find_team_by_id"))[0]

    async def find_teams_by_user_id(self, user_id: int) -> list[TeamRecord]:
        team_ids = await self._team_ids_for(user_id, "find_teams_by_user_id")
        if not team_ids:
            return []
        rows = await self._select(
            "teams", [("id", in_(team_ids)), ("order", "created_at.desc,id.desc")], "find_teams_by_user_id"
        )
        return await self._decorate_teams(rows, "find_teams_by_user_id")

    async def find_teams_created_by(self, user_id: int) -> list[TeamRecord]:
        rows = await self._select(
            "teams", [("created_by", eq(user_id)), ("order", "id.asc")], "find_teams_created_by"
        )
        return await self._decorate_teams(rows, "find_teams_created_by")

    async def insert_team_member(self, team_id: int, user_id: int, role: str = "member") -> int:
        row = {"team_id": team_id, "user_id": user_id, "role": role}
        return await self._insert_id("team_members", row, "insert_team_member")

    async def find_team_member(self, team_id: int, user_id: int) -> str | None:
        row = await self._first(
            "team_members", [("team_id", eq(team_id)), ("user_id", eq(user_id))], "find_team_member"
        )
        return row["role"] if row else None

    async def find_team_members_by_user_id(self, user_id: int) -> list[TeamMemberRecord]:
        operation = "find_team_members_by_user_id"
        team_ids = await self._team_ids_for(user_id, operation)
        if not team_ids:
            return []
        members = await self._select(
            "team_members", [("team_id", in_(team_ids)), ("order", "created_at.asc")], operation
        )
        teams = await self._select("teams", [("id", in_(team_ids))], operation, columns="id,name")
        users = await self._select(
            "users", [("id", in_({m["user_id"] for m in members}))], operation,
            columns="id,username,email,created_at",
        )
        team_names = {team["id"]: team["name"] for team in teams}
        users_by_id = {user["id"]: user for user in users}

        records = []
        for member in members:
            user = users_by_id.get(member["user_id"])
            if user is None:
                continue
            records.append(
                TeamMemberRecord(
                    **user,
                    role=member["role"],
                    joined_at=member.get("created_at"),
                    team_id=member["team_id"],
                    team_name=team_names.get(member["team_id"], ""),
                )
            )
        # stable sort keeps join order within a team
        return sorted(records, key=lambda record: record.team_name)

    async def check_team_admin(self, team_id: int, user_id: int) -> bool:
        return await self.find_team_member(team_id, user_id) == "admin"

    async def check_team_owner(self, team_id: int, user_id: int) -> bool:
        row = await self._first(
            "teams", [("id", eq(team_id)), ("created_by", eq(user_id))], "check_team_owner"
        )
        return row is not None

    async def delete_team(self, team_id: int) -> int:
        results = await self.transaction(
            [
                lambda: self._delete("team_members", [("team_id", eq(team_id))], "delete_team"),
                lambda: self._delete("teams", [("id", eq(team_id))], "delete_team"),
            ]
        )
        return results[-1]

    async def remove_team_member(self, team_id: int, user_id: int) -> int:
        return await self._delete(
            "team_members", [("team_id", eq(team_id)), ("user_id", eq(user_id))], "remove_team_member"
        )

    # ----- aggregates -----

    async def _user_files(self, user_id: int, operation: str) -> list[FileRecord]:
        rows = await self._select(
            "files", [("user_id", eq(user_id))], operation,
            columns="id,user_id,filename,original_name,size,type,created_at",
        )
        return [FileRecord.model_validate(row) for row in rows]

    async def get_user_stats(self, user_id: int) -> UserStats | None:
        user = await self.find_user_by_id(user_id)
        if user is None:
            return None
        storage = await self.find_storage_by_user_id(user_id)
        files = await self._user_files(user_id, "get_user_stats")
        return build_user_stats(user, storage, files, self._default_quota)

    async def get_file_type_stats(self, user_id: int) -> list[FileTypeStat]:
        return build_file_type_stats(await self._user_files(user_id, "get_file_type_stats"))

    async def get_recent_activity(self, user_id: int, days: int = 7) -> list[ActivityDay]:
        rows = await self._select(
            "activities",
            [("user_id", eq(user_id)), ("created_at", f"gte.{_cutoff(days)}")],
            "get_recent_activity",
            columns="created_at",
        )
        per_day = Counter(datetime.fromisoformat(row["created_at"]).date() for row in rows)
        return [
            ActivityDay(date=day, activity_count=count)
            for day, count in sorted(per_day.items(), reverse=True)
        ]

    # ----- maintenance -----

    async def cleanup_old_notifications(self, days: int = 30) -> int:
        return await self._delete(
            "notifications",
            [("read", eq(True)), ("created_at", f"lt.{_cutoff(days)}")],
            "cleanup_old_notifications",
        )

    async def cleanup_old_activities(self, days: int = 90) -> int:
        return await self._delete(
            "activities", [("created_at", f"lt.{_cutoff(days)}")], "cleanup_old_activities"
        )
