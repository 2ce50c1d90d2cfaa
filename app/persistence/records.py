"""Typed records returned by the persistence adapters.

Both backends validate into these shapes: the SQL backend from ORM rows
(``from_attributes``), the REST backend from JSON objects. Column names that
clash with Python or SQLAlchemy attributes accept either spelling.
"""

from datetime import date as calendar_date
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

NotificationType = Literal["info", "success", "warning", "error"]
TeamRole = Literal["admin", "member"]


class Record(BaseModel):
    """Base for adapter records."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class UserRecord(Record):
    id: int
    username: str
    email: str
    password_hash: str | None = Field(
        default=None,
        validation_alias=AliasChoices("password_hash", "password"),
        exclude=True,
        repr=False,
    )
    created_at: datetime | None = None


class StorageRecord(Record):
    user_id: int
    total_space: int
    used_space: int

    @property
    def available_space(self) -> int:
        return max(self.total_space - self.used_space, 0)


class FileRecord(Record):
    id: int
    user_id: int
    filename: str
    original_name: str
    size: int
    type: str | None = None
    path: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ActivityRecord(Record):
    id: int
    user_id: int
    action: str
    metadata: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("details", "metadata")
    )
    created_at: datetime | None = None


class NotificationRecord(Record):
    id: int
    user_id: int
    message: str
    type: str = "info"
    category: str = "general"
    read: bool = False
    created_at: datetime | None = None


class TeamRecord(Record):
    id: int
    name: str
    description: str | None = None
    created_by: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    member_count: int = 0
    creator_name: str | None = None


class TeamMemberRecord(Record):
    """A member of one of the caller's teams, joined with user and team data."""

    id: int
    username: str
    email: str
    created_at: datetime | None = None
    role: str
    joined_at: datetime | None = None
    team_id: int
    team_name: str


class UserStats(Record):
    id: int
    username: str
    email: str
    created_at: datetime | None = None
    total_space: int
    used_space: int
    available_space: int
    usage_percentage: float
    file_count: int
    avg_file_size: float
    last_upload: datetime | None = None


class FileTypeStat(Record):
    type: str | None
    count: int
    total_size: int
    avg_size: float


class ActivityDay(Record):
    date: calendar_date
    activity_count: int


def build_user_stats(
    user: UserRecord,
    storage: StorageRecord | None,
    files: list[FileRecord],
    default_quota: int,
) -> UserStats:
    """Assemble usage statistics from already-loaded rows."""
    total = storage.total_space if storage else default_quota
    used = storage.used_space if storage else 0
    sizes = [f.size for f in files]
    uploads = [f.created_at for f in files if f.created_at is not None]
    return UserStats(
        id=user.id,
        username=user.username,
        email=user.email,
        created_at=user.created_at,
        total_space=total,
        used_space=used,
        available_space=max(total - used, 0),
        usage_percentage=round(used / total * 100, 2) if total else 0.0,
        file_count=len(files),
        avg_file_size=sum(sizes) / len(sizes) if sizes else 0.0,
        last_upload=max(uploads) if uploads else None,
    )


def build_file_type_stats(files: list[FileRecord]) -> list[FileTypeStat]:
    """Group files by MIME type, most frequent first."""
    grouped: dict[str | None, list[int]] = {}
    for f in files:
        grouped.setdefault(f.type, []).append(f.size)
    stats = [
        FileTypeStat(
            type=mime,
            count=len(sizes),
            total_size=sum(sizes),
            avg_size=sum(sizes) / len(sizes),
        )
        for mime, sizes in grouped.items()
    ]
    return sorted(stats, key=lambda s: s.count, reverse=True)
