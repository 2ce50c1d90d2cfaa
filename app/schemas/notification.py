"""Notification schemas."""

from typing import List

from pydantic import Field

from app.persistence.records import NotificationType

from .base import BaseSchema


class NotificationCreate(BaseSchema):
    """Schema for creating a notification for the current user."""

    message: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType = "info"
    category: str = Field(default="general", min_length=1, max_length=50)


class NotificationCreated(BaseSchema):
    id: int


class BulkDeleteRequest(BaseSchema):
    ids: List[int] = Field(..., min_length=1, max_length=500)


class UnreadCountResponse(BaseSchema):
    count: int


class UpdatedCountResponse(BaseSchema):
    message: str
    updated: int


class DeletedCountResponse(BaseSchema):
    message: str
    deleted: int
