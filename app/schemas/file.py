"""File and storage schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import BaseSchema


class FileResponse(BaseSchema):
    """File metadata as exposed to clients (no storage path)."""

    id: int
    filename: str
    original_name: str
    size: int
    type: Optional[str] = None
    created_at: Optional[datetime] = None


class UploadResponse(BaseSchema):
    message: str = "File uploaded successfully"
    file: FileResponse


class StorageInfoResponse(BaseSchema):
    """Quota summary in bytes."""

    total_space: int = Field(..., serialization_alias="totalSpace")
    used_space: int = Field(..., serialization_alias="usedSpace")
    available_space: int = Field(..., serialization_alias="availableSpace")
