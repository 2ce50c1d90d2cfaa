"""File lifecycle service: upload, download, delete and listing.

Bytes go to the WebDAV server first and metadata last, so a failure before
the final step never leaves a row pointing at a missing object. Quota is
claimed with a conditional increment that fails instead of overshooting.
"""

import logging
import mimetypes
import posixpath
import uuid
from dataclasses import dataclass

from app.core.config import Settings, settings
from app.domains.storage.service import StorageService
from app.exceptions.file import (
    FileLifecycleError,
    FileTooLargeError,
    NoFileProvidedError,
    QuotaExceededError,
    UnsupportedFileTypeError,
    UserFileNotFoundError,
)
from app.persistence.base import PersistenceAdapter
from app.persistence.errors import DataAccessError
from app.persistence.records import FileRecord
from app.services.side_effects import notify, record_activity
from app.storage.errors import ObjectNotFoundError, ObjectStorageError
from app.storage.webdav import WebDAVStorage

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """An uploaded file read into memory."""

    original_name: str | None
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


def file_extension(name: str) -> str:
    return posixpath.splitext(name)[1].lower().lstrip(".")


def generate_storage_name(original_name: str) -> str:
    """Collision-resistant storage name keeping the original extension."""
    extension = file_extension(original_name)
    return f"{uuid.uuid4().hex}.{extension}" if extension else uuid.uuid4().hex


class FileService:
    """Service class coordinating object storage, quota and file metadata."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        storage: WebDAVStorage,
        config: Settings = settings,
    ):
        self.persistence = persistence
        self.storage = storage
        self.config = config
        self.quotas = StorageService(persistence, config)

    def validate_upload(self, upload: IncomingFile | None) -> None:
        if upload is None or not upload.original_name:
            raise NoFileProvidedError()
        if upload.size > self.config.max_file_size:
            raise FileTooLargeError(self.config.max_file_size)
        extension = file_extension(upload.original_name)
        if extension not in self.config.allowed_extensions_set:
            raise UnsupportedFileTypeError(extension)

    async def _log_unreferenced_objects(self, user_id: int) -> None:
        """Log the user's stored objects that have no metadata row."""
        try:
            stored = await self.storage.list_files(user_id)
        except ObjectStorageError as e:
            logger.warning("Could not list objects for user %s: %s", user_id, e)
            return
        try:
            known = {record.filename for record in await self.persistence.find_files_by_user_id(user_id)}
        except DataAccessError:
            known = set()
        unreferenced = [name for name in stored if name not in known]
        if unreferenced:
            logger.error("Unreferenced objects for user %s: %s", user_id, ", ".join(unreferenced))

    async def upload(self, user_id: int, upload: IncomingFile | None) -> FileRecord:
        """
        Store an uploaded file and record its metadata.

        :raises QuotaExceededError: the file does not fit in the remaining quota,
            including when a concurrent upload claimed the space first.
        :raises ObjectStorageError: the object could not be written; nothing changed.
        :raises FileLifecycleError: the object was written but its metadata was not.
        """
        self.validate_upload(upload)
        size = upload.size
        mime_type = (
            upload.content_type
            or mimetypes.guess_type(upload.original_name)[0]
            or "application/octet-stream"
        )

        allocation = await self.quotas.get_or_create_allocation(user_id)
        if allocation.used_space + size > allocation.total_space:
            raise QuotaExceededError(size, allocation.available_space)

        filename = generate_storage_name(upload.original_name)
        path = await self.storage.upload(user_id, filename, upload.content)

        try:
            claimed = await self.persistence.increment_storage_used(user_id, size)
        except DataAccessError as e:
            logger.error(
                "Upload left orphaned object: user=%s path=%s step=increment_storage_used error=%s",
                user_id, path, e,
            )
            raise FileLifecycleError() from e

        if not claimed:
            # lost the race for the remaining space; nothing references the object yet
            try:
                await self.storage.delete(user_id, filename)
            except ObjectStorageError as e:
                logger.error(
                    "Upload left orphaned object: user=%s path=%s step=quota_race_cleanup error=%s",
                    user_id, path, e,
                )
            current = await self.persistence.find_storage_by_user_id(user_id)
            raise QuotaExceededError(size, current.available_space if current else 0)

        try:
            file_id = await self.persistence.insert_file(
                user_id, filename, upload.original_name, size, mime_type, path
            )
        except DataAccessError as e:
            logger.error(
                "Upload left orphaned object and charged quota: user=%s path=%s size=%s "
                "step=insert_file error=%s",
                user_id, path, size, e,
            )
            await self._log_unreferenced_objects(user_id)
            raise FileLifecycleError() from e

        logger.info("User %s uploaded %s as %s (%d bytes)", user_id, upload.original_name, filename, size)

        await record_activity(
            self.persistence,
            user_id,
            f"Uploaded file: {upload.original_name}",
            {"file_id": file_id, "filename": filename, "size": size},
        )
        await notify(
            self.persistence,
            user_id,
            f'File "{upload.original_name}" uploaded successfully',
            type="success",
            category="file",
        )

        record = await self.persistence.find_file_by_id(file_id, user_id)
        if record is None:
            record = FileRecord(
                id=file_id,
                user_id=user_id,
                filename=filename,
                original_name=upload.original_name,
                size=size,
                type=mime_type,
                path=path,
            )
        return record

    async def download(self, user_id: int, filename: str) -> tuple[FileRecord, bytes]:
        record = await self.persistence.find_file_by_filename(filename, user_id)
        if record is None:
            raise UserFileNotFoundError()

        try:
            content = await self.storage.download(user_id, record.filename)
        except ObjectNotFoundError as e:
            logger.error("Metadata without object: user=%s path=%s", user_id, record.path)
            raise UserFileNotFoundError("File not found in storage") from e

        await record_activity(
            self.persistence,
            user_id,
            f"Downloaded file: {record.original_name}",
            {"file_id": record.id},
        )
        return record, content

    async def delete(self, user_id: int, file_id: int) -> FileRecord:
        """Remove the object, release its quota, then drop the metadata row."""
        record = await self.persistence.find_file_by_id(file_id, user_id)
        if record is None:
            raise UserFileNotFoundError()

        await self.storage.delete(user_id, record.filename)
        await self.persistence.decrement_storage_used(user_id, record.size)

        if not await self.persistence.delete_file(file_id, user_id):
            raise UserFileNotFoundError()

        logger.info("User %s deleted file %s (%d bytes)", user_id, record.filename, record.size)

        await record_activity(
            self.persistence,
            user_id,
            f"Deleted file: {record.original_name}",
            {"file_id": file_id, "size": record.size},
        )
        await notify(
            self.persistence,
            user_id,
            f'File "{record.original_name}" deleted',
            type="info",
            category="file",
        )
        return record

    async def list_files(self, user_id: int) -> list[FileRecord]:
        return await self.persistence.find_files_by_user_id(user_id)
