"""
Unit tests for FileService: upload, download and delete coordination.

Uses the SQLite backend and the fake WebDAV server so quota, metadata and
stored bytes can all be asserted after each operation.
"""

import asyncio
import logging
import posixpath
from unittest.mock import AsyncMock

import pytest

from app.core.config import settings
from app.domains.file.service import FileService, IncomingFile, generate_storage_name
from app.exceptions.file import (
    FileLifecycleError,
    FileTooLargeError,
    NoFileProvidedError,
    QuotaExceededError,
    UnsupportedFileTypeError,
    UserFileNotFoundError,
)
from app.persistence.errors import DataAccessError
from app.storage.errors import ObjectStorageError


@pytest.fixture
def service(persistence, object_storage):
    return FileService(persistence, object_storage)


async def _user(persistence, name="alice", total=1000, used=0):
    user_id = await persistence.insert_user(name, f"{name}@example.com", "hash")
    await persistence.insert_storage(user_id, total, used)
    return user_id


class TestValidation:
    def test_missing_file(self, service):
        with pytest.raises(NoFileProvidedError):
            service.validate_upload(None)
        with pytest.raises(NoFileProvidedError):
            service.validate_upload(IncomingFile("", b"abc"))

    def test_too_large_names_limit(self, persistence, object_storage):
        config = settings.model_copy(update={"max_file_size": 10})
        service = FileService(persistence, object_storage, config)
        with pytest.raises(FileTooLargeError) as exc_info:
            service.validate_upload(IncomingFile("a.txt", b"x" * 11))
        assert exc_info.value.details == {"max_size": 10}

    def test_unsupported_extension_names_extension(self, service):
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            service.validate_upload(IncomingFile("run.exe", b"MZ"))
        assert exc_info.value.details == {"extension": "exe"}

    def test_extension_check_is_case_insensitive(self, service):
        service.validate_upload(IncomingFile("PHOTO.JPG", b"\xff\xd8"))

    def test_generated_name_keeps_lowercase_extension(self):
        name = generate_storage_name("Report.PDF")
        assert name.endswith(".pdf")
        assert len(name) == 32 + 4
        assert generate_storage_name("Report.PDF") != name


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_stores_object_and_metadata(self, service, persistence, fake_webdav):
        user_id = await _user(persistence)

        record = await service.upload(user_id, IncomingFile("notes.txt", b"hello world", "text/plain"))

        assert record.size == 11
        assert record.original_name == "notes.txt"
        assert record.type == "text/plain"
        assert fake_webdav.objects[record.path] == b"hello world"
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 11

        activities = await persistence.find_activities_by_user_id(user_id)
        assert activities[0].action == "Uploaded file: notes.txt"
        assert activities[0].metadata["file_id"] == record.id
        notifications = await persistence.find_notifications_by_user_id(user_id)
        assert notifications[0].type == "success"
        assert notifications[0].category == "file"

    @pytest.mark.asyncio
    async def test_empty_file_counts_as_zero_bytes(self, service, persistence):
        user_id = await _user(persistence)
        record = await service.upload(user_id, IncomingFile("empty.txt", b""))
        assert record.size == 0
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 0

    @pytest.mark.asyncio
    async def test_mime_type_guessed_when_missing(self, service, persistence):
        user_id = await _user(persistence)
        record = await service.upload(user_id, IncomingFile("doc.pdf", b"%PDF"))
        assert record.type == "application/pdf"

    @pytest.mark.asyncio
    async def test_allocation_created_on_first_upload(self, service, persistence):
        user_id = await persistence.insert_user("new", "new@example.com", "hash")

        await service.upload(user_id, IncomingFile("a.txt", b"abc"))

        storage = await persistence.find_storage_by_user_id(user_id)
        assert storage.total_space == settings.default_storage_quota
        assert storage.used_space == 3

    @pytest.mark.asyncio
    async def test_quota_exceeded_writes_nothing(self, service, persistence, fake_webdav):
        user_id = await _user(persistence, total=100, used=95)

        with pytest.raises(QuotaExceededError) as exc_info:
            await service.upload(user_id, IncomingFile("a.txt", b"x" * 6))

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"requested": 6, "available": 5}
        assert fake_webdav.objects == {}
        assert await persistence.find_files_by_user_id(user_id) == []
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 95

    @pytest.mark.asyncio
    async def test_exact_fit_is_accepted(self, service, persistence):
        user_id = await _user(persistence, total=100, used=95)
        await service.upload(user_id, IncomingFile("a.txt", b"x" * 5))
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 100

    @pytest.mark.asyncio
    async def test_lost_quota_race_removes_object(self, service, persistence, fake_webdav, monkeypatch):
        user_id = await _user(persistence)
        monkeypatch.setattr(persistence, "increment_storage_used", AsyncMock(return_value=0))

        with pytest.raises(QuotaExceededError):
            await service.upload(user_id, IncomingFile("a.txt", b"abc"))

        assert fake_webdav.objects == {}
        assert await persistence.find_files_by_user_id(user_id) == []

    @pytest.mark.asyncio
    async def test_concurrent_uploads_never_exceed_quota(self, service, persistence, fake_webdav):
        user_id = await _user(persistence, total=100, used=40)

        results = await asyncio.gather(
            *(service.upload(user_id, IncomingFile(f"part{n}.txt", b"x" * 15)) for n in range(6)),
            return_exceptions=True,
        )

        uploaded = [r for r in results if not isinstance(r, BaseException)]
        rejected = [r for r in results if isinstance(r, BaseException)]
        assert len(uploaded) == 4
        assert all(isinstance(error, QuotaExceededError) for error in rejected)

        storage = await persistence.find_storage_by_user_id(user_id)
        files = await persistence.find_files_by_user_id(user_id)
        assert storage.used_space == 40 + sum(f.size for f in files) == 100
        assert {f.id for f in files} == {r.id for r in uploaded}
        assert set(fake_webdav.objects) == {f.path for f in files}

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_quota_untouched(self, service, persistence, fake_webdav):
        user_id = await _user(persistence, used=10)
        fake_webdav.fail_methods.add("PUT")

        with pytest.raises(ObjectStorageError):
            await service.upload(user_id, IncomingFile("a.txt", b"abc"))

        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 10
        assert await persistence.find_files_by_user_id(user_id) == []

    @pytest.mark.asyncio
    async def test_metadata_failure_is_logged_for_reconciliation(
        self, service, persistence, fake_webdav, monkeypatch, caplog
    ):
        user_id = await _user(persistence)
        monkeypatch.setattr(
            persistence, "insert_file", AsyncMock(side_effect=DataAccessError("down", operation="insert_file"))
        )

        with caplog.at_level(logging.ERROR, logger="app.domains.file.service"):
            with pytest.raises(FileLifecycleError) as exc_info:
                await service.upload(user_id, IncomingFile("a.txt", b"abc"))

        assert exc_info.value.status_code == 500
        failure, leftovers = [record.getMessage() for record in caplog.records][-2:]
        assert f"user={user_id}" in failure
        assert "step=insert_file" in failure
        assert f"/cloud/user_{user_id}/" in failure
        (stored_path,) = fake_webdav.objects
        assert posixpath.basename(stored_path) in leftovers
        assert leftovers.startswith(f"Unreferenced objects for user {user_id}")

    @pytest.mark.asyncio
    async def test_side_effect_failure_does_not_fail_upload(self, service, persistence, monkeypatch):
        user_id = await _user(persistence)
        monkeypatch.setattr(persistence, "insert_activity", AsyncMock(side_effect=DataAccessError("down")))
        monkeypatch.setattr(persistence, "insert_notification", AsyncMock(side_effect=RuntimeError("down")))

        record = await service.upload(user_id, IncomingFile("a.txt", b"abc"))
        assert record.size == 3


class TestDownload:
    @pytest.mark.asyncio
    async def test_download_round_trip(self, service, persistence):
        user_id = await _user(persistence)
        payload = b"\x00\x01binary\xff"
        record = await service.upload(user_id, IncomingFile("blob.zip", payload))

        downloaded, content = await service.download(user_id, record.filename)
        assert content == payload
        assert downloaded.id == record.id

    @pytest.mark.asyncio
    async def test_unknown_filename_records_no_activity(self, service, persistence):
        user_id = await _user(persistence)

        with pytest.raises(UserFileNotFoundError):
            await service.download(user_id, "nope.txt")
        assert await persistence.find_activities_by_user_id(user_id) == []

    @pytest.mark.asyncio
    async def test_missing_object_is_not_found(self, service, persistence, fake_webdav):
        user_id = await _user(persistence)
        record = await service.upload(user_id, IncomingFile("a.txt", b"abc"))
        fake_webdav.objects.clear()

        with pytest.raises(UserFileNotFoundError):
            await service.download(user_id, record.filename)


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_releases_quota_and_object(self, service, persistence, fake_webdav):
        user_id = await _user(persistence, used=100)
        record = await service.upload(user_id, IncomingFile("a.txt", b"x" * 40))

        await service.delete(user_id, record.id)

        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 100
        assert await persistence.find_file_by_id(record.id, user_id) is None
        assert record.path not in fake_webdav.objects

    @pytest.mark.asyncio
    async def test_delete_floors_used_space_at_zero(self, service, persistence):
        user_id = await _user(persistence)
        record = await service.upload(user_id, IncomingFile("a.txt", b"x" * 40))
        await persistence.update_storage_used(user_id, 10)

        await service.delete(user_id, record.id)
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 0

    @pytest.mark.asyncio
    async def test_delete_foreign_file_is_not_found(self, service, persistence, fake_webdav):
        owner = await _user(persistence, "alice")
        intruder = await _user(persistence, "mallory")
        record = await service.upload(owner, IncomingFile("a.txt", b"abc"))

        with pytest.raises(UserFileNotFoundError):
            await service.delete(intruder, record.id)

        assert await persistence.find_file_by_id(record.id, owner) is not None
        assert record.path in fake_webdav.objects
        assert (await persistence.find_storage_by_user_id(owner)).used_space == 3

    @pytest.mark.asyncio
    async def test_delete_with_object_already_gone(self, service, persistence, fake_webdav):
        user_id = await _user(persistence)
        record = await service.upload(user_id, IncomingFile("a.txt", b"abc"))
        fake_webdav.objects.clear()

        await service.delete(user_id, record.id)
        assert await persistence.find_files_by_user_id(user_id) == []

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_row_for_retry(self, service, persistence, fake_webdav):
        user_id = await _user(persistence)
        record = await service.upload(user_id, IncomingFile("a.txt", b"abc"))
        fake_webdav.fail_methods.add("DELETE")

        with pytest.raises(ObjectStorageError):
            await service.delete(user_id, record.id)

        assert await persistence.find_file_by_id(record.id, user_id) is not None
        assert (await persistence.find_storage_by_user_id(user_id)).used_space == 3
