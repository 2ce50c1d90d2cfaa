"""
Unit tests for the WebDAV storage client against the in-memory fake server.
"""

import httpx
import pytest

from app.storage.errors import ObjectNotFoundError, ObjectStorageError
from app.storage.webdav import WebDAVStorage


class TestPaths:
    def test_object_path_layout(self):
        storage = WebDAVStorage("http://dav.test", base_dir="cloud/")
        assert storage.user_directory(5) == "/cloud/user_5"
        assert storage.object_path(5, "abc.pdf") == "/cloud/user_5/abc.pdf"

    def test_base_url_required(self):
        with pytest.raises(ValueError):
            WebDAVStorage(None)


class TestOperations:
    @pytest.mark.asyncio
    async def test_upload_creates_directories_and_stores_bytes(self, object_storage, fake_webdav):
        path = await object_storage.upload(3, "f.txt", b"hello")

        assert path == "/cloud/user_3/f.txt"
        assert fake_webdav.objects[path] == b"hello"
        assert {"/cloud", "/cloud/user_3"} <= fake_webdav.collections
        assert ("MKCOL", "/cloud") in fake_webdav.requests

    @pytest.mark.asyncio
    async def test_ensure_user_directory_is_idempotent(self, object_storage, fake_webdav):
        await object_storage.ensure_user_directory(3)
        fake_webdav.requests.clear()

        assert await object_storage.ensure_user_directory(3) == "/cloud/user_3"
        assert [m for m, _ in fake_webdav.requests] == ["PROPFIND"]

    @pytest.mark.asyncio
    async def test_existing_parent_collection_tolerated(self, object_storage, fake_webdav):
        fake_webdav.collections.add("/cloud")
        await object_storage.ensure_user_directory(8)
        assert "/cloud/user_8" in fake_webdav.collections

    @pytest.mark.asyncio
    async def test_download_returns_identical_bytes(self, object_storage):
        payload = bytes(range(256)) * 10
        await object_storage.upload(1, "bin.zip", payload)
        assert await object_storage.download(1, "bin.zip") == payload

    @pytest.mark.asyncio
    async def test_download_missing_raises_not_found(self, object_storage):
        with pytest.raises(ObjectNotFoundError):
            await object_storage.download(1, "missing.txt")

    @pytest.mark.asyncio
    async def test_delete_missing_object_is_success(self, object_storage, fake_webdav):
        await object_storage.upload(1, "a.txt", b"a")

        assert await object_storage.delete(1, "a.txt") is True
        assert await object_storage.delete(1, "a.txt") is False
        assert "/cloud/user_1/a.txt" not in fake_webdav.objects

    @pytest.mark.asyncio
    async def test_list_files(self, object_storage):
        await object_storage.upload(2, "b.txt", b"b")
        await object_storage.upload(2, "a.txt", b"a")

        assert await object_storage.list_files(2) == ["a.txt", "b.txt"]
        assert await object_storage.list_files(99) == []

    @pytest.mark.asyncio
    async def test_server_error_raises_storage_error(self, object_storage, fake_webdav):
        fake_webdav.fail_methods.add("PUT")
        with pytest.raises(ObjectStorageError) as exc_info:
            await object_storage.upload(1, "a.txt", b"a")
        assert exc_info.value.status_code == 500
        assert fake_webdav.objects == {}


class TestConnection:
    @pytest.mark.asyncio
    async def test_check_connection(self, object_storage, fake_webdav):
        assert await object_storage.check_connection() is True
        fake_webdav.fail_methods.add("PROPFIND")
        assert await object_storage.check_connection() is False

    @pytest.mark.asyncio
    async def test_check_connection_never_raises_on_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        storage = WebDAVStorage("http://dav.test", transport=httpx.MockTransport(refuse))
        try:
            assert await storage.check_connection() is False
            with pytest.raises(ObjectStorageError):
                await storage.download(1, "x")
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_basic_auth_header_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(207, content=b'<d:multistatus xmlns:d="DAV:"/>')

        storage = WebDAVStorage("http://dav.test", "user", "pw", transport=httpx.MockTransport(handler))
        try:
            await storage.exists("/")
        finally:
            await storage.close()
        assert seen["auth"].startswith("Basic ")
