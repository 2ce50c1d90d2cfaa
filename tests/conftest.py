# tests/conftest.py
import os

# Set up test environment variables BEFORE any other imports
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET", "zyboard-test-secret-0123456789")
os.environ.setdefault("DB_TYPE", "sqlite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("WEBDAV_URL", "http://webdav.test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import posixpath
from urllib.parse import unquote
from xml.sax.saxutils import escape

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.dependencies import get_object_storage, get_persistence
from app.core.security import create_access_token, hash_password
from app.main import app
from app.persistence.sql import SqlPersistence
from app.storage.webdav import WebDAVStorage

WEBDAV_BASE_URL = "http://webdav.test"


class FakeWebDAV:
    """In-memory WebDAV server for ``httpx.MockTransport``.

    Supports the subset of the protocol the storage client uses. Set
    ``fail_methods`` to make a verb answer 500.
    """

    def __init__(self):
        self.collections = {"/"}
        self.objects: dict[str, bytes] = {}
        self.fail_methods: set[str] = set()
        self.requests: list[tuple[str, str]] = []

    def _multistatus(self, paths):
        responses = []
        for path in paths:
            resource = "<d:collection/>" if path in self.collections else ""
            responses.append(
                f"<d:response><d:href>{escape(path)}</d:href><d:propstat><d:prop>"
                f"<d:resourcetype>{resource}</d:resourcetype></d:prop>"
                "<d:status>HTTP/1.1 200 OK</d:status></d:propstat></d:response>"
            )
        body = '<?xml version="1.0"?><d:multistatus xmlns:d="DAV:">' + "".join(responses) + "</d:multistatus>"
        return httpx.Response(207, content=body.encode(), headers={"Content-Type": "application/xml"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = unquote(request.url.path).rstrip("/") or "/"
        self.requests.append((method, path))

        if method in self.fail_methods:
            return httpx.Response(500)

        parent = posixpath.dirname(path)
        exists = path in self.objects or path in self.collections

        if method == "PROPFIND":
            if not exists:
                return httpx.Response(404)
            if request.headers.get("Depth") == "1" and path in self.collections:
                children = [
                    p for p in sorted(self.collections | set(self.objects))
                    if p != path and posixpath.dirname(p) == path
                ]
                return self._multistatus([path, *children])
            return self._multistatus([path])

        if method == "MKCOL":
            if exists:
                return httpx.Response(405)
            if parent not in self.collections:
                return httpx.Response(409)
            self.collections.add(path)
            return httpx.Response(201)

        if method == "PUT":
            if parent not in self.collections:
                return httpx.Response(409)
            created = path not in self.objects
            self.objects[path] = request.content
            return httpx.Response(201 if created else 204)

        if method == "GET":
            if path not in self.objects:
                return httpx.Response(404)
            return httpx.Response(200, content=self.objects[path])

        if method == "DELETE":
            if self.objects.pop(path, None) is None:
                return httpx.Response(404)
            return httpx.Response(204)

        return httpx.Response(405)


@pytest.fixture
def fake_webdav():
    return FakeWebDAV()


@pytest_asyncio.fixture
async def object_storage(fake_webdav):
    storage = WebDAVStorage(
        WEBDAV_BASE_URL,
        "webdav-user",
        "webdav-pass",
        base_dir="/cloud",
        transport=httpx.MockTransport(fake_webdav.handler),
    )
    yield storage
    await storage.close()


@pytest_asyncio.fixture
async def persistence(tmp_path):
    """SQL backend on a throwaway SQLite file."""
    adapter = SqlPersistence(f"sqlite+aiosqlite:///{tmp_path / 'zyboard.db'}", create_schema=True)
    await adapter.initialize()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def client(persistence, object_storage):
    """Create a test client wired to the SQLite backend and the fake WebDAV server."""
    app.dependency_overrides[get_persistence] = lambda: persistence
    app.dependency_overrides[get_object_storage] = lambda: object_storage
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(persistence):
    """Insert a user directly and return ``(user_id, auth_headers)``."""

    async def _make_user(username="alice", email=None, password="secret123", total_space=None):
        email = email or f"{username}@example.com"
        user_id = await persistence.insert_user(username, email, hash_password(password))
        if total_space is not None:
            await persistence.insert_storage(user_id, total_space, 0)
        token = create_access_token(user_id, username)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest_asyncio.fixture
async def test_user(make_user):
    """A registered user with the default quota allocation."""
    user_id, headers = await make_user("alice", total_space=1024 * 1024 * 1024)
    return {"id": user_id, "username": "alice", "email": "alice@example.com", "headers": headers}


@pytest_asyncio.fixture
async def test_user_2(make_user):
    user_id, headers = await make_user("bob", total_space=1024 * 1024 * 1024)
    return {"id": user_id, "username": "bob", "email": "bob@example.com", "headers": headers}
