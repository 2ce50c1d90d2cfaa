"""WebDAV object storage client.

Objects live at ``/{base_dir}/user_{user_id}/{filename}`` on the server.
"""

import logging
import posixpath
from urllib.parse import unquote, urlsplit
from xml.etree import ElementTree

import httpx

from app.storage.errors import ObjectNotFoundError, ObjectStorageError

logger = logging.getLogger(__name__)

DAV_NS = "{DAV:}"

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<d:propfind xmlns:d="DAV:"><d:prop><d:resourcetype/></d:prop></d:propfind>'
)


class WebDAVStorage:
    """Async WebDAV client scoped to per-user directories."""

    def __init__(
        self,
        base_url: str | None,
        username: str | None = None,
        password: str | None = None,
        base_dir: str = "/cloud",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise ValueError("WEBDAV_URL is required")
        self.base_url = base_url.rstrip("/")
        self.base_dir = "/" + base_dir.strip("/") if base_dir.strip("/") else ""
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = httpx.AsyncClient(
            base_url=self.base_url, auth=auth, timeout=timeout, transport=transport
        )

    # ----- paths -----

    def user_directory(self, user_id: int) -> str:
        return f"{self.base_dir}/user_{user_id}"

    def object_path(self, user_id: int, filename: str) -> str:
        return f"{self.user_directory(user_id)}/{filename}"

    # ----- plumbing -----

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("WebDAV %s %s failed", method, path)
            raise ObjectStorageError(f"WebDAV {method} failed: {exc}", path=path) from exc

    @staticmethod
    def _fail(method: str, path: str, response: httpx.Response) -> ObjectStorageError:
        logger.error("WebDAV %s %s returned %s", method, path, response.status_code)
        return ObjectStorageError(
            f"WebDAV {method} returned {response.status_code}",
            path=path,
            status_code=response.status_code,
        )

    async def _propfind(self, path: str, depth: str) -> httpx.Response:
        return await self._send(
            "PROPFIND",
            path,
            headers={"Depth": depth, "Content-Type": "application/xml"},
            content=PROPFIND_BODY,
        )

    # ----- operations -----

    async def exists(self, path: str) -> bool:
        response = await self._propfind(path, "0")
        if response.status_code in (200, 207):
            return True
        if response.status_code == 404:
            return False
        raise self._fail("PROPFIND", path, response)

    async def ensure_user_directory(self, user_id: int) -> str:
        """Create the user's directory (and any missing parents); idempotent."""
        directory = self.user_directory(user_id)
        if await self.exists(directory):
            return directory

        current = ""
        for segment in directory.strip("/").split("/"):
            current = f"{current}/{segment}"
            response = await self._send("MKCOL", current)
            # 405: collection already exists
            if response.status_code not in (200, 201, 405):
                raise self._fail("MKCOL", current, response)
        return directory

    async def upload(self, user_id: int, filename: str, content: bytes) -> str:
        await self.ensure_user_directory(user_id)
        path = self.object_path(user_id, filename)
        response = await self._send(
            "PUT", path, content=content, headers={"Content-Type": "application/octet-stream"}
        )
        if response.status_code not in (200, 201, 204):
            raise self._fail("PUT", path, response)
        logger.info("Stored %d bytes at %s", len(content), path)
        return path

    async def download(self, user_id: int, filename: str) -> bytes:
        path = self.object_path(user_id, filename)
        response = await self._send("GET", path)
        if response.status_code == 404:
            raise ObjectNotFoundError("File not found in storage", path=path, status_code=404)
        if response.status_code != 200:
            raise self._fail("GET", path, response)
        return response.content

    async def delete(self, user_id: int, filename: str) -> bool:
        """Remove an object. Returns False when it was already gone."""
        path = self.object_path(user_id, filename)
        response = await self._send("DELETE", path)
        if response.status_code == 404:
            logger.warning("Object %s already missing from storage", path)
            return False
        if response.status_code not in (200, 202, 204):
            raise self._fail("DELETE", path, response)
        return True

    async def list_files(self, user_id: int) -> list[str]:
        """Names of the objects in the user's directory."""
        directory = self.user_directory(user_id)
        response = await self._propfind(directory, "1")
        if response.status_code == 404:
            return []
        if response.status_code not in (200, 207):
            raise self._fail("PROPFIND", directory, response)

        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError as exc:
            raise ObjectStorageError("Malformed PROPFIND response", path=directory) from exc

        names = []
        for item in root.iter(f"{DAV_NS}response"):
            href = item.findtext(f"{DAV_NS}href") or ""
            if item.find(f".//{DAV_NS}collection") is not None:
                continue
            name = posixpath.basename(unquote(urlsplit(href).path).rstrip("/"))
            if name:
                names.append(name)
        return sorted(names)

    async def check_connection(self) -> bool:
        try:
            return await self.exists("/")
        except Exception as exc:
            logger.warning("WebDAV connection check failed: %s", exc)
            return False

    async def close(self) -> None:
        await self._client.aclose()
