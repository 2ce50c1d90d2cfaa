"""File API controller: upload, list, download and delete."""

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Path, Response, UploadFile

from app.core.config import settings
from app.core.dependencies import get_object_storage, get_persistence, get_token_claims
from app.core.security import TokenClaims
from app.domains.file.service import FileService, IncomingFile
from app.domains.storage.service import StorageService
from app.persistence.base import PersistenceAdapter
from app.persistence.records import FileTypeStat
from app.schemas.base import MessageResponse
from app.schemas.file import FileResponse, UploadResponse
from app.storage.webdav import WebDAVStorage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/files",
    tags=["files"],
    dependencies=[Depends(get_token_claims)],
)


def get_file_service(
    persistence: PersistenceAdapter = Depends(get_persistence),
    storage: WebDAVStorage = Depends(get_object_storage),
) -> FileService:
    return FileService(persistence, storage)


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    claims: TokenClaims = Depends(get_token_claims),
    service: FileService = Depends(get_file_service),
):
    """Upload a single file (multipart field ``file``)."""
    incoming = None
    if file is not None:
        # one byte past the limit is enough to reject oversized uploads
        content = await file.read(settings.max_file_size + 1)
        incoming = IncomingFile(file.filename, content, file.content_type)

    record = await service.upload(claims.id, incoming)
    return UploadResponse(file=FileResponse.model_validate(record))


@router.get("", response_model=List[FileResponse])
async def list_files(
    claims: TokenClaims = Depends(get_token_claims),
    service: FileService = Depends(get_file_service),
):
    """List the current user's files, newest first."""
    return await service.list_files(claims.id)


@router.get("/stats/types", response_model=List[FileTypeStat])
async def file_type_stats(
    claims: TokenClaims = Depends(get_token_claims),
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    return await StorageService(persistence).get_file_type_stats(claims.id)


@router.get("/download/{filename}")
async def download_file(
    filename: str = Path(..., min_length=1, max_length=255),
    claims: TokenClaims = Depends(get_token_claims),
    service: FileService = Depends(get_file_service),
):
    """Stream a stored file back as an attachment."""
    record, content = await service.download(claims.id, filename)
    return Response(
        content=content,
        media_type=record.type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.original_name)}",
        },
    )


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: int = Path(..., ge=1),
    claims: TokenClaims = Depends(get_token_claims),
    service: FileService = Depends(get_file_service),
):
    await service.delete(claims.id, file_id)
    return MessageResponse(message="File deleted successfully")
