"""Storage quota API controller."""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_persistence, get_token_claims
from app.core.security import TokenClaims
from app.domains.storage.service import StorageService
from app.persistence.base import PersistenceAdapter
from app.schemas.file import StorageInfoResponse

router = APIRouter(
    prefix="/api/storage",
    tags=["storage"],
    dependencies=[Depends(get_token_claims)],
)


@router.get("/info", response_model=StorageInfoResponse)
async def get_storage_info(
    claims: TokenClaims = Depends(get_token_claims),
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    """Total, used and available bytes for the current user."""
    info = await StorageService(persistence).get_storage_info(claims.id)
    return StorageInfoResponse(**info)
