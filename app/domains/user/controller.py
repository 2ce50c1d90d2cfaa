"""User API controller."""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_persistence, get_token_claims
from app.core.security import TokenClaims
from app.domains.storage.service import StorageService
from app.domains.user.service import UserService
from app.persistence.base import PersistenceAdapter
from app.persistence.records import UserStats
from app.schemas.user import UserResponse

router = APIRouter(
    prefix="/api/user",
    tags=["user"],
    dependencies=[Depends(get_token_claims)],
)


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    claims: TokenClaims = Depends(get_token_claims),
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    """Get the current user's profile."""
    user = await UserService(persistence).get_profile(claims.id)
    return UserResponse.model_validate(user)


@router.get("/stats", response_model=UserStats)
async def get_stats(
    claims: TokenClaims = Depends(get_token_claims),
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    """Storage usage and file statistics for the current user."""
    return await StorageService(persistence).get_user_stats(claims.id)
