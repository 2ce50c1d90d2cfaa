"""Activity log API controller."""

from typing import List

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_persistence, get_token_claims
from app.core.security import TokenClaims
from app.domains.activity.service import ActivityService
from app.persistence.base import PersistenceAdapter
from app.persistence.records import ActivityDay, ActivityRecord

router = APIRouter(
    prefix="/api/activities",
    tags=["activities"],
    dependencies=[Depends(get_token_claims)],
)


@router.get("", response_model=List[ActivityRecord])
async def list_activities(
    limit: int = Query(20, ge=1, le=100),
    claims: TokenClaims = Depends(get_token_claims),
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    """Most recent activity entries, newest first."""
    return await ActivityService(persistence).list_activities(claims.id, limit)


@router.get("/recent", response_model=List[ActivityDay])
async def recent_activity(
    days: int = Query(7, ge=1, le=365),
    claims: TokenClaims = Depends(get_token_claims),
    persistence: PersistenceAdapter = Depends(get_persistence),
):
    return await ActivityService(persistence).recent_activity(claims.id, days)
