"""Team API controller."""

from typing import List

from fastapi import APIRouter, Depends, Path

from app.core.dependencies import get_persistence, get_token_claims
from app.core.security import TokenClaims
from app.domains.team.service import TeamService
from app.persistence.base import PersistenceAdapter
from app.persistence.records import TeamMemberRecord, TeamRecord
from app.schemas.base import MessageResponse
from app.schemas.team import TeamCreate, TeamCreated, TeamInvite

router = APIRouter(
    prefix="/api/teams",
    tags=["teams"],
    dependencies=[Depends(get_token_claims)],
)


def get_team_service(persistence: PersistenceAdapter = Depends(get_persistence)) -> TeamService:
    return TeamService(persistence)


@router.post("", response_model=TeamCreated, status_code=201)
async def create_team(
    payload: TeamCreate,
    claims: TokenClaims = Depends(get_token_claims),
    service: TeamService = Depends(get_team_service),
):
    """Create a team with the current user as owner and admin."""
    return await service.create_team(claims.id, payload.name, payload.description)


@router.get("", response_model=List[TeamRecord])
async def list_teams(
    claims: TokenClaims = Depends(get_token_claims),
    service: TeamService = Depends(get_team_service),
):
    """Teams the current user belongs to."""
    return await service.list_teams(claims.id)


@router.get("/members", response_model=List[TeamMemberRecord])
async def list_members(
    claims: TokenClaims = Depends(get_token_claims),
    service: TeamService = Depends(get_team_service),
):
    """Members of every team the current user belongs to."""
    return await service.list_members(claims.id)


@router.post("/{team_id}/invite", response_model=MessageResponse, status_code=201)
async def invite_member(
    payload: TeamInvite,
    team_id: int = Path(..., ge=1),
    claims: TokenClaims = Depends(get_token_claims),
    service: TeamService = Depends(get_team_service),
):
    await service.invite(claims.id, team_id, payload.email, payload.role)
    return MessageResponse(message="User added to team successfully")


@router.delete("/{team_id}", response_model=MessageResponse)
async def delete_team(
    team_id: int = Path(..., ge=1),
    claims: TokenClaims = Depends(get_token_claims),
    service: TeamService = Depends(get_team_service),
):
    await service.delete_team(claims.id, team_id)
    return MessageResponse(message="Team deleted successfully")


@router.delete("/{team_id}/members/{member_id}", response_model=MessageResponse)
async def remove_member(
    team_id: int = Path(..., ge=1),
    member_id: int = Path(..., ge=1),
    claims: TokenClaims = Depends(get_token_claims),
    service: TeamService = Depends(get_team_service),
):
    await service.remove_member(claims.id, team_id, member_id)
    return MessageResponse(message="Member removed successfully")
