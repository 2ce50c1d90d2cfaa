"""Team service layer with membership rules."""

import logging
from typing import Optional

from app.exceptions.team import (
    TeamMemberNotFoundError,
    TeamNotFoundError,
    TeamPermissionError,
    TeamRuleError,
)
from app.exceptions.user import UserNotFoundError
from app.persistence.base import PersistenceAdapter
from app.persistence.errors import DuplicateRecordError
from app.persistence.records import TeamMemberRecord, TeamRecord
from app.services.side_effects import notify, record_activity

logger = logging.getLogger(__name__)


class TeamService:
    """Service class for team business logic.

    The creator of a team is its owner whether or not a membership row
    exists; owners and admins may invite and remove members, and only the
    owner may delete the team.
    """

    def __init__(self, persistence: PersistenceAdapter):
        self.persistence = persistence

    async def _get_team(self, team_id: int) -> TeamRecord:
        team = await self.persistence.find_team_by_id(team_id)
        if team is None:
            raise TeamNotFoundError()
        return team

    async def _can_manage(self, team_id: int, user_id: int) -> bool:
        return await self.persistence.check_team_owner(
            team_id, user_id
        ) or await self.persistence.check_team_admin(team_id, user_id)

    async def create_team(self, user_id: int, name: str, description: Optional[str] = None) -> dict:
        team_id = await self.persistence.create_team_with_admin(name, description, user_id)
        logger.info("User %s created team %s", user_id, team_id)
        await record_activity(self.persistence, user_id, f"Created team: {name}", {"team_id": team_id})
        return {"id": team_id, "name": name, "description": description}

    async def repair_owner_memberships(self, user_id: int) -> int:
        """Give the creator an admin row on every owned team that lacks one."""
        repaired = 0
        for team in await self.persistence.find_teams_created_by(user_id):
            if await self.persistence.find_team_member(team.id, user_id) is not None:
                continue
            logger.warning("Team %s has no membership row for its owner %s; repairing", team.id, user_id)
            try:
                await self.persistence.insert_team_member(team.id, user_id, "admin")
                repaired += 1
            except DuplicateRecordError:
                pass
        return repaired

    async def list_teams(self, user_id: int) -> list[TeamRecord]:
        await self.repair_owner_memberships(user_id)
        return await self.persistence.find_teams_by_user_id(user_id)

    async def list_members(self, user_id: int) -> list[TeamMemberRecord]:
        return await self.persistence.find_team_members_by_user_id(user_id)

    async def invite(self, actor_id: int, team_id: int, email: str, role: str = "member") -> dict:
        if not await self._can_manage(team_id, actor_id):
            raise TeamPermissionError("Only team owners and admins can invite members")
        team = await self._get_team(team_id)

        invitee = await self.persistence.find_user_by_email(email)
        if invitee is None:
            raise UserNotFoundError()
        if await self.persistence.find_team_member(team_id, invitee.id) is not None:
            raise TeamRuleError("User is already a member of this team")

        try:
            await self.persistence.insert_team_member(team_id, invitee.id, role)
        except DuplicateRecordError as e:
            raise TeamRuleError("User is already a member of this team") from e

        logger.info("User %s added user %s to team %s as %s", actor_id, invitee.id, team_id, role)
        await notify(
            self.persistence,
            invitee.id,
            f'You have been added to the team "{team.name}"',
            type="info",
            category="team",
        )
        await record_activity(
            self.persistence,
            actor_id,
            f"Invited {invitee.username} to team: {team.name}",
            {"team_id": team_id, "user_id": invitee.id, "role": role},
        )
        return {"team_id": team_id, "user_id": invitee.id, "role": role}

    async def delete_team(self, actor_id: int, team_id: int) -> None:
        team = await self._get_team(team_id)
        if team.created_by != actor_id:
            raise TeamPermissionError("Only the team owner can delete the team")

        if not await self.persistence.delete_team(team_id):
            raise TeamNotFoundError()

        logger.info("User %s deleted team %s", actor_id, team_id)
        await record_activity(self.persistence, actor_id, f"Deleted team: {team.name}", {"team_id": team_id})

    async def remove_member(self, actor_id: int, team_id: int, member_id: int) -> None:
        team = await self._get_team(team_id)
        if not await self._can_manage(team_id, actor_id):
            raise TeamPermissionError("Only team owners and admins can remove members")
        if member_id == team.created_by:
            raise TeamRuleError("Cannot remove the team owner")

        if not await self.persistence.remove_team_member(team_id, member_id):
            raise TeamMemberNotFoundError()

        logger.info("User %s removed user %s from team %s", actor_id, member_id, team_id)
        await notify(
            self.persistence,
            member_id,
            f'You have been removed from the team "{team.name}"',
            type="warning",
            category="team",
        )
