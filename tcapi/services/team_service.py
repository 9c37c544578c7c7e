import logging
from typing import List

from sqlalchemy.orm import Session

from tcapi.core.exceptions import ConflictError, NotFoundError
from tcapi.repositories.team_repository import TeamRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.team import Team, TeamCreate, TeamUpdate

logger = logging.getLogger(__name__)


class TeamService:
    def __init__(self, db: Session):
        self.db = db
        self.team_repo = TeamRepository(db)
        self.user_repo = UserRepository(db)

    def get_all_teams(self) -> List[Team]:
        return self.team_repo.get_all()

    def get_team(self, team_id: int) -> Team:
        team = self.team_repo.get_by_id(team_id)
        if not team:
            raise NotFoundError(f"Team not found: {team_id}", details={"team_id": team_id})
        return team

    def _ensure_name_available(self, team_name: str, exclude_team_id: int = 0) -> None:
        existing = self.team_repo.get_by_name(team_name)
        if existing and existing.id != exclude_team_id:
            raise ConflictError(
                f"Team already exists: {team_name}", details={"team_name": team_name}
            )

    def create_team(self, request: TeamCreate) -> Team:
        self._ensure_name_available(request.team_name)
        team = self.team_repo.create(**request.model_dump())
        logger.info(f"Created team {team.id} ({team.team_name})")
        return team

    def update_team(self, team_id: int, request: TeamUpdate) -> Team:
        self.get_team(team_id)
        update_fields = request.model_dump(exclude_unset=True)
        if update_fields.get("team_name") is None:
            update_fields.pop("team_name", None)
        else:
            self._ensure_name_available(update_fields["team_name"], exclude_team_id=team_id)
        return self.team_repo.update(team_id, **update_fields)

    def delete_team(self, team_id: int) -> None:
        """Teams can only be deleted once every user has left."""
        self.get_team(team_id)
        if self.user_repo.get_by_team(team_id):
            raise ConflictError(
                f"Team {team_id} still has users", details={"team_id": team_id}
            )
        self.team_repo.delete(team_id)
        logger.info(f"Deleted team {team_id}")
