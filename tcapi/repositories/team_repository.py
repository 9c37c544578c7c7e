from typing import List, Optional

from sqlalchemy.orm import Session

from tcapi.models.team import Team as TeamModel
from tcapi.repositories.base import BaseRepository
from tcapi.schemas.team import Team


class TeamRepository(BaseRepository[TeamModel, Team]):
    def __init__(self, db: Session):
        super().__init__(TeamModel, Team, db)

    def get_by_name(self, team_name: str) -> Optional[Team]:
        return self.get_by_field("team_name", team_name)

    def get_all(self) -> List[Team]:
        return self.find_all(order_by="id")
