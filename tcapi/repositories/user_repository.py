from typing import List, Optional

from sqlalchemy.orm import Session

from tcapi.models.user import User as UserModel
from tcapi.repositories.base import BaseRepository
from tcapi.schemas.user import User


class UserRepository(BaseRepository[UserModel, User]):
    def __init__(self, db: Session):
        super().__init__(UserModel, User, db)

    def get_all(self) -> List[User]:
        return self.find_all(order_by="id")

    def get_by_team(self, team_id: int) -> List[User]:
        return self.find_all(filters={"team_id": team_id}, order_by="id")

    def get_by_hardware(self, hardware_id: int) -> List[User]:
        return self.find_all(filters={"hardware_id": hardware_id}, order_by="id")

    def get_by_identity(self, folding_user_name: str, passkey: str) -> Optional[User]:
        self._ensure_clean_session()
        instance = (
            self.db.query(UserModel)
            .filter(
                UserModel.folding_user_name == folding_user_name,
                UserModel.passkey == passkey,
            )
            .first()
        )
        return self._to_schema(instance)

    def count_in_team_category(
        self, team_id: int, category: str, exclude_user_id: Optional[int] = None
    ) -> int:
        self._ensure_clean_session()
        query = self.db.query(UserModel).filter(
            UserModel.team_id == team_id, UserModel.category == category
        )
        if exclude_user_id is not None:
            query = query.filter(UserModel.id != exclude_user_id)
        return query.count()

    def get_captain(self, team_id: int) -> Optional[User]:
        self._ensure_clean_session()
        instance = (
            self.db.query(UserModel)
            .filter(UserModel.team_id == team_id, UserModel.is_captain.is_(True))
            .first()
        )
        return self._to_schema(instance)
