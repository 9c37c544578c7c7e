from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tcapi.models.base import EntityModel, IdType


class Team(EntityModel):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    team_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    team_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    forum_link: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    def __repr__(self):
        return f"<Team(id={self.id}, name={self.team_name})>"
