from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TeamBase(BaseModel):
    team_name: str = Field(..., min_length=1, max_length=255)
    team_description: Optional[str] = None
    forum_link: Optional[str] = Field(None, max_length=512)


class TeamCreate(TeamBase):
    pass


class TeamUpdate(BaseModel):
    team_name: Optional[str] = Field(None, min_length=1, max_length=255)
    team_description: Optional[str] = None
    forum_link: Optional[str] = Field(None, max_length=512)


class Team(TeamBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
