from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tcapi.models.user import Category

PASSKEY_MASK_CHAR = "*"


def mask_passkey(passkey: str, visible_chars: int = 8) -> str:
    """Keep the first ``visible_chars`` characters and hide the rest."""
    if not passkey:
        return passkey
    hidden = max(0, len(passkey) - visible_chars)
    return passkey[:visible_chars] + PASSKEY_MASK_CHAR * hidden


class UserBase(BaseModel):
    folding_user_name: str = Field(..., min_length=1, max_length=255)
    display_name: str = Field(..., min_length=1, max_length=255)
    passkey: str = Field("", max_length=64)
    category: Category
    profile_link: Optional[str] = Field(None, max_length=512)
    live_stats_link: Optional[str] = Field(None, max_length=512)
    hardware_id: int = Field(..., gt=0)
    team_id: int = Field(..., gt=0)
    is_captain: bool = False


class UserCreate(UserBase):
    pass


class UserUpdate(BaseModel):
    folding_user_name: Optional[str] = Field(None, min_length=1, max_length=255)
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    passkey: Optional[str] = Field(None, max_length=64)
    category: Optional[Category] = None
    profile_link: Optional[str] = Field(None, max_length=512)
    live_stats_link: Optional[str] = Field(None, max_length=512)
    hardware_id: Optional[int] = Field(None, gt=0)
    team_id: Optional[int] = Field(None, gt=0)
    is_captain: Optional[bool] = None


class User(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

    @property
    def has_passkey(self) -> bool:
        return bool(self.passkey and self.passkey.strip())

    def masked(self, visible_chars: int = 8) -> "User":
        return self.model_copy(
            update={"passkey": mask_passkey(self.passkey, visible_chars)}
        )
