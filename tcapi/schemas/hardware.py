from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tcapi.models.hardware import HardwareMake, HardwareType


class HardwareBase(BaseModel):
    hardware_name: str = Field(..., min_length=1, max_length=255, description="Unique LARS/vendor name")
    display_name: str = Field(..., min_length=1, max_length=255)
    hardware_make: HardwareMake
    hardware_type: HardwareType
    multiplier: float = Field(..., gt=0, description="Points multiplier for this hardware")
    average_ppd: Optional[int] = Field(None, ge=0)


class HardwareCreate(HardwareBase):
    pass


class HardwareUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    hardware_make: Optional[HardwareMake] = None
    hardware_type: Optional[HardwareType] = None
    multiplier: Optional[float] = Field(None, gt=0)
    average_ppd: Optional[int] = Field(None, ge=0)


class Hardware(HardwareBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
