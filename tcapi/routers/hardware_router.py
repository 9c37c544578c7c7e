from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, status

from tcapi.containers import Container
from tcapi.core.security import admin_required
from tcapi.schemas.hardware import Hardware, HardwareCreate, HardwareUpdate
from tcapi.services.hardware_service import HardwareService

router = APIRouter(prefix="/hardware", tags=["hardware"])


@router.get("", response_model=List[Hardware])
@inject
async def list_hardware(
    hardware_service: HardwareService = Depends(Provide[Container.services.hardware_service]),
) -> List[Hardware]:
    return hardware_service.get_all_hardware()


@router.get("/{hardware_id}", response_model=Hardware)
@inject
async def get_hardware(
    hardware_id: int = Path(..., gt=0),
    hardware_service: HardwareService = Depends(Provide[Container.services.hardware_service]),
) -> Hardware:
    return hardware_service.get_hardware(hardware_id)


@router.post("", response_model=Hardware, status_code=status.HTTP_201_CREATED)
@inject
async def create_hardware(
    request: HardwareCreate,
    _admin=Depends(admin_required),
    hardware_service: HardwareService = Depends(Provide[Container.services.hardware_service]),
) -> Hardware:
    return hardware_service.create_hardware(request)


@router.put("/{hardware_id}", response_model=Hardware)
@inject
def update_hardware(
    request: HardwareUpdate,
    hardware_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    hardware_service: HardwareService = Depends(Provide[Container.services.hardware_service]),
) -> Hardware:
    """Update hardware. A new multiplier only applies to points earned from now on."""
    return hardware_service.update_hardware(hardware_id, request)


@router.delete("/{hardware_id}", status_code=status.HTTP_204_NO_CONTENT)
@inject
async def delete_hardware(
    hardware_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    hardware_service: HardwareService = Depends(Provide[Container.services.hardware_service]),
) -> None:
    hardware_service.delete_hardware(hardware_id)
