"""
User endpoints.

Passkeys are masked in every response unless the request carries an admin token.
Creating, updating and deleting users are competition state changes (baseline
capture, retirement, multiplier carry) and may call the stats provider, so they
run as plain functions in the threadpool.
"""

from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, status

from tcapi.containers import Container
from tcapi.core.security import admin_required, is_privileged
from tcapi.schemas.user import User, UserCreate, UserUpdate
from tcapi.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[User])
@inject
async def list_users(
    privileged: bool = Depends(is_privileged),
    user_service: UserService = Depends(Provide[Container.services.user_service]),
) -> List[User]:
    return user_service.get_all_users(privileged=privileged)


@router.get("/{user_id}", response_model=User)
@inject
async def get_user(
    user_id: int = Path(..., gt=0),
    privileged: bool = Depends(is_privileged),
    user_service: UserService = Depends(Provide[Container.services.user_service]),
) -> User:
    return user_service.get_user(user_id, privileged=privileged)


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
@inject
def create_user(
    request: UserCreate,
    _admin=Depends(admin_required),
    user_service: UserService = Depends(Provide[Container.services.user_service]),
) -> User:
    return user_service.create_user(request)


@router.put("/{user_id}", response_model=User)
@inject
def update_user(
    request: UserUpdate,
    user_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    user_service: UserService = Depends(Provide[Container.services.user_service]),
) -> User:
    return user_service.update_user(user_id, request)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
@inject
def delete_user(
    user_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    user_service: UserService = Depends(Provide[Container.services.user_service]),
) -> None:
    user_service.delete_user(user_id)
