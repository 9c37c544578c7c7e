from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, status

from tcapi.containers import Container
from tcapi.core.security import admin_required
from tcapi.schemas.team import Team, TeamCreate, TeamUpdate
from tcapi.services.team_service import TeamService

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("", response_model=List[Team])
@inject
async def list_teams(
    team_service: TeamService = Depends(Provide[Container.services.team_service]),
) -> List[Team]:
    return team_service.get_all_teams()


@router.get("/{team_id}", response_model=Team)
@inject
async def get_team(
    team_id: int = Path(..., gt=0),
    team_service: TeamService = Depends(Provide[Container.services.team_service]),
) -> Team:
    return team_service.get_team(team_id)


@router.post("", response_model=Team, status_code=status.HTTP_201_CREATED)
@inject
async def create_team(
    request: TeamCreate,
    _admin=Depends(admin_required),
    team_service: TeamService = Depends(Provide[Container.services.team_service]),
) -> Team:
    return team_service.create_team(request)


@router.put("/{team_id}", response_model=Team)
@inject
async def update_team(
    request: TeamUpdate,
    team_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    team_service: TeamService = Depends(Provide[Container.services.team_service]),
) -> Team:
    return team_service.update_team(team_id, request)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
@inject
async def delete_team(
    team_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    team_service: TeamService = Depends(Provide[Container.services.team_service]),
) -> None:
    """Delete a team that has no users left."""
    team_service.delete_team(team_id)
