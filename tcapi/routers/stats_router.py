from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, status

from tcapi.containers import Container
from tcapi.core.security import admin_required, is_privileged
from tcapi.schemas.leaderboard import (
    CategoryLeaderboard,
    CompetitionSummary,
    TeamLeaderboardEntry,
)
from tcapi.schemas.stats import OffsetRequest, UserOffsetStats, UserTcStats
from tcapi.services.leaderboard_service import LeaderboardService
from tcapi.services.tc_stats_service import TcStatsService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/summary", response_model=CompetitionSummary)
@inject
async def get_competition_summary(
    privileged: bool = Depends(is_privileged),
    leaderboard_service: LeaderboardService = Depends(
        Provide[Container.services.leaderboard_service]
    ),
) -> CompetitionSummary:
    """Every team with its active and retired users and the overall totals."""
    return leaderboard_service.get_competition_summary(privileged=privileged)


@router.get("/leaderboard/teams", response_model=List[TeamLeaderboardEntry])
@inject
async def get_team_leaderboard(
    leaderboard_service: LeaderboardService = Depends(
        Provide[Container.services.leaderboard_service]
    ),
) -> List[TeamLeaderboardEntry]:
    return leaderboard_service.get_team_leaderboard()


@router.get("/leaderboard/categories", response_model=CategoryLeaderboard)
@inject
async def get_category_leaderboard(
    privileged: bool = Depends(is_privileged),
    leaderboard_service: LeaderboardService = Depends(
        Provide[Container.services.leaderboard_service]
    ),
) -> CategoryLeaderboard:
    return leaderboard_service.get_category_leaderboard(privileged=privileged)


@router.get("/users/{user_id}", response_model=UserTcStats)
@inject
async def get_user_tc_stats(
    user_id: int = Path(..., gt=0),
    tc_stats_service: TcStatsService = Depends(Provide[Container.services.tc_stats_service]),
) -> UserTcStats:
    return tc_stats_service.get_user_tc_stats(user_id)


@router.get("/users/{user_id}/offsets", response_model=List[UserOffsetStats])
@inject
async def get_user_offsets(
    user_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    tc_stats_service: TcStatsService = Depends(Provide[Container.services.tc_stats_service]),
) -> List[UserOffsetStats]:
    return tc_stats_service.get_offsets(user_id)


@router.post(
    "/users/{user_id}/offsets",
    response_model=UserOffsetStats,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def apply_user_offset(
    request: OffsetRequest,
    user_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    tc_stats_service: TcStatsService = Depends(Provide[Container.services.tc_stats_service]),
) -> UserOffsetStats:
    """Apply a manual offset; any field may be negative."""
    return tc_stats_service.apply_offset(user_id, request)
