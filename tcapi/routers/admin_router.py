"""
Admin triggers for the stats engine.

These run synchronously in the threadpool: an update cycle or reset can take a
while and waits on the cycle lock.
"""

from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from tcapi.containers import Container
from tcapi.core.security import admin_required
from tcapi.schemas.monthly_result import MonthlyResultResponse
from tcapi.schemas.stats import ResetResult, RetiredUserTcStats, UpdateCycleResult
from tcapi.services.monthly_rollover_service import MonthlyRolloverService
from tcapi.services.retirement_service import RetirementService
from tcapi.services.tc_stats_service import TcStatsService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/update", response_model=UpdateCycleResult)
@inject
def run_update_cycle(
    _admin=Depends(admin_required),
    tc_stats_service: TcStatsService = Depends(Provide[Container.services.tc_stats_service]),
) -> UpdateCycleResult:
    """Run one update cycle now; 409 while another cycle or reset is running."""
    return tc_stats_service.run_update_cycle()


@router.post("/reset", response_model=ResetResult)
@inject
def reset_period(
    _admin=Depends(admin_required),
    rollover_service: MonthlyRolloverService = Depends(
        Provide[Container.services.monthly_rollover_service]
    ),
) -> ResetResult:
    return rollover_service.reset_period()


@router.post("/archive", response_model=MonthlyResultResponse)
@inject
def archive_period(
    year: Optional[int] = Query(None, ge=2000),
    month: Optional[int] = Query(None, ge=1, le=12),
    _admin=Depends(admin_required),
    rollover_service: MonthlyRolloverService = Depends(
        Provide[Container.services.monthly_rollover_service]
    ),
) -> MonthlyResultResponse:
    """Save the current leaderboards as the result for a month (default: this month)."""
    return rollover_service.archive_period(year, month)


@router.post("/users/{user_id}/retire", response_model=Optional[RetiredUserTcStats])
@inject
def retire_user(
    user_id: int = Path(..., gt=0),
    _admin=Depends(admin_required),
    retirement_service: RetirementService = Depends(
        Provide[Container.services.retirement_service]
    ),
) -> Optional[RetiredUserTcStats]:
    """Move a user's current stats to their team's retired contributions.

    Returns null when the user has no points to retire.
    """
    return retirement_service.retire_user_by_id(user_id)
