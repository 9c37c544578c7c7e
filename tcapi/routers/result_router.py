from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path

from tcapi.containers import Container
from tcapi.schemas.monthly_result import MonthlyResultResponse
from tcapi.services.monthly_rollover_service import MonthlyRolloverService

router = APIRouter(prefix="/results", tags=["results"])


@router.get("/{year}/{month}", response_model=MonthlyResultResponse)
@inject
async def get_monthly_result(
    year: int = Path(..., ge=2000),
    month: int = Path(..., ge=1, le=12),
    rollover_service: MonthlyRolloverService = Depends(
        Provide[Container.services.monthly_rollover_service]
    ),
) -> MonthlyResultResponse:
    """Latest saved result for the month; empty leaderboards when nothing was saved."""
    return rollover_service.get_monthly_result(year, month)
