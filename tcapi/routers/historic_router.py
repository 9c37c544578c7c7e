from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from tcapi.containers import Container
from tcapi.schemas.historic import Granularity, HistoricStatsResponse
from tcapi.services.historic_stats_service import HistoricStatsService

FILL_GAPS_DESCRIPTION = "Include zero rows for buckets without observations"

router = APIRouter(prefix="/historic", tags=["historic"])


@router.get("/users/{user_id}/hourly", response_model=HistoricStatsResponse)
@inject
async def get_user_hourly_stats(
    user_id: int = Path(..., gt=0),
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    day: int = Query(..., ge=1, le=31),
    fill_gaps: bool = Query(False, description=FILL_GAPS_DESCRIPTION),
    historic_service: HistoricStatsService = Depends(
        Provide[Container.services.historic_stats_service]
    ),
) -> HistoricStatsResponse:
    return historic_service.get_user_historic_stats(
        user_id, Granularity.HOUR, year, month, day, fill_gaps=fill_gaps
    )


@router.get("/users/{user_id}/daily", response_model=HistoricStatsResponse)
@inject
async def get_user_daily_stats(
    user_id: int = Path(..., gt=0),
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    fill_gaps: bool = Query(False, description=FILL_GAPS_DESCRIPTION),
    historic_service: HistoricStatsService = Depends(
        Provide[Container.services.historic_stats_service]
    ),
) -> HistoricStatsResponse:
    return historic_service.get_user_historic_stats(
        user_id, Granularity.DAY, year, month, fill_gaps=fill_gaps
    )


@router.get("/users/{user_id}/monthly", response_model=HistoricStatsResponse)
@inject
async def get_user_monthly_stats(
    user_id: int = Path(..., gt=0),
    year: int = Query(..., ge=2000),
    fill_gaps: bool = Query(False, description=FILL_GAPS_DESCRIPTION),
    historic_service: HistoricStatsService = Depends(
        Provide[Container.services.historic_stats_service]
    ),
) -> HistoricStatsResponse:
    return historic_service.get_user_historic_stats(
        user_id, Granularity.MONTH, year, fill_gaps=fill_gaps
    )


@router.get("/teams/{team_id}/hourly", response_model=HistoricStatsResponse)
@inject
async def get_team_hourly_stats(
    team_id: int = Path(..., gt=0),
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    day: int = Query(..., ge=1, le=31),
    fill_gaps: bool = Query(False, description=FILL_GAPS_DESCRIPTION),
    historic_service: HistoricStatsService = Depends(
        Provide[Container.services.historic_stats_service]
    ),
) -> HistoricStatsResponse:
    return historic_service.get_team_historic_stats(
        team_id, Granularity.HOUR, year, month, day, fill_gaps=fill_gaps
    )


@router.get("/teams/{team_id}/daily", response_model=HistoricStatsResponse)
@inject
async def get_team_daily_stats(
    team_id: int = Path(..., gt=0),
    year: int = Query(..., ge=2000),
    month: int = Query(..., ge=1, le=12),
    fill_gaps: bool = Query(False, description=FILL_GAPS_DESCRIPTION),
    historic_service: HistoricStatsService = Depends(
        Provide[Container.services.historic_stats_service]
    ),
) -> HistoricStatsResponse:
    return historic_service.get_team_historic_stats(
        team_id, Granularity.DAY, year, month, fill_gaps=fill_gaps
    )


@router.get("/teams/{team_id}/monthly", response_model=HistoricStatsResponse)
@inject
async def get_team_monthly_stats(
    team_id: int = Path(..., gt=0),
    year: int = Query(..., ge=2000),
    fill_gaps: bool = Query(False, description=FILL_GAPS_DESCRIPTION),
    historic_service: HistoricStatsService = Depends(
        Provide[Container.services.historic_stats_service]
    ),
) -> HistoricStatsResponse:
    return historic_service.get_team_historic_stats(
        team_id, Granularity.MONTH, year, fill_gaps=fill_gaps
    )
