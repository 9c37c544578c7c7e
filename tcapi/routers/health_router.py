import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tcapi.containers import Container
from tcapi.models.stats import UserTcStatsHourly
from tcapi.schemas.health import HealthCheckResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthCheckResponse)
@inject
def health_check(
    db: Session = Depends(Provide[Container.repositories.get_db]),
) -> HealthCheckResponse:
    """Database round trip plus the timestamp of the latest TC stats row."""
    try:
        last_update = db.scalar(select(func.max(UserTcStatsHourly.utc_timestamp)))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        db.rollback()
        return HealthCheckResponse(status="degraded", database_operational=False, error=str(e))
    return HealthCheckResponse(last_stats_update=last_update)
