from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from tcapi.models.base import BaseModel, IdType


class MonthlyResult(BaseModel):
    """Archived leaderboards for one competition month. Rows are never updated;
    the most recent row for a (year, month) wins on read."""

    __tablename__ = "monthly_results"
    __table_args__ = (
        Index("idx_monthly_results_period", "result_year", "result_month"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    result_year: Mapped[int] = mapped_column(Integer, nullable=False)
    result_month: Mapped[int] = mapped_column(Integer, nullable=False)
    utc_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    result: Mapped[dict] = mapped_column(JSON, nullable=False)
