from typing import Optional

from sqlalchemy.orm import Session

from tcapi.models.monthly_result import MonthlyResult as MonthlyResultModel
from tcapi.schemas.monthly_result import MonthlyResultResponse


class MonthlyResultRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self, result: MonthlyResultResponse, commit: bool = True
    ) -> MonthlyResultResponse:
        instance = MonthlyResultModel(
            result_year=result.year,
            result_month=result.month,
            utc_timestamp=result.utc_timestamp,
            result=result.model_dump(mode="json"),
        )
        self.db.add(instance)
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result

    def get_latest(self, year: int, month: int) -> Optional[MonthlyResultResponse]:
        """Most recently saved result for the month; earlier saves are superseded."""
        instance = (
            self.db.query(MonthlyResultModel)
            .filter(
                MonthlyResultModel.result_year == year,
                MonthlyResultModel.result_month == month,
            )
            .order_by(MonthlyResultModel.utc_timestamp.desc(), MonthlyResultModel.id.desc())
            .first()
        )
        if instance is None:
            return None
        return MonthlyResultResponse.model_validate(instance.result)
