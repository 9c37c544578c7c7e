"""
Team competition stats tables.

- user_total_stats: append-only raw cumulative totals reported by the stats provider
- user_initial_stats: one baseline row per user for the current counting window
- user_offset_stats: signed manual corrections, summed on every cycle
- user_tc_stats_hourly: one TC stats row per user per update cycle, never updated in place
- retired_user_stats: frozen contributions kept by a team after a user leaves it
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tcapi.models.base import BaseModel, IdType


class OffsetSource(str, Enum):
    MANUAL = "manual"
    # Written when a user's multiplier or identity changes, preserving earned stats
    CARRY = "carry"


class UserTotalStats(BaseModel):
    __tablename__ = "user_total_stats"
    __table_args__ = (
        Index("idx_user_total_stats_user_ts", "user_id", "utc_timestamp"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    utc_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    total_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_units: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class UserInitialStats(BaseModel):
    __tablename__ = "user_initial_stats"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    utc_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    initial_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    initial_units: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class UserOffsetStats(BaseModel):
    __tablename__ = "user_offset_stats"
    __table_args__ = (Index("idx_user_offset_stats_user", "user_id"),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    utc_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    points_offset: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    multiplied_points_offset: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    units_offset: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    source: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OffsetSource.MANUAL.value
    )


class UserTcStatsHourly(BaseModel):
    __tablename__ = "user_tc_stats_hourly"
    __table_args__ = (
        Index("idx_user_tc_stats_hourly_user_ts", "user_id", "utc_timestamp"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    utc_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    tc_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    tc_points_multiplied: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    tc_units: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class RetiredUserStats(BaseModel):
    __tablename__ = "retired_user_stats"
    __table_args__ = (Index("idx_retired_user_stats_team", "team_id"),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    utc_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    tc_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    tc_points_multiplied: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    tc_units: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
