from datetime import datetime

import pytest

from tcapi.core.exceptions import NotFoundError, ValidationError
from tcapi.models.user import Category
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.historic import Granularity
from tcapi.schemas.stats import UserTcStats
from tcapi.services.historic_stats_service import HistoricStatsService


@pytest.fixture
def historic_service(db_session):
    return HistoricStatsService(db_session)


@pytest.fixture
def stats_repo(db_session):
    return StatsRepository(db_session)


@pytest.fixture
def bare_user(db_session, nvidia_gpu, team_a):
    """A user inserted directly, with no stats rows at all"""
    return UserRepository(db_session).create(
        folding_user_name="bare",
        display_name="bare",
        passkey="bare-passkey",
        category=Category.NVIDIA_GPU.value,
        hardware_id=nvidia_gpu.id,
        team_id=team_a.id,
    )


@pytest.fixture
def other_member(db_session, amd_gpu, team_a):
    return UserRepository(db_session).create(
        folding_user_name="other",
        display_name="other",
        passkey="other-passkey",
        category=Category.AMD_GPU.value,
        hardware_id=amd_gpu.id,
        team_id=team_a.id,
    )


def record(stats_repo, user_id, timestamp, points):
    stats_repo.create_tc_stats(
        UserTcStats(
            user_id=user_id,
            timestamp=timestamp,
            points=points,
            multiplied_points=points * 10,
            units=points // 10,
        )
    )


class TestHistoricStats:
    def test_user_without_stats_has_no_history(self, historic_service, bare_user):
        # Act
        hourly = historic_service.get_user_historic_stats(bare_user.id, Granularity.HOUR, 2024, 3, 2)
        daily = historic_service.get_user_historic_stats(bare_user.id, Granularity.DAY, 2024, 3)
        monthly = historic_service.get_user_historic_stats(bare_user.id, Granularity.MONTH, 2024)

        # Assert
        assert hourly.stats == []
        assert daily.stats == []
        assert monthly.stats == []

    def test_hourly_stats_use_previous_day_as_base(self, historic_service, stats_repo, bare_user):
        # Arrange
        record(stats_repo, bare_user.id, datetime(2024, 3, 1, 23, 0), 0)
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 13, 0), 20)
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 14, 0), 100)

        # Act
        response = historic_service.get_user_historic_stats(bare_user.id, Granularity.HOUR, 2024, 3, 2)

        # Assert
        assert response.period_start == datetime(2024, 3, 2)
        assert response.period_end == datetime(2024, 3, 3)
        assert response.stats[0].points == 0
        second = response.stats[2]
        assert (second.points, second.multiplied_points, second.units) == (80, 800, 8)
        assert len(response.stats) == 3

    def test_base_present_without_later_buckets(self, historic_service, stats_repo, bare_user):
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 9, 0), 50)

        response = historic_service.get_user_historic_stats(bare_user.id, Granularity.HOUR, 2024, 3, 2)

        assert len(response.stats) == 1
        assert response.stats[0].points == 0

    def test_daily_stats(self, historic_service, stats_repo, bare_user):
        record(stats_repo, bare_user.id, datetime(2024, 3, 1, 1), 0)
        record(stats_repo, bare_user.id, datetime(2024, 3, 1, 20), 30)
        record(stats_repo, bare_user.id, datetime(2024, 3, 3, 12), 90)
        record(stats_repo, bare_user.id, datetime(2024, 4, 1, 12), 500)

        response = historic_service.get_user_historic_stats(bare_user.id, Granularity.DAY, 2024, 3)

        assert [(entry.bucket_start.day, entry.points) for entry in response.stats] == [
            (1, 0),
            (1, 30),
            (3, 60),
        ]

    def test_team_stats_sum_members(
        self, historic_service, stats_repo, bare_user, other_member, team_a
    ):
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 10), 0)
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 11), 40)
        record(stats_repo, other_member.id, datetime(2024, 3, 2, 10), 0)
        record(stats_repo, other_member.id, datetime(2024, 3, 2, 11), 60)

        response = historic_service.get_team_historic_stats(team_a.id, Granularity.HOUR, 2024, 3, 2)

        assert [(entry.bucket_start.hour, entry.points) for entry in response.stats] == [(10, 0), (11, 100)]

    def test_unknown_subjects(self, historic_service):
        with pytest.raises(NotFoundError):
            historic_service.get_user_historic_stats(404, Granularity.MONTH, 2024)
        with pytest.raises(NotFoundError):
            historic_service.get_team_historic_stats(404, Granularity.MONTH, 2024)

    def test_invalid_date(self, historic_service, bare_user):
        with pytest.raises(ValidationError):
            historic_service.get_user_historic_stats(bare_user.id, Granularity.HOUR, 2024, 2, 30)

    def test_team_stats_have_user_shape(self, historic_service, stats_repo, bare_user, team_a):
        record(stats_repo, bare_user.id, datetime(2024, 3, 1, 1), 0)
        record(stats_repo, bare_user.id, datetime(2024, 3, 1, 20), 30)
        record(stats_repo, bare_user.id, datetime(2024, 3, 3, 12), 90)

        user = historic_service.get_user_historic_stats(bare_user.id, Granularity.DAY, 2024, 3)
        team = historic_service.get_team_historic_stats(team_a.id, Granularity.DAY, 2024, 3)

        assert team.stats == user.stats
        assert [(entry.bucket_start.day, entry.points) for entry in team.stats] == [
            (1, 0),
            (1, 30),
            (3, 60),
        ]

    def test_user_gaps_filled_on_request(self, historic_service, stats_repo, bare_user):
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 10), 0)
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 13), 30)

        sparse = historic_service.get_user_historic_stats(bare_user.id, Granularity.HOUR, 2024, 3, 2)
        filled = historic_service.get_user_historic_stats(
            bare_user.id, Granularity.HOUR, 2024, 3, 2, fill_gaps=True
        )

        assert [entry.bucket_start.hour for entry in sparse.stats] == [10, 13]
        assert [(entry.bucket_start.hour, entry.points) for entry in filled.stats] == [
            (10, 0),
            (11, 0),
            (12, 0),
            (13, 30),
        ]

    def test_team_gaps_between_members_filled_on_request(
        self, historic_service, stats_repo, bare_user, other_member, team_a
    ):
        # Arrange: members fold in separate parts of the day
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 10), 0)
        record(stats_repo, bare_user.id, datetime(2024, 3, 2, 11), 40)
        record(stats_repo, other_member.id, datetime(2024, 3, 2, 13), 0)
        record(stats_repo, other_member.id, datetime(2024, 3, 2, 14), 60)

        # Act
        sparse = historic_service.get_team_historic_stats(team_a.id, Granularity.HOUR, 2024, 3, 2)
        filled = historic_service.get_team_historic_stats(
            team_a.id, Granularity.HOUR, 2024, 3, 2, fill_gaps=True
        )

        # Assert
        assert [(entry.bucket_start.hour, entry.points) for entry in sparse.stats] == [
            (10, 0),
            (11, 40),
            (14, 60),
        ]
        assert [(entry.bucket_start.hour, entry.points) for entry in filled.stats] == [
            (10, 0),
            (11, 40),
            (12, 0),
            (13, 0),
            (14, 60),
        ]
