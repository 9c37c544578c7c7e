from datetime import datetime
from unittest.mock import Mock

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from tcapi.core.exceptions import ConflictError, NotFoundError
from tcapi.core.security import create_access_token, create_admin_token
from tcapi.main import create_app
from tcapi.models.user import Category
from tcapi.schemas.historic import Granularity, HistoricStats, HistoricStatsResponse
from tcapi.schemas.leaderboard import empty_category_leaderboard
from tcapi.schemas.monthly_result import MonthlyResultResponse
from tcapi.schemas.stats import (
    ResetResult,
    UpdateCycleResult,
    UserOffsetStats,
    UserTcStats,
    UserUpdateError,
)

NOW = datetime(2024, 3, 31, 23, 0)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_admin_token('operator')}"}


@pytest.fixture
def viewer_headers():
    token = create_access_token({"sub": "viewer", "role": "viewer"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def mock_tc_stats_service(app):
    service = Mock()
    with app.container.services.tc_stats_service.override(providers.Object(service)):
        yield service


@pytest.fixture
def mock_rollover_service(app):
    service = Mock()
    with app.container.services.monthly_rollover_service.override(providers.Object(service)):
        yield service


@pytest.fixture
def mock_leaderboard_service(app):
    service = Mock()
    with app.container.services.leaderboard_service.override(providers.Object(service)):
        yield service


class TestHealthRouter:
    def test_health(self, app, client):
        db = Mock()
        db.scalar.return_value = NOW

        with app.container.repositories.get_db.override(providers.Object(db)):
            response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["database_operational"] is True
        assert data["last_stats_update"] == "2024-03-31T23:00:00"

    def test_health_degraded(self, app, client):
        db = Mock()
        db.scalar.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        with app.container.repositories.get_db.override(providers.Object(db)):
            response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        db.rollback.assert_called_once()


class TestAdminRouter:
    def test_update_cycle_requires_token(self, client, mock_tc_stats_service):
        response = client.post("/api/v1/admin/update")

        assert response.status_code in (401, 403)
        mock_tc_stats_service.run_update_cycle.assert_not_called()

    def test_update_cycle_requires_admin_role(self, client, viewer_headers, mock_tc_stats_service):
        response = client.post("/api/v1/admin/update", headers=viewer_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_002"

    def test_invalid_token(self, client, mock_tc_stats_service):
        response = client.post("/api/v1/admin/update", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"

    def test_run_update_cycle(self, client, admin_headers, mock_tc_stats_service):
        # Arrange
        mock_tc_stats_service.run_update_cycle.return_value = UpdateCycleResult(
            started_at=NOW,
            finished_at=NOW,
            applied_count=2,
            skipped_count=1,
            errors=[UserUpdateError(user_id=3, display_name="folder", reason="timed out")],
        )

        # Act
        response = client.post("/api/v1/admin/update", headers=admin_headers)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["applied_count"] == 2
        assert data["errors"][0]["user_id"] == 3

    def test_update_cycle_conflict(self, client, admin_headers, mock_tc_stats_service):
        mock_tc_stats_service.run_update_cycle.side_effect = ConflictError("busy")

        response = client.post("/api/v1/admin/update", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT_001"

    def test_reset_period(self, client, admin_headers, mock_rollover_service):
        mock_rollover_service.reset_period.return_value = ResetResult(reset_at=NOW, users_reset=4)

        response = client.post("/api/v1/admin/reset", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["users_reset"] == 4

    def test_archive_period(self, client, admin_headers, mock_rollover_service):
        mock_rollover_service.archive_period.return_value = MonthlyResultResponse.empty(2024, 3, NOW)

        response = client.post("/api/v1/admin/archive?year=2024&month=3", headers=admin_headers)

        assert response.status_code == 200
        mock_rollover_service.archive_period.assert_called_once_with(2024, 3)
        assert set(response.json()["user_category_leaderboard"]) == {c.value for c in Category}


class TestStatsRouter:
    def test_user_tc_stats(self, client, mock_tc_stats_service):
        mock_tc_stats_service.get_user_tc_stats.return_value = UserTcStats(
            user_id=1, timestamp=NOW, points=100, multiplied_points=250, units=4
        )

        response = client.get("/api/v1/stats/users/1")

        assert response.status_code == 200
        assert response.json()["multiplied_points"] == 250

    def test_user_tc_stats_not_found(self, client, mock_tc_stats_service):
        mock_tc_stats_service.get_user_tc_stats.side_effect = NotFoundError("User not found: 9")

        response = client.get("/api/v1/stats/users/9")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found: 9"

    def test_apply_offset(self, client, admin_headers, mock_tc_stats_service):
        mock_tc_stats_service.apply_offset.return_value = UserOffsetStats(
            id=1, user_id=1, timestamp=NOW, points=-50, multiplied_points=-100, units=0
        )

        response = client.post(
            "/api/v1/stats/users/1/offsets",
            json={"points": -50, "multiplied_points": -100},
            headers=admin_headers,
        )

        assert response.status_code == 201
        user_id, request = mock_tc_stats_service.apply_offset.call_args.args
        assert user_id == 1
        assert (request.points, request.multiplied_points, request.units) == (-50, -100, 0)

    def test_category_leaderboard_privilege(self, client, admin_headers, mock_leaderboard_service):
        mock_leaderboard_service.get_category_leaderboard.return_value = empty_category_leaderboard()

        public = client.get("/api/v1/stats/leaderboard/categories")
        admin = client.get("/api/v1/stats/leaderboard/categories", headers=admin_headers)

        assert public.status_code == 200
        assert admin.status_code == 200
        calls = mock_leaderboard_service.get_category_leaderboard.call_args_list
        assert [call.kwargs["privileged"] for call in calls] == [False, True]
        assert public.json() == {"AMD_GPU": [], "NVIDIA_GPU": [], "WILDCARD": []}


class TestResultRouter:
    def test_monthly_result(self, client, mock_rollover_service):
        mock_rollover_service.get_monthly_result.return_value = MonthlyResultResponse.empty(2024, 2, NOW)

        response = client.get("/api/v1/results/2024/2")

        assert response.status_code == 200
        mock_rollover_service.get_monthly_result.assert_called_once_with(2024, 2)
        assert response.json()["team_leaderboard"] == []

    def test_invalid_month(self, client, mock_rollover_service):
        response = client.get("/api/v1/results/2024/13")

        assert response.status_code == 422


class TestHistoricRouter:
    @pytest.fixture
    def mock_historic_service(self, app):
        service = Mock()
        with app.container.services.historic_stats_service.override(providers.Object(service)):
            yield service

    def test_gaps_not_filled_by_default(self, client, mock_historic_service):
        mock_historic_service.get_team_historic_stats.return_value = HistoricStatsResponse(
            subject_id=2,
            granularity=Granularity.DAY,
            period_start=datetime(2024, 3, 1),
            period_end=datetime(2024, 4, 1),
            stats=[],
        )

        response = client.get("/api/v1/historic/teams/2/daily?year=2024&month=3")

        assert response.status_code == 200
        mock_historic_service.get_team_historic_stats.assert_called_once_with(
            2, Granularity.DAY, 2024, 3, fill_gaps=False
        )

    def test_fill_gaps_flag(self, client, mock_historic_service):
        mock_historic_service.get_user_historic_stats.return_value = HistoricStatsResponse(
            subject_id=1,
            granularity=Granularity.HOUR,
            period_start=datetime(2024, 3, 2),
            period_end=datetime(2024, 3, 3),
            stats=[
                HistoricStats(bucket_start=datetime(2024, 3, 2, 10)),
                HistoricStats(bucket_start=datetime(2024, 3, 2, 11)),
            ],
        )

        response = client.get(
            "/api/v1/historic/users/1/hourly?year=2024&month=3&day=2&fill_gaps=true"
        )

        assert response.status_code == 200
        mock_historic_service.get_user_historic_stats.assert_called_once_with(
            1, Granularity.HOUR, 2024, 3, 2, fill_gaps=True
        )
        assert len(response.json()["stats"]) == 2
