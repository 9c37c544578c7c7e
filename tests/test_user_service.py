import pytest

from tcapi.core.exceptions import (
    ConflictError,
    NotFoundError,
    StatsConnectionError,
    StatsUnavailableError,
    ValidationError,
)
from tcapi.models.hardware import HardwareMake, HardwareType
from tcapi.models.user import Category
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.schemas.hardware import HardwareCreate
from tcapi.schemas.stats import OffsetRequest
from tcapi.schemas.team import TeamUpdate
from tcapi.schemas.user import UserUpdate
from tcapi.services.tc_stats_service import TcStatsService


@pytest.fixture
def tc_stats_service(db_session, settings, stats_provider):
    return TcStatsService(db_session, settings, stats_provider)


class TestUserValidation:
    def test_baseline_captured_on_create(self, db_session, stats_provider, make_user, nvidia_gpu, team_a):
        # Arrange
        stats_provider.set_totals("folder", "folder-passkey-0123456789", 5_000, 50)

        # Act
        user = make_user("folder", nvidia_gpu, team_a)

        # Assert
        baseline = StatsRepository(db_session).get_initial_stats(user.id)
        assert (baseline.points, baseline.units) == (5_000, 50)

    def test_unreachable_provider_rejects_create(self, user_service, stats_provider, make_user, nvidia_gpu, team_a):
        stats_provider.fail("folder", "folder-passkey-0123456789", StatsConnectionError("down"))

        with pytest.raises(StatsUnavailableError):
            make_user("folder", nvidia_gpu, team_a)

        assert user_service.get_all_users() == []

    def test_category_limit_per_team(self, make_user, nvidia_gpu, team_a):
        make_user("first", nvidia_gpu, team_a)

        with pytest.raises(ValidationError):
            make_user("second", nvidia_gpu, team_a)

    def test_hardware_must_match_category(self, make_user, nvidia_gpu, team_a):
        with pytest.raises(ValidationError):
            make_user("folder", nvidia_gpu, team_a, category=Category.AMD_GPU)

    def test_wildcard_accepts_any_hardware(self, make_user, amd_gpu, team_a):
        user = make_user("folder", amd_gpu, team_a, category=Category.WILDCARD)

        assert user.category == Category.WILDCARD

    def test_one_captain_per_team(self, make_user, nvidia_gpu, amd_gpu, team_a):
        make_user("first", nvidia_gpu, team_a, is_captain=True)

        with pytest.raises(ValidationError):
            make_user("second", amd_gpu, team_a, category=Category.AMD_GPU, is_captain=True)

    def test_duplicate_identity(self, make_user, nvidia_gpu, team_a, team_b):
        make_user("folder", nvidia_gpu, team_a)

        with pytest.raises(ConflictError):
            make_user("folder", nvidia_gpu, team_b)

    def test_passkey_masked_for_public_reads(self, user_service, make_user, nvidia_gpu, team_a):
        user = make_user("folder", nvidia_gpu, team_a, passkey="abcdefghijkl")

        assert user_service.get_user(user.id).passkey == "abcdefgh****"
        assert user_service.get_user(user.id, privileged=True).passkey == "abcdefghijkl"

    def test_unknown_user(self, user_service):
        with pytest.raises(NotFoundError):
            user_service.get_user(1)
        with pytest.raises(NotFoundError):
            user_service.delete_user(1)


class TestUserStateChanges:
    def test_passkey_change_keeps_current_stats(
        self, user_service, tc_stats_service, stats_provider, make_user, nvidia_gpu, team_a
    ):
        # Arrange
        user = make_user("folder", nvidia_gpu, team_a)
        stats_provider.set_totals("folder", "folder-passkey-0123456789", 300, 3)
        tc_stats_service.run_update_cycle()
        stats_provider.set_totals("folder", "new-passkey-0123456789", 10_000, 100)

        # Act
        user_service.update_user(user.id, UserUpdate(passkey="new-passkey-0123456789"))

        # Assert
        assert tc_stats_service.get_user_tc_stats(user.id).multiplied_points == 300
        stats_provider.set_totals("folder", "new-passkey-0123456789", 10_050, 101)
        tc_stats_service.run_update_cycle()
        stats = tc_stats_service.get_user_tc_stats(user.id)
        assert (stats.points, stats.multiplied_points, stats.units) == (350, 350, 4)

    def test_hardware_swap_carries_multiplier(
        self, user_service, hardware_service, tc_stats_service, stats_provider, make_user, nvidia_gpu, team_a
    ):
        boosted = hardware_service.create_hardware(
            HardwareCreate(
                hardware_name="TU116 [GeForce GTX 1660]",
                display_name="GTX 1660",
                hardware_make=HardwareMake.NVIDIA,
                hardware_type=HardwareType.GPU,
                multiplier=2.5,
            )
        )
        user = make_user("folder", nvidia_gpu, team_a)
        stats_provider.set_totals("folder", "folder-passkey-0123456789", 400)
        tc_stats_service.run_update_cycle()

        user_service.update_user(user.id, UserUpdate(hardware_id=boosted.id))
        stats_provider.set_totals("folder", "folder-passkey-0123456789", 500)
        tc_stats_service.run_update_cycle()

        assert tc_stats_service.get_user_tc_stats(user.id).multiplied_points == 400 + 250

    def test_offsets_kept_on_plain_update(
        self, db_session, user_service, tc_stats_service, make_user, nvidia_gpu, team_a
    ):
        user = make_user("folder", nvidia_gpu, team_a)
        tc_stats_service.apply_offset(user.id, OffsetRequest(points=10))

        user_service.update_user(user.id, UserUpdate(display_name="Renamed"))

        assert len(StatsRepository(db_session).get_offsets(user.id)) == 1
        assert user_service.get_user(user.id).display_name == "Renamed"

    def test_team_with_users_cannot_be_deleted(self, team_service, make_user, nvidia_gpu, team_a):
        make_user("folder", nvidia_gpu, team_a)

        with pytest.raises(ConflictError):
            team_service.delete_team(team_a.id)

    def test_team_rename(self, team_service, team_a, team_b):
        with pytest.raises(ConflictError):
            team_service.update_team(team_a.id, TeamUpdate(team_name=team_b.team_name))

        renamed = team_service.update_team(team_a.id, TeamUpdate(team_name="Renamed"))
        assert renamed.team_name == "Renamed"
