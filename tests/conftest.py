from typing import Dict, Tuple

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tcapi.config import Settings
from tcapi.core.exceptions import StatsNotFoundError, StatsProviderError
from tcapi.models import Base
from tcapi.models.hardware import HardwareMake, HardwareType
from tcapi.models.user import Category
from tcapi.schemas.hardware import HardwareCreate
from tcapi.schemas.stats import Stats
from tcapi.schemas.team import TeamCreate
from tcapi.schemas.user import User, UserCreate
from tcapi.services.hardware_service import HardwareService
from tcapi.services.team_service import TeamService
from tcapi.services.user_service import UserService


class FakeStatsProvider:
    """Deterministic stats provider keyed by (folding name, passkey)"""

    def __init__(self):
        self.totals: Dict[Tuple[str, str], Stats] = {}
        self.errors: Dict[Tuple[str, str], StatsProviderError] = {}
        self.calls = 0

    def set_totals(self, name: str, passkey: str, points: int, units: int = 0) -> None:
        self.totals[(name, passkey)] = Stats(points=points, units=units)

    def fail(self, name: str, passkey: str, error: StatsProviderError) -> None:
        self.errors[(name, passkey)] = error

    def fetch_totals(self, user: User) -> Stats:
        self.calls += 1
        key = (user.folding_user_name, user.passkey)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.totals:
            raise StatsNotFoundError(f"No stats for {user.folding_user_name}")
        return self.totals[key]


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        USERS_PER_CATEGORY=1,
        STATS_MAX_WORKERS=2,
        CYCLE_LOCK_TIMEOUT_SECONDS=0.1,
        SECRET_KEY="test-secret",
    )


@pytest.fixture
def stats_provider():
    return FakeStatsProvider()


@pytest.fixture
def hardware_service(db_session, settings, stats_provider):
    return HardwareService(db_session, settings, stats_provider)


@pytest.fixture
def team_service(db_session):
    return TeamService(db_session)


@pytest.fixture
def user_service(db_session, settings, stats_provider):
    return UserService(db_session, settings, stats_provider)


@pytest.fixture
def nvidia_gpu(hardware_service):
    return hardware_service.create_hardware(
        HardwareCreate(
            hardware_name="GA102 [GeForce RTX 3080]",
            display_name="RTX 3080",
            hardware_make=HardwareMake.NVIDIA,
            hardware_type=HardwareType.GPU,
            multiplier=1.0,
        )
    )


@pytest.fixture
def amd_gpu(hardware_service):
    return hardware_service.create_hardware(
        HardwareCreate(
            hardware_name="Navi 21 [Radeon RX 6800]",
            display_name="RX 6800",
            hardware_make=HardwareMake.AMD,
            hardware_type=HardwareType.GPU,
            multiplier=1.0,
        )
    )


@pytest.fixture
def team_a(team_service):
    return team_service.create_team(TeamCreate(team_name="Team A"))


@pytest.fixture
def team_b(team_service):
    return team_service.create_team(TeamCreate(team_name="Team B"))


@pytest.fixture
def make_user(user_service):
    """Create a user through the service so a baseline is captured."""

    def _make_user(name, hardware, team, category=Category.NVIDIA_GPU, passkey=None, **kwargs):
        return user_service.create_user(
            UserCreate(
                folding_user_name=name,
                display_name=kwargs.pop("display_name", name),
                passkey=passkey if passkey is not None else f"{name}-passkey-0123456789",
                category=category,
                hardware_id=hardware.id,
                team_id=team.id,
                **kwargs,
            )
        )

    return _make_user
