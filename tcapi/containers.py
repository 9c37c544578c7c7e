from dependency_injector import containers, providers

from tcapi.config import Settings
from tcapi.database.session import get_db
from tcapi.services.hardware_service import HardwareService
from tcapi.services.historic_stats_service import HistoricStatsService
from tcapi.services.leaderboard_service import LeaderboardService
from tcapi.services.monthly_rollover_service import MonthlyRolloverService
from tcapi.services.retirement_service import RetirementService
from tcapi.services.stats_provider import HttpStatsProvider
from tcapi.services.tc_stats_service import TcStatsService
from tcapi.services.team_service import TeamService
from tcapi.services.user_service import UserService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database session."""

    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    stats_provider = providers.Singleton(HttpStatsProvider, settings=config.config)

    hardware_service = providers.Factory(
        HardwareService, db=repositories.get_db, settings=config.config, stats_provider=stats_provider
    )
    team_service = providers.Factory(TeamService, db=repositories.get_db)
    user_service = providers.Factory(
        UserService, db=repositories.get_db, settings=config.config, stats_provider=stats_provider
    )
    tc_stats_service = providers.Factory(
        TcStatsService, db=repositories.get_db, settings=config.config, stats_provider=stats_provider
    )
    retirement_service = providers.Factory(
        RetirementService, db=repositories.get_db, settings=config.config, stats_provider=stats_provider
    )
    leaderboard_service = providers.Factory(
        LeaderboardService, db=repositories.get_db, settings=config.config, stats_provider=stats_provider
    )
    historic_stats_service = providers.Factory(HistoricStatsService, db=repositories.get_db)
    monthly_rollover_service = providers.Factory(
        MonthlyRolloverService, db=repositories.get_db, settings=config.config, stats_provider=stats_provider
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "tcapi.routers.health_router",
            "tcapi.routers.hardware_router",
            "tcapi.routers.team_router",
            "tcapi.routers.user_router",
            "tcapi.routers.stats_router",
            "tcapi.routers.historic_router",
            "tcapi.routers.result_router",
            "tcapi.routers.admin_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
