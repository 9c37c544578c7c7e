import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from tcapi import containers
from tcapi.config import settings
from tcapi.core.exception_handlers import (
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from tcapi.core.exceptions import BaseAPIException
from tcapi.core.logging_middleware import LoggingMiddleware
from tcapi.logging_config import setup_logging
from tcapi.routers import (
    admin_router,
    hardware_router,
    health_router,
    historic_router,
    result_router,
    stats_router,
    team_router,
    user_router,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    load_dotenv("tcapi/.env")
    setup_logging(settings.LOG_LEVEL, settings.STATS_LOG_FILE)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    for module in (
        health_router,
        hardware_router,
        team_router,
        user_router,
        stats_router,
        historic_router,
        result_router,
        admin_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
