"""EHS Platform FastAPI application."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from ehs import __version__
from ehs.api.routes import auth as auth_routes
from ehs.api.routes import chemicals as chemical_routes
from ehs.api.routes import documents as document_routes
from ehs.api.routes import health as health_routes
from ehs.api.routes import incidents as incident_routes
from ehs.api.routes import me as me_routes
from ehs.api.routes import measures as measure_routes
from ehs.api.routes import notifications as notification_routes
from ehs.api.routes import risks as risk_routes
from ehs.api.routes.admin import tenants as admin_tenants
from ehs.config import Settings, check_environment, get_settings
from ehs.db.connection import DatabaseConnectionManager, init_db
from ehs.logging_config import configure_logging
from ehs.middleware import (
    ErrorHandlerMiddleware,
    RequestIDMiddleware,
    SessionGuardMiddleware,
    register_exception_handlers,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Validate the environment and open the database before accepting requests.

    A ConfigurationError aborts startup.
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    configure_logging(settings.log_level)
    check_environment(settings)

    if getattr(app.state, "db", None) is None:
        app.state.db = init_db(settings.database_url)

    logger.info(f"EHS Platform {__version__} started (env={settings.app_env})")
    yield

    logger.info("Application shutdown initiated, disposing database engine")
    app.state.db.dispose()


def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseConnectionManager] = None,
) -> FastAPI:
    """Build the application; tests pass their own settings and database."""
    app = FastAPI(title="EHS Platform API", version=__version__, lifespan=lifespan)

    if settings is not None:
        app.state.settings = settings
    if db_manager is not None:
        app.state.db = db_manager

    # Middleware order (last added = outermost, executes first):
    # 1. RequestIDMiddleware - assigns request_id (innermost)
    # 2. SessionGuardMiddleware - redirects unauthenticated page requests
    # 3. ErrorHandlerMiddleware - catches all exceptions (outermost, executes first)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SessionGuardMiddleware, settings=settings)
    app.add_middleware(ErrorHandlerMiddleware)

    register_exception_handlers(app)

    app.include_router(health_routes.router)
    app.include_router(auth_routes.router)
    app.include_router(me_routes.router)
    app.include_router(document_routes.router)
    app.include_router(incident_routes.router)
    app.include_router(measure_routes.router)
    app.include_router(risk_routes.router)
    app.include_router(chemical_routes.router)
    app.include_router(notification_routes.router)
    app.include_router(admin_tenants.router)

    return app


app = create_app()
