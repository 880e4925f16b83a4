"""
Main entrypoint for the Service Catalog API.

This module assembles the FastAPI application.  ``create_app`` builds
the settings, logging, storage backend and routers, and registers the
exception handlers that render every error through the response
envelope.  The module-level ``app`` makes it easy to run with uvicorn::

    uvicorn service_catalog_api.app.main:app --port 8080
"""

from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.router import router as catalog_router
from .core.config import Settings
from .core.context import AppContext
from .core.db import get_database_path, init_db
from .core.errors import CatalogError
from .core.logging_config import setup_logging
from .core.responses import write_json
from .core.security import ensure_api_key, require_api_key
from .storage.sqlite import SQLiteCatalogStore


def register_exception_handlers(app: FastAPI) -> None:
    """Render errors through the envelope instead of FastAPI's default bodies."""

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        return write_json(exc.status_code, exc.data, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        request.app.state.ctx.logger.warning("Invalid input for %s %s: %s", request.method, request.url.path, exc.errors())
        return write_json(status.HTTP_400_BAD_REQUEST, None, "Invalid input")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return write_json(exc.status_code, None, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        request.app.state.ctx.logger.exception("Unhandled error for %s %s", request.method, request.url.path)
        return write_json(status.HTTP_500_INTERNAL_SERVER_ERROR, None, "Internal server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration to use.  Defaults to values read from the
        environment.

    Returns
    -------
    FastAPI
        A configured application.  The schema and the bootstrap API key
        are created by its startup hook, so nothing touches the database
        until the server (or a ``TestClient``) starts it.
    """
    settings = settings or Settings()
    # Initialise logging before anything else so that later steps can log.
    setup_logging(settings.log_level, settings.log_file or None)

    db_path = get_database_path(settings.database_url)
    ctx = AppContext(settings=settings, store=SQLiteCatalogStore(db_path))

    app = FastAPI(title=settings.project_name, version=settings.api_version)
    app.state.ctx = ctx
    register_exception_handlers(app)

    # Every catalog route requires the API key; no route is exempt.
    app.include_router(catalog_router, dependencies=[Depends(require_api_key)])

    @app.on_event("startup")
    async def startup_event() -> None:
        # Failures here are fatal: the server must not start without a
        # schema or an API key.
        ctx.logger.info("Starting service catalog API with database %s", db_path)
        init_db(db_path)
        ensure_api_key(ctx)

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
