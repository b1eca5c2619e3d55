"""
Main entrypoint for the National Pokedex API.

This module assembles the FastAPI application, sets up logging,
installs the error handlers and includes versioned routers.  The
``create_app`` function builds and configures the app, which is then
instantiated at module import time as ``app``, so it can be served
with::

    uvicorn pokedex_api.app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.errors import PokedexError, ValidationError
from .core.logging_config import setup_logging


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Creates the database file if needed and applies pending migrations.
    init_db()
    logger.info("%s %s started", settings.project_name, settings.api_version)
    yield
    logger.info("%s shutting down", settings.project_name)


async def pokedex_error_handler(request: Request, exc: PokedexError) -> JSONResponse:
    logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response(), headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(
        "Invalid request data",
        details=[
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in exc.errors()
        ],
    )
    logger.warning("Validation error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=error.status_code, content=error.to_response())


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Performs one‑time setup such as configuring logging, registering
    exception handlers and including versioned API routers.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug, lifespan=lifespan)

    app.add_exception_handler(PokedexError, pokedex_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(v1_router, prefix="/api/v1")

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
