"""FastAPI application factory for the coursegen web API.

Serve with any ASGI server, e.g. ``uvicorn coursegen.web.api:app``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coursegen.config.app_config import ConfigurationError
from coursegen.llm.errors import ApiError
from coursegen.web.routes import health_router, outlines_router, usage_router
from coursegen.web.schemas import API_VERSION
from coursegen.web.services import get_services

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config = get_services().config
    logger.info(
        "api_startup",
        backend=config.generation.backend,
        base_url=config.api.base_url,
        courses_dir=config.storage.courses_dir,
        usage_db=config.storage.usage_db,
    )
    yield
    logger.info("api_shutdown")


async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("api_not_configured", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


async def _upstream_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    logger.error(
        "upstream_error",
        path=request.url.path,
        url=exc.url,
        status_code=exc.status_code,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    """Create the FastAPI application.

    Routes map domain errors to status codes themselves; the handlers
    registered here catch configuration and upstream errors that escape a
    route.
    """
    app = FastAPI(
        title="coursegen API",
        description="Generate course outlines and courses from documents",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ConfigurationError, _configuration_error_handler)
    app.add_exception_handler(ApiError, _upstream_error_handler)

    app.include_router(health_router)
    app.include_router(outlines_router)
    app.include_router(usage_router)

    return app


app = create_app()
