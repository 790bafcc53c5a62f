"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talent_logistics import __version__
from talent_logistics.api.routes import health_router, readiness_router, timecards_router
from talent_logistics.config import get_settings
from talent_logistics.database import dispose_db, init_db
from talent_logistics.services.errors import TalentLogisticsError

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Talent Logistics API",
        description="Timecard approvals with audit history, and project readiness",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TalentLogisticsError)
    async def service_exception_handler(
        request: Request, exc: TalentLogisticsError
    ) -> JSONResponse:
        """Translate service errors to their HTTP status and code."""
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                "code": exc.code,
                "context": jsonable_encoder(exc.context) or None,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Validation failed",
                "code": "VALIDATION_ERROR",
                "context": {"errors": jsonable_encoder(exc.errors())},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(timecards_router, prefix="/api/v1")
    app.include_router(readiness_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
