import logging
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from .config import Settings, get_settings
from .core.logging import setup_logging
from .database import init_engine, create_tables
from .routers import auth, dashboard, intake
from .security import TokenService
from .services.queue_service import InvalidInputError, field_errors_from

logger = logging.getLogger(__name__)


def _field_error_response(field_errors) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": field_errors})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Expected client mistakes, not exceptional events
    logger.info(f"Rejected invalid request to {request.url.path}")
    return _field_error_response(field_errors_from(exc))


async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.info(f"Rejected invalid input to {request.url.path}: {exc}")
    return _field_error_response(exc.field_errors)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"[UNHANDLED] {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error"},
    )


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the application.

    Settings are resolved here rather than at import time; without a
    JWT_SECRET, `get_settings()` raises and the process never starts serving.
    """
    settings = settings or get_settings()
    log = setup_logging(settings.log_level, json_logs=settings.is_production)

    engine = engine or init_engine(settings.database_url)
    create_tables(engine)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.settings = settings
    app.state.engine = engine
    app.state.token_service = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(days=settings.token_expire_days),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth.router, prefix="/api")
    app.include_router(dashboard.router, prefix="/api")
    app.include_router(intake.router, prefix="/api")

    @app.get("/api/health", tags=["Health Checks"])
    def health_check():
        return {"status": "healthy"}

    log.info("application_ready", environment=settings.environment, database=engine.dialect.name)
    return app


if __name__ == "__main__":
    uvicorn.run("mediq.main:create_app", factory=True, host="0.0.0.0", port=8000)
