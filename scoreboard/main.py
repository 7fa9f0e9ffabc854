"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scoreboard.api.v1.router import api_router
from scoreboard.core.config import settings
from scoreboard.core.database import SessionLocal, engine
from scoreboard.core.exceptions import AppException
from scoreboard.core.scheduler import start_scheduler, stop_scheduler, sweep_expired_schedules_job
from scoreboard.middleware.logging import RequestLoggingMiddleware
from scoreboard.services.scoreboard import ScoreboardService

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Quiet chatty libraries
for noisy in ("sqlalchemy", "sqlalchemy.engine", "python_multipart", "apscheduler"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Mock exam scoreboard API.

## Features

- **Rankings**: Standard competition ranking per exam round
- **Score Trends**: Per-student series across rounds, with gaps for missed rounds
- **Registration**: Password-gated exam + score entry workflow
- **Exam Schedules**: Upcoming exams with participation and attachments, swept daily once past
- **Change Stream**: Server-Sent Events on every committed write
- **Push Notifications**: Web push via VAPID

## Gated Endpoints

Writes that change the roster or schedules need one of these headers:
- `X-Gate-Token: <token>` from `POST /gate/verify`
- `X-Gate-Password: <password>`

## Errors

Every error response has the shape
`{"success": false, "error": {"code": ..., "message": ..., "details": {...}}}`.
"""


def seed_roster() -> None:
    """Insert the configured roster into an empty students table."""
    db = SessionLocal()
    try:
        ScoreboardService(db).ensure_roster(settings.STUDENT_ROSTER)
        db.commit()
    except Exception:
        logger.exception("Failed to seed student roster")
        db.rollback()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed the roster, sweep past schedules and run the daily sweep job."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    seed_roster()
    if settings.SCHEDULER_ENABLED:
        sweep_expired_schedules_job()
        start_scheduler()
    yield
    logger.info("Shutting down application")
    stop_scheduler()
    engine.dispose()


def error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, "details": details or {}},
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors with non-JSON context values stringified."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        error.pop("input", None)
        errors.append(error)
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            422,
            "VALIDATION_ERROR",
            "Request validation failed",
            {"errors": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return error_response(500, "INTERNAL_ERROR", "An internal server error occurred")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=API_DESCRIPTION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness probe."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("scoreboard.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
