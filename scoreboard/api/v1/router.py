"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from scoreboard.api.v1.endpoints import (
    changes,
    exams,
    gate,
    notifications,
    registration,
    schedules,
    students,
)
from scoreboard.schemas.common import ErrorResponse

api_router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "Gate password rejected"},
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Conflict"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)

# Shared-password confirmation
api_router.include_router(
    gate.router,
    prefix="/gate",
    tags=["Gate"],
)

# Students
api_router.include_router(
    students.router,
    prefix="/students",
    tags=["Students"],
)

# Exams, rankings and series
api_router.include_router(
    exams.router,
    prefix="/exams",
    tags=["Exams"],
)

# Registration workflow
api_router.include_router(
    registration.router,
    prefix="/registration",
    tags=["Registration"],
)

# Exam schedules
api_router.include_router(
    schedules.router,
    prefix="/schedules",
    tags=["Schedules"],
)

# Change stream
api_router.include_router(
    changes.router,
    prefix="/changes",
    tags=["Changes"],
)

# Push notifications
api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["Notifications"],
)
