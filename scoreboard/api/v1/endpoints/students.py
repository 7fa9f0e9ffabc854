"""Student roster endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from scoreboard.core.database import get_db
from scoreboard.core.dependencies import GateVerified
from scoreboard.schemas.student import StudentCreate, StudentResponse
from scoreboard.services.scoreboard import ScoreboardService

router = APIRouter()


@router.get("", response_model=list[StudentResponse])
def list_students(
    db: Annotated[Session, Depends(get_db)],
):
    """List the roster ordered by name."""
    return ScoreboardService(db).list_student_records()


@router.post("", response_model=StudentResponse, dependencies=[GateVerified])
def create_student(
    request: StudentCreate,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Add a student to the roster.
    Requires the gate password or a gate token.
    """
    service = ScoreboardService(db)
    return service.create_student(request)
