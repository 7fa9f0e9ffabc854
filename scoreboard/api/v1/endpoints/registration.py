"""Exam registration workflow endpoints.

Each call takes the token returned by the previous step and returns the
token for the next one.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from scoreboard.core.database import get_db
from scoreboard.schemas.registration import (
    CommitRequest,
    CommitResponse,
    GateRequest,
    MetadataRequest,
    StepResponse,
)
from scoreboard.schemas.scoreboard import ExamRow
from scoreboard.services.registration import (
    GateStep,
    RegistrationService,
    ScoreEntryStep,
    decode_step,
    encode_step,
)
from scoreboard.services.scoreboard import ScoreboardService

router = APIRouter()


@router.post("/gate", response_model=StepResponse)
def enter_password(
    request: GateRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """Gate step: check the shared password. The token is only good for the round that is next now."""
    step = RegistrationService(db).enter_password(GateStep(), request.password)
    return StepResponse(step=step.name, token=encode_step(step), round=step.round)


@router.post("/metadata", response_model=StepResponse)
def enter_metadata(
    request: MetadataRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """Metadata step: name the exam; the round is assigned here."""
    step = decode_step(request.token)
    next_step: ScoreEntryStep = RegistrationService(db).enter_metadata(step, request.exam_name)
    return StepResponse(
        step=next_step.name,
        token=encode_step(next_step),
        exam_name=next_step.exam_name,
        round=next_step.round,
        students=ScoreboardService(db).list_students(),
    )


@router.post("/commit", response_model=CommitResponse)
def commit_scores(
    request: CommitRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Score entry step: save the exam and every non-blank score together.
    The workflow returns to the gate afterwards.
    """
    step = decode_step(request.token)
    next_step, exam, recorded = RegistrationService(db).commit(step, request.scores)
    return CommitResponse(
        step=next_step.name,
        exam=ExamRow.model_validate(exam),
        scores_recorded=recorded,
    )

