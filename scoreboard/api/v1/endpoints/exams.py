"""Exam, ranking and series endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from scoreboard.core.database import get_db
from scoreboard.schemas.scoreboard import (
    ExamRow,
    RoundRanking,
    RoundSummary,
    ScoreboardSnapshot,
    ScoreRow,
    StudentSeries,
)
from scoreboard.services.ranking import (
    next_round,
    rankings_for_all_rounds,
    round_summary,
    series_for_student,
)
from scoreboard.services.scoreboard import ScoreboardService, scoreboard_cache

router = APIRouter()


@router.get("", response_model=list[ExamRow])
def list_exams(
    db: Annotated[Session, Depends(get_db)],
):
    """List exams ordered by round."""
    return ScoreboardService(db).list_exams()


@router.get("/scores", response_model=list[ScoreRow])
def list_scores(
    db: Annotated[Session, Depends(get_db)],
):
    """List every score with its exam and student joined."""
    return ScoreboardService(db).list_scores()


@router.get("/scoreboard", response_model=ScoreboardSnapshot)
def get_scoreboard(
    db: Annotated[Session, Depends(get_db)],
):
    """
    Rankings, per-student series and round summaries in one payload.
    Served from cache until the next change to students, exams or scores.
    """
    service = ScoreboardService(db)
    return scoreboard_cache.get(service.load_rows)


@router.get("/next-round")
def get_next_round(
    db: Annotated[Session, Depends(get_db)],
):
    """Round number the next registered exam will receive."""
    return {"round": next_round(ScoreboardService(db).list_exams())}


@router.get("/rankings", response_model=list[RoundRanking])
def get_rankings(
    db: Annotated[Session, Depends(get_db)],
    round: int | None = Query(None, ge=1, description="Single round; omit for all rounds"),
):
    """
    Standard competition rankings per round, ascending by round.
    Ties share a rank and the next rank skips by the tie size.
    """
    service = ScoreboardService(db)
    students, exams, scores = service.load_rows()
    return rankings_for_all_rounds(scores, exams, round_filter=round, students=students)


@router.get("/summary", response_model=list[RoundSummary])
def get_round_summaries(
    db: Annotated[Session, Depends(get_db)],
):
    """Count, average, highest and lowest score for every round."""
    service = ScoreboardService(db)
    exams = service.list_exams()
    scores = service.list_scores()
    return [round_summary(scores, exam.round, exam_name=exam.name) for exam in exams]


@router.get("/series/{student_id}", response_model=StudentSeries)
def get_student_series(
    student_id: int,
    db: Annotated[Session, Depends(get_db)],
):
    """
    One point per round for a student.
    Rounds the student did not attend have a null score.
    """
    service = ScoreboardService(db)
    student = service.get_student(student_id)
    students, exams, scores = service.load_rows()
    return StudentSeries(
        student_id=student.id,
        student_name=student.name,
        points=series_for_student(student.name, scores, exams, students=students),
    )
