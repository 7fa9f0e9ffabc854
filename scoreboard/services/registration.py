"""Exam registration workflow.

The workflow is a fixed sequence of steps::

    GateStep --password--> MetadataStep --exam name--> ScoreEntryStep --commit--> GateStep

Each step is an immutable value; transitions take a step and return the next
one, so a transition can only be applied to the step it belongs to. Between
HTTP requests the current step travels as a signed step token.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import ClassVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scoreboard.core.exceptions import ConflictError, GatePasswordError, ValidationError
from scoreboard.core.security import create_step_token, read_step_token, verify_gate_password
from scoreboard.models.exam import MAX_SCORE, MIN_SCORE, Exam, Score
from scoreboard.models.student import Student
from scoreboard.schemas.scoreboard import ExamRow
from scoreboard.services.changes import record_change
from scoreboard.services.ranking import next_round

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateStep:
    """Waiting for the shared password."""

    name: ClassVar[str] = "gate"


@dataclass(frozen=True)
class MetadataStep:
    """Password accepted, waiting for the exam name.

    ``round`` is the round that was next when the password was entered; the
    step is void once that round has been registered.
    """

    round: int

    name: ClassVar[str] = "metadata"


@dataclass(frozen=True)
class ScoreEntryStep:
    """Exam name and round fixed, waiting for per-student scores."""

    exam_name: str
    round: int

    name: ClassVar[str] = "score_entry"


RegistrationStep = GateStep | MetadataStep | ScoreEntryStep

_STEP_TYPES: dict[str, type] = {
    GateStep.name: GateStep,
    MetadataStep.name: MetadataStep,
    ScoreEntryStep.name: ScoreEntryStep,
}


# ==========================================
# Transitions
# ==========================================

def submit_password(step: GateStep, password: str | None, exams: Iterable[ExamRow]) -> MetadataStep:
    """Gate -> metadata entry. A wrong password leaves the caller at the gate."""
    _expect(step, GateStep)
    if not verify_gate_password(password):
        raise GatePasswordError()
    return MetadataStep(round=next_round(exams))


def submit_metadata(step: MetadataStep, exam_name: str | None, exams: Iterable[ExamRow]) -> ScoreEntryStep:
    """Metadata -> score entry. Fixes the round as one past the current maximum."""
    _expect(step, MetadataStep)
    upcoming = next_round(exams)
    if upcoming != step.round:
        raise GatePasswordError(
            f"Round {step.round} is already registered, enter the password again"
        )
    name = (exam_name or "").strip()
    if not name:
        raise ValidationError("Exam name is required", details={"field": "exam_name"})
    return ScoreEntryStep(exam_name=name, round=upcoming)


def parse_scores(
    raw_scores: Mapping[int, str | int | None],
    student_ids: Iterable[int],
) -> dict[int, int]:
    """Turn raw per-student input into validated integer scores.

    Blank entries are left out rather than recorded as zero. Non-numeric or
    out-of-range values, and unknown students, are rejected as a whole.
    """
    known = set(student_ids)
    parsed: dict[int, int] = {}
    errors: list[dict] = []

    for student_id, raw in raw_scores.items():
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        if student_id not in known:
            errors.append({"student_id": student_id, "message": "Unknown student"})
            continue

        if isinstance(raw, bool):
            value = None
        elif isinstance(raw, int):
            value = raw
        else:
            try:
                value = int(raw.strip())
            except ValueError:
                value = None

        if value is None:
            errors.append({"student_id": student_id, "message": f"Score '{raw}' is not a number"})
        elif not MIN_SCORE <= value <= MAX_SCORE:
            errors.append({
                "student_id": student_id,
                "message": f"Score {value} is outside {MIN_SCORE}-{MAX_SCORE}",
            })
        else:
            parsed[student_id] = value

    if errors:
        raise ValidationError("Invalid scores", details={"errors": errors})
    if not parsed:
        raise ValidationError("Enter a score for at least one student")
    return parsed


def _expect(step: RegistrationStep, step_type: type) -> None:
    if not isinstance(step, step_type):
        raise ValidationError(
            f"Registration is at step '{step.name}', expected '{step_type.name}'",
            details={"step": step.name},
        )


# ==========================================
# Step tokens
# ==========================================

def encode_step(step: RegistrationStep) -> str:
    return create_step_token(step.name, asdict(step))


def decode_step(token: str) -> RegistrationStep:
    """Rebuild a step from its token; invalid or expired tokens restart the workflow."""
    decoded = read_step_token(token)
    if decoded is None:
        raise GatePasswordError("Registration session expired, enter the password again")
    step_name, data = decoded
    step_type = _STEP_TYPES.get(step_name)
    if step_type is None:
        raise GatePasswordError("Registration session is invalid, enter the password again")
    try:
        return step_type(**data)
    except TypeError:
        raise GatePasswordError("Registration session is invalid, enter the password again")


# ==========================================
# Service
# ==========================================

class RegistrationService:
    """Applies workflow transitions against the database."""

    def __init__(self, db: Session):
        self.db = db

    def _exams(self) -> list[ExamRow]:
        result = self.db.execute(select(Exam).order_by(Exam.round))
        return [ExamRow.model_validate(e) for e in result.scalars().all()]

    def _student_ids(self) -> list[int]:
        return list(self.db.execute(select(Student.id)).scalars().all())

    def enter_password(self, step: GateStep, password: str | None) -> MetadataStep:
        return submit_password(step, password, self._exams())

    def enter_metadata(self, step: MetadataStep, exam_name: str | None) -> ScoreEntryStep:
        return submit_metadata(step, exam_name, self._exams())

    def commit(
        self,
        step: ScoreEntryStep,
        raw_scores: Mapping[int, str | int | None],
    ) -> tuple[GateStep, Exam, int]:
        """Insert the exam and its scores in the current transaction.

        Both inserts share the caller's transaction, so a failure leaves
        neither row behind. Returns the reset step, the exam and the number
        of scores written.
        """
        _expect(step, ScoreEntryStep)
        scores = parse_scores(raw_scores, self._student_ids())

        taken = self.db.execute(
            select(Exam.id).where(Exam.round == step.round)
        ).scalar_one_or_none()
        if taken is not None:
            raise ConflictError(
                f"Round {step.round} was registered meanwhile, start again",
                details={"round": step.round},
            )

        exam = Exam(name=step.exam_name, round=step.round)
        try:
            self.db.add(exam)
            self.db.flush()
            for student_id, value in scores.items():
                self.db.add(Score(exam_id=exam.id, student_id=student_id, value=value))
            self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Registration of round {step.round} rejected: {e.orig}")
            raise ConflictError(
                f"Round {step.round} could not be saved, start again",
                details={"round": step.round},
            )

        record_change(self.db, "exams", "insert")
        record_change(self.db, "scores", "insert")
        logger.info(f"Registered round {exam.round} '{exam.name}' with {len(scores)} scores")
        return GateStep(), exam, len(scores)
