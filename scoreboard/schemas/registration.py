"""Registration workflow schemas."""

from pydantic import Field, StrictInt

from scoreboard.schemas.common import BaseSchema
from scoreboard.schemas.scoreboard import ExamRow, StudentRow


class GateRequest(BaseSchema):
    """Password submitted at the gate step."""

    password: str


class MetadataRequest(BaseSchema):
    """Exam name submitted at the metadata step."""

    token: str
    exam_name: str = Field("", max_length=255)


class CommitRequest(BaseSchema):
    """Per-student raw scores submitted at the score entry step.

    Keys are student ids; blank values mean the student is left out. Values
    must be JSON integers or strings, so booleans and floats are rejected
    instead of being coerced.
    """

    token: str
    scores: dict[int, StrictInt | str | None]


class StepResponse(BaseSchema):
    """Current workflow step and the token carrying its state."""

    step: str
    token: str | None = None
    exam_name: str | None = None
    round: int | None = None
    students: list[StudentRow] = []


class CommitResponse(BaseSchema):
    """Result of a committed registration."""

    step: str
    exam: ExamRow
    scores_recorded: int
