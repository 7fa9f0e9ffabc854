"""Scoreboard schemas: raw rows fed to the ranking engine and its derived views."""

from pydantic import ConfigDict, Field

from scoreboard.schemas.common import BaseSchema


# ==========================================
# Raw rows
# ==========================================

class StudentRow(BaseSchema):
    """Student as read from the store."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str


class ExamRow(BaseSchema):
    """Exam as read from the store."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    round: int


class ScoreRow(BaseSchema):
    """Score with its exam and student joined in.

    The joined fields are optional: a row whose exam or student cannot be
    resolved is treated as not-yet-consistent data by the engine.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    exam_id: int
    student_id: int
    value: int = Field(..., ge=0, le=100)
    round: int | None = None
    exam_name: str | None = None
    student_name: str | None = None


# ==========================================
# Derived views
# ==========================================

class RankingEntry(BaseSchema):
    """One ranked score within a round."""

    rank: int
    score_id: int
    student_id: int
    student_name: str
    value: int


class RoundRanking(BaseSchema):
    """Standard competition ranking of a single round."""

    round: int
    exam_name: str | None
    entries: list[RankingEntry] = []


class SeriesPoint(BaseSchema):
    """A student's result, or absence, in one round.

    A null score is a gap ("did not attend"), never a zero.
    """

    round: int
    score: int | None
    exam_name: str


class StudentSeries(BaseSchema):
    """Chartable series for one student."""

    student_id: int
    student_name: str
    points: list[SeriesPoint]


class RoundSummary(BaseSchema):
    """Summary statistics for one round."""

    round: int
    exam_name: str | None
    total_students: int
    average: float | None
    highest: int | None
    lowest: int | None


class ScoreboardSnapshot(BaseSchema):
    """Everything the scoreboard view renders."""

    students: list[StudentRow]
    exams: list[ExamRow]
    rankings: list[RoundRanking]
    series: list[StudentSeries]
    summaries: list[RoundSummary]
    next_round: int
