"""Ranking and per-student series derivation.

Pure functions over rows already fetched from the store. Nothing here touches
the database; the scoreboard service loads rows and hands them over.

Rankings use standard competition ranking: tied scores share the better rank
and the next distinct score skips ahead by the size of the tie group, so
``[90, 90, 80, 70]`` ranks as ``[1, 1, 3, 4]``.
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from scoreboard.schemas.scoreboard import (
    ExamRow,
    RankingEntry,
    RoundRanking,
    RoundSummary,
    ScoreboardSnapshot,
    ScoreRow,
    SeriesPoint,
    StudentRow,
    StudentSeries,
)

logger = logging.getLogger(__name__)

NOT_ATTENDED_LABEL = "Not attended"


def resolve_scores(
    scores: Iterable[ScoreRow],
    exams: Iterable[ExamRow],
    students: Iterable[StudentRow] | None = None,
) -> list[ScoreRow]:
    """Join each score to its exam (and student, when given).

    Scores pointing at an exam or student missing from the supplied
    collections are dropped with a data-integrity warning.
    """
    exams_by_id = {exam.id: exam for exam in exams}
    students_by_id = {s.id: s for s in students} if students is not None else None

    resolved: list[ScoreRow] = []
    for score in scores:
        exam = exams_by_id.get(score.exam_id)
        if exam is None:
            logger.warning(f"Dropping score {score.id}: exam {score.exam_id} not found")
            continue

        if students_by_id is not None:
            student = students_by_id.get(score.student_id)
            if student is None:
                logger.warning(f"Dropping score {score.id}: student {score.student_id} not found")
                continue
            student_name = student.name
        else:
            student_name = score.student_name
            if student_name is None:
                logger.warning(f"Dropping score {score.id}: student {score.student_id} not joined")
                continue

        resolved.append(
            score.model_copy(
                update={
                    "round": exam.round,
                    "exam_name": exam.name,
                    "student_name": student_name,
                }
            )
        )
    return resolved


def _joined(scores: Iterable[ScoreRow]) -> list[ScoreRow]:
    """Keep only scores that carry their joined round and student."""
    joined = []
    for score in scores:
        if score.round is None or score.student_name is None:
            logger.warning(f"Dropping score {score.id}: missing exam or student join data")
            continue
        joined.append(score)
    return joined


def distinct_rounds(exams: Iterable[ExamRow]) -> list[int]:
    """Distinct rounds present among exams, ascending."""
    return sorted({exam.round for exam in exams})


def next_round(exams: Iterable[ExamRow]) -> int:
    """Round for a new exam: one past the highest existing round, never gap-filling."""
    return max((exam.round for exam in exams), default=0) + 1


def rankings_for_round(
    scores: Iterable[ScoreRow],
    round: int,
    exam_name: str | None = None,
) -> RoundRanking:
    """Rank every score of one round.

    Equal values are ordered by student name, then student id, so output is
    reproducible; the order inside a tie carries no meaning.
    """
    in_round = [s for s in _joined(scores) if s.round == round]
    ordered = sorted(in_round, key=lambda s: (-s.value, s.student_name, s.student_id))

    entries: list[RankingEntry] = []
    rank = 0
    tied = 0
    previous: int | None = None
    for score in ordered:
        if previous is None:
            rank, tied = 1, 1
        elif score.value < previous:
            rank += tied
            tied = 1
        else:
            tied += 1
        previous = score.value

        entries.append(
            RankingEntry(
                rank=rank,
                score_id=score.id,
                student_id=score.student_id,
                student_name=score.student_name,
                value=score.value,
            )
        )

    if exam_name is None and in_round:
        exam_name = in_round[0].exam_name

    return RoundRanking(round=round, exam_name=exam_name, entries=entries)


def rankings_for_all_rounds(
    scores: Iterable[ScoreRow],
    exams: Sequence[ExamRow],
    round_filter: int | None = None,
    students: Iterable[StudentRow] | None = None,
) -> list[RoundRanking]:
    """Rankings for every round in ``exams``, ascending, or only ``round_filter``."""
    rounds = distinct_rounds(exams)
    if round_filter is not None:
        rounds = [r for r in rounds if r == round_filter]

    resolved = resolve_scores(scores, exams, students)
    names = {exam.round: exam.name for exam in exams}
    return [rankings_for_round(resolved, r, exam_name=names.get(r)) for r in rounds]


def series_for_student(
    student_name: str,
    scores: Iterable[ScoreRow],
    exams: Sequence[ExamRow],
    students: Iterable[StudentRow] | None = None,
) -> list[SeriesPoint]:
    """One point per round for a student, with ``None`` where they did not attend.

    Every round in ``exams`` gets a point, even for a student with no scores
    at all. Points are never interpolated: a chart must draw ``None`` as a gap.
    """
    resolved = resolve_scores(scores, exams, students)
    attended = {s.round: s for s in resolved if s.student_name == student_name}

    points = []
    for r in distinct_rounds(exams):
        score = attended.get(r)
        if score is None:
            points.append(SeriesPoint(round=r, score=None, exam_name=NOT_ATTENDED_LABEL))
        else:
            points.append(SeriesPoint(round=r, score=score.value, exam_name=score.exam_name))
    return points


def round_summary(
    scores: Iterable[ScoreRow],
    round: int,
    exam_name: str | None = None,
) -> RoundSummary:
    """Count, average, highest and lowest score of one round."""
    values = [s.value for s in _joined(scores) if s.round == round]
    average = None
    if values:
        average = float(
            (Decimal(sum(values)) / Decimal(len(values))).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        )
    return RoundSummary(
        round=round,
        exam_name=exam_name,
        total_students=len(values),
        average=average,
        highest=max(values) if values else None,
        lowest=min(values) if values else None,
    )


def _content_key(
    students: Sequence[StudentRow],
    exams: Sequence[ExamRow],
    scores: Sequence[ScoreRow],
) -> tuple:
    return (
        tuple(sorted((s.id, s.name) for s in students)),
        tuple(sorted((e.id, e.name, e.round) for e in exams)),
        tuple(sorted((s.id, s.exam_id, s.student_id, s.value) for s in scores)),
    )


def build_snapshot(
    students: Sequence[StudentRow],
    exams: Sequence[ExamRow],
    scores: Sequence[ScoreRow],
) -> ScoreboardSnapshot:
    """Compute every derived view from the three input collections."""
    ordered_students = sorted(students, key=lambda s: (s.name, s.id))
    ordered_exams = sorted(exams, key=lambda e: e.round)
    resolved = resolve_scores(scores, ordered_exams, ordered_students)

    rankings = rankings_for_all_rounds(resolved, ordered_exams)
    series = [
        StudentSeries(
            student_id=student.id,
            student_name=student.name,
            points=series_for_student(student.name, resolved, ordered_exams),
        )
        for student in ordered_students
    ]
    summaries = [
        round_summary(resolved, exam.round, exam_name=exam.name)
        for exam in ordered_exams
    ]

    return ScoreboardSnapshot(
        students=list(ordered_students),
        exams=list(ordered_exams),
        rankings=rankings,
        series=series,
        summaries=summaries,
        next_round=next_round(ordered_exams),
    )


class ScoreboardProjection:
    """Memoized snapshot, recomputed only when the input rows change."""

    def __init__(self):
        self._key: tuple | None = None
        self._snapshot: ScoreboardSnapshot | None = None
        self.computations = 0

    def project(
        self,
        students: Sequence[StudentRow],
        exams: Sequence[ExamRow],
        scores: Sequence[ScoreRow],
    ) -> ScoreboardSnapshot:
        key = _content_key(students, exams, scores)
        if self._snapshot is None or key != self._key:
            self._snapshot = build_snapshot(students, exams, scores)
            self._key = key
            self.computations += 1
        return self._snapshot
