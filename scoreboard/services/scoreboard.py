"""Score store reads and the cached scoreboard snapshot."""

import logging
import threading
from collections.abc import Callable, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from scoreboard.core.exceptions import ConflictError, NotFoundError
from scoreboard.models.exam import Exam, Score
from scoreboard.models.student import Student
from scoreboard.schemas.scoreboard import ExamRow, ScoreboardSnapshot, ScoreRow, StudentRow
from scoreboard.schemas.student import StudentCreate
from scoreboard.services.changes import ChangeEvent, ChangeFeed, change_feed, record_change
from scoreboard.services.ranking import ScoreboardProjection

logger = logging.getLogger(__name__)

SCOREBOARD_TABLES = frozenset({"students", "exams", "scores"})

Rows = tuple[list[StudentRow], list[ExamRow], list[ScoreRow]]


class ScoreboardService:
    """Reads students, exams and scores from the database."""

    def __init__(self, db: Session):
        self.db = db

    def list_student_records(self) -> list[Student]:
        result = self.db.execute(select(Student).order_by(Student.name))
        return list(result.scalars().all())

    def list_students(self) -> list[StudentRow]:
        return [StudentRow.model_validate(s) for s in self.list_student_records()]

    def get_student(self, student_id: int) -> Student:
        """Get student by ID."""
        student = self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student", str(student_id))
        return student

    def create_student(self, request: StudentCreate) -> Student:
        """Add a student to the roster."""
        existing = self.db.execute(
            select(Student).where(Student.name == request.name)
        ).scalar_one_or_none()
        if existing:
            raise ConflictError(f"Student '{request.name}' already exists")

        student = Student(name=request.name)
        self.db.add(student)
        self.db.flush()
        self.db.refresh(student)
        record_change(self.db, "students", "insert")
        return student

    def ensure_roster(self, names: Sequence[str]) -> int:
        """Seed the roster when the students table is empty. Returns rows added."""
        count = self.db.execute(select(func.count()).select_from(Student)).scalar() or 0
        if count or not names:
            return 0

        unique_names = list(dict.fromkeys(n.strip() for n in names if n.strip()))
        for name in unique_names:
            self.db.add(Student(name=name))
        self.db.flush()
        record_change(self.db, "students", "insert")
        logger.info(f"Seeded roster with {len(unique_names)} students")
        return len(unique_names)

    def list_exams(self) -> list[ExamRow]:
        """All exams ordered by round ascending."""
        result = self.db.execute(select(Exam).order_by(Exam.round))
        return [ExamRow.model_validate(e) for e in result.scalars().all()]

    def list_scores(self) -> list[ScoreRow]:
        """All scores with exam and student joined."""
        result = self.db.execute(
            select(Score).order_by(Score.exam_id, Score.student_id)
        )
        return [
            ScoreRow(
                id=score.id,
                exam_id=score.exam_id,
                student_id=score.student_id,
                value=score.value,
                round=score.exam.round if score.exam else None,
                exam_name=score.exam.name if score.exam else None,
                student_name=score.student.name if score.student else None,
            )
            for score in result.unique().scalars().all()
        ]

    def load_rows(self) -> Rows:
        return self.list_students(), self.list_exams(), self.list_scores()


class _Flight:
    """One in-progress load shared by every caller that arrives during it."""

    def __init__(self, version: int):
        self.version = version
        self.done = threading.Event()
        self.result: ScoreboardSnapshot | None = None
        self.error: BaseException | None = None


class ScoreboardCache:
    """Last computed snapshot, refreshed on demand after a change.

    Loads are single-flight: callers arriving while a load runs wait for it
    instead of starting their own. Changes that arrive mid-flight bump the
    version, so the next ``get`` performs exactly one more load.
    """

    def __init__(self, feed: ChangeFeed | None = None):
        self._lock = threading.Lock()
        self._projection = ScoreboardProjection()
        self._snapshot: ScoreboardSnapshot | None = None
        self._version = 0
        self._loaded_version = -1
        self._flight: _Flight | None = None
        self.loads = 0
        self._unsubscribe = feed.subscribe(self._on_change) if feed else None

    def _on_change(self, change: ChangeEvent) -> None:
        if change.table in SCOREBOARD_TABLES:
            self.invalidate()

    def invalidate(self) -> None:
        with self._lock:
            self._version += 1

    def reset(self) -> None:
        """Drop the cached snapshot, the projection and the load counter."""
        with self._lock:
            self._projection = ScoreboardProjection()
            self._snapshot = None
            self._version += 1
            self.loads = 0

    @property
    def is_stale(self) -> bool:
        with self._lock:
            return self._snapshot is None or self._loaded_version != self._version

    def get(self, loader: Callable[[], Rows]) -> ScoreboardSnapshot:
        with self._lock:
            if self._snapshot is not None and self._loaded_version == self._version:
                return self._snapshot
            if self._flight is not None:
                flight = self._flight
                leader = False
            else:
                flight = self._flight = _Flight(self._version)
                leader = True

        if not leader:
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.result

        try:
            students, exams, scores = loader()
            snapshot = self._projection.project(students, exams, scores)
        except BaseException as e:
            with self._lock:
                self._flight = None
            flight.error = e
            flight.done.set()
            raise

        with self._lock:
            self.loads += 1
            self._snapshot = snapshot
            self._loaded_version = flight.version
            self._flight = None
        flight.result = snapshot
        flight.done.set()
        return snapshot


# Global cache instance
scoreboard_cache = ScoreboardCache(change_feed)
