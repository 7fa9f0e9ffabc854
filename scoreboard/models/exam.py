"""Exam and score models."""

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scoreboard.core.database import Base
from scoreboard.models.base import IDMixin, TimestampMixin

MIN_SCORE = 0
MAX_SCORE = 100


class Exam(Base, IDMixin, TimestampMixin):
    """One administration (round) of the mock exam series."""

    __tablename__ = "exams"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)

    # Relationships
    scores: Mapped[list["Score"]] = relationship(
        "Score",
        back_populates="exam",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("round >= 1", name="ck_exam_round_positive"),
    )

    def __repr__(self) -> str:
        return f"<Exam(id={self.id}, round={self.round}, name={self.name})>"


class Score(Base, IDMixin, TimestampMixin):
    """A single student's result for one exam."""

    __tablename__ = "scores"

    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    exam: Mapped["Exam"] = relationship("Exam", back_populates="scores", lazy="joined")
    student: Mapped["Student"] = relationship("Student", back_populates="scores", lazy="joined")

    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_score_exam_student"),
        CheckConstraint(
            f"value >= {MIN_SCORE} AND value <= {MAX_SCORE}",
            name="ck_score_value_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<Score(exam_id={self.exam_id}, student_id={self.student_id}, value={self.value})>"
