"""Exam schedule, participation and attachment models."""

from datetime import date

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scoreboard.core.database import Base
from scoreboard.models.base import IDMixin, TimestampMixin


class ExamSchedule(Base, IDMixin, TimestampMixin):
    """An upcoming exam date with optional attachments."""

    __tablename__ = "exam_schedules"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Relationships
    participants: Mapped[list["ExamParticipant"]] = relationship(
        "ExamParticipant",
        back_populates="schedule",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    files: Mapped[list["ScheduleFile"]] = relationship(
        "ScheduleFile",
        back_populates="schedule",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ExamSchedule(id={self.id}, name={self.name}, date={self.exam_date})>"


class ExamParticipant(Base, IDMixin, TimestampMixin):
    """Whether a student takes part in a scheduled exam."""

    __tablename__ = "exam_participants"

    schedule_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exam_schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_participating: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    schedule: Mapped["ExamSchedule"] = relationship("ExamSchedule", back_populates="participants")
    student: Mapped["Student"] = relationship("Student", lazy="joined")

    __table_args__ = (
        UniqueConstraint("schedule_id", "student_id", name="uq_participant_schedule_student"),
    )

    def __repr__(self) -> str:
        return (
            f"<ExamParticipant(schedule_id={self.schedule_id}, student_id={self.student_id}, "
            f"participating={self.is_participating})>"
        )


class ScheduleFile(Base, IDMixin, TimestampMixin):
    """Metadata for a file attached to a schedule; bytes live in blob storage."""

    __tablename__ = "schedule_files"

    schedule_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exam_schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    schedule: Mapped["ExamSchedule"] = relationship("ExamSchedule", back_populates="files")

    def __repr__(self) -> str:
        return f"<ScheduleFile(id={self.id}, schedule_id={self.schedule_id}, name={self.file_name})>"


# Import to avoid circular imports
from scoreboard.models.student import Student
