"""Exam schedule, participation and attachment service."""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from scoreboard.core.exceptions import NotFoundError, StorageError, ValidationError
from scoreboard.models.schedule import ExamParticipant, ExamSchedule, ScheduleFile
from scoreboard.models.student import Student
from scoreboard.schemas.schedule import SweepResult
from scoreboard.services.changes import record_change
from scoreboard.services.storage import FileStorage, attachment_path

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    """A file received with a schedule, not yet stored."""

    file_name: str
    content: bytes
    content_type: str | None = None


def validate_schedule_input(name: str | None, exam_date: date | None, today: date) -> str:
    """Check name and date before anything is written. Returns the cleaned name."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Exam name is required", details={"field": "name"})
    if exam_date is None:
        raise ValidationError("Exam date is required", details={"field": "exam_date"})
    if exam_date < today:
        raise ValidationError(
            "Exam date cannot be in the past",
            details={"field": "exam_date", "exam_date": exam_date.isoformat(), "today": today.isoformat()},
        )
    return cleaned


class ScheduleService:
    """Exam schedule management service."""

    def __init__(self, db: Session, storage: FileStorage | None = None):
        self.db = db
        self.storage = storage or FileStorage()

    def _schedule_to_response(self, schedule: ExamSchedule) -> dict:
        """Convert ExamSchedule to response dict, defaulting absent participants to False."""
        flags = {p.student_id: p.is_participating for p in schedule.participants}
        students = self.db.execute(select(Student).order_by(Student.name)).scalars().all()
        return {
            "id": schedule.id,
            "name": schedule.name,
            "exam_date": schedule.exam_date,
            "participants": [
                {
                    "schedule_id": schedule.id,
                    "student_id": student.id,
                    "student_name": student.name,
                    "is_participating": flags.get(student.id, False),
                }
                for student in students
            ],
            "files": list(schedule.files),
            "created_at": schedule.created_at,
        }

    # ==========================================
    # Reads
    # ==========================================

    def get_schedule(self, schedule_id: int) -> ExamSchedule:
        """Get schedule by ID."""
        schedule = self.db.get(ExamSchedule, schedule_id)
        if not schedule:
            raise NotFoundError("Exam schedule", str(schedule_id))
        return schedule

    def list_schedules(self) -> list[ExamSchedule]:
        """All schedules ordered by date ascending."""
        result = self.db.execute(
            select(ExamSchedule).order_by(ExamSchedule.exam_date, ExamSchedule.id)
        )
        return list(result.scalars().all())

    def list_schedule_responses(self) -> list[dict]:
        return [self._schedule_to_response(s) for s in self.list_schedules()]

    def schedule_response(self, schedule_id: int) -> dict:
        return self._schedule_to_response(self.get_schedule(schedule_id))

    def list_participants(self, schedule_id: int | None = None) -> list[ExamParticipant]:
        query = select(ExamParticipant).order_by(ExamParticipant.schedule_id, ExamParticipant.student_id)
        if schedule_id is not None:
            query = query.where(ExamParticipant.schedule_id == schedule_id)
        return list(self.db.execute(query).scalars().all())

    def list_files(self, schedule_id: int | None = None) -> list[ScheduleFile]:
        query = select(ScheduleFile).order_by(ScheduleFile.schedule_id, ScheduleFile.id)
        if schedule_id is not None:
            query = query.where(ScheduleFile.schedule_id == schedule_id)
        return list(self.db.execute(query).scalars().all())

    def get_file(self, schedule_id: int, file_id: int) -> ScheduleFile:
        record = self.db.execute(
            select(ScheduleFile).where(
                ScheduleFile.id == file_id,
                ScheduleFile.schedule_id == schedule_id,
            )
        ).scalar_one_or_none()
        if not record:
            raise NotFoundError("Schedule file", str(file_id))
        return record

    def read_file(self, schedule_id: int, file_id: int) -> tuple[ScheduleFile, bytes]:
        record = self.get_file(schedule_id, file_id)
        return record, self.storage.read(record.storage_path)

    # ==========================================
    # Writes
    # ==========================================

    def create_schedule(
        self,
        name: str | None,
        exam_date: date | None,
        today: date,
        attachments: list[Attachment] | None = None,
    ) -> ExamSchedule:
        """Create a schedule, its participant rows and its attachments.

        Rows are written in the caller's transaction. Blobs cannot join that
        transaction, so on any failure the blobs already written are removed
        before the error propagates.
        """
        cleaned = validate_schedule_input(name, exam_date, today)
        attachments = attachments or []

        schedule = ExamSchedule(name=cleaned, exam_date=exam_date)
        self.db.add(schedule)
        self.db.flush()

        student_ids = self.db.execute(select(Student.id)).scalars().all()
        for student_id in student_ids:
            schedule.participants.append(
                ExamParticipant(student_id=student_id, is_participating=False)
            )

        stored: list[str] = []
        try:
            for attachment in attachments:
                path = attachment_path(schedule.id, attachment.file_name)
                self.storage.save(path, attachment.content)
                stored.append(path)
                schedule.files.append(
                    ScheduleFile(
                        file_name=attachment.file_name,
                        storage_path=path,
                        file_size=len(attachment.content),
                        content_type=attachment.content_type,
                    )
                )
            self.db.flush()
        except Exception:
            logger.error(f"Creating schedule '{cleaned}' failed, removing {len(stored)} stored files")
            for path in stored:
                try:
                    self.storage.delete(path)
                except StorageError:
                    logger.exception(f"Could not remove orphaned file {path}")
            raise

        record_change(self.db, "exam_schedules", "insert")
        logger.info(
            f"Created schedule {schedule.id} '{schedule.name}' on {schedule.exam_date} "
            f"with {len(attachments)} files"
        )
        return schedule

    def set_participation(self, schedule_id: int, student_id: int, is_participating: bool) -> ExamParticipant:
        """Upsert the participation flag of one student."""
        self.get_schedule(schedule_id)
        if not self.db.get(Student, student_id):
            raise NotFoundError("Student", str(student_id))

        participant = self.db.execute(
            select(ExamParticipant).where(
                ExamParticipant.schedule_id == schedule_id,
                ExamParticipant.student_id == student_id,
            )
        ).scalar_one_or_none()
        if participant is None:
            participant = ExamParticipant(
                schedule_id=schedule_id,
                student_id=student_id,
                is_participating=is_participating,
            )
            self.db.add(participant)
        else:
            participant.is_participating = is_participating

        self.db.flush()
        self.db.refresh(participant)
        record_change(self.db, "exam_participants", "upsert")
        return participant

    def delete_schedule(self, schedule_id: int) -> None:
        """Delete a schedule's files, participants, file rows and the schedule itself.

        Files already missing from storage are skipped.
        """
        schedule = self.get_schedule(schedule_id)

        for record in list(schedule.files):
            self.storage.delete(record.storage_path)

        self.db.execute(delete(ExamParticipant).where(ExamParticipant.schedule_id == schedule_id))
        self.db.execute(delete(ScheduleFile).where(ScheduleFile.schedule_id == schedule_id))
        self.db.execute(delete(ExamSchedule).where(ExamSchedule.id == schedule_id))
        self.db.flush()

        record_change(self.db, "exam_schedules", "delete")
        logger.info(f"Deleted schedule {schedule_id}")

    def sweep_expired(self, today: date) -> SweepResult:
        """Delete every schedule dated before ``today``.

        Each schedule is deleted and committed on its own; a failure is
        logged, rolled back and skipped so the rest of the sweep continues.
        """
        expired_ids = self.db.execute(
            select(ExamSchedule.id).where(ExamSchedule.exam_date < today).order_by(ExamSchedule.exam_date)
        ).scalars().all()

        result = SweepResult()
        for schedule_id in expired_ids:
            try:
                self.delete_schedule(schedule_id)
                self.db.commit()
                result.deleted.append(schedule_id)
            except Exception:
                logger.exception(f"Sweep failed to delete schedule {schedule_id}")
                self.db.rollback()
                result.failed.append(schedule_id)

        if expired_ids:
            logger.info(f"Sweep removed {len(result.deleted)} schedules, {len(result.failed)} failed")
        return result
