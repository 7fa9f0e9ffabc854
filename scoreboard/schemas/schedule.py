"""Exam schedule schemas."""

from datetime import date, datetime

from scoreboard.schemas.common import BaseSchema


class ScheduleFileResponse(BaseSchema):
    """Attachment metadata."""

    id: int
    schedule_id: int
    file_name: str
    file_size: int
    content_type: str | None
    created_at: datetime


class ParticipantResponse(BaseSchema):
    """Participation flag for one student."""

    schedule_id: int
    student_id: int
    student_name: str
    is_participating: bool


class ScheduleResponse(BaseSchema):
    """Schedule with its participants and attachments."""

    id: int
    name: str
    exam_date: date
    participants: list[ParticipantResponse] = []
    files: list[ScheduleFileResponse] = []
    created_at: datetime


class ParticipationUpdate(BaseSchema):
    """Participation toggle."""

    is_participating: bool


class SweepResult(BaseSchema):
    """Outcome of a schedule sweep."""

    deleted: list[int] = []
    failed: list[int] = []
