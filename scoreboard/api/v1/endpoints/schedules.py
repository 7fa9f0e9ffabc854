"""Exam schedule endpoints."""

from datetime import date
from io import BytesIO
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from scoreboard.core.config import settings
from scoreboard.core.database import get_db
from scoreboard.core.dependencies import GateVerified, Storage, Today
from scoreboard.core.exceptions import UploadError
from scoreboard.schemas.common import MessageResponse
from scoreboard.schemas.schedule import (
    ParticipantResponse,
    ParticipationUpdate,
    ScheduleFileResponse,
    ScheduleResponse,
    SweepResult,
)
from scoreboard.services.schedule import Attachment, ScheduleService, validate_schedule_input

router = APIRouter()


def _read_attachments(files: list[UploadFile] | None) -> list[Attachment]:
    attachments = []
    for file in files or []:
        if not file.filename:
            continue
        content = file.file.read()
        if len(content) > settings.max_upload_bytes:
            raise UploadError(
                f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit",
                details={"file_name": file.filename},
            )
        attachments.append(
            Attachment(
                file_name=file.filename,
                content=content,
                content_type=file.content_type,
            )
        )
    return attachments


@router.get("", response_model=list[ScheduleResponse])
def list_schedules(
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
):
    """List schedules ordered by date, with participation and attachments."""
    return ScheduleService(db, storage).list_schedule_responses()


@router.post("", response_model=ScheduleResponse, dependencies=[GateVerified])
def create_schedule(
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
    today: Today,
    name: str = Form(""),
    exam_date: date | None = Form(None),
    files: list[UploadFile] | None = File(None),
):
    """
    Create a schedule dated today or later, with optional attachments.
    Every student starts as not participating.
    Requires the gate password or a gate token.
    """
    validate_schedule_input(name, exam_date, today)
    attachments = _read_attachments(files)

    service = ScheduleService(db, storage)
    schedule = service.create_schedule(name, exam_date, today, attachments)
    return service.schedule_response(schedule.id)


@router.post("/sweep", response_model=SweepResult, dependencies=[GateVerified])
def sweep_schedules(
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
    today: Today,
):
    """
    Delete every schedule dated before today.
    The same sweep runs at startup and daily.
    """
    return ScheduleService(db, storage).sweep_expired(today)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    schedule_id: int,
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
):
    """Get a single schedule."""
    return ScheduleService(db, storage).schedule_response(schedule_id)


@router.put("/{schedule_id}/participants/{student_id}", response_model=ParticipantResponse)
def set_participation(
    schedule_id: int,
    student_id: int,
    request: ParticipationUpdate,
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
):
    """Set whether a student takes part. Repeating the call is harmless."""
    participant = ScheduleService(db, storage).set_participation(
        schedule_id, student_id, request.is_participating
    )
    return ParticipantResponse(
        schedule_id=participant.schedule_id,
        student_id=participant.student_id,
        student_name=participant.student.name,
        is_participating=participant.is_participating,
    )


@router.delete("/{schedule_id}", response_model=MessageResponse, dependencies=[GateVerified])
def delete_schedule(
    schedule_id: int,
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
):
    """
    Delete a schedule with its attachments and participation rows.
    Requires the gate password or a gate token.
    """
    ScheduleService(db, storage).delete_schedule(schedule_id)
    return MessageResponse(message="Exam schedule deleted successfully")


@router.get("/{schedule_id}/files", response_model=list[ScheduleFileResponse])
def list_schedule_files(
    schedule_id: int,
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
):
    """List attachment metadata of a schedule."""
    service = ScheduleService(db, storage)
    service.get_schedule(schedule_id)
    return service.list_files(schedule_id)


@router.get("/{schedule_id}/files/{file_id}")
def download_schedule_file(
    schedule_id: int,
    file_id: int,
    db: Annotated[Session, Depends(get_db)],
    storage: Storage,
):
    """Download an attachment."""
    record, content = ScheduleService(db, storage).read_file(schedule_id, file_id)
    return StreamingResponse(
        BytesIO(content),
        media_type=record.content_type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.file_name)}",
        },
    )
