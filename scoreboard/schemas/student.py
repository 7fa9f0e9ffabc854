"""Student schemas."""

from datetime import datetime

from pydantic import Field

from scoreboard.schemas.common import BaseSchema


class StudentCreate(BaseSchema):
    """Student creation schema."""

    name: str = Field(..., min_length=1, max_length=100)


class StudentResponse(BaseSchema):
    """Student response schema."""

    id: int
    name: str
    created_at: datetime
