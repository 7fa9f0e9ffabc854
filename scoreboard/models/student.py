"""Student model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scoreboard.core.database import Base
from scoreboard.models.base import IDMixin, TimestampMixin


class Student(Base, IDMixin, TimestampMixin):
    """A roster member whose exam scores are tracked."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # Relationships
    scores: Mapped[list["Score"]] = relationship(
        "Score",
        back_populates="student",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.name})>"
