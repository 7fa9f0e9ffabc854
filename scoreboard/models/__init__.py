"""Database models package."""

from scoreboard.models.exam import Exam, Score
from scoreboard.models.schedule import ExamParticipant, ExamSchedule, ScheduleFile
from scoreboard.models.student import Student

__all__ = [
    # Student
    "Student",
    # Exam
    "Exam",
    "Score",
    # Schedule
    "ExamSchedule",
    "ExamParticipant",
    "ScheduleFile",
]
