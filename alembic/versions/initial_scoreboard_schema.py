"""Initial scoreboard schema

Revision ID: initial_scoreboard
Revises:
Create Date: 2026-10-19

Creates students, exams and scores for the scoreboard, and exam schedules
with their participants and file attachments.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "initial_scoreboard"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_students_name"),
    )

    op.create_table(
        "exams",
        sa.Column("id", sa.BigInteger(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("round >= 1", name="ck_exam_round_positive"),
    )
    op.create_index("ix_exams_round", "exams", ["round"], unique=True)

    op.create_table(
        "scores",
        sa.Column("id", sa.BigInteger(), autoincrement=True, primary_key=True),
        sa.Column("exam_id", sa.BigInteger(), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.BigInteger(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("exam_id", "student_id", name="uq_score_exam_student"),
        sa.CheckConstraint("value >= 0 AND value <= 100", name="ck_score_value_range"),
    )
    op.create_index("ix_scores_exam_id", "scores", ["exam_id"])
    op.create_index("ix_scores_student_id", "scores", ["student_id"])

    op.create_table(
        "exam_schedules",
        sa.Column("id", sa.BigInteger(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("exam_date", sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_exam_schedules_exam_date", "exam_schedules", ["exam_date"])

    op.create_table(
        "exam_participants",
        sa.Column("id", sa.BigInteger(), autoincrement=True, primary_key=True),
        sa.Column(
            "schedule_id",
            sa.BigInteger(),
            sa.ForeignKey("exam_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_id", sa.BigInteger(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_participating", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("schedule_id", "student_id", name="uq_participant_schedule_student"),
    )
    op.create_index("ix_exam_participants_schedule_id", "exam_participants", ["schedule_id"])
    op.create_index("ix_exam_participants_student_id", "exam_participants", ["student_id"])

    op.create_table(
        "schedule_files",
        sa.Column("id", sa.BigInteger(), autoincrement=True, primary_key=True),
        sa.Column(
            "schedule_id",
            sa.BigInteger(),
            sa.ForeignKey("exam_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("storage_path", sa.String(length=512), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("storage_path", name="uq_schedule_files_storage_path"),
    )
    op.create_index("ix_schedule_files_schedule_id", "schedule_files", ["schedule_id"])


def downgrade() -> None:
    op.drop_table("schedule_files")
    op.drop_table("exam_participants")
    op.drop_table("exam_schedules")
    op.drop_table("scores")
    op.drop_table("exams")
    op.drop_table("students")
