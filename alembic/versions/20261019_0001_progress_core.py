"""progress core schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "programs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_weeks", sa.Integer(), nullable=False),
        sa.Column("sessions_per_week", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(length=20), nullable=True),
        sa.Column("category", sa.String(length=40), nullable=False, server_default="hyrox"),
        sa.Column("target_event_weeks", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.CheckConstraint("duration_weeks >= 1", name="ck_program_duration_weeks"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=120), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=True, unique=True),
        sa.Column("current_program_id", sa.Integer(), sa.ForeignKey("programs.id"), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_users_current_program_id", "users", ["current_program_id"])

    op.create_table(
        "workouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id"), nullable=False),
        sa.Column("week", sa.Integer(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("exercises", sa.JSON(), nullable=False),
        sa.UniqueConstraint("program_id", "week", "day", name="uq_workout_program_week_day"),
        sa.CheckConstraint("week >= 1", name="ck_workout_week"),
        sa.CheckConstraint("day >= 1", name="ck_workout_day"),
    )
    op.create_index("ix_workouts_program_id", "workouts", ["program_id"])

    op.create_table(
        "user_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=120), nullable=False),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id"), nullable=False),
        sa.Column("current_week", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("current_day", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("phase", sa.String(length=16), nullable=False, server_default="MAIN"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("last_workout_date", sa.Date(), nullable=True),
        sa.Column("completed_workouts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_workouts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("current_week >= 1", name="ck_progress_week"),
        sa.CheckConstraint("current_day >= 1", name="ck_progress_day"),
    )
    op.create_index("ix_user_progress_user_id", "user_progress", ["user_id"])
    op.create_index("ix_user_progress_program_id", "user_progress", ["program_id"])
    op.create_index(
        "uq_user_progress_active",
        "user_progress",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    op.create_table(
        "workout_completions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=120), nullable=False),
        sa.Column("workout_id", sa.Integer(), sa.ForeignKey("workouts.id"), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False),
        sa.Column("skipped", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("exercise_data", sa.JSON(), nullable=True),
        sa.CheckConstraint("rating is null or rating between 1 and 5", name="ck_completion_rating"),
    )
    op.create_index("ix_workout_completions_user_id", "workout_completions", ["user_id"])
    op.create_index("ix_workout_completions_workout_id", "workout_completions", ["workout_id"])
    op.create_index("ix_workout_completions_completed_at", "workout_completions", ["completed_at"])


def downgrade() -> None:
    op.drop_table("workout_completions")
    op.drop_index("uq_user_progress_active", table_name="user_progress")
    op.drop_table("user_progress")
    op.drop_table("workouts")
    op.drop_table("users")
    op.drop_table("programs")
