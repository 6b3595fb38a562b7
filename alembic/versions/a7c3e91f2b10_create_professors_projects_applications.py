"""Create professors, projects and applications tables

Revision ID: a7c3e91f2b10
Revises:
Create Date: 2026-10-19

Initial schema:
- professors: identity and department of project owners
- projects: research listings with lifecycle status and deadline
- applications: one per (project, student), enforced by
  uq_applications_project_student
- ix_projects_status_deadline backs the daily deadline sweep
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c3e91f2b10"
down_revision = None
branch_labels = None
depends_on = None


campus = sa.Enum("CORAL_GABLES", "MEDICAL", "MARINE", name="campus")
project_status = sa.Enum("DRAFT", "PUBLISHED", "CLOSED", "ARCHIVED", name="project_status")
application_status = sa.Enum("PENDING", "CLOSED", name="application_status")


def upgrade() -> None:
    op.create_table(
        "professors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_professors_email", "professors", ["email"], unique=True)
    op.create_index("ix_professors_department", "professors", ["department"], unique=False)

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("professor_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("campus", campus, nullable=False),
        sa.Column("research_categories", sa.JSON(), nullable=False),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("status", project_status, nullable=False),
        sa.Column("positions", sa.Integer(), nullable=False),
        sa.Column("application_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_visible", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("positions >= 1", name="ck_projects_positions_positive"),
        sa.ForeignKeyConstraint(["professor_id"], ["professors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_professor_id", "projects", ["professor_id"], unique=False)
    op.create_index(
        "ix_projects_status_deadline",
        "projects",
        ["status", "application_deadline"],
        unique=False,
    )

    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("student_key", sa.String(length=255), nullable=False),
        sa.Column("student_email", sa.String(length=255), nullable=False),
        sa.Column("student_info", sa.JSON(), nullable=False),
        sa.Column("availability", sa.JSON(), nullable=False),
        sa.Column("additional_info", sa.JSON(), nullable=False),
        sa.Column("resume_path", sa.String(length=500), nullable=True),
        sa.Column("status", application_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "student_key", name="uq_applications_project_student"),
    )
    op.create_index(
        "ix_applications_project_status",
        "applications",
        ["project_id", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_applications_project_status", table_name="applications")
    op.drop_table("applications")

    op.drop_index("ix_projects_status_deadline", table_name="projects")
    op.drop_index("ix_projects_professor_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_professors_department", table_name="professors")
    op.drop_index("ix_professors_email", table_name="professors")
    op.drop_table("professors")

    application_status.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
    campus.drop(op.get_bind(), checkfirst=True)
