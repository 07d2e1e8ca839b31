"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("client", sa.String(length=255), nullable=False),
        sa.Column("leader", sa.String(length=255), nullable=False),
        sa.Column("delivery", sa.String(length=255), nullable=True),
        sa.Column("tech_lead", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_delivery", "projects", ["delivery"], unique=False)
    op.create_index("ix_projects_tech_lead", "projects", ["tech_lead"], unique=False)

    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.String(length=64), nullable=False),
        sa.Column("week", sa.String(length=16), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dimensions", sa.JSON(), nullable=False),
        sa.Column("subdimensions", sa.JSON(), nullable=True),
        sa.Column("justifications", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "week", name="uq_assessment_project_week"),
    )
    op.create_index("ix_assessments_project_id", "assessments", ["project_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_assessments_project_id", table_name="assessments")
    op.drop_table("assessments")
    op.drop_index("ix_projects_tech_lead", table_name="projects")
    op.drop_index("ix_projects_delivery", table_name="projects")
    op.drop_table("projects")
