"""create KPI tables

Revision ID: 20251020_0001
Revises:
Create Date: 2025-10-20 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20251020_0001"
down_revision = None
branch_labels = None
depends_on = None

_FLOAT_COLUMNS = (
    "ia_change_deliverables",
    "ia_bugs",
    "loc",
    "code_review_bugs",
    "coding_bugs",
    "ut_deliverables",
    "ut_bugs",
    "it_deliverables",
    "it_bugs",
    "srs_deliverables",
    "srs_bugs",
    "sdd_bugs",
    "man_days",
    "engineering_efforts",
    "urs_deliverables",
    "urs_bugs",
    "wrike_deliverables",
    "wrike_bugs",
    "system_test_deliverables",
    "ntke_bugs",
    "estimation_cost",
    "man_month",
    "critical_bugs",
    "major_bugs",
    "minor_bugs",
    "low_bugs",
    "system_test_requirement_bugs",
    "system_test_design_bugs",
    "system_test_coding_bugs",
    "system_test_ut_bugs",
    "system_test_code_review_bugs",
    "system_test_integration_bugs",
    "integration_testing_bugs",
    "uat_bugs",
    "go_live_bugs",
)

_INT_COLUMNS = ("previous_phase_bugs", "current_phase_bugs", "open_points")


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("project_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("project_id"),
        sa.UniqueConstraint("project_name", name="uq_projects_project_name"),
    )

    op.create_table(
        "releases",
        sa.Column("release_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=False, comment="Calendar month number, 1-12"),
        sa.Column("release_phase", sa.String(length=100), nullable=True),
        sa.Column("release_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.project_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("release_id"),
    )
    op.create_index("ix_releases_year_month", "releases", ["year", "month"], unique=False)
    op.create_index("ix_releases_project_id", "releases", ["project_id"], unique=False)

    op.create_table(
        "kpi_reports",
        sa.Column("kpi_report_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("release_id", sa.Integer(), nullable=False),
        *[sa.Column(name, sa.Float(), nullable=False) for name in _FLOAT_COLUMNS],
        *[sa.Column(name, sa.Integer(), nullable=False) for name in _INT_COLUMNS],
        sa.Column(
            "category_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Defect category label -> count",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["release_id"], ["releases.release_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("kpi_report_id"),
    )
    op.create_index("ix_kpi_reports_release_id", "kpi_reports", ["release_id"], unique=False)

    op.create_table(
        "sync_metadata",
        sa.Column("key", sa.String(length=50), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("sync_metadata")
    op.drop_index("ix_kpi_reports_release_id", table_name="kpi_reports")
    op.drop_table("kpi_reports")
    op.drop_index("ix_releases_project_id", table_name="releases")
    op.drop_index("ix_releases_year_month", table_name="releases")
    op.drop_table("releases")
    op.drop_table("projects")
