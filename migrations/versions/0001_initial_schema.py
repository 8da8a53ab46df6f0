"""initial_schema

Create bugs, test_cases, test_case_bugs, qa_reports and ai_usage_logs.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "bugs" not in existing_tables:
        op.create_table(
            "bugs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("severity", sa.String(length=20), nullable=False),
            sa.Column("priority", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("assignee", sa.String(length=150), nullable=True),
            sa.Column("reporter", sa.String(length=150), nullable=False),
            sa.Column("environment", sa.String(length=100), nullable=True),
            sa.Column("steps", sa.JSON(), nullable=True),
            sa.Column("expected_result", sa.Text(), nullable=True),
            sa.Column("actual_result", sa.Text(), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("ai_analysis", sa.Text(), nullable=True),
            sa.Column("suggested_fix", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_bugs_status", "bugs", ["status"])
        op.create_index("ix_bugs_assignee", "bugs", ["assignee"])
        op.create_index("ix_bugs_created_at", "bugs", ["created_at"])

    if "test_cases" not in existing_tables:
        op.create_table(
            "test_cases",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("steps", sa.JSON(), nullable=True),
            sa.Column("expected_result", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=100), nullable=False),
            sa.Column("priority", sa.String(length=20), nullable=False),
            sa.Column("automated", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("last_run", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_test_cases_category", "test_cases", ["category"])
        op.create_index("ix_test_cases_status", "test_cases", ["status"])
        op.create_index("ix_test_cases_created_at", "test_cases", ["created_at"])

    if "test_case_bugs" not in existing_tables:
        op.create_table(
            "test_case_bugs",
            sa.Column("test_case_id", sa.Integer(), nullable=False),
            sa.Column("bug_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["test_case_id"], ["test_cases.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["bug_id"], ["bugs.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("test_case_id", "bug_id"),
        )

    if "qa_reports" not in existing_tables:
        op.create_table(
            "qa_reports",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("summary", sa.Text(), nullable=False),
            sa.Column("bugs_found", sa.Integer(), nullable=False),
            sa.Column("tests_run", sa.Integer(), nullable=False),
            sa.Column("tests_passed", sa.Integer(), nullable=False),
            sa.Column("tests_failed", sa.Integer(), nullable=False),
            sa.Column("coverage", sa.Integer(), nullable=False),
            sa.Column("ai_insights", sa.Text(), nullable=True),
            sa.Column("recommendations", sa.JSON(), nullable=True),
            sa.Column("report_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("generated_by", sa.String(length=100), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_qa_reports_report_date", "qa_reports", ["report_date"])
        op.create_index("ix_qa_reports_generated_by", "qa_reports", ["generated_by"])

    if "ai_usage_logs" not in existing_tables:
        op.create_table(
            "ai_usage_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("provider", sa.String(length=30), nullable=False),
            sa.Column("model", sa.String(length=80), nullable=False),
            sa.Column("prompt_tokens", sa.Integer(), nullable=True),
            sa.Column("completion_tokens", sa.Integer(), nullable=True),
            sa.Column("total_tokens", sa.Integer(), nullable=True),
            sa.Column("cost_usd", sa.Float(), nullable=True),
            sa.Column("latency_ms", sa.Integer(), nullable=True),
            sa.Column("user", sa.String(length=150), nullable=True),
            sa.Column("purpose", sa.String(length=100), nullable=True),
            sa.Column("success", sa.Boolean(), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade():
    op.drop_table("ai_usage_logs")
    op.drop_index("ix_qa_reports_generated_by", table_name="qa_reports")
    op.drop_index("ix_qa_reports_report_date", table_name="qa_reports")
    op.drop_table("qa_reports")
    op.drop_table("test_case_bugs")
    op.drop_index("ix_test_cases_created_at", table_name="test_cases")
    op.drop_index("ix_test_cases_status", table_name="test_cases")
    op.drop_index("ix_test_cases_category", table_name="test_cases")
    op.drop_table("test_cases")
    op.drop_index("ix_bugs_created_at", table_name="bugs")
    op.drop_index("ix_bugs_assignee", table_name="bugs")
    op.drop_index("ix_bugs_status", table_name="bugs")
    op.drop_table("bugs")
