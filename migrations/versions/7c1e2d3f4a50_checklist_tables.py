"""checklist_tables

Create companies, checklists, checklist_tasks, checklist_task_audits and
checklist_notifications.

Revision ID: 7c1e2d3f4a50
Revises:
Create Date: 2026-01-05 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e2d3f4a50"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "companies" not in existing_tables:
        op.create_table(
            "companies",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("cnpj", sa.String(length=20), nullable=True),
            sa.Column("regime", sa.String(length=60), nullable=True),
            sa.Column("sector", sa.String(length=100), nullable=True),
            sa.Column("checklist_progress", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "checklists" not in existing_tables:
        op.create_table(
            "checklists",
            sa.Column("id", sa.String(length=120), nullable=False),
            sa.Column("company_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("reference_date", sa.Date(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_checklists_company_id", "checklists", ["company_id"])

    if "checklist_tasks" not in existing_tables:
        op.create_table(
            "checklist_tasks",
            sa.Column("row_id", sa.Integer(), nullable=False),
            sa.Column("task_id", sa.String(length=120), nullable=False),
            sa.Column("board_id", sa.String(length=120), nullable=False),
            sa.Column("blueprint_id", sa.String(length=120), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("severity", sa.String(length=20), nullable=True, server_default="amber"),
            sa.Column("status", sa.String(length=20), nullable=True, server_default="todo"),
            sa.Column("owner", sa.String(length=150), nullable=True),
            sa.Column("category", sa.String(length=30), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("phase", sa.String(length=30), nullable=True),
            sa.Column("pillar", sa.String(length=60), nullable=True),
            sa.Column("priority", sa.String(length=20), nullable=True),
            sa.Column("reference_items", sa.JSON(), nullable=True),
            sa.Column("evidence_items", sa.JSON(), nullable=True),
            sa.Column("note_items", sa.JSON(), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["board_id"], ["checklists.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("row_id"),
            sa.UniqueConstraint("board_id", "task_id", name="uq_checklist_tasks_board_task"),
        )
        op.create_index("ix_checklist_tasks_board_id", "checklist_tasks", ["board_id"])
        op.create_index("ix_checklist_tasks_status", "checklist_tasks", ["status"])

    if "checklist_task_audits" not in existing_tables:
        op.create_table(
            "checklist_task_audits",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("company_id", sa.String(length=36), nullable=False),
            sa.Column("checklist_id", sa.String(length=120), nullable=False),
            sa.Column("task_id", sa.String(length=120), nullable=False),
            sa.Column("event", sa.String(length=30), nullable=False, server_default="updated"),
            sa.Column("summary", sa.String(length=500), nullable=True),
            sa.Column("changes", sa.JSON(), nullable=True),
            sa.Column("actor_id", sa.String(length=120), nullable=True),
            sa.Column("actor_name", sa.String(length=150), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_checklist_task_audits_company_id", "checklist_task_audits", ["company_id"])
        op.create_index("ix_checklist_task_audits_checklist_id", "checklist_task_audits", ["checklist_id"])
        op.create_index("ix_checklist_task_audits_task_id", "checklist_task_audits", ["task_id"])

    if "checklist_notifications" not in existing_tables:
        op.create_table(
            "checklist_notifications",
            sa.Column("id", sa.String(length=255), nullable=False),
            sa.Column("company_id", sa.String(length=36), nullable=False),
            sa.Column("checklist_id", sa.String(length=120), nullable=True),
            sa.Column("task_id", sa.String(length=120), nullable=True),
            sa.Column("kind", sa.String(length=30), nullable=True, server_default="task_deadline"),
            sa.Column("severity", sa.String(length=20), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("phase", sa.String(length=30), nullable=True),
            sa.Column("priority", sa.String(length=20), nullable=True),
            sa.Column("pillar", sa.String(length=60), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_checklist_notifications_company_id", "checklist_notifications", ["company_id"])
        op.create_index("ix_checklist_notifications_checklist_id", "checklist_notifications", ["checklist_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "checklist_notifications",
        "checklist_task_audits",
        "checklist_tasks",
        "checklists",
        "companies",
    ):
        if table in existing_tables:
            op.drop_table(table)
