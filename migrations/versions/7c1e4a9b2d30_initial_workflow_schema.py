"""initial_workflow_schema

Creates the baseline schema: users, projects, the workflow catalog
(phases, sections, line items), per-project workflows and steps, trackers,
completed line items, notifications and scheduled jobs.

Databases that already hold these tables (created with db.create_all())
fail this revision with "already exists"; scripts/deploy_schema.py stamps
them at head instead.

Revision ID: 7c1e4a9b2d30
Revises:
Create Date: 2026-10-16 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7c1e4a9b2d30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=40), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_number", sa.String(length=50), nullable=False),
        sa.Column("project_name", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("project_manager_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_manager_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_number"),
    )

    # ── Workflow catalog ─────────────────────────────────────────────────
    op.create_table(
        "workflow_phases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("phase_type", sa.String(length=40), nullable=False,
                  comment="LEAD | PROSPECT | APPROVED | EXECUTION | SECOND_SUPPLEMENT | COMPLETION"),
        sa.Column("phase_name", sa.String(length=100), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phase_type"),
    )
    op.create_table(
        "workflow_sections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("phase_id", sa.Integer(), nullable=False),
        sa.Column("section_name", sa.String(length=150), nullable=False),
        sa.Column("display_name", sa.String(length=150), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["phase_id"], ["workflow_phases.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workflow_sections_phase_id", "workflow_sections", ["phase_id"])
    op.create_table(
        "workflow_line_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("responsible_role", sa.String(length=40), nullable=False),
        sa.Column("alert_days", sa.Integer(), nullable=False),
        sa.Column("estimated_minutes", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["section_id"], ["workflow_sections.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workflow_line_items_section_id", "workflow_line_items", ["section_id"])

    # ── Per-project workflow ─────────────────────────────────────────────
    op.create_table(
        "project_workflows",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("workflow_type", sa.String(length=40), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_workflows_project_id", "project_workflows", ["project_id"])
    op.create_table(
        "workflow_steps",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("workflow_id", sa.Integer(), nullable=False),
        sa.Column("step_id", sa.String(length=160), nullable=False,
                  comment="{PHASE}-{slugified item name}"),
        sa.Column("step_name", sa.String(length=200), nullable=False),
        sa.Column("phase", sa.String(length=40), nullable=False),
        sa.Column("line_item_id", sa.Integer(), nullable=True),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["workflow_id"], ["project_workflows.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["line_item_id"], ["workflow_line_items.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workflow_steps_workflow_id", "workflow_steps", ["workflow_id"])
    op.create_index("ix_workflow_steps_line_item_id", "workflow_steps", ["line_item_id"])

    # project_id is indexed but not unique: legacy data can hold duplicate trackers
    op.create_table(
        "project_workflow_trackers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("current_phase_id", sa.Integer(), nullable=True),
        sa.Column("current_section_id", sa.Integer(), nullable=True),
        sa.Column("current_line_item_id", sa.Integer(), nullable=True),
        sa.Column("last_completed_item_id", sa.Integer(), nullable=True),
        sa.Column("total_line_items", sa.Integer(), nullable=False),
        sa.Column("phase_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("section_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("line_item_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["current_phase_id"], ["workflow_phases.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["current_section_id"], ["workflow_sections.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["current_line_item_id"], ["workflow_line_items.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_workflow_trackers_project_id", "project_workflow_trackers", ["project_id"])
    op.create_table(
        "completed_workflow_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tracker_id", sa.Integer(), nullable=False),
        sa.Column("phase_id", sa.Integer(), nullable=True),
        sa.Column("section_id", sa.Integer(), nullable=True),
        sa.Column("line_item_id", sa.Integer(), nullable=False),
        sa.Column("completed_by_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tracker_id"], ["project_workflow_trackers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["phase_id"], ["workflow_phases.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["section_id"], ["workflow_sections.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["line_item_id"], ["workflow_line_items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["completed_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tracker_id", "line_item_id", name="uq_completed_items_tracker_line_item"),
    )
    op.create_index("ix_completed_workflow_items_tracker_id", "completed_workflow_items", ["tracker_id"])

    # ── Notifications & jobs ─────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("recipient_id", sa.Integer(), nullable=True),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("action_url", sa.String(length=300), nullable=True),
        sa.Column("action_data", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
    op.create_index("ix_notifications_project_id", "notifications", ["project_id"])

    op.create_table(
        "scheduled_jobs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_name", sa.String(length=100), nullable=False,
                  comment="Unique job identifier: workflow_alert_scan, ..."),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("schedule_config", sa.JSON(), nullable=True,
                  comment="Cron-style fields: hour, minute, description"),
        sa.Column("status", sa.String(length=20), nullable=True, comment="active, paused"),
        sa.Column("is_enabled", sa.Boolean(), nullable=True),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_run_status", sa.String(length=20), nullable=True, comment="success, failed"),
        sa.Column("last_run_duration_ms", sa.Integer(), nullable=True),
        sa.Column("last_run_result", sa.JSON(), nullable=True),
        sa.Column("run_count", sa.Integer(), nullable=True),
        sa.Column("error_count", sa.Integer(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_name"),
    )


def downgrade():
    op.drop_table("scheduled_jobs")
    op.drop_index("ix_notifications_project_id", table_name="notifications")
    op.drop_index("ix_notifications_recipient_id", table_name="notifications")
    op.drop_index("ix_notifications_type", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_completed_workflow_items_tracker_id", table_name="completed_workflow_items")
    op.drop_table("completed_workflow_items")
    op.drop_index("ix_project_workflow_trackers_project_id", table_name="project_workflow_trackers")
    op.drop_table("project_workflow_trackers")
    op.drop_index("ix_workflow_steps_line_item_id", table_name="workflow_steps")
    op.drop_index("ix_workflow_steps_workflow_id", table_name="workflow_steps")
    op.drop_table("workflow_steps")
    op.drop_index("ix_project_workflows_project_id", table_name="project_workflows")
    op.drop_table("project_workflows")
    op.drop_index("ix_workflow_line_items_section_id", table_name="workflow_line_items")
    op.drop_table("workflow_line_items")
    op.drop_index("ix_workflow_sections_phase_id", table_name="workflow_sections")
    op.drop_table("workflow_sections")
    op.drop_table("workflow_phases")
    op.drop_table("projects")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
