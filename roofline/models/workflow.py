"""
Roofline Project Tracker
Workflow domain models.

Models:
    - WorkflowPhase / WorkflowSection / WorkflowLineItem: static catalog
      (phase -> section -> line item, each ordered by display_order)
    - ProjectWorkflow / WorkflowStep: per-project step list
    - ProjectWorkflowTracker: per-project position in the catalog
    - CompletedWorkflowItem: one row per completed line item

Source of truth for "completed" is the existence of a CompletedWorkflowItem
row. ``WorkflowStep.is_completed`` is a projection of those rows and is
rewritten from them, never the other way round.
"""

from datetime import datetime, timezone

from roofline.models import db


# ── Constants ────────────────────────────────────────────────────────────────

PHASE_ORDER = ("LEAD", "PROSPECT", "APPROVED", "EXECUTION", "SECOND_SUPPLEMENT", "COMPLETION")
COMPLETION_PHASE = "COMPLETION"
RESPONSIBLE_ROLES = {"OFFICE", "ADMINISTRATION", "PROJECT_MANAGER", "FIELD_DIRECTOR", "ROOF_SUPERVISOR"}


def _utcnow():
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# Catalog
# ═════════════════════════════════════════════════════════════════════════════

class WorkflowPhase(db.Model):
    __tablename__ = "workflow_phases"

    id = db.Column(db.Integer, primary_key=True)
    phase_type = db.Column(db.String(40), nullable=False, unique=True,
                           comment="LEAD | PROSPECT | APPROVED | EXECUTION | SECOND_SUPPLEMENT | COMPLETION")
    phase_name = db.Column(db.String(100), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    sections = db.relationship(
        "WorkflowSection", backref="phase", order_by="WorkflowSection.display_order",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "phase_type": self.phase_type,
            "phase_name": self.phase_name,
            "display_order": self.display_order,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<WorkflowPhase {self.phase_type}>"


class WorkflowSection(db.Model):
    __tablename__ = "workflow_sections"

    id = db.Column(db.Integer, primary_key=True)
    phase_id = db.Column(
        db.Integer, db.ForeignKey("workflow_phases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    section_name = db.Column(db.String(150), nullable=False)
    display_name = db.Column(db.String(150), nullable=False, default="")
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    line_items = db.relationship(
        "WorkflowLineItem", backref="section", order_by="WorkflowLineItem.display_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<WorkflowSection {self.id}: {self.section_name}>"


class WorkflowLineItem(db.Model):
    """Smallest unit of completable work."""

    __tablename__ = "workflow_line_items"

    id = db.Column(db.Integer, primary_key=True)
    section_id = db.Column(
        db.Integer, db.ForeignKey("workflow_sections.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    item_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    responsible_role = db.Column(db.String(40), nullable=False, default="OFFICE")
    alert_days = db.Column(db.Integer, nullable=False, default=1)
    estimated_minutes = db.Column(db.Integer, nullable=False, default=30)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "section_id": self.section_id,
            "item_name": self.item_name,
            "description": self.description,
            "responsible_role": self.responsible_role,
            "alert_days": self.alert_days,
            "estimated_minutes": self.estimated_minutes,
            "display_order": self.display_order,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<WorkflowLineItem {self.id}: {self.item_name[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
# Per-project workflow
# ═════════════════════════════════════════════════════════════════════════════

class ProjectWorkflow(db.Model):
    __tablename__ = "project_workflows"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    workflow_type = db.Column(db.String(40), nullable=False, default="ROOFING")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    steps = db.relationship(
        "WorkflowStep", backref="workflow", order_by="WorkflowStep.step_order",
        cascade="all, delete-orphan",
    )


class WorkflowStep(db.Model):
    """Per-project step row; ``is_completed`` mirrors CompletedWorkflowItem."""

    __tablename__ = "workflow_steps"

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(
        db.Integer, db.ForeignKey("project_workflows.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    step_id = db.Column(db.String(160), nullable=False, comment="{PHASE}-{slugified item name}")
    step_name = db.Column(db.String(200), nullable=False)
    phase = db.Column(db.String(40), nullable=False)
    line_item_id = db.Column(
        db.Integer, db.ForeignKey("workflow_line_items.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    step_order = db.Column(db.Integer, nullable=False, default=0)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "step_id": self.step_id,
            "step_name": self.step_name,
            "phase": self.phase,
            "line_item_id": self.line_item_id,
            "step_order": self.step_order,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<WorkflowStep {self.step_id}>"


class ProjectWorkflowTracker(db.Model):
    """Per-project position in the workflow catalog.

    ``total_line_items`` is the denormalised count of line items expected
    for completion, captured when the tracker is initialised. Completion
    percentage is computed on read from CompletedWorkflowItem rows.
    """

    __tablename__ = "project_workflow_trackers"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    current_phase_id = db.Column(
        db.Integer, db.ForeignKey("workflow_phases.id", ondelete="SET NULL"), nullable=True,
    )
    current_section_id = db.Column(
        db.Integer, db.ForeignKey("workflow_sections.id", ondelete="SET NULL"), nullable=True,
    )
    current_line_item_id = db.Column(
        db.Integer, db.ForeignKey("workflow_line_items.id", ondelete="SET NULL"), nullable=True,
    )
    last_completed_item_id = db.Column(db.Integer, nullable=True)
    total_line_items = db.Column(db.Integer, nullable=False, default=0)

    phase_started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    section_started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    line_item_started_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    current_phase = db.relationship("WorkflowPhase", foreign_keys=[current_phase_id])
    current_section = db.relationship("WorkflowSection", foreign_keys=[current_section_id])
    current_line_item = db.relationship("WorkflowLineItem", foreign_keys=[current_line_item_id])
    completed_items = db.relationship(
        "CompletedWorkflowItem", backref="tracker", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def is_complete(self) -> bool:
        return self.current_line_item_id is None and self.last_completed_item_id is not None

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "current_phase_id": self.current_phase_id,
            "current_phase": self.current_phase.phase_type if self.current_phase else None,
            "current_section_id": self.current_section_id,
            "current_line_item_id": self.current_line_item_id,
            "current_line_item": self.current_line_item.item_name if self.current_line_item else None,
            "last_completed_item_id": self.last_completed_item_id,
            "total_line_items": self.total_line_items,
            "phase_started_at": self.phase_started_at.isoformat() if self.phase_started_at else None,
            "line_item_started_at": self.line_item_started_at.isoformat() if self.line_item_started_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ProjectWorkflowTracker {self.id} project={self.project_id}>"


class CompletedWorkflowItem(db.Model):
    __tablename__ = "completed_workflow_items"

    id = db.Column(db.Integer, primary_key=True)
    tracker_id = db.Column(
        db.Integer, db.ForeignKey("project_workflow_trackers.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    phase_id = db.Column(db.Integer, db.ForeignKey("workflow_phases.id", ondelete="SET NULL"), nullable=True)
    section_id = db.Column(db.Integer, db.ForeignKey("workflow_sections.id", ondelete="SET NULL"), nullable=True)
    line_item_id = db.Column(
        db.Integer, db.ForeignKey("workflow_line_items.id", ondelete="CASCADE"), nullable=False,
    )
    completed_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("tracker_id", "line_item_id", name="uq_completed_items_tracker_line_item"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tracker_id": self.tracker_id,
            "phase_id": self.phase_id,
            "section_id": self.section_id,
            "line_item_id": self.line_item_id,
            "completed_by_id": self.completed_by_id,
            "notes": self.notes,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return f"<CompletedWorkflowItem tracker={self.tracker_id} item={self.line_item_id}>"
