"""Project domain model: a customer job tracked through the roofing workflow."""

from datetime import datetime, timezone

from roofline.models import db


PROJECT_STATUSES = {"PENDING", "ACTIVE", "IN_PROGRESS", "ON_HOLD", "COMPLETED", "CANCELLED"}


class Project(db.Model):
    """A roofing/construction job.

    A project nominally owns one workflow tracker. Storage does not enforce
    that: legacy data can hold duplicates, which the tracker lookup exposes
    instead of hiding.
    """

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    project_number = db.Column(db.String(50), nullable=False, unique=True)
    project_name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(30), nullable=False, default="PENDING")
    archived = db.Column(db.Boolean, nullable=False, default=False)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)
    customer_name = db.Column(db.String(200), nullable=True)
    project_manager_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    project_manager = db.relationship("User", foreign_keys=[project_manager_id])
    trackers = db.relationship(
        "ProjectWorkflowTracker", backref="project", lazy="dynamic",
        order_by="ProjectWorkflowTracker.id",
    )
    workflows = db.relationship("ProjectWorkflow", backref="project", lazy="dynamic")

    def archive(self):
        """Archive the project. Its tracker and completion history are kept."""
        self.archived = True
        self.archived_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_number": self.project_number,
            "project_name": self.project_name,
            "status": self.status,
            "archived": self.archived,
            "customer_name": self.customer_name,
            "project_manager_id": self.project_manager_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.project_number}>"
