"""
Roofline Project Tracker
Notification domain model.

Models:
    - Notification: in-app notification record with read tracking

``action_data`` is a tagged variant: the notification ``type`` selects the
payload dataclass that describes its shape. Writers go through
``Notification.set_payload``; readers use ``Notification.payload``.
"""

from dataclasses import MISSING, asdict, dataclass, fields
from datetime import datetime, timezone

from roofline.models import db


# ── Constants ────────────────────────────────────────────────────────────────

WORKFLOW_ALERT = "WORKFLOW_ALERT"
PHASE_COMPLETED = "PHASE_COMPLETED"
SYSTEM = "SYSTEM"


# ── Payload variants ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WorkflowAlertPayload:
    """Overdue/stalled line item. ``dedup_key`` keeps the scanner idempotent."""

    project_id: int
    project_name: str
    line_item_id: int | None = None
    step_name: str = ""
    phase: str = ""
    alert_type: str = "warning"
    days_until_due: int = 0
    days_overdue: int = 0
    responsible_role: str | None = None
    dedup_key: str = ""


@dataclass(frozen=True)
class PhaseCompletedPayload:
    project_id: int
    project_name: str
    phase: str
    next_phase: str | None = None


@dataclass(frozen=True)
class SystemPayload:
    detail: str = ""


NOTIFICATION_PAYLOADS = {
    WORKFLOW_ALERT: WorkflowAlertPayload,
    PHASE_COMPLETED: PhaseCompletedPayload,
    SYSTEM: SystemPayload,
}
NOTIFICATION_TYPES = set(NOTIFICATION_PAYLOADS)


def parse_payload(notification_type, data):
    """Build the typed payload for ``notification_type`` from a stored dict.

    Unknown keys are ignored so older rows stay readable.

    Raises:
        ValueError: unknown type, non-dict data or a missing required field.
    """
    payload_cls = NOTIFICATION_PAYLOADS.get(notification_type)
    if payload_cls is None:
        raise ValueError(f"Unknown notification type: {notification_type!r}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{notification_type} payload must be an object")

    kwargs = {}
    missing = []
    for f in fields(payload_cls):
        if f.name in data:
            kwargs[f.name] = data[f.name]
        elif f.default is MISSING and f.default_factory is MISSING:
            missing.append(f.name)
    if missing:
        raise ValueError(f"{notification_type} payload missing: {', '.join(missing)}")
    return payload_cls(**kwargs)


class Notification(db.Model):
    """
    In-app notification entity.

    One record per recipient per event; ``recipient_id`` NULL means broadcast.
    """

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(40), nullable=False, default=SYSTEM, index=True)
    recipient_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    action_url = db.Column(db.String(300), nullable=True)
    action_data = db.Column(db.JSON, nullable=True)

    # Read tracking
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    @property
    def payload(self):
        return parse_payload(self.type, self.action_data)

    def set_payload(self, payload):
        """Store ``payload`` and set ``type`` to its registered tag."""
        for tag, payload_cls in NOTIFICATION_PAYLOADS.items():
            if type(payload) is payload_cls:
                self.type = tag
                self.action_data = asdict(payload)
                return
        raise ValueError(f"Unregistered payload type: {type(payload).__name__}")

    def mark_read(self):
        self.is_read = True
        self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "recipient_id": self.recipient_id,
            "project_id": self.project_id,
            "title": self.title,
            "message": self.message,
            "action_url": self.action_url,
            "action_data": self.action_data,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.title[:40]}>"
