"""
Roofline Project Tracker
Notification Service.

Central service for creating and querying notifications. Payloads are
validated against the type registry in ``roofline.models.notification``
before anything is written.
"""

from datetime import datetime, timezone

from roofline.core.exceptions import ValidationError
from roofline.models import db
from roofline.models.notification import (
    NOTIFICATION_PAYLOADS,
    PHASE_COMPLETED,
    WORKFLOW_ALERT,
    Notification,
    PhaseCompletedPayload,
)


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, notification_type, title, payload, message="", recipient_id=None,
               project_id=None, action_url=None, commit=True):
        """
        Create a single notification record.

        Raises:
            ValidationError: unknown type, or payload not of the type's class.

        Returns:
            The created Notification instance.
        """
        payload_cls = NOTIFICATION_PAYLOADS.get(notification_type)
        if payload_cls is None:
            raise ValidationError(
                f"Invalid notification type. Must be one of: {sorted(NOTIFICATION_PAYLOADS)}",
            )
        if type(payload) is not payload_cls:
            raise ValidationError(
                f"{notification_type} requires a {payload_cls.__name__} payload",
                details={"payload": type(payload).__name__},
            )

        notif = Notification(
            recipient_id=recipient_id,
            project_id=project_id,
            title=title,
            message=message,
            action_url=action_url,
        )
        notif.set_payload(payload)
        db.session.add(notif)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return notif

    @staticmethod
    def notify_phase_completed(project, phase_type, next_phase_type=None, *, commit=False):
        """Broadcast that ``project`` has left ``phase_type``."""
        return NotificationService.create(
            notification_type=PHASE_COMPLETED,
            title=f"Phase completed: {phase_type}",
            message=f"{project.project_name} completed the {phase_type} phase.",
            project_id=project.id,
            action_url=f"/projects/{project.id}/workflow",
            payload=PhaseCompletedPayload(
                project_id=project.id,
                project_name=project.project_name,
                phase=phase_type,
                next_phase=next_phase_type,
            ),
            commit=commit,
        )

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def _recipient_query(recipient_id):
        if recipient_id is None:
            return Notification.query
        return Notification.query.filter(
            (Notification.recipient_id == recipient_id) | (Notification.recipient_id.is_(None))
        )

    @staticmethod
    def list_for_recipient(recipient_id=None, project_id=None, notification_type=None,
                           unread_only=False, limit=50, offset=0):
        """
        Retrieve notifications for a recipient (own + broadcast), newest first.

        ``recipient_id=None`` lists everything.
        """
        q = NotificationService._recipient_query(recipient_id)
        if project_id:
            q = q.filter_by(project_id=project_id)
        if notification_type:
            q = q.filter_by(type=notification_type)
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(recipient_id=None, project_id=None):
        """Return count of unread notifications."""
        q = NotificationService._recipient_query(recipient_id).filter_by(is_read=False)
        if project_id:
            q = q.filter_by(project_id=project_id)
        return q.count()

    @staticmethod
    def list_workflow_alerts(project_id=None, active_only=False):
        """All WORKFLOW_ALERT notifications, oldest first."""
        q = Notification.query.filter_by(type=WORKFLOW_ALERT)
        if project_id:
            q = q.filter_by(project_id=project_id)
        if active_only:
            q = q.filter_by(is_read=False)
        return q.order_by(Notification.created_at, Notification.id).all()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id):
        """Mark a single notification as read. Returns None when it does not exist."""
        notif = db.session.get(Notification, notification_id)
        if notif:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(recipient_id=None, project_id=None):
        """Mark all notifications for a recipient as read."""
        q = NotificationService._recipient_query(recipient_id).filter_by(is_read=False)
        if project_id:
            q = q.filter_by(project_id=project_id)
        now = datetime.now(timezone.utc)
        count = q.update({"is_read": True, "read_at": now}, synchronize_session="fetch")
        db.session.commit()
        return count

    @staticmethod
    def resolve_workflow_alerts(project_id, line_item_id):
        """Mark active alerts for a completed line item as read. Caller commits.

        Rows whose payload no longer parses are left alone.
        """
        resolved = 0
        for notif in NotificationService.list_workflow_alerts(project_id, active_only=True):
            try:
                payload = notif.payload
            except ValueError:
                continue
            if payload.line_item_id == line_item_id:
                notif.mark_read()
                resolved += 1
        return resolved
