"""
Roofline Project Tracker
Workflow Alert Service.

Raises WORKFLOW_ALERT notifications for trackers whose current line item is
due soon, due now or overdue. A dedup key keeps repeated scans from writing
the same alert twice.

Usage:
    from roofline.services.alerting import WorkflowAlertService
    result = WorkflowAlertService.scan()
"""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from flask import current_app, has_app_context

from roofline.models import db
from roofline.models.auth import User
from roofline.models.notification import WORKFLOW_ALERT, WorkflowAlertPayload
from roofline.models.project import Project
from roofline.models.workflow import ProjectWorkflowTracker, WorkflowLineItem
from roofline.services.notification import NotificationService

logger = logging.getLogger(__name__)

ALERT_WARNING = "warning"
ALERT_URGENT = "urgent"
ALERT_OVERDUE = "overdue"


# responsible_role -> user roles that receive the alert
ROLE_RECIPIENTS = {
    "OFFICE": ("ADMIN", "MANAGER"),
    "ADMINISTRATION": ("ADMIN", "MANAGER"),
    "PROJECT_MANAGER": ("PROJECT_MANAGER", "MANAGER"),
    "FIELD_DIRECTOR": ("FOREMAN", "MANAGER"),
    "ROOF_SUPERVISOR": ("FOREMAN", "WORKER"),
}
DEFAULT_RECIPIENT_ROLES = ("MANAGER",)
# Fallback when a role has no active users, and extra recipients of overdue alerts
MANAGEMENT_ROLES = ("ADMIN", "MANAGER")

_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class DueStatus:
    alert_type: str | None
    due_at: datetime
    days_until_due: int
    days_overdue: int


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def classify_due(started_at: datetime, alert_days: int, now: datetime | None = None) -> DueStatus:
    """Classify a line item started at ``started_at`` with ``alert_days`` allowed.

    overdue when past due; urgent within a day of due; warning within
    ``alert_days`` of due; otherwise no alert.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    due_at = _as_utc(started_at) + timedelta(days=alert_days)
    seconds_left = (due_at - now).total_seconds()
    days_until_due = math.ceil(seconds_left / _DAY_SECONDS)
    days_overdue = math.ceil(-seconds_left / _DAY_SECONDS)

    if days_overdue > 0:
        alert_type = ALERT_OVERDUE
    elif days_until_due <= 1:
        alert_type = ALERT_URGENT
    elif days_until_due <= alert_days:
        alert_type = ALERT_WARNING
    else:
        alert_type = None

    return DueStatus(
        alert_type=alert_type,
        due_at=due_at,
        days_until_due=max(0, days_until_due),
        days_overdue=max(0, days_overdue),
    )


def alert_dedup_key(project_id: int, line_item_id: int, alert_type: str, now: datetime | None = None) -> str:
    """Deterministic key for an alert.

    Overdue alerts repeat once a day; warning and urgent fire once per
    line item.
    """
    raw = f"wf-{project_id}-{line_item_id}-{alert_type}"
    if alert_type == ALERT_OVERDUE:
        raw = f"{raw}-{_as_utc(now or datetime.now(timezone.utc)).date().isoformat()}"
    return hashlib.md5(raw.encode()).hexdigest()[:16]


def _alert_exists(project_id: int, dedup_key: str) -> bool:
    for notif in NotificationService.list_workflow_alerts(project_id):
        if (notif.action_data or {}).get("dedup_key") == dedup_key:
            return True
    return False


def alert_message(step_name: str, project_name: str, due: DueStatus) -> str:
    if due.alert_type == ALERT_OVERDUE:
        plural = "s" if due.days_overdue != 1 else ""
        return f"{step_name} for {project_name} is {due.days_overdue} day{plural} overdue!"
    if due.alert_type == ALERT_URGENT and due.days_until_due == 0:
        return f"{step_name} for {project_name} is due TODAY!"
    plural = "s" if due.days_until_due != 1 else ""
    suffix = "!" if due.alert_type == ALERT_URGENT else "."
    return f"{step_name} for {project_name} is due in {due.days_until_due} day{plural}{suffix}"


class WorkflowAlertService:
    """Stateless service class for workflow alert scans and verification."""

    @staticmethod
    def _active_user_ids(roles) -> list[int]:
        users = (
            User.query
            .filter(User.role.in_(roles), User.is_active.is_(True))
            .order_by(User.id)
            .all()
        )
        return [u.id for u in users]

    @staticmethod
    def recipients_for(project, responsible_role, alert_type) -> list[int | None]:
        """User ids that receive the alert. ``[None]`` means broadcast.

        Users holding the responsible role come first. When nobody holds it,
        admins and managers stand in, then the project manager. Urgent and
        overdue alerts also go to the project manager, and overdue alerts to
        every admin and manager. Each user appears once.
        """
        roles = ROLE_RECIPIENTS.get(responsible_role, DEFAULT_RECIPIENT_ROLES)
        recipient_ids = WorkflowAlertService._active_user_ids(roles)
        if not recipient_ids:
            recipient_ids = WorkflowAlertService._active_user_ids(MANAGEMENT_ROLES)
        if not recipient_ids and project.project_manager_id:
            recipient_ids.append(project.project_manager_id)

        if alert_type in (ALERT_URGENT, ALERT_OVERDUE) and project.project_manager_id:
            recipient_ids.append(project.project_manager_id)
        if alert_type == ALERT_OVERDUE:
            recipient_ids.extend(WorkflowAlertService._active_user_ids(MANAGEMENT_ROLES))

        return list(dict.fromkeys(recipient_ids)) or [None]

    @staticmethod
    def check_tracker(tracker, now=None) -> list:
        """Create alerts for one tracker's current line item. Caller commits.

        Returns:
            Created Notification instances (empty when nothing is due or
            the alert already exists).
        """
        if tracker.current_line_item_id is None:
            return []
        project = tracker.project
        line_item = db.session.get(WorkflowLineItem, tracker.current_line_item_id)
        if line_item is None:
            logger.warning(
                "Tracker %s points at missing line item %s",
                tracker.id, tracker.current_line_item_id,
                extra={"tracker_id": tracker.id},
            )
            return []

        started_at = tracker.line_item_started_at or tracker.created_at
        alert_days = line_item.alert_days
        if alert_days is None and has_app_context():
            alert_days = current_app.config.get("WORKFLOW_ALERT_DEFAULT_DAYS", 1)
        due = classify_due(started_at, alert_days or 1, now)
        if due.alert_type is None:
            return []

        dedup_key = alert_dedup_key(project.id, line_item.id, due.alert_type, now)
        if _alert_exists(project.id, dedup_key):
            return []

        phase_type = line_item.section.phase.phase_type if line_item.section else ""
        payload = WorkflowAlertPayload(
            project_id=project.id,
            project_name=project.project_name,
            line_item_id=line_item.id,
            step_name=line_item.item_name,
            phase=phase_type,
            alert_type=due.alert_type,
            days_until_due=due.days_until_due,
            days_overdue=due.days_overdue,
            responsible_role=line_item.responsible_role,
            dedup_key=dedup_key,
        )
        message = alert_message(line_item.item_name, project.project_name, due)
        created = []
        for recipient_id in WorkflowAlertService.recipients_for(
                project, line_item.responsible_role, due.alert_type):
            created.append(NotificationService.create(
                notification_type=WORKFLOW_ALERT,
                title=f"{due.alert_type.upper()}: {line_item.item_name}",
                message=message,
                payload=payload,
                recipient_id=recipient_id,
                project_id=project.id,
                action_url=f"/projects/{project.id}/workflow",
                commit=False,
            ))
        logger.info(
            "Raised %s alert for %s (%s) to %d recipient(s)",
            due.alert_type, project.project_number, line_item.item_name, len(created),
            extra={"project_id": project.id, "line_item_id": line_item.id},
        )
        return created

    @staticmethod
    def scan(now=None) -> dict:
        """Check every non-archived project with an active tracker.

        Duplicate trackers for a project are ignored after the first.
        """
        results = {"projects_checked": 0, "alerts_created": 0, "skipped_archived": 0}
        seen_projects = set()
        trackers = (
            ProjectWorkflowTracker.query
            .join(Project, ProjectWorkflowTracker.project_id == Project.id)
            .filter(ProjectWorkflowTracker.current_line_item_id.isnot(None))
            .order_by(ProjectWorkflowTracker.project_id, ProjectWorkflowTracker.id)
            .all()
        )
        for tracker in trackers:
            if tracker.project_id in seen_projects:
                continue
            seen_projects.add(tracker.project_id)
            if tracker.project.archived:
                results["skipped_archived"] += 1
                continue
            results["projects_checked"] += 1
            results["alerts_created"] += len(WorkflowAlertService.check_tracker(tracker, now))

        db.session.commit()
        logger.info("Workflow alert scan: %s", results)
        return results

    @staticmethod
    def verify(project_id=None) -> dict:
        """Report alert existence and payload shape.

        Every WORKFLOW_ALERT must parse into a WorkflowAlertPayload that
        carries a project name.
        """
        alerts = NotificationService.list_workflow_alerts(project_id)
        report = {
            "total": len(alerts),
            "active": 0,
            "valid": 0,
            "invalid": [],
            "by_project": {},
        }
        for notif in alerts:
            if not notif.is_read:
                report["active"] += 1
            try:
                payload = notif.payload
            except ValueError as exc:
                report["invalid"].append({"id": notif.id, "reason": str(exc)})
                continue
            if not payload.project_name:
                report["invalid"].append({"id": notif.id, "reason": "missing project_name"})
                continue
            report["valid"] += 1
            key = str(payload.project_id)
            report["by_project"][key] = report["by_project"].get(key, 0) + 1
        return report
