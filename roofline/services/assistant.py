"""
Roofline Project Tracker
Bubbles assistant.

Answers chat messages from persisted workflow state only. There is no
language model behind it; replies are assembled from the tracker, the
completion summary and the active alerts.
"""

from __future__ import annotations

import logging

from roofline.core.exceptions import NotFoundError, ValidationError
from roofline.models import db
from roofline.models.project import Project
from roofline.services.notification import NotificationService
from roofline.services.tracker_service import NO_TRACKER_LABEL, TrackerService

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def _project_reply(project) -> str:
    status = TrackerService.workflow_status(project.id)
    header = f"{project.project_name} (#{project.project_number})"
    if status["tracker"] is None:
        return f"{header}: {NO_TRACKER_LABEL}. Initialize the workflow to start tracking progress."

    summary = status["summary"]
    lines = [
        f"{header} is {summary['percent']}% complete "
        f"({summary['completed_count']}/{summary['total_count']} line items).",
        f"Current phase: {status['current_phase']}.",
    ]
    if status["next_items"]:
        names = ", ".join(item["item_name"] for item in status["next_items"][:3])
        lines.append(f"Next up: {names}.")
    elif status["is_complete"]:
        lines.append("All workflow line items are complete.")

    alerts = NotificationService.list_workflow_alerts(project.id, active_only=True)
    if alerts:
        lines.append(f"There are {len(alerts)} active workflow alert(s).")
    return " ".join(lines)


def _portfolio_reply() -> str:
    projects = Project.query.filter_by(archived=False).order_by(Project.id).all()
    if not projects:
        return "There are no active projects."

    without_tracker = 0
    percents = []
    for project in projects:
        lookup = TrackerService.lookup_tracker(project.id)
        if not lookup.found:
            without_tracker += 1
            continue
        percents.append(TrackerService.get_summary(lookup.tracker).percent)

    parts = [f"{len(projects)} active project(s)."]
    if percents:
        parts.append(f"Average workflow completion is {round(sum(percents) / len(percents))}%.")
    if without_tracker:
        parts.append(f"{without_tracker} project(s) have no workflow tracker.")
    active_alerts = len(NotificationService.list_workflow_alerts(active_only=True))
    parts.append(f"{active_alerts} workflow alert(s) are open.")
    return " ".join(parts)


def answer(message, project_id=None) -> dict:
    """Build the chat reply for ``message``.

    Raises:
        ValidationError: empty or oversized message.
        NotFoundError: ``project_id`` does not exist.
    """
    text = (message or "").strip() if isinstance(message, str) else ""
    if not text:
        raise ValidationError("message is required")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"message must be at most {MAX_MESSAGE_LENGTH} characters")

    if project_id is not None:
        project = db.session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        content = _project_reply(project)
    else:
        content = _portfolio_reply()

    logger.info("Bubbles reply generated", extra={"project_id": project_id})
    return {"content": content, "project_id": project_id}
