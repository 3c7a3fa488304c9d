"""
Roofline Project Tracker
Scheduled Jobs.

Concrete job implementations that run on a schedule.

Jobs:
    - workflow_alert_scan: raises WORKFLOW_ALERT notifications for due line items
    - step_projection_resync: rebuilds WorkflowStep.is_completed from completions
    - stale_notification_cleanup: deletes old read notifications
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from roofline.models import db
from roofline.models.notification import Notification
from roofline.models.project import Project
from roofline.services.scheduler_service import register_job

logger = logging.getLogger(__name__)

STALE_NOTIFICATION_DAYS = 30


# ═══════════════════════════════════════════════════════════════════════════
#  Job 1: Workflow Alert Scan
# ═══════════════════════════════════════════════════════════════════════════

@register_job("workflow_alert_scan")
def scan_workflow_alerts(app) -> dict[str, Any]:
    """Raise alerts for tracker line items that are due soon or overdue."""
    from roofline.services.alerting import WorkflowAlertService

    return WorkflowAlertService.scan()


# ═══════════════════════════════════════════════════════════════════════════
#  Job 2: Step Projection Resync
# ═══════════════════════════════════════════════════════════════════════════

@register_job("step_projection_resync")
def resync_step_projections(app) -> dict[str, Any]:
    """Rebuild WorkflowStep completion flags from completed line items."""
    from roofline.services.tracker_service import TrackerService

    results = {"projects_checked": 0, "steps_changed": 0}
    for (project_id,) in db.session.query(Project.id).order_by(Project.id).all():
        results["projects_checked"] += 1
        results["steps_changed"] += TrackerService.resync_step_projection(project_id)

    logger.info("Step projection resync: %s", results)
    return results


# ═══════════════════════════════════════════════════════════════════════════
#  Job 3: Stale Notification Cleanup
# ═══════════════════════════════════════════════════════════════════════════

@register_job("stale_notification_cleanup")
def cleanup_stale_notifications(app) -> dict[str, Any]:
    """Delete read notifications older than 30 days."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=STALE_NOTIFICATION_DAYS)

    deleted = Notification.query.filter(
        Notification.is_read.is_(True),
        Notification.read_at < cutoff,
    ).delete(synchronize_session="fetch")

    db.session.commit()
    logger.info("Stale notification cleanup: deleted %d old read notifications", deleted)
    return {"deleted": deleted, "cutoff": cutoff.isoformat()}
