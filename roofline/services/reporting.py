"""
Roofline Project Tracker
Maintenance reports.

Read-only diagnostics used by the scripts in ``scripts/``:

    iter_tracker_rows()   -> one row per project (percent or NO TRACKER)
    alert_report()        -> WORKFLOW_ALERT existence and payload shape
    step_id_report()      -> WorkflowStep ids that drift from the catalog

Each ``format_*`` helper turns a report into printable lines.
"""

from __future__ import annotations

from collections import Counter

from roofline.models import db
from roofline.models.project import Project
from roofline.models.workflow import ProjectWorkflow, WorkflowLineItem, WorkflowStep
from roofline.services.alerting import WorkflowAlertService
from roofline.services.tracker_service import NO_TRACKER_LABEL, TrackerService
from roofline.services.workflow_catalog import make_step_id


# ═════════════════════════════════════════════════════════════════════════════
# Trackers
# ═════════════════════════════════════════════════════════════════════════════

def iter_tracker_rows(include_archived=True):
    """Yield a completion row per project. Projects without a tracker are rows too."""
    q = Project.query
    if not include_archived:
        q = q.filter_by(archived=False)
    for project in q.order_by(Project.id).all():
        lookup = TrackerService.lookup_tracker(project.id)
        row = {
            "project_id": project.id,
            "project_number": project.project_number,
            "project_name": project.project_name,
            "archived": project.archived,
            "tracker_id": None,
            "duplicate_trackers": lookup.duplicate_count,
            "current_phase": None,
            "summary": None,
        }
        if lookup.found:
            tracker = lookup.tracker
            row["tracker_id"] = tracker.id
            row["current_phase"] = tracker.current_phase.phase_type if tracker.current_phase else None
            row["summary"] = TrackerService.get_summary(tracker).to_dict()
        yield row


def tracker_report(include_archived=True) -> list[dict]:
    return list(iter_tracker_rows(include_archived))


def format_tracker_row(row) -> str:
    label = f"{row['project_number']} {row['project_name']}"
    if row["archived"]:
        label += " [archived]"
    if row["summary"] is None:
        return f"{label}: {NO_TRACKER_LABEL}"
    s = row["summary"]
    line = (f"{label}: {s['percent']}% ({s['completed_count']}/{s['total_count']})"
            f" phase={row['current_phase'] or 'DONE'}")
    if row["duplicate_trackers"]:
        line += f" WARNING: {row['duplicate_trackers']} duplicate tracker(s)"
    return line


def format_tracker_totals(rows) -> str:
    without = sum(1 for row in rows if row["summary"] is None)
    return f"Projects: {len(rows)}  with tracker: {len(rows) - without}  without: {without}"


# ═════════════════════════════════════════════════════════════════════════════
# Alerts
# ═════════════════════════════════════════════════════════════════════════════

def alert_report(project_id=None) -> dict:
    return WorkflowAlertService.verify(project_id)


def format_alert_report(report) -> list[str]:
    lines = [
        f"WORKFLOW_ALERT notifications: {report['total']} (active: {report['active']})",
        f"Valid payloads: {report['valid']}",
    ]
    for project_id, count in sorted(report["by_project"].items()):
        lines.append(f"  project {project_id}: {count}")
    for bad in report["invalid"]:
        lines.append(f"  INVALID notification {bad['id']}: {bad['reason']}")
    if not report["total"]:
        lines.append("No workflow alerts found")
    return lines


# ═════════════════════════════════════════════════════════════════════════════
# Step ids
# ═════════════════════════════════════════════════════════════════════════════

def step_id_report() -> dict:
    """Compare stored WorkflowStep ids with the ids the catalog would produce.

    Flags steps whose line item is gone, step ids that no longer match
    ``make_step_id`` and step ids repeated within one workflow.
    """
    report = {"checked": 0, "mismatched": [], "orphaned": [], "duplicates": []}
    workflows = ProjectWorkflow.query.order_by(ProjectWorkflow.id).all()
    for workflow in workflows:
        steps = WorkflowStep.query.filter_by(workflow_id=workflow.id).order_by(WorkflowStep.step_order).all()
        counts = Counter(step.step_id for step in steps)
        for step_id, count in counts.items():
            if count > 1:
                report["duplicates"].append(
                    {"workflow_id": workflow.id, "step_id": step_id, "count": count})
        for step in steps:
            report["checked"] += 1
            item = db.session.get(WorkflowLineItem, step.line_item_id) if step.line_item_id else None
            if item is None:
                report["orphaned"].append({"workflow_id": workflow.id, "step_id": step.step_id})
                continue
            expected = make_step_id(step.phase, item.item_name)
            if step.step_id != expected:
                report["mismatched"].append({
                    "workflow_id": workflow.id,
                    "step_id": step.step_id,
                    "expected": expected,
                })
    return report


def format_step_id_report(report) -> list[str]:
    lines = [f"Steps checked: {report['checked']}"]
    for row in report["mismatched"]:
        lines.append(f"  MISMATCH workflow {row['workflow_id']}: {row['step_id']} -> {row['expected']}")
    for row in report["orphaned"]:
        lines.append(f"  ORPHANED workflow {row['workflow_id']}: {row['step_id']}")
    for row in report["duplicates"]:
        lines.append(f"  DUPLICATE workflow {row['workflow_id']}: {row['step_id']} x{row['count']}")
    if not (report["mismatched"] or report["orphaned"] or report["duplicates"]):
        lines.append("All step ids match the catalog")
    return lines
