"""
Roofline Project Tracker
Tracker Service.

Owns the per-project workflow tracker: lookup, initialisation, line item
completion (with position advance) and the read-time status view.

Lookups never raise for a project that simply has no tracker; they return
``NO_TRACKER``. Database failures propagate.

Usage:
    from roofline.services.tracker_service import TrackerService
    lookup = TrackerService.lookup_tracker(project_id)
    if not lookup.found:
        print(lookup.label)           # "NO TRACKER"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from roofline.core.exceptions import ConflictError, NotFoundError, ValidationError
from roofline.models import db
from roofline.models.auth import User
from roofline.models.project import Project
from roofline.models.workflow import (
    CompletedWorkflowItem,
    ProjectWorkflow,
    ProjectWorkflowTracker,
    WorkflowStep,
)
from roofline.services.completion import (
    compute_completion,
    determine_current_phase,
    next_line_items,
    phase_breakdown,
)
from roofline.services.notification import NotificationService
from roofline.services.workflow_catalog import (
    count_line_items,
    find_next_position,
    find_position,
    first_position,
    iter_positions,
    load_catalog,
    make_step_id,
)

logger = logging.getLogger(__name__)

NO_TRACKER_LABEL = "NO TRACKER"


@dataclass(frozen=True)
class TrackerLookup:
    """Result of a first-match tracker lookup.

    ``duplicate_count`` is the number of extra tracker rows found for the
    same project; they are reported, not resolved.
    """

    tracker: ProjectWorkflowTracker | None
    duplicate_count: int = 0

    @property
    def found(self) -> bool:
        return self.tracker is not None

    @property
    def label(self) -> str:
        return f"tracker {self.tracker.id}" if self.tracker else NO_TRACKER_LABEL


NO_TRACKER = TrackerLookup(tracker=None)


def _get_project(project_id) -> Project:
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project", project_id)
    return project


class TrackerService:
    """Stateless service class for workflow tracker operations."""

    # ── Lookup ────────────────────────────────────────────────────────────

    @staticmethod
    def lookup_trackers(project_id) -> list[ProjectWorkflowTracker]:
        """Every tracker row stored for the project, oldest first."""
        return (
            ProjectWorkflowTracker.query
            .filter_by(project_id=project_id)
            .order_by(ProjectWorkflowTracker.id)
            .all()
        )

    @staticmethod
    def lookup_tracker(project_id) -> TrackerLookup:
        """First-match lookup (lowest id). Absence yields ``NO_TRACKER``."""
        trackers = TrackerService.lookup_trackers(project_id)
        if not trackers:
            return NO_TRACKER
        if len(trackers) > 1:
            logger.warning(
                "Project %s has %d workflow trackers; using tracker %s",
                project_id, len(trackers), trackers[0].id,
                extra={"project_id": project_id},
            )
        return TrackerLookup(tracker=trackers[0], duplicate_count=len(trackers) - 1)

    @staticmethod
    def completed_line_item_ids(tracker) -> set[int]:
        rows = (
            db.session.query(CompletedWorkflowItem.line_item_id)
            .filter(CompletedWorkflowItem.tracker_id == tracker.id)
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def get_summary(tracker):
        """CompletionSummary for ``tracker`` from its persisted completion rows."""
        completed = CompletedWorkflowItem.query.filter_by(tracker_id=tracker.id).count()
        return compute_completion(tracker.total_line_items, completed)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @staticmethod
    def initialize_tracker(project_id, *, commit=True) -> ProjectWorkflowTracker:
        """Create the project's tracker at the first active line item.

        Also creates the ProjectWorkflow and one WorkflowStep per line item.

        Raises:
            NotFoundError: unknown project.
            ConflictError: the project already has a tracker.
            ValidationError: the catalog has no active line items.
        """
        project = _get_project(project_id)
        if TrackerService.lookup_tracker(project_id).found:
            raise ConflictError("ProjectWorkflowTracker", "project_id", str(project_id))

        catalog = load_catalog()
        start = first_position(catalog)
        if start is None:
            raise ValidationError("No active workflow template found")

        now = datetime.now(timezone.utc)
        tracker = ProjectWorkflowTracker(
            project_id=project.id,
            current_phase_id=start.phase.id,
            current_section_id=start.section.id,
            current_line_item_id=start.line_item.id,
            total_line_items=count_line_items(catalog),
            phase_started_at=now,
            section_started_at=now,
            line_item_started_at=now,
        )
        db.session.add(tracker)

        workflow = ProjectWorkflow(project_id=project.id)
        for order, position in enumerate(iter_positions(catalog)):
            workflow.steps.append(WorkflowStep(
                step_id=make_step_id(position.phase.phase_type, position.line_item.item_name),
                step_name=position.line_item.item_name,
                phase=position.phase.phase_type,
                line_item_id=position.line_item.id,
                step_order=order,
            ))
        db.session.add(workflow)

        if commit:
            db.session.commit()
        else:
            db.session.flush()
        logger.info(
            "Initialized workflow for project %s starting with: %s",
            project.project_number, start.line_item.item_name,
            extra={"project_id": project.id},
        )
        return tracker

    @staticmethod
    def complete_line_item(project_id, line_item_id, *, completed_by_id=None, notes=None) -> dict:
        """Record completion of ``line_item_id`` for the project.

        Any line item may be completed. The tracker position only advances
        when the completed item is the current one; already-completed items
        ahead of it are skipped.

        Raises:
            NotFoundError: unknown project, no tracker, or line item not in the catalog.
            ValidationError: ``completed_by_id`` is not a known user.
            ConflictError: the line item was already completed for this tracker.
        """
        project = _get_project(project_id)
        lookup = TrackerService.lookup_tracker(project_id)
        if not lookup.found:
            raise NotFoundError("ProjectWorkflowTracker", project_id)
        tracker = lookup.tracker

        catalog = load_catalog()
        position = find_position(catalog, line_item_id)
        if position is None:
            raise NotFoundError("WorkflowLineItem", line_item_id)

        if completed_by_id is not None and db.session.get(User, completed_by_id) is None:
            raise ValidationError(
                f"Unknown completing user: {completed_by_id}",
                details={"completedById": completed_by_id},
            )

        already_done = TrackerService.completed_line_item_ids(tracker)
        if line_item_id in already_done:
            raise ConflictError("CompletedWorkflowItem", "line_item_id", str(line_item_id))

        completion = CompletedWorkflowItem(
            tracker_id=tracker.id,
            phase_id=position.phase.id,
            section_id=position.section.id,
            line_item_id=line_item_id,
            completed_by_id=completed_by_id,
            notes=notes,
        )
        db.session.add(completion)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost a race with a concurrent completion of the same item
            db.session.rollback()
            raise ConflictError("CompletedWorkflowItem", "line_item_id", str(line_item_id))

        tracker.last_completed_item_id = line_item_id
        completed_section = completed_phase = is_complete = False

        if tracker.current_line_item_id == line_item_id:
            nxt = find_next_position(catalog, line_item_id, skip_ids=already_done)
            completed_section = nxt.completed_section
            completed_phase = nxt.completed_phase
            is_complete = nxt.is_complete
            TrackerService._move_tracker(tracker, nxt)
            if completed_phase:
                NotificationService.notify_phase_completed(
                    project,
                    position.phase.phase_type,
                    nxt.position.phase.phase_type if nxt.position else None,
                )
            logger.info(
                "Advanced project %s past %s", project.project_number, position.line_item.item_name,
                extra={"project_id": project.id, "line_item_id": line_item_id},
            )
        else:
            logger.info(
                "Completed %s for project %s; position stays at %s",
                line_item_id, project.project_number, tracker.current_line_item_id,
                extra={"project_id": project.id, "line_item_id": line_item_id},
            )

        TrackerService._project_step(project.id, line_item_id, completion.completed_at)
        resolved = NotificationService.resolve_workflow_alerts(project.id, line_item_id)
        db.session.commit()

        return {
            "tracker": tracker.to_dict(),
            "completion": completion.to_dict(),
            "summary": TrackerService.get_summary(tracker).to_dict(),
            "completed_section": completed_section,
            "completed_phase": completed_phase,
            "is_workflow_complete": is_complete,
            "resolved_alerts": resolved,
        }

    @staticmethod
    def _move_tracker(tracker, nxt):
        now = datetime.now(timezone.utc)
        if nxt.is_complete:
            tracker.current_phase_id = None
            tracker.current_section_id = None
            tracker.current_line_item_id = None
            return
        position = nxt.position
        if tracker.current_phase_id != position.phase.id:
            tracker.current_phase_id = position.phase.id
            tracker.phase_started_at = now
        if tracker.current_section_id != position.section.id:
            tracker.current_section_id = position.section.id
            tracker.section_started_at = now
        tracker.current_line_item_id = position.line_item.id
        tracker.line_item_started_at = now

    @staticmethod
    def _project_step(project_id, line_item_id, completed_at):
        steps = (
            WorkflowStep.query
            .join(ProjectWorkflow, WorkflowStep.workflow_id == ProjectWorkflow.id)
            .filter(ProjectWorkflow.project_id == project_id, WorkflowStep.line_item_id == line_item_id)
            .all()
        )
        for step in steps:
            step.is_completed = True
            step.completed_at = completed_at

    @staticmethod
    def resync_step_projection(project_id) -> int:
        """Rewrite WorkflowStep.is_completed from CompletedWorkflowItem rows.

        Returns:
            Number of steps whose flag changed.
        """
        lookup = TrackerService.lookup_tracker(project_id)
        done = {}
        if lookup.found:
            for item in CompletedWorkflowItem.query.filter_by(tracker_id=lookup.tracker.id):
                done[item.line_item_id] = item.completed_at
        changed = 0
        steps = (
            WorkflowStep.query
            .join(ProjectWorkflow, WorkflowStep.workflow_id == ProjectWorkflow.id)
            .filter(ProjectWorkflow.project_id == project_id)
            .all()
        )
        for step in steps:
            should_be = step.line_item_id in done
            if step.is_completed != should_be:
                step.is_completed = should_be
                step.completed_at = done.get(step.line_item_id)
                changed += 1
        db.session.commit()
        return changed

    # ── Status ────────────────────────────────────────────────────────────

    @staticmethod
    def workflow_status(project_id) -> dict:
        """Read-time workflow view for a project.

        A project without a tracker returns ``{"tracker": None, "label": "NO TRACKER", ...}``.
        """
        project = _get_project(project_id)
        lookup = TrackerService.lookup_tracker(project_id)
        if not lookup.found:
            return {
                "project": project.to_dict(),
                "tracker": None,
                "label": NO_TRACKER_LABEL,
                "summary": compute_completion(0, 0).to_dict(),
            }

        tracker = lookup.tracker
        catalog = load_catalog()
        done = TrackerService.completed_line_item_ids(tracker)
        breakdown = phase_breakdown(catalog, done)
        current_phase = determine_current_phase(breakdown)
        upcoming = next_line_items(catalog, done, current_phase, limit=5)

        return {
            "project": project.to_dict(),
            "tracker": tracker.to_dict(),
            "label": lookup.label,
            "duplicate_trackers": lookup.duplicate_count,
            "summary": TrackerService.get_summary(tracker).to_dict(),
            "current_phase": current_phase,
            "phases": [p.to_dict() for p in breakdown],
            "next_items": [item._asdict() for item in upcoming],
            "is_complete": tracker.current_line_item_id is None,
        }
