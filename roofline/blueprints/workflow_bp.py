"""
Roofline Project Tracker
Workflow Blueprint.

Endpoints:
    GET  /api/workflows/line-items                                   catalog line items
    PUT  /api/workflows/line-items/bulk                              rename line items
    POST /api/projects/<id>/workflow/initialize                      create the tracker
    GET  /api/projects/<id>/workflow                                 status view
    POST /api/projects/<id>/workflow/line-items/<item>/complete      complete a line item
    POST /api/projects/<id>/workflow/resync                          rebuild step flags
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from roofline.models import db
from roofline.models.project import Project
from roofline.services.line_item_service import bulk_update_line_items, list_line_items
from roofline.services.tracker_service import TrackerService
from roofline.utils.errors import E, api_error
from roofline.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow_bp", __name__, url_prefix="/api")


# ═══════════════════════════════════════════════════════════════════════════
#  CATALOG
# ═══════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/workflows/line-items", methods=["GET"])
def get_line_items():
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    items = list_line_items(include_inactive=include_inactive)
    return jsonify({"success": True, "data": items, "total": len(items)})


@workflow_bp.route("/workflows/line-items/bulk", methods=["PUT"])
def bulk_rename_line_items():
    """Rename line items: ``{"updates": [{"id": 1, "itemName": "..."}]}``."""
    data = request.get_json(silent=True) or {}
    updates = data.get("updates")
    if updates is None:
        return api_error(E.VALIDATION_REQUIRED, "updates is required")

    try:
        items = bulk_update_line_items(updates)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error renaming line items")
        return api_error(E.DATABASE, "Database error")

    return jsonify({
        "success": True,
        "updated": len(items),
        "data": [item.to_dict() for item in items],
    })


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT WORKFLOW
# ═══════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/projects/<int:project_id>/workflow/initialize", methods=["POST"])
def initialize_workflow(project_id):
    try:
        tracker = TrackerService.initialize_tracker(project_id)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error initializing workflow", extra={"project_id": project_id})
        return api_error(E.DATABASE, "Database error")
    return jsonify({"success": True, "tracker": tracker.to_dict()}), 201


@workflow_bp.route("/projects/<int:project_id>/workflow", methods=["GET"])
def get_workflow(project_id):
    return jsonify(TrackerService.workflow_status(project_id))


@workflow_bp.route(
    "/projects/<int:project_id>/workflow/line-items/<int:line_item_id>/complete", methods=["POST"],
)
def complete_line_item(project_id, line_item_id):
    data = request.get_json(silent=True) or {}
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        return api_error(E.VALIDATION_INVALID, "notes must be a string")
    completed_by_id = data.get("completedById")
    if completed_by_id is not None and (isinstance(completed_by_id, bool) or not isinstance(completed_by_id, int)):
        return api_error(E.VALIDATION_INVALID, "completedById must be an integer")

    try:
        result = TrackerService.complete_line_item(
            project_id,
            line_item_id,
            completed_by_id=completed_by_id,
            notes=notes,
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(
            "Database error completing line item",
            extra={"project_id": project_id, "line_item_id": line_item_id},
        )
        return api_error(E.DATABASE, "Database error")
    return jsonify({"success": True, **result})


@workflow_bp.route("/projects/<int:project_id>/workflow/resync", methods=["POST"])
def resync_workflow(project_id):
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    changed = TrackerService.resync_step_projection(project_id)
    return jsonify({"success": True, "steps_changed": changed})
