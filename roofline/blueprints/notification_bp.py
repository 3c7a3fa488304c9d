"""
Roofline Project Tracker
Notification Blueprint.

Provides:
    - Notification listing and read tracking
    - WORKFLOW_ALERT listing, manual scan and payload verification
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from roofline.models import db
from roofline.models.notification import NOTIFICATION_TYPES
from roofline.services.alerting import WorkflowAlertService
from roofline.services.notification import NotificationService
from roofline.utils.errors import E, api_error
from roofline.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification_bp", __name__, url_prefix="/api/notifications")


def _optional_int(name):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None, None
    try:
        return int(raw), None
    except ValueError:
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be an integer")


@notification_bp.route("", methods=["GET"])
def list_notifications():
    recipient_id, err = _optional_int("recipient_id")
    if err:
        return err
    project_id, err = _optional_int("project_id")
    if err:
        return err
    notification_type = request.args.get("type")
    if notification_type and notification_type not in NOTIFICATION_TYPES:
        return api_error(
            E.VALIDATION_INVALID,
            f"Invalid type. Must be one of: {sorted(NOTIFICATION_TYPES)}",
        )

    items, total = NotificationService.list_for_recipient(
        recipient_id=recipient_id,
        project_id=project_id,
        notification_type=notification_type,
        unread_only=request.args.get("unread_only", "").lower() in ("1", "true", "yes"),
        limit=parse_int_arg(request.args, "limit", 50, minimum=1, maximum=200),
        offset=parse_int_arg(request.args, "offset", 0),
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(recipient_id, project_id),
    })


@notification_bp.route("/alerts", methods=["GET"])
def list_alerts():
    project_id, err = _optional_int("project_id")
    if err:
        return err
    active_only = request.args.get("active_only", "true").lower() in ("1", "true", "yes")
    alerts = NotificationService.list_workflow_alerts(project_id, active_only=active_only)
    return jsonify({"items": [n.to_dict() for n in alerts], "total": len(alerts)})


@notification_bp.route("/alerts/verify", methods=["GET"])
def verify_alerts():
    project_id, err = _optional_int("project_id")
    if err:
        return err
    return jsonify(WorkflowAlertService.verify(project_id))


@notification_bp.route("/alerts/scan", methods=["POST"])
def scan_alerts():
    try:
        result = WorkflowAlertService.scan()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error during workflow alert scan")
        return api_error(E.DATABASE, "Database error")
    return jsonify(result)


@notification_bp.route("/<int:nid>/read", methods=["PUT"])
def mark_notification_read(nid):
    notif = NotificationService.mark_read(nid)
    if not notif:
        return api_error(E.NOT_FOUND, "Notification not found")
    return jsonify(notif.to_dict())


@notification_bp.route("/read-all", methods=["PUT"])
def mark_all_read():
    data = request.get_json(silent=True) or {}
    count = NotificationService.mark_all_read(data.get("recipient_id"), data.get("project_id"))
    return jsonify({"marked_read": count})
