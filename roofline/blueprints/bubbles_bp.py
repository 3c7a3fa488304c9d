"""
Roofline Project Tracker
Bubbles assistant blueprint.

POST /api/bubbles/chat  {"message": "...", "projectId": 1}
"""

import logging

from flask import Blueprint, jsonify, request

from roofline.services import assistant
from roofline.utils.errors import E, api_error

logger = logging.getLogger(__name__)

bubbles_bp = Blueprint("bubbles_bp", __name__, url_prefix="/api/bubbles")


@bubbles_bp.route("/chat", methods=["POST"])
def chat():
    data = request.get_json(silent=True) or {}
    if "message" not in data:
        return api_error(E.VALIDATION_REQUIRED, "message is required")

    project_id = data.get("projectId")
    if project_id is not None:
        try:
            project_id = int(project_id)
        except (TypeError, ValueError):
            return api_error(E.VALIDATION_INVALID, "projectId must be an integer")

    reply = assistant.answer(data["message"], project_id=project_id)
    return jsonify({"success": True, "response": reply})
