"""
Roofline Project Tracker
Scheduler Blueprint: list, trigger and toggle background jobs.
"""

import logging

from flask import Blueprint, jsonify, request

from roofline.services.scheduler_service import SchedulerService, get_registered_jobs
from roofline.utils.errors import E, api_error

logger = logging.getLogger(__name__)

scheduler_bp = Blueprint("scheduler_bp", __name__, url_prefix="/api/scheduler")


@scheduler_bp.route("/jobs", methods=["GET"])
def list_scheduled_jobs():
    SchedulerService.ensure_jobs_registered()
    jobs = SchedulerService.list_jobs()
    return jsonify({"jobs": jobs, "total": len(jobs)})


@scheduler_bp.route("/jobs/<job_name>/run", methods=["POST"])
def run_job(job_name):
    if job_name not in get_registered_jobs():
        return api_error(E.NOT_FOUND, f"Job '{job_name}' not found")
    SchedulerService.ensure_jobs_registered()
    force = request.args.get("force", "").lower() in ("1", "true", "yes")
    result = SchedulerService.run_job(job_name, force=force)
    status = 500 if result["status"] == "failed" else 200
    return jsonify(result), status


@scheduler_bp.route("/jobs/<job_name>/toggle", methods=["PATCH"])
def toggle_job(job_name):
    data = request.get_json(silent=True) or {}
    enabled = data.get("enabled")
    if not isinstance(enabled, bool):
        return api_error(E.VALIDATION_REQUIRED, "'enabled' field is required (true/false)")
    SchedulerService.ensure_jobs_registered()
    result = SchedulerService.toggle_job(job_name, enabled)
    if result is None:
        return api_error(E.NOT_FOUND, f"Job '{job_name}' not found")
    return jsonify(result)
