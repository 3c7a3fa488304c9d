"""
Roofline Project Tracker
Scheduler Service.

Registry and runner for background jobs. Jobs are plain functions
registered with ``@register_job``; an external cron (or the manual trigger
endpoint) calls ``SchedulerService.run_job`` and the outcome is recorded on
the job's ScheduledJob row.

Architecture:
    - register_job: decorator that adds a function to the registry
    - SchedulerService: persistence of job records and execution
    - Jobs run inside the Flask app context
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from flask import Flask

from roofline.models import db
from roofline.models.scheduling import ScheduledJob

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Job Registry
# ═══════════════════════════════════════════════════════════════════════════

_job_registry: dict[str, Callable] = {}


def register_job(name: str):
    """Decorator to register a job function.

    Usage:
        @register_job("workflow_alert_scan")
        def scan_workflow_alerts(app):
            ...
    """
    def decorator(fn: Callable) -> Callable:
        _job_registry[name] = fn
        return fn
    return decorator


def get_registered_jobs() -> dict[str, Callable]:
    """Return all registered job functions."""
    return dict(_job_registry)


class SchedulerService:
    """
    Job registry front-end.

    Manages job records and execution. ``init_app`` must run before any
    job can be executed.
    """

    _app: Flask | None = None

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """Bind the scheduler to ``app`` and load the concrete jobs."""
        from roofline.services import scheduled_jobs  # noqa: F401  registers jobs

        cls._app = app
        app.extensions["scheduler"] = cls
        logger.info("SchedulerService initialized with %d registered jobs", len(_job_registry))

    @classmethod
    def ensure_jobs_registered(cls) -> list[ScheduledJob]:
        """Create a ScheduledJob row for every registered job that lacks one.

        Must run inside an app context.
        """
        created = []
        for name, fn in _job_registry.items():
            if ScheduledJob.query.filter_by(job_name=name).first():
                continue
            job = ScheduledJob(
                job_name=name,
                description=(fn.__doc__ or f"Scheduled job: {name}").strip().splitlines()[0],
                schedule_config=_get_default_schedule(name),
                status="active",
                is_enabled=True,
            )
            db.session.add(job)
            created.append(job)
        if created:
            db.session.commit()
            logger.info("Created %d scheduled job records", len(created))
        return created

    @classmethod
    def run_job(cls, job_name: str, *, force: bool = False) -> dict:
        """Run one registered job and record the outcome on its ScheduledJob row.

        Disabled jobs are skipped unless ``force`` is set. A job that raises
        is reported as ``failed``; the exception never reaches the caller.
        """
        outcome = {"job_name": job_name, "status": "error", "duration_ms": 0,
                   "result": None, "error": None}
        fn = _job_registry.get(job_name)
        if fn is None:
            outcome["error"] = f"Unknown job: {job_name}"
            return outcome
        if cls._app is None:
            outcome["error"] = "Scheduler not initialized"
            return outcome

        with cls._app.app_context():
            record = ScheduledJob.query.filter_by(job_name=job_name).first()
            if record is not None and not record.is_enabled and not force:
                outcome.update(status="skipped", error="Job is disabled")
                return outcome

        started = time.monotonic()
        try:
            with cls._app.app_context():
                try:
                    outcome["result"] = fn(cls._app)
                except Exception:
                    db.session.rollback()
                    raise
            outcome["status"] = "success"
        except Exception as exc:
            outcome.update(status="failed", error=str(exc))
            logger.exception("Job %s failed: %s", job_name, exc, extra={"job_name": job_name})
        outcome["duration_ms"] = int((time.monotonic() - started) * 1000)

        cls._record_outcome(outcome)
        logger.info("Job %s finished: %s", job_name, outcome["status"],
                    extra={"job_name": job_name, "duration_ms": outcome["duration_ms"]})
        return outcome

    @classmethod
    def _record_outcome(cls, outcome: dict) -> None:
        result = outcome["result"]
        with cls._app.app_context():
            record = ScheduledJob.query.filter_by(job_name=outcome["job_name"]).first()
            if record is None:
                return
            record.record_run(
                status=outcome["status"],
                duration_ms=outcome["duration_ms"],
                result=result if isinstance(result, dict) else {"output": str(result)},
                error=outcome["error"],
            )
            db.session.commit()

    @classmethod
    def list_jobs(cls) -> list[dict]:
        """List all registered jobs with their DB status."""
        jobs = []
        for name in sorted(_job_registry):
            record = ScheduledJob.query.filter_by(job_name=name).first()
            jobs.append({
                "job_name": name,
                "registered": True,
                "db_record": record.to_dict() if record else None,
            })
        return jobs

    @classmethod
    def toggle_job(cls, job_name: str, enabled: bool) -> dict | None:
        """Enable or disable a scheduled job."""
        record = ScheduledJob.query.filter_by(job_name=job_name).first()
        if not record:
            return None
        record.is_enabled = enabled
        record.status = "active" if enabled else "paused"
        db.session.commit()
        return record.to_dict()


def _get_default_schedule(job_name: str) -> dict:
    """Return default schedule config for known job types."""
    defaults = {
        "workflow_alert_scan": {"hour": "*", "minute": "0", "description": "Hourly"},
        "step_projection_resync": {"hour": "3", "minute": "0", "description": "Daily at 03:00"},
        "stale_notification_cleanup": {"hour": "2", "minute": "0",
                                       "description": "Daily at 02:00"},
    }
    return defaults.get(job_name, {"hour": "0", "minute": "0",
                                    "description": "Daily at midnight"})
