"""
Roofline Project Tracker
Schema deploy.

Runs Alembic migrations through Flask-Migrate. A database that already holds
the tables but has no ``alembic_version`` row fails ``upgrade`` with an
"already exists" error; that baseline conflict is resolved by stamping the
head revision and counts as a successful deploy.
"""

from __future__ import annotations

import logging

from flask_migrate import stamp, upgrade

from roofline import MIGRATIONS_DIR
from roofline.core.exceptions import SchemaBaselineConflict

logger = logging.getLogger(__name__)

_BASELINE_MARKERS = ("already exists", "duplicate table", "duplicatetable")


def is_baseline_conflict(exc: Exception) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _BASELINE_MARKERS)


def _upgrade(directory):
    try:
        upgrade(directory=directory)
    except Exception as exc:
        if is_baseline_conflict(exc):
            raise SchemaBaselineConflict(str(exc)) from exc
        raise


def deploy_schema(directory=None) -> dict:
    """Apply pending migrations. Must run inside an app context.

    Returns:
        ``{"status": "upgraded" | "baselined", "detail": str}``

    Raises:
        Any migration error other than the baseline conflict.
    """
    directory = directory or MIGRATIONS_DIR
    try:
        _upgrade(directory)
    except SchemaBaselineConflict as exc:
        logger.warning("Schema not empty, stamping head as baseline: %s", exc)
        stamp(directory=directory, revision="head")
        return {"status": "baselined", "detail": str(exc)}
    logger.info("Schema upgraded to head")
    return {"status": "upgraded", "detail": ""}
