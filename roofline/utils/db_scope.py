"""Database session scope for maintenance scripts.

Each script acquires an app context and session at start and releases both
on every exit path: rollback on error, then ``session.remove()`` and, when
the scope created the app, engine disposal.

Usage:
    from roofline.utils.db_scope import run_script

    def report(app):
        ...

    if __name__ == "__main__":
        sys.exit(run_script(report, name="check_trackers"))
"""

import logging
import os
import sys
from contextlib import contextmanager

from roofline.config import normalize_database_url
from roofline.core.exceptions import ConfigurationError
from roofline.models import db

logger = logging.getLogger(__name__)

ERROR_PREFIX = "ERROR:"


def require_database_url():
    """Return DATABASE_URL or raise ConfigurationError."""
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        raise ConfigurationError("DATABASE_URL environment variable is not set")
    return url


def script_app_overrides(database_url):
    """Config for apps built by maintenance scripts.

    Scripts work against ``database_url`` and leave table creation to the
    migrations.
    """
    return {
        "SQLALCHEMY_DATABASE_URI": normalize_database_url(database_url),
        "AUTO_CREATE_TABLES": False,
        "RATELIMIT_ENABLED": False,
    }


@contextmanager
def script_session(app=None):
    """Yield an app with an active context and session.

    Without ``app`` a new one is created from ``APP_ENV`` (default
    development) against DATABASE_URL, and its engine is disposed on exit.
    """
    owns_app = app is None
    if owns_app:
        url = require_database_url()
        from roofline import create_app
        app = create_app(os.getenv("APP_ENV", "development"), config_overrides=script_app_overrides(url))

    with app.app_context():
        try:
            yield app
        except Exception:
            db.session.rollback()
            raise
        finally:
            db.session.remove()
            if owns_app:
                db.engine.dispose()


def run_script(body, *, name, app=None) -> int:
    """Run ``body(app)`` inside a script session and map the outcome to an exit code.

    Whatever ``body`` printed before failing stays printed.

    Returns:
        0 on success, 1 on any failure.
    """
    try:
        with script_session(app) as active_app:
            body(active_app)
    except ConfigurationError as exc:
        logger.error("%s: configuration error: %s", name, exc)
        print(f"{ERROR_PREFIX} {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("%s failed", name)
        print(f"{ERROR_PREFIX} {name} failed: {exc}", file=sys.stderr)
        return 1
    return 0
