"""
Shared pytest fixtures for the Roofline test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - small_catalog: five-item, two-phase catalog
    - project / manager / project_manager: pre-created entities

Scripts and scheduled jobs open their own app context and therefore their
own session; tests commit before calling them.
"""

import pytest

from roofline import create_app
from roofline.models import db as _db
from roofline.models.auth import User
from roofline.models.project import Project
from roofline.models.workflow import WorkflowLineItem
from roofline.services.workflow_catalog import load_catalog, seed_default_catalog


SMALL_CATALOG = (
    ("LEAD", "Lead", [
        ("Lead Intake", "OFFICE", 1, ["Verify Name Spelling", "Validate Property Address"]),
        ("Lead Qualification", "OFFICE", 2, ["Preferred Timeline"]),
    ]),
    ("PROSPECT", "Prospect", [
        ("Site Inspection", "PROJECT_MANAGER", 2, ["Schedule Inspection", "Take Measurements"]),
    ]),
)


def item_id(name):
    """Catalog line item id by name."""
    return WorkflowLineItem.query.filter_by(item_name=name).one().id


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def small_catalog():
    """Seed the five-item catalog and return its snapshot."""
    seed_default_catalog(SMALL_CATALOG)
    _db.session.commit()
    return load_catalog()


@pytest.fixture()
def full_catalog():
    """Seed the default roofing catalog and return its snapshot."""
    seed_default_catalog()
    _db.session.commit()
    return load_catalog()


@pytest.fixture()
def project():
    proj = Project(project_number="P-1001", project_name="Smith Residence", status="ACTIVE")
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def manager():
    user = User(email="manager@example.com", first_name="Dana", last_name="Reyes", role="MANAGER")
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture()
def project_manager(project):
    user = User(email="pm@example.com", first_name="Sam", last_name="Ortiz", role="PROJECT_MANAGER")
    _db.session.add(user)
    _db.session.flush()
    project.project_manager_id = user.id
    _db.session.commit()
    return user
