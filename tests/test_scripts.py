"""
Roofline Project Tracker
Tests: maintenance scripts.

Scripts are imported as modules and driven through ``main(app=...)`` so they
reuse the test app. They open their own session, so fixtures commit first.
"""

import importlib
import logging
from unittest.mock import patch

import pytest
import sqlalchemy as sa

from roofline.models import db
from roofline.models.workflow import WorkflowLineItem
from roofline.services.scheduler_service import SchedulerService
from roofline.services.schema_service import deploy_schema, is_baseline_conflict
from roofline.services.tracker_service import TrackerService
from roofline.services.workflow_catalog import seed_default_catalog
from tests.conftest import item_id


def _script(name):
    return importlib.import_module(f"scripts.{name}")


def _table_names(db_file):
    engine = sa.create_engine(f"sqlite:///{db_file}")
    try:
        return set(sa.inspect(engine).get_table_names())
    finally:
        engine.dispose()


@pytest.fixture()
def fresh_database(tmp_path, monkeypatch):
    """Point DATABASE_URL at an empty sqlite file for a script-built app."""
    db_file = tmp_path / "fresh.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.delenv("APP_ENV", raising=False)
    # Building an app rebinds the scheduler and the root log handlers
    monkeypatch.setattr(SchedulerService, "_app", SchedulerService._app)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield db_file
    root.handlers[:] = handlers
    root.setLevel(level)


# ═══════════════════════════════════════════════════════════════════════════
#  Session scope
# ═══════════════════════════════════════════════════════════════════════════

class TestScriptSession:
    def test_missing_database_url_exits_nonzero(self, monkeypatch, capsys):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert _script("check_trackers").main() == 1
        assert "ERROR: DATABASE_URL" in capsys.readouterr().err

    def test_report_script_leaves_fresh_database_empty(self, fresh_database, capsys):
        assert _script("check_trackers").main() == 1
        assert "ERROR: check_trackers failed" in capsys.readouterr().err
        assert _table_names(fresh_database) == set()

    def test_failure_after_output_exits_nonzero(self, app, project, capsys):
        mod = _script("check_trackers")

        def broken_rows():
            yield from ()
            raise RuntimeError("connection lost")

        with patch.object(mod, "iter_tracker_rows", broken_rows):
            assert mod.main(app=app) == 1
        captured = capsys.readouterr()
        assert "=== WORKFLOW TRACKERS ===" in captured.out
        assert "ERROR: check_trackers failed: connection lost" in captured.err


# ═══════════════════════════════════════════════════════════════════════════
#  Reports
# ═══════════════════════════════════════════════════════════════════════════

class TestCheckTrackers:
    def test_project_without_tracker(self, app, project, capsys):
        assert _script("check_trackers").main(app=app) == 0
        out = capsys.readouterr().out
        assert "P-1001 Smith Residence: NO TRACKER" in out
        assert "with tracker: 0  without: 1" in out

    def test_project_with_progress(self, app, small_catalog, project, capsys):
        TrackerService.initialize_tracker(project.id)
        TrackerService.complete_line_item(project.id, item_id("Verify Name Spelling"))

        assert _script("check_trackers").main(app=app) == 0
        out = capsys.readouterr().out
        assert "P-1001 Smith Residence: 20% (1/5) phase=LEAD" in out

    def test_archived_project_is_labelled(self, app, project, capsys):
        project.archive()
        db.session.commit()
        _script("check_trackers").main(app=app)
        assert "[archived]: NO TRACKER" in capsys.readouterr().out


class TestVerifyAlerts:
    def test_no_alerts(self, app, capsys):
        assert _script("verify_alerts").main(app=app) == 0
        assert "No workflow alerts found" in capsys.readouterr().out


class TestCheckStepIds:
    def test_clean_workflow(self, app, small_catalog, project, capsys):
        TrackerService.initialize_tracker(project.id)
        assert _script("check_step_ids").main(app=app) == 0
        out = capsys.readouterr().out
        assert "Steps checked: 5" in out
        assert "All step ids match the catalog" in out

    def test_renamed_item_is_flagged(self, app, small_catalog, project, capsys):
        TrackerService.initialize_tracker(project.id)
        db.session.get(WorkflowLineItem, item_id("Take Measurements")).item_name = "Measure Roof"
        db.session.commit()

        _script("check_step_ids").main(app=app)
        out = capsys.readouterr().out
        assert "MISMATCH" in out
        assert "PROSPECT-take-measurements -> PROSPECT-measure-roof" in out


# ═══════════════════════════════════════════════════════════════════════════
#  Catalog maintenance
# ═══════════════════════════════════════════════════════════════════════════

class TestCatalogScripts:
    def test_seed_is_idempotent(self, app, capsys):
        mod = _script("seed_workflow")
        assert mod.main(app=app) == 0
        first = capsys.readouterr().out
        assert mod.main(app=app) == 0
        assert "Seeded 0 workflow line items" in capsys.readouterr().out
        assert "Seeded 0" not in first

    def test_rename_line_items(self, app, capsys):
        seed_default_catalog((
            ("LEAD", "Lead", [("Lead Intake", "OFFICE", 1, ["Confirm name spelled correctly"])]),
        ))
        db.session.commit()

        assert _script("rename_line_items").main(app=app) == 0
        out = capsys.readouterr().out
        assert "Verify Name Spelling" in out
        db.session.expire_all()
        assert WorkflowLineItem.query.one().item_name == "Verify Name Spelling"


# ═══════════════════════════════════════════════════════════════════════════
#  Schema deploy
# ═══════════════════════════════════════════════════════════════════════════

class TestDeploySchema:
    @pytest.mark.parametrize("message, expected", [
        ('(sqlite3.OperationalError) table users already exists', True),
        ('(psycopg2.errors.DuplicateTable) relation "projects" already exists', True),
        ("duplicate table: notifications", True),
        ("could not connect to server", False),
    ])
    def test_baseline_conflict_detection(self, message, expected):
        assert is_baseline_conflict(Exception(message)) is expected

    def test_clean_upgrade(self):
        with patch("roofline.services.schema_service.upgrade") as upgrade, \
                patch("roofline.services.schema_service.stamp") as stamp:
            assert deploy_schema()["status"] == "upgraded"
        upgrade.assert_called_once()
        stamp.assert_not_called()

    def test_fresh_database_runs_migrations(self, fresh_database, capsys):
        assert _script("deploy_schema").main() == 0
        assert "Schema upgraded to head" in capsys.readouterr().out
        tables = _table_names(fresh_database)
        assert {"alembic_version", "projects", "project_workflow_trackers",
                "completed_workflow_items", "notifications"} <= tables

    def test_existing_tables_are_stamped(self, app, capsys):
        with patch("roofline.services.schema_service.upgrade",
                   side_effect=Exception("table users already exists")), \
                patch("roofline.services.schema_service.stamp") as stamp:
            assert _script("deploy_schema").main(app=app) == 0
        stamp.assert_called_once()
        assert stamp.call_args.kwargs["revision"] == "head"
        assert "baseline stamped at head" in capsys.readouterr().out

    def test_other_errors_fail_the_deploy(self, app, capsys):
        with patch("roofline.services.schema_service.upgrade",
                   side_effect=Exception("could not connect to server")), \
                patch("roofline.services.schema_service.stamp") as stamp:
            assert _script("deploy_schema").main(app=app) == 1
        stamp.assert_not_called()
        assert "ERROR: deploy_schema failed" in capsys.readouterr().err
