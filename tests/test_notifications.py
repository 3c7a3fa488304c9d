"""
Roofline Project Tracker
Tests: notification payloads, NotificationService and the notification API.
"""

from datetime import datetime, timedelta, timezone

import pytest

from roofline.core.exceptions import ValidationError
from roofline.models import db
from roofline.models.notification import (
    PHASE_COMPLETED,
    SYSTEM,
    WORKFLOW_ALERT,
    Notification,
    PhaseCompletedPayload,
    SystemPayload,
    WorkflowAlertPayload,
    parse_payload,
)
from roofline.services.notification import NotificationService
from roofline.services.tracker_service import TrackerService


def _alert(project, *, recipient_id=None, line_item_id=1):
    return NotificationService.create(
        notification_type=WORKFLOW_ALERT,
        title="WARNING: Apply Markup",
        message="Apply Markup is due in 2 days.",
        payload=WorkflowAlertPayload(
            project_id=project.id, project_name=project.project_name,
            line_item_id=line_item_id, alert_type="warning",
        ),
        recipient_id=recipient_id,
        project_id=project.id,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Payloads
# ═══════════════════════════════════════════════════════════════════════════

class TestPayloads:
    def test_parse_fills_defaults(self):
        payload = parse_payload(WORKFLOW_ALERT, {"project_id": 3, "project_name": "Lee Roof"})
        assert payload == WorkflowAlertPayload(project_id=3, project_name="Lee Roof")
        assert payload.alert_type == "warning"

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown notification type"):
            parse_payload("CARRIER_PIGEON", {})

    def test_non_object(self):
        with pytest.raises(ValueError, match="must be an object"):
            parse_payload(PHASE_COMPLETED, ["LEAD"])

    def test_missing_required_field(self):
        with pytest.raises(ValueError, match="phase"):
            parse_payload(PHASE_COMPLETED, {"project_id": 1, "project_name": "Lee Roof"})

    def test_system_payload_accepts_nothing(self):
        assert parse_payload(SYSTEM, None) == SystemPayload()

    def test_set_payload_sets_type(self):
        notif = Notification(title="x")
        notif.set_payload(PhaseCompletedPayload(project_id=1, project_name="Lee Roof", phase="LEAD"))
        assert notif.type == PHASE_COMPLETED
        assert notif.action_data["phase"] == "LEAD"
        assert notif.payload.next_phase is None

    def test_set_payload_rejects_unregistered(self):
        with pytest.raises(ValueError):
            Notification(title="x").set_payload({"project_id": 1})


# ═══════════════════════════════════════════════════════════════════════════
#  Service
# ═══════════════════════════════════════════════════════════════════════════

class TestNotificationService:
    def test_create_rejects_mismatched_payload(self, project):
        with pytest.raises(ValidationError):
            NotificationService.create(
                notification_type=WORKFLOW_ALERT, title="x", payload=SystemPayload(),
            )

    def test_create_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            NotificationService.create(notification_type="EMAIL", title="x", payload=SystemPayload())

    def test_recipient_sees_own_and_broadcast(self, project, manager, project_manager):
        _alert(project, recipient_id=manager.id)
        _alert(project, recipient_id=project_manager.id)
        _alert(project)
        items, total = NotificationService.list_for_recipient(recipient_id=manager.id)
        assert total == 2
        assert {n.recipient_id for n in items} == {manager.id, None}
        assert NotificationService.unread_count(manager.id) == 2

    def test_mark_all_read(self, project, manager):
        _alert(project, recipient_id=manager.id)
        _alert(project)
        assert NotificationService.mark_all_read(manager.id) == 2
        assert NotificationService.unread_count(manager.id) == 0

    def test_resolve_leaves_other_items(self, project):
        _alert(project, line_item_id=1)
        _alert(project, line_item_id=2)
        assert NotificationService.resolve_workflow_alerts(project.id, 1) == 1
        db.session.commit()
        active = NotificationService.list_workflow_alerts(project.id, active_only=True)
        assert [a.payload.line_item_id for a in active] == [2]


# ═══════════════════════════════════════════════════════════════════════════
#  API
# ═══════════════════════════════════════════════════════════════════════════

class TestNotificationAPI:
    def test_list(self, client, project, manager):
        _alert(project, recipient_id=manager.id)
        res = client.get(f"/api/notifications?recipient_id={manager.id}")
        assert res.status_code == 200
        body = res.get_json()
        assert body["total"] == 1
        assert body["unread_count"] == 1
        assert body["items"][0]["type"] == WORKFLOW_ALERT

    def test_list_rejects_bad_filters(self, client):
        assert client.get("/api/notifications?type=EMAIL").status_code == 400
        assert client.get("/api/notifications?project_id=abc").status_code == 400

    def test_pagination_is_clamped(self, client, project):
        for _ in range(3):
            _alert(project)
        body = client.get("/api/notifications?limit=0&offset=-5").get_json()
        assert body["total"] == 3
        assert len(body["items"]) == 1

    def test_mark_read(self, client, project):
        notif = _alert(project)
        res = client.put(f"/api/notifications/{notif.id}/read")
        assert res.status_code == 200
        assert res.get_json()["is_read"] is True

    def test_mark_read_missing(self, client):
        res = client.put("/api/notifications/999/read")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_read_all(self, client, project):
        _alert(project)
        _alert(project)
        res = client.put("/api/notifications/read-all", json={"project_id": project.id})
        assert res.get_json() == {"marked_read": 2}

    def test_alerts_default_to_active(self, client, project):
        _alert(project)
        read = _alert(project)
        NotificationService.mark_read(read.id)
        assert client.get("/api/notifications/alerts").get_json()["total"] == 1
        assert client.get("/api/notifications/alerts?active_only=false").get_json()["total"] == 2

    def test_scan_and_verify(self, client, project, small_catalog):
        tracker = TrackerService.initialize_tracker(project.id)
        tracker.line_item_started_at = datetime.now(timezone.utc) - timedelta(days=5)
        db.session.commit()

        res = client.post("/api/notifications/alerts/scan")
        assert res.status_code == 200
        assert res.get_json()["alerts_created"] == 1

        report = client.get(f"/api/notifications/alerts/verify?project_id={project.id}").get_json()
        assert report["valid"] == 1
        assert report["invalid"] == []
