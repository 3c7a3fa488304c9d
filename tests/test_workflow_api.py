"""
Roofline Project Tracker
Tests: workflow, Bubbles and health endpoints.
"""

from roofline.models import db
from roofline.models.workflow import WorkflowLineItem
from roofline.services.line_item_service import rename_line_items_by_name
from roofline.services.workflow_catalog import seed_default_catalog
from tests.conftest import item_id


# ═══════════════════════════════════════════════════════════════════════════
#  Line item catalog
# ═══════════════════════════════════════════════════════════════════════════

class TestLineItems:
    def test_list_in_catalog_order(self, client, small_catalog):
        body = client.get("/api/workflows/line-items").get_json()
        assert body["success"] is True
        assert body["total"] == 5
        assert body["data"][0]["item_name"] == "Verify Name Spelling"
        assert body["data"][0]["phase_type"] == "LEAD"
        assert body["data"][-1]["section_name"] == "Site Inspection"

    def test_inactive_hidden_unless_requested(self, client, small_catalog):
        db.session.get(WorkflowLineItem, item_id("Take Measurements")).is_active = False
        db.session.commit()
        assert client.get("/api/workflows/line-items").get_json()["total"] == 4
        assert client.get("/api/workflows/line-items?include_inactive=true").get_json()["total"] == 5

    def test_bulk_rename(self, client, small_catalog):
        lid = item_id("Take Measurements")
        res = client.put("/api/workflows/line-items/bulk", json={
            "updates": [{"id": lid, "itemName": "  Measure Roof  "}],
        })
        assert res.status_code == 200
        body = res.get_json()
        assert body["updated"] == 1
        assert body["data"][0]["item_name"] == "Measure Roof"
        assert db.session.get(WorkflowLineItem, lid).item_name == "Measure Roof"

    def test_bulk_requires_updates(self, client):
        res = client.put("/api/workflows/line-items/bulk", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_bulk_rejects_blank_name(self, client, small_catalog):
        res = client.put("/api/workflows/line-items/bulk", json={
            "updates": [{"id": item_id("Take Measurements"), "itemName": "   "}],
        })
        assert res.status_code == 422

    def test_bulk_rejects_empty_list(self, client):
        assert client.put("/api/workflows/line-items/bulk", json={"updates": []}).status_code == 422

    def test_bulk_rejects_non_integer_id(self, client, small_catalog):
        lid = item_id("Take Measurements")
        for bad_id in ([lid, 2], "abc", True):
            res = client.put("/api/workflows/line-items/bulk", json={
                "updates": [{"id": bad_id, "itemName": "Measure Roof"}],
            })
            assert res.status_code == 422
            assert res.get_json()["code"] == "ERR_VALIDATION_RULE"
        assert db.session.get(WorkflowLineItem, lid).item_name == "Take Measurements"

    def test_bulk_is_all_or_nothing(self, client, small_catalog):
        lid = item_id("Take Measurements")
        res = client.put("/api/workflows/line-items/bulk", json={
            "updates": [
                {"id": lid, "itemName": "Measure Roof"},
                {"id": 9999, "itemName": "Ghost"},
            ],
        })
        assert res.status_code == 404
        db.session.expire_all()
        assert db.session.get(WorkflowLineItem, lid).item_name == "Take Measurements"

    def test_legacy_rename_by_name(self):
        seed_default_catalog((
            ("LEAD", "Lead", [("Lead Intake", "OFFICE", 1, [
                "Confirm name spelled correctly", "Verify phone number",
            ])]),
        ))
        db.session.commit()
        result = rename_line_items_by_name({
            "Confirm name spelled correctly": "Verify Name Spelling",
            "Verify phone number": "Validate & Confirm Phone",
            "Take measurements": "Take Measurements",
        })
        assert sorted(i["item_name"] for i in result["updated"]) == [
            "Validate & Confirm Phone", "Verify Name Spelling",
        ]
        assert result["missing"] == ["Take measurements"]

        again = rename_line_items_by_name({"Confirm name spelled correctly": "Verify Name Spelling"})
        assert again["updated"] == []
        assert again["unchanged"] == 1


# ═══════════════════════════════════════════════════════════════════════════
#  Project workflow
# ═══════════════════════════════════════════════════════════════════════════

class TestProjectWorkflow:
    def test_initialize(self, client, small_catalog, project):
        res = client.post(f"/api/projects/{project.id}/workflow/initialize")
        assert res.status_code == 201
        tracker = res.get_json()["tracker"]
        assert tracker["current_line_item"] == "Verify Name Spelling"
        assert tracker["total_line_items"] == 5

    def test_initialize_twice(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        res = client.post(f"/api/projects/{project.id}/workflow/initialize")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_initialize_unknown_project(self, client, small_catalog):
        assert client.post("/api/projects/9999/workflow/initialize").status_code == 404

    def test_initialize_without_catalog(self, client, project):
        assert client.post(f"/api/projects/{project.id}/workflow/initialize").status_code == 422

    def test_status_without_tracker(self, client, project):
        res = client.get(f"/api/projects/{project.id}/workflow")
        assert res.status_code == 200
        body = res.get_json()
        assert body["tracker"] is None
        assert body["label"] == "NO TRACKER"

    def test_complete_and_status(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        lid = item_id("Verify Name Spelling")
        res = client.post(
            f"/api/projects/{project.id}/workflow/line-items/{lid}/complete",
            json={"notes": "checked with customer"},
        )
        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert body["summary"]["percent"] == 20
        assert body["completion"]["notes"] == "checked with customer"

        status = client.get(f"/api/projects/{project.id}/workflow").get_json()
        assert status["summary"]["completed_count"] == 1
        assert status["tracker"]["current_line_item"] == "Validate Property Address"

    def test_complete_twice(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        url = f"/api/projects/{project.id}/workflow/line-items/{item_id('Verify Name Spelling')}/complete"
        assert client.post(url).status_code == 200
        assert client.post(url).status_code == 409

    def test_complete_rejects_non_string_notes(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        url = f"/api/projects/{project.id}/workflow/line-items/{item_id('Verify Name Spelling')}/complete"
        assert client.post(url, json={"notes": 42}).status_code == 400

    def test_complete_with_unknown_completer(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        url = f"/api/projects/{project.id}/workflow/line-items/{item_id('Verify Name Spelling')}/complete"
        res = client.post(url, json={"completedById": 9999})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_RULE"
        assert client.post(url, json={"completedById": "me"}).status_code == 400
        assert client.post(url).status_code == 200

    def test_complete_without_tracker(self, client, small_catalog, project):
        url = f"/api/projects/{project.id}/workflow/line-items/{item_id('Verify Name Spelling')}/complete"
        assert client.post(url).status_code == 404

    def test_resync(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        res = client.post(f"/api/projects/{project.id}/workflow/resync")
        assert res.get_json() == {"success": True, "steps_changed": 0}
        assert client.post("/api/projects/9999/workflow/resync").status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
#  Bubbles
# ═══════════════════════════════════════════════════════════════════════════

class TestBubbles:
    def test_message_required(self, client):
        res = client.post("/api/bubbles/chat", json={})
        assert res.status_code == 400

    def test_blank_message(self, client):
        assert client.post("/api/bubbles/chat", json={"message": "   "}).status_code == 422

    def test_oversized_message(self, client):
        assert client.post("/api/bubbles/chat", json={"message": "x" * 2001}).status_code == 422

    def test_bad_project_id(self, client):
        res = client.post("/api/bubbles/chat", json={"message": "status?", "projectId": "abc"})
        assert res.status_code == 400

    def test_unknown_project(self, client):
        res = client.post("/api/bubbles/chat", json={"message": "status?", "projectId": 9999})
        assert res.status_code == 404

    def test_project_without_tracker(self, client, project):
        res = client.post("/api/bubbles/chat", json={"message": "status?", "projectId": project.id})
        assert res.status_code == 200
        reply = res.get_json()["response"]
        assert "NO TRACKER" in reply["content"]
        assert reply["project_id"] == project.id

    def test_project_progress(self, client, small_catalog, project):
        client.post(f"/api/projects/{project.id}/workflow/initialize")
        client.post(f"/api/projects/{project.id}/workflow/line-items/{item_id('Verify Name Spelling')}/complete")
        reply = client.post(
            "/api/bubbles/chat", json={"message": "how far along?", "projectId": str(project.id)},
        ).get_json()["response"]
        assert "20% complete" in reply["content"]
        assert "Validate Property Address" in reply["content"]

    def test_portfolio(self, client, project):
        reply = client.post("/api/bubbles/chat", json={"message": "overview"}).get_json()["response"]
        assert reply["project_id"] is None
        assert "1 active project(s)." in reply["content"]
        assert "1 project(s) have no workflow tracker." in reply["content"]


# ═══════════════════════════════════════════════════════════════════════════
#  Health + app plumbing
# ═══════════════════════════════════════════════════════════════════════════

class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live(self, client):
        body = client.get("/api/health/live").get_json()
        assert body["status"] == "ok"
        assert body["checks"]["database"]["status"] == "ok"

    def test_request_id_header(self, client):
        res = client.get("/api/workflows/line-items", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_unknown_route_is_json(self, client):
        res = client.get("/api/nope")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/nope"
