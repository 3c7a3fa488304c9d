"""Workflow catalog: seeding, snapshot ordering and next-position logic."""

import pytest

from roofline.core.exceptions import NotFoundError
from roofline.models import db
from roofline.models.workflow import PHASE_ORDER, WorkflowLineItem, WorkflowPhase
from roofline.services.workflow_catalog import (
    DEFAULT_ROOFING_CATALOG,
    count_line_items,
    find_next_position,
    first_position,
    is_reachable_phase,
    load_catalog,
    make_step_id,
    seed_default_catalog,
)
from tests.conftest import item_id


def _default_item_count():
    return sum(len(items) for _, _, sections in DEFAULT_ROOFING_CATALOG for *_, items in sections)


class TestSeed:
    def test_seed_creates_every_line_item(self):
        created = seed_default_catalog()
        db.session.commit()
        assert created == _default_item_count()
        assert WorkflowLineItem.query.count() == created

    def test_seed_is_idempotent(self, full_catalog):
        assert seed_default_catalog() == 0
        assert WorkflowPhase.query.count() == len(PHASE_ORDER)

    def test_phases_follow_progression_order(self, full_catalog):
        assert [p.phase_type for p in full_catalog] == list(PHASE_ORDER)


class TestSnapshot:
    def test_items_ordered_within_sections(self, small_catalog):
        lead = small_catalog[0]
        assert [s.section_name for s in lead.sections] == ["Lead Intake", "Lead Qualification"]
        assert [i.item_name for i in lead.sections[0].line_items] == [
            "Verify Name Spelling", "Validate Property Address",
        ]

    def test_inactive_items_are_left_out(self, small_catalog):
        item = db.session.get(WorkflowLineItem, item_id("Preferred Timeline"))
        item.is_active = False
        db.session.commit()

        catalog = load_catalog()
        assert count_line_items(catalog) == 4
        # the section only held that item, so it disappears too
        assert [s.section_name for s in catalog[0].sections] == ["Lead Intake"]

    def test_inactive_phase_is_left_out(self, small_catalog):
        WorkflowPhase.query.filter_by(phase_type="LEAD").one().is_active = False
        db.session.commit()
        catalog = load_catalog()
        assert [p.phase_type for p in catalog] == ["PROSPECT"]
        assert first_position(catalog).line_item.item_name == "Schedule Inspection"

    def test_empty_catalog_has_no_first_position(self):
        assert first_position(load_catalog()) is None

    def test_reachable_phase(self, small_catalog):
        assert is_reachable_phase(small_catalog, small_catalog[0].id)
        assert not is_reachable_phase(small_catalog, 9999)


class TestNextPosition:
    def test_next_item_in_same_section(self, small_catalog):
        nxt = find_next_position(small_catalog, item_id("Verify Name Spelling"))
        assert nxt.position.line_item.item_name == "Validate Property Address"
        assert not nxt.completed_section
        assert not nxt.completed_phase
        assert not nxt.is_complete

    def test_moves_to_next_section(self, small_catalog):
        nxt = find_next_position(small_catalog, item_id("Validate Property Address"))
        assert nxt.position.line_item.item_name == "Preferred Timeline"
        assert nxt.completed_section
        assert not nxt.completed_phase

    def test_moves_to_next_phase(self, small_catalog):
        nxt = find_next_position(small_catalog, item_id("Preferred Timeline"))
        assert nxt.position.phase.phase_type == "PROSPECT"
        assert nxt.position.line_item.item_name == "Schedule Inspection"
        assert nxt.completed_section
        assert nxt.completed_phase

    def test_last_item_completes_workflow(self, small_catalog):
        nxt = find_next_position(small_catalog, item_id("Take Measurements"))
        assert nxt.position is None
        assert nxt.is_complete

    def test_skips_items_completed_out_of_order(self, small_catalog):
        nxt = find_next_position(
            small_catalog,
            item_id("Validate Property Address"),
            skip_ids={item_id("Preferred Timeline")},
        )
        assert nxt.position.line_item.item_name == "Schedule Inspection"
        assert nxt.completed_phase

    def test_unknown_item_raises(self, small_catalog):
        with pytest.raises(NotFoundError):
            find_next_position(small_catalog, 9999)


class TestStepId:
    def test_slug(self):
        assert make_step_id("LEAD", "Validate & Confirm Phone") == "LEAD-validate-confirm-phone"

    def test_missing_phase_falls_back(self):
        assert make_step_id("", "Follow-Up Calls") == "GENERAL-follow-up-calls"
