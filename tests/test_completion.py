"""Completion math and read-time phase progress."""

import pytest

from roofline.services.completion import (
    compute_completion,
    determine_current_phase,
    next_line_items,
    percent_half_up,
    phase_breakdown,
)
from roofline.services.workflow_catalog import (
    CatalogLineItem,
    CatalogPhase,
    CatalogSection,
)


def _phase(pid, phase_type, item_ids):
    items = tuple(
        CatalogLineItem(id=i, item_name=f"Item {i}", responsible_role="OFFICE",
                        alert_days=1, display_order=n)
        for n, i in enumerate(item_ids)
    )
    sections = (CatalogSection(id=pid * 10, section_name="S", display_order=0, line_items=items),) if items else ()
    return CatalogPhase(id=pid, phase_type=phase_type, phase_name=phase_type.title(),
                        display_order=pid, sections=sections)


class TestPercent:
    @pytest.mark.parametrize("total, completed, expected", [
        (10, 4, 40),
        (3, 1, 33),
        (3, 2, 67),
        (8, 1, 13),
        (2, 1, 50),
        (0, 0, 0),
        (56, 56, 100),
    ])
    def test_half_up_rounding(self, total, completed, expected):
        assert compute_completion(total, completed).percent == expected

    def test_more_completed_than_total_is_clamped(self):
        assert compute_completion(4, 5).percent == 100

    def test_negative_and_none_counts_read_as_zero(self):
        summary = compute_completion(None, -3)
        assert summary.total_count == 0
        assert summary.completed_count == 0
        assert summary.percent == 0

    def test_zero_denominator(self):
        assert percent_half_up(5, 0) == 0

    def test_same_inputs_same_summary(self):
        assert compute_completion(7, 3) == compute_completion(7, 3)

    def test_to_dict(self):
        assert compute_completion(10, 4).to_dict() == {
            "completed_count": 4, "total_count": 10, "percent": 40,
        }


class TestPhaseProgress:
    def test_breakdown_counts_per_phase(self):
        catalog = [_phase(1, "LEAD", [1, 2]), _phase(2, "PROSPECT", [3, 4, 5])]
        breakdown = phase_breakdown(catalog, {1, 3})
        assert [(p.phase_type, p.completed, p.total, p.percent) for p in breakdown] == [
            ("LEAD", 1, 2, 50),
            ("PROSPECT", 1, 3, 33),
        ]
        assert breakdown[1].pending_line_item_ids == (4, 5)

    def test_current_phase_is_first_with_pending_items(self):
        catalog = [_phase(1, "LEAD", [1, 2]), _phase(2, "PROSPECT", [3])]
        assert determine_current_phase(phase_breakdown(catalog, {1, 2})) == "PROSPECT"

    def test_empty_phases_are_skipped(self):
        catalog = [_phase(1, "LEAD", []), _phase(2, "PROSPECT", [3])]
        assert determine_current_phase(phase_breakdown(catalog, set())) == "PROSPECT"

    def test_everything_done_reports_completion(self):
        catalog = [_phase(1, "LEAD", [1]), _phase(2, "PROSPECT", [2])]
        assert determine_current_phase(phase_breakdown(catalog, {1, 2})) == "COMPLETION"

    def test_next_line_items_skips_completed_and_limits(self):
        catalog = [_phase(1, "LEAD", [1, 2, 3, 4])]
        items = next_line_items(catalog, {2}, "LEAD", limit=2)
        assert [i.id for i in items] == [1, 3]
