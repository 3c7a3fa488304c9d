"""
Roofline Project Tracker
Line item catalog maintenance.

Renames catalog line items, either by id (the bulk API) or by current name
(the legacy rename script). Both paths are all-or-nothing.
"""

from __future__ import annotations

import logging

from roofline.core.exceptions import NotFoundError, ValidationError
from roofline.models import db
from roofline.models.workflow import WorkflowLineItem, WorkflowPhase, WorkflowSection

logger = logging.getLogger(__name__)

# Sentence-case names from the first catalog import -> current display names
LEGACY_LINE_ITEM_RENAMES = {
    "Confirm name spelled correctly": "Verify Name Spelling",
    "Verify phone number": "Validate & Confirm Phone",
    "Confirm email address": "Validate & Confirm Email",
    "Verify property address": "Validate Property Address",
    "Insurance claim status": "Insurance Claim Status",
    "Property accessibility": "Property Accessibility",
    "Preferred timeline": "Preferred Timeline",
    "Schedule inspection": "Schedule Inspection",
    "Conduct site visit": "Conduct Site Visit",
    "Document material colors": "Document Material Colors",
    "Take measurements": "Take Measurements",
    "Photo documentation": "Photo Documentation",
    "Calculate material costs": "Calculate Material Costs",
    "Calculate labor costs": "Calculate Labor Costs",
    "Apply markup": "Apply Markup",
    "Generate estimate document": "Generate Estimate Document",
    "Send estimate to customer": "Send Estimate to Customer",
    "Follow up on estimate": "Follow Up on Estimate",
    "Address customer questions": "Address Customer Questions",
    "Prepare contract": "Prepare Contract",
    "Get contract signed": "Get Contract Signed",
    "Apply for permits": "Apply for Permits",
    "Receive permits": "Receive Permits",
    "Create material list": "Create Material List",
    "Place material order": "Place Material Order",
    "Schedule delivery": "Schedule Delivery",
    "Assign crew": "Assign Crew",
    "Set start date": "Set Start Date",
    "Notify customer of schedule": "Notify Customer of Schedule",
    "Confirm material delivery": "Confirm Material Delivery",
    "Stage equipment": "Stage Equipment",
    "Safety briefing": "Safety Briefing",
    "Remove old roofing": "Remove Old Roofing",
    "Install underlayment": "Install Underlayment",
    "Install new roofing": "Install New Roofing",
    "Install flashing": "Install Flashing",
    "Clean up job site": "Clean Up Job Site",
    "Inspect completed work": "Inspect Completed Work",
    "Address punch list items": "Address Punch List Items",
    "Final quality check": "Final Quality Check",
    "Schedule final inspection": "Schedule Final Inspection",
    "Pass inspection": "Pass Inspection",
    "Document completion": "Document Completion",
    "Generate final invoice": "Generate Final Invoice",
    "Send invoice to customer": "Send Invoice to Customer",
    "Process payment": "Process Payment",
    "Issue warranty certificate": "Issue Warranty Certificate",
    "File project documentation": "File Project Documentation",
    "Update customer database": "Update Customer Database",
    "Send satisfaction survey": "Send Satisfaction Survey",
    "Request online review": "Request Online Review",
    "Close project file": "Close Project File",
}

MAX_ITEM_NAME_LENGTH = 200


def list_line_items(include_inactive=False) -> list[dict]:
    """Catalog line items in progression order, with their phase and section."""
    q = (
        db.session.query(WorkflowLineItem, WorkflowSection, WorkflowPhase)
        .join(WorkflowSection, WorkflowLineItem.section_id == WorkflowSection.id)
        .join(WorkflowPhase, WorkflowSection.phase_id == WorkflowPhase.id)
    )
    if not include_inactive:
        q = q.filter(
            WorkflowLineItem.is_active.is_(True),
            WorkflowSection.is_active.is_(True),
            WorkflowPhase.is_active.is_(True),
        )
    rows = q.order_by(
        WorkflowPhase.display_order, WorkflowPhase.id,
        WorkflowSection.display_order, WorkflowSection.id,
        WorkflowLineItem.display_order, WorkflowLineItem.id,
    ).all()
    result = []
    for item, section, phase in rows:
        data = item.to_dict()
        data["section_name"] = section.display_name or section.section_name
        data["phase_type"] = phase.phase_type
        result.append(data)
    return result


def _clean_name(raw, item_id):
    name = (raw or "").strip() if isinstance(raw, str) else ""
    if not name:
        raise ValidationError("itemName is required", details={"id": item_id})
    if len(name) > MAX_ITEM_NAME_LENGTH:
        raise ValidationError(
            f"itemName must be at most {MAX_ITEM_NAME_LENGTH} characters", details={"id": item_id},
        )
    return name


def bulk_update_line_items(updates) -> list[WorkflowLineItem]:
    """Rename line items from ``[{"id": ..., "itemName": ...}, ...]``.

    Every update is validated before anything is written.

    Raises:
        ValidationError: malformed payload or blank name.
        NotFoundError: an id that is not a catalog line item.
    """
    if not isinstance(updates, list) or not updates:
        raise ValidationError("updates must be a non-empty list")

    planned = []
    for entry in updates:
        if not isinstance(entry, dict) or "id" not in entry:
            raise ValidationError("each update needs an id and itemName")
        item_id = entry["id"]
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValidationError("id must be an integer", details={"id": item_id})
        name = _clean_name(entry.get("itemName"), item_id)
        item = db.session.get(WorkflowLineItem, item_id)
        if item is None:
            raise NotFoundError("WorkflowLineItem", item_id)
        planned.append((item, name))

    for item, name in planned:
        item.item_name = name
    db.session.commit()
    logger.info("Renamed %d workflow line items", len(planned))
    return [item for item, _ in planned]


def rename_line_items_by_name(mapping=None) -> dict:
    """Apply a ``{current_name: new_name}`` mapping to the catalog.

    Names that are not found are reported, not treated as errors.

    Returns:
        ``{"updated": [...], "missing": [...], "unchanged": int}``
    """
    mapping = LEGACY_LINE_ITEM_RENAMES if mapping is None else mapping
    by_name = {}
    for item in WorkflowLineItem.query.order_by(WorkflowLineItem.id):
        by_name.setdefault(item.item_name, []).append(item)

    updates = []
    missing = []
    unchanged = 0
    for current, new in mapping.items():
        items = by_name.get(current)
        if not items:
            if new in by_name:
                unchanged += 1
            else:
                missing.append(current)
            continue
        for item in items:
            updates.append({"id": item.id, "itemName": new})

    renamed = bulk_update_line_items(updates) if updates else []
    return {
        "updated": [{"id": item.id, "item_name": item.item_name} for item in renamed],
        "missing": missing,
        "unchanged": unchanged,
    }
