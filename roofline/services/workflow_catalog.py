"""
Roofline Project Tracker
Workflow catalog service.

The catalog is the static definition every tracker walks through:
phase -> section -> line item, each level ordered by display_order and
filtered by is_active. ``load_catalog`` snapshots it into plain tuples so
the ordering logic (next position, phase breakdown) stays pure.

Usage:
    from roofline.services.workflow_catalog import load_catalog, find_next_position
    catalog = load_catalog()
    nxt = find_next_position(catalog, line_item_id)
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple

from roofline.core.exceptions import NotFoundError
from roofline.models import db
from roofline.models.workflow import (
    PHASE_ORDER,
    WorkflowLineItem,
    WorkflowPhase,
    WorkflowSection,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Snapshot types
# ═════════════════════════════════════════════════════════════════════════════

class CatalogLineItem(NamedTuple):
    id: int
    item_name: str
    responsible_role: str
    alert_days: int
    display_order: int


class CatalogSection(NamedTuple):
    id: int
    section_name: str
    display_order: int
    line_items: tuple


class CatalogPhase(NamedTuple):
    id: int
    phase_type: str
    phase_name: str
    display_order: int
    sections: tuple


class CatalogPosition(NamedTuple):
    phase: CatalogPhase
    section: CatalogSection
    line_item: CatalogLineItem


class NextPosition(NamedTuple):
    """Where a tracker moves after its current line item is completed."""

    position: CatalogPosition | None
    completed_section: bool
    completed_phase: bool
    is_complete: bool


# ═════════════════════════════════════════════════════════════════════════════
# Default roofing catalog
# ═════════════════════════════════════════════════════════════════════════════

# (phase_type, phase_name, [(section_name, responsible_role, alert_days, [item names])])
DEFAULT_ROOFING_CATALOG = (
    ("LEAD", "Lead", [
        ("Lead Intake", "OFFICE", 1, [
            "Verify Name Spelling", "Validate & Confirm Phone",
            "Validate & Confirm Email", "Validate Property Address",
        ]),
        ("Lead Qualification", "OFFICE", 2, [
            "Insurance Claim Status", "Property Accessibility", "Preferred Timeline",
        ]),
    ]),
    ("PROSPECT", "Prospect", [
        ("Site Inspection", "PROJECT_MANAGER", 2, [
            "Schedule Inspection", "Conduct Site Visit", "Document Material Colors",
            "Take Measurements", "Photo Documentation",
        ]),
        ("Estimate", "PROJECT_MANAGER", 2, [
            "Calculate Material Costs", "Calculate Labor Costs", "Apply Markup",
            "Generate Estimate Document", "Send Estimate to Customer",
            "Follow Up on Estimate", "Address Customer Questions",
        ]),
    ]),
    ("APPROVED", "Approved", [
        ("Contract", "ADMINISTRATION", 2, ["Prepare Contract", "Get Contract Signed"]),
        ("Permits", "ADMINISTRATION", 3, ["Apply for Permits", "Receive Permits"]),
        ("Materials & Scheduling", "PROJECT_MANAGER", 2, [
            "Create Material List", "Place Material Order", "Schedule Delivery",
            "Assign Crew", "Set Start Date", "Notify Customer of Schedule",
        ]),
    ]),
    ("EXECUTION", "Execution", [
        ("Job Preparation", "FIELD_DIRECTOR", 1, [
            "Confirm Material Delivery", "Stage Equipment", "Safety Briefing",
        ]),
        ("Installation", "ROOF_SUPERVISOR", 1, [
            "Remove Old Roofing", "Install Underlayment", "Install New Roofing",
            "Install Flashing", "Clean Up Job Site",
        ]),
        ("Quality Control", "FIELD_DIRECTOR", 1, [
            "Inspect Completed Work", "Address Punch List Items", "Final Quality Check",
        ]),
    ]),
    ("SECOND_SUPPLEMENT", "2nd Supplement", [
        ("Supplement", "ADMINISTRATION", 3, [
            "Create Supp in Xactimate", "Follow-Up Calls", "Review Approved Supp", "Customer Update",
        ]),
    ]),
    ("COMPLETION", "Completion", [
        ("Final Inspection", "PROJECT_MANAGER", 2, [
            "Schedule Final Inspection", "Pass Inspection", "Document Completion",
        ]),
        ("Invoicing", "ADMINISTRATION", 2, [
            "Generate Final Invoice", "Send Invoice to Customer", "Process Payment",
        ]),
        ("Closeout", "OFFICE", 3, [
            "Issue Warranty Certificate", "File Project Documentation",
            "Update Customer Database", "Send Satisfaction Survey",
            "Request Online Review", "Close Project File",
        ]),
    ]),
)


def seed_default_catalog(definition=DEFAULT_ROOFING_CATALOG) -> int:
    """Insert catalog phases that do not exist yet. Idempotent per phase_type.

    Caller commits.

    Returns:
        Number of line items created.
    """
    created = 0
    existing = {p.phase_type for p in WorkflowPhase.query.all()}
    for phase_type, phase_name, sections in definition:
        if phase_type in existing:
            continue
        order = PHASE_ORDER.index(phase_type) if phase_type in PHASE_ORDER else len(PHASE_ORDER)
        phase = WorkflowPhase(phase_type=phase_type, phase_name=phase_name, display_order=order)
        for s_idx, (section_name, role, alert_days, items) in enumerate(sections):
            section = WorkflowSection(
                section_name=section_name, display_name=section_name, display_order=s_idx,
            )
            for i_idx, item_name in enumerate(items):
                section.line_items.append(WorkflowLineItem(
                    item_name=item_name,
                    description=item_name,
                    responsible_role=role,
                    alert_days=alert_days,
                    display_order=i_idx,
                ))
                created += 1
            phase.sections.append(section)
        db.session.add(phase)
    db.session.flush()
    if created:
        logger.info("Seeded %d workflow line items", created)
    return created


# ═════════════════════════════════════════════════════════════════════════════
# Snapshot + ordering
# ═════════════════════════════════════════════════════════════════════════════

def load_catalog() -> list[CatalogPhase]:
    """Active catalog in progression order. Sections without active items are dropped."""
    phases = (
        WorkflowPhase.query
        .filter_by(is_active=True)
        .order_by(WorkflowPhase.display_order, WorkflowPhase.id)
        .all()
    )
    catalog = []
    for phase in phases:
        sections = []
        for section in phase.sections:
            if not section.is_active:
                continue
            items = tuple(
                CatalogLineItem(
                    id=item.id,
                    item_name=item.item_name,
                    responsible_role=item.responsible_role,
                    alert_days=item.alert_days,
                    display_order=item.display_order,
                )
                for item in section.line_items
                if item.is_active
            )
            if items:
                sections.append(CatalogSection(
                    id=section.id,
                    section_name=section.display_name or section.section_name,
                    display_order=section.display_order,
                    line_items=items,
                ))
        catalog.append(CatalogPhase(
            id=phase.id,
            phase_type=phase.phase_type,
            phase_name=phase.phase_name,
            display_order=phase.display_order,
            sections=tuple(sections),
        ))
    return catalog


def iter_positions(catalog):
    """Yield every CatalogPosition in progression order."""
    for phase in catalog:
        for section in phase.sections:
            for item in section.line_items:
                yield CatalogPosition(phase, section, item)


def count_line_items(catalog) -> int:
    return sum(1 for _ in iter_positions(catalog))


def first_position(catalog) -> CatalogPosition | None:
    return next(iter_positions(catalog), None)


def find_position(catalog, line_item_id) -> CatalogPosition | None:
    for position in iter_positions(catalog):
        if position.line_item.id == line_item_id:
            return position
    return None


def is_reachable_phase(catalog, phase_id) -> bool:
    """True when ``phase_id`` is an active phase that holds at least one line item."""
    return any(p.id == phase_id and p.sections for p in catalog)


def find_next_position(catalog, line_item_id, skip_ids=()) -> NextPosition:
    """Position after ``line_item_id``: next item in the section, then the next
    section of the phase, then the first item of the next phase.

    Items listed in ``skip_ids`` (already completed out of order) are passed
    over.

    Raises:
        NotFoundError: ``line_item_id`` is not an active catalog line item.
    """
    positions = list(iter_positions(catalog))
    index = next((i for i, p in enumerate(positions) if p.line_item.id == line_item_id), None)
    if index is None:
        raise NotFoundError("WorkflowLineItem", line_item_id)

    current = positions[index]
    skip_ids = set(skip_ids)
    for candidate in positions[index + 1:]:
        if candidate.line_item.id in skip_ids:
            continue
        return NextPosition(
            position=candidate,
            completed_section=candidate.section.id != current.section.id,
            completed_phase=candidate.phase.id != current.phase.id,
            is_complete=False,
        )
    return NextPosition(position=None, completed_section=True, completed_phase=True, is_complete=True)


def make_step_id(phase_type: str, item_name: str) -> str:
    """Stable WorkflowStep.step_id: ``{PHASE}-{slug}``."""
    slug = re.sub(r"[^a-z0-9]+", "-", item_name.lower()).strip("-")
    return f"{phase_type or 'GENERAL'}-{slug}"
