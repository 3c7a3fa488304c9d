"""
Completion aggregation.

Pure read-time computations over persisted workflow state. Nothing here is
stored; callers recompute after every mutation.

    compute_completion(10, 4).percent   -> 40
    compute_completion(3, 1).percent    -> 33
    compute_completion(0, 0).percent    -> 0
"""

from __future__ import annotations

from dataclasses import dataclass, field

from roofline.models.workflow import COMPLETION_PHASE


@dataclass(frozen=True)
class CompletionSummary:
    completed_count: int
    total_count: int
    percent: int

    def to_dict(self) -> dict:
        return {
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class PhaseProgress:
    phase_id: int
    phase_type: str
    phase_name: str
    total: int
    completed: int
    percent: int
    pending_line_item_ids: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "phase_id": self.phase_id,
            "phase_type": self.phase_type,
            "phase_name": self.phase_name,
            "total": self.total,
            "completed": self.completed,
            "percent": self.percent,
        }


def percent_half_up(numerator: int, denominator: int) -> int:
    """Integer percentage of numerator/denominator, halves rounded up, clamped to 0..100."""
    if denominator <= 0:
        return 0
    numerator = max(0, numerator)
    value = (200 * numerator + denominator) // (2 * denominator)
    return max(0, min(100, value))


def compute_completion(total_count: int, completed_count: int) -> CompletionSummary:
    """Summarise a tracker: ``total_count`` expected items, ``completed_count`` done."""
    total_count = max(0, total_count or 0)
    completed_count = max(0, completed_count or 0)
    return CompletionSummary(
        completed_count=completed_count,
        total_count=total_count,
        percent=percent_half_up(completed_count, total_count),
    )


def phase_breakdown(catalog, completed_ids) -> list[PhaseProgress]:
    """Per-phase progress in catalog order.

    Args:
        catalog: list of CatalogPhase (see workflow_catalog.load_catalog)
        completed_ids: iterable of completed line item ids
    """
    completed_ids = set(completed_ids)
    result = []
    for phase in catalog:
        item_ids = [item.id for section in phase.sections for item in section.line_items]
        done = sum(1 for i in item_ids if i in completed_ids)
        result.append(PhaseProgress(
            phase_id=phase.id,
            phase_type=phase.phase_type,
            phase_name=phase.phase_name,
            total=len(item_ids),
            completed=done,
            percent=percent_half_up(done, len(item_ids)),
            pending_line_item_ids=tuple(i for i in item_ids if i not in completed_ids),
        ))
    return result


def determine_current_phase(breakdown: list[PhaseProgress]) -> str:
    """First phase with outstanding items; ``COMPLETION`` once everything is done.

    Phases without line items are skipped.
    """
    for progress in breakdown:
        if progress.total and progress.completed < progress.total:
            return progress.phase_type
    return COMPLETION_PHASE


def next_line_items(catalog, completed_ids, phase_type: str, limit: int | None = None) -> list:
    """Uncompleted line items of ``phase_type`` in catalog order."""
    completed_ids = set(completed_ids)
    pending = []
    for phase in catalog:
        if phase.phase_type != phase_type:
            continue
        for section in phase.sections:
            for item in section.line_items:
                if item.id not in completed_ids:
                    pending.append(item)
    return pending[:limit] if limit else pending
