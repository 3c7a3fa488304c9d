#!/usr/bin/env python3
"""
Workflow tracker check.

Prints completion percentage and current phase for every project. Projects
without a tracker print NO TRACKER; duplicate trackers are flagged.

Usage:
    DATABASE_URL=postgresql://... python scripts/check_trackers.py
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("check_trackers")

from roofline.services.reporting import format_tracker_row, format_tracker_totals, iter_tracker_rows  # noqa: E402
from roofline.utils.db_scope import run_script  # noqa: E402


def report(app):
    rows = []
    print("=== WORKFLOW TRACKERS ===")
    for row in iter_tracker_rows():
        rows.append(row)
        print(format_tracker_row(row))
    print(format_tracker_totals(rows))


def main(app=None) -> int:
    return run_script(report, name="check_trackers", app=app)


if __name__ == "__main__":
    sys.exit(main())
