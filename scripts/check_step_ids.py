#!/usr/bin/env python3
"""
Check WorkflowStep ids against the catalog.

Lists steps whose id no longer matches ``{PHASE}-{slug}`` of their line
item (usually after a rename), steps whose line item is gone and ids that
repeat within a workflow. Report only; nothing is changed.

Usage:
    DATABASE_URL=postgresql://... python scripts/check_step_ids.py
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("check_step_ids")

from roofline.services.reporting import format_step_id_report, step_id_report  # noqa: E402
from roofline.utils.db_scope import run_script  # noqa: E402


def report(app):
    print("=== WORKFLOW STEP IDS ===")
    for line in format_step_id_report(step_id_report()):
        print(line)


def main(app=None) -> int:
    return run_script(report, name="check_step_ids", app=app)


if __name__ == "__main__":
    sys.exit(main())
