#!/usr/bin/env python3
"""
Verify WORKFLOW_ALERT notifications.

Reports how many alerts exist, how many are still unread and whether every
payload carries the fields the UI relies on (project name at minimum).

Usage:
    DATABASE_URL=postgresql://... python scripts/verify_alerts.py
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("verify_alerts")

from roofline.services.reporting import alert_report, format_alert_report  # noqa: E402
from roofline.utils.db_scope import run_script  # noqa: E402


def report(app):
    print("=== WORKFLOW ALERTS ===")
    result = alert_report()
    for line in format_alert_report(result):
        print(line)
    if result["invalid"]:
        logger.warning("%d alert(s) have an invalid payload", len(result["invalid"]))


def main(app=None) -> int:
    return run_script(report, name="verify_alerts", app=app)


if __name__ == "__main__":
    sys.exit(main())
