#!/usr/bin/env python3
"""
Seed the default roofing workflow catalog.

Idempotent: phases that already exist are left untouched.

Usage:
    DATABASE_URL=postgresql://... python scripts/seed_workflow.py
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("seed_workflow")

from roofline.models import db  # noqa: E402
from roofline.services.workflow_catalog import seed_default_catalog  # noqa: E402
from roofline.utils.db_scope import run_script  # noqa: E402


def seed(app):
    created = seed_default_catalog()
    db.session.commit()
    print(f"Seeded {created} workflow line items")


def main(app=None) -> int:
    return run_script(seed, name="seed_workflow", app=app)


if __name__ == "__main__":
    sys.exit(main())
