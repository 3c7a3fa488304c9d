#!/usr/bin/env python3
"""
Deploy the database schema.

Runs ``flask db upgrade``. A database whose tables already exist without
migration history is stamped at head and the deploy still succeeds.

Usage:
    DATABASE_URL=postgresql://... python scripts/deploy_schema.py
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("deploy_schema")

from roofline.services.schema_service import deploy_schema  # noqa: E402
from roofline.utils.db_scope import run_script  # noqa: E402


def deploy(app):
    result = deploy_schema()
    if result["status"] == "baselined":
        print("Schema already present; baseline stamped at head")
    else:
        print("Schema upgraded to head")


def main(app=None) -> int:
    return run_script(deploy, name="deploy_schema", app=app)


if __name__ == "__main__":
    sys.exit(main())
