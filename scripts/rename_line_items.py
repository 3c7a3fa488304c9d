#!/usr/bin/env python3
"""
Rename catalog line items from their first-import names.

Applies LEGACY_LINE_ITEM_RENAMES in one transaction. Names that are already
current are counted as unchanged; names found under neither spelling are
listed as missing.

Usage:
    DATABASE_URL=postgresql://... python scripts/rename_line_items.py
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("rename_line_items")

from roofline.services.line_item_service import rename_line_items_by_name  # noqa: E402
from roofline.utils.db_scope import run_script  # noqa: E402


def rename(app):
    result = rename_line_items_by_name()
    for item in result["updated"]:
        print(f"  renamed {item['id']}: {item['item_name']}")
    for name in result["missing"]:
        print(f"  not found: {name}")
    print(f"Updated: {len(result['updated'])}  unchanged: {result['unchanged']}  "
          f"missing: {len(result['missing'])}")


def main(app=None) -> int:
    return run_script(rename, name="rename_line_items", app=app)


if __name__ == "__main__":
    sys.exit(main())
