#!/usr/bin/env python3
"""Flag applications that predate the import flag.

Records loaded before ``is_imported`` existed have no such field. This script
sets ``is_imported: true`` on them (and ``imported_by`` when an admin id is
given on the command line) so they are treated like any other imported record.
"""

from __future__ import annotations

import sys
from typing import Optional


def mark_imported(collection, admin_id: Optional[str] = None) -> int:
    """Returns the number of documents updated."""
    update = {"is_imported": True}
    if admin_id:
        update["imported_by"] = admin_id
    result = collection.update_many({"is_imported": {"$exists": False}}, {"$set": update})
    return result.modified_count


def main() -> None:
    from config.database import mongodb

    admin_id = sys.argv[1] if len(sys.argv) > 1 else None
    count = mark_imported(mongodb.collection("applications"), admin_id)
    print(f"{count} application(s) marked as imported")


if __name__ == "__main__":
    main()
