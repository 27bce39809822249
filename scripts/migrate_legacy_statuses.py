#!/usr/bin/env python3
"""Rewrite stored application statuses to the canonical values.

Older records carry ``Complete``/``completed`` or lower-case status text. Each
document in the ``applications`` collection is mapped through the legacy status
table; unknown values are reported and left untouched.
"""

from __future__ import annotations

from typing import Optional

from domain.models.application import ApplicationStatus


def canonical_status(value: object) -> Optional[str]:
    """Return the canonical status text, or ``None`` if ``value`` is unknown."""
    if value is None or str(value).strip() == "":
        return ApplicationStatus.pending.value
    try:
        return ApplicationStatus.from_legacy(value).value
    except ValueError:
        return None


def migrate(collection) -> int:
    """Update every document whose status is not canonical. Returns the count."""
    changed = 0
    for doc in collection.find({}, {"status": 1}):
        raw = doc.get("status")
        status = canonical_status(raw)
        if status is None:
            print(f"Skipping {doc['_id']}: unknown status '{raw}'")
            continue
        if status != raw:
            collection.update_one({"_id": doc["_id"]}, {"$set": {"status": status}})
            print(f"Updated {doc['_id']}: '{raw}' -> '{status}'")
            changed += 1
    return changed


def main() -> None:
    from config.database import mongodb

    changed = migrate(mongodb.collection("applications"))
    print(f"{changed} application(s) migrated")


if __name__ == "__main__":
    main()
