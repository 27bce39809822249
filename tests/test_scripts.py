from types import SimpleNamespace

from scripts.mark_existing_imported import mark_imported
from scripts.migrate_legacy_statuses import canonical_status, migrate


class StatusCollection:
    def __init__(self, docs):
        self.docs = docs
        self.updates = []

    def find(self, query, projection):
        return list(self.docs)

    def update_one(self, query, update):
        self.updates.append((query["_id"], update["$set"]["status"]))


def test_canonical_status():
    assert canonical_status("Complete") == "Approved"
    assert canonical_status("pending") == "Pending"
    assert canonical_status(None) == "Pending"
    assert canonical_status("archived") is None


def test_migrate_only_touches_non_canonical_statuses(capsys):
    collection = StatusCollection(
        [
            {"_id": 1, "status": "Approved"},
            {"_id": 2, "status": "completed"},
            {"_id": 3, "status": "archived"},
            {"_id": 4},
        ]
    )

    assert migrate(collection) == 2
    assert collection.updates == [(2, "Approved"), (4, "Pending")]
    assert "unknown status 'archived'" in capsys.readouterr().out


def test_mark_imported_sets_flag_on_unflagged_documents():
    calls = []

    class Collection:
        def update_many(self, query, update):
            calls.append((query, update))
            return SimpleNamespace(modified_count=3)

    assert mark_imported(Collection(), "admin-1") == 3
    assert calls == [
        ({"is_imported": {"$exists": False}}, {"$set": {"is_imported": True, "imported_by": "admin-1"}})
    ]
