from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

from bson import ObjectId

import repositories.application_repository as application_repo_module
import repositories.meeting_repository as meeting_repo_module
import repositories.users_repository as users_repo_module
from domain.models.application import Application, ApplicationStatus
from domain.models.meeting import Meeting
from domain.models.user import Role, User


class DummyCursor(list):
    def sort(self, key, direction):
        return DummyCursor(sorted(self, key=lambda d: d.get(key) or dt.datetime.min, reverse=direction < 0))


class DummyCollection:
    def __init__(self):
        self.docs = []
        self.indexes = []

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(k) == v for k, v in query.items())

    def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))

    def insert_one(self, doc):
        doc = {**doc, "_id": ObjectId()}
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query=None, projection=None):
        return DummyCursor(d for d in self.docs if self._matches(d, query or {}))

    def find_one(self, query):
        return next(iter(self.find(query)), None)

    def replace_one(self, query, doc):
        for i, existing in enumerate(self.docs):
            if self._matches(existing, query):
                self.docs[i] = {**doc, "_id": existing["_id"]}
                return SimpleNamespace(modified_count=1)
        return SimpleNamespace(modified_count=0)

    def update_one(self, query, update):
        doc = self.find_one(query)
        if doc is None:
            return SimpleNamespace(modified_count=0)
        doc.update(update["$set"])
        return SimpleNamespace(modified_count=1)

    def find_one_and_update(self, query, update, return_document=None):
        doc = self.find_one(query)
        if doc is not None:
            doc.update(update["$set"])
        return doc

    def delete_one(self, query):
        doc = self.find_one(query)
        if doc is None:
            return SimpleNamespace(deleted_count=0)
        self.docs.remove(doc)
        return SimpleNamespace(deleted_count=1)

    def count_documents(self, query):
        return len(self.find(query))


class DummyMongo:
    def __init__(self):
        self._collections = {}

    def collection(self, name):
        return self._collections.setdefault(name, DummyCollection())


def _application(meeting_id, passport, created):
    return Application(
        meeting_id=meeting_id,
        passport_number=passport,
        first_name="Jane",
        created_at=created,
        status="Complete",
    )


def test_application_repository_lookup_and_ordering(monkeypatch):
    monkeypatch.setattr(application_repo_module, "mongodb", DummyMongo())
    repo = application_repo_module.ApplicationRepository()
    meeting_id = str(ObjectId())

    older = repo.create(_application(meeting_id, "A1", dt.datetime(2025, 1, 1)))
    newer = repo.create(_application(meeting_id, "B2", dt.datetime(2026, 1, 1)))
    repo.create(_application(str(ObjectId()), "A1", dt.datetime(2026, 5, 1)))

    found = repo.find_by_passport_and_meeting("A1", meeting_id)
    assert found.id == older.id
    assert found.status == ApplicationStatus.approved
    assert [a.id for a in repo.find_by_meeting(meeting_id)] == [newer.id, older.id]

    stored = repo.collection.find_one({"_id": ObjectId(older.id)})
    assert stored["status"] == "Approved"
    assert stored["meeting_id"] == meeting_id


def test_application_repository_replace_and_update(monkeypatch):
    monkeypatch.setattr(application_repo_module, "mongodb", DummyMongo())
    repo = application_repo_module.ApplicationRepository()
    created = repo.create(_application(str(ObjectId()), "A1", dt.datetime(2025, 1, 1)))

    repo.replace(created.with_updates({"city": "Calgary"}))
    assert repo.find_by_id(created.id).city == "Calgary"

    updated = repo.update(created.id, {"pdf_generated": True, "_id": "ignored"})
    assert updated.pdf_generated is True
    assert repo.delete(created.id) == 1
    assert repo.find_by_id(created.id) is None


def test_meeting_repository_exact_name_lookup(monkeypatch):
    monkeypatch.setattr(meeting_repo_module, "mongodb", DummyMongo())
    repo = meeting_repo_module.MeetingRepository()
    meeting = Meeting(name="Calgary 2026", start_date="2026-06-02", end_date="2026-06-05")

    repo.save(meeting)

    assert meeting.id is not None
    assert repo.find_by_name("Calgary 2026").id == meeting.id
    assert repo.find_by_name("calgary 2026") is None
    assert repo.find_by_id(meeting.id).start_date == dt.datetime(2026, 6, 2)


def test_user_repository(monkeypatch):
    monkeypatch.setattr(users_repo_module, "mongodb", DummyMongo())
    repo = users_repo_module.UserRepository()
    user_id = repo.create(
        User(email="Admin@Example.com", password_hash="x" * 20, first_name="A", last_name="B", role=Role.admin)
    )

    assert repo.get_by_email("admin@example.com").id == user_id
    assert repo.get_by_id(user_id).is_admin
    assert repo.get_by_id("not-an-id") is None
    assert repo.count_admins() == 1
