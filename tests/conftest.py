import csv
import io
import os
import sys
from datetime import datetime
from pathlib import Path

import pytest
from bson import ObjectId
from werkzeug.security import generate_password_hash

# Ensure project root is on sys.path
sys.path.append(str(Path(__file__).resolve().parents[1]))

# MongoClient connects lazily; nothing talks to this server unless a test
# forgets to swap a repository for one of the fakes below.
os.environ.setdefault("TEST_MONGODB_URI", "mongodb://localhost:27017")

from domain.models.import_row import IMPORT_COLUMNS  # noqa: E402
from domain.models.meeting import Meeting  # noqa: E402
from domain.models.user import Role, User  # noqa: E402


# ----------------------------------------------------------------------
# In-memory repositories
# ----------------------------------------------------------------------

class FakeMeetingRepo:
    def __init__(self, meetings=()):
        self.meetings = {}
        self.name_lookups = 0
        for meeting in meetings:
            self.save(meeting)

    def save(self, meeting):
        meeting.id = meeting.id or str(ObjectId())
        self.meetings[meeting.id] = meeting
        return meeting.id

    def find_all(self):
        return list(self.meetings.values())

    def find_active(self):
        return [m for m in self.meetings.values() if m.is_active]

    def find_by_id(self, meeting_id):
        return self.meetings.get(meeting_id)

    def find_by_name(self, name):
        self.name_lookups += 1
        return next((m for m in self.meetings.values() if m.name == name), None)

    def update(self, meeting_id, data):
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            return None
        doc = {**meeting.to_mongo(), **data, "_id": meeting_id}
        updated = Meeting.from_mongo(doc)
        self.meetings[meeting_id] = updated
        return updated

    def delete(self, meeting_id):
        return 1 if self.meetings.pop(meeting_id, None) else 0


class FakeApplicationRepo:
    def __init__(self):
        self.docs = {}

    def create(self, application):
        new_id = str(ObjectId())
        stored = application.model_copy(update={"id": new_id})
        self.docs[new_id] = stored
        return stored

    def replace(self, application):
        self.docs[application.id] = application
        return application

    def update(self, application_id, data):
        application = self.docs.get(application_id)
        if application is None:
            return None
        updated = application.model_copy(update=data)
        self.docs[application_id] = updated
        return updated

    def find_by_id(self, application_id):
        return self.docs.get(application_id)

    def find_by_passport_and_meeting(self, passport_number, meeting_id):
        return next(
            (
                a for a in self.docs.values()
                if a.passport_number == passport_number and a.meeting_id == meeting_id
            ),
            None,
        )

    def _sorted(self, items):
        return sorted(items, key=lambda a: a.created_at or datetime.min, reverse=True)

    def find_by_meeting(self, meeting_id):
        return self._sorted(a for a in self.docs.values() if a.meeting_id == meeting_id)

    def find_by_user(self, user_id):
        return self._sorted(a for a in self.docs.values() if a.user_id == user_id)

    def find_all(self):
        return self._sorted(self.docs.values())

    def delete(self, application_id):
        return 1 if self.docs.pop(application_id, None) else 0


class FakeUserRepo:
    def __init__(self, users=()):
        self.users = {}
        for user in users:
            self.users[user.id] = user

    def create(self, user):
        new_id = str(ObjectId())
        self.users[new_id] = user.model_copy(update={"id": new_id})
        return new_id

    def get_by_id(self, user_id):
        return self.users.get(user_id)

    def get_by_email(self, email):
        email = (email or "").strip().lower()
        return next((u for u in self.users.values() if u.email == email), None)

    def find_all(self):
        return list(self.users.values())

    def count_admins(self):
        return sum(1 for u in self.users.values() if u.role == Role.admin)

    def update(self, user_id, data):
        user = self.users.get(user_id)
        if user is None:
            return 0
        if "role" in data:
            data = {**data, "role": Role(data["role"])}
        self.users[user_id] = user.model_copy(update=data)
        return 1

    def delete(self, user_id):
        return 1 if self.users.pop(user_id, None) else 0


# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------

def make_user(email="user@example.com", role=Role.user, password="secret-pass"):
    return User(
        _id=str(ObjectId()),
        email=email,
        password_hash=generate_password_hash(password),
        first_name="Test",
        last_name="User",
        role=role,
    )


def make_meeting(name="Calgary 2026", **kwargs):
    kwargs.setdefault("start_date", "2026-06-02")
    kwargs.setdefault("end_date", "2026-06-05")
    kwargs.setdefault("location", "Calgary, AB")
    return Meeting(name=name, id=str(ObjectId()), **kwargs)


def csv_row(**overrides):
    """A valid import row; keyword arguments replace individual columns."""
    row = {
        "applicationDate": "2026-01-15",
        "email": "Jane.Doe@Example.com",
        "lastName": "Doe",
        "firstName": "Jane",
        "birthdate": "1990-04-02",
        "passportNumber": '="0012345"',
        "passportIssuingCountry": "Canada",
        "passportExpirationDate": "2030-01-01",
        "dateOfArrival": "2026-06-01",
        "dateOfDeparture": "2026-06-07",
        "gender": "Female",
        "companyName": "ACME Corp",
        "position": "Engineer",
        "companyMailingAddress1": "1 Main St",
        "city": "Calgary",
        "state": "AB",
        "postalCode": "T2P 1J9",
        "country": "Canada",
        "phone": '="+14035550100"',
        "meetingName": "Calgary 2026",
        "status": "Pending",
    }
    row.update(overrides)
    return row


def csv_bytes(rows):
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(IMPORT_COLUMNS), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def make_row():
    return csv_row


@pytest.fixture
def to_csv():
    return csv_bytes


@pytest.fixture
def meeting():
    return make_meeting()


@pytest.fixture
def meeting_repo(meeting):
    return FakeMeetingRepo([meeting])


@pytest.fixture
def application_repo():
    return FakeApplicationRepo()


@pytest.fixture
def admin_user():
    return make_user("admin@example.com", role=Role.admin)


@pytest.fixture
def regular_user():
    return make_user("user@example.com")


@pytest.fixture
def user_repo(admin_user, regular_user):
    return FakeUserRepo([admin_user, regular_user])


@pytest.fixture
def backend(monkeypatch, meeting_repo, application_repo, user_repo, tmp_path):
    """Route every repository constructor used by the app to the in-memory fakes."""
    import middleware.auth as auth_middleware
    import services.applications_service as applications_service
    import services.auth_service as auth_service
    import services.export_service as export_service
    import services.import_service as import_service
    import services.meetings_service as meetings_service
    import services.users_service as users_service

    for module in (applications_service, export_service, import_service, meetings_service):
        monkeypatch.setattr(module, "MeetingRepository", lambda: meeting_repo, raising=False)
        monkeypatch.setattr(module, "ApplicationRepository", lambda: application_repo, raising=False)
    for module in (auth_middleware, auth_service, users_service):
        monkeypatch.setattr(module, "UserRepository", lambda: user_repo, raising=False)

    for key in ("ADMIN_USERS", "ADMIN_EMAIL", "ADMIN_PASSWORD"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DB_BOOTSTRAP_INDEXES", "0")
    monkeypatch.setattr("config.settings.GENERATED_PDF_DIR", str(tmp_path / "generated"))

    return {
        "meetings": meeting_repo,
        "applications": application_repo,
        "users": user_repo,
    }


@pytest.fixture
def app(backend):
    from app import create_app

    app = create_app()
    app.config["TESTING"] = True
    return app


def _client_for(app, user):
    client = app.test_client()
    if user is not None:
        with client.session_transaction() as sess:
            sess["user_id"] = user.id
    return client


@pytest.fixture
def admin_client(app, admin_user):
    return _client_for(app, admin_user)


@pytest.fixture
def user_client(app, regular_user):
    return _client_for(app, regular_user)


@pytest.fixture
def anon_client(app):
    return _client_for(app, None)
