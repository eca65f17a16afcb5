"""Shared fixtures: in-memory database, callers, and an app wired to them."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from village_gate.api.dependencies import get_database, get_notifier
from village_gate.database import DatabaseManager
from village_gate.main import create_app
from village_gate.models.schemas import OfflineLogIn
from village_gate.services import AuthService, CallerContext, NotificationDispatcher

TENANT = "tenant-oakwood"
OTHER_TENANT = "tenant-pinecrest"
BASE_TIME = datetime(2026, 3, 14, 8, 0, 0)


class RecordingNotifier(NotificationDispatcher):
    """Notifier that remembers what it was asked to send."""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.sent = []

    def dispatch_guest_approval(self, household_id, payload):
        self.sent.append((household_id, payload))
        return self.accept


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_log(i: int = 0, **overrides) -> OfflineLogIn:
    """Build a distinct offline log; i shifts the timestamp and plate."""
    data = {
        "gate_id": "gate-main",
        "entry_type": "resident",
        "direction": "entry",
        "timestamp": BASE_TIME + timedelta(seconds=i),
        "vehicle_plate": f"ABC-{i:04d}",
    }
    data.update(overrides)
    return OfflineLogIn(**data)


def count_rows(db: DatabaseManager, table: str) -> int:
    return db.fetch_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]


@pytest.fixture
def db():
    """Create an in-memory database with all tables."""
    manager = DatabaseManager(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def guard():
    return CallerContext(user_id="guard-001", tenant_id=TENANT, role="security_officer")


@pytest.fixture
def head_guard():
    return CallerContext(user_id="guard-head", tenant_id=TENANT, role="security_head")


@pytest.fixture
def resident():
    return CallerContext(user_id="resident-001", tenant_id=TENANT, role="household_head")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def auth_service(db):
    return AuthService(db)


@pytest.fixture
def app(db, notifier):
    """Create the FastAPI app bound to the test database."""
    app = create_app()
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_notifier] = lambda: notifier
    return app


@pytest.fixture
def client(app):
    """Create a test client that returns 500 responses instead of raising."""
    return TestClient(app, raise_server_exceptions=False)


def _headers_for(auth_service: AuthService, username: str, role: str, tenant: str = TENANT):
    user_id = auth_service.create_user(tenant, username, "s3cret-pass", role)
    token, _ = auth_service.issue_token(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def officer_headers(auth_service):
    return _headers_for(auth_service, "officer", "security_officer")


@pytest.fixture
def head_headers(auth_service):
    return _headers_for(auth_service, "head", "security_head")


@pytest.fixture
def resident_headers(auth_service):
    return _headers_for(auth_service, "resident", "household_head")


@pytest.fixture
def other_tenant_headers(auth_service):
    return _headers_for(auth_service, "outsider", "security_officer", OTHER_TENANT)
