import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from leavedesk.database import Base, get_db
from leavedesk.main import app
from leavedesk.models.leave import Leave, LeaveStatus, LeaveType
from leavedesk.models.user import User, UserRole
from leavedesk.services import auth as auth_service
from leavedesk.services.notification import get_notification_dispatcher
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Password123!"


class RecordingDispatcher:
    """Stands in for the notification channel and remembers what was sent."""

    def __init__(self):
        self.sent = []

    def dispatch(self, user_id, title, message, type="info", leave_id=None):
        self.sent.append({
            "user_id": user_id, "title": title, "message": message, "type": type, "leave_id": leave_id,
        })


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    # Use sessionmaker with the active connection
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for persisted users of any role."""
    counter = {"n": 0}

    def _make_user(role=UserRole.EMPLOYEE, manager=None, email=None, name=None, **fields):
        counter["n"] += 1
        fields.setdefault("is_active", True)
        fields.setdefault("leave_balance_paid", 12)
        fields.setdefault("leave_balance_sick", 8)
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            name=name or f"{role.value} {counter['n']}",
            hashed_password=auth_service.get_password_hash(DEFAULT_PASSWORD),
            role=role,
            manager_id=manager.id if manager else None,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture(scope="function")
def admin_user(make_user):
    return make_user(UserRole.ADMIN, email="admin@example.com", name="System Admin")


@pytest.fixture(scope="function")
def hr_user(make_user):
    return make_user(UserRole.HR, email="hr@example.com", name="HR Officer")


@pytest.fixture(scope="function")
def manager_user(make_user):
    return make_user(UserRole.MANAGER, email="manager@example.com", name="Team Manager")


@pytest.fixture(scope="function")
def employee_user(make_user, manager_user):
    """An employee reporting to ``manager_user``."""
    return make_user(UserRole.EMPLOYEE, manager=manager_user, email="employee@example.com", name="Team Employee")


@pytest.fixture(scope="function")
def make_leave(db_session):
    """Factory for leave rows written straight to the store, bypassing routing."""

    def _make_leave(user, start_date=date(2025, 6, 2), end_date=None, status=LeaveStatus.PENDING,
                    type=LeaveType.CASUAL, duration=None):
        end_date = end_date if end_date is not None else start_date
        if duration is None and start_date and end_date:
            duration = (end_date - start_date).days + 1
        leave = Leave(
            user_id=user.id,
            type=type,
            start_date=start_date,
            end_date=end_date,
            status=status,
            duration=duration,
        )
        db_session.add(leave)
        db_session.commit()
        db_session.refresh(leave)
        return leave
    return _make_leave


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens for a user."""

    def _get_token(user):
        return auth_service.create_access_token(data={"sub": user.id, "role": user.role.value})
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def notifications():
    return RecordingDispatcher()


@pytest.fixture(scope="function")
def client(db_session, notifications):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: notifications
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
