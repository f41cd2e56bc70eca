"""
Pytest configuration and shared fixtures.

The app reads its database location from the environment when
``gymdesk.core.database`` is first imported, so the temporary locations are
set before any gymdesk import.
"""
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="gymdesk-test-")
os.environ["DATABASE_PATH"] = os.path.join(_TEST_DIR, "gymdesk_test.db")
os.environ["GYMDESK_LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["WHATSAPP_ENABLED"] = "false"
os.environ["DEBUG"] = "false"

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from gymdesk.core.database import Base, SessionLocal, engine  # noqa: E402
from gymdesk.core.security import get_password_hash  # noqa: E402
from gymdesk.main import app  # noqa: E402
from gymdesk.models import Customer, GenderEnum, RoleEnum, User  # noqa: E402

ADMIN_PASSWORD = "admin-pass-123"
STAFF_PASSWORD = "staff-pass-123"


@pytest.fixture(scope="session", autouse=True)
def create_schema():
    """Create all tables once for the test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """Empty every table after each test."""
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture
def db_session():
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client():
    return TestClient(app)


def _create_user(db_session, username, password, role):
    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "admin", ADMIN_PASSWORD, RoleEnum.ADMIN)


@pytest.fixture
def staff_user(db_session):
    return _create_user(db_session, "frontdesk", STAFF_PASSWORD, RoleEnum.STAFF)


def _login(client, username, password):
    response = client.post(
        "/api/v1/auth/login",
        data={"username": username, "password": password},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client, admin_user):
    """Bearer headers for the admin user."""
    return _login(client, admin_user.username, ADMIN_PASSWORD)


@pytest.fixture
def staff_headers(client, staff_user):
    return _login(client, staff_user.username, STAFF_PASSWORD)


@pytest.fixture
def make_customer(db_session):
    """Factory inserting customers directly; keyword arguments override defaults."""
    counter = {"n": 0}

    def factory(**overrides):
        counter["n"] += 1
        fields = {
            "name": f"Customer {counter['n']}",
            "phone": f"06300000{counter['n']:02d}",
            "gender": GenderEnum.MALE,
            "register_date": datetime(2024, 1, 1),
            "expire_date": datetime(2099, 1, 1),
            "fee": 30,
            "balance": 0,
            "is_active": True,
        }
        fields.update(overrides)
        customer = Customer(**fields)
        db_session.add(customer)
        db_session.commit()
        db_session.refresh(customer)
        return customer

    return factory
