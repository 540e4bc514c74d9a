"""
Leave Portal - Test Configuration and Fixtures
"""
import os
import tempfile
from datetime import date, timedelta

import pytest

# Set testing environment before the app reads its configuration
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "leave_portal_test.db")
os.environ['DATABASE_URL'] = f'sqlite:///{TEST_DB_PATH}'
os.environ['JWT_SECRET'] = 'test-jwt-secret-for-testing-only'
os.environ['LOG_LEVEL'] = 'WARNING'

from fastapi.testclient import TestClient

from leave_portal.main import app
from leave_portal.database import SessionLocal, create_tables, drop_tables, get_db
from leave_portal.models.user import ROLE_ADMIN, ROLE_STUDENT, User
from leave_portal.security import create_access_token
from leave_portal.services.leaves import apply_leave


@pytest.fixture(scope='function')
def db_session():
    """Create fresh tables and a session for each test"""
    create_tables()
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    drop_tables()


@pytest.fixture
def client(db_session):
    """Create test client with database override"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _make_user(db_session, name, email, role, balance=20):
    user = User(name=name, email=email, role=role, leave_balance=balance,
                department="Computer Science")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def student(db_session) -> User:
    """Create a test student with the default balance"""
    return _make_user(db_session, "Asha Verma", "asha@college.edu", ROLE_STUDENT)


@pytest.fixture
def other_student(db_session) -> User:
    return _make_user(db_session, "Rahul Nair", "rahul@college.edu", ROLE_STUDENT)


@pytest.fixture
def admin(db_session) -> User:
    """Create an admin test user"""
    return _make_user(db_session, "Portal Admin", "admin@college.edu", ROLE_ADMIN)


def bearer(user: User) -> dict:
    return {'Authorization': f'Bearer {create_access_token(user.id, user.role)}'}


@pytest.fixture
def student_headers(student) -> dict:
    return bearer(student)


@pytest.fixture
def other_headers(other_student) -> dict:
    return bearer(other_student)


@pytest.fixture
def admin_headers(admin) -> dict:
    return bearer(admin)


@pytest.fixture
def tomorrow() -> date:
    return date.today() + timedelta(days=1)


@pytest.fixture
def pending_leave(db_session, student, tomorrow):
    """A 3-day pending leave for the student"""
    return apply_leave(db_session, student, tomorrow, tomorrow + timedelta(days=2),
                       "Family function out of town")


def two_mcqs(marks=5):
    return [
        {"question": "2 + 2 = ?", "options": ["3", "4", "5", "6"],
         "correct_answer": 1, "marks": marks},
        {"question": "Capital of France?", "options": ["Paris", "Rome", "Madrid", "Berlin"],
         "correct_answer": 0, "marks": marks},
    ]
