from pathlib import Path
import os
import tempfile
import uuid
import pytest

# Point the app at a throwaway database and lift the rate limits before
# any test module imports `thexempt.main`.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="thexempt-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ.setdefault("AUTH_RATE_LIMIT_MAX", "100000")
os.environ.setdefault("API_RATE_LIMIT_MAX", "100000")
os.environ.setdefault("STATIC_DIR", str(_TMP_DIR / "no-client"))


@pytest.fixture(scope="session", autouse=True)
def db_tables():
    """Ensure the schema exists for tests that skip the app import."""
    from thexempt.database import create_db_and_tables
    create_db_and_tables()
    yield


@pytest.fixture
def session():
    from sqlmodel import Session
    from thexempt.database import engine
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from thexempt.main import app
    return TestClient(app)


def signup(client, name="tester"):
    """Register a fresh user and return `(headers, user)`."""
    email = f"{name}-{uuid.uuid4().hex[:8]}@example.com"
    r = client.post('/api/auth/signup', json={'email': email, 'password': 'pw-123456', 'name': name})
    assert r.status_code == 200, r.text
    body = r.json()
    return {'Authorization': f"Bearer {body['token']}"}, body['user']


@pytest.fixture
def make_user(client):
    return lambda name="tester": signup(client, name)
