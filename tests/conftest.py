import bcrypt
import pytest
from fastapi.testclient import TestClient

from auth import security
from core.db import get_db
from fakes import FakeDatabase, FakeStore

_real_gensalt = bcrypt.gensalt


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Use the minimum bcrypt cost so hashing doesn't dominate test time."""
    monkeypatch.setattr(security.bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": _real_gensalt(4, prefix))


@pytest.fixture(autouse=True)
def auth_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.delenv("AUTH_TOKEN_HEADER", raising=False)
    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MIN", raising=False)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(root))
    return root


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    fake.install(monkeypatch)
    return fake


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def app(store, upload_dir, fake_db):
    from main import create_app

    application = create_app()
    application.dependency_overrides[get_db] = lambda: fake_db
    return application


@pytest.fixture
def client(app):
    # No context manager: the lifespan (real pool + DDL) is not started.
    return TestClient(app)


@pytest.fixture
def register_and_login(client):
    def _register_and_login(username="alice", email="alice@example.com", password="s3cret!"):
        resp = client.post("/register", json={"username": username, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        resp = client.post("/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _register_and_login
