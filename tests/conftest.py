import uuid

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_token
from database import ensure_indexes, get_db
from main import app


@pytest.fixture
def db():
    database = mongomock.MongoClient()[f"soundlink_{uuid.uuid4().hex[:8]}"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(user_id: str, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {create_token(user_id, role)}"}


@pytest.fixture
def user_headers():
    return bearer("user-1")


@pytest.fixture
def admin_headers():
    return bearer("admin-1", role="admin")


@pytest.fixture
def make_song(db):
    def _make(name, desc="", **extra):
        doc = {"name": name, "desc": desc, "file": f"https://cdn.example/{name}.mp3", "image": "https://cdn.example/cover.jpg"}
        doc.update(extra)
        return str(db["song"].insert_one(doc).inserted_id)
    return _make


@pytest.fixture
def headers_for():
    return bearer
