import os
from types import SimpleNamespace

import pytest
from bson import ObjectId

os.environ.setdefault("SECRET_KEY", "test-secret")

from fastapi.testclient import TestClient

import config
import database
from main import app


def matches(doc, query):
    for key, value in query.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in value):
                return False
        elif doc.get(key) != value:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, spec):
        for key, direction in reversed(spec):
            self.docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


class FakeCollection:
    def __init__(self):
        self.docs = []

    def insert_one(self, doc):
        stored = dict(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    def find(self, query=None):
        return FakeCursor([dict(d) for d in self.docs if matches(d, query or {})])

    def find_one(self, query):
        for d in self.docs:
            if matches(d, query):
                return dict(d)
        return None

    def find_one_and_update(self, query, update, return_document=False):
        for d in self.docs:
            if matches(d, query):
                d.update(update["$set"])
                return dict(d)
        return None

    def delete_one(self, query):
        for i, d in enumerate(self.docs):
            if matches(d, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def create_index(self, *a, **k):
        return "index"


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def list_collection_names(self):
        return list(self.collections)


@pytest.fixture
def fake_db(monkeypatch):
    fake = FakeDatabase()
    monkeypatch.setattr(database, "db", fake)
    return fake


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "UPLOAD_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def client(fake_db, upload_dir):
    return TestClient(app)


@pytest.fixture
def token(client):
    client.post("/api/auth/register", json={"name": "Staff", "email": "staff@example.com", "password": "pw12345"})
    resp = client.post("/api/auth/login", json={"email": "staff@example.com", "password": "pw12345"})
    return resp.json()["token"]


SAMPLE_COMPLAINT = {
    "fullName": "A",
    "contactNumber": "1",
    "email": "a@a.com",
    "routeNumber": "12",
    "location": "X",
    "complaintType": "Pothole",
    "description": "bad road",
    "priority": "High",
}
