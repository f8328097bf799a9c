import os
from types import SimpleNamespace

import bson
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

# Sätt AUTH_MODE=apikey innan appen importeras; nycklarna sätts per test nedan
os.environ.setdefault("AUTH_MODE", "apikey")

import sheetlens.auth as auth_module
from sheetlens.db import get_upload_store
from sheetlens.main import app
from sheetlens.store import UploadStore

TEST_API_KEYS = "u1:key-u1,u2:key-u2,boss:admin:key-admin"

U1 = {"X-API-Key": "key-u1"}
U2 = {"X-API-Key": "key-u2"}
ADMIN = {"X-API-Key": "key-admin"}


def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, keys):
        for key, direction in reversed(keys):
            self._docs.sort(key=lambda doc: doc[key], reverse=direction == DESCENDING)
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeUploads:
    """Minimal in-memory stand-in for the Motor ``uploads`` collection."""

    def __init__(self):
        self.items: list[dict] = []
        self.indexes: list = []

    async def insert_one(self, doc):
        doc["_id"] = ObjectId()
        # pymongo kodar dokumentet till BSON innan det skickas
        bson.encode(doc)
        self.items.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query):
        return FakeCursor([dict(item) for item in self.items if _matches(item, query)])

    async def find_one(self, query):
        for item in self.items:
            if _matches(item, query):
                return dict(item)
        return None

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs.get("name", "index")


class BrokenUploads:
    """Collection whose every call fails like an unreachable MongoDB."""

    def _fail(self, *_args, **_kwargs):
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    insert_one = _fail
    find = _fail
    find_one = _fail
    create_index = _fail


@pytest.fixture
def uploads_collection():
    return FakeUploads()


@pytest.fixture
def api_keys(monkeypatch):
    monkeypatch.setattr(auth_module, "AUTH_MODE", "apikey")
    monkeypatch.setattr(auth_module, "_API_KEY_MAP", auth_module.parse_api_keys(TEST_API_KEYS))


def _client_for(collection, monkeypatch):
    store = UploadStore(collection)
    app.dependency_overrides[get_upload_store] = lambda: store
    monkeypatch.setattr("sheetlens.main.get_upload_store", lambda: store)
    return TestClient(app)


@pytest.fixture
def client(uploads_collection, api_keys, monkeypatch):
    with _client_for(uploads_collection, monkeypatch) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def broken_client(api_keys, monkeypatch):
    """Klient vars databas alltid fallerar."""
    with _client_for(BrokenUploads(), monkeypatch) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def save_payload(**overrides) -> dict:
    payload = {
        "userId": "u1",
        "filename": "1700000000000_sales.xlsx",
        "originalFilename": "sales.xlsx",
        "fileUrl": "https://storage.example.com/sales.xlsx",
        "fileSize": 2048,
    }
    payload.update(overrides)
    return payload
