"""
Integrationstester för SheetLens mot riktig MongoDB-instans.

Kräver att MongoDB körs lokalt på mongodb://localhost:27017
(eller via MONGODB_TEST_URI-miljövariabeln).

Kör med:
    pytest -m integration
    pytest -m integration -v --tb=short

Hoppas över automatiskt om MongoDB inte är tillgänglig.
"""

import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from conftest import U1, U2, save_payload
from sheetlens.db import get_upload_store
from sheetlens.main import app
from sheetlens.models import NewUpload
from sheetlens.store import UploadStore

# ─── Konfiguration ────────────────────────────────────────────────────────────

MONGODB_TEST_URI = os.getenv("MONGODB_TEST_URI", "mongodb://localhost:27017")
TEST_DB_NAME = "sheetlens_test"

# ─── Marker ───────────────────────────────────────────────────────────────────

pytestmark = pytest.mark.integration


def _mongo_available() -> bool:
    try:
        with MongoClient(MONGODB_TEST_URI, serverSelectionTimeoutMS=1000) as probe:
            probe.admin.command("ping")
        return True
    except PyMongoError:
        return False


@pytest.fixture(scope="module", autouse=True)
def require_mongo():
    if not _mongo_available():
        pytest.skip("MongoDB not reachable at MONGODB_TEST_URI")


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def uploads_coll():
    """
    Ger en ren uploads-kollektion för varje test.
    Rensar kollektionen före och efter testet.
    """
    client = AsyncIOMotorClient(MONGODB_TEST_URI, serverSelectionTimeoutMS=2000, tz_aware=True)
    coll = client[TEST_DB_NAME].uploads
    await coll.delete_many({})
    yield coll
    await coll.delete_many({})
    client.close()


@pytest.fixture
def integration_client(api_keys, monkeypatch):
    """
    TestClient kopplad till riktig MongoDB via en egen Motor-klient,
    så att den lever i TestClients event loop.
    """
    def store_for_request():
        client = AsyncIOMotorClient(MONGODB_TEST_URI, serverSelectionTimeoutMS=2000, tz_aware=True)
        return UploadStore(client[TEST_DB_NAME].uploads)

    sync_client = MongoClient(MONGODB_TEST_URI)
    sync_client[TEST_DB_NAME].uploads.delete_many({})
    app.dependency_overrides[get_upload_store] = store_for_request
    monkeypatch.setattr("sheetlens.main.get_upload_store", store_for_request)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    sync_client[TEST_DB_NAME].uploads.delete_many({})
    sync_client.close()


# ─── Store ────────────────────────────────────────────────────────────────────

async def test_store_round_trip(uploads_coll):
    store = UploadStore(uploads_coll)
    first = await store.insert(
        NewUpload(user_id="u1", filename="1_a.xlsx", original_filename="a.xlsx", file_url="https://x/1")
    )
    second = await store.insert(
        NewUpload(user_id="u1", filename="2_b.xlsx", original_filename="b.xlsx", file_url="https://x/2")
    )

    records = await store.list_by_owner("u1")
    assert [r.id for r in records] == [second, first]
    assert (await store.get_for_owner("u1", first)).file_url == "https://x/1"
    assert await store.get_for_owner("u2", first) is None


async def test_ensure_indexes_is_idempotent(uploads_coll):
    store = UploadStore(uploads_coll)
    await store.ensure_indexes()
    await store.ensure_indexes()
    info = await uploads_coll.index_information()
    assert "uploads_owner_newest" in info


# ─── API ──────────────────────────────────────────────────────────────────────

def test_api_save_and_list(integration_client):
    r = integration_client.post(
        "/api/save-upload", json=save_payload(fileUrl="https://x/1", fileSize=2048), headers=U1
    )
    assert r.status_code == 201

    listed = integration_client.post(
        "/api/get-user-uploads", json={"userId": "u1"}, headers=U1
    ).json()
    assert listed["count"] == 1
    assert listed["uploads"][0]["status"] == "uploaded"
    assert listed["uploads"][0]["file_size"] == 2048

    other = integration_client.post(
        "/api/get-user-uploads", json={"userId": "u2"}, headers=U2
    ).json()
    assert other["count"] == 0
