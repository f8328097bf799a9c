"""Owner-scoped persistence for upload records in the ``uploads`` collection."""

from datetime import UTC, datetime

from bson import ObjectId
from bson.errors import BSONError, InvalidId
from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from sheetlens.errors import StorageError
from sheetlens.models import NewUpload, UploadRecord

_NEWEST_FIRST = [("upload_date", DESCENDING), ("_id", DESCENDING)]


def _to_record(doc: dict) -> UploadRecord:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    upload_date = doc.get("upload_date")
    if isinstance(upload_date, datetime) and upload_date.tzinfo is None:
        doc["upload_date"] = upload_date.replace(tzinfo=UTC)
    try:
        return UploadRecord.model_validate(doc)
    except ValidationError as exc:
        raise StorageError(f"Malformed upload record {doc['id']}") from exc


class UploadStore:
    def __init__(self, collection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        await self._collection.create_index(
            [("user_id", ASCENDING), ("upload_date", DESCENDING), ("_id", DESCENDING)],
            name="uploads_owner_newest",
        )

    async def insert(self, upload: NewUpload) -> str:
        """Write one record, stamping ``upload_date``; returns the new id."""
        doc = upload.model_dump()
        doc["upload_date"] = datetime.now(UTC)
        try:
            result = await self._collection.insert_one(doc)
        except (PyMongoError, BSONError, OverflowError) as exc:
            raise StorageError("Failed to insert upload record") from exc
        return str(result.inserted_id)

    async def list_by_owner(self, user_id: str) -> list[UploadRecord]:
        try:
            cursor = self._collection.find({"user_id": user_id}).sort(_NEWEST_FIRST)
            docs = [doc async for doc in cursor]
        except PyMongoError as exc:
            raise StorageError("Failed to list upload records") from exc
        return [_to_record(doc) for doc in docs]

    async def get_for_owner(self, user_id: str, upload_id: str) -> UploadRecord | None:
        try:
            oid = ObjectId(upload_id)
        except (InvalidId, TypeError):
            return None
        try:
            doc = await self._collection.find_one({"_id": oid, "user_id": user_id})
        except PyMongoError as exc:
            raise StorageError("Failed to load upload record") from exc
        return _to_record(doc) if doc else None
