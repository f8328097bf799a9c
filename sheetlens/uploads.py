"""
Upload lifecycle operations.

Every operation takes the caller's identity explicitly, runs
session -> required fields -> authorization -> store, and returns a response
envelope ``{..., "status": <http status>}``. Errors never escape: they are
converted to ``{"error": ..., "status": ...}``.
"""

import logging

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from sheetlens.auth import Identity, authorize, require_identity
from sheetlens.errors import SheetLensError, StorageError, ValidationError
from sheetlens.files import sanitize_filename, storage_filename, validate_spreadsheet
from sheetlens.models import (
    ListUploadsRequest,
    NewUpload,
    PrepareUploadRequest,
    SaveUploadRequest,
)
from sheetlens.store import UploadStore

logger = logging.getLogger("sheetlens.uploads")


def parse_body(model: type[BaseModel], body: dict):
    try:
        return model.model_validate(body)
    except PydanticValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        raise ValidationError(f"Invalid fields: {', '.join(fields) or 'body'}") from exc


async def create_upload_record(
    identity: Identity | None, body: dict, store: UploadStore
) -> dict:
    try:
        caller = require_identity(identity)
        request = parse_body(SaveUploadRequest, body)
        if not (
            request.user_id
            and request.filename
            and request.original_filename
            and request.file_url
        ):
            raise ValidationError("Missing required fields")
        authorize(caller, request.user_id)

        try:
            upload = NewUpload(
                user_id=request.user_id,
                filename=request.filename,
                original_filename=request.original_filename,
                file_url=request.file_url,
                file_size=request.file_size or None,
                status=request.status or "uploaded",
            )
        except PydanticValidationError as exc:
            raise ValidationError("Invalid upload record") from exc

        upload_id = await store.insert(upload)
    except StorageError:
        logger.exception("Failed to save upload record")
        return {"error": "Failed to save upload record", "status": 500}
    except SheetLensError as exc:
        return exc.to_response()

    logger.info(
        "Upload record saved: id=%s user=%s file=%s",
        upload_id, upload.user_id, upload.original_filename,
    )
    return {
        "uploadId": upload_id,
        "status": 201,
        "message": "Upload record saved successfully",
    }


async def list_uploads_for_user(
    identity: Identity | None, body: dict, store: UploadStore
) -> dict:
    try:
        caller = require_identity(identity)
        request = parse_body(ListUploadsRequest, body)
        if not request.user_id:
            raise ValidationError("User ID is required")
        authorize(caller, request.user_id)
        records = await store.list_by_owner(request.user_id)
    except StorageError:
        logger.exception("Failed to retrieve uploads")
        return {"error": "Failed to retrieve uploads", "status": 500}
    except SheetLensError as exc:
        return exc.to_response()

    uploads = [record.to_public() for record in records]
    return {"uploads": uploads, "count": len(uploads), "status": 200}


def prepare_upload(identity: Identity | None, body: dict) -> dict:
    """Check a spreadsheet before it is pushed to object storage.

    Returns the storage filename the client should save the record under.
    """
    try:
        caller = require_identity(identity)
        request = parse_body(PrepareUploadRequest, body)
        if not (request.user_id and request.original_filename):
            raise ValidationError("Missing required fields")
        authorize(caller, request.user_id)

        name = sanitize_filename(request.original_filename)
        validate_spreadsheet(name, request.content_type, request.file_size)
    except SheetLensError as exc:
        return exc.to_response()

    return {
        "filename": storage_filename(name),
        "originalFilename": name,
        "status": 200,
    }
