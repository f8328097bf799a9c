from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from sheetlens.auth import Identity, get_session
from sheetlens.db import get_upload_store
from sheetlens.http import envelope_response, json_body
from sheetlens.store import UploadStore
from sheetlens.uploads import create_upload_record, list_uploads_for_user, prepare_upload

router = APIRouter(prefix="/api", tags=["Uploads"])


@router.post("/save-upload", summary="Save the record of a file pushed to object storage")
async def save_upload(
    request: Request,
    identity: Identity | None = Depends(get_session),
    store: UploadStore = Depends(get_upload_store),
) -> JSONResponse:
    result = await create_upload_record(identity, await json_body(request), store)
    return envelope_response(result)


@router.post("/get-user-uploads", summary="List a user's uploads, newest first")
async def get_user_uploads(
    request: Request,
    identity: Identity | None = Depends(get_session),
    store: UploadStore = Depends(get_upload_store),
) -> JSONResponse:
    result = await list_uploads_for_user(identity, await json_body(request), store)
    return envelope_response(result)


@router.post("/prepare-upload", summary="Validate a spreadsheet and name it for storage")
async def prepare(
    request: Request,
    identity: Identity | None = Depends(get_session),
) -> JSONResponse:
    return envelope_response(prepare_upload(identity, await json_body(request)))
