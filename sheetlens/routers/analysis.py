from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from sheetlens.analysis import analyze_upload, build_chart
from sheetlens.auth import Identity, get_session
from sheetlens.db import get_upload_store
from sheetlens.http import envelope_response, json_body
from sheetlens.store import UploadStore

router = APIRouter(prefix="/api/analyze", tags=["Analysis"])


@router.post("", summary="Data, columns and insights request for one upload")
async def analyze(
    request: Request,
    identity: Identity | None = Depends(get_session),
    store: UploadStore = Depends(get_upload_store),
) -> JSONResponse:
    """
    Returns the upload's tabular data with its column metadata, plus the
    message list the client forwards to the generative-text service.
    """
    result = await analyze_upload(identity, await json_body(request), store)
    return envelope_response(result)


@router.post("/chart", summary="Chart configuration for one upload")
async def chart(
    request: Request,
    identity: Identity | None = Depends(get_session),
    store: UploadStore = Depends(get_upload_store),
) -> JSONResponse:
    result = await build_chart(identity, await json_body(request), store)
    return envelope_response(result)
